"""Tests for the step runner used by multi-call mutations."""

import pytest

from espec_api.client.cancel import CancelToken
from espec_api.client.exceptions import NetworkError
from espec_api.client.exceptions import RequestCancelledError
from espec_api.workflow.saga import Saga


def returning(value, log=None):
    async def action():
        if log is not None:
            log.append(value)
        return value

    return action


def failing(message):
    async def action():
        raise NetworkError(message, status_code=502)

    return action


class TestSaga:
    """Tests for Saga.run."""

    @pytest.mark.asyncio
    async def test_all_steps_complete(self):
        saga = Saga("demo")
        saga.add_step("a", returning(1))
        saga.add_step("b", returning(2))

        report = await saga.run()

        assert report.succeeded
        assert [s.name for s in report.completed] == ["a", "b"]
        assert report.result_of("b") == 2
        assert report.result_of("missing") is None

    @pytest.mark.asyncio
    async def test_stops_at_first_failure_without_rollback(self):
        """Test later steps are not run and earlier ones stay reported as completed."""
        ran = []
        saga = Saga("demo")
        saga.add_step("a", returning("a", ran))
        saga.add_step("b", failing("upstream down"))
        saga.add_step("c", returning("c", ran))
        saga.add_step("d", returning("d", ran))

        report = await saga.run()

        assert not report.succeeded
        assert ran == ["a"]
        assert [s.name for s in report.completed] == ["a"]
        assert report.failed_step == "b"
        assert report.error == "upstream down"
        assert report.error_type == "NetworkError"
        assert report.pending_steps == ["c", "d"]

    @pytest.mark.asyncio
    async def test_steps_appended_while_running(self):
        """Test a step can queue follow-up steps that run after the already queued ones."""
        ran = []
        saga = Saga("demo")

        async def parent():
            saga.add_step("child", returning("child", ran))
            ran.append("parent")
            return "parent"

        saga.add_step("parent", parent)
        saga.add_step("sibling", returning("sibling", ran))

        report = await saga.run()

        assert ran == ["parent", "sibling", "child"]
        assert len(report.completed) == 3

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_run(self):
        token = CancelToken()
        ran = []
        saga = Saga("demo", cancel_token=token)

        async def cancel_after():
            token.cancel()
            ran.append("first")

        saga.add_step("first", cancel_after)
        saga.add_step("second", returning("second", ran))

        report = await saga.run()

        assert ran == ["first"]
        assert report.failed_step == "second"
        assert report.error_type == RequestCancelledError.__name__

    @pytest.mark.asyncio
    async def test_non_api_errors_propagate(self):
        saga = Saga("demo")

        async def broken():
            raise KeyError("id")

        saga.add_step("broken", broken)

        with pytest.raises(KeyError):
            await saga.run()
