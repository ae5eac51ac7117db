"""Test suite for logger configuration and log record processing."""

import json
import sys
from unittest.mock import MagicMock
from unittest.mock import patch

from espec_api.monitoring.logger import LOG_FORMAT
from espec_api.monitoring.logger import configure_logger
from espec_api.monitoring.logger import get_formatted_stacktrace
from espec_api.monitoring.logger import log_request_info
from espec_api.monitoring.logger import process_log_record
from tests.consts import TEST_EMAIL


class TestProcessLogRecord:
    """Tests for process_log_record."""

    def test_extra_serialized_to_json(self):
        record = {"extra": {"project_id": 1, "status": "PENDENTE"}, "exception": None}

        processed = process_log_record(record)

        assert json.loads(processed["extra"]) == {"project_id": 1, "status": "PENDENTE"}
        assert processed["stacktrace"] == ""

    def test_already_serialized_extra_untouched(self):
        record = {"extra": '{"a": 1}', "exception": None}

        assert process_log_record(record)["extra"] == '{"a": 1}'

    def test_exception_adds_single_line_stacktrace(self):
        """Test the stacktrace is kept on one line with carriage returns."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            exc_info = sys.exc_info()

        processed = process_log_record({"extra": {}, "exception": exc_info})

        assert "RuntimeError: boom" in processed["stacktrace"]
        assert "\n" not in processed["stacktrace"]


def test_get_formatted_stacktrace_keeps_newlines():
    try:
        raise ValueError("bad")
    except ValueError:
        exc_info = sys.exc_info()

    stacktrace = get_formatted_stacktrace(exc_info, replace_newline_character_with_carriage_return=False)

    assert stacktrace.endswith("ValueError: bad\n")


class TestLoggerConfiguration:
    """Tests for logger configuration."""

    def test_configure_logger_default(self):
        """Test logger configuration with default settings."""
        # This should not raise an error
        configure_logger()

    @patch("espec_api.monitoring.logger.logger")
    def test_stdout_only_by_default(self, mock_logger):
        configure_logger(log_level="DEBUG")

        mock_logger.remove.assert_called_once()
        assert mock_logger.add.call_count == 1
        assert mock_logger.add.call_args.kwargs["level"] == "DEBUG"
        assert mock_logger.add.call_args.kwargs["format"] == LOG_FORMAT

    @patch("espec_api.monitoring.logger.logger")
    def test_file_sink_with_rotation(self, mock_logger):
        """Test the optional file sink is rotated and enqueued."""
        configure_logger(enable_file_logging=True, log_file_path="logs/test.log", log_rotation="1 MB")

        assert mock_logger.add.call_count == 2
        file_sink = mock_logger.add.call_args_list[1].kwargs
        assert file_sink["sink"] == "logs/test.log"
        assert file_sink["rotation"] == "1 MB"
        assert file_sink["enqueue"] is True


class TestRequestLogging:
    """Tests for request logging."""

    @patch("espec_api.monitoring.logger.logger")
    def test_credentials_redacted(self, mock_logger):
        """Test bearer tokens and session ids never reach the logs."""
        request = MagicMock()
        request.method = "GET"
        request.url.path = "/api/projects"
        request.query_params.items.return_value = []
        request.path_params.items.return_value = []
        request.headers.items.return_value = [
            ("authorization", "Bearer secret-token"),
            ("x-session-id", "abc123"),
            ("accept", "application/json"),
        ]

        log_request_info(request)

        logged = mock_logger.debug.call_args.kwargs["http_request"]
        assert logged["headers"] == {"authorization": "***", "x-session-id": "***", "accept": "application/json"}


class TestIntegrationLogging:
    """Integration tests for logging with API."""

    def test_api_logs_on_request(self, client, upstream):
        """Test that API logs are created on request."""
        upstream.add("GET", "/api/projetos/", json_body=[])

        with patch("espec_api.routes.routes_projects.logger") as mock_logger:
            response = client.get("/api/projects")

            assert response.status_code == 200
            assert mock_logger.info.called

    def test_api_logs_on_error(self, client, upstream):
        """Test that upstream errors are logged as warnings."""
        upstream.add("GET", "/api/projetos/404/", status_code=404, json_body={"detail": "Not found."})

        with patch("espec_api.errors.logger") as mock_logger:
            response = client.get("/api/projects/404")

            assert response.status_code == 404
            assert mock_logger.warning.called

    def test_request_id_header(self, client, upstream):
        """Test the request id is echoed back."""
        upstream.add("GET", "/api/projetos/", json_body=[])

        response = client.get("/api/projects", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_error_log_names_session_user(self, client, upstream):
        """Test the session owner's email is attached to error logs, not the session id."""
        upstream.add("GET", "/api/projetos/404/", status_code=404, json_body={"detail": "Not found."})

        with patch("espec_api.errors.logger") as mock_logger:
            client.get("/api/projects/404")

            assert mock_logger.warning.call_args.kwargs["user_email"] == TEST_EMAIL
