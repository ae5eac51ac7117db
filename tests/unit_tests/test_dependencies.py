"""Unit tests for dependencies.py."""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from espec_api.auth.session import SessionStore
from espec_api.auth.session import TokenPair
from espec_api.client.exceptions import SessionExpiredError
from espec_api.dependencies import get_api_client
from espec_api.dependencies import get_cancel_token
from espec_api.dependencies import get_session
from espec_api.dependencies import get_settings
from tests.consts import TEST_EMAIL


class TestGetSession:
    """Tests for get_session."""

    def test_valid_session(self, access_token, refresh_token):
        store = SessionStore()
        session = store.create(TEST_EMAIL, TokenPair(access=access_token, refresh=refresh_token))

        resolved = get_session(session_id=session.session_id, store=store)

        assert resolved.session_id == session.session_id
        assert resolved.email == TEST_EMAIL

    @pytest.mark.parametrize("session_id", [None, ""], ids=["missing", "empty"])
    def test_missing_header(self, session_id):
        with pytest.raises(HTTPException) as exc_info:
            get_session(session_id=session_id, store=SessionStore())

        assert exc_info.value.status_code == 401

    def test_unknown_session(self):
        with pytest.raises(HTTPException) as exc_info:
            get_session(session_id="does-not-exist", store=SessionStore())

        assert exc_info.value.status_code == 401
        assert "not found" in exc_info.value.detail

    def test_expired_session_is_cleared(self, access_token, expired_refresh_token):
        """Test an expired refresh token clears the session and raises SessionExpiredError."""
        store = SessionStore()
        session = store.create(TEST_EMAIL, TokenPair(access=access_token, refresh=expired_refresh_token))

        with pytest.raises(SessionExpiredError):
            get_session(session_id=session.session_id, store=store)

        assert store.load(session.session_id) is None


def test_cancel_token_fires_after_request():
    """Test the token is live during the request and cancelled afterwards."""
    dependency = get_cancel_token()
    token = next(dependency)
    assert token.cancelled is False

    with pytest.raises(StopIteration):
        next(dependency)

    assert token.cancelled is True


def test_get_api_client_binds_session(access_token, refresh_token):
    store = SessionStore()
    session = store.create(TEST_EMAIL, TokenPair(access=access_token, refresh=refresh_token))
    http = MagicMock()
    token = next(get_cancel_token())

    client = get_api_client(http=http, session=session, store=store, cancel_token=token)

    assert client.http is http
    assert client.session is session
    assert client.session_store is store
    assert client.cancel_token is token


def test_get_settings(app):
    request = MagicMock()
    request.app = app

    assert get_settings(request) is app.state.settings
