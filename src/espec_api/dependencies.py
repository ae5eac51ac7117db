"""FastAPI dependencies for accessing app state and the caller's session."""

from typing import Iterator

import httpx
from fastapi import Depends
from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from fastapi import status
from loguru import logger

from espec_api.auth.session import Session
from espec_api.auth.session import SessionStore
from espec_api.client.api_client import SpecApiClient
from espec_api.client.cancel import CancelToken
from espec_api.client.exceptions import SessionExpiredError
from espec_api.services.reference_data import ReferenceDataService
from espec_api.settings import Settings
from espec_api.workflow.registry import WorkflowRegistry


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    """Get the in-memory session store from request state."""
    return request.app.state.session_store


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the shared httpx client pointed at the upstream API."""
    return request.app.state.http_client


def get_workflow_registry(request: Request) -> WorkflowRegistry:
    """Get the per-session workflow state registry."""
    return request.app.state.workflow_registry


def get_cancel_token() -> Iterator[CancelToken]:
    """
    Provide a cancel token bound to the request lifecycle.

    The token is cancelled once the request is done, so a multi-call
    operation still running for it stops before its next upstream call.
    """
    token = CancelToken()
    try:
        yield token
    finally:
        token.cancel("request finished")


def get_session(
    session_id: str | None = Header(
        default=None,
        alias="X-Session-ID",
        description="Session id returned by POST /api/session/login",
    ),
    store: SessionStore = Depends(get_session_store),
) -> Session:
    """
    Resolve the caller's session from the X-Session-ID header.

    Parameters
    ----------
    session_id : str | None
        Value of the X-Session-ID header
    store : SessionStore
        Session store

    Returns
    -------
    Session
        The stored session (a copy; persist changes with store.save)

    Raises
    ------
    HTTPException
        401 if the header is missing or the session is unknown
    SessionExpiredError
        If the refresh token has expired; the session is cleared first
    """
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Session-ID header is required. Log in via POST /api/session/login.",
        )

    session = store.load(session_id)
    if session is None:
        logger.warning("Unknown session id", http_status=401)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session not found. Log in via POST /api/session/login.",
        )

    if session.is_expired():
        store.clear(session_id)
        raise SessionExpiredError()

    return session


def get_api_client(
    http: httpx.AsyncClient = Depends(get_http_client),
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    cancel_token: CancelToken = Depends(get_cancel_token),
) -> SpecApiClient:
    """Build a session-bound upstream client for this request."""
    return SpecApiClient(http, session=session, session_store=store, cancel_token=cancel_token)


def get_reference_data(client: SpecApiClient = Depends(get_api_client)) -> ReferenceDataService:
    """Reference-data editors bound to this request's upstream client."""
    return ReferenceDataService(client)
