from typing import List

import httpx
from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import status
from loguru import logger

from espec_api.auth.session import DraftMaterial
from espec_api.auth.session import Session
from espec_api.auth.session import SessionStore
from espec_api.auth.session import token_expiry
from espec_api.auth.token_client import obtain_token_pair
from espec_api.dependencies import get_http_client
from espec_api.dependencies import get_session
from espec_api.dependencies import get_session_store
from espec_api.dependencies import get_workflow_registry
from espec_api.schemas.schemas import DeleteResponse
from espec_api.schemas.schemas import DraftSelectionRequest
from espec_api.schemas.schemas import LoginRequest
from espec_api.schemas.schemas import SessionResponse
from espec_api.workflow.registry import WorkflowRegistry

ROUTER_SESSION = APIRouter(tags=["Session"])


def _session_response(session: Session) -> SessionResponse:
    access_exp = token_expiry(session.access_token)
    refresh_exp = token_expiry(session.refresh_token)
    return SessionResponse(
        session_id=session.session_id,
        email=session.email,
        access_expires_at=access_exp.isoformat() if access_exp else None,
        refresh_expires_at=refresh_exp.isoformat() if refresh_exp else None,
    )


@ROUTER_SESSION.post(
    "/session/login",
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_401_UNAUTHORIZED: {
            "description": "Invalid credentials",
            "content": {
                "application/json": {"example": {"detail": "Credenciais inválidas", "error_type": "AuthenticationError"}}
            },
        },
    },
)
async def login(
    request: Request,
    body: LoginRequest,
    http: httpx.AsyncClient = Depends(get_http_client),
    store: SessionStore = Depends(get_session_store),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
) -> SessionResponse:
    """Exchange credentials for a token pair and open a session; sessions that can no longer refresh are dropped."""
    logger.info("Login requested", email=body.email, method=request.method, path=request.url.path)
    for session_id in store.sweep_expired():
        registry.discard_session(session_id)
    tokens = await obtain_token_pair(http, body.email, body.password)
    session = store.create(body.email, tokens)
    return _session_response(session)


##########################


@ROUTER_SESSION.post("/session/logout")
async def logout(
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
) -> DeleteResponse:
    """Forget the session and every workflow state attached to it."""
    store.clear(session.session_id)
    dropped = registry.discard_session(session.session_id)
    logger.info("Logged out", email=session.email, dropped_workflows=dropped)
    return DeleteResponse(message="Sessão encerrada", status_code=status.HTTP_200_OK)


##########################


@ROUTER_SESSION.get("/session")
async def session_status(session: Session = Depends(get_session)) -> SessionResponse:
    """Return the session's identity and token expiry times."""
    return _session_response(session)


##########################


@ROUTER_SESSION.get("/session/drafts/{environment_id}")
async def get_draft_selection(environment_id: int, session: Session = Depends(get_session)) -> List[DraftMaterial]:
    """Unsaved material selections of one environment."""
    return session.draft_selections.get(environment_id, [])


@ROUTER_SESSION.put("/session/drafts/{environment_id}")
async def save_draft_selection(
    environment_id: int,
    body: DraftSelectionRequest,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
) -> List[DraftMaterial]:
    """Replace the unsaved material selections of one environment; an empty list removes them."""
    store.update_draft_selection(session.session_id, environment_id, body.materials)
    logger.debug("Draft selection saved", environment_id=environment_id, materials=len(body.materials))
    return body.materials
