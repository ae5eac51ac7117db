from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import status
from loguru import logger

from espec_api.auth.session import Session
from espec_api.client.api_client import SpecApiClient
from espec_api.dependencies import get_api_client
from espec_api.dependencies import get_session
from espec_api.dependencies import get_settings
from espec_api.dependencies import get_workflow_registry
from espec_api.schemas.schemas import ApprovalBoardResponse
from espec_api.schemas.schemas import RejectionNoteRequest
from espec_api.schemas.schemas import RejectMaterialRequest
from espec_api.schemas.schemas import ToggleEnvironmentResponse
from espec_api.settings import Settings
from espec_api.workflow.approval import ApprovalWorkflow
from espec_api.workflow.approval import DecisionResult
from espec_api.workflow.registry import WorkflowRegistry

ROUTER_APPROVAL = APIRouter(tags=["Approval"])

WORKFLOW_KIND = "approval"

DECISION_RESPONSES = {
    status.HTTP_404_NOT_FOUND: {
        "description": "Environment or material not part of the project",
        "content": {
            "application/json": {
                "example": {"detail": "Material 9 não encontrado neste projeto", "error_type": "NotFoundError"}
            }
        },
    },
    status.HTTP_409_CONFLICT: {
        "description": "Material already approved or rejected",
        "content": {
            "application/json": {
                "example": {"detail": "Material 9 já foi avaliado (APROVADO)", "error_type": "ConflictError"}
            }
        },
    },
}


def _board(workflow: ApprovalWorkflow) -> ApprovalBoardResponse:
    return ApprovalBoardResponse(
        project=workflow.project,
        counts=workflow.counts(),
        rejection_notes=workflow.rejection_notes,
        collapsed=workflow.collapsed,
    )


async def _load(
    client: SpecApiClient,
    session: Session,
    registry: WorkflowRegistry,
    settings: Settings,
    project_id: int,
) -> ApprovalWorkflow:
    workflow = await ApprovalWorkflow.load(
        client, project_id, default_rejection_reason=settings.default_rejection_reason
    )
    registry.put(WORKFLOW_KIND, session.session_id, project_id, workflow)
    return workflow


def _settle(registry: WorkflowRegistry, session: Session, project_id: int, result: DecisionResult) -> DecisionResult:
    """Drop the board once the project reached its final status; nothing is left to decide on it."""
    if result.aggregate_applied:
        registry.discard(WORKFLOW_KIND, session.session_id, project_id)
        logger.info("Approval board closed", project_id=project_id, status=result.project_status.value)
    return result


async def _current(
    client: SpecApiClient,
    session: Session,
    registry: WorkflowRegistry,
    settings: Settings,
    project_id: int,
) -> ApprovalWorkflow:
    workflow = registry.get(WORKFLOW_KIND, session.session_id, project_id)
    if workflow is None:
        workflow = await _load(client, session, registry, settings, project_id)
    return workflow


@ROUTER_APPROVAL.get("/approval/{project_id}")
async def get_approval_board(
    request: Request,
    project_id: int,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    settings: Settings = Depends(get_settings),
) -> ApprovalBoardResponse:
    """Load (or reload) the project tree and start a fresh approval board."""
    logger.info("Opening approval board", project_id=project_id, method=request.method, path=request.url.path)
    workflow = await _load(client, session, registry, settings, project_id)
    return _board(workflow)


##########################


@ROUTER_APPROVAL.put("/approval/{project_id}/notes/{material_id}")
async def put_rejection_note(
    project_id: int,
    material_id: int,
    body: RejectionNoteRequest,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    settings: Settings = Depends(get_settings),
) -> ApprovalBoardResponse:
    """Buffer the rejection reason typed for a material."""
    workflow = await _current(client, session, registry, settings, project_id)
    workflow.set_rejection_note(material_id, body.text)
    return _board(workflow)


##########################


@ROUTER_APPROVAL.post(
    "/approval/{project_id}/environments/{environment_id}/materials/{material_id}/approve",
    responses=DECISION_RESPONSES,
)
async def approve_material(
    project_id: int,
    environment_id: int,
    material_id: int,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    settings: Settings = Depends(get_settings),
) -> DecisionResult:
    """Approve one pending material and recompute the project status."""
    workflow = await _current(client, session, registry, settings, project_id)
    result = await workflow.approve_material(client, environment_id, material_id)
    return _settle(registry, session, project_id, result)


##########################


@ROUTER_APPROVAL.post(
    "/approval/{project_id}/environments/{environment_id}/materials/{material_id}/reject",
    responses=DECISION_RESPONSES,
)
async def reject_material(
    project_id: int,
    environment_id: int,
    material_id: int,
    body: RejectMaterialRequest | None = None,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    settings: Settings = Depends(get_settings),
) -> DecisionResult:
    """Reject one pending material (explicit reason, else buffered note, else the default reason)."""
    workflow = await _current(client, session, registry, settings, project_id)
    reason = body.reason if body else None
    result = await workflow.reject_material(client, environment_id, material_id, reason=reason)
    return _settle(registry, session, project_id, result)


##########################


@ROUTER_APPROVAL.post("/approval/{project_id}/environments/{environment_id}/toggle")
async def toggle_environment(
    project_id: int,
    environment_id: int,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
    settings: Settings = Depends(get_settings),
) -> ToggleEnvironmentResponse:
    """Collapse or expand an environment on the board."""
    workflow = await _current(client, session, registry, settings, project_id)
    return ToggleEnvironmentResponse(
        environment_id=environment_id,
        collapsed=workflow.toggle_environment(environment_id),
    )
