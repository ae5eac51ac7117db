from fastapi import APIRouter
from fastapi import Depends
from fastapi import Response
from fastapi import status
from loguru import logger

from espec_api.auth.session import Session
from espec_api.client.api_client import SpecApiClient
from espec_api.dependencies import get_api_client
from espec_api.dependencies import get_session
from espec_api.dependencies import get_workflow_registry
from espec_api.models.enums import ITEM_LABELS
from espec_api.schemas.schemas import EditMaterialRequest
from espec_api.schemas.schemas import ResubmissionDraftResponse
from espec_api.workflow.registry import WorkflowRegistry
from espec_api.workflow.resubmission import ResubmissionDraft
from espec_api.workflow.saga import SagaReport

ROUTER_RESUBMISSION = APIRouter(tags=["Resubmission"])

WORKFLOW_KIND = "resubmission"


def _draft_response(draft: ResubmissionDraft) -> ResubmissionDraftResponse:
    return ResubmissionDraftResponse(
        project=draft.project,
        editable_materials=draft.editable_materials(),
        edits={material_id: edit.model_dump() for material_id, edit in draft.edits.items()},
        item_labels=list(ITEM_LABELS),
    )


async def _current(
    client: SpecApiClient, session: Session, registry: WorkflowRegistry, project_id: int
) -> ResubmissionDraft:
    draft = registry.get(WORKFLOW_KIND, session.session_id, project_id)
    if draft is None:
        draft = await ResubmissionDraft.load(client, project_id)
        registry.put(WORKFLOW_KIND, session.session_id, project_id, draft)
    return draft


@ROUTER_RESUBMISSION.get(
    "/resubmission/{project_id}",
    responses={
        status.HTTP_409_CONFLICT: {
            "description": "Project is not rejected",
            "content": {
                "application/json": {
                    "example": {"detail": "Projeto 4 não está reprovado (PENDENTE)", "error_type": "ConflictError"}
                }
            },
        },
    },
)
async def get_resubmission_draft(
    project_id: int,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
) -> ResubmissionDraftResponse:
    """Load a rejected project and start a fresh resubmission draft."""
    draft = await ResubmissionDraft.load(client, project_id)
    registry.put(WORKFLOW_KIND, session.session_id, project_id, draft)
    logger.info("Resubmission draft opened", project_id=project_id, editable=len(draft.editable_materials()))
    return _draft_response(draft)


##########################


@ROUTER_RESUBMISSION.patch("/resubmission/{project_id}/materials/{material_id}")
async def edit_rejected_material(
    project_id: int,
    material_id: int,
    body: EditMaterialRequest,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
) -> ResubmissionDraftResponse:
    """Buffer an edit of a rejected material's item label or description."""
    draft = await _current(client, session, registry, project_id)
    draft.edit(material_id, item=body.item, description=body.description)
    return _draft_response(draft)


##########################


@ROUTER_RESUBMISSION.post("/resubmission/{project_id}/submit")
async def submit_resubmission(
    project_id: int,
    response: Response,
    client: SpecApiClient = Depends(get_api_client),
    session: Session = Depends(get_session),
    registry: WorkflowRegistry = Depends(get_workflow_registry),
) -> SagaReport:
    """
    Send the rejected materials and then the project back to review.

    Answers 200 when every update was applied and 207 when the run stopped
    part way.
    """
    draft = await _current(client, session, registry, project_id)
    report = await draft.resubmit(client)
    if report.succeeded:
        registry.discard(WORKFLOW_KIND, session.session_id, project_id)
    else:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return report
