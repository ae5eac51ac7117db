from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import Request
from fastapi import Response
from fastapi import status
from loguru import logger

from espec_api.client.api_client import SpecApiClient
from espec_api.dependencies import get_api_client
from espec_api.dependencies import get_settings
from espec_api.models.domain import Project
from espec_api.models.enums import Status
from espec_api.schemas.schemas import CreateProjectDocumentRequest
from espec_api.schemas.schemas import CreateProjectDocumentResponse
from espec_api.schemas.schemas import CreateProjectRequest
from espec_api.schemas.schemas import ProjectListResponse
from espec_api.services.projects import EnvironmentDraft
from espec_api.services.projects import ProjectPage
from espec_api.services.projects import create_project
from espec_api.services.projects import create_project_document
from espec_api.services.projects import download_project_pdf
from espec_api.services.projects import list_all_projects
from espec_api.services.projects import list_projects_page
from espec_api.services.projects import load_project_tree
from espec_api.settings import Settings
from espec_api.workflow.listing import filter_projects
from espec_api.workflow.listing import paginate

ROUTER_PROJECTS = APIRouter(tags=["Projects"])


def parse_status_filter(raw: Optional[str]) -> Optional[Status]:
    """Accept a Status name (PENDING) or backend value (PENDENTE); blank means no filter."""
    if raw is None or not raw.strip():
        return None
    value = raw.strip().upper()
    if value in Status.__members__:
        return Status[value]
    try:
        return Status(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status filter: {raw}. Use one of {[s.name for s in Status]}",
        ) from None


@ROUTER_PROJECTS.get(
    "/projects",
    responses={
        status.HTTP_200_OK: {"description": "Filtered, paginated project list"},
        status.HTTP_400_BAD_REQUEST: {
            "description": "Invalid status filter",
            "content": {"application/json": {"example": {"detail": "Invalid status filter: FOO"}}},
        },
    },
)
async def list_projects(
    request: Request,
    status_filter: Optional[str] = Query(default=None, alias="status", description="PENDING, APPROVED or REJECTED"),
    search: Optional[str] = Query(default=None, description="Substring of the project name or responsible party"),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, description="Defaults to the view's configured page size"),
    client: SpecApiClient = Depends(get_api_client),
    settings: Settings = Depends(get_settings),
) -> ProjectListResponse:
    """Load every project of a status, apply the search and return one client-side page."""
    project_status = parse_status_filter(status_filter)
    logger.info(
        "Listing projects",
        status=project_status.value if project_status else None,
        search=search,
        page=page,
        method=request.method,
        path=request.url.path,
    )
    projects = await list_all_projects(client, project_status)
    filtered = filter_projects(projects, search)
    size = page_size or settings.page_size_for(project_status.name if project_status else None)
    result = paginate(filtered, page, size)
    return ProjectListResponse(**result.model_dump(exclude={"items"}), items=result.items)


##########################


@ROUTER_PROJECTS.get("/projects/backend-page/{page}")
async def get_backend_page(
    page: int,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    client: SpecApiClient = Depends(get_api_client),
) -> ProjectPage:
    """One page of the upstream project listing, as paginated by the backend."""
    return await list_projects_page(client, page=page, status=parse_status_filter(status_filter))


##########################


@ROUTER_PROJECTS.get(
    "/projects/{project_id}",
    responses={
        status.HTTP_404_NOT_FOUND: {
            "description": "Project not found",
            "content": {"application/json": {"example": {"detail": "404 Not Found: ...", "error_type": "NotFoundError"}}},
        },
    },
)
async def get_project(project_id: int, client: SpecApiClient = Depends(get_api_client)) -> Project:
    """Project with every environment's materials."""
    return await load_project_tree(client, project_id)


##########################


@ROUTER_PROJECTS.post(
    "/projects",
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_409_CONFLICT: {
            "description": "A project with this name already exists",
            "content": {
                "application/json": {
                    "example": {"detail": 'Já existe um projeto chamado "Aurora"', "error_type": "ConflictError"}
                }
            },
        },
    },
)
async def post_project(body: CreateProjectRequest, client: SpecApiClient = Depends(get_api_client)) -> Project:
    """Create a project, refusing duplicate names."""
    logger.info("Creating project", name=body.name, project_type=body.project_type.value)
    return await create_project(
        client,
        name=body.name,
        project_type=body.project_type.value,
        delivery_date=body.delivery_date,
        description=body.description,
        environment_ids=body.environment_ids,
    )


##########################


@ROUTER_PROJECTS.post("/projects/document")
async def post_project_document(
    body: CreateProjectDocumentRequest,
    response: Response,
    client: SpecApiClient = Depends(get_api_client),
) -> CreateProjectDocumentResponse:
    """
    Create a project together with its environments and their materials.

    Answers 201 when every step succeeded and 207 when the run stopped part
    way; the report then lists the steps that were applied and those left.
    """
    drafts = [
        EnvironmentDraft(
            name=env.name,
            category=env.category.value if env.category else None,
            type_id=env.type_id,
            color_guide=env.color_guide,
            materials=env.materials,
        )
        for env in body.environments
    ]
    project, report = await create_project_document(
        client,
        name=body.name,
        project_type=body.project_type.value,
        delivery_date=body.delivery_date,
        environments=drafts,
        description=body.description,
    )
    response.status_code = status.HTTP_201_CREATED if report.succeeded else status.HTTP_207_MULTI_STATUS
    return CreateProjectDocumentResponse(project=project, report=report)


##########################


@ROUTER_PROJECTS.get(
    "/projects/{project_id}/pdf",
    response_class=Response,
    responses={status.HTTP_200_OK: {"content": {"application/pdf": {}}, "description": "Backend-generated PDF"}},
)
async def get_project_pdf(project_id: int, client: SpecApiClient = Depends(get_api_client)) -> Response:
    """Pass the backend-generated PDF through unchanged."""
    content, content_type = await download_project_pdf(client, project_id)
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="projeto_{project_id}.pdf"'},
    )
