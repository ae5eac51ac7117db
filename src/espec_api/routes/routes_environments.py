from typing import List
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Request
from fastapi import status
from loguru import logger

from espec_api.dependencies import get_reference_data
from espec_api.dependencies import get_settings
from espec_api.models.domain import Environment
from espec_api.models.domain import ReferenceItem
from espec_api.schemas.schemas import EnvironmentMutationResponse
from espec_api.schemas.schemas import EnvironmentRequest
from espec_api.schemas.schemas import NameRequest
from espec_api.services.reference_data import ReferenceDataService
from espec_api.settings import Settings
from espec_api.workflow.listing import Page
from espec_api.workflow.listing import paginate

ROUTER_ENVIRONMENTS = APIRouter(tags=["Environments"])


@ROUTER_ENVIRONMENTS.get("/environments")
async def list_environments(
    request: Request,
    search: Optional[str] = Query(default=None, description="Substring of the environment name or category"),
    page: int = Query(default=1, ge=1),
    service: ReferenceDataService = Depends(get_reference_data),
    settings: Settings = Depends(get_settings),
) -> Page[Environment]:
    """Available environments, searchable and paginated client-side."""
    logger.info("Listing environments", search=search, page=page, method=request.method, path=request.url.path)
    environments = await service.environments.list()
    needle = (search or "").strip().lower()
    if needle:
        environments = [
            e
            for e in environments
            if needle in e.name.lower() or (e.category is not None and needle in e.category.value.lower())
        ]
    return paginate(environments, page, settings.environments_page_size)


##########################


@ROUTER_ENVIRONMENTS.get("/environments/categories")
async def list_environment_categories(service: ReferenceDataService = Depends(get_reference_data)) -> List[str]:
    """Category choices (falls back to COMUM/PRIVATIVA when the lookup fails)."""
    return await service.environment_categories()


##########################


@ROUTER_ENVIRONMENTS.post("/environments", status_code=status.HTTP_201_CREATED)
async def create_environment(
    body: EnvironmentRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> EnvironmentMutationResponse:
    """Create an environment and return it with the re-fetched list."""
    environment = await service.create_environment(
        name=body.name,
        category=body.category.value,
        type_id=body.type_id,
        color_guide=body.color_guide,
        project_id=body.project_id,
    )
    return EnvironmentMutationResponse(environment=environment, environments=await service.environments.list())


##########################


@ROUTER_ENVIRONMENTS.put("/environments/{environment_id}")
async def update_environment(
    environment_id: int,
    body: EnvironmentRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> EnvironmentMutationResponse:
    """Replace an environment's fields and return it with the re-fetched list."""
    environment = await service.update_environment(
        environment_id,
        name=body.name,
        category=body.category.value,
        type_id=body.type_id,
        color_guide=body.color_guide,
    )
    return EnvironmentMutationResponse(environment=environment, environments=await service.environments.list())


##########################


@ROUTER_ENVIRONMENTS.delete("/environments/{environment_id}")
async def delete_environment(
    environment_id: int,
    service: ReferenceDataService = Depends(get_reference_data),
) -> EnvironmentMutationResponse:
    """Delete an environment and return the re-fetched list."""
    await service.delete_environment(environment_id)
    return EnvironmentMutationResponse(environment=None, environments=await service.environments.list())


##########################


@ROUTER_ENVIRONMENTS.get("/environment-types")
async def list_environment_types(service: ReferenceDataService = Depends(get_reference_data)) -> List[ReferenceItem]:
    return await service.environment_types.list()


@ROUTER_ENVIRONMENTS.post("/environment-types", status_code=status.HTTP_201_CREATED)
async def create_environment_type(
    body: NameRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> List[ReferenceItem]:
    """Create an environment type and return the re-fetched list."""
    await service.create_environment_type(body.name)
    return await service.environment_types.list()
