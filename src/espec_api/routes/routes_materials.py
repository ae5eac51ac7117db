from typing import Dict
from typing import List

from fastapi import APIRouter
from fastapi import Depends
from fastapi import status
from loguru import logger

from espec_api.client.api_client import SpecApiClient
from espec_api.dependencies import get_api_client
from espec_api.dependencies import get_reference_data
from espec_api.dependencies import get_settings
from espec_api.models.domain import Material
from espec_api.models.domain import ReferenceItem
from espec_api.schemas.schemas import CreateMaterialRequest
from espec_api.schemas.schemas import NameRequest
from espec_api.schemas.schemas import UpdateMaterialDescriptionRequest
from espec_api.services.projects import update_material_description
from espec_api.services.reference_data import ReferenceDataService
from espec_api.settings import Settings

ROUTER_MATERIALS = APIRouter(tags=["Materials"])


@ROUTER_MATERIALS.post(
    "/materials",
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_201_CREATED: {"description": "Material created, or the existing (environment, item) row updated"}
    },
)
async def create_material(
    body: CreateMaterialRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> Material:
    """Create a material in an environment."""
    logger.info("Creating material", environment_id=body.environment_id, item=body.item)
    return await service.create_material(
        environment_id=body.environment_id,
        item=body.item,
        description=body.description,
        brand_id=body.brand_id,
    )


##########################


@ROUTER_MATERIALS.get("/materials/items")
async def list_items(service: ReferenceDataService = Depends(get_reference_data)) -> List[str]:
    """Every item label known to the backend."""
    return await service.list_items()


##########################


@ROUTER_MATERIALS.get("/materials/suggestions")
async def description_suggestions(
    service: ReferenceDataService = Depends(get_reference_data),
    settings: Settings = Depends(get_settings),
) -> Dict[str, List[str]]:
    """Known descriptions grouped by upper-cased item label."""
    return await service.description_suggestions(limit=settings.suggestion_material_limit)


##########################


@ROUTER_MATERIALS.patch("/materials/{material_id}/description")
async def patch_material_description(
    material_id: int,
    body: UpdateMaterialDescriptionRequest,
    client: SpecApiClient = Depends(get_api_client),
) -> Material:
    """Edit a material's description from the specification view."""
    return await update_material_description(client, material_id, body.description)


##########################


@ROUTER_MATERIALS.get("/brands")
async def list_brands(service: ReferenceDataService = Depends(get_reference_data)) -> List[ReferenceItem]:
    return await service.brands.list()


@ROUTER_MATERIALS.post("/brands", status_code=status.HTTP_201_CREATED)
async def create_brand(
    body: NameRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> List[ReferenceItem]:
    """Create a brand and return the re-fetched list."""
    await service.create_brand(body.name)
    return await service.brands.list()
