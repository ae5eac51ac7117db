from typing import List

from fastapi import APIRouter
from fastapi import Depends
from fastapi import status

from espec_api.dependencies import get_reference_data
from espec_api.models.domain import BrandDescription
from espec_api.schemas.schemas import BrandMappingRequest
from espec_api.schemas.schemas import UpdateBrandMappingRequest
from espec_api.services.reference_data import ReferenceDataService

ROUTER_BRAND_MAPPINGS = APIRouter(tags=["Brand mappings"])


@ROUTER_BRAND_MAPPINGS.get("/brand-mappings")
async def list_brand_mappings(service: ReferenceDataService = Depends(get_reference_data)) -> List[BrandDescription]:
    return await service.brand_mappings.list()


##########################


@ROUTER_BRAND_MAPPINGS.post("/brand-mappings", status_code=status.HTTP_201_CREATED)
async def save_brand_mapping(
    body: BrandMappingRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> List[BrandDescription]:
    """Create or replace a material's brand list; returns the re-fetched list."""
    await service.save_brand_mapping(body.material, body.brands, project_id=body.project_id)
    return await service.brand_mappings.list()


##########################


@ROUTER_BRAND_MAPPINGS.patch("/brand-mappings/{mapping_id}")
async def update_brand_mapping(
    mapping_id: int,
    body: UpdateBrandMappingRequest,
    service: ReferenceDataService = Depends(get_reference_data),
) -> List[BrandDescription]:
    await service.update_brand_mapping(mapping_id, body.brands)
    return await service.brand_mappings.list()


##########################


@ROUTER_BRAND_MAPPINGS.delete("/brand-mappings/{mapping_id}")
async def delete_brand_mapping(
    mapping_id: int,
    service: ReferenceDataService = Depends(get_reference_data),
) -> List[BrandDescription]:
    await service.delete_brand_mapping(mapping_id)
    return await service.brand_mappings.list()
