from typing import List

from fastapi import APIRouter
from fastapi import Depends
from fastapi import status
from loguru import logger

from espec_api.dependencies import get_reference_data
from espec_api.models.domain import AdminUser
from espec_api.schemas.schemas import CreateUserRequest
from espec_api.services.reference_data import ReferenceDataService

ROUTER_USERS = APIRouter(tags=["Users"])


@ROUTER_USERS.get("/users")
async def list_users(service: ReferenceDataService = Depends(get_reference_data)) -> List[AdminUser]:
    return await service.list_users()


##########################


@ROUTER_USERS.post(
    "/users",
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_422_UNPROCESSABLE_CONTENT: {
            "description": "Password shorter than 8 characters or confirmation mismatch",
        },
    },
)
async def create_user(body: CreateUserRequest, service: ReferenceDataService = Depends(get_reference_data)) -> AdminUser:
    """Create an admin user (atendente, gerente or superadmin)."""
    logger.info("Creating admin user", email=body.email, role=body.role.value)
    return await service.create_user(
        email=body.email,
        username=body.username,
        password=body.password,
        role=body.role.value,
        first_name=body.first_name,
        last_name=body.last_name,
    )
