####################################
# --- Request/response schemas --- #
####################################

from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

from espec_api.auth.session import DraftMaterial
from espec_api.models.domain import Environment
from espec_api.models.domain import Material
from espec_api.models.domain import Project
from espec_api.models.enums import EnvironmentCategory
from espec_api.models.enums import ProjectType
from espec_api.models.enums import Status
from espec_api.models.enums import UserRole
from espec_api.workflow.saga import SagaReport


def _not_blank(v: str, field: str) -> str:
    if v is None or not v.strip():
        raise ValueError(f"{field} cannot be empty")
    return v.strip()


# session
class LoginRequest(BaseModel):
    """Credentials exchanged for a dashboard session."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Validate that the email is present."""
        return _not_blank(v, "email")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        """Validate that the password is present."""
        if not v:
            raise ValueError("password cannot be empty")
        return v

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "gerente@example.com", "password": "s3cret-pass"}}
    )


class SessionResponse(BaseModel):
    """Session handle returned by login and status."""

    session_id: str
    email: str
    access_expires_at: Optional[str] = None
    refresh_expires_at: Optional[str] = None


class DraftSelectionRequest(BaseModel):
    """Replace the unsaved material selections of one environment."""

    materials: List[DraftMaterial] = []


# projects
class CreateProjectRequest(BaseModel):
    """Request model for creating a project."""

    name: str
    project_type: ProjectType
    delivery_date: str
    description: str = ""
    environment_ids: List[int] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate that the project name is not empty."""
        return _not_blank(v, "name")

    @field_validator("delivery_date")
    @classmethod
    def validate_delivery_date(cls, v):
        """Validate that the delivery date is present (YYYY-MM-DD)."""
        return _not_blank(v, "delivery_date")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Residencial Aurora",
                "project_type": "RESIDENCIAL",
                "delivery_date": "2026-03-30",
                "description": "Torre A",
                "environment_ids": [3, 7],
            }
        }
    )


class EnvironmentDraftRequest(BaseModel):
    """An environment, with its materials, to create together with a project."""

    name: str
    category: Optional[EnvironmentCategory] = None
    type_id: Optional[int] = None
    color_guide: str = ""
    materials: List[DraftMaterial] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate that the environment name is not empty."""
        return _not_blank(v, "name")


class CreateProjectDocumentRequest(CreateProjectRequest):
    """Request model for creating a project with its environments and materials."""

    environments: List[EnvironmentDraftRequest] = []


class CreateProjectDocumentResponse(BaseModel):
    """Created project (if the first step succeeded) and the step report."""

    project: Optional[Project] = None
    report: SagaReport


class ProjectListResponse(BaseModel):
    """A page of projects after search and client-side pagination."""

    items: List[Project]
    page: int
    page_size: int
    total_pages: int
    total_items: int


class UpdateMaterialDescriptionRequest(BaseModel):
    """Request model for editing a material's description."""

    description: str


# approval
class ApprovalBoardResponse(BaseModel):
    """Approval board state for one project."""

    project: Project
    counts: Dict[Status, int]
    rejection_notes: Dict[int, str]
    collapsed: Dict[int, bool]


class RejectionNoteRequest(BaseModel):
    """Buffered free-text rejection reason."""

    text: str = ""


class RejectMaterialRequest(BaseModel):
    """Optional explicit rejection reason."""

    reason: Optional[str] = None


class ToggleEnvironmentResponse(BaseModel):
    environment_id: int
    collapsed: bool


# resubmission
class ResubmissionDraftResponse(BaseModel):
    """Rejected materials available for editing and the edits buffered so far."""

    project: Project
    editable_materials: List[Material]
    edits: Dict[int, Dict[str, str]]
    item_labels: List[str]


class EditMaterialRequest(BaseModel):
    """Edit of a rejected material; omitted fields keep their value."""

    item: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def validate_not_empty(self):
        """Validate that at least one field is being edited."""
        if self.item is None and self.description is None:
            raise ValueError("at least one of item or description must be provided")
        return self


# reference data
class EnvironmentRequest(BaseModel):
    """Request model for creating or updating an environment."""

    name: str
    category: EnvironmentCategory
    type_id: Optional[int] = None
    color_guide: str = ""
    project_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate that the environment name is not empty."""
        return _not_blank(v, "name")


class EnvironmentMutationResponse(BaseModel):
    """Mutated environment plus the re-fetched list."""

    environment: Optional[Environment] = None
    environments: List[Environment]


class NameRequest(BaseModel):
    """Request model for lookups that only carry a name (environment types, brands)."""

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate that the name is not empty."""
        return _not_blank(v, "name")


class CreateMaterialRequest(BaseModel):
    """Request model for creating a material in an environment."""

    environment_id: int
    item: str
    description: str = ""
    brand_id: Optional[int] = None

    @field_validator("item")
    @classmethod
    def validate_item(cls, v):
        """Validate that the item label is not empty."""
        return _not_blank(v, "item")


class BrandMappingRequest(BaseModel):
    """Request model for saving the brand list of a material name."""

    material: str
    brands: str
    project_id: Optional[int] = None

    @field_validator("material", "brands")
    @classmethod
    def validate_not_blank(cls, v, info):
        """Validate that material and brands are not empty."""
        return _not_blank(v, info.field_name)

    model_config = ConfigDict(
        json_schema_extra={"example": {"material": "PORCELANATO", "brands": "Portobello, Eliane", "project_id": 12}}
    )


class UpdateBrandMappingRequest(BaseModel):
    brands: str

    @field_validator("brands")
    @classmethod
    def validate_brands(cls, v):
        """Validate that the brand list is not empty."""
        return _not_blank(v, "brands")


class CreateUserRequest(BaseModel):
    """Request model for creating an admin user."""

    email: str
    username: str
    password: str = Field(..., min_length=8)
    password_confirmation: str
    first_name: str = ""
    last_name: str = ""
    role: UserRole

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Validate that the email looks like an address."""
        v = _not_blank(v, "email")
        if "@" not in v:
            raise ValueError("email must be a valid email address")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        """Validate that the username is not empty."""
        return _not_blank(v, "username")

    @model_validator(mode="after")
    def validate_passwords_match(self):
        """Validate that password and confirmation are equal."""
        if self.password != self.password_confirmation:
            raise ValueError("password and password_confirmation do not match")
        return self


# generic
class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    message: str
    status_code: int
