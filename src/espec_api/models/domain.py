"""
Domain Models

Front-end display model of the specification domain. Instances are built by
`espec_api.client.mappers` from raw backend payloads; nothing here knows the
backend's field names.
"""

from datetime import date
from datetime import datetime
from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import Field
from pydantic import computed_field

from espec_api.models.enums import EnvironmentCategory
from espec_api.models.enums import Status
from espec_api.models.enums import UserRole


class Material(BaseModel):
    """A specified item inside an environment."""

    id: int
    environment_id: Optional[int] = None
    item: str = ""
    description: str = ""
    status: Status = Status.PENDING
    rejection_reason: Optional[str] = None
    approver_email: Optional[str] = None
    approved_at: Optional[datetime] = None
    brand_id: Optional[int] = None

    @property
    def is_pending(self) -> bool:
        return self.status is Status.PENDING

    @property
    def is_rejected(self) -> bool:
        return self.status is Status.REJECTED


class Environment(BaseModel):
    """An "ambiente" of a project, owning its materials in backend order."""

    id: int
    name: str = ""
    category: Optional[EnvironmentCategory] = None
    type_id: Optional[int] = None
    color_guide: str = ""
    project_id: Optional[int] = None
    materials: List[Material] = Field(default_factory=list)
    # Set when the environment's materials could not be fetched; `materials` is then incomplete
    load_error: Optional[str] = None


class BrandDescription(BaseModel):
    """Brand mapping row: a material name keyed to a comma-separated brand list."""

    id: Optional[int] = None
    material: str
    brands: str = ""
    project_id: Optional[int] = None

    @property
    def brand_list(self) -> List[str]:
        """Brands split on commas, blanks dropped."""
        return [b.strip() for b in self.brands.split(",") if b.strip()]


class Project(BaseModel):
    """A specification project with its environments."""

    id: int
    name: str = ""
    project_type: Optional[str] = None
    responsible: str = ""
    created_at: Optional[datetime] = None
    delivery_date: Optional[date] = None
    description: str = ""
    status: Status = Status.PENDING
    environments: List[Environment] = Field(default_factory=list)
    brand_descriptions: List[BrandDescription] = Field(default_factory=list)
    general_notes: str = ""

    def all_materials(self) -> List[Material]:
        """Every material of every environment, in display order."""
        return [m for env in self.environments for m in env.materials]

    def find_environment(self, environment_id: int) -> Optional[Environment]:
        return next((e for e in self.environments if e.id == environment_id), None)

    def unloaded_environments(self) -> List[Environment]:
        return [e for e in self.environments if e.load_error is not None]


class LogEntry(BaseModel):
    """Append-only audit entry produced by the backend."""

    id: int
    user_email: str = ""
    action: str = ""
    project_name: str = ""
    reason: Optional[str] = None
    timestamp: Optional[datetime] = None


class DashboardStats(BaseModel):
    """Totals shown on the home dashboard."""

    total: int = 0
    approved: int = 0
    rejected: int = 0
    pending: int = 0


class MonthlyStats(BaseModel):
    """Per-status project counts for one month ("YYYY-MM")."""

    month: str
    counts: Dict[Status, int] = Field(default_factory=dict)

    @computed_field
    @property
    def total(self) -> int:
        return sum(self.counts.values())


class ReferenceItem(BaseModel):
    """Simple id/name lookup row (environment types, brands, items)."""

    id: int
    name: str


class AdminUser(BaseModel):
    """Admin user as returned by the backend after creation."""

    id: Optional[int] = None
    email: str
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    role: Optional[UserRole] = None
