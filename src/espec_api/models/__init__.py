"""
Models Module

Display-side domain models and enums:
- Enums and status normalization (closed set, single entry point)
- Domain entities built by the client mappers
"""

from espec_api.models.domain import AdminUser
from espec_api.models.domain import BrandDescription
from espec_api.models.domain import DashboardStats
from espec_api.models.domain import Environment
from espec_api.models.domain import LogEntry
from espec_api.models.domain import Material
from espec_api.models.domain import MonthlyStats
from espec_api.models.domain import Project
from espec_api.models.domain import ReferenceItem
from espec_api.models.enums import ITEM_LABELS
from espec_api.models.enums import EnvironmentCategory
from espec_api.models.enums import ProjectType
from espec_api.models.enums import Status
from espec_api.models.enums import UserRole
from espec_api.models.enums import normalize_status

__all__ = [
    # Enums
    "Status",
    "ProjectType",
    "EnvironmentCategory",
    "UserRole",
    "ITEM_LABELS",
    "normalize_status",
    # Entities
    "Project",
    "Environment",
    "Material",
    "BrandDescription",
    "LogEntry",
    "DashboardStats",
    "MonthlyStats",
    "ReferenceItem",
    "AdminUser",
]
