"""
Domain Enums

Closed enumerations used throughout the dashboard. Each member carries the
value the upstream API expects so payloads can be built with `.value`.
"""

from enum import Enum
from typing import Optional

# ════════════════════════════════════════════════════════════════════════════
# Workflow Status
# ════════════════════════════════════════════════════════════════════════════


class Status(str, Enum):
    """Approval status shared by projects and materials."""

    PENDING = "PENDENTE"
    APPROVED = "APROVADO"
    REJECTED = "REPROVADO"


def normalize_status(raw: Optional[str]) -> Status:
    """
    Map any backend status string onto the closed Status enum.

    Matching is case-insensitive and substring based, so "aprovado",
    "APROVADO" and "Reprovado pelo gerente" all resolve. Anything
    unrecognised, including None, is PENDING.
    """
    if isinstance(raw, Status):
        return raw
    value = (raw or "").strip().lower()
    if "reprovado" in value or value == "rejected":
        return Status.REJECTED
    if "aprovado" in value or value == "approved":
        return Status.APPROVED
    return Status.PENDING


# ════════════════════════════════════════════════════════════════════════════
# Project and Environment Classification
# ════════════════════════════════════════════════════════════════════════════


class ProjectType(str, Enum):
    """Project type as stored upstream."""

    RESIDENTIAL = "RESIDENCIAL"
    COMMERCIAL = "COMERCIAL"
    INDUSTRIAL = "INDUSTRIAL"


class EnvironmentCategory(str, Enum):
    """Environment category as stored upstream."""

    PRIVATE_UNIT = "PRIVATIVA"
    COMMON_AREA = "COMUM"
    EXTERNAL_AREA = "EXTERNA"


class UserRole(str, Enum):
    """Admin user role."""

    ATTENDANT = "atendente"
    MANAGER = "gerente"
    SUPERADMIN = "superadmin"


# Fixed reference list offered when editing a rejected material's item label
ITEM_LABELS = (
    "PISO",
    "PAREDE",
    "TETO",
    "RODAPÉ",
    "SOLEIRA",
    "PEITORIL",
    "BANCADA",
    "LOUÇAS",
    "METAIS",
    "ESQUADRIAS",
    "PORTAS",
    "FERRAGENS",
    "ILUMINAÇÃO",
    "TOMADAS E INTERRUPTORES",
    "REVESTIMENTO",
    "OUTROS",
)
