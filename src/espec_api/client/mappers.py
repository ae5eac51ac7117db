"""Translate backend payloads (snake_case, Portuguese) into the display domain model.

Status strings are normalized here and nowhere else; everything past this
module compares against `Status` members.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from espec_api.models.domain import AdminUser
from espec_api.models.domain import BrandDescription
from espec_api.models.domain import DashboardStats
from espec_api.models.domain import Environment
from espec_api.models.domain import LogEntry
from espec_api.models.domain import Material
from espec_api.models.domain import MonthlyStats
from espec_api.models.domain import Project
from espec_api.models.domain import ReferenceItem
from espec_api.models.enums import EnvironmentCategory
from espec_api.models.enums import Status
from espec_api.models.enums import UserRole
from espec_api.models.enums import normalize_status


def _blank_to_none(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def _category(raw: Optional[str]) -> Optional[EnvironmentCategory]:
    try:
        return EnvironmentCategory((raw or "").strip().upper())
    except ValueError:
        return None


def results_of(payload: Any) -> List[Dict[str, Any]]:
    """Return the row list of a DRF response, paginated (`results`) or bare list."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        return payload["results"]
    return []


def map_material(raw: Dict[str, Any]) -> Material:
    return Material(
        id=raw["id"],
        environment_id=raw.get("ambiente"),
        item=raw.get("item") or "",
        description=raw.get("descricao") or "",
        status=normalize_status(raw.get("status")),
        rejection_reason=_blank_to_none(raw.get("motivo")),
        approver_email=_blank_to_none(raw.get("aprovador_email")),
        approved_at=_blank_to_none(raw.get("data_aprovacao")),
        brand_id=raw.get("marca"),
    )


def map_environment(raw: Dict[str, Any]) -> Environment:
    return Environment(
        id=raw["id"],
        name=raw.get("nome_do_ambiente") or raw.get("nome") or "",
        category=_category(raw.get("categoria")),
        type_id=raw.get("tipo"),
        color_guide=raw.get("guia_de_cores") or "",
        project_id=raw.get("projeto"),
        materials=[map_material(m) for m in (raw.get("materials") or [])],
    )


def map_brand_description(raw: Dict[str, Any]) -> BrandDescription:
    return BrandDescription(
        id=raw.get("id"),
        material=raw.get("material") or "",
        brands=raw.get("marcas") or "",
        project_id=raw.get("projeto"),
    )


def map_project(raw: Dict[str, Any]) -> Project:
    """Map a project payload, including nested environments when present."""
    return Project(
        id=raw["id"],
        name=raw.get("nome_do_projeto") or "",
        project_type=raw.get("tipo_do_projeto"),
        responsible=raw.get("responsavel_nome") or "",
        created_at=_blank_to_none(raw.get("data_criacao")),
        delivery_date=_blank_to_none(raw.get("data_entrega")),
        description=raw.get("descricao") or "",
        status=normalize_status(raw.get("status")),
        environments=[map_environment(a) for a in (raw.get("ambientes") or []) if isinstance(a, dict)],
        brand_descriptions=[map_brand_description(b) for b in (raw.get("descricao_marcas") or [])],
        general_notes=raw.get("observacoes_gerais") or "",
    )


def map_log_entry(raw: Dict[str, Any]) -> LogEntry:
    return LogEntry(
        id=raw["id"],
        user_email=raw.get("usuario_email") or "",
        action=raw.get("acao") or "",
        project_name=raw.get("projeto_nome") or "",
        reason=_blank_to_none(raw.get("motivo")),
        timestamp=_blank_to_none(raw.get("data_hora")),
    )


def map_dashboard_stats(raw: Dict[str, Any]) -> DashboardStats:
    return DashboardStats(
        total=raw.get("total_projetos") or 0,
        approved=raw.get("projetos_aprovados") or 0,
        rejected=raw.get("projetos_reprovados") or 0,
        pending=raw.get("projetos_pendentes") or 0,
    )


def map_monthly_stats(raw: Any) -> List[MonthlyStats]:
    """
    Map monthly stats.

    The backend has shipped two shapes: a list of rows
    (`[{"mes": "2025-10", "APROVADO": 1, ...}]`) and a dict keyed by month
    (`{"2025-10": {"APROVADO": 1, ...}}`). Both are accepted; output is in
    backend order.
    """
    if isinstance(raw, dict):
        rows = [{"mes": month, **(values or {})} for month, values in raw.items()]
    else:
        rows = list(raw or [])

    stats = []
    for row in rows:
        counts = {status: int(row.get(status.value) or 0) for status in Status}
        stats.append(MonthlyStats(month=str(row.get("mes", "")), counts=counts))
    return stats


def map_reference_item(raw: Dict[str, Any]) -> ReferenceItem:
    return ReferenceItem(id=raw["id"], name=raw.get("nome") or "")


def map_admin_user(raw: Dict[str, Any]) -> AdminUser:
    try:
        role = UserRole(raw.get("cargo")) if raw.get("cargo") else None
    except ValueError:
        role = None
    return AdminUser(
        id=raw.get("id"),
        email=raw.get("email") or "",
        username=raw.get("username") or "",
        first_name=raw.get("first_name") or "",
        last_name=raw.get("last_name") or "",
        role=role,
    )
