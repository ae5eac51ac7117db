"""Audit log listing and dashboard statistics."""

from typing import List

from pydantic import BaseModel

from espec_api.client.api_client import SpecApiClient
from espec_api.client.mappers import map_dashboard_stats
from espec_api.client.mappers import map_log_entry
from espec_api.client.mappers import map_monthly_stats
from espec_api.client.mappers import results_of
from espec_api.models.domain import DashboardStats
from espec_api.models.domain import LogEntry
from espec_api.models.domain import MonthlyStats

LOGS_PATH = "/api/logs/"
DASHBOARD_STATS_PATH = "/api/stats/dashboard/"
MONTHLY_STATS_PATH = "/api/stats/mensais/"


class LogPage(BaseModel):
    """One backend page of audit log entries."""

    items: List[LogEntry]
    page: int
    count: int
    has_next: bool
    has_previous: bool


async def list_logs(client: SpecApiClient, page: int = 1) -> LogPage:
    payload = await client.get(LOGS_PATH, params={"page": page})
    rows = results_of(payload)
    is_paginated = isinstance(payload, dict)
    return LogPage(
        items=[map_log_entry(row) for row in rows],
        page=page,
        count=payload.get("count", len(rows)) if is_paginated else len(rows),
        has_next=bool(is_paginated and payload.get("next")),
        has_previous=bool(is_paginated and payload.get("previous")),
    )


async def recent_logs(client: SpecApiClient, limit: int = 5) -> List[LogEntry]:
    """The first `limit` entries of the log listing (backend order is newest first)."""
    payload = await client.get(LOGS_PATH)
    return [map_log_entry(row) for row in results_of(payload)[:limit]]


async def dashboard_stats(client: SpecApiClient) -> DashboardStats:
    return map_dashboard_stats(await client.get(DASHBOARD_STATS_PATH) or {})


async def monthly_stats(client: SpecApiClient, window: int = 9) -> List[MonthlyStats]:
    """Per-status monthly counts, restricted to the `window` most recent months in ascending order."""
    stats = map_monthly_stats(await client.get(MONTHLY_STATS_PATH))
    stats.sort(key=lambda s: s.month)
    return stats[-window:]
