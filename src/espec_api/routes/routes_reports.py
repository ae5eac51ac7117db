from typing import List

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query

from espec_api.client.api_client import SpecApiClient
from espec_api.dependencies import get_api_client
from espec_api.dependencies import get_settings
from espec_api.models.domain import DashboardStats
from espec_api.models.domain import LogEntry
from espec_api.models.domain import MonthlyStats
from espec_api.services.logs_stats import LogPage
from espec_api.services.logs_stats import dashboard_stats
from espec_api.services.logs_stats import list_logs
from espec_api.services.logs_stats import monthly_stats
from espec_api.services.logs_stats import recent_logs
from espec_api.settings import Settings

ROUTER_REPORTS = APIRouter(tags=["Reports"])


@ROUTER_REPORTS.get("/logs")
async def get_logs(page: int = Query(default=1, ge=1), client: SpecApiClient = Depends(get_api_client)) -> LogPage:
    """One backend page of the audit log."""
    return await list_logs(client, page=page)


@ROUTER_REPORTS.get("/logs/recent")
async def get_recent_logs(
    client: SpecApiClient = Depends(get_api_client),
    settings: Settings = Depends(get_settings),
) -> List[LogEntry]:
    """Most recent log entries for the home dashboard."""
    return await recent_logs(client, limit=settings.recent_logs_limit)


##########################


@ROUTER_REPORTS.get("/stats/dashboard")
async def get_dashboard_stats(client: SpecApiClient = Depends(get_api_client)) -> DashboardStats:
    return await dashboard_stats(client)


@ROUTER_REPORTS.get("/stats/monthly")
async def get_monthly_stats(
    client: SpecApiClient = Depends(get_api_client),
    settings: Settings = Depends(get_settings),
) -> List[MonthlyStats]:
    """Per-status counts of the most recent months."""
    return await monthly_stats(client, window=settings.monthly_stats_window)
