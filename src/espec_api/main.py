import os
from pathlib import Path
from textwrap import dedent

import httpx
import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from espec_api.auth.session import SessionStore
from espec_api.client.api_client import build_http_client
from espec_api.client.exceptions import SpecApiError
from espec_api.errors import handle_broad_exceptions
from espec_api.errors import handle_pydantic_validation_errors
from espec_api.errors import handle_spec_api_errors
from espec_api.monitoring.logger import configure_logger
from espec_api.monitoring.request_context import RequestContextMiddleware
from espec_api.routes.routes_approval import ROUTER_APPROVAL
from espec_api.routes.routes_brand_mappings import ROUTER_BRAND_MAPPINGS
from espec_api.routes.routes_environments import ROUTER_ENVIRONMENTS
from espec_api.routes.routes_health import ROUTER_HEALTH
from espec_api.routes.routes_materials import ROUTER_MATERIALS
from espec_api.routes.routes_projects import ROUTER_PROJECTS
from espec_api.routes.routes_reports import ROUTER_REPORTS
from espec_api.routes.routes_resubmission import ROUTER_RESUBMISSION
from espec_api.routes.routes_session import ROUTER_SESSION
from espec_api.routes.routes_users import ROUTER_USERS
from espec_api.settings import Settings
from espec_api.workflow.registry import WorkflowRegistry


def _detect_environment() -> str:
    """Detect whether configuration comes from a .env file or plain environment variables."""
    if Path(".env").exists():
        return "local-env-file"
    return "env-vars"


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings
    (or a .env file in the working directory for local development).

    Parameters
    ----------
    settings : Settings | None
        Explicit settings; read from the environment when None
    transport : httpx.AsyncBaseTransport | None
        Transport of the upstream httpx client (tests pass an httpx.MockTransport)
    """
    settings = settings or Settings()

    configure_logger(
        log_level=settings.log_level,
        enable_file_logging=settings.enable_file_logging,
        log_file_path=settings.log_file_path,
        log_rotation=settings.log_rotation,
    )

    logger.info(
        "Configuration loaded successfully",
        config_source=_detect_environment(),
        upstream_api_url=settings.upstream_api_url,
        request_timeout_seconds=settings.request_timeout_seconds,
        file_logging=settings.enable_file_logging,
        environment=os.getenv("ENVIRONMENT"),
    )

    app = FastAPI(
        title="Especificação Dashboard API",
        version="v1",
        description=dedent(
            """
        Backend-for-frontend of the specification dashboard: sessions, project
        listings, the material approval workflow, resubmission of rejected
        projects, reference-data editors and reports.

        Every route except `/api/health` and `/api/session/login` requires the
        `X-Session-ID` header returned by the login route.
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,  # Hide schemas section
            "defaultModelExpandDepth": 1,  # Keep models collapsed if shown
        },
    )
    app.state.settings = settings
    app.state.session_store = SessionStore()
    app.state.workflow_registry = WorkflowRegistry()
    app.state.http_client = build_http_client(settings, transport=transport)
    logger.info("Upstream HTTP client initialized", base_url=settings.upstream_api_url)

    @app.on_event("shutdown")
    async def close_http_client():
        """Close the upstream connection pool."""
        await app.state.http_client.aclose()
        logger.info("Upstream HTTP client closed")

    # Add request context middleware for tracking who/where requests come from
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_SESSION, prefix="/api")
    app.include_router(ROUTER_PROJECTS, prefix="/api")
    app.include_router(ROUTER_APPROVAL, prefix="/api")
    app.include_router(ROUTER_RESUBMISSION, prefix="/api")
    app.include_router(ROUTER_ENVIRONMENTS, prefix="/api")
    app.include_router(ROUTER_MATERIALS, prefix="/api")
    app.include_router(ROUTER_BRAND_MAPPINGS, prefix="/api")
    app.include_router(ROUTER_USERS, prefix="/api")
    app.include_router(ROUTER_REPORTS, prefix="/api")

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=SpecApiError,
        handler=handle_spec_api_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
