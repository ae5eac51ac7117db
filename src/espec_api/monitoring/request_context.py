"""Request context middleware for logging."""
import time
import uuid
from contextvars import ContextVar
from typing import Any
from typing import Callable
from typing import Optional

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from espec_api.monitoring.logger import log_request_info

# Context variables to store request-specific data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
client_ip_ctx: ContextVar[str] = ContextVar("client_ip", default="")
request_path_ctx: ContextVar[str] = ContextVar("request_path", default="")
user_email_ctx: ContextVar[str] = ContextVar("user_email", default="")

SESSION_HEADER = "X-Session-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add to logging.

        Captures:
        - Request ID (from header or generated)
        - Client IP (forwarded header or direct)
        - Dashboard user owning the session (email only, never the session id or tokens)
        - Request path, method, status and timing
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_ctx.set(request_id)

        client_ip = self._get_client_ip(request)
        client_ip_ctx.set(client_ip)

        user_email = self._get_user_email(request)
        user_email_ctx.set(user_email or "anonymous")

        request_path = f"{request.method} {request.url.path}"
        request_path_ctx.set(request_path)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            user_email=user_email or "anonymous",
            request_path=request_path,
        ):
            log_request_info(request)

            start_time = time.time()
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            response.headers["X-Request-ID"] = request_id
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code}",
                method=request.method,
                path=request.url.path,
                query_params=str(request.query_params),
                event_type="http_request",
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
            )
            return response

    def _get_client_ip(self, request: Request) -> str:
        """Get the real client IP address (first hop of X-Forwarded-For when behind a proxy)."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    def _get_user_email(self, request: Request) -> Optional[str]:
        """Email of the session named by the X-Session-ID header, if it is known."""
        session_id = request.headers.get(SESSION_HEADER)
        store = getattr(request.app.state, "session_store", None)
        if not session_id or store is None:
            return None
        session = store.load(session_id)
        return session.email if session else None


def get_request_context() -> dict:
    """
    Get current request context for logging.

    Returns:
        Dictionary with request context variables
    """
    return {
        "request_id": request_id_ctx.get(),
        "client_ip": client_ip_ctx.get(),
        "request_path": request_path_ctx.get(),
        "user_email": user_email_ctx.get(),
    }
