"""Error handling for the FastAPI application and upstream API exceptions."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from espec_api.client.exceptions import ApiValidationError
from espec_api.client.exceptions import AuthenticationError
from espec_api.client.exceptions import AuthorizationError
from espec_api.client.exceptions import ConflictError
from espec_api.client.exceptions import NetworkError
from espec_api.client.exceptions import NotFoundError
from espec_api.client.exceptions import RequestCancelledError
from espec_api.client.exceptions import SpecApiError
from espec_api.monitoring.logger import log_response_info
from espec_api.monitoring.request_context import get_request_context

# Explicit exports
__all__ = [
    "handle_broad_exceptions",
    "handle_pydantic_validation_errors",
    "handle_spec_api_errors",
    "status_for_error",
]

HTTP_499_CLIENT_CLOSED_REQUEST = 499


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.error(
            f"Unhandled exception: {type(err).__name__}: {str(err)}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            exc_info=True,
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_response,
    )
    log_response_info(response)

    return response


def status_for_error(exc: SpecApiError) -> int:
    """
    Map a SpecApiError to the HTTP status returned to our caller.

    - AuthenticationError (incl. SessionExpiredError) -> 401 Unauthorized
    - AuthorizationError -> 403 Forbidden
    - NotFoundError -> 404 Not Found
    - ApiValidationError -> 400 Bad Request
    - ConflictError -> 409 Conflict
    - RequestCancelledError -> 499 Client Closed Request
    - NetworkError and anything else -> 502 Bad Gateway (upstream failure)
    """
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ApiValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, RequestCancelledError):
        return HTTP_499_CLIENT_CLOSED_REQUEST
    if isinstance(exc, NetworkError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_502_BAD_GATEWAY


async def handle_spec_api_errors(request: Request, exc: SpecApiError) -> JSONResponse:
    """
    Convert upstream client and workflow errors into HTTP responses.

    Parameters
    ----------
    request : Request
        FastAPI request object
    exc : SpecApiError
        Error raised by the upstream client or a workflow

    Returns
    -------
    JSONResponse
        `{"detail", "error_type"}` body with the mapped status code
    """
    http_status = status_for_error(exc)
    error_type = type(exc).__name__
    error_response = {"detail": exc.message, "error_type": error_type}

    log = logger.error if http_status >= 500 else logger.warning
    log(
        f"Upstream API error: {error_type}: {exc.message}",
        http_status=http_status,
        upstream_status=exc.status_code,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=error_type,
        user_email=get_request_context()["user_email"],
    )

    response = JSONResponse(status_code=http_status, content=error_response)
    log_response_info(response)
    return response
