import json
import sys
import traceback

import loguru
from fastapi import Request
from fastapi import Response
from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<bold><white>{message}</white></bold> | <dim>{extra}</dim> {stacktrace}"
)

# Header values never written to logs
REDACTED_HEADERS = {"authorization", "cookie", "x-session-id"}


# Loggers configuration runs at the start of the application -- src/espec_api/__init__.py
def configure_logger(
    log_level: str = "INFO",
    enable_file_logging: bool = False,
    log_file_path: str = "logs/espec_api.log",
    log_rotation: str = "10 MB",
):
    """
    Configure loguru logger with a stdout sink and an optional rotating file sink.

    Args:
        log_level: Minimum level for every sink
        enable_file_logging: Also write logs to a rotating file
        log_file_path: Path of the log file
        log_rotation: Loguru rotation policy (size or time based)
    """
    logger.remove()  # remove the default logger

    # Add stdout handler (always enabled for console output)
    logger.add(
        sink=sys.stdout,
        level=log_level,
        diagnose=False,
        format=LOG_FORMAT,
        filter=process_log_record,
    )

    if enable_file_logging:
        logger.add(
            sink=log_file_path,
            level=log_level,
            diagnose=False,
            format=LOG_FORMAT,
            filter=process_log_record,
            rotation=log_rotation,
            retention=5,
            enqueue=True,
        )
        logger.info("File logging enabled", log_file_path=log_file_path, rotation=log_rotation)


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    1. Serialize the "extra" field to JSON so one record stays on one line.
    2. For error logs, add a traceback with \r instead of \n for the same reason.
    """
    extra = record["extra"]

    # serialize "extra" field to JSON
    if extra and not isinstance(extra, str):
        record["extra"] = json.dumps(extra, default=str)

    # add stacktrace to log record
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace


def log_request_info(request: Request):
    """Log the request info, with credentials and session ids redacted."""
    request_info = {
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params.items()),
        "path_params": dict(request.path_params.items()),
        "headers": {k: ("***" if k.lower() in REDACTED_HEADERS else v) for k, v in request.headers.items()},
        "client": str(request.client),
    }
    logger.debug("Request received", http_request=request_info)


def log_response_info(response: Response):
    """Log the response info."""
    response_info = {
        "status_code": response.status_code,
        "headers": dict(response.headers.items()),
    }
    logger.debug("Response sent", http_response=response_info)
