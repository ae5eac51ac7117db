"""espec_api."""

from .monitoring.logger import configure_logger

# Console logging with defaults until create_app applies the configured settings
configure_logger()
