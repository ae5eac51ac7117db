"""Settings for the Especificação dashboard API."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the Especificação dashboard API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads,
    validates and types configuration values from a variety of sources.

    This class automatically reads from:
    1. Environment variables (production)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    # Upstream specification REST API
    upstream_api_url: str
    """Base URL of the specification REST API (e.g. https://especificacao.example.com)."""

    request_timeout_seconds: float = 30.0
    """Timeout applied to every upstream HTTP call."""

    # Logging
    log_level: str = "INFO"
    """Minimum level for the stdout sink."""

    enable_file_logging: bool = False
    """Also write logs to a rotating file."""

    log_file_path: str = "logs/espec_api.log"
    """Path of the rotating log file (used when enable_file_logging is true)."""

    log_rotation: str = "10 MB"
    """Loguru rotation policy for the log file."""

    # Listing views
    pending_page_size: int = 5
    """Page size of the pending projects view."""

    approved_page_size: int = 10
    """Page size of the approved projects view."""

    rejected_page_size: int = 10
    """Page size of the rejected projects view."""

    environments_page_size: int = 10
    """Page size of the environment editor and project creation lists."""

    # Workflow
    default_rejection_reason: str = "Item reprovado sem observações específicas"
    """Reason sent when a material is rejected without a note."""

    suggestion_material_limit: int = 2000
    """Upper bound of materials scanned when building description suggestions."""

    # Home dashboard
    monthly_stats_window: int = 9
    """Number of most recent months returned by the monthly stats view."""

    recent_logs_limit: int = 5
    """Number of log entries shown on the home dashboard."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )

    @field_validator("upstream_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the upstream URL so paths can be appended directly."""
        if not v or not v.strip():
            raise ValueError("upstream_api_url cannot be empty")
        return v.strip().rstrip("/")

    @field_validator(
        "pending_page_size",
        "approved_page_size",
        "rejected_page_size",
        "environments_page_size",
        "monthly_stats_window",
        "recent_logs_limit",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate that sizes are greater than 0."""
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    def page_size_for(self, status: Optional[str]) -> int:
        """Return the listing page size configured for a project status view."""
        sizes = {
            "PENDING": self.pending_page_size,
            "APPROVED": self.approved_page_size,
            "REJECTED": self.rejected_page_size,
        }
        return sizes.get((status or "").upper(), self.approved_page_size)
