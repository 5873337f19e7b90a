"""Configuration models using Pydantic."""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Global action engine configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="UI_ACTIONS_",
        case_sensitive=False,
        validate_assignment=True,
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        pattern="^(json|plain)$",
        description="Log format (json, plain)"
    )

    # Confirmation
    auto_confirm: bool = Field(
        default=False,
        description="Proceed with confirmable actions when no confirm handler is set"
    )

    # Feedback
    default_success_message: str = Field(
        default="Action completed successfully",
        description="Toast message used when an action has no successMessage"
    )

    # API dispatcher
    api_base_url: Optional[str] = Field(
        default=None,
        description="Base URL joined onto relative API endpoints"
    )
    api_timeout: float = Field(
        default=30,
        ge=1,
        le=300,
        description="Per-request timeout for API actions in seconds"
    )

    # Dispatch
    action_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        le=3600,
        description="Upper bound on a single dispatch in seconds (None disables)"
    )
    allowed_url_schemes: List[str] = Field(
        default_factory=lambda: ["http", "https"],
        description="URL schemes accepted by url and navigation actions"
    )

    # Metrics configuration
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics for executed actions"
    )
