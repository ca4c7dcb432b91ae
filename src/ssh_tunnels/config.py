"""Tunnel manager settings."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common.logging import LOG_LEVELS
from .tunnels.models import DEFAULT_TIMEOUT


class ManagerSettings(BaseModel):
    """File locations and startup behavior of the tunnel manager."""

    model_config = ConfigDict(
        str_strip_whitespace=True, validate_assignment=True, extra="forbid"
    )

    store_path: str = Field(
        default="tunnels.json", min_length=1, description="Tunnel settings file"
    )
    audit_log_path: str = Field(
        default="ssh_tunnel_manager.log", min_length=1, description="Audit log file"
    )
    default_timeout: int = Field(
        default=DEFAULT_TIMEOUT,
        ge=1,
        le=3600,
        description="Connect timeout for new tunnels in seconds",
    )
    auto_connect_on_start: bool = Field(
        default=True, description="Run the auto-connect sweep after loading"
    )
    prompt_for_passwords: bool = Field(
        default=True, description="Ask for missing passwords interactively"
    )
    log_level: str = Field(default="INFO", description="Console log level")
    json_logs: bool = Field(default=False, description="Emit JSON console logs")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(LOG_LEVELS)}")
        return level
