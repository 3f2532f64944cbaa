"""
Settings models for deployconf.

Provides type-safe settings using pydantic with validation, defaults, and
schema enforcement.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutputFormat(str, Enum):
    """Output format for normalized documents."""

    YAML = "yaml"
    JSON = "json"


class PolicySettings(BaseModel):
    """Policy injection behaviour."""

    require_audit_sink: bool = Field(
        default=False,
        description="Fail when a resource cannot be wired to an audit log bucket",
    )

    model_config = ConfigDict(extra="forbid")


class Settings(BaseModel):
    """Root settings for deployconf."""

    output_format: OutputFormat = Field(
        default=OutputFormat.YAML,
        description="Serialization of the normalized document",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    policy: PolicySettings = Field(
        default_factory=PolicySettings,
        description="Policy injection settings",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = ConfigDict(extra="forbid", use_enum_values=False)
