"""Pydantic configuration schema for funcbridge."""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AdapterConfig(BaseModel):
    """Configuration of one platform adapter."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False, description="Whether adapter is registered")
    strip_base_path: str = Field(
        default="", description="Literal path prefix removed before routing"
    )


class AdaptersConfig(BaseModel):
    """Adapters section. Order of fields is the dispatch order."""

    model_config = ConfigDict(extra="forbid")

    digital_ocean: AdapterConfig = Field(
        default_factory=lambda: AdapterConfig(enabled=True)
    )
    aws_api_gateway: AdapterConfig = Field(default_factory=AdapterConfig)


class LoggingConfig(BaseModel):
    """Logging section."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Root log level")
    pretty: bool = Field(default=False, description="Indented JSON output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate that the level is a standard logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class FuncbridgeConfig(BaseModel):
    """Top-level configuration schema, loaded from config.yaml."""

    model_config = ConfigDict(extra="forbid")

    handler: str = Field(..., description="Import path of the handler (module:attribute)")
    respond_with_errors: bool = Field(
        default=False, description="Expose error tracebacks in 500 responses"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    adapters: AdaptersConfig = Field(default_factory=AdaptersConfig)

    @field_validator("handler")
    @classmethod
    def validate_handler(cls, v: str) -> str:
        """Validate that handler looks like 'package.module:attribute'."""
        module_name, sep, attribute = v.partition(":")
        if not sep or not module_name.strip() or not attribute.strip():
            raise ValueError("handler must use the form 'module:attribute'")
        return v.strip()
