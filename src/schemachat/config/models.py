# src/schemachat/config/models.py
"""
Pydantic models for schemachat configuration.

``ContextConfig`` is consumed by every ``ChatContext`` at construction and
request-build time. ``ClientSettings`` is the validated form of the layered
configuration produced by :func:`schemachat.config.loader.load_settings`.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ContextConfig(BaseModel):
    """
    Per-context behaviour switches and request defaults.

    ``default_max_tokens``/``default_temperature`` only fill fields that are
    still absent after template and custom parameters are applied.
    ``custom_parameters`` are set on every new context as initial parameters
    (validated like any other ``set_parameter`` call).
    """

    enable_streaming_support: bool = Field(False, description="Whether streaming sends are expected")
    enable_validation: bool = Field(True, description="Validate models, roles and parameters against the schema")
    enable_caching: bool = Field(True, description="Allow the factory to reuse parsed schemas")
    default_max_tokens: int | None = Field(None, description="max_tokens applied when the request lacks one")
    default_temperature: float | None = Field(None, description="temperature applied when the request lacks one")
    custom_parameters: dict[str, Any] = Field(default_factory=dict, description="Initial provider parameters")

    model_config = {"extra": "forbid"}


class ClientSettings(BaseModel):
    """Top-level settings for building clients from configuration."""

    schema_directory: str | None = Field(
        None, description="Directory holding <provider>.json schemas (None: bundled schemas)"
    )
    timeout: float = Field(30.0, description="Transport timeout in seconds")
    max_retries: int = Field(3, description="Retry budget recorded on clients (not applied by send)")
    log_level: str = Field("INFO", description="Level for the 'schemachat' logger")
    rc_file: str | None = Field(None, description="KEY=VALUE file consulted for API keys")
    context: ContextConfig = Field(default_factory=ContextConfig)

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("max_retries")
    @classmethod
    def check_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries cannot be negative")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level
