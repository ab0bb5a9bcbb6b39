"""
Configuration Schemas for richoutput.

Pydantic models for settings read from the environment.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from richoutput.messages import DEFAULT_PROTOCOL_VERSION

DEFAULT_MIME_TYPE = "application/vnd.jupyter.es6-rich-output"


class AppSettings(BaseModel):
    """
    Application settings model.

    Used for type-safe settings access. Populated from RICHOUTPUT_*
    environment variables by get_settings().
    """

    # Service identity
    service_name: str = "richoutput"
    debug: bool = False

    # Logging
    log_level: str = Field(default="INFO", description="Root log level name")
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rendering
    mime_type: str = Field(default=DEFAULT_MIME_TYPE, description="Mime type handled by the renderer")
    renderer_rank: int = Field(default=-100, description="Renderer factory rank, lower wins")

    # Kernel messaging
    protocol_version: str = Field(
        default=DEFAULT_PROTOCOL_VERSION, description="Jupyter messaging protocol version"
    )

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()
