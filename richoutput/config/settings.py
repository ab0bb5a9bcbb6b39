"""
Settings access for richoutput.

Provides a cached settings instance and logging setup.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache

from .schemas import DEFAULT_MIME_TYPE, AppSettings
from richoutput.messages import DEFAULT_PROTOCOL_VERSION

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("RICHOUTPUT_SERVICE_NAME", "richoutput"),
        debug=os.getenv("RICHOUTPUT_DEBUG", "false").lower() == "true",
        # Logging
        log_level=os.getenv("RICHOUTPUT_LOG_LEVEL", "INFO"),
        # Rendering
        mime_type=os.getenv("RICHOUTPUT_MIME_TYPE", DEFAULT_MIME_TYPE),
        renderer_rank=int(os.getenv("RICHOUTPUT_RENDERER_RANK", "-100")),
        # Kernel messaging
        protocol_version=os.getenv("RICHOUTPUT_PROTOCOL_VERSION", DEFAULT_PROTOCOL_VERSION),
    )


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    get_settings.cache_clear()


def configure_logging(settings: AppSettings | None = None) -> None:
    """
    Configure root logging from settings.

    Debug mode forces DEBUG level regardless of log_level.
    """
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=settings.log_format)
    logger.debug(f"Logging configured at {logging.getLevelName(level)}")
