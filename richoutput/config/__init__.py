"""
richoutput Configuration

Environment-driven settings and logging setup.
"""

from .schemas import DEFAULT_MIME_TYPE, AppSettings
from .settings import configure_logging, get_settings, reset_settings

__all__ = [
    "AppSettings",
    "DEFAULT_MIME_TYPE",
    "configure_logging",
    "get_settings",
    "reset_settings",
]
