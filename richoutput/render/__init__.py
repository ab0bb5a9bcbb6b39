"""
richoutput Rendering.

Loads rendering modules for rich outputs and hands them a restricted
RenderContext.
"""

from .context import Comms, CommsHandle, ContextHandle, RenderContext
from .renderer import (
    CLASS_NAME,
    MIME_TYPE,
    OutputElement,
    OutputModel,
    OutputRenderer,
    RendererFactory,
    RenderError,
)

__all__ = [
    # Context
    "Comms",
    "CommsHandle",
    "ContextHandle",
    "RenderContext",
    # Renderer
    "CLASS_NAME",
    "MIME_TYPE",
    "OutputElement",
    "OutputModel",
    "OutputRenderer",
    "RenderError",
    "RendererFactory",
]
