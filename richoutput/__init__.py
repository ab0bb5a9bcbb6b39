"""
richoutput - Rich output rendering with kernel comm channels.

Renders user-supplied output modules and gives them a narrow channel for
bidirectional communication with the kernel:

- **Comm Channels**: Open/send/close with buffering for late listeners
- **Dispatcher**: IOPub notifications routed by comm id and target name
- **Render Context**: Capability surface handed to untrusted modules
- **Kernel Binding**: Shell message construction and kernel-change handling

Quick Start:
    >>> from richoutput import KernelCommHost, RendererFactory, OutputModel
    >>>
    >>> host = KernelCommHost(kernel_connection)
    >>> renderer = RendererFactory(host).create_renderer()
    >>> await renderer.render_model(OutputModel(data={MIME_TYPE: "my_pkg.widget"}))
"""

__version__ = "0.1.0"
__license__ = "MIT"

from richoutput.comms import CommChannel, CommDispatcher, CommHandle, CommMessage
from richoutput.kernel import KernelCommHost, KernelSession
from richoutput.render import MIME_TYPE, OutputModel, RenderContext, RendererFactory

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Comms
    "CommChannel",
    "CommDispatcher",
    "CommHandle",
    "CommMessage",
    # Kernel
    "KernelCommHost",
    "KernelSession",
    # Rendering
    "MIME_TYPE",
    "OutputModel",
    "RenderContext",
    "RendererFactory",
]
