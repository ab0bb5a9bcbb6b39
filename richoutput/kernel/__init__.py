"""
richoutput Kernel Binding.

Connects the comm layer to a live kernel.

Core Components:
- KernelConnection: Protocol for a connection to one kernel
- KernelSession: Current kernel of a document, with change notifications
- KernelCommHost: CommHost implementation over a KernelConnection
"""

from .connection import IOPubHandler, KernelConnection
from .host import KernelCommHost
from .session import KernelSession

__all__ = [
    "IOPubHandler",
    "KernelCommHost",
    "KernelConnection",
    "KernelSession",
]
