"""
Kernel Session for richoutput.

Tracks which kernel a document is currently bound to and notifies
subscribers when that changes (restart, kernel switch, shutdown).
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from richoutput.comms.listeners import ListenerList
from richoutput.comms.protocol import Disposer

if TYPE_CHECKING:
    from .connection import KernelConnection

logger = logging.getLogger(__name__)

KernelChangedListener = Callable[
    [Optional["KernelConnection"], Optional["KernelConnection"]], None
]


class KernelSession:
    """
    The kernel binding of one document.

    Example:
        session = KernelSession()
        session.kernel_changed(lambda old, new: print(old, "->", new))
        session.change_kernel(connection)
    """

    def __init__(self, kernel: KernelConnection | None = None) -> None:
        self._kernel = kernel
        self._listeners: ListenerList[KernelChangedListener] = ListenerList(
            name="kernel changed"
        )

    @property
    def kernel(self) -> KernelConnection | None:
        return self._kernel

    def kernel_changed(self, listener: KernelChangedListener) -> Disposer:
        """Subscribe to kernel changes; the listener receives (old, new)."""
        return self._listeners.add(listener)

    def change_kernel(self, kernel: KernelConnection | None) -> None:
        """Bind a new kernel (or None on shutdown) and notify subscribers."""
        old = self._kernel
        if old is kernel:
            return
        self._kernel = kernel
        logger.info(f"Kernel changed: {old!r} -> {kernel!r}")
        self._listeners.emit(old, kernel)

    def dispose(self) -> None:
        """Drop every subscriber."""
        self._listeners.clear()
