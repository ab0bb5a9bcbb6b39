"""
Kernel Comm Host for richoutput.

Implements the CommHost protocol on top of a KernelConnection:

- Outbound: builds comm_open / comm_msg / comm_close shell requests
- Inbound: feeds the kernel's IOPub stream into a CommDispatcher

The dispatcher is scoped to one kernel. When the session's kernel
changes, the host drops the old IOPub subscription and starts over with
an empty dispatcher, discarding every channel and target of the old one.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from richoutput.comms.dispatcher import CommDispatcher
from richoutput.comms.errors import KernelNotConnectedError
from richoutput.comms.protocol import (
    CommCloseListener,
    CommMessage,
    CommMessageListener,
    CommOpenListener,
    Disposer,
)
from richoutput.config import get_settings
from richoutput.messages import COMM_CLOSE, COMM_MSG, COMM_OPEN, create_message

if TYPE_CHECKING:
    from richoutput.messages import KernelMessage

    from .connection import KernelConnection
    from .session import KernelSession

logger = logging.getLogger(__name__)


def _ignore_target_callback(*args: Any) -> None:
    # Comm opens are delivered through IOPub, not the target callback
    pass


class KernelCommHost:
    """
    CommHost backed by a live kernel connection.

    Example:
        host = KernelCommHost()
        host.attach_session(session)

        context = RenderContext(host)
        comm = await context.wrapper.comms.open("my_target")
    """

    def __init__(
        self,
        kernel: KernelConnection | None = None,
        *,
        protocol_version: str | None = None,
    ):
        """
        Initialize the host.

        Args:
            kernel: Kernel to attach immediately (optional)
            protocol_version: Messaging protocol version; defaults to settings
        """
        self._protocol_version = protocol_version or get_settings().protocol_version
        self._kernel: KernelConnection | None = None
        self._dispatcher = CommDispatcher()
        self._iopub_dispose: Disposer | None = None
        self._session_dispose: Disposer | None = None

        if kernel is not None:
            self.handle_kernel_changed(None, kernel)

    @property
    def kernel(self) -> KernelConnection | None:
        return self._kernel

    @property
    def dispatcher(self) -> CommDispatcher:
        return self._dispatcher

    @property
    def is_connected(self) -> bool:
        return self._kernel is not None

    # ==================== Session binding ====================

    def attach_session(self, session: KernelSession) -> None:
        """
        Follow a session's kernel changes.

        The session's current kernel, if any, is attached right away.
        """
        self.detach_session()
        self._session_dispose = session.kernel_changed(self.handle_kernel_changed)
        if session.kernel is not None:
            self.handle_kernel_changed(None, session.kernel)

    def detach_session(self) -> None:
        """Stop following the current session, if any."""
        if self._session_dispose is not None:
            self._session_dispose()
            self._session_dispose = None

    def handle_kernel_changed(
        self,
        old: KernelConnection | None,
        new: KernelConnection | None,
    ) -> None:
        """Rebind to a new kernel, discarding all comm state of the old one."""
        if self._iopub_dispose is not None:
            self._iopub_dispose()
            self._iopub_dispose = None

        self._dispatcher.clear()
        self._dispatcher = CommDispatcher()
        self._kernel = new

        if new is not None:
            self._iopub_dispose = new.connect_iopub(self.handle_iopub_message)
        logger.info(f"Comm host bound to kernel: {new!r}")

    def handle_iopub_message(self, msg: Any) -> int:
        """Route one IOPub message through the current dispatcher."""
        if logger.isEnabledFor(logging.DEBUG):
            header = msg.get("header")
            msg_type = header.get("msg_type") if isinstance(header, dict) else None
            logger.debug(f"Received IOPub message: {msg_type}")
        return self._dispatcher.handle_iopub_message(msg)

    def dispose(self) -> None:
        """Detach from the session and kernel and drop all comm state."""
        self.detach_session()
        self.handle_kernel_changed(self._kernel, None)

    # ==================== CommHost: listeners ====================

    def add_message_listener(
        self,
        comm_id: str,
        handler: CommMessageListener,
    ) -> Disposer:
        return self._dispatcher.add_message_listener(comm_id, handler)

    def add_close_listener(
        self,
        comm_id: str,
        handler: CommCloseListener,
    ) -> Disposer:
        return self._dispatcher.add_close_listener(comm_id, handler)

    def register_target(
        self,
        target_name: str,
        handler: CommOpenListener,
    ) -> Disposer:
        """
        Register a handler for kernel-initiated comms on target_name.

        The target is also registered with the kernel connection so the
        kernel side accepts the comm; delivery still comes through IOPub.
        """
        if self._kernel is not None:
            self._kernel.register_comm_target(target_name, _ignore_target_callback)
        return self._dispatcher.add_open_listener(target_name, handler)

    # ==================== CommHost: sends ====================

    async def send_comm_open(
        self,
        target_name: str,
        comm_id: str,
        message: CommMessage,
    ) -> None:
        await self._send(
            comm_id,
            COMM_OPEN,
            {"comm_id": comm_id, "data": message.data, "target_name": target_name},
            message.buffers,
        )

    async def send_comm_message(self, comm_id: str, message: CommMessage) -> None:
        await self._send(
            comm_id,
            COMM_MSG,
            {"comm_id": comm_id, "data": message.data},
            message.buffers,
        )

    async def send_comm_close(self, comm_id: str) -> None:
        await self._send(comm_id, COMM_CLOSE, {"comm_id": comm_id, "data": {}})

    async def _send(
        self,
        comm_id: str,
        msg_type: str,
        content: dict[str, Any],
        buffers: tuple[bytes, ...] = (),
    ) -> None:
        kernel = self._kernel
        if kernel is None:
            raise KernelNotConnectedError(comm_id, f"Cannot send {msg_type}: no kernel attached")

        msg: KernelMessage = create_message(
            msg_type,
            channel="shell",
            username=kernel.username,
            session=kernel.client_id,
            content=content,
            buffers=buffers,
            version=self._protocol_version,
        )
        logger.debug(f"Sending {msg_type} for comm {comm_id}")
        await kernel.send_shell_message(msg)
