"""
Comm Host Protocol for richoutput.

Defines the interface a channel needs from whatever owns the kernel
connection: three listener registrations fed by the IOPub stream and
three send primitives that await the shell reply.

Any object with these methods can back a CommChannel; the kernel-backed
implementation lives in richoutput.kernel.host.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

Disposer = Callable[[], None]
CommMessageListener = Callable[["CommMessage"], None]
CommCloseListener = Callable[[], None]
CommOpenListener = Callable[[str, "CommMessage"], None]


@dataclass(frozen=True, slots=True)
class CommMessage:
    """
    A single comm payload.

    Attributes:
        data: JSON-like structured data
        buffers: Binary blocks sent alongside the data, order significant
    """

    data: Any = None
    buffers: tuple[bytes, ...] = ()

    @classmethod
    def create(
        cls,
        data: Any = None,
        buffers: Sequence[bytes] | None = None,
    ) -> CommMessage:
        """Build a message, normalising an absent buffer list to empty."""
        return cls(data=data, buffers=tuple(buffers or ()))


@runtime_checkable
class CommHost(Protocol):
    """
    Owner of the kernel connection, as seen by a CommChannel.

    Inbound traffic arrives through handlers registered with the
    add_* methods; every registration returns a disposer that removes it.
    Outbound traffic goes through the send_* coroutines, which resolve
    when the kernel has acknowledged the request and raise on failure.
    """

    def add_message_listener(
        self,
        comm_id: str,
        handler: CommMessageListener,
    ) -> Disposer:
        """Subscribe to comm_msg notifications for one comm id."""
        ...

    def add_close_listener(
        self,
        comm_id: str,
        handler: CommCloseListener,
    ) -> Disposer:
        """Subscribe to comm_close notifications for one comm id."""
        ...

    def register_target(
        self,
        target_name: str,
        handler: CommOpenListener,
    ) -> Disposer:
        """Subscribe to kernel-initiated comm_open notifications for a target."""
        ...

    async def send_comm_open(
        self,
        target_name: str,
        comm_id: str,
        message: CommMessage,
    ) -> None:
        """Ask the kernel to open a comm under target_name."""
        ...

    async def send_comm_message(self, comm_id: str, message: CommMessage) -> None:
        """Send a message on an open comm."""
        ...

    async def send_comm_close(self, comm_id: str) -> None:
        """Tell the kernel a comm has been closed."""
        ...
