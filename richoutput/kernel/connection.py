"""
Kernel Connection Protocol for richoutput.

The comm host talks to the kernel through this interface. Implementations
own sockets, serialization and signing; the comm layer only needs to send
shell requests, subscribe to IOPub and register comm targets.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from richoutput.comms.protocol import Disposer
from richoutput.messages import KernelMessage

IOPubHandler = Callable[[Mapping[str, Any]], None]


@runtime_checkable
class KernelConnection(Protocol):
    """
    A live connection to one kernel.

    Example implementation:
        class ZMQKernelConnection:
            username = "user"
            client_id = "0b1c..."

            def connect_iopub(self, handler):
                self._iopub_handlers.append(handler)
                return lambda: self._iopub_handlers.remove(handler)

            def register_comm_target(self, target_name, callback):
                self._targets[target_name] = callback

            async def send_shell_message(self, msg):
                await self._shell.send(msg)
                await self._wait_for_reply(msg.header.msg_id)
    """

    @property
    def username(self) -> str:
        """Username placed in outgoing message headers."""
        ...

    @property
    def client_id(self) -> str:
        """Client session id placed in outgoing message headers."""
        ...

    def connect_iopub(self, handler: IOPubHandler) -> Disposer:
        """Subscribe to every IOPub message; returns an unsubscribe callback."""
        ...

    def register_comm_target(
        self,
        target_name: str,
        callback: Callable[..., Any],
    ) -> None:
        """Tell the kernel connection that comms for target_name are expected."""
        ...

    async def send_shell_message(self, msg: KernelMessage) -> None:
        """
        Send a shell request.

        Resolves once the kernel has finished handling the request and
        raises if the request failed or the connection is gone.
        """
        ...
