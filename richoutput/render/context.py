"""
Render Context for richoutput.

The capability object handed to untrusted rendering modules. It exposes
only "open a comm" and "register a target"; the comm host, the
dispatcher and the channels behind the handles stay out of reach.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence
from uuid import uuid4

from richoutput.comms.channel import CommChannel, CommHandle, CommState

if TYPE_CHECKING:
    from richoutput.comms.protocol import CommHost, CommMessage

logger = logging.getLogger(__name__)

TargetCallback = Callable[..., None]


@dataclass(frozen=True, slots=True)
class CommsHandle:
    """Restricted comm surface exposed to rendering code."""

    open: Callable[..., Awaitable[CommHandle]]
    register_target: Callable[[str, TargetCallback], None]


@dataclass(frozen=True, slots=True)
class ContextHandle:
    """
    What a rendering module receives as its context.

    comms is None when no kernel session is available.
    """

    comms: CommsHandle | None = None


class Comms:
    """Opens and accepts comm channels on behalf of rendering code."""

    def __init__(self, host: CommHost):
        self._host = host

    async def open(
        self,
        target_name: str,
        data: Any = None,
        buffers: Sequence[bytes] | None = None,
    ) -> CommHandle:
        """
        Open a new comm channel to the kernel.

        The kernel must have registered a comm target named target_name.

        Raises:
            CommOpenError: If the kernel could not be asked to open the comm
        """
        channel = CommChannel(str(uuid4()), self._host)
        await channel.open(target_name, data, buffers)
        return channel.get_wrapper()

    def register_target(self, target_name: str, callback: TargetCallback) -> None:
        """
        Accept comm channels opened by the kernel under target_name.

        callback(comm, data, buffers) runs once per kernel-initiated open.
        """

        def handle_open(comm_id: str, message: CommMessage) -> None:
            channel = CommChannel(comm_id, self._host, state=CommState.OPEN)
            logger.debug(f"Kernel opened comm {comm_id} on target {target_name}")
            callback(channel.get_wrapper(), message.data, list(message.buffers))

        self._host.register_target(target_name, handle_open)

    @property
    def wrapper(self) -> CommsHandle:
        comms = self

        async def open(
            target_name: str,
            data: Any = None,
            buffers: Sequence[bytes] | None = None,
        ) -> CommHandle:
            return await comms.open(target_name, data, buffers)

        def register_target(target_name: str, callback: TargetCallback) -> None:
            comms.register_target(target_name, callback)

        return CommsHandle(open=open, register_target=register_target)


class RenderContext:
    """
    Per-render capability factory.

    Example:
        context = RenderContext(host)
        await module.render(output, element, context.wrapper)
    """

    def __init__(self, host: CommHost | None = None):
        self._host = host

    @property
    def comms(self) -> CommsHandle | None:
        if self._host is None:
            return None
        return Comms(self._host).wrapper

    @property
    def wrapper(self) -> ContextHandle:
        """Return a handle which hides the implementation details from clients."""
        return ContextHandle(comms=self.comms)
