"""
Comm Channel for richoutput.

A CommChannel is one addressable, bidirectional link between rendering
code and the kernel. It subscribes itself to the host's dispatcher on
construction and owns:

- the consumer message listeners
- the consumer close listeners
- a buffer of messages that arrived before any message listener existed

Message arrival (driven by IOPub) and consumer attachment (driven by
asynchronous module loading) are not ordered relative to each other, so
messages received before the first on_message() call are held and
replayed to the next listener that attaches.

State machine:
    UNOPENED --open()--> OPEN --close()/remote close--> CLOSED
    UNOPENED --open() fails--> CLOSED
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

from .errors import CommOpenError, CommSendError, CommStateError
from .listeners import ListenerList, invoke_listener
from .protocol import CommCloseListener, CommMessage, CommMessageListener, Disposer

if TYPE_CHECKING:
    from .protocol import CommHost

logger = logging.getLogger(__name__)

# Close notifications in flight; referenced here so they are not collected
_pending_closes: set[asyncio.Task[None]] = set()


class CommState(Enum):
    """Lifecycle states of a comm channel."""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


def _noop() -> None:
    pass


class CommChannel:
    """
    Stateful comm channel bound to a CommHost.

    Locally initiated channels start UNOPENED and must be opened.
    Channels created for a kernel-initiated comm_open start OPEN.

    Listener exceptions are logged and do not stop delivery to the
    remaining listeners, during dispatch and buffer replay alike.

    Example:
        channel = CommChannel(str(uuid4()), host)
        await channel.open("my_target", {"hello": "kernel"})
        dispose = channel.on_message(lambda msg: print(msg.data))
        await channel.send({"ping": 1})
        channel.close()
    """

    def __init__(
        self,
        comm_id: str,
        host: CommHost,
        *,
        state: CommState = CommState.UNOPENED,
    ):
        self._comm_id = comm_id
        self._host = host
        self._state = state

        self._message_listeners: ListenerList[CommMessageListener] = ListenerList(
            name=f"comm {comm_id} message"
        )
        self._close_listeners: ListenerList[CommCloseListener] = ListenerList(
            name=f"comm {comm_id} close"
        )
        self._buffered_messages: list[CommMessage] = []
        self._opening = False
        self._close_requested = False

        self._message_dispose: Disposer = host.add_message_listener(
            comm_id, self._handle_message
        )
        self._close_dispose: Disposer = host.add_close_listener(
            comm_id, self._handle_remote_close
        )

    @property
    def comm_id(self) -> str:
        return self._comm_id

    @property
    def state(self) -> CommState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is CommState.OPEN

    @property
    def is_closed(self) -> bool:
        return self._state is CommState.CLOSED

    @property
    def buffered_count(self) -> int:
        """Number of messages waiting for a listener."""
        return len(self._buffered_messages)

    # ==================== Outbound ====================

    async def open(
        self,
        target_name: str,
        data: Any = None,
        buffers: Sequence[bytes] | None = None,
    ) -> None:
        """
        Send a comm_open to the kernel.

        Args:
            target_name: Target the kernel registered for this comm
            data: Data sent with the open request
            buffers: Binary buffers sent with the open request

        Raises:
            CommStateError: If the channel is not UNOPENED, or was closed
                while the request was in flight (a local close then sends
                the comm_close once the open is acknowledged)
            CommOpenError: If the transport rejected the request; the
                channel is CLOSED and its subscriptions released
        """
        if self._state is not CommState.UNOPENED:
            raise CommStateError(
                self._comm_id, f"Cannot open a comm in state {self._state.value}"
            )

        self._opening = True
        try:
            await self._host.send_comm_open(
                target_name, self._comm_id, CommMessage.create(data, buffers)
            )
        except Exception as e:
            # Never acknowledged by the kernel, so tear down without a close
            self._teardown()
            raise CommOpenError(
                self._comm_id, f"Failed to open comm on target '{target_name}': {e}"
            ) from e
        finally:
            self._opening = False

        if self._state is CommState.CLOSED:
            # Closed while the open was in flight; the kernel now holds the comm
            if self._close_requested:
                await self._send_close()
            raise CommStateError(self._comm_id, "Comm was closed before its open completed")

        self._state = CommState.OPEN
        logger.debug(f"Opened comm {self._comm_id} on target {target_name}")

    async def send(
        self,
        data: Any,
        *,
        buffers: Sequence[bytes] | None = None,
    ) -> None:
        """
        Send a comm_msg to the kernel.

        Raises:
            CommStateError: If the channel is not OPEN
            CommSendError: If the transport rejected the message; the
                channel stays OPEN
        """
        if self._state is not CommState.OPEN:
            raise CommStateError(
                self._comm_id, f"Cannot send on a comm in state {self._state.value}"
            )

        try:
            await self._host.send_comm_message(
                self._comm_id, CommMessage.create(data, buffers)
            )
        except Exception as e:
            raise CommSendError(self._comm_id, f"Failed to send comm message: {e}") from e

    def close(self) -> asyncio.Task[None] | None:
        """
        Close the channel.

        Local teardown happens immediately: close listeners run once and
        dispatcher subscriptions are released. If the channel was OPEN, a
        comm_close is scheduled on the running loop; its failure is only
        logged. Closing an already closed channel does nothing.

        Returns:
            The task sending the comm_close, or None if nothing was sent
        """
        if self._state is CommState.CLOSED:
            return None

        was_open = self._state is CommState.OPEN
        # open() sends the comm_close itself once the kernel has the comm
        self._close_requested = self._opening
        self._teardown()

        if not was_open:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, comm_close for {self._comm_id} not sent")
            return None

        task = loop.create_task(self._send_close(), name=f"comm_close_{self._comm_id}")
        _pending_closes.add(task)
        task.add_done_callback(_pending_closes.discard)
        return task

    async def _send_close(self) -> None:
        try:
            await self._host.send_comm_close(self._comm_id)
        except Exception as e:
            # Close is best-effort cleanup; assume closed
            logger.warning(f"Error closing comm channel {self._comm_id}: {e}", exc_info=True)

    # ==================== Consumer listeners ====================

    def on_message(self, callback: CommMessageListener) -> Disposer:
        """
        Register a message callback.

        Any buffered messages are delivered to this callback right away,
        in arrival order, and the buffer is cleared.

        Returns:
            Disposer removing exactly this callback
        """
        if self._state is CommState.CLOSED:
            logger.debug(f"Ignoring message listener on closed comm {self._comm_id}")
            return _noop

        dispose = self._message_listeners.add(callback)

        # The disposer is only handed out after replay, so closing is the
        # one way a callback can end its own replay early
        if self._buffered_messages:
            pending = self._buffered_messages
            self._buffered_messages = []
            for message in pending:
                if self._state is CommState.CLOSED:
                    break
                invoke_listener(callback, message, source=f"comm {self._comm_id} replay")

        return dispose

    def on_close(self, callback: CommCloseListener) -> Disposer:
        """
        Register a callback invoked once when the channel closes.

        Returns:
            Disposer removing exactly this callback
        """
        if self._state is CommState.CLOSED:
            logger.debug(f"Ignoring close listener on closed comm {self._comm_id}")
            return _noop
        return self._close_listeners.add(callback)

    # ==================== Inbound ====================

    def _handle_message(self, message: CommMessage) -> None:
        if self._state is CommState.CLOSED:
            return
        if self._message_listeners:
            self._message_listeners.emit(message)
        else:
            self._buffered_messages.append(message)

    def _handle_remote_close(self) -> None:
        if self._state is CommState.CLOSED:
            return
        logger.debug(f"Comm {self._comm_id} closed by kernel")
        self._teardown()

    def _teardown(self) -> None:
        """Mark CLOSED, notify close listeners once, release every subscription."""
        self._state = CommState.CLOSED
        self._message_dispose()
        self._close_dispose()

        self._close_listeners.emit()

        self._close_listeners.clear()
        self._message_listeners.clear()
        self._buffered_messages.clear()

    # ==================== Capability wrapper ====================

    def get_wrapper(self) -> CommHandle:
        """Return a handle that hides the channel from user code."""
        channel = self

        async def send(data: Any, *, buffers: Sequence[bytes] | None = None) -> None:
            await channel.send(data, buffers=buffers)

        def on_message(callback: CommMessageListener) -> Disposer:
            return channel.on_message(callback)

        def on_close(callback: CommCloseListener) -> Disposer:
            return channel.on_close(callback)

        def close() -> None:
            channel.close()

        return CommHandle(send=send, on_message=on_message, on_close=on_close, close=close)

    def __repr__(self) -> str:
        return f"CommChannel(comm_id={self._comm_id!r}, state={self._state.value})"


@dataclass(frozen=True, slots=True)
class CommHandle:
    """
    Restricted view of a CommChannel handed to rendering code.

    Only the four consumer operations are reachable; the channel, its
    host and the dispatcher are not.
    """

    send: Callable[..., Awaitable[None]]
    on_message: Callable[[CommMessageListener], Disposer]
    on_close: Callable[[CommCloseListener], Disposer]
    close: Callable[[], None]
