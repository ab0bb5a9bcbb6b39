"""
Comm Dispatcher for richoutput.

Single entry point for every inbound IOPub notification. Demultiplexes
comm_open by target name and comm_msg/comm_close by comm id, then fans
each notification out to the listeners currently registered for that key.

The dispatcher does not buffer. A notification nobody listens to is
dropped; buffering for late consumers is the channel's job once it has
subscribed itself here.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from richoutput.messages import (
    COMM_CLOSE,
    COMM_MSG,
    COMM_OPEN,
    CommCloseContent,
    CommMsgContent,
    CommOpenContent,
    convert_buffer,
)

from .listeners import ListenerList
from .protocol import (
    CommCloseListener,
    CommMessage,
    CommMessageListener,
    CommOpenListener,
    Disposer,
)

logger = logging.getLogger(__name__)


class CommDispatcher:
    """
    Routing tables for comm notifications.

    Three independent tables:
    - comm_id -> message listeners
    - comm_id -> close listeners
    - target_name -> open listeners

    Registration returns a disposer; disposing twice is harmless, and
    disposing from inside a dispatch never disturbs sibling listeners.

    One dispatcher serves one kernel. The owning host replaces it when
    the kernel changes, discarding all prior comm state.

    Example:
        dispatcher = CommDispatcher()
        dispose = dispatcher.add_message_listener("c1", print)
        dispatcher.dispatch_message("c1", CommMessage(data="hi"))
        dispose()
    """

    def __init__(self) -> None:
        self._message_listeners: dict[str, ListenerList[CommMessageListener]] = {}
        self._close_listeners: dict[str, ListenerList[CommCloseListener]] = {}
        self._open_listeners: dict[str, ListenerList[CommOpenListener]] = {}

    # ==================== Registration ====================

    def add_message_listener(
        self,
        comm_id: str,
        handler: CommMessageListener,
    ) -> Disposer:
        """Register a handler for comm_msg notifications on comm_id."""
        return self._add(self._message_listeners, comm_id, handler)

    def add_close_listener(
        self,
        comm_id: str,
        handler: CommCloseListener,
    ) -> Disposer:
        """Register a handler for comm_close notifications on comm_id."""
        return self._add(self._close_listeners, comm_id, handler)

    def add_open_listener(
        self,
        target_name: str,
        handler: CommOpenListener,
    ) -> Disposer:
        """Register a handler for every future comm_open under target_name."""
        return self._add(self._open_listeners, target_name, handler)

    def _add(
        self,
        table: dict[str, ListenerList[Any]],
        key: str,
        handler: Any,
    ) -> Disposer:
        listeners = table.get(key)
        if listeners is None:
            listeners = ListenerList(name=key)
            table[key] = listeners
        remove = listeners.add(handler)

        def dispose() -> None:
            remove()
            # Drop the empty entry unless a newer list has replaced it
            if not listeners and table.get(key) is listeners:
                del table[key]

        return dispose

    def has_listeners(self, comm_id: str) -> bool:
        """Check whether any message or close listener exists for comm_id."""
        return comm_id in self._message_listeners or comm_id in self._close_listeners

    def has_target(self, target_name: str) -> bool:
        """Check whether any open listener exists for target_name."""
        return target_name in self._open_listeners

    @property
    def registered_targets(self) -> list[str]:
        """Target names with at least one open listener."""
        return list(self._open_listeners.keys())

    def clear(self) -> None:
        """Discard every routing entry."""
        for table in (self._message_listeners, self._close_listeners, self._open_listeners):
            for listeners in table.values():
                listeners.clear()
            table.clear()
        logger.debug("Cleared comm routing tables")

    # ==================== Dispatch ====================

    def dispatch_open(self, target_name: str, comm_id: str, message: CommMessage) -> int:
        """
        Fan a kernel-initiated comm_open out to the target's handlers.

        Returns:
            Number of handlers invoked (0 means the open was dropped)
        """
        listeners = self._open_listeners.get(target_name)
        if listeners is None:
            logger.debug(f"Dropped comm_open for unregistered target: {target_name}")
            return 0
        return listeners.emit(comm_id, message)

    def dispatch_message(self, comm_id: str, message: CommMessage) -> int:
        """
        Fan a comm_msg out to the comm's message handlers.

        Returns:
            Number of handlers invoked (0 means the message was dropped)
        """
        listeners = self._message_listeners.get(comm_id)
        if listeners is None:
            logger.debug(f"Dropped comm_msg for unknown comm: {comm_id}")
            return 0
        return listeners.emit(message)

    def dispatch_close(self, comm_id: str) -> int:
        """
        Fan a comm_close out to the comm's close handlers.

        Returns:
            Number of handlers invoked (0 means the close was dropped)
        """
        listeners = self._close_listeners.get(comm_id)
        if listeners is None:
            logger.debug(f"Dropped comm_close for unknown comm: {comm_id}")
            return 0
        return listeners.emit()

    def handle_iopub_message(self, msg: Mapping[str, Any]) -> int:
        """
        Route a raw IOPub message.

        Non-comm message types and messages without a header mapping are
        ignored. Comm messages whose content or buffers fail validation
        are logged and dropped.

        Args:
            msg: Jupyter message dict with header, content and buffers

        Returns:
            Number of handlers invoked
        """
        header = msg.get("header")
        msg_type = header.get("msg_type") if isinstance(header, Mapping) else None
        content = msg.get("content") or {}

        try:
            if msg_type == COMM_OPEN:
                open_content = CommOpenContent.model_validate(content)
                return self.dispatch_open(
                    open_content.target_name,
                    open_content.comm_id,
                    CommMessage(data=open_content.data, buffers=_buffers_of(msg)),
                )
            if msg_type == COMM_MSG:
                msg_content = CommMsgContent.model_validate(content)
                return self.dispatch_message(
                    msg_content.comm_id,
                    CommMessage(data=msg_content.data, buffers=_buffers_of(msg)),
                )
            if msg_type == COMM_CLOSE:
                close_content = CommCloseContent.model_validate(content)
                return self.dispatch_close(close_content.comm_id)
        except (ValidationError, TypeError) as e:
            logger.warning(f"Dropped malformed {msg_type} message: {e}")
        return 0


def _buffers_of(msg: Mapping[str, Any]) -> tuple[bytes, ...]:
    return tuple(convert_buffer(b) for b in msg.get("buffers") or ())
