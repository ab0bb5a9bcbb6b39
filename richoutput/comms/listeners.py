"""
Listener lists shared by the dispatcher, the channels and the session.

Lists are mutated while they are being iterated: a handler may dispose
itself or a sibling from inside a dispatch. Iteration therefore walks a
snapshot and skips registrations disposed after the snapshot was taken,
so removal never skips or double-invokes a neighbour.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterator, TypeVar

from .protocol import Disposer

logger = logging.getLogger(__name__)

L = TypeVar("L", bound=Callable[..., Any])


class _Registration(Generic[L]):
    __slots__ = ("listener", "active")

    def __init__(self, listener: L):
        self.listener = listener
        self.active = True


class ListenerList(Generic[L]):
    """
    Ordered, re-entrant safe collection of callbacks.

    The same callable may be added more than once; each add returns a
    disposer bound to that one registration.

    Example:
        listeners = ListenerList()
        dispose = listeners.add(print)
        listeners.emit("hello")
        dispose()
        dispose()  # no-op
    """

    def __init__(self, name: str = "listeners") -> None:
        self._name = name
        self._registrations: list[_Registration[L]] = []

    def __len__(self) -> int:
        return len(self._registrations)

    def __bool__(self) -> bool:
        return bool(self._registrations)

    def __iter__(self) -> Iterator[L]:
        for registration in list(self._registrations):
            if registration.active:
                yield registration.listener

    def add(self, listener: L) -> Disposer:
        """
        Append a listener.

        Returns:
            Disposer removing exactly this registration; idempotent
        """
        registration: _Registration[L] = _Registration(listener)
        self._registrations.append(registration)

        def dispose() -> None:
            if not registration.active:
                return
            registration.active = False
            try:
                self._registrations.remove(registration)
            except ValueError:
                # Already dropped by clear()
                pass

        return dispose

    def clear(self) -> None:
        """Drop every registration; pending disposers become no-ops."""
        for registration in self._registrations:
            registration.active = False
        self._registrations.clear()

    def emit(self, *args: Any) -> int:
        """
        Invoke every live listener in registration order.

        A listener that raises is logged and skipped; delivery continues
        with the remaining listeners.

        Returns:
            Number of listeners invoked
        """
        count = 0
        for listener in self:
            count += 1
            invoke_listener(listener, *args, source=self._name)
        return count


def invoke_listener(listener: Callable[..., Any], *args: Any, source: str) -> None:
    """Call a consumer callback, logging instead of propagating its errors."""
    try:
        listener(*args)
    except Exception:
        logger.exception(f"Listener {listener!r} raised during {source} delivery")
