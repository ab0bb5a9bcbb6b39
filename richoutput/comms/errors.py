"""
Comm Errors for richoutput.

Failures on outbound operations (open/send) are raised to the caller.
Failures of the close notification are logged by the channel, never raised.
"""
from __future__ import annotations


class CommError(Exception):
    """Base class for all comm channel errors."""

    def __init__(self, comm_id: str, message: str):
        self.comm_id = comm_id
        super().__init__(f"[comm {comm_id}] {message}")


class CommOpenError(CommError):
    """
    Raised when the transport rejects a comm open request.

    The channel has already been torn down when this is raised,
    so no dispatcher subscription survives a failed open.
    """

    pass


class CommSendError(CommError):
    """
    Raised when the transport rejects a comm message.

    The channel stays open; a failed message does not imply the comm died.
    """

    pass


class CommStateError(CommError):
    """Raised when an operation is invalid for the channel's current state."""

    pass


class KernelNotConnectedError(CommError):
    """Raised when a send primitive is used while no kernel is attached."""

    pass
