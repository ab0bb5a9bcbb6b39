"""
richoutput Comm Layer.

Bidirectional comm channels between rendered output and the kernel.

Core Components:
- CommHost: Protocol for the object owning the kernel connection
- CommDispatcher: Routing tables fed by the IOPub stream
- CommChannel: Stateful channel with pre-attachment buffering
- CommHandle: Restricted channel view handed to rendering code

Usage:
    from richoutput.comms import CommChannel

    channel = CommChannel(comm_id, host)
    await channel.open("my_target", {"hello": "kernel"})
    channel.on_message(lambda message: print(message.data))
    await channel.send({"ping": 1})
    channel.close()
"""

from .channel import CommChannel, CommHandle, CommState
from .dispatcher import CommDispatcher
from .errors import (
    CommError,
    CommOpenError,
    CommSendError,
    CommStateError,
    KernelNotConnectedError,
)
from .listeners import ListenerList
from .protocol import (
    CommCloseListener,
    CommHost,
    CommMessage,
    CommMessageListener,
    CommOpenListener,
    Disposer,
)

__all__ = [
    # Channel
    "CommChannel",
    "CommHandle",
    "CommState",
    # Routing
    "CommDispatcher",
    "ListenerList",
    # Protocol
    "CommHost",
    "CommMessage",
    "CommMessageListener",
    "CommCloseListener",
    "CommOpenListener",
    "Disposer",
    # Errors
    "CommError",
    "CommOpenError",
    "CommSendError",
    "CommStateError",
    "KernelNotConnectedError",
]
