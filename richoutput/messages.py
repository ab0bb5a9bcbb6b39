"""
Kernel Wire Messages for richoutput.

Pydantic models for the subset of the Jupyter messaging protocol the
comm layer speaks: the shell requests it sends (comm_open, comm_msg,
comm_close) and the IOPub content it receives for the same types.

Framing, signing and socket handling belong to the kernel connection.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Sequence
from uuid import uuid4

from pydantic import BaseModel, Field

COMM_OPEN = "comm_open"
COMM_MSG = "comm_msg"
COMM_CLOSE = "comm_close"

COMM_MSG_TYPES = frozenset({COMM_OPEN, COMM_MSG, COMM_CLOSE})

DEFAULT_PROTOCOL_VERSION = "5.3"


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class MessageHeader(BaseModel):
    """Jupyter message header."""

    msg_id: str = Field(default_factory=lambda: uuid4().hex)
    msg_type: str = Field(..., description="Message type, e.g. 'comm_msg'")
    username: str = ""
    session: str = Field("", description="Client session id")
    date: str = Field(default_factory=_utc_now_iso)
    version: str = DEFAULT_PROTOCOL_VERSION

    class Config:
        extra = "allow"


class KernelMessage(BaseModel):
    """
    A complete Jupyter message.

    Buffers are carried as raw bytes next to the JSON parts, in order.
    """

    header: MessageHeader
    parent_header: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    content: dict[str, Any] = Field(default_factory=dict)
    buffers: list[bytes] = Field(default_factory=list)
    channel: str = "shell"

    @property
    def msg_type(self) -> str:
        return self.header.msg_type


class CommOpenContent(BaseModel):
    """Content of a comm_open message."""

    comm_id: str
    target_name: str
    data: Any = Field(default_factory=dict)

    class Config:
        extra = "allow"


class CommMsgContent(BaseModel):
    """Content of a comm_msg message."""

    comm_id: str
    data: Any = Field(default_factory=dict)

    class Config:
        extra = "allow"


class CommCloseContent(BaseModel):
    """Content of a comm_close message."""

    comm_id: str
    data: Any = Field(default_factory=dict)

    class Config:
        extra = "allow"


def create_message(
    msg_type: str,
    *,
    channel: str,
    username: str,
    session: str,
    content: dict[str, Any],
    buffers: Sequence[bytes] | None = None,
    version: str = DEFAULT_PROTOCOL_VERSION,
) -> KernelMessage:
    """
    Build an outbound message with a fresh id and timestamp.

    Args:
        msg_type: Jupyter message type
        channel: Socket channel, normally "shell"
        username: Username reported by the kernel connection
        session: Client session id of the kernel connection
        content: Message content
        buffers: Optional binary buffers
        version: Messaging protocol version

    Returns:
        KernelMessage ready for KernelConnection.send_shell_message()
    """
    header = MessageHeader(
        msg_type=msg_type,
        username=username,
        session=session,
        version=version,
    )
    return KernelMessage(
        header=header,
        content=content,
        buffers=[convert_buffer(b) for b in buffers or ()],
        channel=channel,
    )


def convert_buffer(buffer: bytes | bytearray | memoryview) -> bytes:
    """
    Normalise a binary buffer to bytes.

    bytes pass through untouched; a memoryview spanning its whole
    underlying object is converted directly, anything else (sliced views,
    bytearrays, non-byte formats) is copied.
    """
    if isinstance(buffer, bytes):
        return buffer
    if isinstance(buffer, memoryview):
        obj = buffer.obj
        if isinstance(obj, bytes) and buffer.nbytes == len(obj) and buffer.contiguous:
            return obj
        return buffer.tobytes()
    if isinstance(buffer, bytearray):
        return bytes(buffer)
    raise TypeError(f"Unsupported buffer type: {type(buffer).__name__}")
