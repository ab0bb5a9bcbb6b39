"""
Pytest configuration and fixtures for richoutput tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add the repository root to path for imports
# This allows `from richoutput.comms import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from richoutput.comms import CommDispatcher  # noqa: E402
from richoutput.config import reset_settings  # noqa: E402


class FakeHost:
    """
    In-memory CommHost.

    Listener registration goes to a real CommDispatcher so tests can
    drive inbound traffic; the send primitives are AsyncMocks.
    """

    def __init__(self):
        self.dispatcher = CommDispatcher()
        self.send_comm_open = AsyncMock()
        self.send_comm_message = AsyncMock()
        self.send_comm_close = AsyncMock()

    def add_message_listener(self, comm_id, handler):
        return self.dispatcher.add_message_listener(comm_id, handler)

    def add_close_listener(self, comm_id, handler):
        return self.dispatcher.add_close_listener(comm_id, handler)

    def register_target(self, target_name, handler):
        return self.dispatcher.add_open_listener(target_name, handler)


class FakeKernel:
    """KernelConnection double that records shell messages and replays IOPub."""

    def __init__(self, username="tester", client_id="client-1"):
        self.username = username
        self.client_id = client_id
        self.sent = []
        self.targets = {}
        self.iopub_handlers = []
        self.fail_with = None

    def connect_iopub(self, handler):
        self.iopub_handlers.append(handler)

        def dispose():
            if handler in self.iopub_handlers:
                self.iopub_handlers.remove(handler)

        return dispose

    def register_comm_target(self, target_name, callback):
        self.targets[target_name] = callback

    async def send_shell_message(self, msg):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(msg)

    def publish(self, msg_type, content, buffers=None):
        """Deliver an IOPub message to every subscriber."""
        msg = {
            "header": {"msg_type": msg_type},
            "content": content,
            "buffers": buffers or [],
        }
        for handler in list(self.iopub_handlers):
            handler(msg)


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def kernel():
    return FakeKernel()
