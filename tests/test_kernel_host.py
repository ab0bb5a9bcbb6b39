"""
Tests for the kernel binding.

Tests KernelCommHost message construction, IOPub routing,
kernel changes via KernelSession, and end-to-end comm scenarios.
"""

import pytest

from richoutput.comms import (
    CommChannel,
    CommHost,
    CommMessage,
    CommOpenError,
    CommSendError,
    CommState,
    KernelNotConnectedError,
)
from richoutput.kernel import KernelCommHost, KernelConnection, KernelSession
from richoutput.render import Comms

# =============================================================================
# Protocol Conformance
# =============================================================================


class TestProtocols:
    """Runtime protocol checks."""

    def test_host_is_comm_host(self):
        assert isinstance(KernelCommHost(), CommHost)

    def test_fake_kernel_is_kernel_connection(self, kernel):
        assert isinstance(kernel, KernelConnection)


# =============================================================================
# Outbound Message Tests
# =============================================================================


class TestSends:
    """Tests for send_comm_open / send_comm_message / send_comm_close."""

    @pytest.mark.asyncio
    async def test_comm_open_message(self, kernel):
        host = KernelCommHost(kernel)

        await host.send_comm_open("t", "c1", CommMessage(data={"a": 1}, buffers=(b"x",)))

        msg = kernel.sent[0]
        assert msg.msg_type == "comm_open"
        assert msg.channel == "shell"
        assert msg.content == {"comm_id": "c1", "data": {"a": 1}, "target_name": "t"}
        assert msg.buffers == [b"x"]
        assert msg.header.username == "tester"
        assert msg.header.session == "client-1"
        assert msg.header.version == "5.3"

    @pytest.mark.asyncio
    async def test_comm_msg_message(self, kernel):
        host = KernelCommHost(kernel)

        await host.send_comm_message("c1", CommMessage(data="hello"))

        msg = kernel.sent[0]
        assert msg.msg_type == "comm_msg"
        assert msg.content == {"comm_id": "c1", "data": "hello"}
        assert msg.buffers == []

    @pytest.mark.asyncio
    async def test_comm_close_message(self, kernel):
        host = KernelCommHost(kernel)

        await host.send_comm_close("c1")

        msg = kernel.sent[0]
        assert msg.msg_type == "comm_close"
        assert msg.content == {"comm_id": "c1", "data": {}}

    @pytest.mark.asyncio
    async def test_protocol_version_override(self, kernel):
        host = KernelCommHost(kernel, protocol_version="5.4")

        await host.send_comm_close("c1")

        assert kernel.sent[0].header.version == "5.4"

    @pytest.mark.asyncio
    async def test_send_without_kernel(self):
        host = KernelCommHost()

        with pytest.raises(KernelNotConnectedError):
            await host.send_comm_message("c1", CommMessage(data=1))

    @pytest.mark.asyncio
    async def test_open_without_kernel_closes_channel(self):
        host = KernelCommHost()
        channel = CommChannel("c1", host)

        with pytest.raises(CommOpenError) as exc_info:
            await channel.open("t")

        assert isinstance(exc_info.value.__cause__, KernelNotConnectedError)
        assert channel.state is CommState.CLOSED
        assert host.dispatcher.has_listeners("c1") is False

    @pytest.mark.asyncio
    async def test_shell_failure_surfaces_as_send_error(self, kernel):
        host = KernelCommHost(kernel)
        channel = CommChannel("c1", host)
        await channel.open("t")
        kernel.fail_with = TimeoutError("no reply")

        with pytest.raises(CommSendError):
            await channel.send("x")

        assert channel.is_open is True


# =============================================================================
# Kernel Change Tests
# =============================================================================


class TestKernelChanges:
    """Tests for session binding and dispatcher rebuilds."""

    def test_attach_session_with_kernel(self, kernel):
        host = KernelCommHost()
        session = KernelSession(kernel)

        host.attach_session(session)

        assert host.kernel is kernel
        assert len(kernel.iopub_handlers) == 1

    def test_kernel_change_rebuilds_dispatcher(self, kernel):
        host = KernelCommHost()
        session = KernelSession(kernel)
        host.attach_session(session)
        host.add_message_listener("c1", print)
        old_dispatcher = host.dispatcher

        new_kernel = type(kernel)(client_id="client-2")
        session.change_kernel(new_kernel)

        assert host.kernel is new_kernel
        assert host.dispatcher is not old_dispatcher
        assert host.dispatcher.has_listeners("c1") is False
        assert kernel.iopub_handlers == []
        assert len(new_kernel.iopub_handlers) == 1

    def test_old_kernel_traffic_ignored_after_change(self, kernel):
        host = KernelCommHost()
        session = KernelSession(kernel)
        host.attach_session(session)
        received = []
        host.add_message_listener("c1", received.append)

        session.change_kernel(type(kernel)())
        kernel.publish("comm_msg", {"comm_id": "c1", "data": "stale"})

        assert received == []

    def test_kernel_shutdown(self, kernel):
        host = KernelCommHost()
        session = KernelSession(kernel)
        host.attach_session(session)

        session.change_kernel(None)

        assert host.is_connected is False
        assert kernel.iopub_handlers == []

    def test_same_kernel_is_not_a_change(self, kernel):
        session = KernelSession(kernel)
        changes = []
        session.kernel_changed(lambda old, new: changes.append((old, new)))

        session.change_kernel(kernel)

        assert changes == []

    def test_detach_session(self, kernel):
        host = KernelCommHost()
        session = KernelSession()
        host.attach_session(session)

        host.detach_session()
        session.change_kernel(kernel)

        assert host.kernel is None

    def test_dispose(self, kernel):
        host = KernelCommHost(kernel)
        host.add_close_listener("c1", print)

        host.dispose()

        assert host.kernel is None
        assert kernel.iopub_handlers == []
        assert host.dispatcher.has_listeners("c1") is False

    def test_register_target_registers_on_kernel(self, kernel):
        host = KernelCommHost(kernel)

        host.register_target("echo", lambda comm_id, message: None)

        assert "echo" in kernel.targets
        assert host.dispatcher.has_target("echo") is True


# =============================================================================
# End-to-End Scenarios
# =============================================================================


class TestEndToEnd:
    """Full scenarios through the kernel host and IOPub stream."""

    @pytest.mark.asyncio
    async def test_buffered_messages_then_remote_close(self, kernel):
        host = KernelCommHost(kernel)
        channel = CommChannel("c1", host)
        await channel.open("t")
        assert kernel.sent[0].content["target_name"] == "t"

        kernel.publish("comm_msg", {"comm_id": "c1", "data": "a"})
        kernel.publish("comm_msg", {"comm_id": "c1", "data": "b"})

        observed = []
        channel.on_message(lambda m: observed.append(m.data))
        assert observed == ["a", "b"]
        assert channel.buffered_count == 0

        closed = []
        channel.on_close(lambda: closed.append(True))
        kernel.publish("comm_close", {"comm_id": "c1", "data": {}})
        kernel.publish("comm_close", {"comm_id": "c1", "data": {}})

        assert closed == [True]
        assert [m.msg_type for m in kernel.sent] == ["comm_open"]

    @pytest.mark.asyncio
    async def test_kernel_initiated_comm_on_registered_target(self, kernel):
        host = KernelCommHost(kernel)
        calls = []
        Comms(host).register_target("echo", lambda comm, data, buffers: calls.append((comm, data, buffers)))

        kernel.publish("comm_open", {"comm_id": "x1", "target_name": "echo", "data": 42})

        assert len(calls) == 1
        comm, data, buffers = calls[0]
        assert data == 42
        assert buffers == []

        await comm.send("pong")
        assert kernel.sent[-1].msg_type == "comm_msg"
        assert kernel.sent[-1].content["comm_id"] == "x1"

    @pytest.mark.asyncio
    async def test_kernel_initiated_comm_receives_messages(self, kernel):
        host = KernelCommHost(kernel)
        handles = []
        Comms(host).register_target("echo", lambda comm, data, buffers: handles.append(comm))

        kernel.publish("comm_open", {"comm_id": "x1", "target_name": "echo", "data": {}})
        kernel.publish("comm_msg", {"comm_id": "x1", "data": "first"}, buffers=[b"\x00\x01"])

        received = []
        handles[0].on_message(received.append)

        assert received == [CommMessage(data="first", buffers=(b"\x00\x01",))]
