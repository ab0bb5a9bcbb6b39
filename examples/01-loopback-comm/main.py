"""
Loopback Comm Example

This example demonstrates the comm round trip without a real kernel:
1. Implement the KernelConnection protocol with an in-process echo kernel
2. Render an output whose module opens a comm
3. Watch kernel replies arrive through IOPub, including ones sent
   before the module attached its listener

Run: python -m examples.01-loopback-comm.main
"""

import asyncio
import sys
from types import ModuleType
from typing import Any, Callable

from richoutput import MIME_TYPE, KernelCommHost, KernelSession, OutputModel, RendererFactory
from richoutput.config import configure_logging

# =============================================================================
# Echo Kernel
# =============================================================================


class EchoKernel:
    """
    A kernel connection that echoes every comm_msg back over IOPub.

    Opening a comm immediately publishes a greeting, so the greeting
    arrives before the rendering module has attached its listener.
    """

    username = "example"
    client_id = "echo-kernel"

    def __init__(self) -> None:
        self._iopub: list[Callable[[dict[str, Any]], None]] = []

    def connect_iopub(self, handler):
        self._iopub.append(handler)
        return lambda: self._iopub.remove(handler)

    def register_comm_target(self, target_name, callback):
        print(f"[kernel] target registered: {target_name}")

    async def send_shell_message(self, msg):
        content = msg.content
        print(f"[kernel] {msg.msg_type}: {content}")
        if msg.msg_type == "comm_open":
            self._publish("comm_msg", {"comm_id": content["comm_id"], "data": "hello"})
        elif msg.msg_type == "comm_msg":
            self._publish("comm_msg", {"comm_id": content["comm_id"], "data": {"echo": content["data"]}})

    def _publish(self, msg_type: str, content: dict[str, Any]) -> None:
        msg = {"header": {"msg_type": msg_type}, "content": content, "buffers": []}
        for handler in list(self._iopub):
            handler(msg)


# =============================================================================
# Rendering Module
# =============================================================================


async def render(output, element, context):
    comm = await context.comms.open("echo", {"output": output.data["text/plain"]})
    comm.on_message(lambda message: element.append(message.data))
    await comm.send("ping")
    comm.close()


widget = ModuleType("echo_widget")
widget.render = render
sys.modules["echo_widget"] = widget


async def main():
    configure_logging()

    session = KernelSession()
    host = KernelCommHost()
    host.attach_session(session)
    session.change_kernel(EchoKernel())

    renderer = RendererFactory(host).create_renderer()
    element = await renderer.render_model(
        OutputModel(data={MIME_TYPE: "echo_widget", "text/plain": "42"})
    )
    await asyncio.sleep(0)

    print()
    print("Element children:")
    for child in element.children:
        print(f"  - {child}")


if __name__ == "__main__":
    asyncio.run(main())
