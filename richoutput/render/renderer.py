"""
Output Renderer for richoutput.

Renders outputs of the rich-output mime type. The output's data under
that mime type names a module; the module is loaded and its render()
function is called with the output, a fresh element and a RenderContext.

Example rendering module:
    async def render(output, element, context):
        element.append(f"value = {output.data['text/plain']}")
        if context.comms is not None:
            comm = await context.comms.open("counter")
            comm.on_message(lambda message: element.append(message.data))
"""
from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass, field
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable

from richoutput.config import DEFAULT_MIME_TYPE, get_settings

from .context import RenderContext

if TYPE_CHECKING:
    from richoutput.comms.protocol import CommHost

logger = logging.getLogger(__name__)

MIME_TYPE = DEFAULT_MIME_TYPE
CLASS_NAME = "mimerenderer-es6-rich-output"

ModuleLoader = Callable[[str], ModuleType]


class RenderError(Exception):
    """Raised when an output's rendering module cannot be loaded or run."""

    def __init__(self, module_ref: str, message: str):
        self.module_ref = module_ref
        super().__init__(f"[{module_ref}] {message}")


@dataclass(frozen=True)
class OutputModel:
    """A display output: mime bundle plus metadata."""

    data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class OutputElement:
    """Minimal host-document node that rendering modules draw into."""

    tag: str = "div"
    classes: list[str] = field(default_factory=list)
    children: list[Any] = field(default_factory=list)

    def add_class(self, name: str) -> None:
        if name not in self.classes:
            self.classes.append(name)

    def append(self, child: Any) -> Any:
        self.children.append(child)
        return child


class OutputRenderer:
    """
    Renderer bound to one output area.

    Each render_model() call appends a new child element and runs the
    output's module against it.
    """

    def __init__(
        self,
        mime_type: str,
        host: CommHost | None = None,
        loader: ModuleLoader = importlib.import_module,
    ):
        self._mime_type = mime_type
        self._host = host
        self._loader = loader
        self.node = OutputElement()
        self.node.add_class(CLASS_NAME)

    @property
    def mime_type(self) -> str:
        return self._mime_type

    async def render_model(self, model: OutputModel) -> OutputElement:
        """
        Load the output's module and call its render() function.

        A module without render() renders nothing.

        Returns:
            The element handed to the module

        Raises:
            RenderError: If the model has no module reference or the
                module cannot be imported
        """
        module_ref = model.data.get(self._mime_type)
        if not isinstance(module_ref, str) or not module_ref:
            raise RenderError(str(module_ref), f"Output has no module reference for {self._mime_type}")

        logger.debug(f"Rendering {module_ref}")
        try:
            module = self._loader(module_ref)
        except ImportError as e:
            raise RenderError(module_ref, f"Failed to load rendering module: {e}") from e

        context = RenderContext(self._host)
        element = self.node.append(OutputElement())

        render = getattr(module, "render", None)
        if render is None:
            logger.warning(f"Rendering module {module_ref} has no render() function")
            return element

        result = render(model, element, context.wrapper)
        if inspect.isawaitable(result):
            await result
        return element


class RendererFactory:
    """
    Creates renderers for the rich-output mime type.

    One factory exists per document; its comm host (if any) is shared by
    every renderer it creates.
    """

    safe = False

    def __init__(
        self,
        host: CommHost | None = None,
        *,
        mime_type: str | None = None,
        rank: int | None = None,
        loader: ModuleLoader = importlib.import_module,
    ):
        settings = get_settings()
        self._host = host
        self._loader = loader
        self.mime_types = [mime_type or settings.mime_type]
        self.rank = settings.renderer_rank if rank is None else rank

    def create_renderer(self, mime_type: str | None = None) -> OutputRenderer:
        """Create a renderer for mime_type (defaults to the factory's mime type)."""
        mime_type = mime_type or self.mime_types[0]
        if mime_type not in self.mime_types:
            raise ValueError(f"Unsupported mime type: {mime_type}")
        return OutputRenderer(mime_type, self._host, loader=self._loader)
