"""Template composition and PDF rendering."""

from reportgen.rendering.engine import RendererConfig, RenderOutcome, ReportRenderer
from reportgen.rendering.locator import EngineLocation, EngineLocator
from reportgen.rendering.templates import (
    TemplateBundle,
    TemplateCompositor,
    load_compositor,
)

__all__ = [
    # Templates
    "TemplateBundle",
    "TemplateCompositor",
    "load_compositor",
    # Engine discovery
    "EngineLocator",
    "EngineLocation",
    # Renderer
    "ReportRenderer",
    "RendererConfig",
    "RenderOutcome",
]
