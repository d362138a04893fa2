"""Report generation pipeline.

record -> assembler -> compositor -> renderer -> PDF on disk.

The pipeline is built once (templates are loaded and checked at
construction) and can then serve concurrent ``generate`` calls; each call
gets its own renderer and browser instance. There is no internal retry or
cancellation; wrap ``generate`` in ``asyncio.wait_for`` for a caller-level
timeout.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from playwright.async_api import async_playwright

from reportgen.config import Settings, get_settings
from reportgen.rendering.engine import RendererConfig, ReportRenderer
from reportgen.rendering.locator import EngineLocator
from reportgen.rendering.templates import MarkupDocument, TemplateBundle, TemplateCompositor
from reportgen.reports.assembler import ReportAssembler, ReportAssemblerConfig
from reportgen.schemas import ReportRecord, parse_report_record

logger = structlog.get_logger(__name__)


@dataclass
class RenderResult:
    """Outcome of one report generation."""

    report_id: str
    destination: Path
    size_bytes: int
    pages_pruned: int
    engine: str
    degraded: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "report_id": self.report_id,
            "destination": str(self.destination),
            "size_bytes": self.size_bytes,
            "pages_pruned": self.pages_pruned,
            "engine": self.engine,
            "degraded": self.degraded,
        }


class ReportPipeline:
    """Generates competency report PDFs."""

    def __init__(
        self,
        settings: Settings | None = None,
        bundle: TemplateBundle | None = None,
        assembler: ReportAssembler | None = None,
        locator: EngineLocator | None = None,
        playwright_factory: Any = async_playwright,
    ):
        self.settings = settings or get_settings()
        self.bundle = bundle or TemplateBundle.from_directory(self.settings.templates_dir)
        self.compositor = TemplateCompositor(self.bundle)
        self.assembler = assembler or ReportAssembler(
            ReportAssemblerConfig.from_settings(self.settings)
        )
        self.locator = locator or EngineLocator.from_settings(self.settings)
        self.renderer_config = RendererConfig.from_settings(self.settings)
        self._playwright_factory = playwright_factory

    def new_renderer(self) -> ReportRenderer:
        """A fresh renderer for one request."""
        return ReportRenderer(
            config=self.renderer_config,
            locator=self.locator,
            playwright_factory=self._playwright_factory,
        )

    def render_markup(self, payload: ReportRecord | dict[str, Any]) -> MarkupDocument:
        """Assemble and compose a record without rendering it."""
        record = _as_record(payload)
        return self.compositor.compose(self.assembler.assemble(record))

    async def generate(
        self,
        payload: ReportRecord | dict[str, Any],
        destination: Path | str,
        report_id: str | None = None,
    ) -> RenderResult:
        """
        Generate a report PDF at ``destination``.

        Args:
            payload: Parsed record or raw payload dictionary
            destination: Output path; its directory must exist
            report_id: Identifier bound to the log context, generated if omitted

        Returns:
            RenderResult for the written file

        Raises:
            ValidationError: raw payload does not match the contract
            TemplateError: template layer failed
            EngineDiscoveryError, RenderTimeoutError, ExportError: rendering failed
        """
        report_id = report_id or str(uuid.uuid4())
        with structlog.contextvars.bound_contextvars(report_id=report_id):
            record = _as_record(payload)
            logger.info("report_generation_started", destination=str(destination))

            # Chart drawing is CPU-bound; keep it off the event loop
            composed = await asyncio.to_thread(self.assembler.assemble, record)
            markup = self.compositor.compose(composed)
            outcome = await self.new_renderer().render(markup, destination)

            logger.info(
                "report_generated",
                size_bytes=outcome.size_bytes,
                degraded=composed.degraded,
            )
            return RenderResult(
                report_id=report_id,
                destination=outcome.destination,
                size_bytes=outcome.size_bytes,
                pages_pruned=outcome.pages_pruned,
                engine=outcome.engine,
                degraded=list(composed.degraded),
            )


def _as_record(payload: ReportRecord | dict[str, Any]) -> ReportRecord:
    if isinstance(payload, ReportRecord):
        return payload
    return parse_report_record(payload)


async def generate_report(
    payload: ReportRecord | dict[str, Any],
    destination: Path | str,
    settings: Settings | None = None,
) -> RenderResult:
    """
    Convenience function to generate one report with default components.

    Args:
        payload: Parsed record or raw payload dictionary
        destination: Output path
        settings: Application settings, defaults to the cached settings

    Returns:
        RenderResult
    """
    return await ReportPipeline(settings=settings).generate(payload, destination)
