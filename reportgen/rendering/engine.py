"""Rendering engine adapter.

Loads report markup into headless Chromium through Playwright and prints it
to a fixed-format PDF. One browser instance is launched per render and is
always closed again, whatever happens in between.

Render states::

    idle -> engine_located -> page_loaded -> content_settled -> exported -> closed
                              (any step) -> failed
"""

import asyncio
import os
import tempfile
from collections.abc import Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from reportgen.config import Settings, get_settings
from reportgen.exceptions import (
    EngineDiscoveryError,
    ExportError,
    RenderTimeoutError,
    ReportGenError,
)
from reportgen.rendering.locator import EngineLocation, EngineLocator

logger = structlog.get_logger(__name__)

# Removes page containers whose only non-empty child is the header
PRUNE_BLANK_PAGES_JS = """
({ pageSelector, headerSelector }) => {
  const media = 'img, svg, canvas, video, object, embed';
  const isFilled = (el) =>
    el.matches(media) || el.querySelector(media) !== null || el.textContent.trim() !== '';
  let removed = 0;
  for (const page of Array.from(document.querySelectorAll(pageSelector))) {
    const filled = Array.from(page.children).filter(isFilled);
    if (filled.every((child) => child.matches(headerSelector))) {
      page.remove();
      removed += 1;
    }
  }
  return removed;
}
"""


class RenderState(str, Enum):
    """Lifecycle of a single render."""

    IDLE = "idle"
    ENGINE_LOCATED = "engine_located"
    PAGE_LOADED = "page_loaded"
    CONTENT_SETTLED = "content_settled"
    EXPORTED = "exported"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class RendererConfig:
    """Configuration for the renderer."""

    timeout_ms: int = 30000  # parse + network quiescence
    # No "all images decoded" signal exists; this delay is an approximation
    settle_delay_ms: int = 1000
    page_format: str = "A4"
    browser_args: list[str] = field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
    )
    page_selector: str = ".page"
    header_selector: str = ".page-header"

    @classmethod
    def from_settings(cls, settings: Settings) -> "RendererConfig":
        """Build the renderer configuration from application settings."""
        return cls(
            timeout_ms=settings.render_timeout_ms,
            settle_delay_ms=settings.settle_delay_ms,
            page_format=settings.page_format,
            browser_args=list(settings.browser_args),
        )


@dataclass
class RenderOutcome:
    """What a successful render produced."""

    destination: Path
    size_bytes: int
    pages_pruned: int
    engine: str


def write_atomically(destination: Path, content: bytes) -> None:
    """
    Write bytes so the destination only ever holds a complete file.

    Raises:
        ExportError: if the directory is missing or not writable
    """
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".part",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, destination)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise ExportError(str(destination), str(e)) from e


class ReportRenderer:
    """Renders report markup to PDF with headless Chromium."""

    def __init__(
        self,
        config: RendererConfig | None = None,
        locator: EngineLocator | None = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        """
        Initialize the renderer.

        Args:
            config: Timeouts, page format and selectors
            locator: Engine discovery; defaults to the settings-based chain
            playwright_factory: Returns an async context manager yielding Playwright
        """
        self.config = config or RendererConfig()
        self.locator = locator or EngineLocator.from_settings(get_settings())
        self._playwright_factory = playwright_factory
        self.state = RenderState.IDLE
        self.history: list[RenderState] = [RenderState.IDLE]
        self.closed = False

    def _advance(self, state: RenderState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("render_state", state=state.value)

    async def render(self, markup: str, destination: Path | str) -> RenderOutcome:
        """
        Render markup to a PDF file.

        The destination directory must exist. Nothing is written unless the
        export completes.

        Args:
            markup: Complete HTML document
            destination: Output file path

        Returns:
            RenderOutcome describing the written file

        Raises:
            EngineDiscoveryError: no engine could be found or launched
            RenderTimeoutError: the markup did not load within the timeout
            ExportError: the PDF could not be produced or written
        """
        destination = Path(destination)
        self.state = RenderState.IDLE
        self.history = [RenderState.IDLE]
        self.closed = False

        try:
            if not destination.parent.is_dir():
                raise ExportError(str(destination), "destination directory does not exist")

            location = self.locator.locate()
            self._advance(RenderState.ENGINE_LOCATED)

            async with AsyncExitStack() as stack:
                playwright = await self._start_driver(stack, location)
                browser = await self._launch(playwright, location)
                try:
                    outcome = await self._render_in(browser, markup, destination, location)
                finally:
                    await self._close(browser)

        except ReportGenError as e:
            self._advance(RenderState.FAILED)
            logger.error("render_failed", code=e.code, error=e.message)
            raise
        except PlaywrightError as e:
            self._advance(RenderState.FAILED)
            logger.error("render_failed", code="engine_error", error=str(e))
            raise ExportError(str(destination), str(e)) from e
        except BaseException:
            # Cancellation from a caller-level timeout; the browser is already closed
            self._advance(RenderState.FAILED)
            raise

        self._advance(RenderState.CLOSED)
        logger.info(
            "report_rendered",
            destination=str(destination),
            size_bytes=outcome.size_bytes,
            pages_pruned=outcome.pages_pruned,
            engine=location.strategy,
        )
        return outcome

    async def _start_driver(self, stack: AsyncExitStack, location: EngineLocation) -> Playwright:
        """Start the Playwright driver; a driver that will not start is a discovery failure."""
        try:
            return await stack.enter_async_context(self._playwright_factory())
        except PlaywrightError as e:
            raise EngineDiscoveryError(
                f"Could not start the browser driver: {e}",
                tried=[location.strategy],
            ) from e

    async def _close(self, browser: Browser) -> None:
        """Close the browser without letting a close error replace the render result."""
        try:
            await browser.close()
        except PlaywrightError as e:
            logger.warning("browser_close_failed", error=str(e))
        self.closed = True

    async def _launch(self, playwright: Playwright, location: EngineLocation) -> Browser:
        """Launch Chromium, falling back to the bundled engine when managed."""
        options: dict[str, Any] = {"headless": True, "args": list(self.config.browser_args)}
        if location.executable_path:
            options["executable_path"] = location.executable_path

        try:
            return await playwright.chromium.launch(**options)
        except PlaywrightError as e:
            if location.is_bundled or not self.locator.managed:
                raise EngineDiscoveryError(
                    f"Could not launch engine ({location.executable_path or 'bundled'}): {e}",
                    tried=[location.strategy],
                ) from e

            # A discovered binary that fails to start is treated like a missing one
            logger.warning(
                "engine_launch_failed_using_bundled",
                path=location.executable_path,
                error=str(e),
            )
            options.pop("executable_path")
            try:
                return await playwright.chromium.launch(**options)
            except PlaywrightError as bundled_error:
                raise EngineDiscoveryError(
                    f"Could not launch bundled engine: {bundled_error}",
                    tried=[location.strategy, "bundled"],
                ) from bundled_error

    async def _render_in(
        self,
        browser: Browser,
        markup: str,
        destination: Path,
        location: EngineLocation,
    ) -> RenderOutcome:
        page = await browser.new_page()

        await self._load(page, markup)
        self._advance(RenderState.PAGE_LOADED)

        await page.wait_for_timeout(self.config.settle_delay_ms)
        self._advance(RenderState.CONTENT_SETTLED)

        pruned = await self.prune_blank_pages(page)

        try:
            pdf = await page.pdf(
                format=self.config.page_format,
                print_background=True,
                display_header_footer=False,
                margin={"top": "0mm", "bottom": "0mm", "left": "0mm", "right": "0mm"},
                prefer_css_page_size=True,
            )
        except PlaywrightError as e:
            raise ExportError(str(destination), str(e)) from e

        write_atomically(destination, pdf)
        self._advance(RenderState.EXPORTED)
        return RenderOutcome(
            destination=destination,
            size_bytes=len(pdf),
            pages_pruned=pruned,
            engine=location.strategy,
        )

    async def _load(self, page: Page, markup: str) -> None:
        """Load markup and wait for network quiescence within one time budget."""
        timeout = self.config.timeout_ms
        loop = asyncio.get_running_loop()
        started = loop.time()
        stage = "dom_content_loaded"
        try:
            await page.set_content(markup, wait_until="domcontentloaded", timeout=timeout)
            stage = "network_idle"
            elapsed_ms = int((loop.time() - started) * 1000)
            await page.wait_for_load_state("networkidle", timeout=max(1, timeout - elapsed_ms))
        except PlaywrightTimeout as e:
            raise RenderTimeoutError(stage, timeout) from e

    async def prune_blank_pages(self, page: Page) -> int:
        """Remove pages that would only show the repeated header."""
        removed = await page.evaluate(
            PRUNE_BLANK_PAGES_JS,
            {
                "pageSelector": self.config.page_selector,
                "headerSelector": self.config.header_selector,
            },
        )
        if removed:
            logger.info("blank_pages_pruned", count=removed)
        return int(removed or 0)
