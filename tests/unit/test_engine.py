"""Tests for the Playwright rendering adapter."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from reportgen.config import Settings
from reportgen.exceptions import EngineDiscoveryError, ExportError, RenderTimeoutError
from reportgen.rendering.engine import (
    RendererConfig,
    RenderState,
    ReportRenderer,
    write_atomically,
)
from reportgen.rendering.locator import EngineLocator, KnownPathsStrategy, PathProbeStrategy

PDF_BYTES = b"%PDF-1.7\n% test document\n%%EOF\n"
MARKUP = "<html><body><section class='page'>x</section></body></html>"


def _page(pruned: int = 0) -> MagicMock:
    page = MagicMock()
    page.set_content = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.evaluate = AsyncMock(return_value=pruned)
    page.pdf = AsyncMock(return_value=PDF_BYTES)
    return page


def _browser(page: MagicMock) -> MagicMock:
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()
    return browser


def _factory(chromium: MagicMock):
    playwright = MagicMock()
    playwright.chromium = chromium

    @asynccontextmanager
    async def factory():
        yield playwright

    return factory


def _chromium(*launch_results) -> MagicMock:
    chromium = MagicMock()
    chromium.launch = AsyncMock(side_effect=list(launch_results))
    return chromium


def _found_locator(managed: bool = False) -> EngineLocator:
    return EngineLocator(
        [KnownPathsStrategy(["/usr/bin/chromium"], is_executable=lambda _path: True)],
        managed=managed,
    )


def _renderer(chromium: MagicMock, managed: bool = False, **config) -> ReportRenderer:
    return ReportRenderer(
        config=RendererConfig(**config),
        locator=_found_locator(managed),
        playwright_factory=_factory(chromium),
    )


class TestRendererConfig:
    """Tests for RendererConfig."""

    def test_from_settings(self) -> None:
        """Settings values are carried over."""
        settings = Settings(render_timeout_ms=5000, settle_delay_ms=250, page_format="Letter")
        config = RendererConfig.from_settings(settings)

        assert config.timeout_ms == 5000
        assert config.settle_delay_ms == 250
        assert config.page_format == "Letter"
        assert "--no-sandbox" in config.browser_args


class TestReportRenderer:
    """Tests for ReportRenderer.render."""

    @pytest.mark.asyncio
    async def test_successful_render(self, tmp_path: Path) -> None:
        """A render writes the PDF and walks every state once."""
        page = _page(pruned=1)
        browser = _browser(page)
        chromium = _chromium(browser)
        renderer = _renderer(chromium)
        destination = tmp_path / "report.pdf"

        outcome = await renderer.render(MARKUP, destination)

        assert destination.read_bytes() == PDF_BYTES
        assert outcome.size_bytes == len(PDF_BYTES)
        assert outcome.pages_pruned == 1
        assert outcome.engine == "known_paths"
        assert renderer.history == [
            RenderState.IDLE,
            RenderState.ENGINE_LOCATED,
            RenderState.PAGE_LOADED,
            RenderState.CONTENT_SETTLED,
            RenderState.EXPORTED,
            RenderState.CLOSED,
        ]
        browser.close.assert_awaited_once()
        assert renderer.closed

    @pytest.mark.asyncio
    async def test_launch_options(self, tmp_path: Path) -> None:
        """The discovered executable and hardening flags are passed to launch."""
        chromium = _chromium(_browser(_page()))

        await _renderer(chromium).render(MARKUP, tmp_path / "report.pdf")

        kwargs = chromium.launch.call_args.kwargs
        assert kwargs["executable_path"] == "/usr/bin/chromium"
        assert kwargs["headless"] is True
        assert kwargs["args"] == [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]

    @pytest.mark.asyncio
    async def test_export_options(self, tmp_path: Path) -> None:
        """Export uses the page format, backgrounds and no header or footer."""
        page = _page()
        await _renderer(_chromium(_browser(page))).render(MARKUP, tmp_path / "report.pdf")

        kwargs = page.pdf.call_args.kwargs
        assert kwargs["format"] == "A4"
        assert kwargs["print_background"] is True
        assert kwargs["display_header_footer"] is False

    @pytest.mark.asyncio
    async def test_load_and_settle(self, tmp_path: Path) -> None:
        """Markup is loaded, network idle awaited, then the fixed settle delay applied.

        The settle delay is a timing assumption, not a signal that images decoded.
        """
        page = _page()
        renderer = _renderer(_chromium(_browser(page)), settle_delay_ms=750)

        await renderer.render(MARKUP, tmp_path / "report.pdf")

        page.set_content.assert_awaited_once()
        assert page.set_content.call_args.args[0] == MARKUP
        assert page.wait_for_load_state.call_args.args[0] == "networkidle"
        page.wait_for_timeout.assert_awaited_once_with(750)

    @pytest.mark.asyncio
    async def test_prune_selectors(self, tmp_path: Path) -> None:
        """Blank page pruning runs with the configured selectors."""
        page = _page()
        await _renderer(_chromium(_browser(page))).render(MARKUP, tmp_path / "report.pdf")

        _, arguments = page.evaluate.call_args.args
        assert arguments == {"pageSelector": ".page", "headerSelector": ".page-header"}

    @pytest.mark.asyncio
    async def test_load_timeout(self, tmp_path: Path) -> None:
        """A load timeout raises RenderTimeoutError and closes the browser."""
        page = _page()
        page.set_content.side_effect = PlaywrightTimeout("Timeout 30000ms exceeded")
        browser = _browser(page)
        renderer = _renderer(_chromium(browser))
        destination = tmp_path / "report.pdf"

        with pytest.raises(RenderTimeoutError) as exc_info:
            await renderer.render(MARKUP, destination)

        assert exc_info.value.details["stage"] == "dom_content_loaded"
        assert not destination.exists()
        browser.close.assert_awaited_once()
        assert renderer.state == RenderState.FAILED

    @pytest.mark.asyncio
    async def test_network_idle_timeout(self, tmp_path: Path) -> None:
        """A stalled network raises RenderTimeoutError for the idle stage."""
        page = _page()
        page.wait_for_load_state.side_effect = PlaywrightTimeout("Timeout exceeded")

        with pytest.raises(RenderTimeoutError) as exc_info:
            await _renderer(_chromium(_browser(page))).render(MARKUP, tmp_path / "r.pdf")

        assert exc_info.value.details["stage"] == "network_idle"

    @pytest.mark.asyncio
    async def test_export_failure(self, tmp_path: Path) -> None:
        """A failing PDF export raises ExportError and leaves no file."""
        page = _page()
        page.pdf.side_effect = PlaywrightError("Target closed")
        browser = _browser(page)
        destination = tmp_path / "report.pdf"

        with pytest.raises(ExportError):
            await _renderer(_chromium(browser)).render(MARKUP, destination)

        assert not destination.exists()
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing destination directory fails before any launch."""
        chromium = _chromium(_browser(_page()))

        with pytest.raises(ExportError):
            await _renderer(chromium).render(MARKUP, tmp_path / "missing" / "report.pdf")

        chromium.launch.assert_not_called()

    @pytest.mark.asyncio
    async def test_discovery_failure(self, tmp_path: Path) -> None:
        """No engine outside a managed environment raises EngineDiscoveryError."""
        chromium = _chromium(_browser(_page()))
        renderer = ReportRenderer(
            locator=EngineLocator([PathProbeStrategy(["chromium"], which=lambda _n: None)]),
            playwright_factory=_factory(chromium),
        )
        destination = tmp_path / "report.pdf"

        with pytest.raises(EngineDiscoveryError):
            await renderer.render(MARKUP, destination)

        assert not destination.exists()
        chromium.launch.assert_not_called()
        assert renderer.history == [RenderState.IDLE, RenderState.FAILED]

    @pytest.mark.asyncio
    async def test_managed_launch_falls_back_to_bundled(self, tmp_path: Path) -> None:
        """In a managed environment a bad discovered binary falls back to the bundled one."""
        browser = _browser(_page())
        chromium = _chromium(PlaywrightError("Executable doesn't exist"), browser)

        await _renderer(chromium, managed=True).render(MARKUP, tmp_path / "report.pdf")

        assert chromium.launch.await_count == 2
        assert "executable_path" not in chromium.launch.call_args_list[1].kwargs

    @pytest.mark.asyncio
    async def test_unmanaged_launch_failure(self, tmp_path: Path) -> None:
        """Outside a managed environment a launch failure is a discovery error."""
        chromium = _chromium(PlaywrightError("Executable doesn't exist"))

        with pytest.raises(EngineDiscoveryError):
            await _renderer(chromium).render(MARKUP, tmp_path / "report.pdf")

        assert chromium.launch.await_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_closes_browser(self, tmp_path: Path) -> None:
        """Cancellation mid-render still closes the browser."""
        page = _page()
        page.wait_for_timeout.side_effect = asyncio.CancelledError()
        browser = _browser(page)
        renderer = _renderer(_chromium(browser))

        with pytest.raises(asyncio.CancelledError):
            await renderer.render(MARKUP, tmp_path / "report.pdf")

        browser.close.assert_awaited_once()
        assert renderer.state == RenderState.FAILED

    @pytest.mark.asyncio
    async def test_driver_start_failure(self, tmp_path: Path) -> None:
        """A browser driver that will not start raises EngineDiscoveryError."""

        @asynccontextmanager
        async def failing_factory():
            raise PlaywrightError("Driver exited with code 1")
            yield

        renderer = ReportRenderer(
            locator=_found_locator(),
            playwright_factory=failing_factory,
        )
        destination = tmp_path / "report.pdf"

        with pytest.raises(EngineDiscoveryError) as exc_info:
            await renderer.render(MARKUP, destination)

        assert exc_info.value.details["tried"] == ["known_paths"]
        assert not destination.exists()
        assert renderer.state == RenderState.FAILED

    @pytest.mark.asyncio
    async def test_close_failure_keeps_original_error(self, tmp_path: Path) -> None:
        """A browser that fails to close does not hide the load timeout."""
        page = _page()
        page.set_content.side_effect = PlaywrightTimeout("Timeout 30000ms exceeded")
        browser = _browser(page)
        browser.close.side_effect = PlaywrightError("Browser has been closed")
        renderer = _renderer(_chromium(browser))

        with pytest.raises(RenderTimeoutError):
            await renderer.render(MARKUP, tmp_path / "report.pdf")

        assert renderer.closed is True

    @pytest.mark.asyncio
    async def test_close_failure_after_export(self, tmp_path: Path) -> None:
        """A close error after a finished export still returns the written report."""
        browser = _browser(_page())
        browser.close.side_effect = PlaywrightError("Connection closed")
        renderer = _renderer(_chromium(browser))
        destination = tmp_path / "report.pdf"

        outcome = await renderer.render(MARKUP, destination)

        assert outcome.size_bytes == len(PDF_BYTES)
        assert destination.read_bytes() == PDF_BYTES
        assert renderer.state == RenderState.CLOSED


class TestWriteAtomically:
    """Tests for write_atomically."""

    def test_writes_content(self, tmp_path: Path) -> None:
        """Content lands at the destination with no temp files left over."""
        destination = tmp_path / "out.pdf"
        write_atomically(destination, PDF_BYTES)

        assert destination.read_bytes() == PDF_BYTES
        assert [p.name for p in tmp_path.iterdir()] == ["out.pdf"]

    def test_replaces_existing(self, tmp_path: Path) -> None:
        """An existing file is replaced whole."""
        destination = tmp_path / "out.pdf"
        destination.write_bytes(b"old")
        write_atomically(destination, PDF_BYTES)
        assert destination.read_bytes() == PDF_BYTES

    def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing directory raises ExportError."""
        with pytest.raises(ExportError):
            write_atomically(tmp_path / "nope" / "out.pdf", PDF_BYTES)
