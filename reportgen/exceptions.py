"""Report generation error taxonomy.

Recoverable errors (``ChartRenderError``) are absorbed by the assembler and
logged. Everything else propagates unchanged to the pipeline caller, with
the original cause chained via ``raise ... from``.
"""

from typing import Any


class ReportGenError(Exception):
    """Base exception for report generation."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ReportGenError):
    """Input record does not satisfy the report contract."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="validation_error",
            details=details,
        )


class ChartRenderError(ReportGenError):
    """A chart image could not be produced. Recoverable."""

    def __init__(self, dataset: str, message: str):
        self.dataset = dataset
        super().__init__(
            message=f"Chart '{dataset}' could not be rendered: {message}",
            code="chart_render_error",
            details={"dataset": dataset},
        )


class TemplateError(ReportGenError):
    """Template sources are broken or incomplete (packaging defect)."""

    def __init__(self, message: str, template: str | None = None):
        details = {"template": template} if template else {}
        super().__init__(
            message=message,
            code="template_error",
            details=details,
        )


class EngineDiscoveryError(ReportGenError):
    """No usable rendering engine binary could be found or launched."""

    def __init__(self, message: str, tried: list[str] | None = None):
        self.tried = tried or []
        super().__init__(
            message=message,
            code="engine_discovery_error",
            details={"tried": self.tried},
        )


class RenderTimeoutError(ReportGenError):
    """The markup did not finish loading within the bounded wait."""

    def __init__(self, stage: str, timeout_ms: int):
        super().__init__(
            message=f"Timed out after {timeout_ms} ms during {stage}",
            code="render_timeout",
            details={"stage": stage, "timeout_ms": timeout_ms},
        )


class ExportError(ReportGenError):
    """The rendered document could not be written to its destination."""

    def __init__(self, destination: str, message: str):
        super().__init__(
            message=f"Could not export to {destination}: {message}",
            code="export_error",
            details={"destination": destination},
        )
