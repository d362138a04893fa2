"""Report data assembler.

Turns a ``ReportRecord`` into the ``ComposedReportData`` the template layer
reads: charts, tiered and paginated competencies, headline lists, resolved
gap and timeline values, default sections and branding assets.

Assembly never fails for a well-typed record. Chart and asset problems are
logged and leave the corresponding image out.
"""

import base64
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from reportgen.config import Settings
from reportgen.exceptions import ChartRenderError
from reportgen.reports.charts import render_gap_bars, render_radar, to_data_uri
from reportgen.reports.classifier import ClassifierConfig, CompetencyClassifier
from reportgen.reports.contract import (
    BrandingAssets,
    ClassifiedItem,
    ComposedReportData,
    GapEntry,
    Tier,
    TierGroup,
    TimelineStep,
)
from reportgen.schemas import (
    ActionPlan,
    EmployabilityAnalysis,
    GapAnalysisEntry,
    ReportRecord,
    TieredCompetencies,
    TimelineEntry,
    parse_report_record,
)

logger = structlog.get_logger(__name__)

_PASSTHROUGH_SCHEMES = ("http://", "https://", "data:")


@dataclass
class ReportAssemblerConfig:
    """Configuration for report assembly."""

    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    headline_size: int = 5
    cap_pretiered_input: bool = False
    platform_logo_path: str | None = None
    render_gap_chart: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReportAssemblerConfig":
        """Build the assembly configuration from application settings."""
        return cls(
            classifier=ClassifierConfig(
                max_items_per_tier=settings.max_items_per_tier,
                single_page_threshold=settings.single_page_threshold,
            ),
            headline_size=settings.headline_size,
            cap_pretiered_input=settings.cap_pretiered_input,
            platform_logo_path=settings.platform_logo_path,
        )


def resolve_gap(entry: GapAnalysisEntry) -> GapEntry:
    """Use the supplied gap when present, otherwise required - actual."""
    supplied = entry.gap is not None
    return GapEntry(
        competency_name=entry.competency_name,
        required=entry.required,
        actual=entry.actual,
        gap=entry.gap if supplied else entry.required - entry.actual,
        gap_supplied=supplied,
    )


def resolve_timeline(entries: list[TimelineEntry]) -> list[TimelineStep]:
    """Number unnumbered entries by their 1-based position."""
    steps: list[TimelineStep] = []
    for position, entry in enumerate(entries, start=1):
        payload = entry.model_dump(exclude={"sequence_number"})
        number = entry.sequence_number if entry.sequence_number is not None else position
        steps.append(TimelineStep(sequence_number=number, payload=payload))
    return steps


def load_asset(value: str | None) -> str | None:
    """
    Turn a logo reference into something the browser can load.

    URLs and data URIs pass through. Local files are embedded as data URIs
    since the markup is loaded without a base URL. Missing or unreadable
    files give None.
    """
    if not value:
        return None
    if value.startswith(_PASSTHROUGH_SCHEMES):
        return value

    path = Path(value)
    try:
        content = path.read_bytes()
    except (OSError, ValueError) as e:
        # ValueError: paths with an embedded NUL byte
        logger.warning("branding_asset_unreadable", path=value, error=str(e))
        return None

    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return f"data:{mime_type};base64," + base64.b64encode(content).decode("ascii")


class ReportAssembler:
    """Assembles a report record into template-ready data."""

    def __init__(self, config: ReportAssemblerConfig | None = None):
        self.config = config or ReportAssemblerConfig()
        self.classifier = CompetencyClassifier(self.config.classifier)

    def assemble(self, record: ReportRecord) -> ComposedReportData:
        """
        Assemble a complete, template-ready report.

        The record is not modified, so assembling the same record twice
        gives equal results.

        Args:
            record: Parsed report record

        Returns:
            ComposedReportData with all sections present
        """
        degraded: list[str] = []

        # 1. Radar chart
        radar_chart = None
        if record.radar_chart_data is not None:
            radar_chart = self._render_chart(
                "radar_chart",
                degraded,
                render_radar,
                record.radar_chart_data.labels,
                record.radar_chart_data.series,
            )

        # 2. Competencies
        competencies, source = self._build_competencies(record)

        # 3. Headline lists
        strengths, opportunities = self._build_headlines(competencies)

        # 4. Gap analysis and timeline
        employability = record.employability_analysis or EmployabilityAnalysis()
        gap_analysis = [resolve_gap(entry) for entry in employability.gap_analysis]
        timeline = resolve_timeline(employability.timeline)

        gap_chart = None
        if gap_analysis and self.config.render_gap_chart:
            gap_chart = self._render_chart("gap_chart", degraded, render_gap_bars, gap_analysis)

        # 5. Sections the template always dereferences
        action_plan = (record.action_plan or ActionPlan()).model_dump()
        general_profile = dict(record.general_profile or {})
        conclusions = dict(record.conclusions or {})

        # 6. Branding
        branding = self._resolve_branding(record)

        composed = ComposedReportData(
            personal_data=record.personal_data.model_dump(),
            competencies=competencies,
            competency_source=source,
            strengths=strengths,
            opportunities=opportunities,
            radar_chart=radar_chart,
            gap_chart=gap_chart,
            overall_match=employability.overall_match,
            gap_analysis=gap_analysis,
            timeline=timeline,
            action_plan=action_plan,
            general_profile=general_profile,
            conclusions=conclusions,
            branding=branding,
            extra=dict(record.model_extra or {}),
            degraded=degraded,
        )

        logger.info(
            "report_data_assembled",
            competency_source=source,
            tiers={tier.value: group.count for tier, group in competencies.items()},
            radar_chart=radar_chart is not None,
            gap_chart=gap_chart is not None,
            degraded=degraded,
        )
        return composed

    def _render_chart(self, name: str, degraded: list[str], render, *args: Any) -> str | None:
        """Render a chart as a data URI, or record it as degraded."""
        try:
            return to_data_uri(render(*args))
        except ChartRenderError as e:
            logger.warning("chart_render_failed", chart=name, error=e.message, exc_info=True)
            degraded.append(name)
            return None

    def _build_competencies(self, record: ReportRecord) -> tuple[dict[Tier, TierGroup], str]:
        """Route flat input through the classifier, lay out pre-tiered input as-is."""
        competencies = record.competencies
        if isinstance(competencies, TieredCompetencies):
            groups = self.classifier.classify_pretiered(
                {
                    Tier.HIGH: competencies.high,
                    Tier.MEDIUM: competencies.medium,
                    Tier.LOW: competencies.low,
                },
                cap=self.config.cap_pretiered_input,
            )
            return groups, "tiered"
        return self.classifier.classify(competencies), "flat"

    def _build_headlines(
        self,
        groups: dict[Tier, TierGroup],
    ) -> tuple[list[ClassifiedItem], list[ClassifiedItem]]:
        """Top items of the high tier and of the lowest non-empty weaker tier."""
        size = self.config.headline_size
        strengths = groups[Tier.HIGH].items[:size]

        opportunities: list[ClassifiedItem] = []
        for tier in (Tier.LOW, Tier.MEDIUM):
            if not groups[tier].is_empty:
                opportunities = groups[tier].items[:size]
                break

        return strengths, opportunities

    def _resolve_branding(self, record: ReportRecord) -> BrandingAssets:
        """Resolve logos: request field, then legacy field, then nothing."""
        organization = record.organization
        organization_logo = load_asset(
            (organization.image_url if organization else None)
            or record.personal_data.organization_logo
        )

        platform_logo = load_asset(
            record.platform_logo_url
            or (record.branding.platform_logo if record.branding else None)
            or self.config.platform_logo_path
        )

        return BrandingAssets(
            organization_name=organization.name if organization else None,
            organization_logo=organization_logo,
            platform_logo=platform_logo,
        )


def assemble_report(
    payload: ReportRecord | dict[str, Any],
    config: ReportAssemblerConfig | None = None,
) -> ComposedReportData:
    """
    Convenience function to assemble a report.

    Args:
        payload: Parsed record or raw payload dictionary
        config: Assembly configuration

    Returns:
        ComposedReportData
    """
    record = payload if isinstance(payload, ReportRecord) else parse_report_record(payload)
    return ReportAssembler(config).assemble(record)
