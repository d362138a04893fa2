"""Report record input contract.

The record arrives already checked by the caller; these models describe its
shape and give the pipeline typed access. Both snake_case and the camelCase
keys of the public payload are accepted.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from reportgen.exceptions import ValidationError


class ContractModel(BaseModel):
    """Base model: camelCase aliases, extra keys carried through."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class ScoredItem(ContractModel):
    """A scored competency."""

    name: str
    score: float = Field(..., ge=1, le=10)
    description: str = ""
    detailed_analysis: str | None = None


class TieredCompetencies(ContractModel):
    """Competencies already split into tiers by the caller."""

    high: list[ScoredItem] = Field(default_factory=list)
    medium: list[ScoredItem] = Field(default_factory=list)
    low: list[ScoredItem] = Field(default_factory=list)


class PersonalData(ContractModel):
    """Person the report is about."""

    name: str
    email: str
    organization_logo: str | None = None


class RadarChartData(ContractModel):
    """Input for the radar profile chart."""

    labels: list[str] = Field(default_factory=list)
    series: list[list[float]] = Field(default_factory=list)


class GapAnalysisEntry(ContractModel):
    """Required vs. actual level for one competency."""

    competency_name: str
    required: float = Field(..., ge=1, le=10)
    actual: float = Field(..., ge=1, le=10)
    gap: float | None = None


class TimelineEntry(ContractModel):
    """One step of the employability timeline; extra keys are the payload."""

    sequence_number: int | None = None


class EmployabilityAnalysis(ContractModel):
    """Employability section of the record."""

    overall_match: float | None = Field(None, ge=0, le=100)
    gap_analysis: list[GapAnalysisEntry] = Field(default_factory=list)
    timeline: list[TimelineEntry] = Field(default_factory=list)


class ActionPhase(ContractModel):
    """One phase of the action plan."""

    number: int
    duration: str
    description: str


class ActionPlan(ContractModel):
    """Action plan section of the record."""

    phases: list[ActionPhase] = Field(default_factory=list)


class Organization(ContractModel):
    """Organization commissioning the report."""

    name: str | None = None
    image_url: str | None = None


class Branding(ContractModel):
    """Legacy branding block."""

    platform_logo: str | None = None


class ReportRecord(ContractModel):
    """Complete input for one report."""

    personal_data: PersonalData
    competencies: list[ScoredItem] | TieredCompetencies
    radar_chart_data: RadarChartData | None = None
    employability_analysis: EmployabilityAnalysis | None = None
    action_plan: ActionPlan | None = None
    organization: Organization | None = None
    general_profile: dict[str, Any] | None = None
    conclusions: dict[str, Any] | None = None
    platform_logo_url: str | None = None
    branding: Branding | None = None


def parse_report_record(payload: dict[str, Any]) -> ReportRecord:
    """
    Parse a raw payload into a ReportRecord.

    Raises:
        ValidationError: naming the first field that breaks the contract
    """
    try:
        return ReportRecord.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{field}: {first['msg']}", field=field) from e
