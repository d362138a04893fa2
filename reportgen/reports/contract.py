"""Derived report data structures.

These are the structures the assembler builds from a ``ReportRecord`` and
the template layer reads through ``to_dict()``. They live for one report
generation and are never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from reportgen.schemas import ScoredItem


class Tier(str, Enum):
    """Score tier of a competency."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> "Tier":
        """Classify a score: >= 7 high, 5 <= s < 7 medium, < 5 low."""
        if score >= 7:
            return cls.HIGH
        if score >= 5:
            return cls.MEDIUM
        return cls.LOW

    @property
    def display_name(self) -> str:
        return TIER_DISPLAY_NAMES[self]


TIER_DISPLAY_NAMES = {
    Tier.HIGH: "Strengths",
    Tier.MEDIUM: "Development areas",
    Tier.LOW: "Opportunities",
}

# Template iteration order
TIER_ORDER = (Tier.HIGH, Tier.MEDIUM, Tier.LOW)


class LayoutClass(str, Enum):
    """Card density of a competency page, largest first."""

    XL = "xl"
    LG = "lg"
    MD = "md"
    SM = "sm"
    XS = "xs"
    FIXED = "fixed"  # natural height, content flows


@dataclass(frozen=True)
class LayoutBreakpoints:
    """Step function from item count to layout class.

    ``steps`` is an ordered sequence of ``(max_count, layout_class)`` pairs;
    the first step whose ``max_count`` is >= the count wins. Counts beyond
    the last step get ``overflow``.
    """

    steps: tuple[tuple[int, LayoutClass], ...]
    overflow: LayoutClass = LayoutClass.FIXED

    def __post_init__(self) -> None:
        limits = [limit for limit, _ in self.steps]
        if any(b <= a for a, b in zip(limits, limits[1:], strict=False)):
            raise ValueError("Layout breakpoints must be strictly increasing")

    def classify(self, count: int) -> LayoutClass:
        """Return the layout class for a page holding ``count`` items."""
        for limit, layout_class in self.steps:
            if count <= limit:
                return layout_class
        return self.overflow


@dataclass(frozen=True)
class ScoreBand:
    """Display metadata for a score: label and two-tone color pair."""

    key: str
    label: str
    color: str
    bg_color: str

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "label": self.label,
            "color": self.color,
            "bg_color": self.bg_color,
        }


@dataclass
class ClassifiedItem:
    """A scored item with its derived tier and display band."""

    item: ScoredItem
    tier: Tier
    band: ScoreBand

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def score(self) -> float:
        return self.item.score

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            **self.item.model_dump(),
            "tier": self.tier.value,
            "band": self.band.to_dict(),
        }


@dataclass
class TierPage:
    """One document page worth of items from a tier."""

    index: int
    items: list[ClassifiedItem]
    layout_class: LayoutClass

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "count": len(self.items),
            "layout_class": self.layout_class.value,
            # Not "items": templates read keys as attributes and dict.items would shadow it
            "cards": [item.to_dict() for item in self.items],
        }


@dataclass
class TierGroup:
    """All items of one tier and the pages they are laid out on."""

    tier: Tier
    items: list[ClassifiedItem] = field(default_factory=list)
    pages: list[TierPage] = field(default_factory=list)
    layout_class: LayoutClass | None = None

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def is_split(self) -> bool:
        return len(self.pages) > 1

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "tier": self.tier.value,
            "title": self.tier.display_name,
            "count": self.count,
            "layout_class": self.layout_class.value if self.layout_class else None,
            "is_split": self.is_split,
            "cards": [item.to_dict() for item in self.items],
            "pages": [page.to_dict() for page in self.pages],
        }


@dataclass
class GapEntry:
    """Gap analysis row with its resolved gap value."""

    competency_name: str
    required: float
    actual: float
    gap: float
    gap_supplied: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "competency_name": self.competency_name,
            "required": self.required,
            "actual": self.actual,
            "gap": self.gap,
            "gap_supplied": self.gap_supplied,
        }


@dataclass
class TimelineStep:
    """Timeline entry with a resolved sequence number."""

    sequence_number: int
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {**self.payload, "sequence_number": self.sequence_number}


@dataclass
class BrandingAssets:
    """Resolved logos; ``None`` means the image is left out."""

    organization_name: str | None = None
    organization_logo: str | None = None
    platform_logo: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "organization_name": self.organization_name,
            "organization_logo": self.organization_logo,
            "platform_logo": self.platform_logo,
        }


@dataclass
class ComposedReportData:
    """Everything the template needs for one report."""

    personal_data: dict[str, Any]
    competencies: dict[Tier, TierGroup]
    competency_source: str  # "flat" or "tiered"
    strengths: list[ClassifiedItem] = field(default_factory=list)
    opportunities: list[ClassifiedItem] = field(default_factory=list)

    # Charts as data URIs
    radar_chart: str | None = None
    gap_chart: str | None = None

    # Employability
    overall_match: float | None = None
    gap_analysis: list[GapEntry] = field(default_factory=list)
    timeline: list[TimelineStep] = field(default_factory=list)

    # Always-present sections
    action_plan: dict[str, Any] = field(default_factory=dict)
    general_profile: dict[str, Any] = field(default_factory=dict)
    conclusions: dict[str, Any] = field(default_factory=dict)

    branding: BrandingAssets = field(default_factory=BrandingAssets)

    # Record keys the pipeline does not interpret, passed to the template as-is
    extra: dict[str, Any] = field(default_factory=dict)

    # Names of visual elements left out after a recoverable failure
    degraded: list[str] = field(default_factory=list)

    def tier_groups(self) -> list[TierGroup]:
        """Non-empty tier groups in display order."""
        return [
            self.competencies[tier]
            for tier in TIER_ORDER
            if tier in self.competencies and not self.competencies[tier].is_empty
        ]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            **self.extra,
            "personal_data": self.personal_data,
            "competencies": {
                tier.value: group.to_dict() for tier, group in self.competencies.items()
            },
            "tier_groups": [group.to_dict() for group in self.tier_groups()],
            "competency_source": self.competency_source,
            "strengths": [item.to_dict() for item in self.strengths],
            "opportunities": [item.to_dict() for item in self.opportunities],
            "radar_chart": self.radar_chart,
            "gap_chart": self.gap_chart,
            "employability": {
                "overall_match": self.overall_match,
                "gap_analysis": [entry.to_dict() for entry in self.gap_analysis],
                "timeline": [step.to_dict() for step in self.timeline],
            },
            "action_plan": self.action_plan,
            "general_profile": self.general_profile,
            "conclusions": self.conclusions,
            "branding": self.branding.to_dict(),
            "degraded": list(self.degraded),
        }
