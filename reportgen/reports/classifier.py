"""Competency classifier and paginator.

Groups scored competencies into the three score tiers and decides how many
pages each tier needs, giving every page a layout class so the cards fill a
fixed page height whatever the item count.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog

from reportgen.reports.contract import (
    TIER_ORDER,
    ClassifiedItem,
    LayoutBreakpoints,
    LayoutClass,
    ScoreBand,
    Tier,
    TierGroup,
    TierPage,
)
from reportgen.schemas import ScoredItem

logger = structlog.get_logger(__name__)

DEFAULT_LAYOUT_BREAKPOINTS = LayoutBreakpoints(
    steps=(
        (3, LayoutClass.XL),
        (5, LayoutClass.LG),
        (8, LayoutClass.MD),
        (12, LayoutClass.SM),
        (20, LayoutClass.XS),
    ),
)

# Lower bound -> band, highest first
SCORE_BANDS: tuple[tuple[float, ScoreBand], ...] = (
    (9, ScoreBand("exceptional", "Exceptional", "#10B981", "#D1FAE5")),
    (7, ScoreBand("high", "High", "#10B981", "#D1FAE5")),
    (5, ScoreBand("medium", "Medium", "#F59E0B", "#FEF3C7")),
    (3, ScoreBand("low", "Low", "#EF4444", "#FFE4E6")),
)
CRITICAL_BAND = ScoreBand("critical", "Very low", "#DC2626", "#FFE4E6")


def band_for_score(score: float) -> ScoreBand:
    """Return the display band for a score."""
    for lower_bound, band in SCORE_BANDS:
        if score >= lower_bound:
            return band
    return CRITICAL_BAND


def classify_item(item: ScoredItem) -> ClassifiedItem:
    """Attach tier and display band to a single item."""
    return ClassifiedItem(
        item=item,
        tier=Tier.from_score(item.score),
        band=band_for_score(item.score),
    )


def split_evenly(items: Sequence[ClassifiedItem]) -> tuple[list, list]:
    """Split into ceil(n/2) and the remainder, preserving order."""
    head = math.ceil(len(items) / 2)
    return list(items[:head]), list(items[head:])


@dataclass
class ClassifierConfig:
    """Capacity and pagination thresholds."""

    max_items_per_tier: int = 12  # page budget, extra items are dropped
    single_page_threshold: int = 7  # above this a tier spans two pages
    breakpoints: LayoutBreakpoints = DEFAULT_LAYOUT_BREAKPOINTS


class CompetencyClassifier:
    """Classifies scored items into tier groups laid out on pages."""

    def __init__(self, config: ClassifierConfig | None = None):
        self.config = config or ClassifierConfig()

    def classify(self, items: Iterable[ScoredItem]) -> dict[Tier, TierGroup]:
        """
        Classify a flat list of scored items.

        Every tier is present in the result; empty tiers carry no pages and
        no layout class.

        Args:
            items: Scored items in input order

        Returns:
            Mapping of tier to its sorted, capped, paginated group
        """
        buckets: dict[Tier, list[ClassifiedItem]] = {tier: [] for tier in TIER_ORDER}
        for item in items:
            classified = classify_item(item)
            buckets[classified.tier].append(classified)

        groups: dict[Tier, TierGroup] = {}
        for tier in TIER_ORDER:
            # sorted() is stable, so equal scores keep input order
            ranked = sorted(buckets[tier], key=lambda c: c.score, reverse=True)
            cap = self.config.max_items_per_tier
            if len(ranked) > cap:
                logger.info(
                    "tier_truncated",
                    tier=tier.value,
                    received=len(ranked),
                    kept=cap,
                )
                ranked = ranked[:cap]
            groups[tier] = self.paginate(tier, ranked)

        return groups

    def classify_pretiered(
        self,
        tiers: dict[Tier, Sequence[ScoredItem]],
        cap: bool = False,
    ) -> dict[Tier, TierGroup]:
        """
        Lay out items the caller already split into tiers.

        Items keep the caller's order and tier assignment; each tier only
        gets a layout class. With ``cap`` the per-tier capacity applies too.
        """
        groups: dict[Tier, TierGroup] = {}
        for tier in TIER_ORDER:
            classified = [
                ClassifiedItem(item=item, tier=tier, band=band_for_score(item.score))
                for item in tiers.get(tier, ())
            ]
            if cap:
                classified = classified[: self.config.max_items_per_tier]
            groups[tier] = self.single_page(tier, classified)
        return groups

    def paginate(self, tier: Tier, items: list[ClassifiedItem]) -> TierGroup:
        """Build a tier group, splitting into two pages above the threshold."""
        if not items:
            return TierGroup(tier=tier)

        if len(items) <= self.config.single_page_threshold:
            return self.single_page(tier, items)

        first, second = split_evenly(items)
        pages = [
            TierPage(index=0, items=first, layout_class=self.layout_for(len(first))),
            TierPage(index=1, items=second, layout_class=self.layout_for(len(second))),
        ]
        return TierGroup(
            tier=tier,
            items=items,
            pages=pages,
            layout_class=self.layout_for(len(items)),
        )

    def single_page(self, tier: Tier, items: list[ClassifiedItem]) -> TierGroup:
        """Build a tier group that fits on one page."""
        if not items:
            return TierGroup(tier=tier)
        layout_class = self.layout_for(len(items))
        return TierGroup(
            tier=tier,
            items=items,
            pages=[TierPage(index=0, items=items, layout_class=layout_class)],
            layout_class=layout_class,
        )

    def layout_for(self, count: int) -> LayoutClass:
        """Layout class for a page holding ``count`` items."""
        return self.config.breakpoints.classify(count)


def classify_competencies(
    items: Iterable[ScoredItem],
    config: ClassifierConfig | None = None,
) -> dict[Tier, TierGroup]:
    """Convenience function to classify a flat competency list."""
    return CompetencyClassifier(config).classify(items)
