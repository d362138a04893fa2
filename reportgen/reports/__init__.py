"""Report data package.

This module provides:
- Competency tiering and pagination
- Chart synthesis (radar profile, gap bars)
- Assembly of template-ready report data
"""

from reportgen.reports.assembler import (
    ReportAssembler,
    ReportAssemblerConfig,
    assemble_report,
)
from reportgen.reports.charts import render_gap_bars, render_radar
from reportgen.reports.classifier import (
    DEFAULT_LAYOUT_BREAKPOINTS,
    ClassifierConfig,
    CompetencyClassifier,
    classify_competencies,
)
from reportgen.reports.contract import (
    ComposedReportData,
    LayoutBreakpoints,
    LayoutClass,
    Tier,
    TierGroup,
    TierPage,
)

__all__ = [
    # Assembler
    "ReportAssembler",
    "ReportAssemblerConfig",
    "assemble_report",
    # Charts
    "render_radar",
    "render_gap_bars",
    # Classifier
    "ClassifierConfig",
    "CompetencyClassifier",
    "DEFAULT_LAYOUT_BREAKPOINTS",
    "classify_competencies",
    # Contract
    "ComposedReportData",
    "LayoutBreakpoints",
    "LayoutClass",
    "Tier",
    "TierGroup",
    "TierPage",
]
