"""Report record factories."""

from __future__ import annotations

import copy
from typing import Any

from reportgen.schemas import ReportRecord, ScoredItem

_BASE_PAYLOAD: dict[str, Any] = {
    "personalData": {
        "name": "Ana Torres",
        "email": "ana.torres@example.com",
    },
    "competencies": [
        {"name": "Communication", "score": 9, "description": "Clear and structured"},
        {"name": "Teamwork", "score": 7.5},
        {"name": "Planning", "score": 6},
        {"name": "Negotiation", "score": 5},
        {"name": "Data analysis", "score": 3.5},
        {"name": "Public speaking", "score": 2},
    ],
    "radarChartData": {
        "labels": ["Communication", "Teamwork", "Planning", "Negotiation", "Data analysis"],
        "series": [[9, 7.5, 6, 5, 3.5]],
    },
    "employabilityAnalysis": {
        "overallMatch": 72,
        "gapAnalysis": [
            {"competencyName": "Planning", "required": 8, "actual": 6},
            {"competencyName": "Data analysis", "required": 7, "actual": 3.5, "gap": 3.5},
        ],
        "timeline": [
            {"title": "Course", "period": "Month 1-2", "description": "Analytics basics"},
            {"title": "Project", "period": "Month 3", "sequenceNumber": 5},
        ],
    },
    "actionPlan": {
        "phases": [
            {"number": 1, "duration": "4 weeks", "description": "Structured planning course"},
        ]
    },
    "generalProfile": {"summary": "Strong communicator with room to grow in analysis."},
    "conclusions": {"summary": "Ready for a junior lead role.", "recommendations": ["Mentoring"]},
}


def make_record_payload(**overrides: Any) -> dict[str, Any]:
    """Return a fresh payload, with top-level keys replaced by ``overrides``."""
    payload = copy.deepcopy(_BASE_PAYLOAD)
    for key, value in overrides.items():
        if value is None:
            payload.pop(key, None)
        else:
            payload[key] = value
    return payload


def make_record(**overrides: Any) -> ReportRecord:
    """Return a parsed record built from ``make_record_payload``."""
    return ReportRecord.model_validate(make_record_payload(**overrides))


def scored(name: str, score: float, **extra: Any) -> ScoredItem:
    """Shorthand for a scored item."""
    return ScoredItem(name=name, score=score, **extra)


def scored_items(*scores: float, prefix: str = "Competency") -> list[ScoredItem]:
    """Scored items named ``<prefix> 1..n`` with the given scores."""
    return [scored(f"{prefix} {i}", score) for i, score in enumerate(scores, start=1)]
