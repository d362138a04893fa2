"""Test fixtures for report generation."""

from tests.fixtures.records import (
    make_record,
    make_record_payload,
    scored,
    scored_items,
)

__all__ = [
    "make_record",
    "make_record_payload",
    "scored",
    "scored_items",
]
