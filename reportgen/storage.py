"""Object-key naming for finished reports.

Keys look like ``reports/2024/03/07/report-<id>.pdf``: grouped by UTC date so
listings sort chronologically, unique as long as the report id is.
"""

from datetime import UTC, datetime

from reportgen.exceptions import ValidationError


def build_object_key(
    report_id: str,
    when: datetime | None = None,
    ext: str = "pdf",
    prefix: str = "reports",
) -> str:
    """
    Build the storage key for a report.

    Args:
        report_id: Globally unique report identifier
        when: Timestamp to date the key by, defaults to now (UTC)
        ext: File extension without the dot
        prefix: Top-level key prefix

    Returns:
        Object key string

    Raises:
        ValidationError: if report_id is empty or contains a path separator
    """
    if not report_id or "/" in report_id:
        raise ValidationError("Report id must be non-empty and contain no '/'", field="report_id")

    when = when or datetime.now(UTC)
    if when.tzinfo is not None:
        when = when.astimezone(UTC)

    return f"{prefix.strip('/')}/{when:%Y/%m/%d}/report-{report_id}.{ext.lstrip('.')}"
