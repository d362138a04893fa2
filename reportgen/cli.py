"""Command-line entry point.

Usage::

    reportgen record.json out/report.pdf [--report-id ID] [--html preview.html]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from reportgen.config import get_settings
from reportgen.exceptions import ReportGenError
from reportgen.logging import get_logger, setup_logging
from reportgen.pipeline import ReportPipeline
from reportgen.storage import build_object_key

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reportgen",
        description="Render a competency assessment record to a PDF report.",
    )
    parser.add_argument("input", type=Path, help="JSON file holding the report record")
    parser.add_argument("output", type=Path, help="Destination PDF path")
    parser.add_argument("--report-id", help="Report identifier (default: random UUID)")
    parser.add_argument(
        "--html",
        type=Path,
        help="Also write the composed markup to this path",
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    """Generate one report from parsed arguments."""
    settings = get_settings()

    try:
        payload = json.loads(args.input.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"error: cannot read {args.input}: {e}", file=sys.stderr)
        return 2

    try:
        pipeline = ReportPipeline(settings=settings)
        if args.html:
            args.html.write_text(pipeline.render_markup(payload), encoding="utf-8")
        result = await pipeline.generate(payload, args.output, report_id=args.report_id)
    except ReportGenError as e:
        logger.error("report_generation_failed", code=e.code, error=e.message, **e.details)
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    key = build_object_key(result.report_id, prefix=settings.storage_prefix)
    print(f"{key}\t{result.size_bytes} bytes")
    if result.degraded:
        print(f"degraded: {', '.join(result.degraded)}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
