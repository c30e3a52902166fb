"""Command line entry points for the platform analytics toolkit."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import structlog

from platform_analytics.analyses.reports import CustomReport, ReportType, run_report
from platform_analytics.foundation.periods import DEFAULT_PERIOD
from platform_analytics.monitoring.exports import (
    export_analytics_csv,
    export_analytics_json,
    export_analytics_markdown,
)
from platform_analytics.pandas.store import DataFrameDataStore
from platform_analytics.service import AnalyticsAggregationError, PlatformAnalyticsService

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM

_EXPORTERS = {
    "json": export_analytics_json,
    "csv": export_analytics_csv,
    "markdown": export_analytics_markdown,
}


def _configure_logging() -> None:
    # stdout is reserved for command output
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load_store(path: Path) -> DataFrameDataStore:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    return DataFrameDataStore.from_json_file(resolved)


def _resolve_output(path: Path) -> Path:
    output_path = path.resolve()
    cwd = Path.cwd().resolve()
    try:
        output_path.relative_to(cwd)
    except ValueError:
        raise ValueError(
            f"Output path {output_path} must reside within the current working directory"
        )
    return output_path


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def platform_analytics_cli(argv: list[str] | None = None) -> int:
    """Compute period-over-period platform analytics from a JSON tables file.

    The input is a JSON object mapping table names (organizations, memberships,
    users, agent_runs, usage_records, subscriptions, sessions, audit_logs) to
    lists of rows.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Compute platform analytics from a JSON tables file"
    )
    parser.add_argument("input", type=Path, help="Path to JSON file with tables")
    parser.add_argument(
        "--period",
        default=DEFAULT_PERIOD,
        help="Period length in days, e.g. 30d or 7 (default: 30d)",
    )
    parser.add_argument(
        "--now",
        type=str,
        help="End of the current window (ISO format). Defaults to the current time.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path for writing the result (stdout JSON when omitted)",
    )
    parser.add_argument(
        "--format",
        choices=sorted(_EXPORTERS),
        default="json",
        help="Output format when --output is given (default: json)",
    )

    args = parser.parse_args(argv)
    _configure_logging()

    logger.info(f"Loading tables from {args.input}")
    store = _load_store(args.input)
    service = PlatformAnalyticsService(store)

    try:
        analytics = asyncio.run(service.compute(args.period, now=_parse_now(args.now)))
    except AnalyticsAggregationError as e:
        logger.error(f"Analytics error: {e.__cause__ or e}")
        return 1

    if args.output:
        output_path = _resolve_output(args.output)
        _EXPORTERS[args.format](analytics, output_path)
        logger.info(f"Analytics ({analytics.period.label}) exported to {output_path}")
    else:  # stdout fallback enables piping in shell usage.
        json.dump({"data": analytics.as_dict()}, fp=sys.stdout, indent=2)
        print()

    return 0


def run_report_cli(argv: list[str] | None = None) -> int:
    """Run an ad-hoc custom report against a JSON tables file.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(description="Run a custom analytics report")
    parser.add_argument("input", type=Path, help="Path to JSON file with tables")
    parser.add_argument(
        "--type",
        dest="report_type",
        required=True,
        choices=[item.value for item in ReportType],
        help="Report type",
    )
    parser.add_argument(
        "--days", type=int, default=30, help="Lookback in days (default: 30)"
    )
    parser.add_argument(
        "--output", type=Path, help="Optional path for writing the result as JSON"
    )

    args = parser.parse_args(argv)
    _configure_logging()

    store = _load_store(args.input)
    report = CustomReport(
        report_id="cli",
        name=f"{args.report_type.lower()} report",
        report_type=args.report_type,
        query={"days": args.days},
    )
    result = asyncio.run(run_report(report, store))
    payload = {"success": True, "result": result.as_dict()}

    if args.output:
        output_path = _resolve_output(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
        logger.info(f"Report exported to {output_path}")
    else:
        json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
        print()

    return 0


def main() -> None:
    raise SystemExit(platform_analytics_cli())


def report_main() -> None:
    raise SystemExit(run_report_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
