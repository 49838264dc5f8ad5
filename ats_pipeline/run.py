"""Command-line runner: ingest one ATS export and report on it."""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ats_pipeline.canonical import (
    METRIC_DEFINITIONS,
    compute_metric,
    explain_time_to_offer,
    ingest_file,
    validate,
)
from ats_pipeline.canonical.export import build_frames, write_canonical_tables
from ats_pipeline.canonical.models import CanonicalIngestionResult
from ats_pipeline.config import OUTPUT_FORMATS, IngestionOptions, load_pipeline_config
from ats_pipeline.validation import build_quality_report, save_report, validate_frames
from ats_pipeline.validation.reporters import (
    breakdown_table,
    capabilities_table,
    metric_table,
    validation_table,
)

console = Console()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def stats_table(result: CanonicalIngestionResult) -> Table:
    stats = result.stats
    table = Table(title="Ingestion")
    table.add_column("Measure")
    table.add_column("Value", justify="right")

    table.add_row("Report types", ", ".join(str(t) for t in stats.report_types_detected))
    table.add_row("Rows", str(stats.total_rows))
    table.add_row("Requisitions", str(len(result.reqs)))
    table.add_row("Candidates", str(len(result.candidates)))
    table.add_row("Applications", str(len(result.applications)))
    table.add_row("Events", str(stats.events_emitted))
    table.add_row("Audit entries", str(len(result.audit_log)))
    table.add_row("Processing time", f"{stats.processing_time_ms:.1f} ms")
    return table


def detect_only(path: Path) -> None:
    match validate(path):
        case {"status": "ok", "report_type": report_type, "confidence": confidence, **rest}:
            console.print(
                f"[green]{path.name}: {report_type} ({confidence} confidence), "
                f"{rest.get('rows_available', 0)} rows[/green]"
            )
        case {"status": "error", "message": msg}:
            console.print(f"[red]{msg}[/red]")
            sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Ingest an ATS export into canonical tables")
    parser.add_argument("csv", type=Path, help="Path to the ATS CSV export")
    parser.add_argument("--max-rows", type=int, help="Only ingest the first N data rows")
    parser.add_argument("--metric", action="append", default=[], choices=sorted(METRIC_DEFINITIONS),
                        help="Compute a metric (repeatable)")
    parser.add_argument("--explain", action="store_true", help="Show the time-to-offer breakdown")
    parser.add_argument("--output-dir", type=Path, help="Validate and write canonical tables here")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, help="Output format for written tables")
    parser.add_argument("--detect-only", action="store_true", help="Only detect the report type")
    parser.add_argument("--report", choices=("table", "json", "summary"), default="table")
    parser.add_argument("--log-level", type=str, help="Logging level (default from config)")
    args = parser.parse_args()

    config = load_pipeline_config()
    configure_logging(args.log_level or config.log_level)

    if args.detect_only:
        detect_only(args.csv)
        return

    max_rows = args.max_rows if args.max_rows is not None else config.max_rows
    options = IngestionOptions(max_rows=max_rows)
    try:
        result = ingest_file(args.csv, options)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)

    console.print(stats_table(result))
    console.print(build_quality_report(result, args.report), markup=False, highlight=False)
    console.print(capabilities_table(result))

    if args.metric:
        results = [
            compute_metric(name, result.applications, result.events, result.capabilities)
            for name in args.metric
        ]
        console.print(metric_table(results))

    if args.explain:
        breakdown = explain_time_to_offer(
            result.applications, tolerance_days=config.invariant_tolerance_days,
        )
        console.print(breakdown_table(breakdown))

    valid = True
    if args.output_dir:
        outcomes = validate_frames(build_frames(result))
        console.print(validation_table(outcomes))
        valid = all(r["valid"] for r in outcomes.values())
        if valid:
            write_canonical_tables(result, args.output_dir, args.format or config.output_format)
            save_report(build_quality_report(result, "json"), args.output_dir, "quality_report")

    for warning in result.warnings:
        console.print(f"[yellow]{escape(warning)}[/yellow]")
    for error in result.errors:
        console.print(f"[red]{escape(error)}[/red]")

    if result.errors or not valid:
        sys.exit(1)


if __name__ == "__main__":
    main()
