"""Ingestion and quality report formatting.

Turns a canonical ingestion result into the shapes the CLI prints or saves:
a rich table, a JSON document, or a one-screen summary.
"""

import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ats_pipeline.canonical.explain import TimeToOfferBreakdown
from ats_pipeline.canonical.metrics import MetricResult
from ats_pipeline.canonical.models import CanonicalIngestionResult
from ats_pipeline.utils.validators import ValidationResult

type ReportFormat = str  # "table" | "json" | "summary"

console = Console()


def build_quality_report(
    result: CanonicalIngestionResult,
    output_format: ReportFormat = "table",
) -> str:
    """Format the quality report of an ingestion run."""
    match output_format:
        case "json":
            return _to_json(result)
        case "summary":
            return _to_summary(result)
        case "table" | _:
            return _to_table(result)


def _to_json(result: CanonicalIngestionResult) -> str:
    report = {
        "success": result.success,
        "stats": asdict(result.stats),
        "quality_report": asdict(result.quality_report),
        "errors": result.errors,
        "warnings": result.warnings,
    }
    return json.dumps(report, indent=2, default=str)


def _to_summary(result: CanonicalIngestionResult) -> str:
    report = result.quality_report
    lines = [
        f"[quality] score {report.overall_quality_score}/100 ({report.total_files_processed} file)",
        f"  rows: {report.total_rows_accepted}/{report.total_rows_processed} accepted,"
        f" {report.total_rows_dropped} dropped",
        f"  reqs={report.reqs_count} candidates={report.candidates_count}"
        f" applications={report.applications_count} events={report.events_count}",
    ]
    for status in report.unmapped_statuses:
        lines.append(f"  UNMAPPED: {status.raw_value!r} x{status.count}")
    for metric in report.capabilities.unavailable_metrics:
        lines.append(f"  BLOCKED: {metric.metric} ({metric.reason})")
    for error in result.errors:
        lines.append(f"  ERROR: {error}")
    return "\n".join(lines)


def _render(table: Table) -> str:
    buf = Console(file=None, force_terminal=False)
    with buf.capture() as capture:
        buf.print(table)
    return capture.get()


def _to_table(result: CanonicalIngestionResult) -> str:
    report = result.quality_report
    table = Table(title=f"Data quality: {report.overall_quality_score}/100")
    table.add_column("Field", style="cyan")
    table.add_column("Missing", justify="right")
    table.add_column("Percent", justify="right")
    table.add_column("Sample IDs")

    for stat in report.missingness:
        table.add_row(
            stat.field,
            f"{stat.missing_count}/{stat.total_records}",
            f"{stat.missing_percent:.1f}%",
            ", ".join(stat.sample_ids),
        )

    rules = Table(title="Confidence rules")
    rules.add_column("Rule", style="cyan")
    rules.add_column("Status", style="bold")
    rules.add_column("Affected", justify="right")
    for rule in report.confidence_rules:
        status = "[green]PASS[/green]" if rule.passed else "[red]FAIL[/red]"
        rules.add_row(rule.rule_name, status, f"{rule.affected_count}/{rule.total_count}")

    return _render(table) + _render(rules)


def capabilities_table(result: CanonicalIngestionResult) -> Table:
    capabilities = result.capabilities
    table = Table(title="Metric availability")
    table.add_column("Metric", style="cyan")
    table.add_column("Available", style="bold")
    table.add_column("Reason")

    for metric in capabilities.available_metrics:
        table.add_row(metric, "[green]✓[/green]", "")
    for metric in capabilities.unavailable_metrics:
        table.add_row(metric.metric, "[red]✗[/red]", metric.reason)
    return table


def metric_table(results: list[MetricResult]) -> Table:
    table = Table(title="Metrics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Included", justify="right")
    table.add_column("Excluded", justify="right")
    table.add_column("Confidence")
    table.add_column("Notes")

    for r in results:
        match r:
            case MetricResult(computation_possible=False, computation_blocked_reason=reason):
                value, notes = "[red]blocked[/red]", reason or ""
            case MetricResult(value=None):
                value, notes = "-", "; ".join(e.reason for e in r.exclusions)
            case _:
                value, notes = f"{r.value:g} {r.definition.unit}", "; ".join(r.confidence_reasons)
        table.add_row(
            r.metric_name,
            value,
            str(r.included_count),
            str(r.excluded_count),
            str(r.confidence_grade),
            notes,
        )
    return table


def breakdown_table(breakdown: TimeToOfferBreakdown) -> Table:
    table = Table(title="Time to offer")
    table.add_column("Phase", style="cyan")
    table.add_column("Median days", justify="right")

    def fmt(value: float | None) -> str:
        return "-" if value is None else f"{value:g}"

    table.add_row("Applied → first interview", fmt(breakdown.applied_to_first_interview_days))
    table.add_row("First interview → offer", fmt(breakdown.first_interview_to_offer_days))
    table.add_row("[bold]Total[/bold]", fmt(breakdown.total_days))
    table.caption = (
        f"{breakdown.included_count} included, {breakdown.excluded_count} excluded; "
        + ("invariant holds" if breakdown.math_invariant_valid
           else f"{len(breakdown.math_invariant_errors)} invariant violations")
    )
    return table


def validation_table(results: dict[str, ValidationResult]) -> Table:
    table = Table(title="Schema validation")
    table.add_column("Table")
    table.add_column("Valid")
    table.add_column("Details")

    for name, r in results.items():
        status = "[green]✓[/green]" if r["valid"] else "[red]✗[/red]"
        detail = "; ".join(r["errors"][:3]) or "OK"
        table.add_row(name, status, detail)
    return table


def save_report(
    report: str | dict,
    output_dir: Path,
    name: str,
    fmt: ReportFormat = "json",
) -> Path:
    """Persist a report to disk."""
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    match fmt:
        case "json":
            path = output_dir / f"{name}_{timestamp}.json"
            content = report if isinstance(report, str) else json.dumps(report, indent=2, default=str)
        case _:
            path = output_dir / f"{name}_{timestamp}.txt"
            content = str(report)

    path.write_text(content)
    console.print(f"  Report saved: {path}")
    return path
