"""Ingestion orchestrator: one complete CSV snapshot in, canonical tables out."""

import logging
import time
from datetime import datetime
from pathlib import Path

from ats_pipeline.canonical.builders import (
    build_application,
    build_candidate,
    build_events,
    build_requisition,
)
from ats_pipeline.canonical.capabilities import compute_capabilities
from ats_pipeline.canonical.columns import HIRE_DATE_COLUMN, STAGE_COLUMN_PREFIX
from ats_pipeline.canonical.context import IngestionContext
from ats_pipeline.canonical.events import extract_stage_events
from ats_pipeline.canonical.models import CanonicalIngestionResult, IngestionStats
from ats_pipeline.canonical.quality import generate_quality_report
from ats_pipeline.canonical.report_type import detect_report_type
from ats_pipeline.config import IngestionOptions
from ats_pipeline.utils.io import CsvDocument, read_ats_export, tokenize_csv
from ats_pipeline.utils.types import (
    AuditAction,
    ConfidenceGrade,
    EntityType,
    EventKind,
    Headers,
    RawRow,
)

logger = logging.getLogger(__name__)


def _header_warnings(headers: Headers) -> list[str]:
    stage_columns = [h for h in headers if h.startswith(STAGE_COLUMN_PREFIX)]
    has_hire_date = HIRE_DATE_COLUMN in headers
    if stage_columns or has_hire_date:
        hire = HIRE_DATE_COLUMN if has_hire_date else "no hire date"
        return [f"Found {len(stage_columns)} stage timestamp columns and {hire}"]
    return [f'No "{STAGE_COLUMN_PREFIX}" columns found. Events will be limited.']


def _process_row(row: RawRow, headers: Headers, ctx: IngestionContext) -> None:
    stage_events = extract_stage_events(row, headers)
    req = build_requisition(row, headers, ctx)
    candidate = build_candidate(row, headers, ctx)
    if req is None or candidate is None:
        return

    application = build_application(row, headers, ctx, candidate, req, stage_events)
    ctx.applications.append(application)
    ctx.events.extend(build_events(application, stage_events, ctx))

    if stage_events:
        latest = stage_events[-1].event_at
        if req.last_activity_at is None or latest > req.last_activity_at:
            req.last_activity_at = latest


def ingest_document(
    document: CsvDocument,
    filename: str,
    options: IngestionOptions | None = None,
) -> CanonicalIngestionResult:
    """Run the canonical pipeline over an already-tokenized export.

    Rows are processed in file order; requisition/candidate deduplication and
    ``last_activity_at`` advancement depend only on that order. Nothing in
    here raises for bad data: problems end up in the audit log and in the
    result's ``warnings``/``errors``.
    """
    options = options or IngestionOptions()
    started = time.perf_counter()
    ctx = IngestionContext(filename=filename, ingested_at=options.ingested_at or datetime.now())

    headers = list(document.headers)
    rows = list(document.rows)
    if not headers:
        ctx.errors.append(f"No headers found in {filename}")

    ctx.audit.log(
        AuditAction.INGEST_FILE, EntityType.FILE, filename,
        rows_in=len(rows), rows_out=len(rows),
        details={"headers_count": len(headers)},
    )

    detection = detect_report_type(headers)
    ctx.audit.log(
        AuditAction.DETECT_REPORT_TYPE, EntityType.FILE, filename,
        details={"type": str(detection.type), "confidence": str(detection.confidence)},
    )
    logger.info("Detected %s report (%s confidence) in %s", detection.type, detection.confidence, filename)
    if detection.confidence is ConfidenceGrade.LOW and headers:
        ctx.warnings.append("Report layout not recognized; requisition and person ID columns may be missing")

    ctx.warnings.extend(_header_warnings(headers))

    if headers and not rows:
        ctx.warnings.append("File contains no data rows")
    if options.max_rows is not None and len(rows) > options.max_rows:
        ctx.warnings.append(f"Processing first {options.max_rows} of {len(rows)} rows")
        rows = rows[:options.max_rows]

    for index, row in enumerate(rows, start=1):
        ctx.row_index = index
        _process_row(row, headers, ctx)

    reqs = list(ctx.reqs.values())
    candidates = list(ctx.candidates.values())
    audit_log = ctx.audit.entries
    capabilities = compute_capabilities(ctx.events)

    report = generate_quality_report(
        reqs, candidates, ctx.applications, ctx.events, audit_log, capabilities,
        headers=headers,
        total_rows=len(rows),
        unmapped_statuses=ctx.unmapped_status_report(),
        warnings=ctx.warnings,
        errors=ctx.errors,
    )
    if report.total_rows_dropped:
        logger.warning("Dropped %d of %d rows from %s", report.total_rows_dropped, len(rows), filename)
    if ctx.unmapped_counts:
        logger.warning("%d distinct unmapped status values in %s", len(ctx.unmapped_counts), filename)

    point_in_time = sum(1 for e in ctx.events if e.event_kind is EventKind.POINT_IN_TIME)
    stats = IngestionStats(
        files_processed=1,
        total_rows=len(rows),
        processing_time_ms=(time.perf_counter() - started) * 1000,
        report_types_detected=[detection.type],
        events_emitted=len(ctx.events),
        point_in_time_events=point_in_time,
        snapshot_diff_events=len(ctx.events) - point_in_time,
    )
    logger.info(
        "Ingested %s: %d reqs, %d candidates, %d applications, %d events",
        filename, len(reqs), len(candidates), len(ctx.applications), len(ctx.events),
    )

    return CanonicalIngestionResult(
        success=not ctx.errors,
        reqs=reqs,
        candidates=candidates,
        applications=list(ctx.applications),
        events=list(ctx.events),
        capabilities=capabilities,
        audit_log=audit_log,
        quality_report=report,
        stats=stats,
        errors=list(ctx.errors),
        warnings=list(ctx.warnings),
    )


def ingest_csv_to_canonical(
    content: str,
    filename: str,
    options: IngestionOptions | None = None,
) -> CanonicalIngestionResult:
    """Tokenize a CSV document (headers trimmed) and ingest it."""
    return ingest_document(tokenize_csv(content, trim_headers=True), filename, options)


def ingest_file(path: str | Path, options: IngestionOptions | None = None) -> CanonicalIngestionResult:
    path = Path(path)
    logger.info("Reading ATS export: %s", path.name)
    return ingest_csv_to_canonical(read_ats_export(path), path.name, options)
