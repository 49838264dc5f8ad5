"""ATS canonical data layer.

Ingests iCIMS-style submittal exports into requisitions, candidates,
applications and immutable stage events, with a full audit trail, a data
quality report and metrics that refuse to compute on missing evidence.
"""

from pathlib import Path

from ats_pipeline.canonical.capabilities import compute_capabilities
from ats_pipeline.canonical.explain import explain_time_to_offer
from ats_pipeline.canonical.ingest import ingest_csv_to_canonical, ingest_document, ingest_file
from ats_pipeline.canonical.metrics import METRIC_DEFINITIONS, compute_metric
from ats_pipeline.canonical.report_type import detect_report_type
from ats_pipeline.utils.io import read_ats_export, tokenize_csv
from ats_pipeline.utils.types import ReportType


def validate(path: str | Path) -> dict[str, str | int]:
    """Check that an export is readable and looks like a supported report."""
    try:
        document = tokenize_csv(read_ats_export(path))
    except (FileNotFoundError, ValueError) as exc:
        return {"status": "error", "message": str(exc)}

    detection = detect_report_type(document.headers)
    match detection.type:
        case ReportType.UNKNOWN:
            return {"status": "error", "message": f"Unrecognized report layout in {Path(path).name}"}
        case report_type:
            return {
                "status": "ok",
                "report_type": str(report_type),
                "confidence": str(detection.confidence),
                "rows_available": len(document.rows),
            }
