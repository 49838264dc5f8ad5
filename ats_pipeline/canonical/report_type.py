"""Header-shape classification of an ATS export."""

from dataclasses import dataclass

from ats_pipeline.canonical.columns import HIRE_DATE_COLUMN, STAGE_COLUMN_PREFIX
from ats_pipeline.utils.types import ConfidenceGrade, Headers, ReportType


@dataclass(frozen=True)
class ReportDetection:
    type: ReportType
    confidence: ConfidenceGrade


def detect_report_type(headers: Headers) -> ReportDetection:
    """Classify an export from its header names alone.

    Diagnostic only: the result is logged and reported, parsing never branches
    on it.
    """
    has_req_id = any("Requisition ID" in h for h in headers)
    has_person_id = any("Person : System ID" in h for h in headers)
    has_stage_dates = any(h.startswith(STAGE_COLUMN_PREFIX) for h in headers)
    has_hire_date = HIRE_DATE_COLUMN in headers

    match (has_req_id and has_person_id, has_stage_dates or has_hire_date):
        case (True, True):
            return ReportDetection(ReportType.ICIMS_SUBMITTAL, ConfidenceGrade.HIGH)
        case (True, False):
            return ReportDetection(ReportType.ICIMS_SUBMITTAL, ConfidenceGrade.MEDIUM)
        case _:
            return ReportDetection(ReportType.UNKNOWN, ConfidenceGrade.LOW)
