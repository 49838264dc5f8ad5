"""Shared fixtures: in-memory iCIMS exports and canonical record factories."""

from datetime import datetime

import pandas as pd
import pytest

from ats_pipeline.canonical.models import ApplicationCanonical, ConfidenceMetadata, SourceTrace
from ats_pipeline.config import IngestionOptions
from ats_pipeline.utils.types import ConfidenceGrade, Disposition

ICIMS_HEADERS = [
    "Job : Requisition ID",
    "Job : Job Title and Job Code",
    "Hiring Manager : Full Name: First Last",
    "Recruiter : Full Name: First Last",
    "Person : System ID",
    "Person : Full Name: First Last",
    "Source",
    "Status",
    "Date First Interviewed: Phone Screen",
    "Date First Interviewed: Onsite",
    "Date First Interviewed: Offer Letter",
    "Hire/Rehire Date",
]


@pytest.fixture
def ingested_at() -> datetime:
    return datetime(2024, 6, 1, 12, 0)


@pytest.fixture
def options(ingested_at) -> IngestionOptions:
    return IngestionOptions(ingested_at=ingested_at)


@pytest.fixture
def icims_row():
    """Factory for one submittal row; ``cells`` override the defaults."""

    def _row(cells: dict[str, str] | None = None) -> dict[str, str]:
        row = {
            "Job : Requisition ID": "REQ-100",
            "Job : Job Title and Job Code": "Data Engineer (DE-2)",
            "Hiring Manager : Full Name: First Last": "Jane Doe",
            "Recruiter : Full Name: First Last": "Sam Lee",
            "Person : System ID": "P-1",
            "Person : Full Name: First Last": "Alex Kim",
            "Source": "LinkedIn",
            "Status": "",
        }
        row.update(cells or {})
        return row

    return _row


@pytest.fixture
def make_csv():
    """Render rows to CSV text; cells missing from a row are written empty."""

    def _csv(rows: list[dict[str, str]], headers: list[str] | None = None) -> str:
        return pd.DataFrame(rows, columns=headers or ICIMS_HEADERS).to_csv(index=False)

    return _csv


@pytest.fixture
def make_application(ingested_at):
    """Factory for ApplicationCanonical records with neutral defaults."""

    def _application(application_id: str = "P-1-REQ-100", **overrides) -> ApplicationCanonical:
        values = dict(
            application_id=application_id,
            candidate_id="P-1",
            req_id="REQ-100",
            current_stage="Applied",
            current_stage_canonical="APPLIED",
            disposition=Disposition.ACTIVE,
            is_terminal=False,
            applied_at=None,
            first_contacted_at=None,
            current_stage_entered_at=None,
            hired_at=None,
            offer_sent_at=None,
            rejected_at=None,
            withdrawn_at=None,
            stage_timestamps={},
            source_trace=SourceTrace("export.csv", 1, ingested_at),
            confidence=ConfidenceMetadata(ConfidenceGrade.HIGH),
            has_event_history=False,
            event_count=0,
            missing_timestamps=[],
        )
        values.update(overrides)
        return ApplicationCanonical(**values)

    return _application
