"""Column resolution against the header spellings different ATS exports use."""

from types import MappingProxyType

from ats_pipeline.utils.types import Headers

STAGE_COLUMN_PREFIX = "Date First Interviewed:"
HIRE_DATE_COLUMN = "Hire/Rehire Date"

# Synonym order is priority order.
COLUMN_SYNONYMS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "req_id": ("Job : Requisition ID", "Requisition ID", "Job ID"),
    "req_title": ("Job : Job Title and Job Code", "Job Title"),
    "hiring_manager": ("Hiring Manager : Full Name: First Last", "Hiring Manager"),
    "recruiter": ("Recruiter : Full Name: First Last", "Recruiter"),
    "department": ("Job : Department", "Department"),
    "location": ("Job : Office Location", "Location"),
    "opened_at": ("Date Opened", "Open Date", "Created Date"),
    "closed_at": ("Date Closed", "Closed Date", "Filled Date"),
    "candidate_id": ("Person : System ID", "Candidate ID", "Person ID"),
    "candidate_name": ("Person : Full Name: First Last", "Name", "Candidate Name"),
    "source": ("Source", "Recruiting Source", "Candidate Source"),
    "applied_at": ("Applied Date", "Application Date", "Date Applied"),
    "status": ("Status", "Current Status", "Workflow Status", "Application Status"),
})


def resolve_column(headers: Headers, synonyms: tuple[str, ...] | list[str]) -> str | None:
    """Return the first header matching any synonym, in synonym order.

    Matching is exact after trimming and lowercasing; there is no partial or
    fuzzy matching.
    """
    folded = [(header.strip().lower(), header) for header in headers]
    for synonym in synonyms:
        target = synonym.strip().lower()
        for key, header in folded:
            if key == target:
                return header
    return None


def resolve_field(headers: Headers, field: str) -> str | None:
    """Resolve a logical field name through :data:`COLUMN_SYNONYMS`."""
    return resolve_column(headers, COLUMN_SYNONYMS[field])


def cell(row: dict[str, str], column: str | None) -> str | None:
    """Trimmed cell value for a resolved column, or None when absent/blank."""
    if column is None:
        return None
    value = row.get(column)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def is_event_column(header: str) -> bool:
    """True when the stage-event extractor classifies this header."""
    lowered = header.lower()
    return (
        header.startswith(STAGE_COLUMN_PREFIX)
        or header == HIRE_DATE_COLUMN
        or ("reject" in lowered and "date" in lowered)
        or (("withdraw" in lowered or "withdrew" in lowered) and "date" in lowered)
    )


def unmapped_columns(headers: Headers) -> list[str]:
    """Headers that neither a field resolver nor the event extractor consumes."""
    consumed = {
        column
        for field in COLUMN_SYNONYMS
        if (column := resolve_field(headers, field)) is not None
    }
    return [h for h in headers if h not in consumed and not is_event_column(h)]
