"""Metric engine: computes a metric only when the data can justify it."""

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from types import MappingProxyType

import numpy as np

from ats_pipeline.canonical.capabilities import METRIC_EVENT_REQUIREMENTS
from ats_pipeline.canonical.columns import HIRE_DATE_COLUMN, STAGE_COLUMN_PREFIX
from ats_pipeline.canonical.dates import days_between
from ats_pipeline.canonical.models import (
    ApplicationCanonical,
    DataCapabilities,
    EventCanonical,
    SourceTrace,
)
from ats_pipeline.utils.types import (
    ConfidenceGrade,
    Disposition,
    EventKind,
    EventProvenance,
    EventType,
    Filters,
)

logger = logging.getLogger(__name__)

SAMPLE_TRACES = 3
SAMPLE_IDS = 5

BLOCKED_BY_SNAPSHOT_DIFF = (
    "Metric requires snapshot diff events (exit times). "
    "This CSV only has first-occurrence timestamps."
)

# Application timestamp field -> event types that can populate it.
FIELD_EVENT_TYPES: MappingProxyType[str, tuple[EventType, ...]] = MappingProxyType({
    "first_contacted_at": (EventType.STAGE_ENTERED,),
    "offer_sent_at": (EventType.OFFER_SENT,),
    "hired_at": (EventType.HIRED,),
})


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    description: str
    formula: str
    unit: str
    aggregation: str
    requires_event_diffs: bool
    start_field: str | None = None
    end_field: str | None = None
    source_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class MetricExclusion:
    reason: str
    count: int
    sample_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MetricResult:
    metric_name: str
    value: float | None
    definition: MetricDefinition
    included_count: int
    excluded_count: int
    total_count: int
    exclusions: list[MetricExclusion]
    confidence_grade: ConfidenceGrade
    confidence_reasons: list[str]
    low_confidence_contribution_percent: float
    event_kind: EventKind | None
    event_provenance: EventProvenance | None
    source_columns_used: list[str]
    sample_source_traces: list[SourceTrace]
    filters_applied: Filters
    computed_at: datetime
    computation_possible: bool
    computation_blocked_reason: str | None = None


def _definition(key: str, name: str, description: str, formula: str, unit: str,
                aggregation: str, **extra) -> MetricDefinition:
    return MetricDefinition(
        name=name,
        description=description,
        formula=formula,
        unit=unit,
        aggregation=aggregation,
        requires_event_diffs=METRIC_EVENT_REQUIREMENTS[key] is EventKind.SNAPSHOT_DIFF,
        **extra,
    )


METRIC_DEFINITIONS: MappingProxyType[str, MetricDefinition] = MappingProxyType({
    "time_to_first_interview": _definition(
        "time_to_first_interview", "Time to First Interview",
        "Days from application to first interview",
        "first_contacted_at - applied_at", "days", "median",
        start_field="applied_at", end_field="first_contacted_at",
        source_columns=(f"{STAGE_COLUMN_PREFIX} *",),
    ),
    "time_to_offer": _definition(
        "time_to_offer", "Time to Offer",
        "Days from application to offer sent",
        "offer_sent_at - applied_at", "days", "median",
        start_field="applied_at", end_field="offer_sent_at",
        source_columns=(f"{STAGE_COLUMN_PREFIX} Offer Letter",),
    ),
    "time_to_hire": _definition(
        "time_to_hire", "Time to Hire",
        "Days from application to hire",
        "hired_at - applied_at", "days", "median",
        start_field="applied_at", end_field="hired_at",
        source_columns=(HIRE_DATE_COLUMN,),
    ),
    "hire_rate": _definition(
        "hire_rate", "Hire Rate",
        "Percentage of applications resulting in hire",
        "count(hired) / count(applications)", "percent", "avg",
        source_columns=(HIRE_DATE_COLUMN, "Status"),
    ),
    "days_in_stage": _definition(
        "days_in_stage", "Days in Stage", "Average time spent in each stage",
        "stage_exit_date - stage_entry_date", "days", "avg",
    ),
    "stage_regression": _definition(
        "stage_regression", "Stage Regression", "Applications that moved backwards in the funnel",
        "count(stage_order decreased between snapshots)", "count", "count",
    ),
    "sla_compliance": _definition(
        "sla_compliance", "SLA Compliance", "Share of stage dwell times within SLA",
        "count(dwell <= sla) / count(stage visits)", "percent", "avg",
    ),
    "friction_heatmap": _definition(
        "friction_heatmap", "Friction Heatmap", "Bottleneck analysis by HM and stage",
        "Requires stage dwell times", "days", "avg",
    ),
    "forecasting": _definition(
        "forecasting", "Forecasting", "Projected time to fill from stage dwell history",
        "Requires stage dwell times", "days", "median",
    ),
})

_APPLICATION_FIELDS = frozenset(f.name for f in fields(ApplicationCanonical))


def median(values: list[int] | list[float]) -> float:
    """Midpoint median: the middle value, or the mean of the two middle values."""
    return float(np.median(np.asarray(values, dtype=float)))


def _apply_filters(
    applications: list[ApplicationCanonical], filters: Filters,
) -> tuple[list[ApplicationCanonical], list[str]]:
    ignored = [key for key in filters if key not in _APPLICATION_FIELDS]
    selected = [
        app for app in applications
        if all(getattr(app, key) == value for key, value in filters.items() if key in _APPLICATION_FIELDS)
    ]
    return selected, ignored


def _low_confidence_percent(included: list[ApplicationCanonical]) -> float:
    if not included:
        return 0.0
    low = sum(1 for app in included if app.confidence.grade is not ConfidenceGrade.HIGH)
    return low / len(included) * 100


def _not_found(metric_name: str, filters: Filters) -> MetricResult:
    return MetricResult(
        metric_name=metric_name,
        value=None,
        definition=MetricDefinition(metric_name, "Unknown", "", "", "count", False),
        included_count=0,
        excluded_count=0,
        total_count=0,
        exclusions=[MetricExclusion("Metric not found", 0)],
        confidence_grade=ConfidenceGrade.LOW,
        confidence_reasons=["Metric definition not found"],
        low_confidence_contribution_percent=100.0,
        event_kind=None,
        event_provenance=None,
        source_columns_used=[],
        sample_source_traces=[],
        filters_applied=dict(filters),
        computed_at=datetime.now(),
        computation_possible=False,
        computation_blocked_reason="Metric not found",
    )


def _blocked(
    metric_name: str, definition: MetricDefinition, total: int, filters: Filters,
) -> MetricResult:
    return MetricResult(
        metric_name=metric_name,
        value=None,
        definition=definition,
        included_count=0,
        excluded_count=total,
        total_count=total,
        exclusions=[MetricExclusion("Requires snapshot diff events", total)],
        confidence_grade=ConfidenceGrade.LOW,
        confidence_reasons=["Data source only has point-in-time events, not snapshot diffs"],
        low_confidence_contribution_percent=100.0,
        event_kind=EventKind.POINT_IN_TIME,
        event_provenance=EventProvenance.HISTORICAL_EXPORT,
        source_columns_used=[],
        sample_source_traces=[],
        filters_applied=dict(filters),
        computed_at=datetime.now(),
        computation_possible=False,
        computation_blocked_reason=BLOCKED_BY_SNAPSHOT_DIFF,
    )


def _event_columns(
    included: list[ApplicationCanonical], events: list[EventCanonical], end_field: str,
) -> set[str]:
    """Source columns of the events that actually supplied ``end_field``."""
    wanted = FIELD_EVENT_TYPES.get(end_field, ())
    by_application = {app.application_id: getattr(app, end_field) for app in included}
    return {
        event.source_trace.source_column
        for event in events
        if event.event_type in wanted
        and event.source_trace.source_column
        and by_application.get(event.application_id) == event.event_at
    }


def _duration_metric(
    definition: MetricDefinition,
    applications: list[ApplicationCanonical],
    events: list[EventCanonical],
) -> tuple[float | None, list[ApplicationCanonical], list[MetricExclusion], set[str]]:
    start_field, end_field = definition.start_field, definition.end_field
    missing = [
        app for app in applications
        if getattr(app, start_field) is None or getattr(app, end_field) is None
    ]
    exclusions = []
    if missing:
        exclusions.append(MetricExclusion(
            f"Missing {end_field} or {start_field}",
            len(missing),
            [app.application_id for app in missing[:SAMPLE_IDS]],
        ))

    included: list[ApplicationCanonical] = []
    negative: list[ApplicationCanonical] = []
    durations: list[int] = []
    for app in applications:
        start, end = getattr(app, start_field), getattr(app, end_field)
        if start is None or end is None:
            continue
        days = days_between(start, end)
        if days < 0:
            negative.append(app)
            continue
        included.append(app)
        durations.append(days)

    if negative:
        exclusions.append(MetricExclusion(
            "Negative duration (dates out of order)",
            len(negative),
            [app.application_id for app in negative[:SAMPLE_IDS]],
        ))

    value = median(durations) if durations else None
    columns = set(definition.source_columns) | _event_columns(included, events, end_field)
    return value, included, exclusions, columns


def compute_metric(
    metric_name: str,
    applications: list[ApplicationCanonical],
    events: list[EventCanonical],
    capabilities: DataCapabilities,
    filters: Filters | None = None,
) -> MetricResult:
    """Compute one registered metric over the (filtered) applications.

    Unknown names and metrics whose data prerequisite is absent come back as
    structured results with ``computation_possible=False``; nothing is raised
    and nothing is approximated.
    """
    filters = filters or {}
    definition = METRIC_DEFINITIONS.get(metric_name)
    if definition is None:
        logger.warning("Unknown metric requested: %s", metric_name)
        return _not_found(metric_name, filters)

    selected, ignored_filters = _apply_filters(applications, filters)
    total = len(selected)

    if definition.requires_event_diffs and not capabilities.has_snapshot_diff_events:
        logger.info("Metric %s blocked: no snapshot diff events", metric_name)
        return _blocked(metric_name, definition, total, filters)

    match metric_name:
        case "hire_rate":
            hired = [app for app in selected if app.disposition is Disposition.HIRED]
            value = len(hired) / total * 100 if total else None
            included = list(selected)
            exclusions = [] if total else [MetricExclusion("No applications", 0)]
            columns = set(definition.source_columns)
            traced = hired
        case _:
            value, included, exclusions, columns = _duration_metric(definition, selected, events)
            traced = included

    if value is not None:
        reasons = ["Computed from real CSV timestamps"]
    else:
        reasons = ["Insufficient data"]
    reasons.extend(f"Ignored unknown filter: {key}" for key in ignored_filters)

    excluded = sum(exclusion.count for exclusion in exclusions)
    return MetricResult(
        metric_name=metric_name,
        value=value,
        definition=definition,
        included_count=total - excluded,
        excluded_count=excluded,
        total_count=total,
        exclusions=exclusions,
        confidence_grade=ConfidenceGrade.HIGH if value is not None else ConfidenceGrade.LOW,
        confidence_reasons=reasons,
        low_confidence_contribution_percent=_low_confidence_percent(included),
        event_kind=EventKind.POINT_IN_TIME,
        event_provenance=EventProvenance.HISTORICAL_EXPORT,
        source_columns_used=sorted(columns),
        sample_source_traces=[app.source_trace for app in traced[:SAMPLE_TRACES]],
        filters_applied=dict(filters),
        computed_at=datetime.now(),
        computation_possible=True,
    )
