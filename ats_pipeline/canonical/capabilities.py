"""What the ingested event inventory can legitimately support."""

from types import MappingProxyType

from ats_pipeline.canonical.models import DataCapabilities, EventCanonical, UnavailableMetric
from ats_pipeline.utils.types import EventKind

METRIC_EVENT_REQUIREMENTS: MappingProxyType[str, EventKind] = MappingProxyType({
    "time_to_first_interview": EventKind.POINT_IN_TIME,
    "time_to_offer": EventKind.POINT_IN_TIME,
    "time_to_hire": EventKind.POINT_IN_TIME,
    "hire_rate": EventKind.POINT_IN_TIME,
    "days_in_stage": EventKind.SNAPSHOT_DIFF,
    "stage_regression": EventKind.SNAPSHOT_DIFF,
    "sla_compliance": EventKind.SNAPSHOT_DIFF,
    "friction_heatmap": EventKind.SNAPSHOT_DIFF,
    "forecasting": EventKind.SNAPSHOT_DIFF,
})

UNAVAILABLE_REASONS: MappingProxyType[EventKind, str] = MappingProxyType({
    EventKind.POINT_IN_TIME: "Requires point-in-time stage events",
    EventKind.SNAPSHOT_DIFF: "Requires snapshot diff events (exit times)",
})


def compute_capabilities(events: list[EventCanonical]) -> DataCapabilities:
    """Mark a metric available only when the event kind it needs is present.

    First-occurrence exports give entry times but no exit times, so anything
    that measures dwell or regressions stays unavailable regardless of how many
    point-in-time events there are.
    """
    present = {event.event_kind for event in events}
    has_point_in_time = EventKind.POINT_IN_TIME in present
    has_snapshot_diff = EventKind.SNAPSHOT_DIFF in present

    available: list[str] = []
    unavailable: list[UnavailableMetric] = []
    for metric, required in METRIC_EVENT_REQUIREMENTS.items():
        if required in present:
            available.append(metric)
        else:
            unavailable.append(UnavailableMetric(metric, UNAVAILABLE_REASONS[required]))

    return DataCapabilities(
        has_point_in_time_events=has_point_in_time,
        has_snapshot_diff_events=has_snapshot_diff,
        can_compute_stage_velocity=has_point_in_time,
        can_compute_days_in_stage=has_snapshot_diff,
        can_compute_stage_regression=has_snapshot_diff,
        can_compute_sla_timing=has_snapshot_diff,
        can_compute_friction_heatmap=has_snapshot_diff,
        can_compute_forecasting=has_snapshot_diff,
        available_metrics=available,
        unavailable_metrics=unavailable,
    )
