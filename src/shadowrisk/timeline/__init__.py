"""
Time-to-shadow timeline projection for Shadow Risk.
"""

from shadowrisk.timeline.projector import (
    FILTER_HORIZONS,
    ShadowTimelineProjector,
    events_by_severity,
    filter_events,
    summarize,
    upcoming_events,
)

__all__ = [
    "FILTER_HORIZONS",
    "ShadowTimelineProjector",
    "events_by_severity",
    "filter_events",
    "summarize",
    "upcoming_events",
]
