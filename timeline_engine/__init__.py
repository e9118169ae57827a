"""Timeline & effect-automation engine for a non-linear video editor."""

from timeline_engine.operators.errors import (
    EffectNotFoundError,
    InvalidValueError,
    KeyframeNotFoundError,
    ParameterNotFoundError,
    SegmentLockedError,
    SegmentNotFoundError,
    TemplateNotFoundError,
    TimelineError,
    TrackNotFoundError,
)
from timeline_engine.operators.events import TimelineEvent, TimelineEventBus
from timeline_engine.operators.timeline_store import TimelineStore

__all__ = [
    "TimelineStore",
    "TimelineEvent",
    "TimelineEventBus",
    "TimelineError",
    "TrackNotFoundError",
    "SegmentNotFoundError",
    "EffectNotFoundError",
    "ParameterNotFoundError",
    "KeyframeNotFoundError",
    "TemplateNotFoundError",
    "SegmentLockedError",
    "InvalidValueError",
]
