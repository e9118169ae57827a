"""
Typed publish/subscribe channel for timeline change notifications.

Each event name is bound to one payload type. Emission is synchronous and
happens after the triggering mutation has committed, so handlers always see
consistent state.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

from timeline_engine.models.event_models import EffectEvent, InOutPoints
from timeline_engine.models.timeline_models import (
    Segment,
    SnapSettings,
    Track,
    Viewport,
    VisualSettings,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class TimelineEvent(str, Enum):
    TRACK_ADDED = "trackAdded"
    TRACK_REMOVED = "trackRemoved"
    TRACK_UPDATED = "trackUpdated"
    SEGMENT_ADDED = "segmentAdded"
    SEGMENT_REMOVED = "segmentRemoved"
    SEGMENT_MOVED = "segmentMoved"
    SEGMENT_UPDATED = "segmentUpdated"
    EFFECT_ADDED = "effectAdded"
    EFFECT_REMOVED = "effectRemoved"
    EFFECT_UPDATED = "effectUpdated"
    PLAYHEAD_MOVED = "playheadMoved"
    ZOOM_CHANGED = "zoomChanged"
    IN_OUT_POINTS_CHANGED = "inOutPointsChanged"
    SELECTION_CHANGED = "selectionChanged"
    DURATION_CHANGED = "durationChanged"
    SNAP_SETTINGS_CHANGED = "snapSettingsChanged"
    VISUAL_SETTINGS_CHANGED = "visualSettingsChanged"
    VIEWPORT_CHANGED = "viewportChanged"


EVENT_PAYLOADS: dict[TimelineEvent, type | tuple[type, ...]] = {
    TimelineEvent.TRACK_ADDED: Track,
    TimelineEvent.TRACK_REMOVED: Track,
    TimelineEvent.TRACK_UPDATED: Track,
    TimelineEvent.SEGMENT_ADDED: Segment,
    TimelineEvent.SEGMENT_REMOVED: Segment,
    TimelineEvent.SEGMENT_MOVED: Segment,
    TimelineEvent.SEGMENT_UPDATED: Segment,
    TimelineEvent.EFFECT_ADDED: EffectEvent,
    TimelineEvent.EFFECT_REMOVED: EffectEvent,
    TimelineEvent.EFFECT_UPDATED: EffectEvent,
    TimelineEvent.PLAYHEAD_MOVED: (int, float),
    TimelineEvent.ZOOM_CHANGED: (int, float),
    TimelineEvent.IN_OUT_POINTS_CHANGED: InOutPoints,
    TimelineEvent.SELECTION_CHANGED: list,
    TimelineEvent.DURATION_CHANGED: (int, float),
    TimelineEvent.SNAP_SETTINGS_CHANGED: SnapSettings,
    TimelineEvent.VISUAL_SETTINGS_CHANGED: VisualSettings,
    TimelineEvent.VIEWPORT_CHANGED: Viewport,
}


class TimelineEventBus:
    """
    Event name -> ordered handler list.

    A handler that raises is logged and skipped; the remaining handlers still
    run and the committed mutation stands.
    """

    def __init__(self) -> None:
        self._handlers: dict[TimelineEvent, list[Handler]] = defaultdict(list)

    def subscribe(self, event: TimelineEvent | str, handler: Handler) -> Unsubscribe:
        """Register ``handler``; call the returned function to unsubscribe."""
        event = TimelineEvent(event)
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(event, handler)

        return unsubscribe

    def once(self, event: TimelineEvent | str, handler: Handler) -> Unsubscribe:
        """Register a handler that is removed after its first delivery."""
        unsubscribe: Unsubscribe

        def wrapper(payload: Any) -> None:
            unsubscribe()
            handler(payload)

        unsubscribe = self.subscribe(event, wrapper)
        return unsubscribe

    def unsubscribe(self, event: TimelineEvent | str, handler: Handler) -> None:
        """Remove ``handler``. Unknown handlers are ignored."""
        handlers = self._handlers.get(TimelineEvent(event))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: TimelineEvent | str) -> int:
        return len(self._handlers.get(TimelineEvent(event), ()))

    def clear(self) -> None:
        self._handlers.clear()

    def emit(self, event: TimelineEvent | str, payload: Any) -> None:
        event = TimelineEvent(event)
        expected = EVENT_PAYLOADS[event]
        if isinstance(payload, bool) or not isinstance(payload, expected):
            raise TypeError(
                f"{event.value} expects {expected}, got {type(payload).__name__}"
            )

        # copy: handlers may unsubscribe while we iterate
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler %r failed for %s", handler, event.value)
