"""
Timeline engine exceptions.

Operations that create an entity or need an existing parent raise these
synchronously. Idempotent removals never raise; they are no-ops when the
target is unknown.
"""

from typing import Any


class TimelineError(Exception):
    """Base exception for timeline operations."""
    pass


class TrackNotFoundError(TimelineError):
    """Raised when a track id is unknown."""
    def __init__(self, track_id: str):
        self.track_id = track_id
        super().__init__(f"Track not found: {track_id}")


class SegmentNotFoundError(TimelineError):
    """Raised when a segment id is unknown."""
    def __init__(self, segment_id: str):
        self.segment_id = segment_id
        super().__init__(f"Segment not found: {segment_id}")


class EffectNotFoundError(TimelineError):
    """Raised when an effect id is not attached to any segment or track."""
    def __init__(self, effect_id: str):
        self.effect_id = effect_id
        super().__init__(f"Effect not found: {effect_id}")


class ParameterNotFoundError(TimelineError):
    """Raised when an effect has no parameter with the given id."""
    def __init__(self, effect_id: str, parameter_id: str):
        self.effect_id = effect_id
        self.parameter_id = parameter_id
        super().__init__(f"Parameter {parameter_id} not found on effect {effect_id}")


class KeyframeNotFoundError(TimelineError):
    """Raised when a keyframe id is unknown on a parameter."""
    def __init__(self, parameter_id: str, keyframe_id: str):
        self.parameter_id = parameter_id
        self.keyframe_id = keyframe_id
        super().__init__(f"Keyframe {keyframe_id} not found on parameter {parameter_id}")


class TemplateNotFoundError(TimelineError):
    """Raised when an effect template id is not registered."""
    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Effect template not found: {template_id}")


class SegmentLockedError(TimelineError):
    """
    Raised when moving a segment that is locked, or that sits on a locked
    track.
    """
    def __init__(self, segment_id: str, track_id: str | None = None):
        self.segment_id = segment_id
        self.track_id = track_id
        if track_id:
            super().__init__(f"Segment {segment_id} is on locked track {track_id}")
        else:
            super().__init__(f"Segment {segment_id} is locked")


class InvalidValueError(TimelineError):
    """Raised on a type or range mismatch."""
    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)
