"""
Timeline Store - the mutable timeline and every operation that edits it.

The host constructs one TimelineStore per open project and hands it to its
collaborators; there is no process-wide instance.

Every public mutation:
- validates and normalizes its input (raising TimelineError subclasses for
  operations that need an existing parent or create an entity)
- commits the change, including derived fields (track sort order, duration,
  playhead clamp)
- then emits its typed event(s) through ``self.events``

Removals are idempotent: unknown ids are silent no-ops.
"""

from __future__ import annotations

import logging
import math
from bisect import insort
from typing import Any, Iterable, NamedTuple

from pydantic import ValidationError

from timeline_engine.config import EngineSettings, get_settings
from timeline_engine.models.event_models import EffectEvent, InOutPoints
from timeline_engine.models.timeline_models import (
    Easing,
    Effect,
    EffectCategory,
    EffectSpec,
    EffectTemplate,
    Keyframe,
    MediaReference,
    ParameterKind,
    ParameterSpec,
    Segment,
    SegmentMetadata,
    SnapSettings,
    Timeline,
    TimelineSnapshot,
    Track,
    TrackKind,
    TrackSnapshot,
    Viewport,
    VisualSettings,
    new_id,
)
from timeline_engine.operators.errors import (
    EffectNotFoundError,
    InvalidValueError,
    KeyframeNotFoundError,
    ParameterNotFoundError,
    SegmentLockedError,
    SegmentNotFoundError,
    TemplateNotFoundError,
    TrackNotFoundError,
)
from timeline_engine.operators.events import Handler, TimelineEvent, TimelineEventBus, Unsubscribe
from timeline_engine.operators.interpolation import evaluate
from timeline_engine.operators.parameter_values import (
    build_parameter,
    clamp,
    coerce_parameter_value,
)
from timeline_engine.operators import snapping
from timeline_engine.utils.media_probe import MediaAnalyzer

logger = logging.getLogger(__name__)

_UPDATABLE_TRACK_FIELDS = {
    "name", "height", "muted", "solo", "locked", "collapsed", "color", "volume", "pan",
}


class _EffectOwner(NamedTuple):
    segment_id: str | None
    track_id: str | None


class _EffectLocation(NamedTuple):
    effect: Effect
    segment_id: str | None
    track_id: str | None

    def event(self) -> EffectEvent:
        return EffectEvent(segment_id=self.segment_id, track_id=self.track_id, effect=self.effect)


# =============================================================================
# BUILT-IN EFFECT TEMPLATES
# =============================================================================


DEFAULT_EFFECT_TEMPLATES: list[EffectTemplate] = [
    EffectTemplate(
        id="blur",
        name="Gaussian Blur",
        type="blur",
        category=EffectCategory.FILTER,
        description="Apply gaussian blur to the video",
        parameters=[
            ParameterSpec(name="radius", kind=ParameterKind.NUMBER, default=5.0, min=0.0, max=20.0),
        ],
    ),
    EffectTemplate(
        id="brightness",
        name="Brightness",
        type="brightness",
        category=EffectCategory.FILTER,
        description="Adjust video brightness",
        parameters=[
            ParameterSpec(name="level", kind=ParameterKind.NUMBER, default=1.0, min=0.0, max=2.0),
        ],
    ),
    EffectTemplate(
        id="chromakey",
        name="Chroma Key",
        type="chromakey",
        category=EffectCategory.FILTER,
        description="Remove a specific color from the video",
        parameters=[
            ParameterSpec(name="color", kind=ParameterKind.COLOR, default="#00ff00"),
            ParameterSpec(name="similarity", kind=ParameterKind.NUMBER, default=0.4, min=0.0, max=1.0),
        ],
    ),
    EffectTemplate(
        id="text",
        name="Text Overlay",
        type="text",
        category=EffectCategory.TEXT,
        description="Add a text overlay to the video",
        parameters=[
            ParameterSpec(name="content", kind=ParameterKind.STRING, default="Sample Text"),
            ParameterSpec(name="fontSize", kind=ParameterKind.NUMBER, default=24.0, min=8.0, max=72.0),
            ParameterSpec(name="color", kind=ParameterKind.COLOR, default="#ffffff"),
            ParameterSpec(name="position", kind=ParameterKind.VECTOR2, default=[0.5, 0.5]),
            ParameterSpec(
                name="align",
                kind=ParameterKind.SELECT,
                default="center",
                options=["left", "center", "right"],
            ),
        ],
    ),
    EffectTemplate(
        id="transform",
        name="Transform",
        type="transform",
        category=EffectCategory.TRANSFORM,
        description="Position, scale and rotate the frame",
        parameters=[
            ParameterSpec(name="position", kind=ParameterKind.VECTOR2, default=[0.0, 0.0]),
            ParameterSpec(name="scale", kind=ParameterKind.NUMBER, default=1.0, min=0.0, max=10.0),
            ParameterSpec(name="rotation", kind=ParameterKind.NUMBER, default=0.0, min=-360.0, max=360.0),
            ParameterSpec(name="opacity", kind=ParameterKind.NUMBER, default=1.0, min=0.0, max=1.0),
        ],
    ),
]


def _finite(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidValueError(f"{what} must be a finite number, got {value!r}", value)
    return float(value)


class TimelineStore:
    """Owns one Timeline and keeps its invariants under every edit."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        media_analyzer: MediaAnalyzer | None = None,
        events: TimelineEventBus | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.media_analyzer = media_analyzer
        self.events = events or TimelineEventBus()
        self.timeline = self._new_timeline()
        self._effect_owners: dict[str, _EffectOwner] = {}
        self._templates: dict[str, EffectTemplate] = {
            t.id: t.model_copy(deep=True) for t in DEFAULT_EFFECT_TEMPLATES
        }

    def _new_timeline(self) -> Timeline:
        return Timeline(
            zoom=clamp(self.settings.default_zoom, self.settings.min_zoom, self.settings.max_zoom),
            snap=SnapSettings(
                enabled=self.settings.snap_enabled,
                tolerance=self.settings.snap_tolerance_px,
            ),
        )

    def on(self, event: TimelineEvent | str, handler: Handler) -> Unsubscribe:
        """Shorthand for ``self.events.subscribe``."""
        return self.events.subscribe(event, handler)

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _require_track(self, track_id: str) -> Track:
        track = self.timeline.tracks.get(track_id)
        if track is None:
            raise TrackNotFoundError(track_id)
        return track

    def _require_segment(self, segment_id: str) -> Segment:
        segment = self.timeline.segments.get(segment_id)
        if segment is None:
            raise SegmentNotFoundError(segment_id)
        return segment

    def _locate_effect(self, effect_id: str) -> _EffectLocation | None:
        owner = self._effect_owners.get(effect_id)
        if owner is None:
            return None
        if owner.segment_id is not None:
            container = self.timeline.segments[owner.segment_id]
        else:
            container = self.timeline.tracks[owner.track_id]
        effect = container.get_effect(effect_id)
        if effect is None:
            return None
        return _EffectLocation(effect, owner.segment_id, owner.track_id)

    def _require_effect(self, effect_id: str) -> _EffectLocation:
        location = self._locate_effect(effect_id)
        if location is None:
            raise EffectNotFoundError(effect_id)
        return location

    def _require_parameter(self, effect: Effect, parameter_id: str):
        parameter = effect.get_parameter(parameter_id)
        if parameter is None:
            raise ParameterNotFoundError(effect.id, parameter_id)
        return parameter

    def _sort_track(self, track: Track) -> None:
        # list.sort is stable: equal positions keep insertion order
        segments = self.timeline.segments
        track.segment_ids.sort(key=lambda sid: segments[sid].position)

    def _commit_duration(self) -> list[tuple[TimelineEvent, Any]]:
        """Recompute duration and re-clamp the playhead; return derived events."""
        pending: list[tuple[TimelineEvent, Any]] = []
        new_duration = max((s.end for s in self.timeline.segments.values()), default=0.0)
        if new_duration != self.timeline.duration:
            self.timeline.duration = new_duration
            pending.append((TimelineEvent.DURATION_CHANGED, new_duration))
        if self.timeline.playhead > self.timeline.duration:
            self.timeline.playhead = self.timeline.duration
            pending.append((TimelineEvent.PLAYHEAD_MOVED, self.timeline.playhead))
        return pending

    def _prune_selection(self, removed_ids: Iterable[str]) -> list[tuple[TimelineEvent, Any]]:
        removed = set(removed_ids)
        if not removed.intersection(self.timeline.selection):
            return []
        self.timeline.selection = [sid for sid in self.timeline.selection if sid not in removed]
        return [(TimelineEvent.SELECTION_CHANGED, list(self.timeline.selection))]

    def _emit_all(self, events: Iterable[tuple[TimelineEvent, Any]]) -> None:
        for event, payload in events:
            self.events.emit(event, payload)

    def _build_effect(self, effect_spec: EffectSpec | dict[str, Any]) -> Effect:
        try:
            spec = EffectSpec.model_validate(effect_spec)
        except ValidationError as e:
            raise InvalidValueError(f"Invalid effect: {e}") from e

        if spec.start_time < 0 or spec.end_time < spec.start_time:
            raise InvalidValueError(
                f"Invalid effect window [{spec.start_time}, {spec.end_time}]"
            )
        effect_id = spec.id or new_id("effect")
        if effect_id in self._effect_owners:
            raise InvalidValueError(f"Effect id already in use: {effect_id}")

        return Effect(
            id=effect_id,
            type=spec.type,
            name=spec.name or spec.type,
            category=spec.category,
            enabled=spec.enabled,
            start_time=spec.start_time,
            end_time=spec.end_time,
            parameters=[build_parameter(p) for p in spec.parameters],
        )

    def _forget_effects(self, effects: Iterable[Effect]) -> None:
        for effect in effects:
            self._effect_owners.pop(effect.id, None)

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def tracks(self) -> list[Track]:
        """Tracks in stored order."""
        return self.timeline.ordered_tracks()

    def get_track(self, track_id: str) -> Track | None:
        return self.timeline.tracks.get(track_id)

    def get_segment(self, segment_id: str) -> Segment | None:
        return self.timeline.segments.get(segment_id)

    def get_segments(self, track_id: str) -> list[Segment]:
        """Segments of a track in position order ([] for unknown tracks)."""
        return self.timeline.segments_for_track(track_id)

    def get_segments_at_time(self, time: float) -> list[Segment]:
        """All segments whose [position, position + duration) contains ``time``."""
        time = _finite(time, "time")
        return [s for s in self.timeline.iter_segments() if s.contains(time)]

    def get_tracks_by_kind(self, kind: TrackKind | str) -> list[Track]:
        kind = TrackKind(kind)
        return [t for t in self.timeline.ordered_tracks() if t.kind is kind]

    def find_effect(self, effect_id: str) -> Effect | None:
        location = self._locate_effect(effect_id)
        return location.effect if location else None

    def find_overlaps(self, track_id: str) -> list[tuple[Segment, Segment]]:
        """Pairs of overlapping segments on a track. Overlap is never prevented."""
        segments = self.timeline.segments_for_track(track_id)
        pairs = []
        for i, segment in enumerate(segments):
            for other in segments[i + 1:]:
                if other.position >= segment.end:
                    break
                pairs.append((segment, other))
        return pairs

    # =========================================================================
    # TRACKS
    # =========================================================================

    def create_track(
        self,
        kind: TrackKind | str,
        name: str | None = None,
        track_id: str | None = None,
    ) -> Track:
        """Append a new empty track."""
        try:
            kind = TrackKind(kind)
        except ValueError:
            raise InvalidValueError(f"Unknown track kind: {kind!r}", kind) from None
        if track_id is not None and track_id in self.timeline.tracks:
            raise InvalidValueError(f"Track id already in use: {track_id}")

        track = Track(
            id=track_id or new_id("track"),
            kind=kind,
            name=name or f"{kind.value.capitalize()} Track",
            height=self.settings.track_height,
        )
        self.timeline.tracks[track.id] = track
        self.timeline.track_order.append(track.id)

        logger.debug("Created %s track %s", kind.value, track.id)
        self.events.emit(TimelineEvent.TRACK_ADDED, track)
        return track

    def update_track(self, track_id: str, **changes: Any) -> Track | None:
        """
        Update display/mix attributes of a track (name, height, muted, solo,
        locked, collapsed, color, volume, pan). Unknown track is a no-op.
        """
        track = self.timeline.tracks.get(track_id)
        if track is None:
            logger.debug("update_track: unknown track %s", track_id)
            return None

        unknown = set(changes) - _UPDATABLE_TRACK_FIELDS
        if unknown:
            raise InvalidValueError(f"Track fields cannot be updated: {sorted(unknown)}")
        try:
            validated = Track.model_validate({**track.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidValueError(f"Invalid track update: {e}") from e

        for field in changes:
            setattr(track, field, getattr(validated, field))

        self.events.emit(TimelineEvent.TRACK_UPDATED, track)
        return track

    def remove_track(self, track_id: str) -> None:
        """Remove a track and all of its segments. Unknown id is a no-op."""
        track = self.timeline.tracks.get(track_id)
        if track is None:
            logger.debug("remove_track: unknown track %s", track_id)
            return

        removed_ids = list(track.segment_ids)
        for sid in removed_ids:
            segment = self.timeline.segments.pop(sid)
            self._forget_effects(segment.effects)
        self._forget_effects(track.effects)
        del self.timeline.tracks[track_id]
        self.timeline.track_order.remove(track_id)

        pending = self._prune_selection(removed_ids)
        pending.extend(self._commit_duration())

        logger.debug("Removed track %s with %d segments", track_id, len(removed_ids))
        self.events.emit(TimelineEvent.TRACK_REMOVED, track)
        self._emit_all(pending)

    # =========================================================================
    # SEGMENTS
    # =========================================================================

    def _resolve_media(self, media: MediaReference) -> tuple[MediaReference, float]:
        duration = media.source_duration()
        if duration is not None:
            return media, duration

        if self.media_analyzer is None:
            raise InvalidValueError(
                f"Duration of {media.path} is unknown and no media analyzer is configured"
            )
        info = self.media_analyzer.probe(media.path)
        if info is None:
            raise InvalidValueError(f"Could not analyze media: {media.path}")

        media = media.model_copy(
            update={
                "source_out": info.duration,
                "stream_info": media.stream_info or info.streams,
            }
        )
        return media, info.duration - media.source_in

    def add_segment(
        self,
        track_id: str,
        media: MediaReference | dict[str, Any],
        position: float,
        segment_id: str | None = None,
    ) -> Segment:
        """
        Place a media region on a track.

        The segment's duration is its source duration (source_out - source_in).
        Positions must be >= 0.

        Raises:
            TrackNotFoundError: If the track does not exist
            InvalidValueError: If the position is negative or the duration is
                not positive or cannot be determined
        """
        track = self._require_track(track_id)
        try:
            media = MediaReference.model_validate(media)
        except ValidationError as e:
            raise InvalidValueError(f"Invalid media reference: {e}") from e
        position = _finite(position, "position")
        if position < 0:
            raise InvalidValueError(f"Segment position must be >= 0, got {position}", position)
        if segment_id is not None and segment_id in self.timeline.segments:
            raise InvalidValueError(f"Segment id already in use: {segment_id}")

        media, duration = self._resolve_media(media)
        if duration <= 0:
            raise InvalidValueError(
                f"Segment duration must be positive, got {duration} for {media.path}",
                duration,
            )

        segment = Segment(
            id=segment_id or new_id("segment"),
            track_id=track.id,
            media=media,
            position=position,
            duration=duration,
            selected=(segment_id in self.timeline.selection) if segment_id else False,
            metadata=SegmentMetadata(name=media.file_name),
        )
        self.timeline.segments[segment.id] = segment
        track.segment_ids.append(segment.id)
        self._sort_track(track)
        pending = self._commit_duration()

        logger.debug("Added segment %s to track %s at %.3fs", segment.id, track.id, position)
        self.events.emit(TimelineEvent.SEGMENT_ADDED, segment)
        self._emit_all(pending)
        return segment

    def remove_segment(self, track_id: str, segment_id: str) -> None:
        """Remove a segment from a track. Unknown track or segment is a no-op."""
        track = self.timeline.tracks.get(track_id)
        if track is None or segment_id not in track.segment_ids:
            logger.debug("remove_segment: %s not on track %s", segment_id, track_id)
            return

        track.segment_ids.remove(segment_id)
        segment = self.timeline.segments.pop(segment_id)
        self._forget_effects(segment.effects)

        pending = self._prune_selection([segment_id])
        pending.extend(self._commit_duration())

        self.events.emit(TimelineEvent.SEGMENT_REMOVED, segment)
        self._emit_all(pending)

    def move_segment(self, segment_id: str, new_position: float) -> Segment:
        """
        Move a segment along its track. Negative positions clamp to 0.

        Raises:
            SegmentNotFoundError: If no track holds the segment
            SegmentLockedError: If the segment or its track is locked
        """
        segment = self._require_segment(segment_id)
        track = self.timeline.tracks[segment.track_id]
        if segment.locked:
            raise SegmentLockedError(segment_id)
        if track.locked:
            raise SegmentLockedError(segment_id, track.id)

        segment.position = max(0.0, _finite(new_position, "position"))
        self._sort_track(track)
        pending = self._commit_duration()

        self.events.emit(TimelineEvent.SEGMENT_MOVED, segment)
        self._emit_all(pending)
        return segment

    def drag_segment(self, segment_id: str, candidate_position: float) -> Segment:
        """
        Snap-aware move, called repeatedly while a segment is dragged.

        When snapping is enabled the segment's start edge is snapped first;
        if it does not snap, the end edge is tried. The segment's own edges
        are never snap targets.
        """
        segment = self._require_segment(segment_id)
        candidate = _finite(candidate_position, "position")

        snap = self.timeline.snap
        if snap.enabled:
            tolerance = snapping.pixels_to_seconds(
                snap.tolerance, self.timeline.zoom, self.settings.pixels_per_second
            )
            exclude = {segment_id}
            start = snapping.find_snap_point(candidate, self.timeline, tolerance, exclude)
            if start is not None:
                candidate = start
            else:
                end = snapping.find_snap_point(
                    candidate + segment.duration, self.timeline, tolerance, exclude
                )
                if end is not None:
                    candidate = end - segment.duration

        return self.move_segment(segment_id, candidate)

    def snap_time(self, candidate_time: float, exclude_segment_ids: Iterable[str] = ()) -> float:
        """Resolve ``candidate_time`` against the current snap settings."""
        snap = self.timeline.snap
        if not snap.enabled:
            return candidate_time
        tolerance = snapping.pixels_to_seconds(
            snap.tolerance, self.timeline.zoom, self.settings.pixels_per_second
        )
        return snapping.resolve(candidate_time, self.timeline, tolerance, set(exclude_segment_ids))

    def _update_segment(self, segment_id: str, **changes: Any) -> Segment | None:
        segment = self.timeline.segments.get(segment_id)
        if segment is None:
            logger.debug("Segment update ignored: unknown segment %s", segment_id)
            return None
        for field, value in changes.items():
            setattr(segment, field, value)
        self.events.emit(TimelineEvent.SEGMENT_UPDATED, segment)
        return segment

    def set_segment_thumbnails(self, segment_id: str, urls: Iterable[str]) -> Segment | None:
        """Store thumbnail references supplied by a visuals provider, verbatim."""
        return self._update_segment(segment_id, thumbnail_urls=list(urls))

    def set_segment_waveform(self, segment_id: str, samples: Iterable[float]) -> Segment | None:
        """Store waveform amplitudes supplied by a visuals provider, verbatim."""
        return self._update_segment(segment_id, waveform_data=[float(s) for s in samples])

    def set_segment_locked(self, segment_id: str, locked: bool) -> Segment | None:
        return self._update_segment(segment_id, locked=bool(locked))

    def update_segment_metadata(
        self,
        segment_id: str,
        name: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        custom_properties: dict[str, Any] | None = None,
    ) -> Segment | None:
        segment = self.timeline.segments.get(segment_id)
        if segment is None:
            return None
        metadata = segment.metadata.model_copy()
        if name is not None:
            metadata.name = name
        if description is not None:
            metadata.description = description
        if tags is not None:
            metadata.tags = list(tags)
        if custom_properties is not None:
            metadata.custom_properties = dict(custom_properties)
        return self._update_segment(segment_id, metadata=metadata)

    # =========================================================================
    # EFFECTS
    # =========================================================================

    def add_effect(self, segment_id: str, effect_spec: EffectSpec | dict[str, Any]) -> Effect:
        """
        Attach an effect to a segment.

        Raises:
            SegmentNotFoundError: If the segment does not exist
            InvalidValueError: If the effect or a parameter value is invalid
        """
        segment = self._require_segment(segment_id)
        effect = self._build_effect(effect_spec)
        segment.effects.append(effect)
        self._effect_owners[effect.id] = _EffectOwner(segment_id=segment.id, track_id=None)

        logger.debug("Added %s effect %s to segment %s", effect.type, effect.id, segment_id)
        self.events.emit(
            TimelineEvent.EFFECT_ADDED, EffectEvent(segment_id=segment.id, effect=effect)
        )
        return effect

    def remove_effect(self, segment_id: str, effect_id: str) -> None:
        """Detach an effect from a segment. Unknown ids are a no-op."""
        segment = self.timeline.segments.get(segment_id)
        effect = segment.get_effect(effect_id) if segment else None
        if effect is None:
            logger.debug("remove_effect: %s not on segment %s", effect_id, segment_id)
            return

        segment.effects.remove(effect)
        self._effect_owners.pop(effect_id, None)
        self.events.emit(
            TimelineEvent.EFFECT_REMOVED, EffectEvent(segment_id=segment.id, effect=effect)
        )

    def add_track_effect(self, track_id: str, effect_spec: EffectSpec | dict[str, Any]) -> Effect:
        """Attach an effect to a whole track."""
        track = self._require_track(track_id)
        effect = self._build_effect(effect_spec)
        track.effects.append(effect)
        self._effect_owners[effect.id] = _EffectOwner(segment_id=None, track_id=track.id)

        self.events.emit(TimelineEvent.EFFECT_ADDED, EffectEvent(track_id=track.id, effect=effect))
        return effect

    def remove_track_effect(self, track_id: str, effect_id: str) -> None:
        track = self.timeline.tracks.get(track_id)
        effect = track.get_effect(effect_id) if track else None
        if effect is None:
            return

        track.effects.remove(effect)
        self._effect_owners.pop(effect_id, None)
        self.events.emit(TimelineEvent.EFFECT_REMOVED, EffectEvent(track_id=track.id, effect=effect))

    def set_effect_enabled(self, effect_id: str, enabled: bool) -> Effect:
        location = self._require_effect(effect_id)
        location.effect.enabled = bool(enabled)
        self.events.emit(TimelineEvent.EFFECT_UPDATED, location.event())
        return location.effect

    def update_effect_parameter(self, effect_id: str, parameter_id: str, value: Any):
        """
        Set a parameter's static value, checked against its kind. Numbers are
        clamped to [min, max] when both bounds are set.

        Raises:
            EffectNotFoundError, ParameterNotFoundError, InvalidValueError
        """
        location = self._require_effect(effect_id)
        parameter = self._require_parameter(location.effect, parameter_id)
        parameter.value = coerce_parameter_value(parameter, value)

        self.events.emit(TimelineEvent.EFFECT_UPDATED, location.event())
        return parameter

    # =========================================================================
    # KEYFRAMES
    # =========================================================================

    def add_effect_keyframe(
        self,
        effect_id: str,
        parameter_id: str,
        time: float,
        value: Any,
        easing: Easing | str = Easing.LINEAR,
        bezier_points: tuple[float, float, float, float] | None = None,
        keyframe_id: str | None = None,
    ) -> Keyframe:
        """
        Insert a keyframe, keeping the parameter's keyframes sorted by time.
        A keyframe at an already-used time goes after the existing ones.

        Raises:
            EffectNotFoundError, ParameterNotFoundError, InvalidValueError
        """
        location = self._require_effect(effect_id)
        parameter = self._require_parameter(location.effect, parameter_id)

        time = _finite(time, "keyframe time")
        if time < 0:
            raise InvalidValueError(f"Keyframe time must be >= 0, got {time}", time)
        value = coerce_parameter_value(parameter, value)
        if keyframe_id is not None and parameter.get_keyframe(keyframe_id) is not None:
            raise InvalidValueError(f"Keyframe id already in use: {keyframe_id}")
        try:
            keyframe = Keyframe(
                id=keyframe_id or new_id("keyframe"),
                time=time,
                value=value,
                easing=easing,
                bezier_points=bezier_points,
            )
        except ValidationError as e:
            raise InvalidValueError(f"Invalid keyframe: {e}") from e

        insort(parameter.keyframes, keyframe, key=lambda k: k.time)

        self.events.emit(TimelineEvent.EFFECT_UPDATED, location.event())
        return keyframe

    def update_effect_keyframe(
        self,
        effect_id: str,
        parameter_id: str,
        keyframe_id: str,
        time: float | None = None,
        value: Any = None,
        easing: Easing | str | None = None,
        bezier_points: tuple[float, float, float, float] | None = None,
    ) -> Keyframe:
        """
        Edit a keyframe in place (drag in time, new value, new curve).

        Raises:
            EffectNotFoundError, ParameterNotFoundError, KeyframeNotFoundError,
            InvalidValueError
        """
        location = self._require_effect(effect_id)
        parameter = self._require_parameter(location.effect, parameter_id)
        keyframe = parameter.get_keyframe(keyframe_id)
        if keyframe is None:
            raise KeyframeNotFoundError(parameter_id, keyframe_id)

        changes: dict[str, Any] = {}
        if time is not None:
            time = _finite(time, "keyframe time")
            if time < 0:
                raise InvalidValueError(f"Keyframe time must be >= 0, got {time}", time)
            changes["time"] = time
        if value is not None:
            changes["value"] = coerce_parameter_value(parameter, value)
        if easing is not None:
            changes["easing"] = easing
        if bezier_points is not None:
            changes["bezier_points"] = bezier_points
        try:
            validated = Keyframe.model_validate({**keyframe.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidValueError(f"Invalid keyframe: {e}") from e

        for field in changes:
            setattr(keyframe, field, getattr(validated, field))
        if "time" in changes:
            parameter.keyframes.remove(keyframe)
            insort(parameter.keyframes, keyframe, key=lambda k: k.time)

        self.events.emit(TimelineEvent.EFFECT_UPDATED, location.event())
        return keyframe

    def remove_effect_keyframe(self, effect_id: str, parameter_id: str, keyframe_id: str) -> None:
        """Remove a keyframe. Unknown effect, parameter or keyframe is a no-op."""
        location = self._locate_effect(effect_id)
        parameter = location.effect.get_parameter(parameter_id) if location else None
        keyframe = parameter.get_keyframe(keyframe_id) if parameter else None
        if keyframe is None:
            logger.debug("remove_effect_keyframe: %s not found", keyframe_id)
            return

        parameter.keyframes.remove(keyframe)
        self.events.emit(TimelineEvent.EFFECT_UPDATED, location.event())

    def get_parameter_value(self, effect_id: str, parameter_id: str, time: float) -> Any:
        """Evaluate a parameter at an effect-relative time."""
        location = self._require_effect(effect_id)
        parameter = self._require_parameter(location.effect, parameter_id)
        return evaluate(parameter, _finite(time, "time"))

    def get_parameter_value_at(
        self,
        segment_id: str,
        effect_id: str,
        parameter_id: str,
        timeline_time: float,
    ) -> Any:
        """
        Evaluate a parameter at a timeline time, for an effect on the segment
        or on the segment's track.

        Segment effect windows are relative to the segment's position; track
        effect windows are relative to the start of the timeline.
        """
        timeline_time = _finite(timeline_time, "time")
        segment = self._require_segment(segment_id)
        location = self._require_effect(effect_id)
        if location.segment_id not in (None, segment.id) or (
            location.track_id is not None and location.track_id != segment.track_id
        ):
            raise EffectNotFoundError(effect_id)
        parameter = self._require_parameter(location.effect, parameter_id)
        local_time = timeline_time - location.effect.start_time
        if location.segment_id is not None:
            local_time -= segment.position
        return evaluate(parameter, local_time)

    # =========================================================================
    # EFFECT TEMPLATES
    # =========================================================================

    def register_effect_template(self, template: EffectTemplate | dict[str, Any]) -> EffectTemplate:
        template = EffectTemplate.model_validate(template)
        # build once so a broken template fails at registration, not on use
        for parameter in template.parameters:
            build_parameter(parameter)
        self._templates[template.id] = template
        return template

    def get_effect_template(self, template_id: str) -> EffectTemplate | None:
        return self._templates.get(template_id)

    def list_effect_templates(self, category: EffectCategory | str | None = None) -> list[EffectTemplate]:
        templates = list(self._templates.values())
        if category is None:
            return templates
        category = EffectCategory(category)
        return [t for t in templates if t.category is category]

    def add_effect_from_template(self, segment_id: str, template_id: str) -> Effect:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return self.add_effect(segment_id, template.to_spec())

    # =========================================================================
    # TRANSPORT & VIEW
    # =========================================================================

    def set_playhead(self, position: float) -> float:
        """Move the playhead, clamped to [0, duration]."""
        self.timeline.playhead = clamp(_finite(position, "playhead"), 0.0, self.timeline.duration)
        self.events.emit(TimelineEvent.PLAYHEAD_MOVED, self.timeline.playhead)
        return self.timeline.playhead

    def set_zoom(self, zoom: float) -> float:
        """Set zoom, clamped to the configured range ([0.1, 10] by default)."""
        self.timeline.zoom = clamp(
            _finite(zoom, "zoom"), self.settings.min_zoom, self.settings.max_zoom
        )
        self.events.emit(TimelineEvent.ZOOM_CHANGED, self.timeline.zoom)
        return self.timeline.zoom

    def set_in_out_points(
        self,
        in_point: float | None = None,
        out_point: float | None = None,
    ) -> InOutPoints:
        """Store in/out points; each present value is clamped to [0, duration]."""
        duration = self.timeline.duration
        if in_point is not None:
            in_point = clamp(_finite(in_point, "in point"), 0.0, duration)
        if out_point is not None:
            out_point = clamp(_finite(out_point, "out point"), 0.0, duration)
        self.timeline.in_point = in_point
        self.timeline.out_point = out_point

        points = InOutPoints(in_point=in_point, out_point=out_point)
        self.events.emit(TimelineEvent.IN_OUT_POINTS_CHANGED, points)
        return points

    def set_selection(self, segment_ids: Iterable[str]) -> list[str]:
        """
        Replace the selection. Matching segments get ``selected = True``,
        every other segment ``False``.
        """
        if isinstance(segment_ids, str):
            raise InvalidValueError("Selection must be a list of segment ids, not a string", segment_ids)
        selection = list(dict.fromkeys(segment_ids))
        selected = set(selection)
        self.timeline.selection = selection
        for segment in self.timeline.segments.values():
            segment.selected = segment.id in selected

        self.events.emit(TimelineEvent.SELECTION_CHANGED, list(selection))
        return selection

    def set_snap_enabled(self, enabled: bool) -> SnapSettings:
        self.timeline.snap.enabled = bool(enabled)
        self.events.emit(TimelineEvent.SNAP_SETTINGS_CHANGED, self.timeline.snap)
        return self.timeline.snap

    def set_snap_tolerance(self, tolerance: float) -> SnapSettings:
        tolerance = _finite(tolerance, "snap tolerance")
        if tolerance < 0:
            raise InvalidValueError(f"Snap tolerance must be >= 0, got {tolerance}", tolerance)
        self.timeline.snap.tolerance = tolerance
        self.events.emit(TimelineEvent.SNAP_SETTINGS_CHANGED, self.timeline.snap)
        return self.timeline.snap

    def set_thumbnails_enabled(self, enabled: bool) -> VisualSettings:
        self.timeline.visuals.thumbnails_enabled = bool(enabled)
        self.events.emit(TimelineEvent.VISUAL_SETTINGS_CHANGED, self.timeline.visuals)
        return self.timeline.visuals

    def set_waveforms_enabled(self, enabled: bool) -> VisualSettings:
        self.timeline.visuals.waveforms_enabled = bool(enabled)
        self.events.emit(TimelineEvent.VISUAL_SETTINGS_CHANGED, self.timeline.visuals)
        return self.timeline.visuals

    def set_viewport(self, start: float, end: float) -> Viewport:
        start = _finite(start, "viewport start")
        end = _finite(end, "viewport end")
        if start < 0 or end < start:
            raise InvalidValueError(f"Invalid viewport [{start}, {end}]")
        self.timeline.viewport = Viewport(start=start, end=end)
        self.events.emit(TimelineEvent.VIEWPORT_CHANGED, self.timeline.viewport)
        return self.timeline.viewport

    # =========================================================================
    # SNAPSHOT / LIFECYCLE
    # =========================================================================

    def snapshot(self) -> TimelineSnapshot:
        """Deep, serializable copy of the whole timeline."""
        timeline = self.timeline.model_copy(deep=True)
        return TimelineSnapshot(
            tracks=[
                TrackSnapshot(track=track, segments=timeline.segments_for_track(track.id))
                for track in timeline.ordered_tracks()
            ],
            duration=timeline.duration,
            playhead=timeline.playhead,
            zoom=timeline.zoom,
            selection=timeline.selection,
            in_point=timeline.in_point,
            out_point=timeline.out_point,
            snap=timeline.snap,
            visuals=timeline.visuals,
            viewport=timeline.viewport,
        )

    def reset(self) -> None:
        """Close the project: remove every track and restore transport defaults."""
        for track_id in list(self.timeline.track_order):
            self.remove_track(track_id)
        self.timeline = self._new_timeline()
        self._effect_owners.clear()

        self.events.emit(TimelineEvent.PLAYHEAD_MOVED, self.timeline.playhead)
        self.events.emit(TimelineEvent.ZOOM_CHANGED, self.timeline.zoom)
        self.events.emit(TimelineEvent.IN_OUT_POINTS_CHANGED, InOutPoints())
        self.events.emit(TimelineEvent.SELECTION_CHANGED, [])
        logger.info("Timeline reset")

    def _restore_effect(self, effect: Effect, segment_id: str | None, track_id: str | None) -> None:
        spec = EffectSpec(
            id=effect.id,
            type=effect.type,
            name=effect.name,
            category=effect.category,
            enabled=effect.enabled,
            start_time=effect.start_time,
            end_time=effect.end_time,
            parameters=[
                ParameterSpec(
                    id=p.id,
                    name=p.name,
                    kind=p.kind,
                    value=p.value,
                    default=p.default,
                    min=p.min,
                    max=p.max,
                    options=p.options,
                )
                for p in effect.parameters
            ],
        )
        if segment_id is not None:
            restored = self.add_effect(segment_id, spec)
        else:
            restored = self.add_track_effect(track_id, spec)

        for parameter in effect.parameters:
            for keyframe in parameter.keyframes:
                self.add_effect_keyframe(
                    restored.id,
                    parameter.id,
                    keyframe.time,
                    keyframe.value,
                    easing=keyframe.easing,
                    bezier_points=keyframe.bezier_points,
                    keyframe_id=keyframe.id,
                )

    def _replay(self, snapshot: TimelineSnapshot) -> None:
        """Rebuild ``snapshot`` on this (empty) store through the public operations."""
        for entry in snapshot.tracks:
            saved = entry.track
            track = self.create_track(saved.kind, name=saved.name, track_id=saved.id)
            for effect in saved.effects:
                self._restore_effect(effect, None, track.id)

            for saved_segment in entry.segments:
                segment = self.add_segment(
                    track.id, saved_segment.media, saved_segment.position, segment_id=saved_segment.id
                )
                for effect in saved_segment.effects:
                    self._restore_effect(effect, segment.id, None)
                if saved_segment.thumbnail_urls:
                    self.set_segment_thumbnails(segment.id, saved_segment.thumbnail_urls)
                if saved_segment.waveform_data:
                    self.set_segment_waveform(segment.id, saved_segment.waveform_data)
                self.update_segment_metadata(
                    segment.id,
                    name=saved_segment.metadata.name,
                    description=saved_segment.metadata.description,
                    tags=saved_segment.metadata.tags,
                    custom_properties=saved_segment.metadata.custom_properties,
                )
                if saved_segment.locked:
                    self.set_segment_locked(segment.id, True)

            self.update_track(
                track.id,
                height=saved.height,
                muted=saved.muted,
                solo=saved.solo,
                locked=saved.locked,
                collapsed=saved.collapsed,
                color=saved.color,
                volume=saved.volume,
                pan=saved.pan,
            )

        self.set_in_out_points(snapshot.in_point, snapshot.out_point)
        self.set_zoom(snapshot.zoom)
        self.set_playhead(snapshot.playhead)
        self.set_selection(snapshot.selection)
        self.set_snap_enabled(snapshot.snap.enabled)
        self.set_snap_tolerance(snapshot.snap.tolerance)
        self.set_thumbnails_enabled(snapshot.visuals.thumbnails_enabled)
        self.set_waveforms_enabled(snapshot.visuals.waveforms_enabled)
        self.set_viewport(snapshot.viewport.start, snapshot.viewport.end)

    def _announce(self) -> None:
        """Emit the events a subscriber needs to rebuild its view of a swapped-in timeline."""
        for track in self.timeline.ordered_tracks():
            self.events.emit(TimelineEvent.TRACK_ADDED, track)
            for effect in track.effects:
                self.events.emit(
                    TimelineEvent.EFFECT_ADDED, EffectEvent(track_id=track.id, effect=effect)
                )
            for segment in self.timeline.segments_for_track(track.id):
                self.events.emit(TimelineEvent.SEGMENT_ADDED, segment)
                for effect in segment.effects:
                    self.events.emit(
                        TimelineEvent.EFFECT_ADDED, EffectEvent(segment_id=segment.id, effect=effect)
                    )

        timeline = self.timeline
        self.events.emit(TimelineEvent.DURATION_CHANGED, timeline.duration)
        self.events.emit(
            TimelineEvent.IN_OUT_POINTS_CHANGED,
            InOutPoints(in_point=timeline.in_point, out_point=timeline.out_point),
        )
        self.events.emit(TimelineEvent.ZOOM_CHANGED, timeline.zoom)
        self.events.emit(TimelineEvent.PLAYHEAD_MOVED, timeline.playhead)
        self.events.emit(TimelineEvent.SELECTION_CHANGED, list(timeline.selection))
        self.events.emit(TimelineEvent.SNAP_SETTINGS_CHANGED, timeline.snap)
        self.events.emit(TimelineEvent.VISUAL_SETTINGS_CHANGED, timeline.visuals)
        self.events.emit(TimelineEvent.VIEWPORT_CHANGED, timeline.viewport)

    def load_snapshot(self, snapshot: TimelineSnapshot | dict[str, Any]) -> None:
        """
        Replace the current timeline with ``snapshot``.

        The snapshot is replayed through the public operations (create track,
        add segment, add effect, keyframes, transport) on a staging store, so
        every invariant is re-validated and the stored duration is recomputed
        rather than trusted. The current timeline is only replaced once the
        whole replay succeeded; a failing snapshot leaves it untouched.
        """
        try:
            snapshot = TimelineSnapshot.model_validate(snapshot)
        except ValidationError as e:
            raise InvalidValueError(f"Invalid timeline snapshot: {e}") from e

        # staging bus has no subscribers, so nothing is announced until the swap
        staging = TimelineStore(settings=self.settings, media_analyzer=self.media_analyzer)
        staging._replay(snapshot)

        self.reset()
        self.timeline = staging.timeline
        self._effect_owners = staging._effect_owners
        self._announce()

        logger.info(
            "Loaded timeline snapshot: %d tracks, %d segments",
            len(self.timeline.tracks),
            len(self.timeline.segments),
        )
