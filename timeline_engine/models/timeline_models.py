"""
Pydantic models for the editing timeline.

The timeline is stored as an arena: the Timeline owns every Track and every
Segment in flat id-keyed maps. A Track keeps an ordered list of segment ids
(sorted by position), and a Segment's ``track_id`` is only a lookup key.

Effects are owned by the Segment (or Track) they are attached to, parameters
by their Effect and keyframes by their parameter.

Times are plain float seconds throughout:
- Segment.position / Segment.duration are timeline seconds
- Keyframe.time is relative to the owning effect's window
"""

from __future__ import annotations

import uuid
from enum import Enum
from pathlib import PurePath
from typing import Any, Iterator

from pydantic import BaseModel, Field, field_validator


def new_id(prefix: str) -> str:
    """Generate a short unique id such as ``track-3f9a0c1b2d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# =============================================================================
# ENUMS
# =============================================================================


class TrackKind(str, Enum):
    """Type of track content."""
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"


class EffectCategory(str, Enum):
    """Grouping used by effect browsers."""
    TRANSFORM = "transform"
    FILTER = "filter"
    TRANSITION = "transition"
    TEXT = "text"
    AUDIO = "audio"
    CUSTOM = "custom"


class ParameterKind(str, Enum):
    """Declared value kind of an effect parameter.

    The kind tags the parameter's value: every write is checked against it.
    """
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    COLOR = "color"
    SELECT = "select"
    VECTOR2 = "vector2"
    VECTOR3 = "vector3"


class Easing(str, Enum):
    """Curve applied between a keyframe and the next one."""
    LINEAR = "linear"
    EASE_IN = "easeIn"
    EASE_OUT = "easeOut"
    EASE_IN_OUT = "easeInOut"
    BEZIER = "bezier"


# =============================================================================
# MEDIA
# =============================================================================


class MediaStreamInfo(BaseModel):
    """Stream layout of a source file, as reported by the media analyzer."""
    video_streams: list[int] = Field(default_factory=list)
    audio_streams: list[int] = Field(default_factory=list)
    subtitle_streams: list[int] = Field(default_factory=list)


class MediaInfo(BaseModel):
    """Result of probing a source file."""
    path: str
    duration: float = Field(ge=0, description="Duration in seconds")
    streams: MediaStreamInfo = Field(default_factory=MediaStreamInfo)


class MediaReference(BaseModel):
    """
    Reference to a region of a source media file.

    ``source_in``/``source_out`` establish the source duration. When
    ``source_out`` is unknown the store asks the media analyzer for the file's
    duration.
    """
    path: str = Field(description="Path of the source media file")
    source_in: float = Field(default=0.0, ge=0, description="Source in point (seconds)")
    source_out: float | None = Field(
        default=None,
        description="Source out point (seconds), None = end of file"
    )
    stream_info: MediaStreamInfo | None = None

    @property
    def file_name(self) -> str:
        return PurePath(self.path).name

    def source_duration(self) -> float | None:
        if self.source_out is None:
            return None
        return self.source_out - self.source_in


# =============================================================================
# EFFECTS & AUTOMATION
# =============================================================================


class Keyframe(BaseModel):
    """A timestamped value for one effect parameter."""
    id: str = Field(default_factory=lambda: new_id("keyframe"))
    time: float = Field(ge=0, description="Seconds, relative to the effect window")
    value: Any
    easing: Easing = Easing.LINEAR
    bezier_points: tuple[float, float, float, float] | None = Field(
        default=None,
        description="(x1, y1, x2, y2) control points, used when easing is bezier"
    )

    @field_validator("bezier_points")
    @classmethod
    def _check_bezier_points(cls, value):
        if value is not None and any(c < 0.0 or c > 1.0 for c in value):
            raise ValueError("bezier control points must lie within [0, 1]")
        return value


class SelectOption(BaseModel):
    """Labelled choice for select parameters."""
    label: str
    value: str | float


class EffectParameter(BaseModel):
    """
    One tunable input of an effect.

    ``value`` is the static value, used when there are no keyframes. Its shape
    follows ``kind``: float for number, str for string/color/select,
    bool for boolean and a list of floats for vector2/vector3.
    """
    id: str = Field(default_factory=lambda: new_id("param"))
    name: str
    kind: ParameterKind = ParameterKind.NUMBER
    value: Any = None
    default: Any = None
    min: float | None = None
    max: float | None = None
    options: list[str | SelectOption] | None = None
    keyframes: list[Keyframe] = Field(default_factory=list)

    def get_keyframe(self, keyframe_id: str) -> Keyframe | None:
        return next((k for k in self.keyframes if k.id == keyframe_id), None)


class Effect(BaseModel):
    """A named transformation attached to a segment or a track."""
    id: str = Field(default_factory=lambda: new_id("effect"))
    type: str = Field(description="Effect identifier, e.g. 'blur'")
    name: str = Field(default="", description="Display name")
    category: EffectCategory = EffectCategory.CUSTOM
    enabled: bool = True
    start_time: float = Field(default=0.0, ge=0)
    end_time: float = Field(default=0.0, ge=0)
    parameters: list[EffectParameter] = Field(default_factory=list)

    def get_parameter(self, parameter_id: str) -> EffectParameter | None:
        return next((p for p in self.parameters if p.id == parameter_id), None)

    def parameter_by_name(self, name: str) -> EffectParameter | None:
        return next((p for p in self.parameters if p.name == name), None)


class ParameterSpec(BaseModel):
    """Parameter description used when adding an effect."""
    id: str | None = None
    name: str
    kind: ParameterKind = ParameterKind.NUMBER
    value: Any = None
    default: Any = None
    min: float | None = None
    max: float | None = None
    options: list[str | SelectOption] | None = None


class EffectSpec(BaseModel):
    """Everything needed to add an effect, minus the ids the store assigns."""
    id: str | None = None
    type: str
    name: str = ""
    category: EffectCategory = EffectCategory.CUSTOM
    enabled: bool = True
    start_time: float = 0.0
    end_time: float = 0.0
    parameters: list[ParameterSpec] = Field(default_factory=list)


class EffectTemplate(BaseModel):
    """Reusable effect definition offered by effect browsers."""
    id: str
    name: str
    type: str
    category: EffectCategory = EffectCategory.CUSTOM
    description: str = ""
    parameters: list[ParameterSpec] = Field(default_factory=list)
    thumbnail_url: str | None = None

    def to_spec(self) -> EffectSpec:
        return EffectSpec(
            type=self.type,
            name=self.name,
            category=self.category,
            parameters=[p.model_copy(deep=True) for p in self.parameters],
        )


# =============================================================================
# TRACKS & SEGMENTS
# =============================================================================


class SegmentMetadata(BaseModel):
    name: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    custom_properties: dict[str, Any] = Field(default_factory=dict)


class Segment(BaseModel):
    """
    A placed instance of a media source on a track.

    ``duration`` is fixed at creation from the source in/out points.
    """
    id: str = Field(default_factory=lambda: new_id("segment"))
    track_id: str
    media: MediaReference
    position: float = Field(ge=0, description="Timeline start (seconds)")
    duration: float = Field(gt=0, description="Timeline duration (seconds)")
    selected: bool = False
    locked: bool = False
    effects: list[Effect] = Field(default_factory=list)
    thumbnail_urls: list[str] = Field(default_factory=list)
    waveform_data: list[float] = Field(default_factory=list)
    metadata: SegmentMetadata = Field(default_factory=SegmentMetadata)

    @property
    def end(self) -> float:
        return self.position + self.duration

    def contains(self, time: float) -> bool:
        """Half-open check: active at its start time, not at its end time."""
        return self.position <= time < self.end

    def overlaps(self, other: Segment) -> bool:
        return self.position < other.end and self.end > other.position

    def get_effect(self, effect_id: str) -> Effect | None:
        return next((e for e in self.effects if e.id == effect_id), None)


def segments_overlap(a: Segment, b: Segment) -> bool:
    """Pure overlap predicate. The engine never prevents overlap."""
    return a.overlaps(b)


class Track(BaseModel):
    """A horizontal lane holding position-ordered segments of one kind."""
    id: str = Field(default_factory=lambda: new_id("track"))
    kind: TrackKind = TrackKind.VIDEO
    name: str = ""
    height: int = Field(default=80, gt=0)
    muted: bool = False
    solo: bool = False
    locked: bool = False
    collapsed: bool = False
    color: str | None = None
    volume: float = Field(default=1.0, ge=0)
    pan: float = Field(default=0.0, ge=-1.0, le=1.0)
    segment_ids: list[str] = Field(
        default_factory=list,
        description="Segment ids ordered by position"
    )
    effects: list[Effect] = Field(default_factory=list)

    def get_effect(self, effect_id: str) -> Effect | None:
        return next((e for e in self.effects if e.id == effect_id), None)


# =============================================================================
# TRANSPORT / VIEW SETTINGS
# =============================================================================


class SnapSettings(BaseModel):
    enabled: bool = True
    tolerance: float = Field(default=5.0, ge=0, description="Tolerance in pixels")


class VisualSettings(BaseModel):
    thumbnails_enabled: bool = True
    waveforms_enabled: bool = True


class Viewport(BaseModel):
    start: float = 0.0
    end: float = 0.0


# =============================================================================
# TIMELINE (AGGREGATE ROOT)
# =============================================================================


class Timeline(BaseModel):
    """
    The aggregate root.

    Only the TimelineStore mutates a Timeline; it keeps ``duration``,
    ``playhead`` and ``zoom`` within their invariants on every write.
    """
    tracks: dict[str, Track] = Field(default_factory=dict)
    track_order: list[str] = Field(default_factory=list)
    segments: dict[str, Segment] = Field(default_factory=dict)
    duration: float = 0.0
    playhead: float = 0.0
    zoom: float = 1.0
    selection: list[str] = Field(default_factory=list)
    in_point: float | None = None
    out_point: float | None = None
    snap: SnapSettings = Field(default_factory=SnapSettings)
    visuals: VisualSettings = Field(default_factory=VisualSettings)
    viewport: Viewport = Field(default_factory=Viewport)

    def ordered_tracks(self) -> list[Track]:
        return [self.tracks[tid] for tid in self.track_order]

    def segments_for_track(self, track_id: str) -> list[Segment]:
        track = self.tracks.get(track_id)
        if track is None:
            return []
        return [self.segments[sid] for sid in track.segment_ids]

    def iter_segments(self) -> Iterator[Segment]:
        """Yield every segment, tracks in stored order, segments by position."""
        for track in self.ordered_tracks():
            for sid in track.segment_ids:
                yield self.segments[sid]


# =============================================================================
# SNAPSHOT
# =============================================================================


class TrackSnapshot(BaseModel):
    """A track together with its segments, in position order."""
    track: Track
    segments: list[Segment] = Field(default_factory=list)


class TimelineSnapshot(BaseModel):
    """
    Serializable copy of a whole timeline for persistence collaborators.

    Loading goes back through the store's public operations, so every
    invariant is re-validated.
    """
    version: int = 1
    tracks: list[TrackSnapshot] = Field(default_factory=list)
    duration: float = 0.0
    playhead: float = 0.0
    zoom: float = 1.0
    selection: list[str] = Field(default_factory=list)
    in_point: float | None = None
    out_point: float | None = None
    snap: SnapSettings = Field(default_factory=SnapSettings)
    visuals: VisualSettings = Field(default_factory=VisualSettings)
    viewport: Viewport = Field(default_factory=Viewport)
