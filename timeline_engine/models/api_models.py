from typing import Any

from pydantic import BaseModel, Field

from timeline_engine.models.event_models import InOutPoints
from timeline_engine.models.timeline_models import (
    Easing,
    Effect,
    EffectParameter,
    EffectSpec,
    Keyframe,
    MediaReference,
    Segment,
    SnapSettings,
    TimelineSnapshot,
    Track,
    TrackKind,
)


# =============================================================================
# REQUESTS
# =============================================================================


class CreateTrackRequest(BaseModel):
    kind: TrackKind
    name: str | None = None


class UpdateTrackRequest(BaseModel):
    name: str | None = None
    height: int | None = None
    muted: bool | None = None
    solo: bool | None = None
    locked: bool | None = None
    collapsed: bool | None = None
    color: str | None = None
    volume: float | None = None
    pan: float | None = None


class AddSegmentRequest(BaseModel):
    track_id: str
    media: MediaReference
    position: float = Field(default=0.0, description="Timeline start (seconds)")


class MoveSegmentRequest(BaseModel):
    position: float
    snap: bool = Field(default=False, description="Resolve the position against snap points")


class AddEffectRequest(BaseModel):
    segment_id: str | None = None
    template_id: str | None = Field(
        default=None, description="Build the effect from a registered template"
    )
    effect: EffectSpec | None = None


class UpdateParameterRequest(BaseModel):
    value: Any


class AddKeyframeRequest(BaseModel):
    time: float
    value: Any
    easing: Easing = Easing.LINEAR
    bezier_points: tuple[float, float, float, float] | None = None


class PlayheadRequest(BaseModel):
    position: float


class ZoomRequest(BaseModel):
    zoom: float


class InOutRequest(BaseModel):
    in_point: float | None = None
    out_point: float | None = None


class SelectionRequest(BaseModel):
    segment_ids: list[str] = Field(default_factory=list)


class SnapRequest(BaseModel):
    enabled: bool | None = None
    tolerance: float | None = None


# =============================================================================
# RESPONSES
# =============================================================================


class TimelineSnapshotResponse(BaseModel):
    ok: bool
    timeline: TimelineSnapshot


class TrackResponse(BaseModel):
    ok: bool
    track: Track


class SegmentResponse(BaseModel):
    ok: bool
    segment: Segment


class SegmentListResponse(BaseModel):
    ok: bool
    segments: list[Segment]


class EffectResponse(BaseModel):
    ok: bool
    effect: Effect


class ParameterResponse(BaseModel):
    ok: bool
    parameter: EffectParameter


class KeyframeResponse(BaseModel):
    ok: bool
    keyframe: Keyframe


class ParameterValueResponse(BaseModel):
    ok: bool
    time: float
    value: Any


class PlayheadResponse(BaseModel):
    ok: bool
    playhead: float


class ZoomResponse(BaseModel):
    ok: bool
    zoom: float


class InOutResponse(BaseModel):
    ok: bool
    points: InOutPoints


class SelectionResponse(BaseModel):
    ok: bool
    selection: list[str]


class SnapResponse(BaseModel):
    ok: bool
    snap: SnapSettings


class DeleteResponse(BaseModel):
    ok: bool
