"""
Timeline Handler - REST API endpoints over a TimelineStore.

The router is a thin client of the store's public operations. Endpoints are
``async def`` so every mutation runs on the event loop thread and the store
keeps a single writer.

Errors:
    *NotFoundError      -> 404
    SegmentLockedError  -> 409
    InvalidValueError   -> 400
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request

from timeline_engine.models.api_models import (
    AddEffectRequest,
    AddKeyframeRequest,
    AddSegmentRequest,
    CreateTrackRequest,
    DeleteResponse,
    EffectResponse,
    InOutRequest,
    InOutResponse,
    KeyframeResponse,
    MoveSegmentRequest,
    ParameterResponse,
    ParameterValueResponse,
    PlayheadRequest,
    PlayheadResponse,
    SegmentListResponse,
    SegmentResponse,
    SelectionRequest,
    SelectionResponse,
    SnapRequest,
    SnapResponse,
    TimelineSnapshotResponse,
    TrackResponse,
    UpdateParameterRequest,
    UpdateTrackRequest,
    ZoomRequest,
    ZoomResponse,
)
from timeline_engine.models.timeline_models import TimelineSnapshot
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
from timeline_engine.operators.timeline_store import TimelineStore


router = APIRouter(prefix="/timeline", tags=["timeline"])

_NOT_FOUND_ERRORS = (
    TrackNotFoundError,
    SegmentNotFoundError,
    EffectNotFoundError,
    ParameterNotFoundError,
    KeyframeNotFoundError,
    TemplateNotFoundError,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def get_store(request: Request) -> TimelineStore:
    """The store owned by the running application."""
    return request.app.state.timeline_store


def handle_timeline_error(e: Exception):
    """Convert timeline exceptions to HTTP exceptions."""
    if isinstance(e, _NOT_FOUND_ERRORS):
        raise HTTPException(status_code=404, detail=str(e))
    elif isinstance(e, SegmentLockedError):
        raise HTTPException(
            status_code=409,
            detail={
                "error": "segment_locked",
                "segment_id": e.segment_id,
                "track_id": e.track_id,
                "message": str(e),
            },
        )
    elif isinstance(e, InvalidValueError):
        raise HTTPException(status_code=400, detail=str(e))
    else:
        raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}")


# =============================================================================
# SNAPSHOT
# =============================================================================


@router.get("", response_model=TimelineSnapshotResponse)
async def timeline_get(store: TimelineStore = Depends(get_store)):
    """Get the whole timeline as a snapshot."""
    return TimelineSnapshotResponse(ok=True, timeline=store.snapshot())


@router.put("", response_model=TimelineSnapshotResponse)
async def timeline_replace(
    snapshot: TimelineSnapshot,
    store: TimelineStore = Depends(get_store),
):
    """
    Replace the entire timeline with a snapshot.

    The snapshot is replayed through the store's operations, so an invalid
    snapshot is rejected with 400.
    """
    try:
        store.load_snapshot(snapshot)
        return TimelineSnapshotResponse(ok=True, timeline=store.snapshot())
    except TimelineError as e:
        handle_timeline_error(e)


# =============================================================================
# TRACKS
# =============================================================================


@router.post("/tracks", response_model=TrackResponse)
async def track_create(
    request: CreateTrackRequest,
    store: TimelineStore = Depends(get_store),
):
    try:
        track = store.create_track(request.kind, name=request.name)
        return TrackResponse(ok=True, track=track)
    except TimelineError as e:
        handle_timeline_error(e)


@router.patch("/tracks/{track_id}", response_model=TrackResponse)
async def track_update(
    request: UpdateTrackRequest,
    track_id: str = Path(..., description="Track ID"),
    store: TimelineStore = Depends(get_store),
):
    """Update display/mix attributes. Only fields present in the body change."""
    try:
        changes = request.model_dump(exclude_none=True)
        track = store.update_track(track_id, **changes)
        if track is None:
            raise TrackNotFoundError(track_id)
        return TrackResponse(ok=True, track=track)
    except TimelineError as e:
        handle_timeline_error(e)


@router.delete("/tracks/{track_id}", response_model=DeleteResponse)
async def track_delete(
    track_id: str = Path(..., description="Track ID"),
    store: TimelineStore = Depends(get_store),
):
    """Remove a track and its segments. Unknown ids succeed."""
    store.remove_track(track_id)
    return DeleteResponse(ok=True)


# =============================================================================
# SEGMENTS
# =============================================================================


@router.post("/segments", response_model=SegmentResponse)
async def segment_add(
    request: AddSegmentRequest,
    store: TimelineStore = Depends(get_store),
):
    try:
        segment = store.add_segment(request.track_id, request.media, request.position)
        return SegmentResponse(ok=True, segment=segment)
    except TimelineError as e:
        handle_timeline_error(e)


@router.patch("/segments/{segment_id}/position", response_model=SegmentResponse)
async def segment_move(
    request: MoveSegmentRequest,
    segment_id: str = Path(..., description="Segment ID"),
    store: TimelineStore = Depends(get_store),
):
    """Move a segment; with ``snap`` the position is resolved like a drag."""
    try:
        if request.snap:
            segment = store.drag_segment(segment_id, request.position)
        else:
            segment = store.move_segment(segment_id, request.position)
        return SegmentResponse(ok=True, segment=segment)
    except TimelineError as e:
        handle_timeline_error(e)


@router.delete("/tracks/{track_id}/segments/{segment_id}", response_model=DeleteResponse)
async def segment_delete(
    track_id: str = Path(..., description="Track ID"),
    segment_id: str = Path(..., description="Segment ID"),
    store: TimelineStore = Depends(get_store),
):
    store.remove_segment(track_id, segment_id)
    return DeleteResponse(ok=True)


@router.get("/segments-at-time", response_model=SegmentListResponse)
async def segments_at_time(
    time: float = Query(..., ge=0, description="Timeline time (seconds)"),
    store: TimelineStore = Depends(get_store),
):
    return SegmentListResponse(ok=True, segments=store.get_segments_at_time(time))


# =============================================================================
# EFFECTS & KEYFRAMES
# =============================================================================


@router.post("/effects", response_model=EffectResponse)
async def effect_add(
    request: AddEffectRequest,
    store: TimelineStore = Depends(get_store),
):
    """Attach an effect to a segment, from a template or an explicit spec."""
    try:
        if request.segment_id is None:
            raise InvalidValueError("segment_id is required")
        if request.template_id is not None:
            effect = store.add_effect_from_template(request.segment_id, request.template_id)
        elif request.effect is not None:
            effect = store.add_effect(request.segment_id, request.effect)
        else:
            raise InvalidValueError("Either template_id or effect is required")
        return EffectResponse(ok=True, effect=effect)
    except TimelineError as e:
        handle_timeline_error(e)


@router.delete("/segments/{segment_id}/effects/{effect_id}", response_model=DeleteResponse)
async def effect_delete(
    segment_id: str = Path(..., description="Segment ID"),
    effect_id: str = Path(..., description="Effect ID"),
    store: TimelineStore = Depends(get_store),
):
    store.remove_effect(segment_id, effect_id)
    return DeleteResponse(ok=True)


@router.patch(
    "/effects/{effect_id}/parameters/{parameter_id}", response_model=ParameterResponse
)
async def parameter_update(
    request: UpdateParameterRequest,
    effect_id: str = Path(..., description="Effect ID"),
    parameter_id: str = Path(..., description="Parameter ID"),
    store: TimelineStore = Depends(get_store),
):
    try:
        parameter = store.update_effect_parameter(effect_id, parameter_id, request.value)
        return ParameterResponse(ok=True, parameter=parameter)
    except TimelineError as e:
        handle_timeline_error(e)


@router.post(
    "/effects/{effect_id}/parameters/{parameter_id}/keyframes",
    response_model=KeyframeResponse,
)
async def keyframe_add(
    request: AddKeyframeRequest,
    effect_id: str = Path(..., description="Effect ID"),
    parameter_id: str = Path(..., description="Parameter ID"),
    store: TimelineStore = Depends(get_store),
):
    try:
        keyframe = store.add_effect_keyframe(
            effect_id,
            parameter_id,
            request.time,
            request.value,
            easing=request.easing,
            bezier_points=request.bezier_points,
        )
        return KeyframeResponse(ok=True, keyframe=keyframe)
    except TimelineError as e:
        handle_timeline_error(e)


@router.delete(
    "/effects/{effect_id}/parameters/{parameter_id}/keyframes/{keyframe_id}",
    response_model=DeleteResponse,
)
async def keyframe_delete(
    effect_id: str = Path(..., description="Effect ID"),
    parameter_id: str = Path(..., description="Parameter ID"),
    keyframe_id: str = Path(..., description="Keyframe ID"),
    store: TimelineStore = Depends(get_store),
):
    store.remove_effect_keyframe(effect_id, parameter_id, keyframe_id)
    return DeleteResponse(ok=True)


@router.get(
    "/effects/{effect_id}/parameters/{parameter_id}/value",
    response_model=ParameterValueResponse,
)
async def parameter_value(
    effect_id: str = Path(..., description="Effect ID"),
    parameter_id: str = Path(..., description="Parameter ID"),
    time: float = Query(..., description="Effect-relative time (seconds)"),
    store: TimelineStore = Depends(get_store),
):
    try:
        value = store.get_parameter_value(effect_id, parameter_id, time)
        return ParameterValueResponse(ok=True, time=time, value=value)
    except TimelineError as e:
        handle_timeline_error(e)


# =============================================================================
# TRANSPORT
# =============================================================================


@router.put("/playhead", response_model=PlayheadResponse)
async def playhead_set(
    request: PlayheadRequest,
    store: TimelineStore = Depends(get_store),
):
    try:
        return PlayheadResponse(ok=True, playhead=store.set_playhead(request.position))
    except TimelineError as e:
        handle_timeline_error(e)


@router.put("/zoom", response_model=ZoomResponse)
async def zoom_set(
    request: ZoomRequest,
    store: TimelineStore = Depends(get_store),
):
    try:
        return ZoomResponse(ok=True, zoom=store.set_zoom(request.zoom))
    except TimelineError as e:
        handle_timeline_error(e)


@router.put("/in-out", response_model=InOutResponse)
async def in_out_set(
    request: InOutRequest,
    store: TimelineStore = Depends(get_store),
):
    try:
        points = store.set_in_out_points(request.in_point, request.out_point)
        return InOutResponse(ok=True, points=points)
    except TimelineError as e:
        handle_timeline_error(e)


@router.put("/selection", response_model=SelectionResponse)
async def selection_set(
    request: SelectionRequest,
    store: TimelineStore = Depends(get_store),
):
    return SelectionResponse(ok=True, selection=store.set_selection(request.segment_ids))


@router.post("/snap", response_model=SnapResponse)
async def snap_update(
    request: SnapRequest,
    store: TimelineStore = Depends(get_store),
):
    try:
        if request.enabled is not None:
            store.set_snap_enabled(request.enabled)
        if request.tolerance is not None:
            store.set_snap_tolerance(request.tolerance)
        return SnapResponse(ok=True, snap=store.timeline.snap)
    except TimelineError as e:
        handle_timeline_error(e)
