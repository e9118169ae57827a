"""
Horizontal snapping for segment drags.

Snap points are the "interesting" times of a timeline: every segment's start
and end, the playhead and the in/out points when set. ``resolve`` is pure; it
never touches the timeline.
"""

from __future__ import annotations

from collections.abc import Collection

from timeline_engine.models.timeline_models import Timeline


def collect_snap_points(
    timeline: Timeline,
    exclude_segment_ids: Collection[str] = (),
) -> list[float]:
    """
    Snap points in enumeration order: tracks in stored order, segments by
    position (start then end), then the playhead, in point and out point.
    """
    points: list[float] = []
    for segment in timeline.iter_segments():
        if segment.id in exclude_segment_ids:
            continue
        points.append(segment.position)
        points.append(segment.end)
    points.append(timeline.playhead)
    if timeline.in_point is not None:
        points.append(timeline.in_point)
    if timeline.out_point is not None:
        points.append(timeline.out_point)
    return points


def find_snap_point(
    candidate_time: float,
    timeline: Timeline,
    tolerance_seconds: float,
    exclude_segment_ids: Collection[str] = (),
) -> float | None:
    """
    The snap point closest to ``candidate_time`` when it is strictly closer
    than ``tolerance_seconds``, else None. A point at distance 0 counts.

    Equal distances keep the first point found.
    """
    best = None
    best_distance = tolerance_seconds
    for point in collect_snap_points(timeline, exclude_segment_ids):
        distance = abs(point - candidate_time)
        if distance < best_distance:
            best = point
            best_distance = distance
    return best


def resolve(
    candidate_time: float,
    timeline: Timeline,
    tolerance_seconds: float,
    exclude_segment_ids: Collection[str] = (),
) -> float:
    """Snapped time, or ``candidate_time`` unchanged when nothing is in range."""
    point = find_snap_point(candidate_time, timeline, tolerance_seconds, exclude_segment_ids)
    return candidate_time if point is None else point


def pixels_to_seconds(pixels: float, zoom: float, pixels_per_second: float) -> float:
    """Convert an on-screen distance to timeline seconds at ``zoom``."""
    scale = pixels_per_second * zoom
    if scale <= 0:
        return 0.0
    return pixels / scale


def snap_to_grid(value: float, grid_size: float) -> float:
    if grid_size <= 0:
        return value
    return round(value / grid_size) * grid_size
