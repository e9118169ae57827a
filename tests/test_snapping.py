from conftest import media
from timeline_engine.operators import snapping


def _timeline(store):
    track = store.create_track("video")
    a = store.add_segment(track.id, media(source_out=4.0), 0.0)
    b = store.add_segment(track.id, media(source_out=2.0), 6.0)
    return a, b


def test_collect_snap_points_order(store):
    _timeline(store)
    store.set_playhead(3.0)
    store.set_in_out_points(1.0, 7.5)

    assert snapping.collect_snap_points(store.timeline) == [0.0, 4.0, 6.0, 8.0, 3.0, 1.0, 7.5]


def test_collect_snap_points_excludes_segments(store):
    a, _ = _timeline(store)

    assert snapping.collect_snap_points(store.timeline, {a.id}) == [6.0, 8.0, 0.0]


def test_resolve_nearest_within_tolerance(store):
    _timeline(store)

    assert snapping.resolve(4.2, store.timeline, 0.5) == 4.0
    assert snapping.resolve(5.8, store.timeline, 0.5) == 6.0


def test_resolve_outside_tolerance(store):
    _timeline(store)

    assert snapping.resolve(5.0, store.timeline, 0.5) == 5.0


def test_resolve_distance_must_be_strictly_less(store):
    _timeline(store)

    assert snapping.resolve(4.5, store.timeline, 0.5) == 4.5


def test_resolve_tie_keeps_first_point(store):
    _timeline(store)

    # 5.0 is 1.0 from both 4.0 and 6.0; 4.0 is enumerated first
    assert snapping.resolve(5.0, store.timeline, 2.0) == 4.0


def test_pixels_to_seconds():
    assert snapping.pixels_to_seconds(5.0, 1.0, 100.0) == 0.05
    assert snapping.pixels_to_seconds(5.0, 2.0, 100.0) == 0.025
    assert snapping.pixels_to_seconds(5.0, 0.0, 100.0) == 0.0


def test_snap_to_grid():
    assert snapping.snap_to_grid(1.26, 0.5) == 1.5
    assert snapping.snap_to_grid(1.24, 0.5) == 1.0
    assert snapping.snap_to_grid(1.24, 0.0) == 1.24


def test_store_snap_time_respects_enabled_flag(store):
    _timeline(store)

    assert store.snap_time(4.02) == 4.0
    store.set_snap_enabled(False)
    assert store.snap_time(4.02) == 4.02


def test_find_snap_point_reports_exact_hits(store):
    _timeline(store)

    assert snapping.find_snap_point(4.0, store.timeline, 0.5) == 4.0
    assert snapping.find_snap_point(5.0, store.timeline, 0.5) is None
