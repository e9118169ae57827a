import logging

import pytest

from timeline_engine.operators.events import TimelineEvent, TimelineEventBus


def test_delivery_in_subscription_order():
    bus = TimelineEventBus()
    calls = []
    bus.subscribe("zoomChanged", lambda z: calls.append(("a", z)))
    bus.subscribe(TimelineEvent.ZOOM_CHANGED, lambda z: calls.append(("b", z)))

    bus.emit("zoomChanged", 2.0)

    assert calls == [("a", 2.0), ("b", 2.0)]


def test_unsubscribe_stops_delivery():
    bus = TimelineEventBus()
    calls = []
    unsubscribe = bus.subscribe("playheadMoved", calls.append)

    unsubscribe()
    unsubscribe()
    bus.emit("playheadMoved", 1.0)

    assert calls == []
    assert bus.listener_count("playheadMoved") == 0


def test_once():
    bus = TimelineEventBus()
    calls = []
    bus.once("durationChanged", calls.append)

    bus.emit("durationChanged", 1.0)
    bus.emit("durationChanged", 2.0)

    assert calls == [1.0]


def test_payload_type_checked():
    bus = TimelineEventBus()

    with pytest.raises(TypeError):
        bus.emit("zoomChanged", "2")
    with pytest.raises(TypeError):
        bus.emit("playheadMoved", True)
    with pytest.raises(TypeError):
        bus.emit("trackAdded", {"id": "t"})


def test_unknown_event_name():
    bus = TimelineEventBus()
    with pytest.raises(ValueError):
        bus.subscribe("clipAdded", print)


def test_failing_handler_is_logged(caplog):
    bus = TimelineEventBus()
    calls = []

    def broken(_):
        raise RuntimeError("boom")

    bus.subscribe("selectionChanged", broken)
    bus.subscribe("selectionChanged", calls.append)

    with caplog.at_level(logging.ERROR, logger="timeline_engine.operators.events"):
        bus.emit("selectionChanged", ["s1"])

    assert calls == [["s1"]]
    assert "selectionChanged" in caplog.text


def test_handler_may_unsubscribe_during_emit():
    bus = TimelineEventBus()
    calls = []
    unsubscribe_first = None

    def first(payload):
        calls.append("first")
        unsubscribe_first()

    unsubscribe_first = bus.subscribe("zoomChanged", first)
    bus.subscribe("zoomChanged", lambda payload: calls.append("second"))

    bus.emit("zoomChanged", 1.0)
    bus.emit("zoomChanged", 1.0)

    assert calls == ["first", "second", "second"]


def test_clear():
    bus = TimelineEventBus()
    bus.subscribe("zoomChanged", print)
    bus.clear()
    assert bus.listener_count("zoomChanged") == 0
