import pytest

from timeline_engine.config import EngineSettings
from timeline_engine.models.timeline_models import MediaInfo, MediaReference, MediaStreamInfo
from timeline_engine.operators.events import TimelineEvent
from timeline_engine.operators.timeline_store import TimelineStore


class FakeMediaAnalyzer:
    def __init__(self, durations=None):
        self.durations = durations or {}
        self.calls = []

    def probe(self, path):
        self.calls.append(path)
        duration = self.durations.get(path)
        if duration is None:
            return None
        return MediaInfo(
            path=path,
            duration=duration,
            streams=MediaStreamInfo(video_streams=[0], audio_streams=[1]),
        )


class EventRecorder:
    """Subscribes to every event and keeps (name, payload) pairs."""

    def __init__(self, store):
        self.events = []
        for event in TimelineEvent:
            store.on(event, lambda payload, name=event.value: self.events.append((name, payload)))

    @property
    def names(self):
        return [name for name, _ in self.events]

    def payloads(self, name):
        return [payload for event_name, payload in self.events if event_name == name]

    def clear(self):
        self.events.clear()


def media(path="clip.mp4", source_in=0.0, source_out=10.0):
    return MediaReference(path=path, source_in=source_in, source_out=source_out)


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def store(settings):
    return TimelineStore(settings=settings)


@pytest.fixture
def recorder(store):
    return EventRecorder(store)
