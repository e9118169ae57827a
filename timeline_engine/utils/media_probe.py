"""Media analysis collaborators: source duration and stream layout."""
from __future__ import annotations

import json
import logging
import subprocess
from typing import Protocol

from timeline_engine.config import EngineSettings, get_settings
from timeline_engine.models.timeline_models import MediaInfo, MediaStreamInfo

logger = logging.getLogger(__name__)


class MediaAnalyzer(Protocol):
    def probe(self, path: str) -> MediaInfo | None:
        """Return duration and stream layout of ``path``, or None if unreadable."""
        ...


class VisualsProvider(Protocol):
    """
    Supplies thumbnails / waveform samples for a segment, typically from a
    worker. The engine stores whatever it is handed via
    ``TimelineStore.set_segment_thumbnails`` / ``set_segment_waveform``.
    """

    def request_thumbnails(self, segment_id: str, path: str, count: int) -> None:
        ...

    def request_waveform(self, segment_id: str, path: str, samples: int) -> None:
        ...


def parse_ffprobe_output(path: str, payload: dict) -> MediaInfo | None:
    """Build MediaInfo from ``ffprobe -print_format json`` output."""
    streams = MediaStreamInfo()
    for stream in payload.get("streams", []):
        index = stream.get("index")
        if index is None:
            continue
        codec_type = stream.get("codec_type")
        if codec_type == "video":
            streams.video_streams.append(int(index))
        elif codec_type == "audio":
            streams.audio_streams.append(int(index))
        elif codec_type == "subtitle":
            streams.subtitle_streams.append(int(index))

    raw_duration = payload.get("format", {}).get("duration")
    if raw_duration is None:
        # some containers only report per-stream durations
        stream_durations = [
            float(s["duration"]) for s in payload.get("streams", []) if s.get("duration")
        ]
        raw_duration = max(stream_durations) if stream_durations else None
    if raw_duration is None:
        return None

    try:
        duration = float(raw_duration)
    except (TypeError, ValueError):
        return None

    return MediaInfo(path=path, duration=max(0.0, duration), streams=streams)


class FFprobeMediaAnalyzer:
    """Probe media with the ffprobe binary (FFPROBE_BIN)."""

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or get_settings()

    def probe(self, path: str) -> MediaInfo | None:
        cmd = [
            self.settings.ffprobe_bin,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            path,
        ]

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.settings.ffprobe_timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            logger.warning("ffprobe timed out for %s", path)
            return None
        except OSError as exc:
            logger.error("ffprobe could not be started: %s", exc)
            return None

        if result.returncode != 0:
            logger.warning("ffprobe failed for %s: %s", path, result.stderr.strip())
            return None

        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            logger.warning("ffprobe returned invalid JSON for %s", path)
            return None

        return parse_ffprobe_output(path, payload)
