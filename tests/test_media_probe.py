import json
import subprocess

from timeline_engine.config import EngineSettings
from timeline_engine.utils import media_probe
from timeline_engine.utils.media_probe import FFprobeMediaAnalyzer, parse_ffprobe_output


FFPROBE_PAYLOAD = {
    "streams": [
        {"index": 0, "codec_type": "video", "duration": "12.000000"},
        {"index": 1, "codec_type": "audio", "duration": "12.021333"},
        {"index": 2, "codec_type": "subtitle"},
        {"index": 3, "codec_type": "data"},
    ],
    "format": {"duration": "12.021333"},
}


class _Completed:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def test_parse_ffprobe_output_groups_streams():
    info = parse_ffprobe_output("clip.mp4", FFPROBE_PAYLOAD)

    assert info.path == "clip.mp4"
    assert info.duration == 12.021333
    assert info.streams.video_streams == [0]
    assert info.streams.audio_streams == [1]
    assert info.streams.subtitle_streams == [2]


def test_parse_ffprobe_output_falls_back_to_stream_duration():
    payload = {"streams": [{"index": 0, "codec_type": "audio", "duration": "4.5"}], "format": {}}

    assert parse_ffprobe_output("a.wav", payload).duration == 4.5


def test_parse_ffprobe_output_without_duration():
    assert parse_ffprobe_output("still.png", {"streams": [], "format": {}}) is None


def test_probe_runs_ffprobe(monkeypatch):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        captured["timeout"] = kwargs["timeout"]
        return _Completed(stdout=json.dumps(FFPROBE_PAYLOAD))

    monkeypatch.setattr(media_probe.subprocess, "run", fake_run)
    analyzer = FFprobeMediaAnalyzer(EngineSettings(ffprobe_bin="/opt/ffprobe", ffprobe_timeout_seconds=5.0))

    info = analyzer.probe("clip.mp4")

    assert info.duration == 12.021333
    assert captured["cmd"][0] == "/opt/ffprobe"
    assert captured["cmd"][-1] == "clip.mp4"
    assert "-show_streams" in captured["cmd"]
    assert captured["timeout"] == 5.0


def test_probe_failure_returns_none(monkeypatch):
    monkeypatch.setattr(
        media_probe.subprocess,
        "run",
        lambda cmd, **kwargs: _Completed(returncode=1, stderr="No such file"),
    )

    assert FFprobeMediaAnalyzer(EngineSettings()).probe("missing.mp4") is None


def test_probe_timeout_returns_none(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(media_probe.subprocess, "run", fake_run)

    assert FFprobeMediaAnalyzer(EngineSettings()).probe("slow.mp4") is None


def test_probe_missing_binary_returns_none(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(media_probe.subprocess, "run", fake_run)

    assert FFprobeMediaAnalyzer(EngineSettings()).probe("clip.mp4") is None


def test_probe_invalid_json_returns_none(monkeypatch):
    monkeypatch.setattr(
        media_probe.subprocess, "run", lambda cmd, **kwargs: _Completed(stdout="not json")
    )

    assert FFprobeMediaAnalyzer(EngineSettings()).probe("clip.mp4") is None
