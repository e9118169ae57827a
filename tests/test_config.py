import logging

import pytest

from timeline_engine import logging_config
from timeline_engine.config import EngineSettings, get_settings


def test_defaults(monkeypatch):
    for name in (
        "TIMELINE_MIN_ZOOM",
        "TIMELINE_MAX_ZOOM",
        "TIMELINE_SNAP_ENABLED",
        "TIMELINE_SNAP_TOLERANCE_PX",
        "FFPROBE_BIN",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.min_zoom == 0.1
    assert settings.max_zoom == 10.0
    assert settings.snap_enabled is True
    assert settings.snap_tolerance_px == 5.0
    assert settings.ffprobe_bin == "ffprobe"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TIMELINE_MAX_ZOOM", "20")
    monkeypatch.setenv("TIMELINE_SNAP_ENABLED", "false")
    monkeypatch.setenv("TIMELINE_TRACK_HEIGHT", "64")
    monkeypatch.setenv("FFPROBE_BIN", "/usr/local/bin/ffprobe")

    settings = EngineSettings.from_env()

    assert settings.max_zoom == 20.0
    assert settings.snap_enabled is False
    assert settings.track_height == 64
    assert settings.ffprobe_bin == "/usr/local/bin/ffprobe"


def test_invalid_number(monkeypatch):
    monkeypatch.setenv("TIMELINE_MIN_ZOOM", "tiny")
    with pytest.raises(ValueError):
        EngineSettings.from_env()


def test_inverted_zoom_range(monkeypatch):
    monkeypatch.setenv("TIMELINE_MIN_ZOOM", "5")
    monkeypatch.setenv("TIMELINE_MAX_ZOOM", "2")
    with pytest.raises(ValueError):
        EngineSettings.from_env()


def test_file_handler_attached_once(tmp_path):
    log_path = tmp_path / "logs" / "timeline.log"
    logger_name = "timeline_engine.tests.file_handler"

    logging_config._attach_file_handler(logger_name, log_path, "debug")
    logging_config._attach_file_handler(logger_name, log_path, "debug")

    target = logging.getLogger(logger_name)
    handlers = [h for h in target.handlers if isinstance(h, logging.FileHandler)]
    try:
        assert len(handlers) == 1
        assert target.level == logging.DEBUG
        assert log_path.parent.is_dir()
    finally:
        for handler in handlers:
            target.removeHandler(handler)
            handler.close()
