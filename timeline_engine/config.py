"""Engine settings read from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(ROOT_DIR / ".env")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineSettings:
    min_zoom: float = 0.1
    max_zoom: float = 10.0
    default_zoom: float = 1.0
    track_height: int = 80
    snap_enabled: bool = True
    snap_tolerance_px: float = 5.0
    pixels_per_second: float = 100.0
    ffprobe_bin: str = "ffprobe"
    ffprobe_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> EngineSettings:
        settings = cls(
            min_zoom=_env_float("TIMELINE_MIN_ZOOM", cls.min_zoom),
            max_zoom=_env_float("TIMELINE_MAX_ZOOM", cls.max_zoom),
            default_zoom=_env_float("TIMELINE_DEFAULT_ZOOM", cls.default_zoom),
            track_height=int(_env_float("TIMELINE_TRACK_HEIGHT", cls.track_height)),
            snap_enabled=_env_bool("TIMELINE_SNAP_ENABLED", cls.snap_enabled),
            snap_tolerance_px=_env_float("TIMELINE_SNAP_TOLERANCE_PX", cls.snap_tolerance_px),
            pixels_per_second=_env_float("TIMELINE_PIXELS_PER_SECOND", cls.pixels_per_second),
            ffprobe_bin=os.getenv("FFPROBE_BIN", cls.ffprobe_bin).strip() or cls.ffprobe_bin,
            ffprobe_timeout_seconds=_env_float(
                "FFPROBE_TIMEOUT_SECONDS", cls.ffprobe_timeout_seconds
            ),
        )
        if settings.min_zoom <= 0 or settings.min_zoom > settings.max_zoom:
            raise ValueError(
                f"Invalid zoom range: [{settings.min_zoom}, {settings.max_zoom}]"
            )
        return settings


def get_settings() -> EngineSettings:
    return EngineSettings.from_env()
