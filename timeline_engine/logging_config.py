import logging
import os
from pathlib import Path

from timeline_engine.config import ROOT_DIR

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _attach_file_handler(
    logger_name: str,
    log_file_path: Path,
    level_name: str,
) -> None:
    level_value = getattr(logging, level_name.upper(), logging.INFO)

    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(level_value)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    target_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(log_file_path)
        for handler in target_logger.handlers
    ):
        target_logger.addHandler(file_handler)
    target_logger.setLevel(level_value)


def configure_logging() -> None:
    """Set up root logging from LOG_LEVEL and optional TIMELINE_LOG_FILE."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    log_file = os.getenv("TIMELINE_LOG_FILE", "").strip()
    if log_file:
        log_path = Path(log_file)
        if not log_path.is_absolute():
            log_path = ROOT_DIR / log_path
        _attach_file_handler(
            "timeline_engine",
            log_path,
            os.getenv("TIMELINE_LOG_LEVEL", log_level).strip(),
        )
