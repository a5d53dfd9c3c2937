from __future__ import annotations

import logging
from pathlib import Path

from playlist_forge.config import LoggingSettings

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(settings: LoggingSettings) -> None:
    """Configure process-wide logging once at startup (stderr, plus an optional file)."""

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file is not None:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.level.upper(), logging.INFO),
        format=DEFAULT_LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
