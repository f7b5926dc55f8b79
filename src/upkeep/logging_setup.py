# src/upkeep/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "upkeep.log"

# Console floor per logger prefix; the longest matching prefix wins.
# The store and the machine directory log on every write/refresh.
CONSOLE_FLOORS: dict[str, int] = {
    "upkeep.": logging.NOTSET,
    "upkeep.storage.": logging.WARNING,
    "upkeep.schedule.machines": logging.WARNING,
    "py.warnings": logging.ERROR,
}


def resolve_level(value: int | str | None, default: int = logging.INFO) -> int:
    """"debug" / "WARNING" / 10 -> logging level; unknown names give the default."""
    if isinstance(value, int):
        return value
    if not value:
        return default
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while a user is typing commands:
    upkeep logs pass at the handler level, chatty components only from WARNING,
    everything else (third-party, captured warnings) only from ERROR.
    """

    def __init__(self, floors: dict[str, int] | None = None) -> None:
        super().__init__()
        self._floors = sorted((floors or CONSOLE_FLOORS).items(), key=lambda kv: len(kv[0]), reverse=True)

    def floor_for(self, name: str) -> int:
        for prefix, floor in self._floors:
            if name.startswith(prefix):
                return floor
        return logging.ERROR

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.floor_for(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/upkeep",
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.DEBUG,
) -> Path:
    """
    Root logger at DEBUG with a filtered stderr handler and a full log file
    under log_dir. Returns the log file path.

    Call once, before the store and repositories are built.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(resolve_level(file_level, logging.DEBUG))
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
