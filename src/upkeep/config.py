# src/upkeep/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Early-completion policies are plain switches here, not hardcoded behavior.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .schedule.guard import THRESHOLDS
from .schedule.models import Category

ENV_PREFIX = "UPKEEP"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def parse_thresholds(raw: str | None) -> dict[Category, int]:
    """
    "Weekly=2, Monthly=7" -> {Category.WEEKLY: 2, Category.MONTHLY: 7, ...}.

    Missing categories keep their default; bad entries are skipped.
    """
    out = dict(THRESHOLDS)
    if not raw or not raw.strip():
        return out
    for part in raw.split(","):
        name, sep, value = part.partition("=")
        category = Category.parse(name.strip())
        if not sep or category is None:
            logger.warning("Ignoring early-mark threshold entry %r", part.strip())
            continue
        try:
            out[category] = int(value.strip())
        except ValueError:
            logger.warning("Ignoring early-mark threshold entry %r", part.strip())
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Record store ----
    data_dir: Path
    records_db_path: Path
    tasks_collection: str
    machines_collection: str

    # ---- Early-completion policies ----
    confirm_early_completion: bool
    allow_early_mark: bool
    early_mark_thresholds: dict[Category, int] = field(default_factory=lambda: dict(THRESHOLDS))

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "upkeep") or "upkeep"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/upkeep"))
        records_db_path = _env_path(_k("RECORDS_DB_PATH"), data_dir / "records.sqlite3")
        tasks_collection = _env(_k("TASKS_COLLECTION"), "maintenanceSchedule").strip("/") or "maintenanceSchedule"
        machines_collection = _env(_k("MACHINES_COLLECTION"), "machines").strip("/") or "machines"

        confirm_early_completion = _env_bool(_k("CONFIRM_EARLY_COMPLETION"), True)
        allow_early_mark = _env_bool(_k("ALLOW_EARLY_MARK"), True)
        early_mark_thresholds = parse_thresholds(os.getenv(_k("EARLY_MARK_THRESHOLDS")))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            records_db_path=records_db_path,
            tasks_collection=tasks_collection,
            machines_collection=machines_collection,
            confirm_early_completion=confirm_early_completion,
            allow_early_mark=allow_early_mark,
            early_mark_thresholds=early_mark_thresholds,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
