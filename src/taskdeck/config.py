# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Read once in the composition root, then passed explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKDECK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Front-ends ----
    console_enabled: bool

    # ---- Store ----
    current_user_id: str

    # ---- Due-date sweep ----
    due_sweep_enabled: bool
    due_sweep_interval_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    storage_dir: Path
    log_dir: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck") or "taskdeck"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        current_user_id = _env(_k("CURRENT_USER_ID"), "user-1").strip() or "user-1"

        due_sweep_enabled = _env_bool(_k("DUE_SWEEP_ENABLED"), True)
        # One sweep per day of continuous operation (plus one at startup).
        due_sweep_interval_seconds = max(1.0, _env_float(_k("DUE_SWEEP_INTERVAL_SECONDS"), 86400.0))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))
        storage_dir = _env_path(_k("STORAGE_DIR"), data_dir / "storage")
        log_dir = _env_path(_k("LOG_DIR"), data_dir)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            current_user_id=current_user_id,
            due_sweep_enabled=due_sweep_enabled,
            due_sweep_interval_seconds=due_sweep_interval_seconds,
            data_dir=data_dir,
            storage_dir=storage_dir,
            log_dir=log_dir,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded (with .env) on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
