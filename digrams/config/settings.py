"""Central configuration for digram recording and the shared store.

Environment variables (a ``.env`` file is honoured via python-dotenv):

* DIGRAMS_FILE               -> persisted store path (default ``~/.digrams``)
* DIGRAMS_LOCK_FILE          -> lock file path (default ``<DIGRAMS_FILE>.lock``)
* DIGRAMS_EXCLUDED           -> comma separated events that never form digrams
* DIGRAMS_AUTOSAVE_INTERVAL  -> seconds between autosaves, 0 disables (default 600)
* DIGRAMS_REPORT_TARGET      -> ``-`` for stdout or a file path (default ``-``)
* DIGRAMS_SAVE_RETRY_DELAY   -> seconds between blocking save attempts (default 0.1)
* DIGRAMS_SAVE_MAX_ATTEMPTS  -> 0 retries forever; >0 bounds blocking saves
* DIGRAMS_ENABLED            -> record events at all (default on)

Getters read the environment on every call so tests can monkeypatch it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_STORE_FILE = "~/.digrams"
DEFAULT_AUTOSAVE_INTERVAL = 600.0
DEFAULT_REPORT_TARGET = "-"
DEFAULT_SAVE_RETRY_DELAY = 0.1

_TRUE = ("1", "true", "yes", "on")


def _env_list(var: str) -> List[str] | None:
    raw = os.getenv(var)
    if not raw:
        return None
    return [p.strip() for p in raw.split(",") if p.strip()]


def _env_float(var: str, default: float) -> float:
    raw = os.getenv(var)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise EnvironmentError(f"{var} must be a number, got {raw!r}")


def get_store_path() -> Path:
    return Path(os.getenv("DIGRAMS_FILE") or DEFAULT_STORE_FILE).expanduser()


def get_lock_path() -> Path:
    explicit = os.getenv("DIGRAMS_LOCK_FILE")
    if explicit:
        return Path(explicit).expanduser()
    store = get_store_path()
    return store.with_name(store.name + ".lock")


def get_excluded_events() -> FrozenSet[str]:
    return frozenset(_env_list("DIGRAMS_EXCLUDED") or [])


def get_autosave_interval() -> float:
    return _env_float("DIGRAMS_AUTOSAVE_INTERVAL", DEFAULT_AUTOSAVE_INTERVAL)


def get_report_target() -> str:
    return os.getenv("DIGRAMS_REPORT_TARGET") or DEFAULT_REPORT_TARGET


def get_save_retry_delay() -> float:
    return _env_float("DIGRAMS_SAVE_RETRY_DELAY", DEFAULT_SAVE_RETRY_DELAY)


def get_save_max_attempts() -> int:
    return int(_env_float("DIGRAMS_SAVE_MAX_ATTEMPTS", 0))


def get_enabled() -> bool:
    return os.getenv("DIGRAMS_ENABLED", "1").strip().lower() in _TRUE


@dataclass(frozen=True)
class Settings:
    store_path: Path
    lock_path: Path
    excluded_events: FrozenSet[str] = frozenset()
    autosave_interval: float = DEFAULT_AUTOSAVE_INTERVAL
    report_target: str = DEFAULT_REPORT_TARGET
    save_retry_delay: float = DEFAULT_SAVE_RETRY_DELAY
    save_max_attempts: int = 0
    enabled: bool = True


def load_settings() -> Settings:
    return Settings(
        store_path=get_store_path(),
        lock_path=get_lock_path(),
        excluded_events=get_excluded_events(),
        autosave_interval=get_autosave_interval(),
        report_target=get_report_target(),
        save_retry_delay=get_save_retry_delay(),
        save_max_attempts=get_save_max_attempts(),
        enabled=get_enabled(),
    )


def validate_settings(settings: Settings | None = None, raise_on_invalid: bool = False) -> List[str]:
    problems = []
    settings = settings or load_settings()
    if settings.autosave_interval < 0:
        problems.append("DIGRAMS_AUTOSAVE_INTERVAL must not be negative")
    if settings.save_retry_delay < 0:
        problems.append("DIGRAMS_SAVE_RETRY_DELAY must not be negative")
    if settings.save_max_attempts < 0:
        problems.append("DIGRAMS_SAVE_MAX_ATTEMPTS must not be negative")
    if settings.lock_path == settings.store_path:
        problems.append("DIGRAMS_LOCK_FILE must differ from DIGRAMS_FILE")
    if problems and raise_on_invalid:
        raise EnvironmentError(f"Invalid digram settings: {'; '.join(problems)}")
    return problems


__all__ = [
    "Settings",
    "load_settings",
    "validate_settings",
    "get_store_path",
    "get_lock_path",
    "get_excluded_events",
    "get_autosave_interval",
    "get_report_target",
    "get_save_retry_delay",
    "get_save_max_attempts",
    "get_enabled",
]
