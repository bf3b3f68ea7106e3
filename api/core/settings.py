"""
Environment-driven settings.

Every value is read on call so tests can monkeypatch the environment.
Invalid numbers fall back to the default instead of failing startup.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "db" / "migrations"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def database_url_raw() -> str:
    return os.environ.get("DATABASE_URL", "").strip()


def db_pool_min_size() -> int:
    return max(0, _env_int("DB_POOL_MIN_SIZE", 1))


def db_pool_max_size() -> int:
    return max(1, db_pool_min_size(), _env_int("DB_POOL_MAX_SIZE", 5))


def db_command_timeout_s() -> float:
    return _env_float("DB_COMMAND_TIMEOUT_S", 30.0)


def db_acquire_timeout_s() -> float:
    return _env_float("DB_ACQUIRE_TIMEOUT_S", 10.0)


def migrations_dir() -> Path:
    raw = os.environ.get("MIGRATIONS_DIR", "").strip()
    return Path(raw) if raw else DEFAULT_MIGRATIONS_DIR


def migrations_enabled() -> bool:
    return _env_bool("MIGRATIONS_ENABLED", True)


def page_default_size() -> int:
    size = _env_int("PAGE_DEFAULT_SIZE", 20)
    return size if size > 0 else 20


def page_max_size() -> int:
    size = _env_int("PAGE_MAX_SIZE", 1000)
    return size if size > 0 else 1000


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
