"""App configuration — environment variable loading with typed defaults.

Loads settings from .env file (via python-dotenv) and os.environ.
Real environment variables take precedence over .env file values.

Storage tiers are switched off by setting their location to an empty
string (GURU_DATABASE_URL="" skips the durable store, GURU_KV_PATH=""
skips the key-value file). The in-memory tier is always present.

Usage:
    from guru.config import get_settings
    settings = get_settings()
    print(settings.scorer_fallback_score)  # 0.85
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Only load .env from the project root; don't traverse parent directories.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DOTENV_PATH = PROJECT_ROOT / ".env"

EXECUTOR_KINDS: tuple[str, ...] = ("thread", "process")


@dataclass(frozen=True)
class Settings:
    """Typed configuration for the Guru Protocol backend.

    All fields have sensible defaults for local development.
    """

    # App
    app_env: str
    app_port: int
    log_level: str
    cors_origins: list[str]

    # Storage
    database_url: str
    kv_store_path: str

    # Scorers
    scorer_executor: str
    scorer_max_workers: int
    scorer_timeout_seconds: float
    scorer_fallback_score: float


def _split_csv(value: str) -> list[str]:
    """Splits a comma-separated string into a list of stripped, non-empty values."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_number(env_var: str, default: str, kind: type) -> int | float:
    """Reads a numeric env var, naming the variable on failure.

    Raises:
        ValueError: If the value cannot be parsed as ``kind``.
    """
    raw = os.environ.get(env_var, default)
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for {env_var}: {raw!r}. Expected {kind.__name__}."
        ) from None


def _resolve_executor(value: str) -> str:
    if value in EXECUTOR_KINDS:
        return value
    valid = ", ".join(EXECUTOR_KINDS)
    raise ValueError(
        f"Invalid value for SCORER_EXECUTOR: {value!r}. "
        f"Valid options: {valid}"
    )


def _load_settings() -> Settings:
    """Loads configuration from .env file and environment variables.

    Returns:
        A fully resolved Settings instance.
    """
    load_dotenv(_DOTENV_PATH)

    fallback = _parse_number("SCORER_FALLBACK_SCORE", "0.85", float)
    if not 0.0 <= fallback <= 1.0:
        raise ValueError(
            f"Invalid value for SCORER_FALLBACK_SCORE: {fallback!r}. "
            "Expected a score between 0 and 1."
        )

    return Settings(
        # App
        app_env=os.environ.get("APP_ENV", "development"),
        app_port=_parse_number("APP_PORT", "8000", int),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        cors_origins=_split_csv(
            os.environ.get("CORS_ORIGINS", "http://localhost:4200,http://localhost:5173")
        ),
        # Storage
        database_url=os.environ.get("GURU_DATABASE_URL", "sqlite:///data/guru.db"),
        kv_store_path=os.environ.get("GURU_KV_PATH", "data/guru-kv.json"),
        # Scorers
        scorer_executor=_resolve_executor(os.environ.get("SCORER_EXECUTOR", "thread")),
        scorer_max_workers=_parse_number("SCORER_MAX_WORKERS", "3", int),
        scorer_timeout_seconds=_parse_number("SCORER_TIMEOUT_SECONDS", "2.0", float),
        scorer_fallback_score=fallback,
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Returns the singleton Settings instance. Loads .env on first call."""
    global _settings
    if _settings is None:
        _settings = _load_settings()
    return _settings
