"""Application configuration module.

Reads settings from environment variables with defaults that match a
typical on-stage draw: tickets 1-50, three prizes, one winner per prize.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from core.constants import DrawDefaults, DrawMode

# Load environment variables from .env file when present
load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_optional_int(name: str) -> Optional[int]:
    """Get integer from environment variable, ``None`` when unset or invalid."""
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


def _parse_name_list(value: str) -> tuple[str, ...]:
    """Parse comma-separated names, dropping blanks."""
    if not value:
        return ()
    return tuple(name.strip() for name in value.split(",") if name.strip())


def _get_mode(name: str, default: DrawMode) -> DrawMode:
    """Get draw mode from environment variable, falling back on unknown values."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return DrawMode(value.strip().lower())
    except ValueError:
        return default


@dataclass(frozen=True)
class Config:
    environment: str
    debug: bool
    web_host: str
    web_port: int
    secret_key: str
    log_folder: str
    log_level: str
    session_path: str
    autosave: bool
    export_folder: str
    draw_title: str
    default_entries: str
    default_mode: DrawMode
    default_prizes: tuple[str, ...]
    winners_per_prize: int
    draw_seed: Optional[int]


def load_config() -> Config:
    """Load application configuration from environment variables.

    Returns:
        Config: Application configuration with validated values
    """
    prizes = _parse_name_list(_get_str("DEFAULT_PRIZES", ",".join(DrawDefaults.PRIZES)))
    winners_per_prize = _get_int("WINNERS_PER_PRIZE", DrawDefaults.WINNERS_PER_PRIZE)

    config = Config(
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        web_host=_get_str("WEB_HOST", "127.0.0.1"),
        web_port=_get_int("WEB_PORT", 5000),
        secret_key=_get_str("SECRET_KEY", "change_me_in_production"),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        session_path=_get_str("SESSION_PATH", "data/lucky-draw-session.json"),
        autosave=_get_bool("AUTOSAVE", True),
        export_folder=_get_str("EXPORT_FOLDER", "exports"),
        draw_title=_get_str("DRAW_TITLE", DrawDefaults.TITLE),
        default_entries=_get_str("DEFAULT_ENTRIES", DrawDefaults.ENTRY_SPEC),
        default_mode=_get_mode("DEFAULT_MODE", DrawMode.NUMBERS),
        default_prizes=prizes or DrawDefaults.PRIZES,
        winners_per_prize=max(1, winners_per_prize),
        draw_seed=_get_optional_int("DRAW_SEED"),
    )

    return config
