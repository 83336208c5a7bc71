from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)
_SETTINGS: Settings | None = None

# Coverage never issues more extra upstream calls than this, whatever the env says.
MAX_EXTRA_DATES_CEILING = 2


@dataclass(frozen=True)
class Settings:
    espn_base_url: str
    espn_timeout_seconds: float
    espn_user_agent: str
    min_games: int
    max_extra_dates: int
    log_level: str
    api_base_url: str
    client_store_path: Path


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def load_settings() -> Settings:
    store_path = os.getenv("RTG_CLIENT_STORE") or str(
        Path.home() / ".cache" / "rtg-scores" / "store.json"
    )
    return Settings(
        espn_base_url=os.getenv("ESPN_BASE_URL", "https://site.api.espn.com").rstrip("/"),
        espn_timeout_seconds=_float_env("ESPN_TIMEOUT_SECONDS", 12.0),
        espn_user_agent=os.getenv(
            "ESPN_USER_AGENT", "rtg-scores/1.0 (+https://example.local)"
        ),
        min_games=max(0, _int_env("SCOREBOARD_MIN_GAMES", 4)),
        max_extra_dates=min(
            MAX_EXTRA_DATES_CEILING,
            max(0, _int_env("SCOREBOARD_MAX_EXTRA_DATES", MAX_EXTRA_DATES_CEILING)),
        ),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        api_base_url=os.getenv("RTG_API_BASE_URL", "http://127.0.0.1:8000").rstrip("/"),
        client_store_path=Path(store_path).expanduser(),
    )


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = load_settings()
    return _SETTINGS


def reset_settings() -> None:
    global _SETTINGS
    _SETTINGS = None
