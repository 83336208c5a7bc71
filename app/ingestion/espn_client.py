"""ESPN HTTP client for fetching scoreboards and news."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from app.ingestion.leagues import get_league_path
from app.settings import get_settings

logger = logging.getLogger(__name__)
SITE_API_BASE_PATH = "/apis/site/v2"
MAX_BODY_SNIPPET = 300

# The provider answers these when nothing has been published for the slate yet.
EMPTY_STATUSES = frozenset({204, 404})


class EspnClientError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


@dataclass(frozen=True)
class ScoreboardFetch:
    """Outcome of one scoreboard GET that did not hard-fail."""

    status: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.status in EMPTY_STATUSES


def normalize_dates(value: str | date | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value.strftime("%Y%m%d")
    cleaned = value.strip()
    if not cleaned:
        return None
    if cleaned.lower() == "today":
        return date.today().strftime("%Y%m%d")
    if re.fullmatch(r"\d{8}", cleaned):
        return cleaned
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", cleaned):
        return cleaned.replace("-", "")
    raise ValueError("date must be YYYYMMDD or YYYY-MM-DD")


def _league_base_url(league_key: str) -> str:
    league_path = get_league_path(league_key)
    if league_path is None:
        raise ValueError(f"Unsupported league: {league_key}")
    return f"{get_settings().espn_base_url}{SITE_API_BASE_PATH}/{league_path}"


def build_scoreboard_url(league_key: str, game_date: Optional[date | str] = None) -> str:
    base_url = f"{_league_base_url(league_key)}/scoreboard"
    normalized_dates = normalize_dates(game_date)
    if normalized_dates:
        return f"{base_url}?{urlencode({'dates': normalized_dates})}"
    return base_url


def build_news_url(league_key: str) -> str:
    return f"{_league_base_url(league_key)}/news"


def _headers() -> dict[str, str]:
    return {
        "User-Agent": get_settings().espn_user_agent,
        "Accept": "application/json",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def _get_json(url: str) -> tuple[int, Any]:
    try:
        response = requests.get(
            url,
            headers=_headers(),
            timeout=get_settings().espn_timeout_seconds,
        )
    except requests.RequestException as exc:
        logger.error("ESPN request failed url=%s error=%s", url, exc)
        raise EspnClientError("ESPN request failed", detail=str(exc)) from exc

    if response.status_code in EMPTY_STATUSES:
        return response.status_code, None

    if not 200 <= response.status_code < 300:
        body_snippet = (response.text or "")[:MAX_BODY_SNIPPET]
        logger.error(
            "ESPN non-2xx status=%s url=%s body=%s",
            response.status_code,
            url,
            body_snippet,
        )
        raise EspnClientError(
            "ESPN returned non-2xx response",
            status=response.status_code,
            detail=body_snippet or None,
        )

    try:
        return response.status_code, response.json()
    except ValueError as exc:
        logger.error("ESPN returned invalid JSON url=%s", url)
        raise EspnClientError(
            "ESPN returned invalid JSON",
            status=response.status_code,
            detail=str(exc),
        ) from exc


def fetch_scoreboard(league_key: str, game_date: Optional[date | str] = None) -> ScoreboardFetch:
    """Fetch ESPN scoreboard data for a league and optional date.

    204/404 come back as an empty ``ScoreboardFetch``; every other failure
    raises ``EspnClientError``. There are no retries: the polling client
    owns the retry cadence.
    """

    url = build_scoreboard_url(league_key, game_date)
    status, payload = _get_json(url)
    if payload is None:
        logger.info(
            "ESPN scoreboard empty status=%s league=%s date=%s",
            status,
            league_key,
            game_date,
        )
        return ScoreboardFetch(status=status, payload={"events": []})
    if not isinstance(payload, dict):
        raise EspnClientError(
            "ESPN scoreboard payload was not an object",
            status=status,
            detail=type(payload).__name__,
        )
    return ScoreboardFetch(status=status, payload=payload)


def fetch_news(league_key: str) -> dict[str, Any]:
    url = build_news_url(league_key)
    status, payload = _get_json(url)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise EspnClientError(
            "ESPN news payload was not an object",
            status=status,
            detail=type(payload).__name__,
        )
    return payload
