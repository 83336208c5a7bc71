"""Scoreboard request pipeline: fetch, normalize, backfill, pick a refresh cadence."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable

from app.ingestion.coverage import ensure_coverage
from app.ingestion.espn_client import fetch_scoreboard, normalize_dates
from app.ingestion.espn_parser import format_instant, normalize_events, scoreboard_events
from app.ingestion.leagues import League, get_league, normalize_league_key
from app.ingestion.schema import Game
from app.schemas import ScoreboardResponse
from app.settings import get_settings

logger = logging.getLogger(__name__)

LIVE_REFRESH_INTERVAL = 30  # seconds
DEFAULT_REFRESH_INTERVAL = 180  # seconds
STALE_WHILE_REVALIDATE_SECONDS = 60

UPSTREAM_ERROR_MESSAGE = "We couldn't reach the ESPN scoreboard feed right now."
NOT_PUBLISHED_NOTICE = "ESPN hasn't published scoreboard data for this league yet today."
UNAVAILABLE_NOTICE = (
    "ESPN's scoreboard feed for this league isn't available right now. "
    "We'll keep checking for updates."
)


class UnsupportedLeagueError(ValueError):
    def __init__(self, league_key: str) -> None:
        super().__init__(f"Unsupported league: {league_key}")
        self.league_key = league_key


def resolve_league(league_key: str | None) -> League:
    normalized = normalize_league_key(league_key)
    league = get_league(normalized)
    if league is None:
        raise UnsupportedLeagueError(normalized)
    return league


def refresh_interval_for(games: Iterable[Game]) -> int:
    if any(game.status.state == "in" for game in games):
        return LIVE_REFRESH_INTERVAL
    return DEFAULT_REFRESH_INTERVAL


def cache_control_header(refresh_interval: int) -> str:
    return (
        f"public, max-age={refresh_interval}, s-maxage={refresh_interval}, "
        f"stale-while-revalidate={STALE_WHILE_REVALIDATE_SECONDS}"
    )


def _now_iso() -> str:
    return format_instant(datetime.now(timezone.utc))


def empty_scoreboard(league: League, status: int) -> ScoreboardResponse:
    notice = NOT_PUBLISHED_NOTICE if status == 204 else UNAVAILABLE_NOTICE
    return ScoreboardResponse(
        league=league.key,
        label=league.label,
        games=[],
        last_updated=_now_iso(),
        refresh_interval=DEFAULT_REFRESH_INTERVAL,
        notice=notice,
        dates=[],
    )


async def build_scoreboard(
    league_key: str | None,
    requested_date: str | None = None,
) -> ScoreboardResponse:
    """Build the scoreboard payload for one request.

    Raises ``UnsupportedLeagueError`` or ``ValueError`` (bad date) before any
    upstream call, and lets ``EspnClientError`` propagate on upstream failure.
    """

    league = resolve_league(league_key)
    compact_date = normalize_dates(requested_date)
    settings = get_settings()

    fetched = await asyncio.to_thread(fetch_scoreboard, league.key, compact_date)
    if fetched.is_empty:
        logger.info("Scoreboard empty league=%s status=%s", league.key, fetched.status)
        return empty_scoreboard(league, fetched.status)

    events = scoreboard_events(fetched.payload)
    games = normalize_events(events)
    coverage = await ensure_coverage(
        league.key,
        fetched.payload,
        events,
        games,
        compact_date,
        min_games=settings.min_games,
        max_extra_dates=settings.max_extra_dates,
        fetch=fetch_scoreboard,
    )

    refresh_interval = refresh_interval_for(coverage.games)
    logger.info(
        "Scoreboard built league=%s events=%s games=%s dates=%s refresh=%s",
        league.key,
        len(events),
        len(coverage.games),
        ",".join(coverage.dates),
        refresh_interval,
    )
    return ScoreboardResponse(
        league=league.key,
        label=league.label,
        games=coverage.games,
        last_updated=_now_iso(),
        refresh_interval=refresh_interval,
        dates=coverage.dates,
    )
