"""Backfill thin scoreboard slates with games from upcoming calendar dates."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable

from app.ingestion.espn_client import ScoreboardFetch, fetch_scoreboard
from app.ingestion.espn_parser import normalize_events, parse_instant, scoreboard_events
from app.ingestion.schema import Game

logger = logging.getLogger(__name__)

MIN_GAMES = 4
MAX_EXTRA_DATES = 2
CALENDAR_DATE_KEYS = frozenset({"date", "startDate", "endDate"})
NEXT_DAY_PATHS = (("day", "next"), ("day", "nextDate"), ("nextDate",))


@dataclass
class CoverageResult:
    games: list[Game]
    dates: list[str]
    fetched_dates: list[str] = field(default_factory=list)


def normalize_calendar_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` for compact or ISO date strings, else None."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if re.fullmatch(r"\d{8}", cleaned):
        try:
            return date(int(cleaned[:4]), int(cleaned[4:6]), int(cleaned[6:])).isoformat()
        except ValueError:
            return None
    parsed = parse_instant(cleaned)
    if parsed is None:
        return None
    return parsed.date().isoformat()


def _lookup(node: Any, path: tuple[str, ...]) -> Any:
    current = node
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _event_dates(event: Any) -> Iterable[str]:
    if not isinstance(event, dict):
        return
    candidates = [event.get("date")]
    competitions = event.get("competitions")
    if isinstance(competitions, list):
        candidates.extend(
            competition.get("date")
            for competition in competitions
            if isinstance(competition, dict)
        )
    for candidate in candidates:
        normalized = normalize_calendar_date(candidate)
        if normalized:
            yield normalized


def collect_covered_dates(
    payload: Any,
    events: Iterable[Any],
    requested_dates: Iterable[str | None] = (),
) -> set[str]:
    covered: set[str] = set()
    for requested in requested_dates:
        normalized = normalize_calendar_date(requested)
        if normalized:
            covered.add(normalized)

    day_date = normalize_calendar_date(_lookup(payload, ("day", "date")))
    if day_date:
        covered.add(day_date)

    for event in events:
        covered.update(_event_dates(event))
    return covered


def _walk_calendar(node: Any, found: list[str]) -> None:
    if isinstance(node, str):
        found.append(node)
    elif isinstance(node, list):
        for item in node:
            _walk_calendar(item, found)
    elif isinstance(node, dict):
        for key, value in node.items():
            if key in CALENDAR_DATE_KEYS and isinstance(value, str):
                found.append(value)
            elif isinstance(value, (dict, list)):
                _walk_calendar(value, found)


def discover_candidate_dates(payload: Any, covered: set[str]) -> list[str]:
    """Upcoming dates advertised by the payload that are not covered yet.

    Only dates after the latest covered date qualify, so a season-long
    calendar does not pull in games from months ago.
    """

    raw_candidates: list[str] = []
    for path in NEXT_DAY_PATHS:
        pointer = _lookup(payload, path)
        if isinstance(pointer, str):
            raw_candidates.append(pointer)

    if isinstance(payload, dict):
        _walk_calendar(payload.get("calendar"), raw_candidates)
        leagues = payload.get("leagues")
        if isinstance(leagues, list):
            for league in leagues:
                if isinstance(league, dict):
                    _walk_calendar(league.get("calendar"), raw_candidates)

    latest_covered = max(covered) if covered else None
    candidates: set[str] = set()
    for raw in raw_candidates:
        normalized = normalize_calendar_date(raw)
        if not normalized or normalized in covered:
            continue
        if latest_covered is not None and normalized <= latest_covered:
            continue
        candidates.add(normalized)
    return sorted(candidates)


async def ensure_coverage(
    league_key: str,
    payload: Any,
    events: list[Any],
    games: list[Game],
    requested_date: str | None = None,
    *,
    min_games: int = MIN_GAMES,
    max_extra_dates: int = MAX_EXTRA_DATES,
    fetch: Callable[[str, str], ScoreboardFetch] | None = None,
) -> CoverageResult:
    """Fetch up to ``max_extra_dates`` more dates when ``games`` is too thin.

    Each extra fetch fails independently; a failure only means that date
    stays uncovered.
    """

    covered = collect_covered_dates(payload, events, [requested_date])
    if len(games) >= min_games:
        return CoverageResult(games=games, dates=sorted(covered))

    limit = max(0, min(max_extra_dates, MAX_EXTRA_DATES))
    extra_dates = discover_candidate_dates(payload, covered)[:limit]
    if not extra_dates:
        return CoverageResult(games=games, dates=sorted(covered))

    fetch = fetch or fetch_scoreboard
    logger.info(
        "Expanding coverage league=%s games=%s extra_dates=%s",
        league_key,
        len(games),
        ",".join(extra_dates),
    )
    results = await asyncio.gather(
        *(asyncio.to_thread(fetch, league_key, extra_date) for extra_date in extra_dates),
        return_exceptions=True,
    )

    appended: list[Any] = []
    fetched_dates: list[str] = []
    for extra_date, result in zip(extra_dates, results):
        if isinstance(result, Exception):
            logger.warning(
                "Coverage fetch failed league=%s date=%s error=%s",
                league_key,
                extra_date,
                result,
            )
            continue
        fetched_dates.append(extra_date)
        covered.add(extra_date)
        extra_events = scoreboard_events(result.payload)
        for event in extra_events:
            covered.update(_event_dates(event))
        appended.extend(extra_events)

    if not appended:
        return CoverageResult(games=games, dates=sorted(covered), fetched_dates=fetched_dates)

    return CoverageResult(
        games=normalize_events([*events, *appended]),
        dates=sorted(covered),
        fetched_dates=fetched_dates,
    )
