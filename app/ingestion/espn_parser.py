"""Parser for ESPN scoreboard payloads."""

from __future__ import annotations

import logging
import math
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from app.ingestion.schema import Game, GameStatus, TeamScore

logger = logging.getLogger(__name__)


def _dig(node: Any, *path: str | int) -> Any:
    """Walk ``path`` through nested dicts/lists, returning None on any miss."""
    current = node
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _first_text(node: Any, *paths: tuple[str | int, ...]) -> str | None:
    for path in paths:
        value = _dig(node, *path)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _identifier(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _coerce_score(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        cleaned = value.strip()
        try:
            return int(cleaned)
        except ValueError:
            pass
        try:
            number = float(cleaned)
        except ValueError:
            return None
        if math.isfinite(number) and number.is_integer():
            return int(number)
    return None


def parse_instant(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # Offset pushes the instant outside the representable range.
        return None


def format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def generate_fallback_id(prefix: str = "game") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}-{int(time.time() * 1000)}"


def _first_competition(event: Any) -> dict[str, Any] | None:
    competition = _dig(event, "competitions", 0)
    return competition if isinstance(competition, dict) else None


def _raw_start(event: dict[str, Any]) -> Any:
    return _dig(event, "competitions", 0, "date") or event.get("date")


def event_identifier(event: Any) -> str | None:
    """Dedup key: ``competition:<id>``, else ``event:<id>``, else None."""
    competition_id = _identifier(_dig(event, "competitions", 0, "id"))
    if competition_id:
        return f"competition:{competition_id}"
    event_id = _identifier(_dig(event, "id"))
    if event_id:
        return f"event:{event_id}"
    return None


def _event_sort_time(event: dict[str, Any]) -> float:
    raw_start = _raw_start(event)
    if raw_start is None:
        return time.time()
    parsed = parse_instant(raw_start)
    if parsed is None:
        return math.inf
    return parsed.timestamp()


def dedupe_and_sort_events(events: Iterable[Any]) -> list[dict[str, Any]]:
    seen: dict[str, dict[str, Any]] = {}
    with_unknown_id: list[dict[str, Any]] = []

    for event in events:
        if not isinstance(event, dict):
            continue
        identifier = event_identifier(event)
        if identifier is None:
            with_unknown_id.append(event)
            continue
        if identifier not in seen:
            seen[identifier] = event

    unique_events = [*seen.values(), *with_unknown_id]
    return sorted(unique_events, key=_event_sort_time)


def normalize_status(status: Any) -> GameStatus:
    state = (_first_text(status, ("type", "state")) or "pre").lower()
    detail = _first_text(status, ("type", "detail"), ("type", "description")) or "Scheduled"
    short_detail = (
        _first_text(
            status,
            ("type", "shortDetail"),
            ("type", "detail"),
            ("type", "description"),
        )
        or "TBD"
    )

    # "final" contains "in", so completed states are matched first.
    if "post" in state or "final" in state:
        normalized_state = "post"
    elif "in" in state:
        normalized_state = "in"
    else:
        normalized_state = "pre"

    return GameStatus(state=normalized_state, detail=detail, short_detail=short_detail)


def _extract_record(competitor: dict[str, Any]) -> str | None:
    records = _dicts(competitor.get("records"))
    for record in records:
        if record.get("type") == "total" and isinstance(record.get("summary"), str):
            return record["summary"]
    for record in records:
        if isinstance(record.get("summary"), str):
            return record["summary"]
    return None


def normalize_team(competitor: dict[str, Any], home_away: str) -> TeamScore:
    team = competitor.get("team") if isinstance(competitor.get("team"), dict) else {}
    return TeamScore(
        id=_identifier(team.get("id"))
        or _identifier(competitor.get("id"))
        or generate_fallback_id("team"),
        display_name=_first_text(team, ("displayName",), ("shortDisplayName",)) or "TBD",
        short_display_name=_first_text(team, ("shortDisplayName",), ("displayName",)) or "",
        abbreviation=_first_text(team, ("abbreviation",), ("shortDisplayName",)) or "",
        logo=_first_text(team, ("logo",), ("logos", 0, "href")),
        score=_coerce_score(competitor.get("score")),
        record=_extract_record(competitor),
        home_away=home_away,
    )


def _find_side(competitors: list[dict[str, Any]], side: str) -> dict[str, Any] | None:
    for competitor in competitors:
        home_away = competitor.get("homeAway")
        if isinstance(home_away, str) and home_away.lower() == side:
            return competitor
    return None


def _first_broadcast(competition: dict[str, Any]) -> str | None:
    for broadcast in _dicts(competition.get("broadcasts")):
        names = broadcast.get("names")
        if isinstance(names, list):
            for name in names:
                if isinstance(name, str) and name.strip():
                    return name
    return None


def _first_note(competition: dict[str, Any]) -> str | None:
    for note in _dicts(competition.get("notes")):
        headline = note.get("headline")
        if isinstance(headline, str) and headline.strip():
            return headline
    return None


def _start_time(event: dict[str, Any]) -> str:
    raw_start = _raw_start(event)
    if raw_start is None:
        return format_instant(datetime.now(timezone.utc))
    parsed = parse_instant(raw_start)
    return format_instant(parsed) if parsed else str(raw_start)


def normalize_event(event: Any) -> Game | None:
    """Map one raw ESPN event into a Game, or None if it cannot be normalized."""

    competition = _first_competition(event)
    if competition is None:
        logger.debug("Dropping event without competition id=%s", _dig(event, "id"))
        return None

    status = normalize_status(competition.get("status"))
    competitors = _dicts(competition.get("competitors"))
    home = _find_side(competitors, "home")
    away = _find_side(competitors, "away")
    if home is None or away is None:
        logger.debug(
            "Dropping event missing home/away competitor id=%s",
            _identifier(competition.get("id")) or _identifier(event.get("id")),
        )
        return None

    game_id = _identifier(competition.get("id")) or _identifier(event.get("id"))
    if game_id is None:
        game_id = generate_fallback_id()
        logger.debug("Event has no upstream id, assigned fallback id=%s", game_id)

    return Game(
        id=game_id,
        start_time=_start_time(event),
        venue=_first_text(competition, ("venue", "fullName")),
        broadcast=_first_broadcast(competition),
        note=_first_note(competition),
        status=status,
        home=normalize_team(home, "home"),
        away=normalize_team(away, "away"),
    )


def scoreboard_events(scoreboard_json: Any) -> list[Any]:
    events = _dig(scoreboard_json, "events")
    return list(events) if isinstance(events, list) else []


def normalize_events(events: Iterable[Any]) -> list[Game]:
    games: list[Game] = []
    for event in dedupe_and_sort_events(events):
        game = normalize_event(event)
        if game is not None:
            games.append(game)
    return games


def parse_scoreboard(scoreboard_json: Any) -> list[Game]:
    """Parse ESPN scoreboard JSON into a deduplicated, chronological Game list."""

    return normalize_events(scoreboard_events(scoreboard_json))
