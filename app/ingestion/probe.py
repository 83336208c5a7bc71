"""Quick probe for ESPN scoreboard availability and normalization."""

from __future__ import annotations

import argparse
import logging

from app.ingestion.espn_client import EspnClientError, fetch_scoreboard, normalize_dates
from app.ingestion.espn_parser import normalize_events, scoreboard_events
from app.ingestion.leagues import DEFAULT_LEAGUE, LEAGUES, normalize_league_key


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Probe the ESPN scoreboard for a league/date and print event and game counts.",
    )
    parser.add_argument(
        "--league",
        type=str,
        default=DEFAULT_LEAGUE,
        help=f"League key ({', '.join(sorted(LEAGUES))}).",
    )
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Date in YYYY-MM-DD or YYYYMMDD format, or 'today' (default: provider's current slate).",
    )
    return parser.parse_args()


def _normalize_league(raw: str) -> str:
    value = normalize_league_key(raw)
    if value not in LEAGUES:
        supported = ", ".join(sorted(LEAGUES))
        raise SystemExit(f"Unsupported league: {value}. Supported leagues: {supported}")
    return value


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = _parse_args()
    league = _normalize_league(args.league)
    try:
        target_date = normalize_dates(args.date)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    try:
        result = fetch_scoreboard(league, target_date)
    except EspnClientError as exc:
        logging.error("ESPN error: %s (status=%s)", exc, exc.status)
        if exc.detail:
            logging.error("Details: %s", exc.detail)
        raise SystemExit(1) from exc

    if result.is_empty:
        logging.info("No scoreboard published status=%s league=%s date=%s", result.status, league, target_date)
        return

    events = scoreboard_events(result.payload)
    games = normalize_events(events)
    logging.info(
        "Fetched %s events (%s usable games) for league=%s date=%s",
        len(events),
        len(games),
        league,
        target_date or "current",
    )
    for game in games:
        logging.info(
            "  %s %s @ %s [%s]",
            game.start_time,
            game.away.abbreviation or game.away.display_name,
            game.home.abbreviation or game.home.display_name,
            game.status.short_detail,
        )


if __name__ == "__main__":
    main()
