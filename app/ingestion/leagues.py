"""Supported leagues mapping for ESPN endpoints."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class League:
    key: str
    label: str
    sport: str
    path: str


LEAGUES: dict[str, League] = {
    "wnba": League("wnba", "WNBA", "Basketball", "sports/basketball/wnba"),
    "nwsl": League("nwsl", "NWSL", "Soccer", "sports/soccer/usa.nwsl"),
    "pwhl": League("pwhl", "PWHL", "Hockey", "sports/hockey/pwhl"),
}

DEFAULT_LEAGUE = "wnba"


def normalize_league_key(league_key: str | None) -> str:
    if not league_key:
        return DEFAULT_LEAGUE
    return league_key.strip().lower() or DEFAULT_LEAGUE


def get_league(league_key: str) -> League | None:
    return LEAGUES.get(normalize_league_key(league_key))


def get_league_path(league_key: str) -> str | None:
    """Return ESPN path segment for a league key (e.g., wnba).

    Returns None when the league is not supported.
    """

    league = get_league(league_key)
    return league.path if league else None
