"""CLI entrypoint that follows a league scoreboard (or the news feed) from a running server."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date

import httpx

from app.client.controller import FeedState, ScoreboardController, news_feed
from app.client.storage import ClientStore
from app.ingestion.leagues import DEFAULT_LEAGUE, LEAGUES
from app.settings import get_settings


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Poll the scoreboard API and print updates, falling back to saved data offline.",
    )
    parser.add_argument(
        "--league",
        type=str,
        default=DEFAULT_LEAGUE,
        help=f"League key ({', '.join(sorted(LEAGUES))}).",
    )
    parser.add_argument(
        "--news",
        action="store_true",
        help="Follow the aggregated news feed instead of a scoreboard.",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="API base URL (default: RTG_API_BASE_URL or http://127.0.0.1:8000).",
    )
    parser.add_argument(
        "--store",
        type=str,
        default=None,
        help="Path of the local cache file (default: RTG_CLIENT_STORE).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Exit after the first foreground load instead of polling.",
    )
    return parser.parse_args()


def _score(value) -> str:
    return "-" if value is None else str(value)


def format_date_range(dates: list[str] | None) -> str | None:
    parsed: list[date] = []
    for value in sorted(dates or []):
        try:
            parsed.append(date.fromisoformat(value[:10]))
        except ValueError:
            continue
    if not parsed:
        return None
    labels = [f"{day:%b} {day.day}" for day in parsed]
    if len(labels) == 1:
        return labels[0]
    return f"{labels[0]} - {labels[-1]}"


def _banner(state: FeedState, empty_message: str) -> str | None:
    if state.error and not state.data:
        return state.error
    if state.cache_notice:
        return state.cache_notice
    if state.data is not None and state.data.get("notice"):
        return str(state.data["notice"])
    return empty_message if state.data is not None else None


def render_scoreboard(state: FeedState) -> list[str]:
    if state.loading and state.data is None:
        return ["Loading scores..."]

    data = state.data or {}
    games = data.get("games") or []
    lines: list[str] = []
    if data:
        lines.append(f"{data.get('label', '')} scoreboard (updated {data.get('lastUpdated', '?')})")

    if not games:
        coverage = format_date_range(data.get("dates"))
        empty = "No games scheduled" + (f" for {coverage}." if coverage else ".")
        banner = _banner(state, empty)
        if banner:
            lines.append(banner)
        return lines

    if state.cache_notice:
        lines.append(state.cache_notice)
    for game in games:
        home = game.get("home") or {}
        away = game.get("away") or {}
        status = game.get("status") or {}
        lines.append(
            f"{away.get('abbreviation') or away.get('displayName')} {_score(away.get('score'))} @ "
            f"{home.get('abbreviation') or home.get('displayName')} {_score(home.get('score'))}"
            f"  [{status.get('shortDetail', '')}]"
        )
    return lines


def render_news(state: FeedState) -> list[str]:
    if state.loading and state.data is None:
        return ["Loading headlines..."]
    articles = (state.data or {}).get("articles") or []
    if not articles:
        banner = _banner(state, "No headlines right now.")
        return [banner] if banner else []
    lines = [state.cache_notice] if state.cache_notice else []
    for article in articles:
        lines.append(f"[{str(article.get('league', '')).upper()}] {article.get('title')}")
    return lines


async def _run(args: argparse.Namespace) -> None:
    settings = get_settings()
    base_url = (args.base_url or settings.api_base_url).rstrip("/")
    store = ClientStore(args.store or settings.client_store_path)
    render = render_news if args.news else render_scoreboard

    def on_change(state: FeedState) -> None:
        for line in render(state):
            print(line)
        print()

    async with httpx.AsyncClient(base_url=base_url, timeout=15.0) as http:
        if args.news:
            controller = news_feed(http, store, on_change)
            foreground = controller.start()
        else:
            controller = ScoreboardController(http, store, args.league, on_change)
            foreground = await controller.start()

        try:
            await foreground
            if not args.once:
                await asyncio.Event().wait()
        finally:
            await controller.stop()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    args = _parse_args()
    if not args.news and args.league.strip().lower() not in LEAGUES:
        supported = ", ".join(sorted(LEAGUES))
        raise SystemExit(f"Unsupported league: {args.league}. Supported: {supported}")

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logging.info("Stopped.")


if __name__ == "__main__":
    main()
