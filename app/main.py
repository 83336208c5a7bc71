from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.ingestion.espn_client import EspnClientError, normalize_dates
from app.ingestion.leagues import LEAGUES, normalize_league_key
from app.ingestion.news import NEWS_REFRESH_INTERVAL, aggregate_news
from app.log_buffer import get_buffer_handler, install_buffer_handler
from app.schemas import ErrorResponse, LeagueOut, NewsResponse
from app.scoreboard import (
    UPSTREAM_ERROR_MESSAGE,
    UnsupportedLeagueError,
    build_scoreboard,
    cache_control_header,
)
from app.settings import get_settings

app = FastAPI(title="RTG Scores")
logger = logging.getLogger(__name__)


def _error(status_code: int, body: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


@app.on_event("startup")
async def install_logging() -> None:
    install_buffer_handler(get_settings().log_level)
    logger.info("App starting up with leagues=%s", ",".join(LEAGUES))


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/api/leagues", response_model=list[LeagueOut])
def api_leagues():
    return [LeagueOut(key=league.key, label=league.label, sport=league.sport) for league in LEAGUES.values()]


@app.get("/api/scoreboard")
async def api_scoreboard(league: str | None = None, date: str | None = None):
    try:
        normalize_dates(date)
    except ValueError as exc:
        return _error(400, ErrorResponse(error=str(exc)))

    try:
        payload = await build_scoreboard(league, date)
    except UnsupportedLeagueError as exc:
        return _error(400, ErrorResponse(error=str(exc)))
    except EspnClientError as exc:
        logger.error(
            "Scoreboard upstream failure league=%s date=%s status=%s detail=%s",
            league,
            date,
            exc.status,
            exc.detail,
        )
        return _error(
            502,
            ErrorResponse(
                error=UPSTREAM_ERROR_MESSAGE,
                status=exc.status,
                detail=exc.detail or str(exc),
            ),
            headers={"Cache-Control": "no-store"},
        )

    body = payload.model_dump(by_alias=True, mode="json")
    if body.get("notice") is None:
        body.pop("notice", None)
    return JSONResponse(
        content=body,
        headers={"Cache-Control": cache_control_header(payload.refresh_interval)},
    )


@app.get("/api/news")
async def api_news(league: str | None = None):
    leagues = None
    if league:
        normalized = normalize_league_key(league)
        if normalized not in LEAGUES:
            return _error(400, ErrorResponse(error=f"Unsupported league: {normalized}"))
        leagues = [normalized]

    articles = await aggregate_news(leagues)
    response = NewsResponse(articles=articles, refresh_interval=NEWS_REFRESH_INTERVAL)
    return JSONResponse(
        content=response.model_dump(by_alias=True, mode="json"),
        headers={"Cache-Control": cache_control_header(NEWS_REFRESH_INTERVAL)},
    )


@app.get("/api/logs")
def api_logs(limit: int = 100, level: str | None = None):
    handler = get_buffer_handler()
    return {"entries": handler.entries(limit=limit, min_level=level)}
