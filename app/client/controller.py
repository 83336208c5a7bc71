"""Cache-then-network refresh controllers for the scoreboard and news feeds.

A controller seeds its state from the local store, runs one foreground
fetch, and keeps a background poll alive at the interval the server last
declared. Failures fall back to the last persisted payload; only when no
payload was ever saved does the state carry a hard error. Cancelling a
fetch (stop, league switch, manual refresh) never touches state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import httpx

from app.client.storage import NEWS_KEY, ClientStore, scoreboard_key
from app.ingestion.leagues import DEFAULT_LEAGUE, normalize_league_key

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 180  # seconds
NEWS_DEFAULT_REFRESH_INTERVAL = 300  # seconds

SCOREBOARD_CACHE_NOTICE = "You're offline. Showing saved scores."
SCOREBOARD_ERROR = "Unable to load the latest scores. Please try again in a moment."
NEWS_CACHE_NOTICE = "You're offline. Showing saved headlines."
NEWS_ERROR = "Unable to load the latest headlines. Please try again in a moment."


class FetchFailure(Exception):
    pass


@dataclass(frozen=True)
class FeedState:
    data: Optional[dict[str, Any]] = None
    loading: bool = False
    error: Optional[str] = None
    using_cache: bool = False
    cache_notice: Optional[str] = None
    refresh_interval_seconds: int = DEFAULT_REFRESH_INTERVAL


Listener = Callable[[FeedState], None]


def _declared_interval(payload: Any, current: int) -> int:
    value = payload.get("refreshInterval") if isinstance(payload, dict) else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return current
    return int(value)


class FeedController:
    def __init__(
        self,
        http: httpx.AsyncClient,
        store: ClientStore,
        *,
        path: str,
        cache_key: str,
        params: dict[str, str] | None = None,
        cache_notice: str = SCOREBOARD_CACHE_NOTICE,
        error_message: str = SCOREBOARD_ERROR,
        default_interval: int = DEFAULT_REFRESH_INTERVAL,
        on_change: Listener | None = None,
    ) -> None:
        self.http = http
        self.store = store
        self.path = path
        self.params = params or {}
        self.cache_key = cache_key
        self.cache_notice = cache_notice
        self.error_message = error_message
        self.default_interval = default_interval
        self.on_change = on_change
        self.state = FeedState(refresh_interval_seconds=default_interval)
        self._generation = 0
        self._issued = 0
        self._applied = 0
        self._active = False
        self._foreground: asyncio.Task | None = None
        self._poller: asyncio.Task | None = None
        self._interval_changed = asyncio.Event()

    def _read_cache(self) -> dict[str, Any] | None:
        cached = self.store.get(self.cache_key, None)
        return cached if isinstance(cached, dict) else None

    def _update(self, **changes: Any) -> None:
        new_state = replace(self.state, **changes)
        if new_state == self.state:
            return
        previous_interval = self.state.refresh_interval_seconds
        self.state = new_state
        if new_state.refresh_interval_seconds != previous_interval:
            self._interval_changed.set()
        if self.on_change is not None:
            self.on_change(new_state)

    def start(self) -> asyncio.Task:
        """Seed from cache, then launch the foreground fetch and the poller."""
        if self._active:
            raise RuntimeError("controller already started")
        self._active = True
        self._generation += 1
        self._interval_changed = asyncio.Event()

        cached = self._read_cache()
        if cached is not None:
            self._update(
                data=cached,
                loading=False,
                error=None,
                using_cache=False,
                cache_notice=None,
                refresh_interval_seconds=_declared_interval(cached, self.default_interval),
            )
        else:
            self._update(
                data=None,
                loading=True,
                error=None,
                using_cache=False,
                cache_notice=None,
                refresh_interval_seconds=self.default_interval,
            )

        self._foreground = asyncio.create_task(self.load(background=False))
        self._poller = asyncio.create_task(self._poll_loop())
        return self._foreground

    def refresh(self) -> asyncio.Task:
        """Replace any in-flight foreground fetch with a new one."""
        if not self._active:
            raise RuntimeError("controller is not running")
        if self._foreground is not None and not self._foreground.done():
            self._foreground.cancel()
        self._foreground = asyncio.create_task(self.load(background=False))
        return self._foreground

    async def stop(self) -> None:
        self._active = False
        self._generation += 1
        tasks = [task for task in (self._foreground, self._poller) if task is not None and not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._foreground = None
        self._poller = None

    async def _request(self) -> dict[str, Any]:
        try:
            response = await self.http.get(self.path, params=self.params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise FetchFailure(str(exc)) from exc
        except ValueError as exc:
            raise FetchFailure(f"invalid JSON from {self.path}") from exc
        if not isinstance(payload, dict):
            raise FetchFailure(f"unexpected payload from {self.path}")
        return payload

    def _is_stale(self, generation: int, ticket: int) -> bool:
        return generation != self._generation or ticket < self._applied

    def _finish_superseded(self, generation: int, background: bool) -> None:
        # A newer request already settled the data; only the spinner is ours to clear.
        if not background and generation == self._generation:
            self._update(loading=False)

    async def load(self, *, background: bool = False) -> None:
        generation = self._generation
        self._issued += 1
        ticket = self._issued
        cached = self._read_cache()
        if not background:
            self._update(error=None, cache_notice=None, loading=cached is None)

        try:
            payload = await self._request()
        except FetchFailure as exc:
            if self._is_stale(generation, ticket):
                self._finish_superseded(generation, background)
                return
            self._applied = ticket
            logger.warning("Refresh failed path=%s background=%s error=%s", self.path, background, exc)
            self._apply_failure(cached, background)
            return

        if self._is_stale(generation, ticket):
            logger.debug("Discarding stale response path=%s", self.path)
            self._finish_superseded(generation, background)
            return
        self._applied = ticket
        self._apply_success(payload, background)

    def _apply_success(self, payload: dict[str, Any], background: bool) -> None:
        self.store.set(self.cache_key, payload)
        changes: dict[str, Any] = dict(
            data=payload,
            error=None,
            cache_notice=None,
            using_cache=False,
            refresh_interval_seconds=_declared_interval(payload, self.default_interval),
        )
        if not background:
            changes["loading"] = False
        self._update(**changes)

    def _apply_failure(self, cached: dict[str, Any] | None, background: bool) -> None:
        fallback = self._read_cache() or cached
        if fallback is not None:
            changes: dict[str, Any] = dict(
                data=fallback,
                error=None,
                cache_notice=self.cache_notice,
                using_cache=True,
                refresh_interval_seconds=_declared_interval(
                    fallback, self.state.refresh_interval_seconds
                ),
            )
            if not background:
                changes["loading"] = False
            self._update(**changes)
        elif background:
            # Keep whatever is on screen.
            return
        else:
            self._update(
                data=None,
                loading=False,
                error=self.error_message,
                cache_notice=None,
                using_cache=False,
            )

    async def _poll_loop(self) -> None:
        while self._active:
            self._interval_changed.clear()
            interval = self.state.refresh_interval_seconds
            if interval <= 0:
                await self._interval_changed.wait()
                continue
            try:
                await asyncio.wait_for(self._interval_changed.wait(), timeout=interval)
                continue
            except asyncio.TimeoutError:
                pass
            try:
                await self.load(background=True)
            except Exception:
                logger.exception("Background refresh crashed path=%s", self.path)


def scoreboard_feed(
    http: httpx.AsyncClient,
    store: ClientStore,
    league: str,
    on_change: Listener | None = None,
) -> FeedController:
    league_key = normalize_league_key(league)
    return FeedController(
        http,
        store,
        path="/api/scoreboard",
        params={"league": league_key},
        cache_key=scoreboard_key(league_key),
        cache_notice=SCOREBOARD_CACHE_NOTICE,
        error_message=SCOREBOARD_ERROR,
        default_interval=DEFAULT_REFRESH_INTERVAL,
        on_change=on_change,
    )


def news_feed(
    http: httpx.AsyncClient,
    store: ClientStore,
    on_change: Listener | None = None,
) -> FeedController:
    return FeedController(
        http,
        store,
        path="/api/news",
        cache_key=NEWS_KEY,
        cache_notice=NEWS_CACHE_NOTICE,
        error_message=NEWS_ERROR,
        default_interval=NEWS_DEFAULT_REFRESH_INTERVAL,
        on_change=on_change,
    )


class ScoreboardController:
    """Owns at most one league feed; switching leagues tears the old one down first."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: ClientStore,
        league: str = DEFAULT_LEAGUE,
        on_change: Listener | None = None,
    ) -> None:
        self.http = http
        self.store = store
        self.league = normalize_league_key(league)
        self.on_change = on_change
        self.feed: FeedController | None = None

    @property
    def state(self) -> FeedState:
        return self.feed.state if self.feed is not None else FeedState()

    async def start(self) -> asyncio.Task:
        return await self.switch_league(self.league)

    async def switch_league(self, league: str) -> asyncio.Task:
        if self.feed is not None:
            await self.feed.stop()
        self.league = normalize_league_key(league)
        self.feed = scoreboard_feed(self.http, self.store, self.league, self.on_change)
        return self.feed.start()

    async def stop(self) -> None:
        if self.feed is not None:
            await self.feed.stop()
