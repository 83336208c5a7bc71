"""League headline feeds: normalize, merge, dedupe and order newest first."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Any, Iterable
from urllib.parse import urlsplit, urlunsplit

from app.ingestion.espn_client import fetch_news
from app.ingestion.espn_parser import format_instant, parse_instant
from app.ingestion.leagues import LEAGUES
from app.schemas import NewsArticle

logger = logging.getLogger(__name__)

NEWS_REFRESH_INTERVAL = 300  # seconds
_PUBLISHED_KEYS = ("published", "publishedAt", "lastModified", "updated", "created", "displayDate")


def _clean_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return re.sub(r"\s+", " ", value).strip()


def _first_clean(article: dict[str, Any], *keys: str) -> str:
    for key in keys:
        cleaned = _clean_text(article.get(key))
        if cleaned:
            return cleaned
    return ""


def _normalize_byline(byline: Any) -> str | None:
    cleaned = _clean_text(byline)
    if not cleaned:
        return None
    return re.sub(r"^by\s+", "", cleaned, flags=re.IGNORECASE).strip() or None


def _extract_url(article: dict[str, Any]) -> str | None:
    links = article.get("links") if isinstance(article.get("links"), dict) else {}
    candidates = [article.get("link"), article.get("href")]
    for kind in ("mobile", "web"):
        link = links.get(kind)
        if isinstance(link, dict):
            candidates.insert(0, link.get("href"))
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _published_at(article: dict[str, Any]) -> str | None:
    for key in _PUBLISHED_KEYS:
        parsed = parse_instant(article.get(key))
        if parsed is not None:
            return format_instant(parsed)
    return None


def normalize_article(article: Any, league: str) -> NewsArticle | None:
    if not isinstance(article, dict):
        return None

    url = _extract_url(article)
    raw_id = article.get("id") if article.get("id") is not None else article.get("guid")
    article_id = str(raw_id).strip() if raw_id is not None else ""
    if not url and not article_id:
        return None

    title = _first_clean(article, "headline", "title", "name", "shortHeadline", "summary")
    return NewsArticle(
        id=article_id or f"{league}-{url}",
        title=title or url or article_id,
        summary=_first_clean(article, "description", "summary", "subtitle"),
        league=league,
        published_at=_published_at(article),
        author=_normalize_byline(article.get("byline")),
        url=url,
    )


def parse_news(payload: Any, league: str) -> list[NewsArticle]:
    if not isinstance(payload, dict):
        return []
    raw_articles = payload.get("articles")
    if not isinstance(raw_articles, list):
        raw_articles = payload.get("headlines")
    if not isinstance(raw_articles, list):
        return []

    articles: list[NewsArticle] = []
    for raw in raw_articles:
        article = normalize_article(raw, league)
        if article is not None:
            articles.append(article)
    return articles


def canonical_url(url: str) -> str:
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, "", ""))


def _dedupe_key(article: NewsArticle) -> str:
    if article.url:
        try:
            return f"url:{canonical_url(article.url)}"
        except ValueError:
            logger.debug("Unparsable article url=%s league=%s", article.url, article.league)
            return f"url:{article.url.strip()}"
    return f"id:{article.id}"


def _published_sort_key(article: NewsArticle) -> float:
    parsed = parse_instant(article.published_at)
    # Newest first, undated last.
    return -parsed.timestamp() if parsed else math.inf


def merge_articles(articles: Iterable[NewsArticle]) -> list[NewsArticle]:
    seen: dict[str, NewsArticle] = {}
    for article in articles:
        key = _dedupe_key(article)
        if key in seen:
            logger.debug(
                "Dropping duplicate article key=%s league=%s kept_league=%s",
                key,
                article.league,
                seen[key].league,
            )
            continue
        seen[key] = article
    return sorted(seen.values(), key=_published_sort_key)


def fetch_league_news(league: str) -> list[NewsArticle]:
    return parse_news(fetch_news(league), league)


async def aggregate_news(leagues: Iterable[str] | None = None) -> list[NewsArticle]:
    """Fetch every league feed concurrently; failed feeds are logged and skipped."""

    league_keys = list(leagues) if leagues is not None else list(LEAGUES)
    results = await asyncio.gather(
        *(asyncio.to_thread(fetch_league_news, league) for league in league_keys),
        return_exceptions=True,
    )

    collected: list[NewsArticle] = []
    for league, result in zip(league_keys, results):
        if isinstance(result, Exception):
            logger.error("Failed to load %s news: %s", league.upper(), result)
            continue
        collected.extend(result)
    return merge_articles(collected)
