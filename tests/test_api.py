from __future__ import annotations

import logging
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.ingestion.espn_client import EspnClientError, ScoreboardFetch
from app.log_buffer import install_buffer_handler
from app.main import app
from app.schemas import NewsArticle
from app.scoreboard import NOT_PUBLISHED_NOTICE, UNAVAILABLE_NOTICE


def _event(comp_id: str, start: str, state: str) -> dict:
    return {
        "id": f"e-{comp_id}",
        "date": start,
        "competitions": [
            {
                "id": comp_id,
                "status": {"type": {"state": state, "detail": "Q2 5:00", "shortDetail": "Q2"}},
                "venue": {"fullName": "Michelob Ultra Arena"},
                "competitors": [
                    {"homeAway": "home", "score": "41", "team": {"id": "1", "displayName": "Las Vegas Aces", "abbreviation": "LV"}},
                    {"homeAway": "away", "team": {"id": "2", "displayName": "Seattle Storm", "abbreviation": "SEA"}},
                ],
            }
        ],
    }


class ScoreboardRouteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)

    def test_scoreboard_returns_normalized_games_with_cache_headers(self) -> None:
        payload = {
            "day": {"date": "2026-07-01"},
            "events": [
                _event("g-b", "2026-07-01T18:00Z", "pre"),
                _event("g-a", "2026-07-01T16:00Z", "in"),
            ],
        }
        with patch("app.scoreboard.fetch_scoreboard", return_value=ScoreboardFetch(200, payload)):
            response = self.client.get("/api/scoreboard", params={"league": "WNBA"})

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual("wnba", body["league"])
        self.assertEqual("WNBA", body["label"])
        self.assertEqual(["g-a", "g-b"], [game["id"] for game in body["games"]])
        self.assertEqual(30, body["refreshInterval"])
        self.assertEqual(["2026-07-01"], body["dates"])
        self.assertNotIn("notice", body)
        self.assertEqual(41, body["games"][0]["home"]["score"])
        self.assertIsNone(body["games"][0]["away"]["score"])
        self.assertEqual("2026-07-01T16:00:00Z", body["games"][0]["startTime"])
        self.assertEqual("Q2", body["games"][0]["status"]["shortDetail"])
        self.assertEqual(
            "public, max-age=30, s-maxage=30, stale-while-revalidate=60",
            response.headers["cache-control"],
        )

    def test_upstream_not_found_is_an_empty_scoreboard_with_notice(self) -> None:
        with patch("app.scoreboard.fetch_scoreboard", return_value=ScoreboardFetch(404, {"events": []})):
            response = self.client.get("/api/scoreboard", params={"league": "pwhl"})

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual([], body["games"])
        self.assertEqual(UNAVAILABLE_NOTICE, body["notice"])
        self.assertEqual([], body["dates"])
        self.assertEqual(180, body["refreshInterval"])
        self.assertIn("max-age=180", response.headers["cache-control"])

    def test_upstream_failure_is_a_bad_gateway(self) -> None:
        error = EspnClientError("ESPN returned non-2xx response", status=503, detail="Service Unavailable")
        with patch("app.scoreboard.fetch_scoreboard", side_effect=error):
            response = self.client.get("/api/scoreboard", params={"league": "nwsl"})

        self.assertEqual(502, response.status_code)
        body = response.json()
        self.assertIn("error", body)
        self.assertEqual(503, body["status"])
        self.assertEqual("Service Unavailable", body["detail"])
        self.assertEqual("no-store", response.headers["cache-control"])

    def test_unknown_league_is_rejected_without_upstream_call(self) -> None:
        with patch("app.scoreboard.fetch_scoreboard") as mock_fetch:
            response = self.client.get("/api/scoreboard", params={"league": "xfl"})

        self.assertEqual(400, response.status_code)
        self.assertEqual({"error": "Unsupported league: xfl"}, response.json())
        mock_fetch.assert_not_called()

    def test_bad_date_is_rejected(self) -> None:
        with patch("app.scoreboard.fetch_scoreboard") as mock_fetch:
            response = self.client.get("/api/scoreboard", params={"league": "wnba", "date": "July 1"})

        self.assertEqual(400, response.status_code)
        self.assertEqual({"error": "date must be YYYYMMDD or YYYY-MM-DD"}, response.json())
        mock_fetch.assert_not_called()

    def test_missing_league_uses_default(self) -> None:
        with patch(
            "app.scoreboard.fetch_scoreboard",
            return_value=ScoreboardFetch(204, {"events": []}),
        ) as mock_fetch:
            response = self.client.get("/api/scoreboard")

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual("wnba", body["league"])
        self.assertEqual("wnba", mock_fetch.call_args.args[0])
        self.assertEqual(NOT_PUBLISHED_NOTICE, body["notice"])
        self.assertEqual([], body["dates"])
        self.assertEqual([], body["games"])

    def test_out_of_range_start_time_does_not_fail_the_request(self) -> None:
        payload = {
            "events": [
                _event("g-ok", "2026-07-01T16:00Z", "pre"),
                _event("g-far", "9999-12-31T23:00-05:00", "pre"),
            ],
        }
        with patch("app.scoreboard.fetch_scoreboard", return_value=ScoreboardFetch(200, payload)):
            response = self.client.get("/api/scoreboard", params={"league": "wnba"})

        self.assertEqual(200, response.status_code)
        games = response.json()["games"]
        self.assertEqual(["g-ok", "g-far"], [game["id"] for game in games])
        self.assertEqual("9999-12-31T23:00-05:00", games[1]["startTime"])


class MiscRouteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)

    def test_leagues_lists_supported_leagues(self) -> None:
        response = self.client.get("/api/leagues")

        self.assertEqual(200, response.status_code)
        self.assertEqual(["wnba", "nwsl", "pwhl"], [league["key"] for league in response.json()])

    def test_news_route_wraps_articles(self) -> None:
        article = NewsArticle(
            id="a1",
            title="Aces win",
            summary="",
            league="wnba",
            published_at="2026-07-01T12:00:00Z",
            url="https://www.espn.com/wnba/story/_/id/1",
        )

        async def fake_aggregate(leagues=None):
            return [article]

        with patch("app.main.aggregate_news", side_effect=fake_aggregate) as mock_news:
            response = self.client.get("/api/news", params={"league": "wnba"})

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual(300, body["refreshInterval"])
        self.assertEqual("2026-07-01T12:00:00Z", body["articles"][0]["publishedAt"])
        self.assertEqual(["wnba"], mock_news.call_args.args[0])

    def test_news_route_survives_malformed_article_link(self) -> None:
        def fake_fetch(league: str) -> dict:
            if league == "nwsl":
                return {"articles": [{"id": "n1", "headline": "Broken", "links": {"web": {"href": "http://[broken/story"}}}]}
            if league == "wnba":
                return {"articles": [{"id": "w1", "headline": "Aces win", "links": {"web": {"href": "https://www.espn.com/wnba/story/_/id/1"}}}]}
            return {}

        with patch("app.ingestion.news.fetch_news", side_effect=fake_fetch):
            response = self.client.get("/api/news")

        self.assertEqual(200, response.status_code)
        self.assertEqual({"w1", "n1"}, {article["id"] for article in response.json()["articles"]})

    def test_news_route_rejects_unknown_league(self) -> None:
        response = self.client.get("/api/news", params={"league": "mls"})

        self.assertEqual(400, response.status_code)

    def test_healthz(self) -> None:
        self.assertEqual({"ok": True}, self.client.get("/healthz").json())

    def test_logs_returns_newest_entries_filtered_by_level(self) -> None:
        handler = install_buffer_handler("INFO")
        handler.clear()
        pipeline_logger = logging.getLogger("app.scoreboard")
        pipeline_logger.info("built wnba")
        pipeline_logger.warning("slow upstream")
        pipeline_logger.error("upstream down")

        entries = self.client.get("/api/logs", params={"level": "warning"}).json()["entries"]

        self.assertEqual(["upstream down", "slow upstream"], [entry["message"] for entry in entries])
        self.assertEqual("ERROR", entries[0]["level"])


if __name__ == "__main__":
    unittest.main()
