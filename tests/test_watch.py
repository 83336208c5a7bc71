from __future__ import annotations

import unittest

from app.client.controller import SCOREBOARD_CACHE_NOTICE, SCOREBOARD_ERROR, FeedState
from app.client.watch import format_date_range, render_scoreboard


class RenderScoreboardTests(unittest.TestCase):
    def test_empty_slate_names_the_covered_dates(self) -> None:
        state = FeedState(data={"label": "WNBA", "games": [], "dates": ["2026-07-03", "2026-07-01"]})

        lines = render_scoreboard(state)

        self.assertEqual("No games scheduled for Jul 1 - Jul 3.", lines[-1])

    def test_saved_data_banner_is_shown_with_cached_games(self) -> None:
        game = {
            "home": {"abbreviation": "LV", "score": 41},
            "away": {"abbreviation": "SEA", "score": None},
            "status": {"shortDetail": "Q2"},
        }
        state = FeedState(data={"label": "WNBA", "games": [game]}, using_cache=True, cache_notice=SCOREBOARD_CACHE_NOTICE)

        lines = render_scoreboard(state)

        self.assertIn(SCOREBOARD_CACHE_NOTICE, lines)
        self.assertEqual("SEA - @ LV 41  [Q2]", lines[-1])

    def test_hard_error_only_without_data(self) -> None:
        self.assertEqual([SCOREBOARD_ERROR], render_scoreboard(FeedState(error=SCOREBOARD_ERROR)))

    def test_format_date_range_single_and_invalid(self) -> None:
        self.assertEqual("Jul 1", format_date_range(["2026-07-01"]))
        self.assertIsNone(format_date_range(["soon"]))
        self.assertIsNone(format_date_range(None))


if __name__ == "__main__":
    unittest.main()
