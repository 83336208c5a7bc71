from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from app.settings import get_settings, reset_settings


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_settings()

    def tearDown(self) -> None:
        reset_settings()

    def test_extra_dates_are_clamped_and_bad_values_fall_back(self) -> None:
        env = {
            "SCOREBOARD_MAX_EXTRA_DATES": "7",
            "SCOREBOARD_MIN_GAMES": "lots",
            "ESPN_BASE_URL": "http://espn.test/",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env):
            with self.assertLogs("app.settings", level="WARNING"):
                settings = get_settings()

        self.assertEqual(2, settings.max_extra_dates)
        self.assertEqual(4, settings.min_games)
        self.assertEqual("http://espn.test", settings.espn_base_url)
        self.assertEqual("DEBUG", settings.log_level)

    def test_settings_are_cached_until_reset(self) -> None:
        with patch.dict(os.environ, {"SCOREBOARD_MIN_GAMES": "6"}):
            first = get_settings()
        with patch.dict(os.environ, {"SCOREBOARD_MIN_GAMES": "2"}):
            self.assertIs(first, get_settings())
            reset_settings()
            self.assertEqual(2, get_settings().min_games)


if __name__ == "__main__":
    unittest.main()
