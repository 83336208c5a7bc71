"""Local key/value store for the polling client's last-good payloads.

Values are kept as JSON text per key inside a single JSON file, the way a
browser's localStorage would hold them. Reads never raise: a missing file,
an unreadable file or a corrupt value all come back as the caller's
fallback.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")

SCOREBOARD_KEY_PREFIX = "rtg-scoreboard"
NEWS_KEY = "rtg-news"


def scoreboard_key(league: str) -> str:
    return f"{SCOREBOARD_KEY_PREFIX}:{league.lower()}"


class ClientStore:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path).expanduser() if path is not None else None
        self._memory: dict[str, str] = {}

    def _read_all(self) -> dict[str, str]:
        if self.path is None:
            return dict(self._memory)
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Client store unreadable path=%s error=%s", self.path, exc)
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Client store corrupt, ignoring path=%s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if isinstance(value, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        if self.path is None:
            self._memory = dict(data)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".store-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str, fallback: T = None) -> Any | T:
        raw = self._read_all().get(key)
        if not raw:
            return fallback
        try:
            return json.loads(raw)
        except ValueError:
            logger.debug("Ignoring corrupt stored value key=%s", key)
            return fallback

    def set(self, key: str, value: Any) -> None:
        try:
            data = self._read_all()
            data[key] = json.dumps(value, ensure_ascii=False)
            self._write_all(data)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Unable to persist key=%s error=%s", key, exc)

    def remove(self, key: str) -> None:
        try:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)
        except OSError as exc:
            logger.warning("Unable to remove key=%s error=%s", key, exc)

