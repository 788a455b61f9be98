"""Local cache of the last lists shown to the user."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DOCS_KEY = "docs"
MY_SHARES_KEY = "myshares"
RECEIVED_KEY = "received"


class ListCache:
    """Key/value cache of JSON-serializable lists.

    Entries live in <directory>/<key>_cache.json, or only in memory when no
    directory is configured. Reads never raise; a missing or unreadable
    entry yields the caller's fallback. Writes that fail are logged and
    otherwise ignored.
    """

    def __init__(self, directory: Path | str | None = None) -> None:
        self._dir = Path(directory) if directory else None
        self._memory: dict[str, Any] = {}

    @staticmethod
    def _entry(directory: Path, key: str) -> Path:
        return directory / f"{key}_cache.json"

    def read(self, key: str, fallback: Any = None) -> Any:
        if self._dir is None:
            return self._memory.get(key, fallback)
        path = self._entry(self._dir, key)
        if not path.exists():
            return fallback
        try:
            value = json.loads(path.read_text())
        except Exception as e:
            logger.warning(f"Ignoring unreadable cache entry {key}: {e}")
            return fallback
        return fallback if value is None else value

    def write(self, key: str, value: Any) -> None:
        if self._dir is None:
            self._memory[key] = value
            return
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            self._entry(self._dir, key).write_text(json.dumps(value, indent=2))
        except Exception as e:
            logger.warning(f"Failed to write cache entry {key}: {e}")

    def clear(self) -> None:
        """Drop every entry, e.g. on logout."""
        self._memory.clear()
        if self._dir is None or not self._dir.exists():
            return
        for path in self._dir.glob("*_cache.json"):
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")
