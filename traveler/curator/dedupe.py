"""
Seen Store

Durable mapping of item URL to the last time a note was written for it.

The store is a single JSON document, ``{"seen": {url: unix_ms}}``, read in
full before every query and rewritten in full on every mutation. There is no
locking: one writer process at a time is assumed (runs are scheduled, not
concurrent).
"""

import json
import logging
import time
from pathlib import Path
from typing import Dict, Optional, Set

from ..common.config import DEFAULT_STATE_DIR, STATE_FILE_NAME
from ..common.errors import StateError

logger = logging.getLogger("traveler.curator.dedupe")

DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class SeenStore:
    """
    Last-seen timestamps keyed by URL.

    A URL is seen iff ``now - last_seen < window_days * DAY_MS``.
    Unreadable or corrupt state is logged and treated as empty so a bad file
    never blocks a run.
    """

    def __init__(self, state_path: Optional[Path] = None):
        """
        Initialize seen store.

        Args:
            state_path: Path to the state file (default: state/seen.json)
        """
        self._state_path = Path(state_path) if state_path else Path(DEFAULT_STATE_DIR) / STATE_FILE_NAME

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _read(self) -> Dict[str, int]:
        """Read the document, raising StateError when it cannot be used"""
        try:
            with open(self._state_path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise StateError(f"Failed to read {self._state_path}: {e}") from e

        seen = data.get("seen") if isinstance(data, dict) else None
        if not isinstance(seen, dict):
            raise StateError(f"{self._state_path} has no 'seen' mapping")

        # bool is an int subclass; neither it nor floats are valid timestamps
        return {
            url: ts for url, ts in seen.items()
            if isinstance(ts, int) and not isinstance(ts, bool)
        }

    def load(self) -> Dict[str, int]:
        """Load all records, falling back to empty state on error"""
        try:
            return self._read()
        except StateError as e:
            logger.warning("Seen state unusable, treating as empty: %s", e)
            return {}

    def _save(self, seen: Dict[str, int]) -> None:
        self._state_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._state_path, "w") as f:
            json.dump({"seen": seen}, f, indent=2)
            f.write("\n")

    def is_seen(self, url: str, window_days: int, now: Optional[int] = None) -> bool:
        """Check whether ``url`` was marked within the last ``window_days``"""
        ts = self.load().get(url)
        if not ts:
            return False
        now = now_ms() if now is None else now
        return now - ts < window_days * DAY_MS

    def seen_within(self, window_days: int, now: Optional[int] = None) -> Set[str]:
        """All URLs currently seen, from a single read of the document"""
        now = now_ms() if now is None else now
        window_ms = window_days * DAY_MS
        return {
            url for url, ts in self.load().items()
            if ts and now - ts < window_ms
        }

    def mark_seen(self, url: str, now: Optional[int] = None) -> None:
        """Record ``url`` as seen at ``now`` (last write wins) and persist"""
        seen = self.load()
        seen[url] = now_ms() if now is None else now
        self._save(seen)
