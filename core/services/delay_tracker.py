from __future__ import annotations

from typing import Dict, Optional


class DelayTracker:
    """
    Remembers the last event_time seen per instrument_key.

    Entries live for the lifetime of the engine; the key space is bounded by
    the instrument universe the feed is subscribed to.
    """

    def __init__(self) -> None:
        self._last_seen: Dict[str, int] = {}

    def observe(self, instrument_key: str, event_time: int) -> int:
        """
        Record event_time for the key and return the delay since the previous one.

        The first observation of a key returns 0. Out-of-order timestamps are
        not corrected, so the delay can be negative.
        """
        prior = self._last_seen.get(instrument_key)
        self._last_seen[instrument_key] = int(event_time)
        if prior is None:
            return 0
        return int(event_time) - prior

    def last_seen(self, instrument_key: str) -> Optional[int]:
        return self._last_seen.get(instrument_key)

    def __len__(self) -> int:
        return len(self._last_seen)
