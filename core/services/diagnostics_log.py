from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List
from zoneinfo import ZoneInfo

from core.services.clock import Clock
from core.services.ring_buffer import RingBuffer


class DiagnosticsLog:
    """
    Bounded, human-readable debug trail shown next to the tick table.

    Each line is stamped "[HH:MM:SS]" in the configured timezone and mirrored
    to the Python logger at DEBUG level.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        capacity: int,
        tz_name: str = "UTC",
        logger: logging.Logger | None = None,
    ) -> None:
        self._clock = clock
        self._lines: RingBuffer[str] = RingBuffer(capacity)
        self._tz = ZoneInfo(tz_name)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def add(self, message: str) -> None:
        stamp = datetime.fromtimestamp(self._clock.wall_ms() / 1000, tz=timezone.utc).astimezone(self._tz)
        self._lines.push(f"[{stamp:%H:%M:%S}] {message}")
        self._logger.debug(message)

    def snapshot(self) -> List[str]:
        return self._lines.snapshot()

    def clear(self) -> None:
        self._lines.clear()
