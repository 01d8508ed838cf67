from __future__ import annotations

import logging
from typing import Callable, Optional

from core.services.clock import Clock, TimerHandle


class StallWatchdog:
    """
    Detects a connected-but-silent feed.

    arm() (re)starts a single-shot timer. If it is not re-armed within
    timeout_s the feed is marked frozen, the incident counter is bumped and
    on_stall is called once. The frozen flag is sticky: only clear_frozen()
    (called when a frame actually produced ticks) resets it.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        timeout_s: float,
        on_stall: Callable[[float], None],
        logger: logging.Logger | None = None,
    ) -> None:
        if float(timeout_s) <= 0:
            raise ValueError(f"timeout_s must be > 0 (got {timeout_s})")
        self._clock = clock
        self._timeout_s = float(timeout_s)
        self._on_stall = on_stall
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._timer: Optional[TimerHandle] = None
        self._frozen = False
        self._incidents = 0

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def incidents(self) -> int:
        return self._incidents

    def arm(self) -> None:
        self.disarm()
        self._timer = self._clock.call_later(self._timeout_s, self._fire)

    def disarm(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def clear_frozen(self) -> None:
        if self._frozen:
            self._logger.info("Feed resumed after freeze.")
        self._frozen = False

    def _fire(self) -> None:
        self._timer = None
        self._frozen = True
        self._incidents += 1
        self._logger.warning("No inbound frames for %ss (incident #%s)", self._timeout_s, self._incidents)
        self._on_stall(self._timeout_s)
