from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    """Anything with an idempotent cancel(), e.g. asyncio.TimerHandle."""

    def cancel(self) -> None: ...


class Clock(ABC):
    """
    Time source + one-shot timer scheduler used by the feed engine.

    Production code runs on the asyncio loop; tests swap in a virtual clock
    so timers can be fired deterministically.
    """

    @abstractmethod
    def wall_ms(self) -> int:
        """Current wall-clock time in epoch milliseconds."""

    @abstractmethod
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay_s seconds."""


class AsyncioClock(Clock):
    """
    Clock backed by the running asyncio event loop.

    Timer callbacks run on the loop thread, serialized with frame handling.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def wall_ms(self) -> int:
        return int(time.time() * 1000)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        return self._get_loop().call_later(max(0.0, float(delay_s)), callback)
