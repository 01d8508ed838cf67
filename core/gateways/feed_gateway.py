from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class FeedConnection(ABC):
    """Handle to one open (or opening) streaming connection."""

    @abstractmethod
    def close(self) -> None:
        """Tear the connection down. Must be idempotent and must not raise."""


class FeedGateway(ABC):
    """
    Opens server-pushed frame streams.

    open() returns immediately; progress is reported through the callbacks,
    which are invoked later on the engine's event loop (never from inside open()):
      - on_open(): the server accepted the stream
      - on_frame(text): one complete frame
      - on_error(reason): the stream failed or ended; no further callbacks follow
    """

    @abstractmethod
    def open(
        self,
        url: str,
        *,
        on_open: Callable[[], None],
        on_frame: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> FeedConnection: ...
