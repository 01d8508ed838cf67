from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, List, Optional

import httpx

from core.gateways.feed_gateway import FeedConnection, FeedGateway


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield the data of each server-sent event.

    Multi-line data fields are joined with "\\n". Comments (":"), event/id/retry
    fields, events whose data is empty and a trailing event without its
    blank-line terminator are dropped.
    """
    data_lines: List[str] = []
    async for line in lines:
        if line == "":
            data = "\n".join(data_lines)
            data_lines = []
            if data:
                yield data
            continue

        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            data_lines.append(value)


class SseFeedConnection(FeedConnection):
    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    def close(self) -> None:
        if not self._task.done():
            self._task.cancel()


class SseFeedClient(FeedGateway):
    """
    Server-sent events client for the tick feed.

    One GET request per open(); the response body is read line by line on a
    background task until the server closes it or the connection is closed.
    """

    def __init__(
        self,
        *,
        connect_timeout_s: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        # No read timeout: silence is detected by the stall watchdog instead.
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=connect_timeout_s), follow_redirects=True
        )
        self._headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache", **(headers or {})}
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    def open(
        self,
        url: str,
        *,
        on_open: Callable[[], None],
        on_frame: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> SseFeedConnection:
        task = asyncio.get_running_loop().create_task(
            self._run(url, on_open=on_open, on_frame=on_frame, on_error=on_error)
        )
        return SseFeedConnection(task)

    async def _run(
        self,
        url: str,
        *,
        on_open: Callable[[], None],
        on_frame: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        try:
            # Feed endpoints may redirect before the stream starts.
            async with self._client.stream("GET", url, headers=self._headers, follow_redirects=True) as response:
                response.raise_for_status()
                self._logger.info("SSE stream opened url=%s status=%s", url, response.status_code)
                on_open()

                async for data in iter_sse_data(response.aiter_lines()):
                    on_frame(data)

        except asyncio.CancelledError:
            self._logger.debug("SSE stream cancelled url=%s", url)
            raise
        except Exception as exc:
            self._logger.warning("SSE stream failed url=%s: %s", url, exc)
            on_error(f"{exc.__class__.__name__}: {exc}")
            return

        on_error("stream closed by server")
