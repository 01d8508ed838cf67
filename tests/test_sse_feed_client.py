from __future__ import annotations

import asyncio

import httpx
import pytest

from adapters.external.upstox.sse_feed_client import SseFeedClient, iter_sse_data


async def _lines(*items):
    for item in items:
        yield item


async def _collect(agen):
    return [x async for x in agen]


class _Recorder:
    def __init__(self):
        self.events = []

    def on_open(self):
        self.events.append(("open",))

    def on_frame(self, text):
        self.events.append(("frame", text))

    def on_error(self, reason):
        self.events.append(("error", reason))


async def _wait_done(conn, timeout=1.0):
    async def _run():
        while not conn.done:
            await asyncio.sleep(0)
    await asyncio.wait_for(_run(), timeout=timeout)


@pytest.mark.asyncio
async def test_iter_sse_data_joins_and_filters():
    out = await _collect(
        iter_sse_data(
            _lines(
                ": keep-alive",
                "",
                "event: message",
                "id: 7",
                'data: {"a":',
                "data:1}",
                "",
                "retry: 1000",
                "data: second",
                "",
                "data:",
                "",
                "data: unterminated",
            )
        )
    )
    assert out == ['{"a":\n1}', "second"]


@pytest.mark.asyncio
async def test_stream_delivers_open_frames_then_close():
    body = b'data: {"type":"live_feed","feeds":{}}\n\n: ping\n\ndata: second\n\n'
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["accept"] = request.headers.get("accept")
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)

    client = SseFeedClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    rec = _Recorder()
    conn = client.open("https://feed.test/upstox", on_open=rec.on_open, on_frame=rec.on_frame, on_error=rec.on_error)
    await _wait_done(conn)
    await client.aclose()

    assert seen["accept"] == "text/event-stream"
    assert rec.events == [
        ("open",),
        ("frame", '{"type":"live_feed","feeds":{}}'),
        ("frame", "second"),
        ("error", "stream closed by server"),
    ]


@pytest.mark.asyncio
async def test_http_error_is_reported_without_open():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, content=b"unavailable")

    client = SseFeedClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    rec = _Recorder()
    conn = client.open("https://feed.test/upstox", on_open=rec.on_open, on_frame=rec.on_frame, on_error=rec.on_error)
    await _wait_done(conn)
    await client.aclose()

    assert len(rec.events) == 1
    kind, reason = rec.events[0]
    assert kind == "error"
    assert "503" in reason


@pytest.mark.asyncio
async def test_transport_failure_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = SseFeedClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    rec = _Recorder()
    conn = client.open("https://feed.test/upstox", on_open=rec.on_open, on_frame=rec.on_frame, on_error=rec.on_error)
    await _wait_done(conn)
    await client.aclose()

    assert rec.events == [("error", "ConnectError: refused")]


@pytest.mark.asyncio
async def test_close_cancels_before_any_callback():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"data: x\n\n")

    client = SseFeedClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    rec = _Recorder()
    conn = client.open("https://feed.test/upstox", on_open=rec.on_open, on_frame=rec.on_frame, on_error=rec.on_error)
    conn.close()
    conn.close()
    await _wait_done(conn)
    await client.aclose()

    assert rec.events == []


@pytest.mark.asyncio
async def test_redirect_is_followed_to_the_stream():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/upstox":
            return httpx.Response(301, headers={"location": "https://feed.test/upstox/"})
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=b"data: tick\n\n")

    client = SseFeedClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    rec = _Recorder()
    conn = client.open("https://feed.test/upstox", on_open=rec.on_open, on_frame=rec.on_frame, on_error=rec.on_error)
    await _wait_done(conn)
    await client.aclose()

    assert rec.events == [("open",), ("frame", "tick"), ("error", "stream closed by server")]
