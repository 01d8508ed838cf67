import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adapters.entry.http.feed_router import router as feed_router
from adapters.external.upstox.sse_feed_client import SseFeedClient
from config.settings import settings
from workers.feed_engine import FeedEngine


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logging.getLogger(__name__).info("Starting %s (lifespan startup)...", settings.APP_NAME)

    # The engine schedules its timers on the running loop, so it is built here.
    gateway = SseFeedClient(connect_timeout_s=settings.HTTP_CONNECT_TIMEOUT_S)
    engine = FeedEngine(gateway=gateway)
    app.state.engine = engine

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down %s (lifespan shutdown)...", settings.APP_NAME)
        engine.close()
        await gateway.aclose()


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
app.include_router(feed_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
