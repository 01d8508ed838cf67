from __future__ import annotations

from fastapi import HTTPException, Request

from workers.feed_engine import FeedEngine


def get_engine(request: Request) -> FeedEngine:
    """
    Return the FeedEngine started by the app lifespan.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="feed engine not started")
    return engine
