from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from workers.feed_engine import FeedEngine

from .deps import get_engine
from .dtos.feed_dtos import (
    AlertOutDTO,
    FeedDiagnosticsOutDTO,
    FeedStatusOutDTO,
    InjectFrameDTO,
    InjectFrameOutDTO,
    TickOutDTO,
)

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("/status", response_model=FeedStatusOutDTO)
async def get_status(engine: FeedEngine = Depends(get_engine)) -> FeedStatusOutDTO:
    """
    Connection status, freeze state and tick counters.
    """
    return FeedStatusOutDTO(
        feed_name=engine.feed_name,
        connection_status=engine.connection_status.value,
        is_connected=engine.is_connected,
        is_frozen=engine.is_frozen,
        freezing_incidents=engine.freezing_incidents,
        total_ticks=engine.total_ticks,
        buffered_ticks=len(engine.ticks),
        average_delay=engine.average_delay,
        last_tick_time=engine.last_tick_time,
    )


@router.get("/ticks", response_model=List[TickOutDTO])
async def list_ticks(
    limit: int = Query(100, ge=1, le=1000),
    instrument_key: Optional[str] = Query(None, description='e.g. "NSE_EQ|INE257A01026"'),
    engine: FeedEngine = Depends(get_engine),
) -> List[TickOutDTO]:
    """
    Latest ticks, most recent first (optionally for one instrument).
    """
    ticks = engine.ticks
    if instrument_key:
        ticks = [t for t in ticks if t.instrument_key == instrument_key]
    return [TickOutDTO.model_validate(t.model_dump()) for t in ticks[: int(limit)]]


@router.get("/alerts", response_model=List[AlertOutDTO])
async def list_alerts(engine: FeedEngine = Depends(get_engine)) -> List[AlertOutDTO]:
    """
    Latest alerts, most recent first.
    """
    return [AlertOutDTO.model_validate(a.model_dump()) for a in engine.alerts]


@router.delete("/alerts", status_code=204)
async def clear_alerts(engine: FeedEngine = Depends(get_engine)) -> None:
    engine.clear_alerts()


@router.get("/diagnostics", response_model=FeedDiagnosticsOutDTO)
async def get_diagnostics(engine: FeedEngine = Depends(get_engine)) -> FeedDiagnosticsOutDTO:
    return FeedDiagnosticsOutDTO(raw_messages=engine.raw_messages, debug_info=engine.debug_info)


@router.post("/inject", response_model=InjectFrameOutDTO)
async def inject_frame(dto: InjectFrameDTO, engine: FeedEngine = Depends(get_engine)) -> InjectFrameOutDTO:
    """
    Push a test frame through the same decode path as live data.

    Malformed frames are accepted and surface as data alerts, not HTTP errors.
    """
    ticks = engine.inject_frame(dto.frame)
    return InjectFrameOutDTO(
        accepted=len(ticks),
        ticks=[TickOutDTO.model_validate(t.model_dump()) for t in ticks],
    )
