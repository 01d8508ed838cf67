from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TickOutDTO(BaseModel):
    """
    DTO returned by API for a normalized tick.
    """

    id: str
    instrument_key: str
    trading_symbol: str
    exchange: str
    last_price: float
    last_quantity: int
    reference_price: float
    volume: int
    event_time: int
    received_time: int
    delay: int


class AlertOutDTO(BaseModel):
    """
    DTO returned by API for a feed alert.
    """

    id: str
    kind: str
    message: str
    severity: str
    created_at: int


class FeedStatusOutDTO(BaseModel):
    """
    Connection and liveness summary of the feed engine.
    """

    feed_name: str
    connection_status: str
    is_connected: bool
    is_frozen: bool
    freezing_incidents: int
    total_ticks: int
    buffered_ticks: int
    average_delay: float
    last_tick_time: Optional[int] = None


class FeedDiagnosticsOutDTO(BaseModel):
    """
    Raw frame previews and debug log lines, most recent first.
    """

    raw_messages: List[str]
    debug_info: List[str]


class InjectFrameDTO(BaseModel):
    """
    DTO for pushing a test frame through the decode path.
    """

    frame: str = Field(..., description='Raw frame text, e.g. {"type":"live_feed","feeds":{...}}')

    @field_validator("frame")
    @classmethod
    def _validate_frame(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("frame is required")
        return v


class InjectFrameOutDTO(BaseModel):
    """
    Ticks produced by an injected frame.
    """

    accepted: int
    ticks: List[TickOutDTO]
