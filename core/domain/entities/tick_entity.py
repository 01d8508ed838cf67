from __future__ import annotations

from pydantic import Field

from core.domain.entities.base_entity import FeedEntity


class TickEntity(FeedEntity):
    """
    Represents one normalized price observation for an instrument.

    instrument_key is the feed's exchange-qualified identifier,
    e.g. "NSE_EQ|INE257A01026". Timestamps are epoch milliseconds.
    """

    id: str
    instrument_key: str

    trading_symbol: str
    exchange: str

    last_price: float
    last_quantity: int = Field(default=0, ge=0)
    reference_price: float  # previous close, or last_price when absent
    volume: int = Field(default=0, ge=0)

    event_time: int  # server-reported, falls back to received_time
    received_time: int

    # event_time minus the previous event_time seen for this key (0 for the first).
    # Negative when the upstream timestamps arrive out of order.
    delay: int = 0
