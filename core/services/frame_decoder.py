from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from core.domain.entities.feed_payload import (
    FeedPayload,
    MalformedPayload,
    RecognizedPayload,
    UnrecognizedPayload,
)
from core.domain.entities.tick_entity import TickEntity
from core.services.delay_tracker import DelayTracker
from core.services.instrument_key_service import InstrumentKeyService

LIVE_FEED_TYPE = "live_feed"


@dataclass
class DecodeResult:
    """
    Outcome of decoding one frame.

    ticks is empty for malformed/unrecognized frames. entry_errors lists the
    instrument keys of recognized entries that could not be converted.
    """

    payload: FeedPayload
    ticks: List[TickEntity] = field(default_factory=list)
    skipped: int = 0
    entry_errors: List[str] = field(default_factory=list)


class FrameDecoder:
    """
    Turns one raw live_feed frame into normalized ticks.

    Field defaults (applied per instrument entry):
      - event_time      = ltpc.ltt, else the decode time
      - last_quantity   = ltpc.ltq, else 0
      - reference_price = ltpc.cp, else ltpc.ltp
      - volume          = last marketOHLC.ohlc[].volume, else entry.volume, else 0

    Entries without a usable ltpc.ltp are skipped; a bad entry never drops
    the rest of the frame.
    """

    def __init__(self, *, delay_tracker: DelayTracker, logger: logging.Logger | None = None) -> None:
        self._tracker = delay_tracker
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def parse(self, raw: str) -> FeedPayload:
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            return MalformedPayload(error=str(exc))

        if not isinstance(payload, dict):
            return UnrecognizedPayload(type=None)

        ptype = payload.get("type")
        feeds = payload.get("feeds")
        if ptype == LIVE_FEED_TYPE and isinstance(feeds, dict):
            return RecognizedPayload(feeds={str(k): v for k, v in feeds.items()})

        return UnrecognizedPayload(type=None if ptype is None else str(ptype))

    def decode(self, raw: str, *, now_ms: int) -> DecodeResult:
        payload = self.parse(raw)
        result = DecodeResult(payload=payload)
        if not isinstance(payload, RecognizedPayload):
            return result

        for key, entry in payload.feeds.items():
            try:
                tick = self._decode_entry(key, entry, now_ms=int(now_ms))
            except (TypeError, ValueError, OverflowError) as exc:
                self._logger.debug("Cannot decode entry %s: %s", key, exc)
                result.entry_errors.append(key)
                continue

            if tick is None:
                result.skipped += 1
                continue
            result.ticks.append(tick)

        return result

    def _decode_entry(self, key: str, entry: Optional[Any], *, now_ms: int) -> Optional[TickEntity]:
        market_ff = _dig(entry, "ff", "marketFF")
        ltpc = _dig(market_ff, "ltpc")
        if not isinstance(ltpc, Mapping) or not ltpc.get("ltp"):
            return None

        # Convert everything first: the tracker must only move for ticks we emit.
        last_price = float(ltpc["ltp"])
        event_time = _as_int(ltpc.get("ltt"), default=now_ms)
        last_quantity = _non_negative("ltq", _as_int(ltpc.get("ltq"), default=0))
        reference_price = float(ltpc["cp"]) if ltpc.get("cp") is not None else last_price
        volume = _non_negative("volume", self._extract_volume(entry, market_ff))
        exchange, symbol = InstrumentKeyService.split(key)

        delay = self._tracker.observe(key, event_time)

        return TickEntity(
            id=f"{key}-{event_time}-{uuid.uuid4().hex[:5]}",
            instrument_key=key,
            trading_symbol=symbol,
            exchange=exchange,
            last_price=last_price,
            last_quantity=last_quantity,
            reference_price=reference_price,
            volume=volume,
            event_time=event_time,
            received_time=now_ms,
            delay=delay,
        )

    @staticmethod
    def _extract_volume(entry: Any, market_ff: Any) -> int:
        ohlc = _dig(market_ff, "marketOHLC", "ohlc")
        if isinstance(ohlc, list) and ohlc and isinstance(ohlc[-1], Mapping):
            bar_volume = ohlc[-1].get("volume")
            if bar_volume is not None:
                return _as_int(bar_volume, default=0)

        if isinstance(entry, Mapping):
            return _as_int(entry.get("volume"), default=0)
        return 0


def _dig(obj: Any, *path: str) -> Any:
    for name in path:
        if not isinstance(obj, Mapping):
            return None
        obj = obj.get(name)
    return obj


def _as_int(value: Any, *, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
        return int(float(value)) if any(c in value for c in ".eE") else int(value)
    return int(value)


def _non_negative(name: str, value: int) -> int:
    if value < 0:
        raise ValueError(f"{name} must be >= 0 (got {value})")
    return value
