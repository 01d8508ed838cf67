from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class RecognizedPayload(_Payload):
    """
    A live_feed frame: instrument_key -> raw per-instrument record.

    Entries are kept raw (possibly None or a non-dict) and decoded one by one.
    """

    kind: Literal["recognized"] = "recognized"
    feeds: Dict[str, Optional[Any]]


class UnrecognizedPayload(_Payload):
    """
    Well-formed JSON that is not a live_feed frame (heartbeats, market info...).
    """

    kind: Literal["unrecognized"] = "unrecognized"
    type: Optional[str] = None


class MalformedPayload(_Payload):
    """
    Frame text that could not be parsed at all.
    """

    kind: Literal["malformed"] = "malformed"
    error: str


FeedPayload = Union[RecognizedPayload, UnrecognizedPayload, MalformedPayload]
