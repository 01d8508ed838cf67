from __future__ import annotations

from enum import Enum

from core.domain.entities.base_entity import FeedEntity


class AlertKind(str, Enum):
    CONNECTION = "connection"
    DATA = "data"
    FREEZE = "freeze"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AlertEntity(FeedEntity):
    """
    Represents an operator-facing alert raised by the feed engine.
    """

    id: str
    kind: AlertKind
    message: str
    severity: AlertSeverity = AlertSeverity.MEDIUM
    created_at: int  # epoch ms
