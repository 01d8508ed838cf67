from __future__ import annotations

import logging
import uuid
from typing import List

from core.domain.entities.alert_entity import AlertEntity, AlertKind, AlertSeverity
from core.services.clock import Clock
from core.services.diagnostics_log import DiagnosticsLog
from core.services.ring_buffer import RingBuffer

_LOG_LEVELS = {
    AlertSeverity.LOW: logging.INFO,
    AlertSeverity.MEDIUM: logging.WARNING,
    AlertSeverity.HIGH: logging.ERROR,
}


class AlertService:
    """
    Creates alerts and keeps the most recent ones in a bounded history.

    Every alert is also written to the diagnostics log and the Python logger.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        capacity: int,
        diagnostics: DiagnosticsLog,
        logger: logging.Logger | None = None,
    ) -> None:
        self._clock = clock
        self._alerts: RingBuffer[AlertEntity] = RingBuffer(capacity)
        self._diagnostics = diagnostics
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def raise_alert(
        self,
        kind: AlertKind,
        message: str,
        severity: AlertSeverity = AlertSeverity.MEDIUM,
    ) -> AlertEntity:
        alert = AlertEntity(
            id=str(uuid.uuid4()),
            kind=kind,
            message=message,
            severity=severity,
            created_at=self._clock.wall_ms(),
        )
        self._alerts.push(alert)
        self._diagnostics.add(f"Alert [{alert.severity}]: {message}")
        self._logger.log(_LOG_LEVELS[AlertSeverity(severity)], "[%s] %s", alert.kind, message)
        return alert

    def snapshot(self) -> List[AlertEntity]:
        return self._alerts.snapshot()

    def clear(self) -> None:
        self._alerts.clear()
