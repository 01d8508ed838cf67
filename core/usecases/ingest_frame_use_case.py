# core/usecases/ingest_frame_use_case.py
from __future__ import annotations

import logging
from typing import List, Optional

from core.domain.entities.alert_entity import AlertKind, AlertSeverity
from core.domain.entities.feed_payload import MalformedPayload, UnrecognizedPayload
from core.domain.entities.tick_entity import TickEntity
from core.services.alert_service import AlertService
from core.services.diagnostics_log import DiagnosticsLog
from core.services.frame_decoder import FrameDecoder
from core.services.ring_buffer import RingBuffer
from core.services.stall_watchdog import StallWatchdog


class IngestFrameUseCase:
    """
    Decodes one frame and stores the resulting ticks.

    Shared by live frames and injected test frames. Never raises: any
    failure is downgraded to a medium data alert.
    """

    def __init__(
        self,
        *,
        decoder: FrameDecoder,
        tick_buffer: RingBuffer[TickEntity],
        alerts: AlertService,
        diagnostics: DiagnosticsLog,
        watchdog: StallWatchdog,
        feed_name: str = "feed",
        logger: logging.Logger | None = None,
    ):
        self._decoder = decoder
        self._ticks = tick_buffer
        self._alerts = alerts
        self._diagnostics = diagnostics
        self._watchdog = watchdog
        self._label = feed_name.capitalize()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._total_ticks = 0
        self._last_tick_time: Optional[int] = None

    @property
    def total_ticks(self) -> int:
        return self._total_ticks

    @property
    def last_tick_time(self) -> Optional[int]:
        return self._last_tick_time

    def execute(self, raw: str, *, now_ms: int) -> List[TickEntity]:
        try:
            result = self._decoder.decode(raw, now_ms=now_ms)
        except Exception as exc:
            self._logger.exception("Failed to decode %s frame: %s", self._label, exc)
            self._report_parse_error(exc)
            return []

        payload = result.payload
        if isinstance(payload, MalformedPayload):
            self._report_parse_error(payload.error)
            return []

        if isinstance(payload, UnrecognizedPayload):
            self._diagnostics.add(f"{self._label} received message type: {payload.type}")
            return []

        if result.entry_errors:
            self._alerts.raise_alert(
                AlertKind.DATA,
                f"{self._label} could not decode {len(result.entry_errors)} feed entr"
                f"{'y' if len(result.entry_errors) == 1 else 'ies'}: {', '.join(result.entry_errors[:5])}",
                AlertSeverity.MEDIUM,
            )

        if result.skipped:
            self._diagnostics.add(f"{self._label} skipped {result.skipped} entries without last price")

        if result.ticks:
            self._ticks.extend(result.ticks)
            self._total_ticks += len(result.ticks)
            self._last_tick_time = now_ms
            self._watchdog.clear_frozen()
            self._diagnostics.add(f"Processed {len(result.ticks)} {self._label} ticks")

        return result.ticks

    def _report_parse_error(self, error: object) -> None:
        self._alerts.raise_alert(AlertKind.DATA, f"{self._label} parse error: {error}", AlertSeverity.MEDIUM)
        self._diagnostics.add(f"{self._label} parse error: {error}")
