# workers/feed_engine.py
from __future__ import annotations

import contextlib
import logging
from typing import List, Optional

from config.settings import settings
from core.domain.entities.alert_entity import AlertEntity, AlertKind, AlertSeverity
from core.domain.entities.connection_status import ConnectionStatus
from core.domain.entities.tick_entity import TickEntity
from core.gateways.feed_gateway import FeedGateway
from core.services.alert_service import AlertService
from core.services.clock import AsyncioClock, Clock
from core.services.delay_tracker import DelayTracker
from core.services.diagnostics_log import DiagnosticsLog
from core.services.frame_decoder import FrameDecoder
from core.services.ring_buffer import RingBuffer
from core.services.stall_watchdog import StallWatchdog
from core.usecases.ingest_frame_use_case import IngestFrameUseCase
from workers.reconnect_supervisor import ReconnectSupervisor

RAW_PREVIEW_CHARS = 100


class FeedEngine:
    """
    One live tick feed: connection supervision, stall detection and bounded history.

    Responsibilities:
    - Start the reconnect supervisor on creation (unless autostart=False).
    - Re-arm the stall watchdog and log a preview of every live frame.
    - Decode frames into the tick history (live or injected).
    - Expose read-only snapshots for the presentation layer.

    All methods must be called from the event loop that runs the clock.
    """

    def __init__(
        self,
        *,
        gateway: FeedGateway,
        clock: Optional[Clock] = None,
        feed_url: str = settings.FEED_URL,
        feed_name: str = settings.FEED_NAME,
        freeze_timeout_s: float = settings.FREEZE_TIMEOUT_S,
        connect_timeout_s: float = settings.CONNECT_TIMEOUT_S,
        reconnect_base_delay_s: float = settings.RECONNECT_BASE_DELAY_S,
        reconnect_max_delay_s: float = settings.RECONNECT_MAX_DELAY_S,
        max_ticks: int = settings.MAX_TICKS,
        max_alerts: int = settings.MAX_ALERTS,
        max_raw_messages: int = settings.MAX_RAW_MESSAGES,
        max_debug_info: int = settings.MAX_DEBUG_INFO,
        debug_log_timezone: str = settings.DEBUG_LOG_TIMEZONE,
        autostart: bool = True,
    ) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)
        self._clock = clock or AsyncioClock()
        self._feed_name = feed_name
        self._closed = False

        self._ticks: RingBuffer[TickEntity] = RingBuffer(max_ticks)
        self._raw_messages: RingBuffer[str] = RingBuffer(max_raw_messages)
        self._diagnostics = DiagnosticsLog(clock=self._clock, capacity=max_debug_info, tz_name=debug_log_timezone)
        self._alerts = AlertService(clock=self._clock, capacity=max_alerts, diagnostics=self._diagnostics)

        self._watchdog = StallWatchdog(
            clock=self._clock,
            timeout_s=freeze_timeout_s,
            on_stall=self._on_stall,
        )
        self._ingest = IngestFrameUseCase(
            decoder=FrameDecoder(delay_tracker=DelayTracker()),
            tick_buffer=self._ticks,
            alerts=self._alerts,
            diagnostics=self._diagnostics,
            watchdog=self._watchdog,
            feed_name=feed_name,
        )
        self._supervisor = ReconnectSupervisor(
            gateway=gateway,
            clock=self._clock,
            url=feed_url,
            watchdog=self._watchdog,
            alerts=self._alerts,
            diagnostics=self._diagnostics,
            on_frame=self._on_live_frame,
            feed_name=feed_name,
            connect_timeout_s=connect_timeout_s,
            base_delay_s=reconnect_base_delay_s,
            max_delay_s=reconnect_max_delay_s,
        )

        if autostart:
            self.start()

    # ----- lifecycle -----

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("FeedEngine is closed")
        self._logger.info("Starting %s feed engine.", self._feed_name)
        self._supervisor.start()

    def close(self) -> None:
        """
        Stop the supervisor, disarm the watchdog and release the connection. Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(Exception):
            self._supervisor.stop()
        with contextlib.suppress(Exception):
            self._watchdog.disarm()
        self._logger.info("%s feed engine closed.", self._feed_name)

    @property
    def closed(self) -> bool:
        return self._closed

    # ----- snapshots -----

    @property
    def feed_name(self) -> str:
        return self._feed_name

    @property
    def ticks(self) -> List[TickEntity]:
        return self._ticks.snapshot()

    @property
    def alerts(self) -> List[AlertEntity]:
        return self._alerts.snapshot()

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._supervisor.status

    @property
    def is_connected(self) -> bool:
        return self._supervisor.status == ConnectionStatus.CONNECTED

    @property
    def is_frozen(self) -> bool:
        return self._watchdog.is_frozen

    @property
    def freezing_incidents(self) -> int:
        return self._watchdog.incidents

    @property
    def total_ticks(self) -> int:
        return self._ingest.total_ticks

    @property
    def last_tick_time(self) -> Optional[int]:
        return self._ingest.last_tick_time

    @property
    def average_delay(self) -> float:
        ticks = self._ticks.snapshot()
        if not ticks:
            return 0.0
        return sum(t.delay for t in ticks) / len(ticks)

    @property
    def raw_messages(self) -> List[str]:
        return self._raw_messages.snapshot()

    @property
    def debug_info(self) -> List[str]:
        return self._diagnostics.snapshot()

    # ----- commands -----

    def inject_frame(self, raw: str) -> List[TickEntity]:
        """
        Run a frame through the live decode path without touching liveness.

        Works while disconnected and does not re-arm the stall watchdog.
        """
        self._diagnostics.add(f"Adding {self._feed_name} test frame: {raw[:RAW_PREVIEW_CHARS]}")
        return self._ingest.execute(raw, now_ms=self._clock.wall_ms())

    def clear_alerts(self) -> None:
        self._alerts.clear()

    # ----- callbacks -----

    def _on_live_frame(self, raw: str) -> None:
        self._watchdog.arm()
        self._raw_messages.push(f"[{self._feed_name}] {raw[:RAW_PREVIEW_CHARS]}...")
        self._ingest.execute(raw, now_ms=self._clock.wall_ms())

    def _on_stall(self, timeout_s: float) -> None:
        self._alerts.raise_alert(
            AlertKind.FREEZE,
            f"No {self._feed_name.capitalize()} data for {timeout_s:g} s",
            AlertSeverity.HIGH,
        )
