# workers/reconnect_supervisor.py
from __future__ import annotations

import contextlib
import logging
from typing import Callable, Optional

from core.domain.entities.alert_entity import AlertKind, AlertSeverity
from core.domain.entities.connection_status import ConnectionStatus
from core.gateways.feed_gateway import FeedConnection, FeedGateway
from core.services.alert_service import AlertService
from core.services.clock import Clock, TimerHandle
from core.services.diagnostics_log import DiagnosticsLog
from core.services.stall_watchdog import StallWatchdog


def backoff_delay(failures: int, *, base_s: float, max_s: float) -> float:
    """
    Exponential reconnect delay: base * 2^(failures-1), capped at max_s.

    failures counts consecutive failed connections since the last successful
    open; values below 1 are treated as 1.
    """
    n = max(int(failures), 1)
    return min(base_s * (2 ** (n - 1)), max_s)


class ReconnectSupervisor:
    """
    Owns the streaming connection lifecycle.

    States: disconnected -> connecting -> connected, with error on any
    failure followed by a backoff-delayed start(). Retries are unbounded.

    Responsibilities:
    - Open the feed connection and guard it with a connect timeout.
    - Turn transport failures into connection alerts + a single pending reconnect.
    - Arm the stall watchdog when the stream opens.
    - Forward frames to on_frame; it never touches tick state itself.

    On every transition the status is published first, then the alert.
    """

    def __init__(
        self,
        *,
        gateway: FeedGateway,
        clock: Clock,
        url: str,
        watchdog: StallWatchdog,
        alerts: AlertService,
        diagnostics: DiagnosticsLog,
        on_frame: Callable[[str], None],
        feed_name: str = "feed",
        connect_timeout_s: float = 15.0,
        base_delay_s: float = 5.0,
        max_delay_s: float = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._gateway = gateway
        self._clock = clock
        self._url = url
        self._watchdog = watchdog
        self._alerts = alerts
        self._diagnostics = diagnostics
        self._on_frame = on_frame
        self._feed_name = feed_name
        self._connect_timeout_s = float(connect_timeout_s)
        self._base_delay_s = float(base_delay_s)
        self._max_delay_s = float(max_delay_s)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._status = ConnectionStatus.DISCONNECTED
        self._attempts = 0
        self._failures = 0
        self._connection: Optional[FeedConnection] = None
        self._connect_timer: Optional[TimerHandle] = None
        self._reconnect_timer: Optional[TimerHandle] = None
        self._last_reconnect_delay_s: Optional[float] = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    @property
    def last_reconnect_delay_s(self) -> Optional[float]:
        """Delay used by the most recently scheduled reconnect."""
        return self._last_reconnect_delay_s

    def start(self) -> None:
        """
        Open a new connection (disconnected/error -> connecting).
        """
        if self._status not in (ConnectionStatus.DISCONNECTED, ConnectionStatus.ERROR):
            self._logger.debug("start() ignored in status=%s", self._status.value)
            return

        self._cancel_reconnect()
        self._close_connection()

        self._attempts += 1
        self._set_status(ConnectionStatus.CONNECTING)
        self._diagnostics.add(f"{self._label} attempt {self._attempts}: Connecting to {self._url}")

        # Callbacks from a superseded connection are dropped.
        holder: list[FeedConnection] = []

        def current_only(fn: Callable[..., None]) -> Callable[..., None]:
            def call(*args: str) -> None:
                if holder and holder[0] is self._connection:
                    fn(*args)
            return call

        try:
            connection = self._gateway.open(
                self._url,
                on_open=current_only(self._handle_open),
                on_frame=current_only(self._on_frame),
                on_error=current_only(self._handle_error),
            )
        except Exception as exc:
            self._logger.exception("Failed to open %s stream: %s", self._feed_name, exc)
            self._diagnostics.add(f"Failed to create {self._label} SSE connection: {exc}")
            self._set_status(ConnectionStatus.ERROR)
            self._alerts.raise_alert(AlertKind.CONNECTION, f"{self._label} connection failed: {exc}", AlertSeverity.HIGH)
            self._schedule_reconnect()
            return

        holder.append(connection)
        self._connection = connection
        self._connect_timer = self._clock.call_later(self._connect_timeout_s, self._handle_connect_timeout)

    def stop(self) -> None:
        """
        Cancel every timer and close the connection. Safe from any state, any number of times.
        """
        self._cancel_connect_timer()
        self._cancel_reconnect()
        with contextlib.suppress(Exception):
            self._watchdog.disarm()
        self._close_connection()

        if self._status != ConnectionStatus.DISCONNECTED:
            self._set_status(ConnectionStatus.DISCONNECTED)
            with contextlib.suppress(Exception):
                self._diagnostics.add(f"{self._label} connection stopped")

    # ----- transport callbacks -----

    def _handle_open(self) -> None:
        if self._status != ConnectionStatus.CONNECTING:
            return

        self._cancel_connect_timer()
        self._attempts = 0
        self._failures = 0
        self._set_status(ConnectionStatus.CONNECTED)
        self._alerts.raise_alert(AlertKind.CONNECTION, f"{self._label} connected", AlertSeverity.LOW)
        self._diagnostics.add(f"{self._label} SSE connection opened successfully")
        self._watchdog.arm()

    def _handle_connect_timeout(self) -> None:
        self._connect_timer = None
        if self._status != ConnectionStatus.CONNECTING:
            return

        self._diagnostics.add(f"{self._label} connection timeout - closing connection")
        self._close_connection()
        self._set_status(ConnectionStatus.ERROR)
        self._alerts.raise_alert(AlertKind.CONNECTION, f"{self._label} connection timeout", AlertSeverity.HIGH)
        self._schedule_reconnect()

    def _handle_error(self, reason: str) -> None:
        if self._status not in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            return

        self._diagnostics.add(f"{self._label} SSE error occurred: {reason}")
        self._cancel_connect_timer()
        self._close_connection()
        self._watchdog.disarm()
        self._set_status(ConnectionStatus.ERROR)
        self._alerts.raise_alert(AlertKind.CONNECTION, f"{self._label} error – reconnecting", AlertSeverity.MEDIUM)
        self._schedule_reconnect()

    # ----- timers -----

    def _schedule_reconnect(self) -> None:
        self._failures += 1
        delay = backoff_delay(self._failures, base_s=self._base_delay_s, max_s=self._max_delay_s)
        self._cancel_reconnect()
        self._last_reconnect_delay_s = delay
        self._diagnostics.add(f"{self._label} reconnecting in {delay:g}s...")
        self._reconnect_timer = self._clock.call_later(delay, self._handle_reconnect_due)

    def _handle_reconnect_due(self) -> None:
        self._reconnect_timer = None
        self.start()

    def _cancel_connect_timer(self) -> None:
        timer, self._connect_timer = self._connect_timer, None
        if timer is not None:
            timer.cancel()

    def _cancel_reconnect(self) -> None:
        timer, self._reconnect_timer = self._reconnect_timer, None
        if timer is not None:
            timer.cancel()

    # ----- helpers -----

    def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            with contextlib.suppress(Exception):
                connection.close()

    def _set_status(self, status: ConnectionStatus) -> None:
        if status != self._status:
            self._logger.info("%s status %s -> %s", self._feed_name, self._status.value, status.value)
        self._status = status

    @property
    def _label(self) -> str:
        return self._feed_name.capitalize()
