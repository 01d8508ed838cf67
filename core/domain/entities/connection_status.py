from __future__ import annotations

from enum import Enum


class ConnectionStatus(str, Enum):
    """
    Lifecycle state of the streaming connection.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
