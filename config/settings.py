"""
Application configuration for tick-feed-monitor.

Centralizes environment variables using python-dotenv.

Note:
- Every value has a default matching the feed's documented behavior, so the
  service runs without a .env file.
- Durations are in seconds, buffer sizes in number of entries.
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """
    Configuration settings for the tick-feed-monitor service.
    """

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_NAME: str = os.getenv("APP_NAME", "tick-feed-monitor")

    # Feed
    FEED_NAME: str = os.getenv("FEED_NAME", "upstox")
    FEED_URL: str = os.getenv("FEED_URL", "https://ticks.rvinod.com/upstox")
    HTTP_CONNECT_TIMEOUT_S: float = float(os.getenv("HTTP_CONNECT_TIMEOUT_S", "10"))

    # Timers
    FREEZE_TIMEOUT_S: float = float(os.getenv("FREEZE_TIMEOUT_S", "30"))
    CONNECT_TIMEOUT_S: float = float(os.getenv("CONNECT_TIMEOUT_S", "15"))
    RECONNECT_BASE_DELAY_S: float = float(os.getenv("RECONNECT_BASE_DELAY_S", "5"))
    RECONNECT_MAX_DELAY_S: float = float(os.getenv("RECONNECT_MAX_DELAY_S", "30"))

    # In-memory history
    MAX_TICKS: int = int(os.getenv("MAX_TICKS", "1000"))
    MAX_ALERTS: int = int(os.getenv("MAX_ALERTS", "50"))
    MAX_RAW_MESSAGES: int = int(os.getenv("MAX_RAW_MESSAGES", "20"))
    MAX_DEBUG_INFO: int = int(os.getenv("MAX_DEBUG_INFO", "50"))

    # Debug log lines are stamped in the exchange's local time
    DEBUG_LOG_TIMEZONE: str = os.getenv("DEBUG_LOG_TIMEZONE", "Asia/Kolkata")


settings = Settings()
