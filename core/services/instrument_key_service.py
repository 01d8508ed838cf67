from __future__ import annotations

from typing import Tuple


class InstrumentKeyService:
    """
    Splits feed instrument keys into (exchange, symbol).

    Rules:
    - Key format: "{exchange}|{symbol}", e.g. "NSE_EQ|INE257A01026".
    - Without a separator the whole key is the symbol and the exchange is "UNK".
    - Empty halves fall back the same way ("|X" -> ("UNK", "X")).
    """

    SEPARATOR = "|"
    UNKNOWN_EXCHANGE = "UNK"

    @staticmethod
    def split(instrument_key: str) -> Tuple[str, str]:
        key = (instrument_key or "").strip()
        exchange, sep, symbol = key.partition(InstrumentKeyService.SEPARATOR)
        if not sep:
            return InstrumentKeyService.UNKNOWN_EXCHANGE, key

        return exchange or InstrumentKeyService.UNKNOWN_EXCHANGE, symbol or key
