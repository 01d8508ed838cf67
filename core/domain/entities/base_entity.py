# core/domain/entities/base_entity.py
from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class FeedEntity(BaseModel):
    """
    Base entity for in-memory feed records.

    - Immutable once constructed (ticks and alerts are append-only history).
    - Enum fields are stored as their string values so snapshots serialize as-is.
    """

    model_config = ConfigDict(
        frozen=True,
        use_enum_values=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-safe dict for HTTP payloads and logging.
        """
        return self.model_dump(mode="json", exclude_none=True)
