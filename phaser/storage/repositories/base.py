"""Column codecs shared by the phaser repositories.

Timestamps are stored as UTC ISO text, phases by enum value and structured
values as compact JSON.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from phaser.domain import Phase, to_utc

if TYPE_CHECKING:
    from ..database import Database


class BaseRepository:
    """Holds the connection and the column codecs."""

    def __init__(self, db: Database):
        self.db = db

    # --- JSON Helpers ---

    def _encode_json(self, obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))

    def _decode_json(self, s: str | None) -> Any:
        if s is None:
            return None
        return json.loads(s)

    # --- Timestamp Helpers ---

    def _encode_datetime(self, value: datetime | None) -> str | None:
        """Encode a datetime as fixed-width UTC ISO text.

        Fixed width keeps string comparison in SQL consistent with time order.
        """
        if value is None:
            return None
        return to_utc(value).isoformat(timespec="microseconds")

    def _decode_datetime(self, s: str | None) -> datetime | None:
        if s is None:
            return None
        return to_utc(datetime.fromisoformat(s))

    # --- Phase Helpers ---

    def _encode_phase(self, phase: Phase | None) -> str | None:
        return phase.value if phase is not None else None

    def _decode_phase(self, s: str | None) -> Phase | None:
        return Phase(s) if s is not None else None
