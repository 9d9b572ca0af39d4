"""JSONL audit log for phase changes and run summaries.

One event per line. The log is written for inspection only; nothing reads
it back to rebuild state, the database is authoritative.
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import AsyncIterator, Sequence

import aiofiles
from pydantic import TypeAdapter

from phaser.domain import CertificationId, DomainEvent

logger = logging.getLogger(__name__)

EventAdapter: TypeAdapter[DomainEvent] = TypeAdapter(DomainEvent)


class EventLog:
    """Append-only audit log.

    Usage:
        log = EventLog(Path("data/events.jsonl"))
        await log.append(PhaseChangedEvent(...))
        recent = await log.tail(20)
    """

    def __init__(self, path: Path):
        self.path = path

    async def append(self, event: DomainEvent) -> None:
        await self.append_all([event])

    async def append_all(self, events: Sequence[DomainEvent]) -> None:
        if not events:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = "".join(
            EventAdapter.dump_json(event).decode("utf-8") + "\n" for event in events
        )
        async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
            await f.write(payload)

        logger.debug(f"Audit +{len(events)} -> {self.path.name}")

    async def _lines(self) -> AsyncIterator[str]:
        if not self.path.exists():
            return
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            async for line in f:
                line = line.strip()
                if line:
                    yield line

    async def read_all(self) -> list[DomainEvent]:
        return [EventAdapter.validate_json(line) async for line in self._lines()]

    async def tail(self, n: int = 100) -> list[DomainEvent]:
        """The last ``n`` events, oldest first."""
        recent: deque[str] = deque(maxlen=n)
        async for line in self._lines():
            recent.append(line)
        return [EventAdapter.validate_json(line) for line in recent]

    async def history(self, cert_id: CertificationId) -> list[DomainEvent]:
        """Events recorded for one certification and its items, oldest first."""
        return [
            event
            for event in await self.read_all()
            if getattr(event, "certification_id", None) == cert_id
        ]

    async def count(self) -> int:
        total = 0
        async for _ in self._lines():
            total += 1
        return total
