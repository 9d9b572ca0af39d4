"""Persistence interface consumed by the phase engine.

The engine only needs a handful of operations: fetch by id, due-time range
queries, save/commit, cache release and a zero-retry lock per certification.
``Storage`` implements this on SQLite; tests may supply their own.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence, runtime_checkable

from phaser.domain import (
    Certification,
    CertificationId,
    CertificationItem,
    CertificationLock,
    DomainEvent,
    EntityId,
    ItemId,
    LockOwner,
    Phaseable,
)


@runtime_checkable
class PhaseStore(Protocol):
    """Operations the phase engine performs against persistence."""

    async def get_certification(self, cert_id: CertificationId) -> Certification | None:
        """Fetch a certification by id (possibly from the identity cache)."""
        ...

    async def get_item(self, item_id: ItemId) -> CertificationItem | None:
        """Fetch an item by id (possibly from the identity cache)."""
        ...

    async def due_certification_ids(self, now: datetime) -> list[CertificationId]:
        """Ids of certifications whose next transition is before ``now``."""
        ...

    async def count_due_certifications(self, now: datetime) -> int:
        """Number of certifications whose next transition is before ``now``."""
        ...

    async def due_item_ids(self, now: datetime) -> list[ItemId]:
        """Ids of due items, ordered by owning certification id."""
        ...

    async def count_due_items(self, now: datetime) -> int:
        """Number of items whose next transition is before ``now``."""
        ...

    async def items_to_refresh(
        self,
        cert_id: CertificationId,
        full: bool = False,
        entity_id: EntityId | None = None,
    ) -> Sequence[CertificationItem]:
        """Items marked for refresh, or every item when ``full``."""
        ...

    async def save(self, phaseable: Phaseable) -> None:
        """Write a certification or item."""
        ...

    async def commit(self) -> None:
        """Make pending writes durable."""
        ...

    def decache(self) -> None:
        """Drop every cached object so later fetches re-read storage."""
        ...

    async def lock_certification(
        self, cert_id: CertificationId, owner: LockOwner
    ) -> CertificationLock | None:
        """Try once to lock a certification. Returns None if it is held."""
        ...

    async def unlock(self, lock: CertificationLock) -> None:
        """Release a lock obtained from ``lock_certification``."""
        ...


class AuditSink(Protocol):
    """Receives audit events. ``EventLog`` is the standard implementation."""

    async def append(self, event: DomainEvent) -> None:
        ...
