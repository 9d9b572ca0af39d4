"""Storage layer for phaser.

Provides persistence via SQLite (authoritative state) and JSONL (audit log).
``Storage`` implements the PhaseStore interface the engine runs against.

Usage:
    storage = Storage(Path("data"))
    await storage.connect()
    try:
        cert = await storage.get_certification(CertificationId("q3-review"))
        phaser = CertificationPhaser(storage, standard_handler_factories(), "worker-1",
                                     audit=storage.event_log)
        await phaser.transition_due()
    finally:
        await storage.close()
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Sequence

from phaser.domain import (
    Certification,
    CertificationId,
    CertificationItem,
    CertificationLock,
    Clock,
    DomainEvent,
    EntityId,
    ItemId,
    LockOwner,
    Phase,
    Phaseable,
    utc_now,
)
from phaser.logging_config import log_storage

from .database import Database
from .event_log import EventLog
from .migrations import ensure_schema
from .protocol import AuditSink, PhaseStore
from .repositories import CertificationRepository, ItemRepository, LockRepository

logger = logging.getLogger(__name__)

__all__ = [
    "Storage",
    "Database",
    "EventLog",
    "PhaseStore",
    "AuditSink",
    "CertificationRepository",
    "ItemRepository",
    "LockRepository",
    "DEFAULT_DATABASE_NAME",
    "DEFAULT_LOCK_TIMEOUT",
]

DEFAULT_DATABASE_NAME = "phaser.db"
DEFAULT_LOCK_TIMEOUT = timedelta(minutes=30)


class Storage:
    """Unified storage facade for phaser.

    Provides:
    - Database connection management
    - Repositories for certifications, items and locks
    - An identity cache, emptied by ``decache()``
    - Event logging (audit trail)

    Objects fetched through the facade are cached by id, so repeated fetches
    return the same instance until ``decache()`` is called.
    """

    def __init__(
        self,
        data_dir: Path,
        database_name: str = DEFAULT_DATABASE_NAME,
        lock_timeout: timedelta = DEFAULT_LOCK_TIMEOUT,
        clock: Clock = utc_now,
    ):
        """Initialize storage.

        Args:
            data_dir: Base directory for all storage files
            database_name: SQLite file name inside ``data_dir``
            lock_timeout: Lifetime of a certification lock
            clock: Time source for lock acquisition and expiry
        """
        self.data_dir = data_dir
        self.db = Database(data_dir / database_name)
        self.event_log = EventLog(data_dir / "events.jsonl")
        self.lock_timeout = lock_timeout
        self._clock = clock

        self._certifications: CertificationRepository | None = None
        self._items: ItemRepository | None = None
        self._locks: LockRepository | None = None

        self._cert_cache: dict[CertificationId, Certification] = {}
        self._item_cache: dict[ItemId, CertificationItem] = {}

    @property
    def certifications(self) -> CertificationRepository:
        """Get certification repository.

        Raises:
            RuntimeError: If not connected
        """
        if self._certifications is None:
            raise RuntimeError("Storage not connected. Call connect() first.")
        return self._certifications

    @property
    def items(self) -> ItemRepository:
        """Get item repository.

        Raises:
            RuntimeError: If not connected
        """
        if self._items is None:
            raise RuntimeError("Storage not connected. Call connect() first.")
        return self._items

    @property
    def locks(self) -> LockRepository:
        """Get lock repository.

        Raises:
            RuntimeError: If not connected
        """
        if self._locks is None:
            raise RuntimeError("Storage not connected. Call connect() first.")
        return self._locks

    @property
    def is_connected(self) -> bool:
        return self._certifications is not None

    async def connect(self) -> None:
        """Connect to database, run migrations and set up repositories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        await self.db.connect()
        version = await ensure_schema(self.db)
        log_storage(logger, "connect", self.db.path, details=f"schema=v{version}")

        self._certifications = CertificationRepository(self.db)
        self._items = ItemRepository(self.db)
        self._locks = LockRepository(self.db)

    async def close(self) -> None:
        """Close database connection."""
        await self.db.close()
        self._certifications = None
        self._items = None
        self._locks = None
        self.decache()
        log_storage(logger, "close", self.db.path)

    async def __aenter__(self) -> "Storage":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Fetching (cached)
    # -------------------------------------------------------------------------

    async def get_certification(self, cert_id: CertificationId) -> Certification | None:
        cert = self._cert_cache.get(cert_id)
        if cert is None:
            cert = await self.certifications.get_certification(cert_id)
            if cert is not None:
                self._cert_cache[cert_id] = cert
        return cert

    async def get_item(self, item_id: ItemId) -> CertificationItem | None:
        item = self._item_cache.get(item_id)
        if item is None:
            item = await self.items.get_item(item_id)
            if item is not None:
                self._item_cache[item_id] = item
        return item

    def decache(self) -> None:
        """Drop every cached object so later fetches re-read the database."""
        self._cert_cache.clear()
        self._item_cache.clear()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def due_certification_ids(self, now: datetime) -> list[CertificationId]:
        return await self.certifications.get_due_ids(now)

    async def count_due_certifications(self, now: datetime) -> int:
        return await self.certifications.count_due(now)

    async def due_item_ids(self, now: datetime) -> list[ItemId]:
        return await self.items.get_due_ids(now)

    async def count_due_items(self, now: datetime) -> int:
        return await self.items.count_due(now)

    async def items_to_refresh(
        self,
        cert_id: CertificationId,
        full: bool = False,
        entity_id: EntityId | None = None,
    ) -> list[CertificationItem]:
        """Items flagged for refresh, or every item when ``full``."""
        item_ids = await self.items.get_item_ids(
            cert_id, only_needing_refresh=not full, entity_id=entity_id
        )
        items = []
        for item_id in item_ids:
            item = await self.get_item(item_id)
            if item is not None:
                items.append(item)
        return items

    async def get_items(self, cert_id: CertificationId) -> list[CertificationItem]:
        """Every item of a certification."""
        return await self.items_to_refresh(cert_id, full=True)

    async def phase_histogram(self) -> dict[Phase | None, int]:
        """Number of certifications in each phase."""
        return await self.certifications.count_by_phase()

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    async def save(self, phaseable: Phaseable) -> None:
        """Write a certification or item and cache it. Call ``commit()`` after."""
        if isinstance(phaseable, Certification):
            await self.certifications.save_certification(phaseable)
            self._cert_cache[phaseable.id] = phaseable
        elif isinstance(phaseable, CertificationItem):
            await self.items.save_item(phaseable)
            self._item_cache[phaseable.id] = phaseable
        else:
            raise TypeError(f"Cannot store {type(phaseable).__name__}")

    async def commit(self) -> None:
        await self.db.commit()

    # -------------------------------------------------------------------------
    # Locks
    # -------------------------------------------------------------------------

    async def lock_certification(
        self, cert_id: CertificationId, owner: LockOwner
    ) -> CertificationLock | None:
        """Try once to lock a certification. None if another owner holds it."""
        return await self.locks.acquire(cert_id, owner, self._clock(), self.lock_timeout)

    async def unlock(self, lock: CertificationLock) -> None:
        await self.locks.release(lock)

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    async def log_events(self, events: Sequence[DomainEvent]) -> None:
        """Write events to the audit log. Does not touch SQLite state."""
        await self.event_log.append_all(events)
