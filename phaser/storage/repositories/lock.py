"""Certification lock repository for phaser.

A lock is a row in ``certification_locks`` keyed by certification id.
Acquisition is a single attempt: expired rows are purged, then an
``INSERT OR IGNORE`` either creates the row or finds it held.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from phaser.domain import CertificationId, CertificationLock, LockOwner

from .base import BaseRepository

logger = logging.getLogger(__name__)


class LockRepository(BaseRepository):
    """Repository for named per-certification locks."""

    async def acquire(
        self,
        cert_id: CertificationId,
        owner: LockOwner,
        now: datetime,
        timeout: timedelta,
    ) -> CertificationLock | None:
        """Try once to lock a certification.

        Args:
            cert_id: Certification to lock
            owner: Name of the engine taking the lock
            now: Acquisition time
            timeout: How long the lock stays valid

        Returns:
            The held lock, or None if another owner holds a live lock
        """
        lock = CertificationLock(
            certification_id=cert_id,
            owner=owner,
            acquired_at=now,
            expires_at=now + timeout,
        )
        async with self.db.transaction():
            await self.db.execute(
                "DELETE FROM certification_locks WHERE certification_id = ? AND expires_at <= ?",
                (str(cert_id), self._encode_datetime(now)),
            )
            acquired = await self.db.execute_count(
                """
                INSERT OR IGNORE INTO certification_locks (
                    certification_id, owner, acquired_at, expires_at
                )
                VALUES (?, ?, ?, ?)
                """,
                (
                    str(cert_id),
                    str(owner),
                    self._encode_datetime(lock.acquired_at),
                    self._encode_datetime(lock.expires_at),
                ),
            ) == 1

        return lock if acquired else None

    async def release(self, lock: CertificationLock) -> None:
        """Release a lock. Only removes the row if ``lock.owner`` still holds it."""
        await self.db.execute(
            "DELETE FROM certification_locks WHERE certification_id = ? AND owner = ?",
            (str(lock.certification_id), str(lock.owner)),
        )
        await self.db.commit()

    async def get_lock(self, cert_id: CertificationId) -> CertificationLock | None:
        """Current lock row for a certification, live or expired."""
        row = await self.db.fetch_one(
            "SELECT * FROM certification_locks WHERE certification_id = ?",
            (str(cert_id),),
        )
        if row is None:
            return None
        return CertificationLock(
            certification_id=CertificationId(row["certification_id"]),
            owner=LockOwner(row["owner"]),
            acquired_at=self._decode_datetime(row["acquired_at"]),
            expires_at=self._decode_datetime(row["expires_at"]),
        )
