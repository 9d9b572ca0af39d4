"""Tests for named certification locks."""

from datetime import timedelta

from phaser.domain import CertificationId, LockOwner
from phaser.storage import Storage


C1 = CertificationId("c1")
C2 = CertificationId("c2")


class TestLockAcquisition:
    async def test_acquire_free(self, storage, clock):
        lock = await storage.lock_certification(C1, LockOwner("w1"))

        assert lock is not None
        assert lock.certification_id == C1
        assert lock.owner == "w1"
        assert lock.acquired_at == clock.now
        assert lock.expires_at == clock.now + storage.lock_timeout

    async def test_held_lock_refused(self, storage):
        await storage.lock_certification(C1, LockOwner("w1"))

        assert await storage.lock_certification(C1, LockOwner("w2")) is None

    async def test_no_reentry_for_same_owner(self, storage):
        await storage.lock_certification(C1, LockOwner("w1"))

        assert await storage.lock_certification(C1, LockOwner("w1")) is None

    async def test_locks_are_per_certification(self, storage):
        assert await storage.lock_certification(C1, LockOwner("w1")) is not None
        assert await storage.lock_certification(C2, LockOwner("w2")) is not None

    async def test_release_frees(self, storage):
        lock = await storage.lock_certification(C1, LockOwner("w1"))
        await storage.unlock(lock)

        assert await storage.locks.get_lock(C1) is None
        assert await storage.lock_certification(C1, LockOwner("w2")) is not None

    async def test_expired_lock_taken_over(self, storage, clock):
        await storage.lock_certification(C1, LockOwner("w1"))
        clock.advance(storage.lock_timeout + timedelta(seconds=1))

        lock = await storage.lock_certification(C1, LockOwner("w2"))

        assert lock is not None
        assert (await storage.locks.get_lock(C1)).owner == "w2"

    async def test_stale_release_keeps_new_owner(self, storage, clock):
        stale = await storage.lock_certification(C1, LockOwner("w1"))
        clock.advance(storage.lock_timeout + timedelta(seconds=1))
        await storage.lock_certification(C1, LockOwner("w2"))

        await storage.unlock(stale)

        assert (await storage.locks.get_lock(C1)).owner == "w2"


class TestLockSharing:
    async def test_second_connection_sees_lock(self, temp_data_dir, clock):
        async with Storage(temp_data_dir, clock=clock) as first:
            async with Storage(temp_data_dir, clock=clock) as second:
                held = await first.lock_certification(C1, LockOwner("w1"))
                assert held is not None

                assert await second.lock_certification(C1, LockOwner("w2")) is None

                await first.unlock(held)
                assert await second.lock_certification(C1, LockOwner("w2")) is not None

    async def test_custom_timeout(self, temp_data_dir, clock):
        async with Storage(temp_data_dir, lock_timeout=timedelta(seconds=5), clock=clock) as store:
            lock = await store.lock_certification(C1, LockOwner("w1"))
            assert lock.expires_at - lock.acquired_at == timedelta(seconds=5)
