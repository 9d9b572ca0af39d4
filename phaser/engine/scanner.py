"""Due-transition scanner.

One pass runs in two stages:

1. Certifications whose next transition has passed are locked one at a time
   and advanced.
2. Items whose next transition has passed are read in owning-certification
   order. The owner is locked once per group of items, each item is
   advanced with its post hooks deferred, and when the group ends the
   deferred hooks run once on the owner before the lock is released.

A certification locked by someone else is skipped and counted as locked out.
It is picked up by the next pass, since nothing about it changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

from phaser.domain import (
    Certification,
    CertificationId,
    CertificationLock,
    Clock,
    LockOwner,
    sort_phases,
    utc_now,
)
from phaser.handlers import PhaseHandlerRegistry
from phaser.logging_config import log_lock, log_scan

from .change_tracker import ChangeTracker
from .state_machine import PhaseBatch, PhaseTransitionStateMachine
from .stats import PhaserStatistics

if TYPE_CHECKING:
    from phaser.storage.protocol import PhaseStore


logger = logging.getLogger(__name__)

# Called with (certification, batch) when an item group ends
PostExitAndEnter = Callable[[Certification, PhaseBatch], Awaitable[None]]

# Called with (stage, processed, total)
ProgressCallback = Callable[[str, int, int], None]


@dataclass
class _ItemScanState:
    """Lock and batching state while walking the due items."""

    tracker: ChangeTracker[CertificationId] = field(default_factory=ChangeTracker)
    lock: CertificationLock | None = None
    batch: PhaseBatch = field(default_factory=PhaseBatch)


class DueTransitionScanner:
    """Finds and advances everything whose scheduled transition has passed."""

    def __init__(
        self,
        store: "PhaseStore",
        handlers: PhaseHandlerRegistry,
        state_machine: PhaseTransitionStateMachine,
        stats: PhaserStatistics,
        lock_owner: LockOwner,
        clock: Clock = utc_now,
        post_exit_and_enter: PostExitAndEnter | None = None,
    ):
        """Initialize the scanner.

        Args:
            store: Store to query, lock and persist through
            handlers: Handler registry used for the deferred post hooks
            state_machine: Performs each phase change
            stats: Counters to update
            lock_owner: Name recorded on every lock this scanner takes
            clock: Time source deciding what is due
            post_exit_and_enter: Replaces the default deferred-hook flush
        """
        self._store = store
        self._handlers = handlers
        self._machine = state_machine
        self._stats = stats
        self._lock_owner = lock_owner
        self._clock = clock
        self._post_exit_and_enter = post_exit_and_enter or self._flush_batch

    async def run(
        self,
        should_stop: Callable[[], bool],
        progress: ProgressCallback | None = None,
    ) -> None:
        """Run one pass over due certifications and then due items.

        ``should_stop`` is checked before each certification and item. Errors
        from phase handlers propagate after any held lock is released.
        """
        await self._transition_certifications(should_stop, progress)
        if should_stop():
            log_scan(logger, "items", "not started", "stop requested")
            return
        await self._transition_items(should_stop, progress)

    # -------------------------------------------------------------------------
    # Certifications
    # -------------------------------------------------------------------------

    async def _transition_certifications(
        self,
        should_stop: Callable[[], bool],
        progress: ProgressCallback | None,
    ) -> None:
        now = self._clock()
        cert_ids = await self._store.due_certification_ids(now)
        self._stats.certifications_due += len(cert_ids)
        log_scan(logger, "certifications", "start", f"due={len(cert_ids)}")

        for processed, cert_id in enumerate(cert_ids, start=1):
            if should_stop():
                log_scan(logger, "certifications", "stopped", f"processed={processed - 1}")
                return

            cert = await self._store.get_certification(cert_id)
            if cert is None:
                logger.debug(f"Certification {cert_id} no longer exists, skipping")
                continue

            lock = await self._store.lock_certification(cert_id, self._lock_owner)
            if lock is None:
                log_lock(logger, cert_id, "acquire", self._lock_owner, success=False)
                self._stats.certifications_locked_out += 1
                continue
            log_lock(logger, cert_id, "acquire", self._lock_owner)

            try:
                self._store.decache()
                cert = await self._store.get_certification(cert_id)
                if cert is None or not cert.is_due(self._clock()):
                    logger.debug(f"Certification {cert_id} no longer due after locking")
                    continue
                await self._machine.advance_phase(cert)
            except Exception:
                logger.error(f"Phase transition failed for certification {cert_id}", exc_info=True)
                raise
            finally:
                await self._release(lock)

            self._store.decache()
            self._stats.certifications_phased += 1
            if progress is not None:
                progress("certifications", processed, len(cert_ids))

        log_scan(
            logger,
            "certifications",
            "done",
            f"phased={self._stats.certifications_phased} "
            f"locked_out={self._stats.certifications_locked_out}",
        )

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    async def _transition_items(
        self,
        should_stop: Callable[[], bool],
        progress: ProgressCallback | None,
    ) -> None:
        now = self._clock()
        item_ids = await self._store.due_item_ids(now)
        self._stats.items_due += len(item_ids)
        log_scan(logger, "items", "start", f"due={len(item_ids)}")

        state = _ItemScanState()
        try:
            for processed, item_id in enumerate(item_ids, start=1):
                if should_stop():
                    log_scan(logger, "items", "stopped", f"processed={processed - 1}")
                    break

                item = await self._store.get_item(item_id)
                if item is None:
                    logger.debug(f"Item {item_id} no longer exists, skipping")
                    continue

                cert_id = item.certification_id
                tracker = state.tracker
                tracker.set_current(cert_id)

                if tracker.has_finished_last() and state.lock is not None:
                    await self._finish_group(state, state.lock)

                if tracker.has_new_started():
                    state.lock = await self._store.lock_certification(cert_id, self._lock_owner)
                    log_lock(
                        logger, cert_id, "acquire", self._lock_owner,
                        success=state.lock is not None,
                    )

                if state.lock is None:
                    self._stats.items_locked_out += 1
                    tracker.set_last(cert_id)
                    continue

                self._store.decache()
                item = await self._store.get_item(item_id)
                if item is not None and item.is_due(self._clock()):
                    await self._machine.advance_phase(item, state.batch)
                    self._store.decache()
                    self._stats.items_phased += 1
                else:
                    logger.debug(f"Item {item_id} no longer due after locking")

                tracker.set_last(cert_id)
                if progress is not None:
                    progress("items", processed, len(item_ids))

            if state.lock is not None:
                await self._finish_group(state, state.lock)
        except Exception:
            logger.error("Item phase transition failed", exc_info=True)
            raise
        finally:
            if state.lock is not None:
                await self._release(state.lock)
                state.lock = None

        log_scan(
            logger,
            "items",
            "done",
            f"phased={self._stats.items_phased} locked_out={self._stats.items_locked_out}",
        )

    async def _finish_group(self, state: _ItemScanState, lock: CertificationLock) -> None:
        """Run deferred hooks for the group just finished and release its lock."""

        if not state.batch.is_empty:
            self._store.decache()
            cert = await self._store.get_certification(lock.certification_id)
            if cert is not None:
                await self._post_exit_and_enter(cert, state.batch)
            else:
                logger.warning(
                    f"Certification {lock.certification_id} disappeared before post hooks ran"
                )
        state.batch.clear()

        state.lock = None
        await self._release(lock)

    async def _flush_batch(self, cert: Certification, batch: PhaseBatch) -> None:
        """Default deferred-hook flush: post_exit then post_enter, in phase order."""
        for phase in sort_phases(batch.exited):
            cert = await self._handlers.get(phase).post_exit(cert)
        for phase in sort_phases(batch.entered):
            cert = await self._handlers.get(phase).post_enter(cert)

        await self._store.save(cert)
        await self._store.commit()
        logger.debug(
            f"Post hooks ran for {cert.label} | "
            f"exited={[p.value for p in sort_phases(batch.exited)]} "
            f"entered={[p.value for p in sort_phases(batch.entered)]}"
        )

    async def _release(self, lock: CertificationLock) -> None:
        await self._store.unlock(lock)
        log_lock(logger, lock.certification_id, "release", lock.owner)
