"""CertificationPhaser - the phase engine facade.

Wires together one engine instance: handler registry, skip resolver, state
machine, scanner and refresher. Each instance owns its own handler cache,
skipped-phase set, statistics and stop flag, so engines never share state.

Usage:
    phaser = CertificationPhaser(storage, standard_handler_factories(), "worker-1")
    await phaser.transition_due()
    result = await phaser.save_results()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from phaser.domain import (
    Certification,
    Clock,
    EntityId,
    LockOwner,
    Phase,
    Phaseable,
    PhaserRunCompletedEvent,
    utc_now,
)
from phaser.handlers import HandlerFactory, PhaseHandlerRegistry

from .refresher import RollingTransitionRefresher
from .resolver import PhaseSkipResolver
from .scanner import DueTransitionScanner, PostExitAndEnter, ProgressCallback
from .state_machine import PhaseBatch, PhaseTransitionStateMachine
from .stats import PhaserRunResult, PhaserStatistics

if TYPE_CHECKING:
    from phaser.storage.protocol import AuditSink, PhaseStore


logger = logging.getLogger(__name__)


class CertificationPhaser:
    """Advances certifications and their items through their phases."""

    def __init__(
        self,
        store: "PhaseStore",
        handler_factories: Mapping[Phase, HandlerFactory],
        lock_owner: LockOwner | str,
        clock: Clock = utc_now,
        audit: "AuditSink | None" = None,
        post_exit_and_enter: PostExitAndEnter | None = None,
    ):
        """Initialize an engine.

        Args:
            store: Persistence the engine runs against
            handler_factories: One handler factory per phase
            lock_owner: Name recorded on certification locks
            clock: Time source
            audit: Optional audit sink for phase events
            post_exit_and_enter: Replaces the default deferred-hook flush
        """
        self._store = store
        self._clock = clock
        self._audit = audit
        self._stop = False
        self._skipped: set[Phase] = set()
        self._stats = PhaserStatistics()

        self._handlers = PhaseHandlerRegistry(handler_factories, store)
        self._resolver = PhaseSkipResolver(self._handlers, self._skipped, audit=audit, clock=clock)
        self._machine = PhaseTransitionStateMachine(
            store, self._handlers, self._resolver, clock=clock, audit=audit
        )
        self._scanner = DueTransitionScanner(
            store,
            self._handlers,
            self._machine,
            self._stats,
            LockOwner(str(lock_owner)),
            clock=clock,
            post_exit_and_enter=post_exit_and_enter,
        )
        self._refresher = RollingTransitionRefresher(store, self._handlers, self)

    # -------------------------------------------------------------------------
    # Scheduled transitions
    # -------------------------------------------------------------------------

    async def transition_due(self, progress: ProgressCallback | None = None) -> PhaserStatistics:
        """Advance every certification and item whose transition is due.

        Returns:
            The engine's statistics after the pass
        """
        logger.info("Transitioning due certifications and items")
        await self._scanner.run(lambda: self._stop, progress)
        return self._stats

    # -------------------------------------------------------------------------
    # Single phaseable operations
    # -------------------------------------------------------------------------

    async def advance_phase(
        self, phaseable: Phaseable, batch: PhaseBatch | None = None
    ) -> Phaseable:
        return await self._machine.advance_phase(phaseable, batch)

    async def rewind_phase(self, phaseable: Phaseable) -> Phaseable:
        return await self._machine.rewind_phase(phaseable)

    async def change_phase(
        self,
        phaseable: Phaseable,
        current: Phase | None,
        new: Phase | None,
        batch: PhaseBatch | None = None,
    ) -> Phaseable:
        return await self._machine.change_phase(phaseable, current, new, batch)

    async def get_next_phase(self, phaseable: Phaseable) -> Phase | None:
        """Next non-skipped phase. May leave ``phaseable.phase`` on a skipped phase."""
        return await self._resolver.next_phase(phaseable)

    async def get_previous_phase(self, phaseable: Phaseable) -> Phase | None:
        """Previous non-skipped phase. ``phaseable.phase`` is left unchanged."""
        return await self._resolver.previous_phase(phaseable)

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh(
        self,
        cert: Certification,
        full: bool = False,
        entity_id: EntityId | None = None,
    ) -> int:
        return await self._refresher.refresh(cert, full, entity_id)

    async def rewind_or_advance_if_due(
        self,
        cert: Certification,
        full: bool = False,
        entity_id: EntityId | None = None,
    ) -> int:
        return await self._refresher.rewind_or_advance_if_due(cert, full, entity_id)

    # -------------------------------------------------------------------------
    # Control and reporting
    # -------------------------------------------------------------------------

    def terminate(self) -> None:
        """Ask a running pass to stop before its next certification or item."""
        logger.info("Termination requested")
        self._stop = True

    @property
    def should_stop(self) -> bool:
        return self._stop

    def is_skipped(self, phase: Phase) -> bool:
        """Whether ``phase`` was skipped during any forward resolution."""
        return phase in self._skipped

    @property
    def skipped_phases(self) -> frozenset[Phase]:
        return frozenset(self._skipped)

    @property
    def statistics(self) -> PhaserStatistics:
        return self._stats

    @property
    def handlers(self) -> PhaseHandlerRegistry:
        return self._handlers

    async def save_results(self) -> PhaserRunResult:
        """Build the run result and record it in the audit log.

        Nothing is recorded when the run phased nothing.
        """
        result = PhaserRunResult.from_statistics(
            self._stats, self._skipped, terminated=self._stop
        )
        if self._audit is not None and self._stats.anything_phased:
            await self._audit.append(
                PhaserRunCompletedEvent(
                    timestamp=self._clock(),
                    certifications_phased=result.certifications_phased,
                    items_phased=result.items_phased,
                    certifications_due=result.certifications_due,
                    items_due=result.items_due,
                    terminated=result.terminated,
                )
            )
        return result

    def trace_results(self) -> str:
        return PhaserRunResult.from_statistics(
            self._stats, self._skipped, terminated=self._stop
        ).trace()
