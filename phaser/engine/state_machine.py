"""Atomic phase change for one certification or item.

``change_phase`` runs four strictly ordered steps:

1. Exit the current phase (handler ``exit_phase``, then ``post_exit`` on the
   owning certification).
2. Persist the new phase value.
3. Enter the new phase (handler ``enter_phase``, then ``post_enter``) and
   compute the next scheduled transition.
4. Persist the next scheduled transition.

Handler errors propagate. Steps already committed stay committed, so a
failure in step 3 leaves the new phase stored with the old schedule.

When a PhaseBatch is supplied the ``post_*`` hooks are not run here. The
phases are recorded on the batch and the caller runs the hooks once per
certification after all of its items have moved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from phaser.domain import (
    Certification,
    CertificationItem,
    Clock,
    Phase,
    Phaseable,
    PhaseChangedEvent,
    utc_now,
)
from phaser.errors import OrphanItemError
from phaser.handlers import PhaseHandler, PhaseHandlerRegistry
from phaser.logging_config import log_transition

from .resolver import PhaseSkipResolver

if TYPE_CHECKING:
    from phaser.storage.protocol import AuditSink, PhaseStore


logger = logging.getLogger(__name__)


@dataclass
class PhaseBatch:
    """Phases exited and entered by items of one certification.

    Collected while items are transitioned so that ``post_exit`` and
    ``post_enter`` run once per certification instead of once per item.
    """

    exited: set[Phase] = field(default_factory=set)
    entered: set[Phase] = field(default_factory=set)

    def record(self, exited: Phase | None, entered: Phase | None) -> None:
        """Record one transition. None endpoints are ignored."""
        if exited is not None:
            self.exited.add(exited)
        if entered is not None:
            self.entered.add(entered)

    def clear(self) -> None:
        self.exited.clear()
        self.entered.clear()

    @property
    def is_empty(self) -> bool:
        return not self.exited and not self.entered


class PhaseTransitionStateMachine:
    """Applies phase changes through the phase handlers and the store."""

    def __init__(
        self,
        store: "PhaseStore",
        handlers: PhaseHandlerRegistry,
        resolver: PhaseSkipResolver,
        clock: Clock = utc_now,
        audit: "AuditSink | None" = None,
    ):
        """Initialize the state machine.

        Args:
            store: Store used to persist phaseables and load certifications
            handlers: Per-phase handler registry
            resolver: Skip-aware phase resolver
            clock: Time source for scheduling and events
            audit: Optional sink for PhaseChangedEvent
        """
        self._store = store
        self._handlers = handlers
        self._resolver = resolver
        self._clock = clock
        self._audit = audit

    async def advance_phase(
        self, phaseable: Phaseable, batch: PhaseBatch | None = None
    ) -> Phaseable:
        """Move ``phaseable`` to its next non-skipped phase."""
        current = phaseable.phase
        new = await self._resolver.next_phase(phaseable)
        return await self.change_phase(phaseable, current, new, batch)

    async def rewind_phase(self, phaseable: Phaseable) -> Phaseable:
        """Move ``phaseable`` back to its previous non-skipped phase."""
        current = phaseable.phase
        new = await self._resolver.previous_phase(phaseable)
        return await self.change_phase(phaseable, current, new)

    async def change_phase(
        self,
        phaseable: Phaseable,
        current: Phase | None,
        new: Phase | None,
        batch: PhaseBatch | None = None,
    ) -> Phaseable:
        """Exit ``current`` and enter ``new`` for ``phaseable``.

        Args:
            phaseable: Certification or item to transition
            current: Phase being left (None if never started)
            new: Phase being entered (None if terminal)
            batch: If given, defer post hooks by recording them here

        Returns:
            The phaseable instance to continue with (may be a new object)
        """
        log_transition(logger, phaseable.label, current, new, "start")

        if current is not None:
            handler = self._handlers.get(current)
            phaseable = await handler.exit_phase(phaseable)

            # Set before post_exit so the hook sees the phase being entered.
            phaseable.phase = new
            if batch is None:
                phaseable = await self._run_post_exit(handler, phaseable)

        phaseable.phase = new
        await self._store.save(phaseable)
        await self._store.commit()

        next_transition: datetime | None = None
        if new is not None:
            handler = self._handlers.get(new)
            phaseable = await handler.enter_phase(phaseable)
            if batch is None:
                phaseable = await self._run_post_enter(handler, phaseable)

            if await handler.update_next_phase_transition(phaseable):
                next_transition = await self._compute_next_transition(phaseable, new)

        if batch is not None:
            batch.record(current, new)

        phaseable.next_phase_transition = next_transition
        await self._store.save(phaseable)
        await self._store.commit()

        log_transition(
            logger,
            phaseable.label,
            current,
            new,
            "done",
            details=f"next={next_transition.isoformat() if next_transition else None}",
        )
        await self._record_change(phaseable, current, new)
        return phaseable

    async def certification_of(self, phaseable: Phaseable) -> Certification:
        """Load the certification that owns ``phaseable``.

        Raises:
            OrphanItemError: If an item's certification no longer exists
        """
        if isinstance(phaseable, Certification):
            return phaseable
        cert = await self._store.get_certification(phaseable.certification_id)
        if cert is None:
            raise OrphanItemError(
                item_id=phaseable.id,
                certification_id=phaseable.certification_id,
            )
        return cert

    async def _run_post_exit(self, handler: PhaseHandler, phaseable: Phaseable) -> Phaseable:
        cert = await handler.post_exit(await self.certification_of(phaseable))
        return await self._keep_owner(phaseable, cert)

    async def _run_post_enter(self, handler: PhaseHandler, phaseable: Phaseable) -> Phaseable:
        cert = await handler.post_enter(await self.certification_of(phaseable))
        return await self._keep_owner(phaseable, cert)

    async def _keep_owner(self, phaseable: Phaseable, cert: Certification) -> Phaseable:
        """Continue with the certification a post hook returned.

        A certification in transition is saved by the steps that follow. An
        item's owner is not, so it is saved here.
        """
        if isinstance(phaseable, Certification):
            return cert
        await self._store.save(cert)
        await self._store.commit()
        return phaseable

    async def _compute_next_transition(
        self, phaseable: Phaseable, phase: Phase
    ) -> datetime | None:
        """Schedule the next transition from the phase duration.

        Counts from the transition that just happened when known, else from
        now. No config or no duration means nothing is scheduled.
        """
        cert = await self.certification_of(phaseable)
        config = cert.get_phase_config(phase)
        if config is None or config.duration is None:
            return None

        base = phaseable.next_phase_transition
        if base is None:
            base = self._clock()
        return base + config.duration

    async def _record_change(
        self, phaseable: Phaseable, current: Phase | None, new: Phase | None
    ) -> None:
        if self._audit is None:
            return
        item_id = phaseable.id if isinstance(phaseable, CertificationItem) else None
        await self._audit.append(
            PhaseChangedEvent(
                timestamp=self._clock(),
                certification_id=phaseable.certification_id,
                item_id=item_id,
                from_phase=current,
                to_phase=new,
                next_phase_transition=phaseable.next_phase_transition,
            )
        )
