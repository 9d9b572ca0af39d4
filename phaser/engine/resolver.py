"""Skip-aware phase resolution.

Walks the phase ordering from a phaseable's current phase, asking each
candidate phase's handler whether it is skipped for that phaseable.

The two directions are deliberately asymmetric:

- Forward probing assigns each skipped phase to ``phaseable.phase`` as it
  goes and leaves it there. Until ``change_phase`` runs, the phaseable
  reports the last skipped phase.
- Backward probing also assigns while probing but always restores the
  original phase before returning.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from phaser.domain import (
    CertificationItem,
    Clock,
    Phase,
    Phaseable,
    PhaseSkippedEvent,
    utc_now,
)
from phaser.handlers import PhaseHandlerRegistry

if TYPE_CHECKING:
    from phaser.storage.protocol import AuditSink


logger = logging.getLogger(__name__)


class PhaseSkipResolver:
    """Resolves the next and previous non-skipped phase."""

    def __init__(
        self,
        handlers: PhaseHandlerRegistry,
        skipped: set[Phase],
        audit: "AuditSink | None" = None,
        clock: Clock = utc_now,
    ):
        """Initialize resolver.

        Args:
            handlers: Registry used to look up ``is_skipped``
            skipped: Set that collects phases skipped during forward probing
            audit: Optional sink for PhaseSkippedEvent
            clock: Time source for event timestamps
        """
        self._handlers = handlers
        self._skipped = skipped
        self._audit = audit
        self._clock = clock

    async def next_phase(self, phaseable: Phaseable) -> Phase | None:
        """Get the next phase that is not skipped for ``phaseable``.

        Leaves ``phaseable.phase`` at the last skipped phase, if any.

        Returns:
            The resolved phase, or None if the ordering is exhausted
        """
        while True:
            candidate = phaseable.get_next_phase()
            if candidate is None:
                return None

            handler = self._handlers.get(candidate)
            if not await handler.is_skipped(phaseable):
                return candidate

            self._skipped.add(candidate)
            phaseable.phase = candidate
            logger.debug(f"Skipping phase {candidate.value} | {phaseable.label}")
            await self._record_skip(phaseable, candidate)

    async def previous_phase(self, phaseable: Phaseable) -> Phase | None:
        """Get the previous phase that is not skipped for ``phaseable``.

        ``phaseable.phase`` is unchanged when this returns or raises.

        Returns:
            The resolved phase, or None if the ordering is exhausted
        """
        original = phaseable.phase
        try:
            while True:
                candidate = phaseable.get_previous_phase()
                if candidate is None:
                    return None

                handler = self._handlers.get(candidate)
                if not await handler.is_skipped(phaseable):
                    return candidate

                phaseable.phase = candidate
                logger.debug(f"Skipping phase {candidate.value} backwards | {phaseable.label}")
        finally:
            phaseable.phase = original

    async def _record_skip(self, phaseable: Phaseable, phase: Phase) -> None:
        if self._audit is None:
            return
        item_id = phaseable.id if isinstance(phaseable, CertificationItem) else None
        await self._audit.append(
            PhaseSkippedEvent(
                timestamp=self._clock(),
                certification_id=phaseable.certification_id,
                item_id=item_id,
                phase=phase,
            )
        )
