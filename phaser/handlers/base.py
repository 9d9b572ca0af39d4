"""Phase handler interface.

A PhaseHandler carries the business logic for one phase: what happens when a
certification or item enters or leaves it, whether it can be skipped, how
items are refreshed while in it, and how rolling items move on from it.

Handlers may decache and re-read objects while they work. Every method that
receives a phaseable or certification returns the instance the caller must
continue with, which can be a different object for the same stored row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from phaser.domain import Certification, CertificationItem, Phase, Phaseable

if TYPE_CHECKING:
    from phaser.engine.state_machine import PhaseBatch
    from phaser.storage.protocol import PhaseStore


class PhaseEngineHandle(Protocol):
    """The part of the engine a handler may call back into."""

    async def advance_phase(
        self, phaseable: Phaseable, batch: "PhaseBatch | None" = None
    ) -> Phaseable:
        ...

    async def rewind_phase(self, phaseable: Phaseable) -> Phaseable:
        ...

    async def change_phase(
        self,
        phaseable: Phaseable,
        current: Phase | None,
        new: Phase | None,
        batch: "PhaseBatch | None" = None,
    ) -> Phaseable:
        ...


class PhaseHandler(Protocol):
    """Behavior around transitions into and out of one phase."""

    async def enter_phase(self, phaseable: Phaseable) -> Phaseable:
        """Run business logic for a phaseable entering this phase."""
        ...

    async def exit_phase(self, phaseable: Phaseable) -> Phaseable:
        """Run business logic for a phaseable leaving this phase."""
        ...

    async def post_enter(self, cert: Certification) -> Certification:
        """Run logic once all items of ``cert`` have entered this phase."""
        ...

    async def post_exit(self, cert: Certification) -> Certification:
        """Run logic once all items of ``cert`` have left this phase."""
        ...

    async def is_skipped(self, phaseable: Phaseable) -> bool:
        """Whether this phase should be bypassed for ``phaseable``."""
        ...

    async def refresh(self, cert: Certification, item: CertificationItem) -> None:
        """Refresh ``item`` according to the rules of this phase."""
        ...

    async def handle_rolling_transition(
        self, item: CertificationItem, engine: PhaseEngineHandle
    ) -> None:
        """Advance or rewind ``item`` if it should leave this phase."""
        ...

    async def update_next_phase_transition(self, phaseable: Phaseable) -> bool:
        """Whether entering this phase schedules a timed transition."""
        ...


class BasePhaseHandler:
    """Pass-through handler with no business logic.

    Subclasses override only what their phase needs. The store is available
    for handlers that need to look up the owning certification.
    """

    phase: Phase | None = None

    def __init__(self, store: "PhaseStore"):
        """Initialize handler.

        Args:
            store: Store the engine runs against
        """
        self._store = store

    async def enter_phase(self, phaseable: Phaseable) -> Phaseable:
        return phaseable

    async def exit_phase(self, phaseable: Phaseable) -> Phaseable:
        return phaseable

    async def post_enter(self, cert: Certification) -> Certification:
        return cert

    async def post_exit(self, cert: Certification) -> Certification:
        return cert

    async def is_skipped(self, phaseable: Phaseable) -> bool:
        return False

    async def refresh(self, cert: Certification, item: CertificationItem) -> None:
        return None

    async def handle_rolling_transition(
        self, item: CertificationItem, engine: PhaseEngineHandle
    ) -> None:
        return None

    async def update_next_phase_transition(self, phaseable: Phaseable) -> bool:
        return True

    async def _certification_of(self, phaseable: Phaseable) -> Certification | None:
        """Load the certification that owns ``phaseable``."""
        if isinstance(phaseable, Certification):
            return phaseable
        return await self._store.get_certification(phaseable.certification_id)
