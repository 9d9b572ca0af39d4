"""Refresh-time item processing.

Used when a certification's items change outside a scheduled transition (new
data imported, decisions recorded). The caller must hold the certification
lock.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator

from phaser.domain import Certification, CertificationItem, EntityId, Phase
from phaser.handlers import PhaseEngineHandle, PhaseHandlerRegistry

if TYPE_CHECKING:
    from phaser.storage.protocol import PhaseStore


logger = logging.getLogger(__name__)


class RollingTransitionRefresher:
    """Runs phase refresh logic and rolling transitions for selected items."""

    def __init__(
        self,
        store: "PhaseStore",
        handlers: PhaseHandlerRegistry,
        engine: PhaseEngineHandle,
    ):
        self._store = store
        self._handlers = handlers
        self._engine = engine

    async def refresh(
        self,
        cert: Certification,
        full: bool = False,
        entity_id: EntityId | None = None,
    ) -> int:
        """Let each selected item's phase handler refresh it.

        Args:
            cert: Certification whose items are refreshed
            full: Refresh every item instead of only those flagged
            entity_id: Restrict to items of one reviewed identity

        Returns:
            Number of items refreshed
        """
        count = 0
        async for item, phase in self._selected(cert, full, entity_id):
            await self._handlers.get(phase).refresh(cert, item)
            count += 1
        logger.debug(f"Refreshed {count} items of {cert.label} | full={full}")
        return count

    async def rewind_or_advance_if_due(
        self,
        cert: Certification,
        full: bool = False,
        entity_id: EntityId | None = None,
    ) -> int:
        """Give each selected item's phase handler a chance to move it.

        Only applies to rolling certifications. Transitions made here run
        their post hooks immediately.

        Returns:
            Number of items offered a transition
        """
        if not cert.use_rolling_phases:
            return 0

        count = 0
        async for item, phase in self._selected(cert, full, entity_id):
            await self._handlers.get(phase).handle_rolling_transition(item, self._engine)
            count += 1
        logger.debug(f"Rolling transitions checked for {count} items of {cert.label}")
        return count

    async def _selected(
        self,
        cert: Certification,
        full: bool,
        entity_id: EntityId | None,
    ) -> AsyncIterator[tuple[CertificationItem, Phase]]:
        """Selected items paired with their effective phase.

        An item without its own phase takes the certification's. Items with
        no effective phase are left out.
        """
        items = await self._store.items_to_refresh(cert.id, full=full, entity_id=entity_id)
        for item in items:
            phase = item.phase if item.phase is not None else cert.phase
            if phase is None:
                continue
            yield item, phase
