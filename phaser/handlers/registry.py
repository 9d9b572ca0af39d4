"""Per-engine phase handler registry.

Handlers are built lazily on first use and cached for the lifetime of the
registry. Each engine owns its own registry, so no handler state is shared
between runs or between concurrent engines.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Mapping

from phaser.domain import Phase
from phaser.errors import MissingPhaseHandlerError

from .base import PhaseHandler

if TYPE_CHECKING:
    from phaser.storage.protocol import PhaseStore


logger = logging.getLogger(__name__)

HandlerFactory = Callable[["PhaseStore"], PhaseHandler]


class PhaseHandlerRegistry:
    """Maps each phase to exactly one lazily constructed handler."""

    def __init__(
        self,
        factories: Mapping[Phase, HandlerFactory],
        store: "PhaseStore",
    ):
        """Initialize the registry.

        Args:
            factories: One handler factory per phase
            store: Store passed to each factory
        """
        self._factories = dict(factories)
        self._store = store
        self._handlers: dict[Phase, PhaseHandler] = {}

    def get(self, phase: Phase | None) -> PhaseHandler:
        """Get the handler for a phase, constructing it on first use.

        Raises:
            MissingPhaseHandlerError: If no factory is registered for the phase
        """
        if phase is None:
            raise MissingPhaseHandlerError(phase=None)

        handler = self._handlers.get(phase)
        if handler is None:
            factory = self._factories.get(phase)
            if factory is None:
                raise MissingPhaseHandlerError(phase=phase)
            handler = factory(self._store)
            self._handlers[phase] = handler
            logger.debug(f"Constructed handler for phase {phase.value}: {type(handler).__name__}")
        return handler

    def has_handler(self, phase: Phase) -> bool:
        """Check whether a factory is registered for the phase."""
        return phase in self._factories

    @property
    def constructed(self) -> frozenset[Phase]:
        """Phases whose handler has been built so far."""
        return frozenset(self._handlers)
