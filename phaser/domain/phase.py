"""Phase ordering and per-phase configuration.

Phases form a closed, totally ordered lifecycle:

    STAGED -> ACTIVE -> CHALLENGE -> REMEDIATION -> END

``None`` stands for "not yet started". Walking forward from ``None`` yields
STAGED; walking past END (or back past STAGED) yields ``None``.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Phase(Enum):
    """Lifecycle phase of a certification or certification item."""

    STAGED = "staged"
    ACTIVE = "active"
    CHALLENGE = "challenge"
    REMEDIATION = "remediation"
    END = "end"

    @property
    def ordinal(self) -> int:
        """Position of this phase in the lifecycle ordering."""
        return _PHASE_ORDINALS[self]

    @property
    def next(self) -> Phase | None:
        """The phase after this one, or None at the end of the lifecycle."""
        return next_phase(self)

    @property
    def previous(self) -> Phase | None:
        """The phase before this one, or None at the start of the lifecycle."""
        return previous_phase(self)


PHASE_ORDER: tuple[Phase, ...] = tuple(Phase)

_PHASE_ORDINALS: dict[Phase, int] = {phase: i for i, phase in enumerate(PHASE_ORDER)}


def next_phase(phase: Phase | None) -> Phase | None:
    """Get the phase following ``phase`` in the ordering.

    Args:
        phase: Current phase, or None if the lifecycle has not started

    Returns:
        The next phase, or None if ``phase`` is the last one
    """
    if phase is None:
        return PHASE_ORDER[0]
    idx = phase.ordinal + 1
    if idx < len(PHASE_ORDER):
        return PHASE_ORDER[idx]
    return None


def previous_phase(phase: Phase | None) -> Phase | None:
    """Get the phase preceding ``phase`` in the ordering.

    Args:
        phase: Current phase, or None if the lifecycle has not started

    Returns:
        The previous phase, or None if there is none
    """
    if phase is None:
        return None
    idx = phase.ordinal - 1
    if idx >= 0:
        return PHASE_ORDER[idx]
    return None


def sort_phases(phases: set[Phase] | frozenset[Phase]) -> list[Phase]:
    """Return phases in lifecycle order."""
    return sorted(phases, key=lambda p: p.ordinal)


class PhaseConfig(BaseModel):
    """Per-certification configuration for one phase.

    A missing duration means no timed transition is scheduled after the
    phase is entered (END normally has none).
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase
    duration: timedelta | None = None
