"""Standard phase handlers.

These carry only the lifecycle rules the engine itself depends on. Richer
business logic (notifications, work items, remediation requests) belongs in
handlers supplied by the surrounding system.
"""

from __future__ import annotations

import logging

from phaser.domain import Phase, Phaseable

from .base import BasePhaseHandler
from .registry import HandlerFactory


logger = logging.getLogger(__name__)


class StagedPhaseHandler(BasePhaseHandler):
    """Staged: the certification exists but has not been activated."""

    phase = Phase.STAGED


class ActivePhaseHandler(BasePhaseHandler):
    """Active: reviewers make their decisions.

    The Active duration times the whole certification in periodic mode. In
    rolling mode items move on individually, so no timed transition is set.
    """

    phase = Phase.ACTIVE

    async def update_next_phase_transition(self, phaseable: Phaseable) -> bool:
        cert = await self._certification_of(phaseable)
        if cert is None:
            return True
        return not cert.use_rolling_phases


class ChallengePhaseHandler(BasePhaseHandler):
    """Challenge: affected parties may dispute decisions.

    Skipped once the certification has been signed off, since nothing is
    left to challenge.
    """

    phase = Phase.CHALLENGE

    async def is_skipped(self, phaseable: Phaseable) -> bool:
        cert = await self._certification_of(phaseable)
        skipped = cert is not None and cert.signed
        if skipped:
            logger.debug(f"Challenge skipped for {phaseable.label} | certification signed")
        return skipped


class RemediationPhaseHandler(BasePhaseHandler):
    """Remediation: revoked access is being removed."""

    phase = Phase.REMEDIATION


class EndPhaseHandler(BasePhaseHandler):
    """End: terminal phase, nothing further is scheduled."""

    phase = Phase.END

    async def update_next_phase_transition(self, phaseable: Phaseable) -> bool:
        return False


STANDARD_HANDLERS: dict[Phase, type[BasePhaseHandler]] = {
    Phase.STAGED: StagedPhaseHandler,
    Phase.ACTIVE: ActivePhaseHandler,
    Phase.CHALLENGE: ChallengePhaseHandler,
    Phase.REMEDIATION: RemediationPhaseHandler,
    Phase.END: EndPhaseHandler,
}


def standard_handler_factories() -> dict[Phase, HandlerFactory]:
    """Factories for the standard handler set, one per phase."""
    return dict(STANDARD_HANDLERS)
