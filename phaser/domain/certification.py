"""Phaseable models: certifications and their items.

Unlike most domain models these are mutable. The phase engine probes and
assigns ``phase`` in place, and phase handlers may hand back a different
instance that represents the same stored row. Callers always continue with
the instance they were given back.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .phase import Phase, PhaseConfig, next_phase, previous_phase
from .types import CertificationId, EntityId, ItemId


class Phaseable(BaseModel):
    """Anything with a current phase and a scheduled next transition."""

    model_config = ConfigDict(validate_assignment=True)

    phase: Phase | None = None
    next_phase_transition: datetime | None = None

    @property
    def certification_id(self) -> CertificationId:
        """Id of the owning certification (the root of the lock scope)."""
        raise NotImplementedError

    @property
    def label(self) -> str:
        """Short description for logs."""
        raise NotImplementedError

    def get_next_phase(self) -> Phase | None:
        """Next phase in the ordering relative to the current phase."""
        return next_phase(self.phase)

    def get_previous_phase(self) -> Phase | None:
        """Previous phase in the ordering relative to the current phase."""
        return previous_phase(self.phase)

    def is_due(self, now: datetime) -> bool:
        """Check whether the scheduled transition time has passed."""
        return self.next_phase_transition is not None and self.next_phase_transition < now


class Certification(Phaseable):
    """A certification: the top-level phaseable and lock scope."""

    id: CertificationId
    name: str = ""
    use_rolling_phases: bool = False
    signed: bool = False
    phase_configs: tuple[PhaseConfig, ...] = ()

    @property
    def certification_id(self) -> CertificationId:
        return self.id

    @property
    def label(self) -> str:
        return f"certification:{self.id}"

    def get_phase_config(self, phase: Phase) -> PhaseConfig | None:
        """Get the configuration for a phase, if one exists."""
        for config in self.phase_configs:
            if config.phase == phase:
                return config
        return None


class CertificationItem(Phaseable):
    """A line item of a certification.

    In rolling mode items carry their own phase. Otherwise ``phase`` stays
    None and the certification's phase applies.
    """

    id: ItemId
    owner_id: CertificationId
    entity_id: EntityId | None = None
    needs_refresh: bool = False

    @property
    def certification_id(self) -> CertificationId:
        return self.owner_id

    @property
    def label(self) -> str:
        return f"item:{self.id}"
