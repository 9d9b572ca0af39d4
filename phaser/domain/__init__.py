"""Domain models for phaser.

Pure models with no I/O: phases and their ordering, phaseable certifications
and items, and audit events.

Usage:
    from phaser.domain import Phase, Certification, CertificationItem
"""

from .types import CertificationId, ItemId, EntityId, LockOwner
from .phase import (
    Phase,
    PhaseConfig,
    PHASE_ORDER,
    next_phase,
    previous_phase,
    sort_phases,
)
from .certification import Phaseable, Certification, CertificationItem
from .lock import CertificationLock
from .time import Clock, utc_now, to_utc
from .events import (
    BaseEvent,
    PhaseChangedEvent,
    PhaseSkippedEvent,
    PhaserRunCompletedEvent,
    DomainEvent,
)

__all__ = [
    # Types
    "CertificationId",
    "ItemId",
    "EntityId",
    "LockOwner",
    # Phases
    "Phase",
    "PhaseConfig",
    "PHASE_ORDER",
    "next_phase",
    "previous_phase",
    "sort_phases",
    # Phaseables
    "Phaseable",
    "Certification",
    "CertificationItem",
    "CertificationLock",
    # Time
    "Clock",
    "utc_now",
    "to_utc",
    # Events
    "BaseEvent",
    "PhaseChangedEvent",
    "PhaseSkippedEvent",
    "PhaserRunCompletedEvent",
    "DomainEvent",
]
