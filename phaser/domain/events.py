"""Audit events for phaser.

Events are appended to a JSONL audit log for debugging and reporting.
They are never replayed; the database is the source of truth.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator

from .phase import Phase
from .types import CertificationId, ItemId


class BaseEvent(BaseModel):
    """Base class for all audit events."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime


class PhaseChangedEvent(BaseEvent):
    """A certification or item moved between phases."""

    type: Literal["phase_changed"] = "phase_changed"
    certification_id: CertificationId
    item_id: ItemId | None = None
    from_phase: Phase | None
    to_phase: Phase | None
    next_phase_transition: datetime | None = None


class PhaseSkippedEvent(BaseEvent):
    """A phase was bypassed while resolving the next phase."""

    type: Literal["phase_skipped"] = "phase_skipped"
    certification_id: CertificationId
    item_id: ItemId | None = None
    phase: Phase


class PhaserRunCompletedEvent(BaseEvent):
    """Summary of one transition pass."""

    type: Literal["phaser_run_completed"] = "phaser_run_completed"
    certifications_phased: int
    items_phased: int
    certifications_due: int
    items_due: int
    terminated: bool = False


DomainEvent = Annotated[
    Union[
        PhaseChangedEvent,
        PhaseSkippedEvent,
        PhaserRunCompletedEvent,
    ],
    Discriminator("type"),
]
