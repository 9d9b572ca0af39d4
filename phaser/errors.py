"""Exception types for phaser.

Lock contention is not an error and never raises. Everything here signals a
condition the current run cannot recover from.
"""

from __future__ import annotations

from dataclasses import dataclass

from phaser.domain import CertificationId, ItemId, Phase


class PhaserError(Exception):
    """Base class for phaser errors."""


@dataclass
class MissingPhaseHandlerError(PhaserError):
    """No handler is registered for a phase."""

    phase: Phase | None

    def __str__(self) -> str:
        name = self.phase.value if self.phase is not None else "None"
        return f"No phase handler registered for phase '{name}'"


@dataclass
class OrphanItemError(PhaserError):
    """An item's owning certification could not be loaded."""

    item_id: ItemId
    certification_id: CertificationId

    def __str__(self) -> str:
        return f"Item '{self.item_id}' references missing certification '{self.certification_id}'"


class SettingsError(PhaserError):
    """Invalid configuration."""
