"""Phaser - advances certifications and their items through their phases.

Usage:
    from phaser import CertificationPhaser, Storage, standard_handler_factories
"""

__version__ = "0.1.0"

from .domain import (
    Phase,
    PhaseConfig,
    Phaseable,
    Certification,
    CertificationItem,
    CertificationId,
    ItemId,
    EntityId,
)
from .errors import PhaserError, MissingPhaseHandlerError, OrphanItemError, SettingsError
from .handlers import PhaseHandler, BasePhaseHandler, standard_handler_factories
from .engine import CertificationPhaser, PhaseBatch, PhaserRunResult, PhaserStatistics
from .storage import Storage
from .settings import PhaserSettings, load_settings
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    "Phase",
    "PhaseConfig",
    "Phaseable",
    "Certification",
    "CertificationItem",
    "CertificationId",
    "ItemId",
    "EntityId",
    "PhaserError",
    "MissingPhaseHandlerError",
    "OrphanItemError",
    "SettingsError",
    "PhaseHandler",
    "BasePhaseHandler",
    "standard_handler_factories",
    "CertificationPhaser",
    "PhaseBatch",
    "PhaserRunResult",
    "PhaserStatistics",
    "Storage",
    "PhaserSettings",
    "load_settings",
    "setup_logging",
    "get_logger",
]
