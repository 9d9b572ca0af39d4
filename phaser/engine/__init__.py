"""Phase engine: skip resolution, phase changes, due scanning and refresh.

Usage:
    from phaser.engine import CertificationPhaser
"""

from .change_tracker import ChangeTracker
from .resolver import PhaseSkipResolver
from .state_machine import PhaseBatch, PhaseTransitionStateMachine
from .stats import (
    PhaserStatistics,
    PhaserRunResult,
    RET_CERTS_PHASED,
    RET_CERT_ITEMS_PHASED,
)
from .scanner import DueTransitionScanner, PostExitAndEnter, ProgressCallback
from .refresher import RollingTransitionRefresher
from .phaser import CertificationPhaser

__all__ = [
    "ChangeTracker",
    "PhaseSkipResolver",
    "PhaseBatch",
    "PhaseTransitionStateMachine",
    "PhaserStatistics",
    "PhaserRunResult",
    "RET_CERTS_PHASED",
    "RET_CERT_ITEMS_PHASED",
    "DueTransitionScanner",
    "PostExitAndEnter",
    "ProgressCallback",
    "RollingTransitionRefresher",
    "CertificationPhaser",
]
