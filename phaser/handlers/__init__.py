"""Phase handlers: the per-phase capability objects the engine drives."""

from .base import PhaseHandler, PhaseEngineHandle, BasePhaseHandler
from .registry import PhaseHandlerRegistry, HandlerFactory
from .standard import (
    StagedPhaseHandler,
    ActivePhaseHandler,
    ChallengePhaseHandler,
    RemediationPhaseHandler,
    EndPhaseHandler,
    STANDARD_HANDLERS,
    standard_handler_factories,
)

__all__ = [
    "PhaseHandler",
    "PhaseEngineHandle",
    "BasePhaseHandler",
    "PhaseHandlerRegistry",
    "HandlerFactory",
    "StagedPhaseHandler",
    "ActivePhaseHandler",
    "ChallengePhaseHandler",
    "RemediationPhaseHandler",
    "EndPhaseHandler",
    "STANDARD_HANDLERS",
    "standard_handler_factories",
]
