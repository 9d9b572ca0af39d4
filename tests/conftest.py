"""Shared test fixtures for phaser."""

import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio

from phaser.domain import (
    Certification,
    CertificationId,
    CertificationItem,
    EntityId,
    ItemId,
    Phase,
    PhaseConfig,
    Phaseable,
)
from phaser.handlers import BasePhaseHandler, PhaseEngineHandle
from phaser.storage import Storage


BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock. Call it to read the time."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class HandlerCall:
    phase: Phase
    method: str
    target: str


@dataclass
class RecordingHandlers:
    """Builds handlers that record every call into one shared list.

    Behavior per phase is controlled through the sets below.
    """

    calls: list[HandlerCall] = field(default_factory=list)
    skipped: set[Phase] = field(default_factory=set)
    unscheduled: set[Phase] = field(default_factory=set)
    fail_on_enter: set[Phase] = field(default_factory=set)
    fail_on_skip_check: set[Phase] = field(default_factory=set)
    advance_rolling_from: set[Phase] = field(default_factory=set)
    on_enter: Callable[[Phaseable], None] | None = None
    on_post_enter: Callable[[Certification], None] | None = None
    on_post_exit: Callable[[Certification], None] | None = None
    constructed: list[Phase] = field(default_factory=list)

    def factories(self) -> dict:
        return {phase: self._factory(phase) for phase in Phase}

    def _factory(self, phase: Phase):
        def build(store):
            self.constructed.append(phase)
            return RecordingHandler(store, phase, self)
        return build

    def record(self, phase: Phase, method: str, target: str) -> None:
        self.calls.append(HandlerCall(phase, method, target))

    def count(self, method: str, phase: Phase | None = None, target: str | None = None) -> int:
        return sum(
            1
            for c in self.calls
            if c.method == method
            and (phase is None or c.phase == phase)
            and (target is None or c.target == target)
        )


class RecordingHandler(BasePhaseHandler):
    def __init__(self, store, phase: Phase, owner: RecordingHandlers):
        super().__init__(store)
        self.phase = phase
        self._owner = owner

    async def enter_phase(self, phaseable: Phaseable) -> Phaseable:
        self._owner.record(self.phase, "enter_phase", phaseable.label)
        if self.phase in self._owner.fail_on_enter:
            raise RuntimeError(f"enter {self.phase.value} failed")
        if self._owner.on_enter is not None:
            self._owner.on_enter(phaseable)
        return phaseable

    async def exit_phase(self, phaseable: Phaseable) -> Phaseable:
        self._owner.record(self.phase, "exit_phase", phaseable.label)
        return phaseable

    async def post_enter(self, cert: Certification) -> Certification:
        self._owner.record(self.phase, "post_enter", cert.label)
        if self._owner.on_post_enter is not None:
            self._owner.on_post_enter(cert)
        return cert

    async def post_exit(self, cert: Certification) -> Certification:
        self._owner.record(self.phase, "post_exit", cert.label)
        if self._owner.on_post_exit is not None:
            self._owner.on_post_exit(cert)
        return cert

    async def is_skipped(self, phaseable: Phaseable) -> bool:
        if self.phase in self._owner.fail_on_skip_check:
            raise RuntimeError(f"skip check for {self.phase.value} failed")
        return self.phase in self._owner.skipped

    async def refresh(self, cert: Certification, item: CertificationItem) -> None:
        self._owner.record(self.phase, "refresh", item.label)

    async def handle_rolling_transition(
        self, item: CertificationItem, engine: PhaseEngineHandle
    ) -> None:
        self._owner.record(self.phase, "handle_rolling_transition", item.label)
        if self.phase in self._owner.advance_rolling_from:
            await engine.advance_phase(item)

    async def update_next_phase_transition(self, phaseable: Phaseable) -> bool:
        return self.phase not in self._owner.unscheduled


DEFAULT_DURATIONS: dict[Phase, timedelta | None] = {
    Phase.STAGED: timedelta(days=1),
    Phase.ACTIVE: timedelta(days=30),
    Phase.CHALLENGE: timedelta(days=7),
    Phase.REMEDIATION: timedelta(days=14),
    Phase.END: None,
}


def make_certification(
    cert_id: str,
    phase: Phase | None = None,
    next_phase_transition: datetime | None = None,
    rolling: bool = False,
    signed: bool = False,
    durations: dict[Phase, timedelta | None] | None = None,
) -> Certification:
    durations = DEFAULT_DURATIONS if durations is None else durations
    return Certification(
        id=CertificationId(cert_id),
        name=f"Certification {cert_id}",
        phase=phase,
        next_phase_transition=next_phase_transition,
        use_rolling_phases=rolling,
        signed=signed,
        phase_configs=tuple(
            PhaseConfig(phase=p, duration=d) for p, d in durations.items()
        ),
    )


def make_item(
    item_id: str,
    cert_id: str,
    phase: Phase | None = None,
    next_phase_transition: datetime | None = None,
    entity_id: str | None = None,
    needs_refresh: bool = False,
) -> CertificationItem:
    return CertificationItem(
        id=ItemId(item_id),
        owner_id=CertificationId(cert_id),
        entity_id=EntityId(entity_id) if entity_id is not None else None,
        phase=phase,
        next_phase_transition=next_phase_transition,
        needs_refresh=needs_refresh,
    )


@pytest.fixture
def temp_data_dir() -> Path:
    """Create a temporary data directory for tests."""
    with tempfile.TemporaryDirectory(prefix="phaser_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording() -> RecordingHandlers:
    return RecordingHandlers()


@pytest.fixture
def new_certification() -> Callable[..., Certification]:
    return make_certification


@pytest.fixture
def new_item() -> Callable[..., CertificationItem]:
    return make_item


@pytest_asyncio.fixture
async def storage(temp_data_dir: Path, clock: FakeClock) -> AsyncGenerator[Storage, None]:
    """Create a fully initialized Storage instance."""
    store = Storage(temp_data_dir, clock=clock)
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def save_all(storage: Storage):
    """Persist phaseables and commit, then empty the identity cache."""
    async def _save(*phaseables: Phaseable) -> None:
        for p in phaseables:
            await storage.save(p)
        await storage.commit()
        storage.decache()
    return _save
