"""Tests for the standard handler set."""

from phaser.domain import Phase
from phaser.handlers import (
    ActivePhaseHandler,
    BasePhaseHandler,
    ChallengePhaseHandler,
    EndPhaseHandler,
    STANDARD_HANDLERS,
    standard_handler_factories,
)


class TestStandardFactories:
    """Test the standard factory mapping."""

    def test_covers_every_phase(self):
        assert set(standard_handler_factories()) == set(Phase)

    def test_handler_phase_matches_key(self, storage):
        for phase, factory in standard_handler_factories().items():
            handler = factory(storage)
            assert isinstance(handler, BasePhaseHandler)
            assert handler.phase == phase

    def test_returns_a_copy(self):
        factories = standard_handler_factories()
        factories.pop(Phase.END)
        assert Phase.END in STANDARD_HANDLERS


class TestBaseHandler:
    """Test pass-through defaults."""

    async def test_pass_through(self, storage, new_certification):
        handler = BasePhaseHandler(storage)
        cert = new_certification("c1")

        assert await handler.enter_phase(cert) is cert
        assert await handler.exit_phase(cert) is cert
        assert await handler.post_enter(cert) is cert
        assert await handler.post_exit(cert) is cert
        assert await handler.is_skipped(cert) is False
        assert await handler.update_next_phase_transition(cert) is True


class TestActiveHandler:
    """Active schedules a timed transition only in periodic mode."""

    async def test_periodic_schedules(self, storage, new_certification):
        handler = ActivePhaseHandler(storage)
        assert await handler.update_next_phase_transition(new_certification("c1"))

    async def test_rolling_does_not_schedule(self, storage, new_certification):
        handler = ActivePhaseHandler(storage)
        cert = new_certification("c1", rolling=True)
        assert not await handler.update_next_phase_transition(cert)

    async def test_rolling_item_looks_up_certification(
        self, storage, save_all, new_certification, new_item
    ):
        await save_all(new_certification("c1", rolling=True), new_item("i1", "c1"))
        handler = ActivePhaseHandler(storage)
        item = await storage.get_item("i1")

        assert not await handler.update_next_phase_transition(item)


class TestChallengeHandler:
    """Challenge is skipped once the certification is signed."""

    async def test_unsigned_not_skipped(self, storage, new_certification):
        handler = ChallengePhaseHandler(storage)
        assert not await handler.is_skipped(new_certification("c1"))

    async def test_signed_skipped(self, storage, new_certification):
        handler = ChallengePhaseHandler(storage)
        assert await handler.is_skipped(new_certification("c1", signed=True))

    async def test_item_of_signed_certification_skipped(
        self, storage, save_all, new_certification, new_item
    ):
        await save_all(new_certification("c1", signed=True), new_item("i1", "c1"))
        handler = ChallengePhaseHandler(storage)
        item = await storage.get_item("i1")

        assert await handler.is_skipped(item)


class TestEndHandler:
    async def test_never_schedules(self, storage, new_certification):
        handler = EndPhaseHandler(storage)
        assert not await handler.update_next_phase_transition(new_certification("c1"))
