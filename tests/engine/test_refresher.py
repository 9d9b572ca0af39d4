"""Tests for refresh and rolling transitions."""

from datetime import timedelta

import pytest
import pytest_asyncio

from phaser.domain import CertificationId, EntityId, ItemId, Phase
from phaser.engine import CertificationPhaser


@pytest.fixture
def phaser(storage, recording, clock) -> CertificationPhaser:
    return CertificationPhaser(storage, recording.factories(), "worker-1", clock=clock)


@pytest_asyncio.fixture
async def mixed_items(save_all, new_certification, new_item):
    """A certification in ACTIVE with items in various states."""
    await save_all(
        new_certification("c1", phase=Phase.ACTIVE),
        new_item("i1", "c1", entity_id="alice", needs_refresh=True),
        new_item("i2", "c1", phase=Phase.CHALLENGE, entity_id="bob", needs_refresh=True),
        new_item("i3", "c1", entity_id="alice"),
    )


class TestRefresh:
    async def test_only_flagged_items(self, phaser, recording, storage, mixed_items):
        cert = await storage.get_certification(CertificationId("c1"))

        count = await phaser.refresh(cert)

        assert count == 2
        assert recording.count("refresh", Phase.ACTIVE, "item:i1") == 1
        assert recording.count("refresh", Phase.CHALLENGE, "item:i2") == 1
        assert recording.count("refresh", target="item:i3") == 0

    async def test_full_refreshes_everything(self, phaser, recording, storage, mixed_items):
        cert = await storage.get_certification(CertificationId("c1"))

        count = await phaser.refresh(cert, full=True)

        assert count == 3
        assert recording.count("refresh", target="item:i3") == 1

    async def test_restricted_to_entity(self, phaser, recording, storage, mixed_items):
        cert = await storage.get_certification(CertificationId("c1"))

        count = await phaser.refresh(cert, full=True, entity_id=EntityId("alice"))

        assert count == 2
        assert recording.count("refresh", target="item:i2") == 0

    async def test_no_effective_phase_is_left_out(
        self, phaser, recording, storage, save_all, new_certification, new_item
    ):
        await save_all(
            new_certification("c2"),
            new_item("j1", "c2", needs_refresh=True),
        )
        cert = await storage.get_certification(CertificationId("c2"))

        assert await phaser.refresh(cert) == 0
        assert recording.calls == []


class TestRollingTransitions:
    async def test_periodic_certification_ignored(self, phaser, recording, storage, mixed_items):
        cert = await storage.get_certification(CertificationId("c1"))

        assert await phaser.rewind_or_advance_if_due(cert, full=True) == 0
        assert recording.calls == []

    async def test_each_item_offered_transition(
        self, phaser, recording, storage, save_all, new_certification, new_item
    ):
        await save_all(
            new_certification("c1", rolling=True, phase=Phase.ACTIVE),
            new_item("i1", "c1", phase=Phase.ACTIVE, needs_refresh=True),
            new_item("i2", "c1", phase=Phase.CHALLENGE, needs_refresh=True),
        )
        cert = await storage.get_certification(CertificationId("c1"))

        count = await phaser.rewind_or_advance_if_due(cert)

        assert count == 2
        assert recording.count("handle_rolling_transition", Phase.ACTIVE, "item:i1") == 1
        assert recording.count("handle_rolling_transition", Phase.CHALLENGE, "item:i2") == 1

    async def test_transition_runs_post_hooks_immediately(
        self, phaser, recording, storage, save_all, base_time, new_certification, new_item
    ):
        recording.advance_rolling_from = {Phase.ACTIVE}
        await save_all(
            new_certification("c1", rolling=True, phase=Phase.ACTIVE),
            new_item("i1", "c1", phase=Phase.ACTIVE, needs_refresh=True),
            new_item("i2", "c1", phase=Phase.ACTIVE, needs_refresh=True),
        )
        cert = await storage.get_certification(CertificationId("c1"))

        await phaser.rewind_or_advance_if_due(cert)

        # One post hook per item, not batched
        assert recording.count("post_exit", Phase.ACTIVE, "certification:c1") == 2
        assert recording.count("post_enter", Phase.CHALLENGE, "certification:c1") == 2
        storage.decache()
        item = await storage.get_item(ItemId("i1"))
        assert item.phase == Phase.CHALLENGE
        assert item.next_phase_transition == base_time + timedelta(days=7)

    async def test_rolling_post_hook_changes_to_owner_are_saved(
        self, phaser, recording, storage, save_all, new_certification, new_item
    ):
        recording.advance_rolling_from = {Phase.ACTIVE}

        def sign(cert):
            cert.signed = True

        recording.on_post_enter = sign
        await save_all(
            new_certification("c1", rolling=True, phase=Phase.ACTIVE),
            new_item("i1", "c1", phase=Phase.ACTIVE, needs_refresh=True),
        )
        cert = await storage.get_certification(CertificationId("c1"))

        await phaser.rewind_or_advance_if_due(cert)
        storage.decache()

        assert (await storage.get_certification(CertificationId("c1"))).signed is True
