"""Tests for audit event models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from phaser.domain import (
    CertificationId,
    DomainEvent,
    ItemId,
    Phase,
    PhaseChangedEvent,
    PhaserRunCompletedEvent,
    PhaseSkippedEvent,
)


class TestEvents:
    """Test event models."""

    def test_phase_changed_type(self, base_time):
        event = PhaseChangedEvent(
            timestamp=base_time,
            certification_id=CertificationId("c1"),
            from_phase=None,
            to_phase=Phase.STAGED,
        )
        assert event.type == "phase_changed"
        assert event.item_id is None

    def test_events_are_frozen(self, base_time):
        event = PhaseSkippedEvent(
            timestamp=base_time,
            certification_id=CertificationId("c1"),
            phase=Phase.CHALLENGE,
        )
        with pytest.raises(ValidationError):
            event.phase = Phase.END

    def test_discriminated_union_parses_by_type(self, base_time):
        adapter = TypeAdapter(DomainEvent)
        event = PhaseChangedEvent(
            timestamp=base_time,
            certification_id=CertificationId("c1"),
            item_id=ItemId("i1"),
            from_phase=Phase.ACTIVE,
            to_phase=Phase.CHALLENGE,
        )

        parsed = adapter.validate_json(adapter.dump_json(event))

        assert isinstance(parsed, PhaseChangedEvent)
        assert parsed.to_phase == Phase.CHALLENGE
        assert parsed.item_id == "i1"

    def test_run_completed_defaults(self, base_time):
        event = PhaserRunCompletedEvent(
            timestamp=base_time,
            certifications_phased=1,
            items_phased=2,
            certifications_due=1,
            items_due=3,
        )
        assert event.terminated is False
