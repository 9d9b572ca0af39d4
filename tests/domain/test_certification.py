"""Tests for Certification and CertificationItem."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from phaser.domain import (
    Certification,
    CertificationId,
    CertificationItem,
    ItemId,
    Phase,
    PhaseConfig,
)


class TestCertification:
    """Test Certification model."""

    def test_is_its_own_root(self):
        cert = Certification(id=CertificationId("c1"))
        assert cert.certification_id == "c1"
        assert cert.label == "certification:c1"

    def test_defaults(self):
        cert = Certification(id=CertificationId("c1"))
        assert cert.phase is None
        assert cert.next_phase_transition is None
        assert cert.use_rolling_phases is False
        assert cert.signed is False
        assert cert.phase_configs == ()

    def test_get_phase_config(self):
        cert = Certification(
            id=CertificationId("c1"),
            phase_configs=(
                PhaseConfig(phase=Phase.ACTIVE, duration=timedelta(days=30)),
                PhaseConfig(phase=Phase.END),
            ),
        )
        assert cert.get_phase_config(Phase.ACTIVE).duration == timedelta(days=30)
        assert cert.get_phase_config(Phase.END).duration is None
        assert cert.get_phase_config(Phase.CHALLENGE) is None

    def test_phase_is_mutable_and_validated(self):
        cert = Certification(id=CertificationId("c1"))
        cert.phase = Phase.ACTIVE
        assert cert.phase == Phase.ACTIVE
        with pytest.raises(ValidationError):
            cert.phase = "not-a-phase"

    def test_next_and_previous_follow_current_phase(self):
        cert = Certification(id=CertificationId("c1"))
        assert cert.get_next_phase() == Phase.STAGED
        assert cert.get_previous_phase() is None

        cert.phase = Phase.CHALLENGE
        assert cert.get_next_phase() == Phase.REMEDIATION
        assert cert.get_previous_phase() == Phase.ACTIVE


class TestDue:
    """Test the due check."""

    def test_not_due_without_schedule(self, base_time):
        cert = Certification(id=CertificationId("c1"))
        assert not cert.is_due(base_time)

    def test_due_when_before_now(self, base_time):
        cert = Certification(
            id=CertificationId("c1"),
            next_phase_transition=base_time - timedelta(seconds=1),
        )
        assert cert.is_due(base_time)

    def test_not_due_at_exact_time(self, base_time):
        cert = Certification(id=CertificationId("c1"), next_phase_transition=base_time)
        assert not cert.is_due(base_time)

    def test_not_due_in_future(self, base_time):
        cert = Certification(
            id=CertificationId("c1"),
            next_phase_transition=base_time + timedelta(hours=1),
        )
        assert not cert.is_due(base_time)


class TestCertificationItem:
    """Test CertificationItem model."""

    def test_root_is_owner(self):
        item = CertificationItem(id=ItemId("i1"), owner_id=CertificationId("c1"))
        assert item.certification_id == "c1"
        assert item.label == "item:i1"

    def test_defaults(self):
        item = CertificationItem(id=ItemId("i1"), owner_id=CertificationId("c1"))
        assert item.phase is None
        assert item.entity_id is None
        assert item.needs_refresh is False
