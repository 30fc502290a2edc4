"""
Tests for the ControlPlane facade: owned transactions, restart recovery
and the administrator surface.
"""

from contextlib import contextmanager
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

import integrity_services.control_plane as control_plane_module
from integrity_kernel.domain.values import PayoutTransfer, RevenueEvent, SystemComponent
from integrity_kernel.exceptions import AuditAppendError
from integrity_kernel.services.audit_log import AuditLog
from integrity_services.control_plane import ControlPlane

from tests.conftest import OPERATOR_ID, make_breakdown


@pytest.fixture
def first_commit_fails(control_plane, monkeypatch):
    """The first owned transaction fails at commit; later ones succeed."""
    real_scope = control_plane_module.session_scope
    calls = []

    @contextmanager
    def commit_fails_once(factory):
        calls.append(factory)
        with real_scope(factory) as s:
            yield s
            if len(calls) == 1:
                raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(control_plane_module, "session_scope", commit_fails_once)
    return calls


class TestValidation:

    def test_validate_commits_findings(self, control_plane):
        result = control_plane.validate(RevenueEvent("creator-1", Decimal("-3"), "US", "txn-1"))

        assert not result.valid
        events = control_plane.recent_failsafe_events()
        assert [e.kind for e in events] == ["NEGATIVE_REVENUE"]
        assert events[0].quarantined

    def test_validate_split_and_multiplier(self, control_plane):
        assert not control_plane.validate_split({"creator": "60", "platform": "40"}).valid
        assert control_plane.validate_purchasing_power_multiplier(Decimal("0.1"), "DR").corrected == Decimal("0.3")

        kinds = sorted(e.kind for e in control_plane.recent_failsafe_events())
        assert kinds == ["CORRUPTED_SPLIT", "IMPOSSIBLE_MULTIPLIER"]

    def test_caller_session_joins_caller_transaction(self, control_plane, session_factory):
        with session_factory() as s:
            control_plane.validate(RevenueEvent("creator-1", Decimal("1"), "MARS", "txn-2"), session=s)
            s.rollback()

        assert control_plane.recent_failsafe_events() == []

    def test_floor_uses_configured_policy(self, control_plane):
        breakdown = make_breakdown(1000, 200, creator=700, operator=100)

        assert not control_plane.validate_floor(breakdown).valid
        corrected = control_plane.apply_floor(breakdown)

        assert corrected.amount_for_role("operator") == Decimal("150")
        assert control_plane.validate_floor(corrected).valid

    def test_floor_percent_override(self, control_plane):
        breakdown = make_breakdown(1000, 200, creator=700, operator=100)

        assert control_plane.validate_floor(breakdown, floor_percent=Decimal("10")).valid

    def test_billing_guard(self, control_plane):
        assert control_plane.should_block("creator-1", Decimal("2"), "storage_fee")
        assert not control_plane.should_block("creator-1", Decimal("2"), "verified_badge")
        assert not control_plane.validate_direction(
            PayoutTransfer("creator-1", "platform", Decimal("1"), "fees")
        ).valid

        (blocked,) = control_plane.recent_blocked_charges()
        assert blocked.reason == "storage_fee"


class TestKillSwitch:

    def test_activate_and_status(self, control_plane):
        result = control_plane.activate(OPERATOR_ID, "fraud spike", ["payments"])

        assert result.success
        assert control_plane.is_active()
        assert control_plane.is_blocked(SystemComponent.PAYMENTS, "creator-1")
        status = control_plane.status()
        assert status["active"] is True
        assert status["affected_components"] == ["payments"]
        assert "activated_by" not in status

    def test_state_survives_restart(self, control_plane, session_factory, config_set, clock):
        control_plane.activate(OPERATOR_ID, "fraud spike", ["marketplace"])
        clock.advance()
        control_plane.add_allowed_party(OPERATOR_ID, "support-7")

        restarted = ControlPlane(session_factory, config=config_set, clock=clock)

        state = restarted.kill_switch_state()
        assert state.active
        assert state.reason == "fraud spike"
        assert state.allowed_party_ids == frozenset({OPERATOR_ID, "support-7"})
        assert restarted.is_blocked("marketplace", "creator-1")

    def test_deactivation_survives_restart(self, control_plane, session_factory, config_set, clock):
        control_plane.activate(OPERATOR_ID, "incident")
        control_plane.deactivate(OPERATOR_ID)

        restarted = ControlPlane(session_factory, config=config_set, clock=clock)

        assert not restarted.is_active()
        assert [e.action for e in restarted.kill_switch_trail()] == ["ACTIVATED", "DEACTIVATED"]

    def test_audit_failure_leaves_switch_inactive(self, control_plane, monkeypatch):
        def broken(self, transition):
            raise AuditAppendError("KillSwitchEvent", "disk full")

        monkeypatch.setattr(AuditLog, "record_kill_switch_transition", broken)

        with pytest.raises(AuditAppendError):
            control_plane.activate(OPERATOR_ID, "incident")

        assert not control_plane.is_active()

    def test_failed_commit_rolls_back_in_memory_state(self, control_plane, first_commit_fails):
        with pytest.raises(OperationalError):
            control_plane.activate(OPERATOR_ID, "incident")

        assert not control_plane.is_active()
        assert control_plane.kill_switch_trail() == []


class TestOverrides:

    def test_rate_change_survives_restart(self, control_plane, session_factory, config_set, clock):
        control_plane.set_operator_commission_rate(OPERATOR_ID, "4")
        control_plane.set_operator_commission_rate(OPERATOR_ID, "6")

        restarted = ControlPlane(session_factory, config=config_set, clock=clock)

        assert restarted.operator_commission_rate() == Decimal("6")
        assert restarted.apply_operator_commission(Decimal("1000")).operator_amount == Decimal("60")

    def test_latest_rate_wins_under_a_frozen_clock(self, control_plane, session_factory, config_set, clock):
        plane = control_plane
        for rate in ("3", "4", "5", "6", "7"):
            assert plane.set_operator_commission_rate(OPERATOR_ID, rate).success
            plane = ControlPlane(session_factory, config=config_set, clock=clock)
            assert plane.operator_commission_rate() == Decimal(rate)

    def test_failed_rate_commit_restores_standing_rate(self, control_plane, first_commit_fails):
        with pytest.raises(OperationalError):
            control_plane.set_operator_commission_rate(OPERATOR_ID, "7")

        assert control_plane.operator_commission_rate() == Decimal("2")
        assert [r for r in control_plane.recent_overrides() if r.kind == "RATE_CHANGE"] == []

    def test_failed_rate_commit_keeps_last_committed_rate(self, control_plane, request):
        control_plane.set_operator_commission_rate(OPERATOR_ID, "5")
        control_plane.activate(OPERATOR_ID, "incident")
        request.getfixturevalue("first_commit_fails")

        with pytest.raises(OperationalError):
            control_plane.set_operator_commission_rate(OPERATOR_ID, "8")

        assert control_plane.operator_commission_rate() == Decimal("5")
        assert control_plane.is_active()

    def test_unauthorized_override_is_not_recorded(self, control_plane):
        result = control_plane.override_split(
            "random-user-42",
            "txn-1",
            {"creator": "70", "platform": "30"},
            {"creator": "90", "platform": "10"},
            "please",
        )

        assert result.unauthorized
        assert control_plane.recent_overrides() == []

    def test_adjust_payout_is_queryable(self, control_plane):
        control_plane.adjust_payout(OPERATOR_ID, "creator-1", "100", "110", "goodwill")

        (record,) = control_plane.recent_overrides()
        assert record.kind == "PAYOUT_ADJUSTMENT"
        assert record.reason == "goodwill"
        assert record.affected_party_id == "creator-1"


class TestStatistics:

    def test_statistics_cover_every_audit_table(self, control_plane):
        control_plane.validate(RevenueEvent("creator-1", Decimal("-1"), "MARS", "txn-1"))
        control_plane.should_block("creator-1", Decimal("5"), "platform_fee")
        control_plane.should_block("creator-2", Decimal("7.50"), "usage_fee")
        control_plane.adjust_payout(OPERATOR_ID, "creator-1", "10", "12", "bonus")
        control_plane.activate(OPERATOR_ID, "incident")

        stats = control_plane.statistics()

        assert stats.failsafe.total == 2
        assert stats.failsafe.critical == 1
        assert stats.failsafe.quarantined == 1
        assert stats.failsafe.auto_corrected == 2
        assert stats.blocked_charges.count == 2
        assert stats.blocked_charges.total_amount == Decimal("12.50")
        assert stats.blocked_charges.distinct_subjects == 2
        assert stats.overrides_by_kind == {
            "SPLIT_OVERRIDE": 0,
            "PAYOUT_ADJUSTMENT": 1,
            "RATE_CHANGE": 0,
        }
        assert stats.override_total == 1
        assert stats.kill_switch["active"] is True

    def test_empty_statistics(self, control_plane):
        stats = control_plane.statistics()

        assert stats.failsafe.total == 0
        assert stats.blocked_charges.total_amount == Decimal("0")
        assert stats.override_total == 0
        assert stats.kill_switch["active"] is False
