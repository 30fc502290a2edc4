"""
Append-only audit trail tests.

Verifies:
- FailsafeEvent, BlockedChargeAttempt, OverrideRecord and KillSwitchEvent
  refuse UPDATE and DELETE at the ORM layer
- A storage failure during append surfaces as AuditAppendError
"""

from contextlib import contextmanager
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from integrity_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from integrity_kernel.domain.dtos import (
    BlockRule,
    FailsafeFinding,
    FailsafeKind,
    KillSwitchAction,
    OverrideKind,
    Severity,
)
from integrity_kernel.domain.kill_switch import KillSwitchTransition
from integrity_kernel.exceptions import AuditAppendError, ImmutabilityViolationError


@contextmanager
def disabled_immutability():
    """Temporarily lift the append-only listeners."""
    unregister_immutability_listeners()
    try:
        yield
    finally:
        register_immutability_listeners()


def _finding() -> FailsafeFinding:
    return FailsafeFinding(
        kind=FailsafeKind.NEGATIVE_REVENUE,
        severity=Severity.CRITICAL,
        description="Negative revenue detected: -1",
        correction_applied=True,
        correction_action="Set revenue to 0",
        correction_result="Event quarantined",
        quarantined=True,
        affected_party_id="creator-1",
        affected_transaction_id="txn-1",
    )


def _append_each(audit_log, clock):
    return {
        "failsafe": audit_log.record_finding(_finding()),
        "blocked": audit_log.record_blocked_charge(
            "creator-1", Decimal("5"), "platform_fee", BlockRule.FORBIDDEN_REASON
        ),
        "override": audit_log.record_override(
            "operator-1",
            OverrideKind.PAYOUT_ADJUSTMENT,
            {"amount": "10"},
            {"amount": "12"},
            "bonus",
            affected_party_id="creator-1",
        ),
        "kill_switch": audit_log.record_kill_switch_transition(
            KillSwitchTransition(
                action=KillSwitchAction.ACTIVATED,
                operator_id="operator-1",
                occurred_at=clock.now(),
                reason="incident",
                seq=1,
            )
        ),
    }


MUTATIONS = {
    "failsafe": ("quarantined", False),
    "blocked": ("amount", Decimal("0")),
    "override": ("reason", "rewritten"),
    "kill_switch": ("reason", "nothing happened"),
}


class TestAppendOnly:

    @pytest.mark.parametrize("which", sorted(MUTATIONS))
    def test_update_is_refused(self, session, audit_log, clock, which):
        record = _append_each(audit_log, clock)[which]
        attr, value = MUTATIONS[which]

        setattr(record, attr, value)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == type(record).__name__
        assert "cannot be modified" in exc_info.value.reason

    @pytest.mark.parametrize("which", sorted(MUTATIONS))
    def test_delete_is_refused(self, session, audit_log, clock, which):
        record = _append_each(audit_log, clock)[which]

        session.delete(record)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "cannot be deleted" in exc_info.value.reason

    def test_refusal_is_logged(self, session, audit_log, clock, captured_logs):
        record = _append_each(audit_log, clock)["override"]
        record.reason = "rewritten"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["operation"] == "UPDATE"
        assert blocked[0]["entity_type"] == "OverrideRecord"

    def test_listeners_can_be_lifted_for_tamper_simulation(self, session, audit_log, clock):
        record = _append_each(audit_log, clock)["override"]

        with disabled_immutability():
            record.reason = "rewritten"
            session.flush()

        assert record.reason == "rewritten"

    def test_registration_is_idempotent(self, session, audit_log, clock):
        register_immutability_listeners()
        register_immutability_listeners()

        record = _append_each(audit_log, clock)["blocked"]
        session.delete(record)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestAppendFailure:

    def test_storage_failure_raises_audit_append_error(self, session, audit_log, monkeypatch):
        def broken_flush(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(session, "flush", broken_flush)

        with pytest.raises(AuditAppendError) as exc_info:
            audit_log.record_finding(_finding())

        assert exc_info.value.record_type == "FailsafeEvent"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_append_failure_is_logged_critical(self, session, audit_log, monkeypatch, captured_logs):
        def broken_flush(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(session, "flush", broken_flush)

        with pytest.raises(AuditAppendError):
            audit_log.record_blocked_charge(
                "creator-1", Decimal("1"), "platform_fee", BlockRule.FORBIDDEN_REASON
            )

        failed = [r for r in captured_logs() if r["message"] == "audit_append_failed"]
        assert failed[0]["level"] == "CRITICAL"
        assert failed[0]["record_type"] == "BlockedChargeAttempt"
