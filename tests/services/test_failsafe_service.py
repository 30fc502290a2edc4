"""
Service tests for FailsafeService: every finding becomes one audit row.
"""

from decimal import Decimal

from sqlalchemy import func, select

from integrity_kernel.domain.dtos import FailsafeKind, Severity
from integrity_kernel.domain.values import RevenueEvent
from integrity_kernel.models import FailsafeEvent
from integrity_kernel.services.failsafe_service import FailsafeService


def count_events(session) -> int:
    return session.scalar(select(func.count()).select_from(FailsafeEvent))


class TestRevenueValidation:

    def test_clean_event_writes_nothing(self, session, audit_log):
        service = FailsafeService(session, audit_log)

        result = service.validate(RevenueEvent("creator-1", Decimal("10"), "US", "txn-1"))

        assert result.valid
        assert count_events(session) == 0

    def test_negative_revenue_is_recorded_and_quarantined(self, session, audit_log, clock):
        service = FailsafeService(session, audit_log)

        result = service.validate(RevenueEvent("creator-1", Decimal("-5"), "US", "txn-9"))

        assert not result.valid
        (row,) = session.scalars(select(FailsafeEvent)).all()
        assert row.kind == FailsafeKind.NEGATIVE_REVENUE.value
        assert row.severity == Severity.CRITICAL.value
        assert row.quarantined is True
        assert row.affected_party_id == "creator-1"
        assert row.affected_transaction_id == "txn-9"
        assert row.correction_action == "Set revenue to 0"

    def test_one_row_per_finding(self, session, audit_log):
        service = FailsafeService(session, audit_log)

        service.validate(RevenueEvent("", Decimal("-5"), "MARS", "txn-3"))

        kinds = sorted(session.scalars(select(FailsafeEvent.kind)).all())
        assert kinds == ["INVALID_REGION", "MISSING_PARTY", "NEGATIVE_REVENUE"]

    def test_findings_are_logged(self, session, audit_log, captured_logs):
        FailsafeService(session, audit_log).validate(
            RevenueEvent("creator-1", Decimal("1"), "MARS", "txn-4")
        )

        recorded = [r for r in captured_logs() if r["message"] == "failsafe_event_recorded"]
        assert len(recorded) == 1
        assert recorded[0]["kind"] == "INVALID_REGION"
        assert recorded[0]["transaction_id"] == "txn-4"


class TestMultiplierValidation:

    def test_clamped_multiplier_is_recorded(self, session, audit_log):
        service = FailsafeService(session, audit_log)

        result = service.validate_purchasing_power_multiplier(Decimal("3"), "US")

        assert result.corrected == Decimal("1.1")
        (row,) = session.scalars(select(FailsafeEvent)).all()
        assert row.kind == "IMPOSSIBLE_MULTIPLIER"
        assert row.severity == "MEDIUM"
        assert row.quarantined is False

    def test_valid_multiplier_writes_nothing(self, session, audit_log):
        FailsafeService(session, audit_log).validate_purchasing_power_multiplier(
            Decimal("1"), "US"
        )

        assert count_events(session) == 0


class TestSplitValidation:

    def test_corrupted_split_is_recorded(self, session, audit_log):
        service = FailsafeService(session, audit_log)

        result = service.validate_split({"creator": "80", "platform": "25"})

        assert not result.valid
        assert count_events(session) == 1

    def test_split_failing_both_checks_records_two_rows(self, session, audit_log):
        FailsafeService(session, audit_log).validate_split(
            {"creator": "50", "platform": "60"}
        )

        assert count_events(session) == 2

    def test_valid_split_writes_nothing(self, session, audit_log):
        FailsafeService(session, audit_log).validate_split(
            {"creator": "70", "operator": "15", "platform": "15"}
        )

        assert count_events(session) == 0
