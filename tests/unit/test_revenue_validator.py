"""
Unit tests for the pure revenue event validator.

Verifies:
- Check order and one finding per firing check
- Severity tiers (CRITICAL invalidates, HIGH corrects and proceeds)
- The input event is never mutated
- Purchasing-power multiplier clamping
"""

from decimal import Decimal

import pytest

from integrity_kernel.domain.dtos import FailsafeKind, Severity
from integrity_kernel.domain.policy import MultiplierBand, RevenuePolicy
from integrity_kernel.domain.revenue_validator import (
    INVALID_REGION,
    MISSING_PARTY,
    NEGATIVE_REVENUE,
    validate_purchasing_power_multiplier,
    validate_revenue_event,
)
from integrity_kernel.domain.values import RevenueEvent


def event(amount="100", region="US", party="creator-1", txn="txn-1"):
    return RevenueEvent(
        earning_party_id=party,
        amount=Decimal(amount),
        origin_region=region,
        source_transaction_id=txn,
    )


class TestCleanEvent:

    def test_clean_event_is_valid_without_correction(self):
        result = validate_revenue_event(event())

        assert result.valid
        assert result.errors == ()
        assert result.corrected is None
        assert result.findings == ()

    def test_region_match_is_case_insensitive(self):
        assert validate_revenue_event(event(region="haiti")).valid

    def test_zero_amount_is_valid(self):
        assert validate_revenue_event(event(amount="0")).valid


class TestNegativeRevenue:

    def test_negative_amount_is_critical_and_quarantined(self):
        original = event(amount="-50")

        result = validate_revenue_event(original)

        assert not result.valid
        assert result.error_codes == (NEGATIVE_REVENUE,)
        assert result.corrected.amount == Decimal("0")
        assert result.quarantined
        (finding,) = result.findings
        assert finding.kind == FailsafeKind.NEGATIVE_REVENUE
        assert finding.severity == Severity.CRITICAL
        assert finding.affected_party_id == "creator-1"
        assert finding.affected_transaction_id == "txn-1"

    def test_original_event_is_not_mutated(self):
        original = event(amount="-50", region="MARS")

        validate_revenue_event(original)

        assert original.amount == Decimal("-50")
        assert original.origin_region == "MARS"


class TestInvalidRegion:

    def test_unknown_region_is_corrected_and_still_valid(self):
        result = validate_revenue_event(event(region="MARS"))

        assert result.valid
        assert result.error_codes == (INVALID_REGION,)
        assert result.corrected.origin_region == "US"
        assert not result.quarantined
        assert result.findings[0].severity == Severity.HIGH

    def test_default_region_comes_from_policy(self):
        policy = RevenuePolicy(region_codes=frozenset({"BR", "US"}), default_region="BR")

        result = validate_revenue_event(event(region="XX"), policy)

        assert result.corrected.origin_region == "BR"


class TestMissingParty:

    @pytest.mark.parametrize("party", ["", "   "])
    def test_blank_party_is_critical(self, party):
        result = validate_revenue_event(event(party=party))

        assert not result.valid
        assert result.error_codes == (MISSING_PARTY,)
        assert result.findings[0].correction_applied is False
        assert result.quarantined


class TestCheckOrder:

    def test_all_three_checks_fire_in_order(self):
        result = validate_revenue_event(event(amount="-1", region="??", party=""))

        assert result.error_codes == (NEGATIVE_REVENUE, INVALID_REGION, MISSING_PARTY)
        assert len(result.findings) == 3
        assert result.corrected.amount == Decimal("0")
        assert result.corrected.origin_region == "US"
        assert not result.valid


class TestPurchasingPowerMultiplier:

    def test_in_band_multiplier_is_valid(self):
        result = validate_purchasing_power_multiplier(Decimal("0.45"), "DR")

        assert result.valid
        assert result.corrected is None
        assert result.finding is None

    def test_multiplier_above_band_is_clamped_to_max(self):
        result = validate_purchasing_power_multiplier(Decimal("0.9"), "HAITI")

        assert result.corrected == Decimal("0.5")
        assert result.finding.kind == FailsafeKind.IMPOSSIBLE_MULTIPLIER
        assert result.finding.severity == Severity.MEDIUM
        assert result.finding.quarantined is False

    def test_multiplier_below_band_is_clamped_to_min(self):
        result = validate_purchasing_power_multiplier(Decimal("0.5"), "US")

        assert result.corrected == Decimal("0.9")

    def test_band_edges_are_inclusive(self):
        assert validate_purchasing_power_multiplier(Decimal("1.1"), "US").valid
        assert validate_purchasing_power_multiplier(Decimal("0.3"), "DO").valid

    def test_unknown_region_passes_through(self):
        result = validate_purchasing_power_multiplier(Decimal("42"), "MARS")

        assert result.valid
        assert result.corrected is None
        assert result.finding is None

    def test_configured_band_is_used(self):
        policy = RevenuePolicy(
            region_codes=frozenset({"US", "BR"}),
            multiplier_bands={"BR": MultiplierBand(Decimal("0.4"), Decimal("0.7"))},
        )

        result = validate_purchasing_power_multiplier(Decimal("0.1"), "br", policy)

        assert result.corrected == Decimal("0.4")
