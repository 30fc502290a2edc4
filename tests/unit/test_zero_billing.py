"""
Unit tests for charge classification and payout direction.
"""

from decimal import Decimal

import pytest

from integrity_kernel.domain.dtos import BlockRule
from integrity_kernel.domain.policy import BillingPolicy
from integrity_kernel.domain.values import PayoutTransfer
from integrity_kernel.domain.zero_billing import classify_charge, validate_direction


class TestClassifyCharge:

    @pytest.mark.parametrize(
        "reason",
        [
            "platform_fee",
            "Monthly_Subscription",
            "storage_fee for May",
            "api_usage",
            "monthly_subscription_platform_fee",
        ],
    )
    def test_forbidden_reasons_are_blocked(self, reason):
        decision = classify_charge(reason)

        assert decision.blocked
        assert decision.rule == BlockRule.FORBIDDEN_REASON

    @pytest.mark.parametrize(
        "reason",
        [
            "verified_badge",
            "PROMOTED_LISTING",
            "premium_ai_generation",
            "verified_badge_purchase",
        ],
    )
    def test_allowed_reasons_pass(self, reason):
        decision = classify_charge(reason)

        assert not decision.blocked
        assert decision.rule is None

    @pytest.mark.parametrize("reason", ["coffee", "", "   ", "mystery_unlisted_fee"])
    def test_unlisted_reasons_are_blocked(self, reason):
        decision = classify_charge(reason)

        assert decision.blocked
        assert decision.rule == BlockRule.UNLISTED_REASON

    def test_forbidden_wins_over_allowed(self):
        decision = classify_charge("verified_badge platform_fee")

        assert decision.rule == BlockRule.FORBIDDEN_REASON
        assert decision.matched == "platform_fee"

    def test_configured_lists_are_used(self):
        policy = BillingPolicy(forbidden_reasons=("tax",), allowed_reasons=("tip",))

        assert not classify_charge("tip", policy).blocked
        assert classify_charge("platform_fee", policy).rule == BlockRule.UNLISTED_REASON


class TestValidateDirection:

    def test_platform_paying_creator_is_valid(self):
        assert validate_direction(PayoutTransfer("platform", "creator-1", Decimal("10"), "payout"))

    def test_creator_paying_platform_is_rejected(self):
        result = validate_direction(
            PayoutTransfer("creator-1", "platform", Decimal("10"), "hosting")
        )

        assert not result.valid
        assert result.error == (
            "Zero billing protection: producers cannot pay the platform for hosting"
        )

    def test_premium_purchase_may_flow_to_platform(self):
        result = validate_direction(
            PayoutTransfer("creator-1", "Platform", Decimal("10"), "premium_ai_generation")
        )

        assert result.valid

    def test_platform_identity_is_exact_not_substring(self):
        result = validate_direction(
            PayoutTransfer("creator-1", "platform-fan-club", Decimal("10"), "tip")
        )

        assert result.valid

    def test_negative_amount_is_invalid(self):
        result = validate_direction(
            PayoutTransfer("platform", "creator-1", Decimal("-1"), "payout")
        )

        assert not result.valid
        assert "negative" in result.error
