"""
Unit tests for the split invariant enforcer.

Verifies:
- Total must be 100 within tolerance
- Primary earner minimum share
- Both checks fire independently; nothing is ever auto-corrected
"""

from decimal import Decimal

from integrity_kernel.domain.dtos import FailsafeKind, Severity
from integrity_kernel.domain.policy import SplitPolicy
from integrity_kernel.domain.split_enforcer import CORRUPTED_SPLIT, validate_split
from integrity_kernel.domain.values import RecipientRole, SplitProposal


def split(**roles):
    return SplitProposal({RecipientRole(k): Decimal(str(v)) for k, v in roles.items()})


class TestValidSplits:

    def test_exact_hundred_with_creator_at_floor(self):
        assert validate_split(split(creator=70, operator=15, platform=15)).valid

    def test_total_within_tolerance_passes(self):
        result = validate_split(split(creator="80.005", platform="20"))

        assert result.valid

    def test_mapping_coercion_accepts_string_roles(self):
        proposal = SplitProposal.coerce({"creator": "90", "platform": "10"})

        assert proposal.percentage_for(RecipientRole.CREATOR) == Decimal("90")
        assert validate_split(proposal).valid


class TestCorruptedTotal:

    def test_total_over_hundred_is_rejected(self):
        result = validate_split(split(creator=80, platform=25))

        assert not result.valid
        assert result.error_codes == (CORRUPTED_SPLIT,)
        assert result.errors[0].message == "Total split is 105%, must be 100%"

    def test_total_just_outside_tolerance_is_rejected(self):
        assert not validate_split(split(creator="80.02", platform="20")).valid

    def test_finding_is_critical_and_quarantined(self):
        result = validate_split(split(creator=80, platform=10))

        (finding,) = result.findings
        assert finding.kind == FailsafeKind.CORRUPTED_SPLIT
        assert finding.severity == Severity.CRITICAL
        assert finding.quarantined
        assert finding.correction_applied is False


class TestPrimaryEarnerFloor:

    def test_creator_below_minimum_is_rejected(self):
        result = validate_split(split(creator=60, operator=25, platform=15))

        assert not result.valid
        assert len(result.errors) == 1
        assert "below minimum 70%" in result.errors[0].message

    def test_missing_primary_role_counts_as_zero(self):
        result = validate_split(split(operator=50, platform=50))

        assert not result.valid
        assert "Creator split 0% is below minimum 70%" == result.errors[0].message

    def test_both_checks_fire_independently(self):
        result = validate_split(split(creator=60, platform=45))

        assert len(result.errors) == 2
        assert len(result.findings) == 2

    def test_configured_primary_role_and_minimum(self):
        policy = SplitPolicy(
            primary_role=RecipientRole.FOUNDER,
            minimum_primary_percent=Decimal("50"),
        )

        assert validate_split(split(founder=50, platform=50), policy).valid
        assert not validate_split(split(founder=40, platform=60), policy).valid
