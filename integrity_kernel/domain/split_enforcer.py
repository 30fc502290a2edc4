"""
SplitEnforcer -- Pure percentage split invariant checks.

Responsibility:
    Rejects a proposed split whose percentages do not sum to 100 (within
    tolerance) or whose primary earner falls below the minimum share.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - sum(percentages) == 100 within ``SplitPolicy.tolerance``.
    - primary earner share >= ``SplitPolicy.minimum_primary_percent``.

Non-goals:
    - Never corrects a split.  Floor correction operates on the richer
      CommissionBreakdown shape in ``earnings_floor``.
"""

from decimal import Decimal

from integrity_kernel.domain.dtos import (
    FailsafeFinding,
    FailsafeKind,
    Severity,
    SplitValidation,
    ValidationError,
)
from integrity_kernel.domain.policy import SplitPolicy
from integrity_kernel.domain.values import HUNDRED, SplitProposal, format_percent
from integrity_kernel.logging_config import get_logger

logger = get_logger("domain.split_enforcer")

CORRUPTED_SPLIT = "CORRUPTED_SPLIT"


def total_within_tolerance(total: Decimal, tolerance: Decimal) -> bool:
    """True when ``total`` is 100 within ``tolerance``."""
    return abs(total - HUNDRED) <= tolerance


def validate_split(
    split: SplitProposal,
    policy: SplitPolicy | None = None,
) -> SplitValidation:
    """Check both split invariants; each that fails yields one CRITICAL finding."""
    policy = policy or SplitPolicy()
    errors: list[ValidationError] = []
    findings: list[FailsafeFinding] = []

    total = split.percentage_total
    if not total_within_tolerance(total, policy.tolerance):
        message = f"Total split is {format_percent(total)}%, must be 100%"
        errors.append(
            ValidationError(
                code=CORRUPTED_SPLIT,
                message=message,
                field="recipient_percentages",
                details={"total": str(total)},
            )
        )
        findings.append(
            FailsafeFinding(
                kind=FailsafeKind.CORRUPTED_SPLIT,
                severity=Severity.CRITICAL,
                description=f"Invalid split total: {format_percent(total)}%",
                correction_applied=False,
                correction_action="None",
                correction_result="Split rejected",
                quarantined=True,
            )
        )

    primary = split.percentage_for(policy.primary_role)
    if primary < policy.minimum_primary_percent:
        minimum = format_percent(policy.minimum_primary_percent)
        errors.append(
            ValidationError(
                code=CORRUPTED_SPLIT,
                message=(
                    f"{policy.primary_role.value.capitalize()} split "
                    f"{format_percent(primary)}% is below minimum {minimum}%"
                ),
                field=policy.primary_role.value,
                details={"share": str(primary), "minimum": str(policy.minimum_primary_percent)},
            )
        )
        findings.append(
            FailsafeFinding(
                kind=FailsafeKind.CORRUPTED_SPLIT,
                severity=Severity.CRITICAL,
                description=(
                    f"{policy.primary_role.value.capitalize()} split "
                    f"{format_percent(primary)}% violates {minimum}% minimum"
                ),
                correction_applied=False,
                correction_action="None",
                correction_result="Split rejected",
                quarantined=True,
            )
        )

    if errors:
        logger.warning(
            "split_rejected",
            extra={
                "total": str(total),
                "primary_share": str(primary),
                "error_count": len(errors),
            },
        )
        return SplitValidation(valid=False, errors=tuple(errors), findings=tuple(findings))

    return SplitValidation(valid=True)
