"""
EarningsFloor -- Protected-party earnings floor correction.

Responsibility:
    Restores a protected party's minimum share of a transaction by taking
    the shortfall out of the platform's own margin.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - The shortfall is funded ONLY from ``platform_margin``; no other
      recipient's amount is ever touched.  The full shortfall is taken even
      when that leaves the margin negative.
    - sum(recipient amounts) + platform_margin == total_amount holds after
      correction whenever it held before.
    - The shortfall is floored to a whole currency unit.
    - A breakdown is rewritten at most once: one carrying a
      ``floor_adjustment`` is returned unchanged.

Failure modes:
    - None raised.  A breakdown with no protected recipient, or a zero total,
      is returned unchanged; ``validate_floor`` still reports the violation.
"""

from dataclasses import replace
from decimal import Decimal

from integrity_kernel.domain.dtos import FloorValidation
from integrity_kernel.domain.values import (
    HUNDRED,
    CommissionBreakdown,
    RecipientRole,
    floor_units,
    format_percent,
    percentage_of,
    to_decimal,
)
from integrity_kernel.logging_config import get_logger

logger = get_logger("domain.earnings_floor")


def protected_percent(breakdown: CommissionBreakdown, protected_role: RecipientRole) -> Decimal:
    """Share of ``total_amount`` held by every recipient tagged ``protected_role``."""
    return percentage_of(breakdown.amount_for_role(protected_role), breakdown.total_amount)


def apply_floor(
    breakdown: CommissionBreakdown,
    floor_percent: Decimal,
    protected_role: RecipientRole,
) -> CommissionBreakdown:
    """Return a breakdown in which the protected role holds at least the floor."""
    floor_percent = to_decimal(floor_percent, "floor_percent")
    protected_role = RecipientRole(protected_role)

    if breakdown.floor_adjustment is not None or breakdown.total_amount <= 0:
        return breakdown

    earnings = breakdown.amount_for_role(protected_role)
    current = percentage_of(earnings, breakdown.total_amount)
    if current >= floor_percent:
        return breakdown

    shortfall = floor_units(breakdown.total_amount * floor_percent / HUNDRED) - earnings
    if shortfall <= 0:
        return breakdown

    index = next(
        (i for i, r in enumerate(breakdown.recipients) if r.role == protected_role),
        None,
    )
    if index is None:
        logger.warning(
            "earnings_floor_unenforceable",
            extra={
                "protected_role": protected_role.value,
                "reason": "no_protected_recipient",
            },
        )
        return breakdown

    margin = breakdown.platform_margin - shortfall
    if margin < 0:
        logger.warning(
            "earnings_floor_margin_negative",
            extra={
                "shortfall": str(shortfall),
                "platform_margin": str(breakdown.platform_margin),
            },
        )

    target = breakdown.recipients[index]
    new_amount = target.amount + shortfall
    recipients = list(breakdown.recipients)
    recipients[index] = replace(
        target,
        amount=new_amount,
        percentage=percentage_of(new_amount, breakdown.total_amount),
    )

    logger.info(
        "earnings_floor_applied",
        extra={
            "protected_role": protected_role.value,
            "recipient_id": target.recipient_id,
            "shortfall": str(shortfall),
            "was_percent": format_percent(current.quantize(Decimal("0.01"))),
            "floor_percent": format_percent(floor_percent),
        },
    )

    return replace(
        breakdown,
        recipients=tuple(recipients),
        platform_margin=margin,
        floor_adjustment=shortfall,
    )


def validate_floor(
    breakdown: CommissionBreakdown,
    floor_percent: Decimal,
    protected_role: RecipientRole,
) -> FloorValidation:
    """Read-only pre-flight check of the earnings floor."""
    floor_percent = to_decimal(floor_percent, "floor_percent")
    protected_role = RecipientRole(protected_role)

    if breakdown.total_amount <= 0:
        return FloorValidation(
            valid=True,
            protected_percent=Decimal("0"),
            message="Floor valid: nothing to protect on a zero total",
        )

    share = protected_percent(breakdown, protected_role)
    shown = format_percent(share.quantize(Decimal("0.01")))
    if share >= floor_percent:
        return FloorValidation(
            valid=True,
            protected_percent=share,
            message=f"Floor valid: {protected_role.value} earning {shown}%",
        )
    return FloorValidation(
        valid=False,
        protected_percent=share,
        message=(
            f"Floor violation: {protected_role.value} only earning {shown}% "
            f"(min: {format_percent(floor_percent)}%)"
        ),
    )
