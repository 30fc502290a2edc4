"""
ZeroBilling -- Pure charge classification and payout direction checks.

Responsibility:
    Decides whether a proposed charge against a value-producer is allowed,
    and whether a transfer flows the right way (platform pays producers,
    never the reverse).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Recording of
    blocked attempts is done by ``ZeroBillingService``.

Invariants enforced:
    - Strict allow-list: a reason matching neither list is blocked.
    - A forbidden match wins over an allowed match.
    - Platform identities are matched exactly (case-insensitive), never by
      substring.
"""

from integrity_kernel.domain.dtos import BlockRule, ChargeDecision, DirectionValidation
from integrity_kernel.domain.policy import BillingPolicy
from integrity_kernel.domain.values import PayoutTransfer
from integrity_kernel.logging_config import get_logger

logger = get_logger("domain.zero_billing")


def _first_match(reason: str, candidates: tuple[str, ...]) -> str | None:
    return next((c for c in candidates if c in reason), None)


def classify_charge(reason: str, policy: BillingPolicy | None = None) -> ChargeDecision:
    """Match a charge reason case-insensitively against the billing lists."""
    policy = policy or BillingPolicy()
    normalized = (reason or "").strip().lower()

    forbidden = _first_match(normalized, policy.forbidden_reasons)
    if forbidden is not None:
        return ChargeDecision(blocked=True, rule=BlockRule.FORBIDDEN_REASON, matched=forbidden)

    allowed = _first_match(normalized, policy.allowed_reasons)
    if allowed is None:
        return ChargeDecision(blocked=True, rule=BlockRule.UNLISTED_REASON)

    return ChargeDecision(blocked=False, matched=allowed)


def validate_direction(
    transfer: PayoutTransfer,
    policy: BillingPolicy | None = None,
) -> DirectionValidation:
    """Reject transfers that move money from a producer to the platform."""
    policy = policy or BillingPolicy()

    if transfer.amount < 0:
        return DirectionValidation(
            valid=False,
            error=f"Transfer amount cannot be negative: {transfer.amount}",
        )

    from_platform = policy.is_platform(transfer.from_id)
    to_platform = policy.is_platform(transfer.to_id)
    is_premium = policy.premium_marker in (transfer.kind or "").lower()

    if not from_platform and to_platform and not is_premium:
        logger.error(
            "payout_direction_rejected",
            extra={
                "from_id": transfer.from_id,
                "to_id": transfer.to_id,
                "amount": str(transfer.amount),
                "kind": transfer.kind,
            },
        )
        return DirectionValidation(
            valid=False,
            error=(
                "Zero billing protection: producers cannot pay the platform "
                f"for {transfer.kind}"
            ),
        )

    return DirectionValidation(valid=True)
