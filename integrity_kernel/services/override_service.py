"""
OverrideService -- audited operator corrections and standing commission.

Responsibility:
    Lets the operator retroactively rewrite a split, adjust a payout and
    tune the standing operator commission rate.  Every successful call
    appends one OverrideRecord.

Architecture position:
    Kernel > Services -- imperative shell over ``domain.operator_authority``
    and ``domain.operator_commission``.

Invariants enforced:
    - Every gated call goes through ``OperatorAuthority.authorize``.
      Unauthorized calls return ``UNAUTHORIZED`` results, write nothing and
      are not failsafe events.
    - A replacement split must total 100 within the split tolerance.
    - Adjusted payouts must be non-negative.
    - Non-numeric, NaN or infinite amounts, rates and percentages are
      rejected as results, never raised.  Floats still raise
      ``FloatAmountError``.
    - The standing rate stays within the configured bounds.
    - The rate is swapped only after its OverrideRecord was flushed.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from sqlalchemy.orm import Session

from integrity_kernel.domain.dtos import OperatorCommission, OperatorResult, OverrideKind
from integrity_kernel.domain.operator_authority import (
    OperatorAuthority,
    actor_id_of,
    unauthorized_message,
)
from integrity_kernel.domain.operator_commission import (
    StandingRate,
    apply_operator_commission,
)
from integrity_kernel.domain.policy import SplitPolicy
from integrity_kernel.domain.split_enforcer import total_within_tolerance
from integrity_kernel.domain.values import Actor, SplitProposal, format_percent, to_decimal
from integrity_kernel.logging_config import LogContext, get_logger
from integrity_kernel.services.audit_log import AuditLog
from integrity_kernel.services.base import BaseService

logger = get_logger("services.override")


class OverrideService(BaseService):
    """Operator override authority."""

    def __init__(
        self,
        session: Session,
        authority: OperatorAuthority,
        standing_rate: StandingRate,
        audit_log: AuditLog,
        split_policy: SplitPolicy | None = None,
    ):
        super().__init__(session)
        self._authority = authority
        self._rate = standing_rate
        self._audit = audit_log
        self._split_policy = split_policy or SplitPolicy()

    def _denied(self, operator: Actor | str, action: str) -> OperatorResult | None:
        allowed, why = self._authority.authorize(operator)
        if allowed:
            return None
        logger.warning(
            "override_denied",
            extra={"operator_id": actor_id_of(operator), "action": action, "reason": why},
        )
        return OperatorResult.rejected(unauthorized_message(action))

    def override_split(
        self,
        operator: Actor | str,
        transaction_id: str,
        original_split: SplitProposal | Mapping,
        new_split: SplitProposal | Mapping,
        reason: str,
        affected_party_id: str | None = None,
    ) -> OperatorResult:
        denied = self._denied(operator, "override commission splits")
        if denied:
            return denied

        try:
            original = SplitProposal.coerce(original_split)
            replacement = SplitProposal.coerce(new_split)
        except ValueError as exc:
            return OperatorResult.rejected(f"Invalid split: {exc}")
        total = replacement.percentage_total
        if not total_within_tolerance(total, self._split_policy.tolerance):
            return OperatorResult.rejected(
                f"Invalid split: total is {format_percent(total)}%, must be 100%"
            )

        operator_id = actor_id_of(operator)
        with LogContext.bind(
            actor_id=operator_id,
            party_id=affected_party_id,
            transaction_id=transaction_id,
        ):
            record = self._audit.record_override(
                operator_id=operator_id,
                kind=OverrideKind.SPLIT_OVERRIDE,
                original_value=original.as_dict(),
                new_value=replacement.as_dict(),
                reason=reason,
                affected_party_id=affected_party_id,
                affected_transaction_id=transaction_id,
            )
        return OperatorResult.ok(
            f"Commission split overridden. Reason: {reason}",
            override_id=str(record.id),
        )

    def adjust_payout(
        self,
        operator: Actor | str,
        party_id: str,
        original_amount,
        new_amount,
        reason: str,
    ) -> OperatorResult:
        denied = self._denied(operator, "adjust payouts")
        if denied:
            return denied

        try:
            original = to_decimal(original_amount, "original_amount")
            adjusted = to_decimal(new_amount, "new_amount")
        except ValueError as exc:
            return OperatorResult.rejected(f"Invalid payout amount: {exc}")
        if adjusted < 0:
            return OperatorResult.rejected(
                f"Adjusted payout cannot be negative: {adjusted}"
            )

        operator_id = actor_id_of(operator)
        with LogContext.bind(actor_id=operator_id, party_id=party_id):
            record = self._audit.record_override(
                operator_id=operator_id,
                kind=OverrideKind.PAYOUT_ADJUSTMENT,
                original_value={"amount": str(original)},
                new_value={"amount": str(adjusted)},
                reason=reason,
                affected_party_id=party_id,
            )
        return OperatorResult.ok(
            f"Payout adjusted. Reason: {reason}",
            override_id=str(record.id),
            difference=str(adjusted - original),
        )

    def set_operator_commission_rate(self, operator: Actor | str, new_rate) -> OperatorResult:
        denied = self._denied(operator, "change the operator commission rate")
        if denied:
            return denied

        try:
            rate = to_decimal(new_rate, "new_rate")
        except ValueError as exc:
            return OperatorResult.rejected(f"Invalid operator commission rate: {exc}")
        if not self._rate.in_bounds(rate):
            low, high = self._rate.bounds()
            return OperatorResult.rejected(
                "Operator commission must be between "
                f"{format_percent(low)}% and {format_percent(high)}%"
            )

        operator_id = actor_id_of(operator)

        def record(previous: Decimal, new: Decimal, seq: int) -> None:
            self._audit.record_override(
                operator_id=operator_id,
                kind=OverrideKind.RATE_CHANGE,
                original_value={"rate": str(previous)},
                new_value={"rate": str(new)},
                reason="Standing operator commission rate changed",
                seq=seq,
            )

        with LogContext.bind(actor_id=operator_id):
            previous = self._rate.swap(rate, record=record)
            logger.info(
                "operator_commission_rate_changed",
                extra={"previous_rate": str(previous), "new_rate": str(rate)},
            )
        return OperatorResult.ok(
            "Operator commission changed from "
            f"{format_percent(previous)}% to {format_percent(rate)}%"
        )

    def apply_operator_commission(self, total_revenue) -> OperatorCommission:
        return apply_operator_commission(total_revenue, self._rate.value)

    def operator_commission_rate(self) -> Decimal:
        return self._rate.value
