"""
ZeroBillingService -- charge guard and payout direction check.

Responsibility:
    Classifies a proposed charge against a value-producer, records every
    refused charge as a BlockedChargeAttempt, and checks the direction of
    payout transfers.

Architecture position:
    Kernel > Services -- imperative shell over ``domain.zero_billing``.

Invariants enforced:
    - Fail closed: a reason matching neither list is blocked.
    - Every ``True`` from ``should_block`` has exactly one audit row behind it.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from integrity_kernel.domain.dtos import DirectionValidation
from integrity_kernel.domain.policy import BillingPolicy
from integrity_kernel.domain.values import PayoutTransfer, to_decimal
from integrity_kernel.domain.zero_billing import classify_charge, validate_direction
from integrity_kernel.logging_config import get_logger
from integrity_kernel.services.audit_log import AuditLog
from integrity_kernel.services.base import BaseService

logger = get_logger("services.zero_billing")


class ZeroBillingService(BaseService):
    """Guards value-producers against platform charges."""

    def __init__(
        self,
        session: Session,
        audit_log: AuditLog,
        policy: BillingPolicy | None = None,
    ):
        super().__init__(session)
        self._audit = audit_log
        self._policy = policy or BillingPolicy()

    def should_block(self, subject_id: str, amount, reason: str) -> bool:
        """
        Return True when the charge must not be issued.

        Postconditions:
            A BlockedChargeAttempt has been flushed for every blocked charge.
        """
        amount = to_decimal(amount, "amount")
        decision = classify_charge(reason, self._policy)
        if not decision.blocked:
            logger.debug(
                "charge_allowed",
                extra={"subject_id": subject_id, "matched": decision.matched},
            )
            return False

        self._audit.record_blocked_charge(subject_id, amount, reason, decision.rule)
        logger.warning(
            "charge_blocked",
            extra={
                "subject_id": subject_id,
                "amount": str(amount),
                "charge_reason": reason,
                "rule": decision.rule.value,
                "matched": decision.matched,
            },
        )
        return True

    def validate_direction(self, transfer: PayoutTransfer) -> DirectionValidation:
        return validate_direction(transfer, self._policy)
