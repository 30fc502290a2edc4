"""
FailsafeService -- revenue, multiplier and split checks with audit trail.

Responsibility:
    Runs the pure validators and appends exactly one FailsafeEvent per
    finding before returning the result to the caller.

Architecture position:
    Kernel > Services -- imperative shell over ``domain.revenue_validator``
    and ``domain.split_enforcer``.

Invariants enforced:
    - Never raises for an anomaly; anomalies are results.
    - The result is returned only after every finding has been flushed.
      An AuditAppendError propagates and the caller gets no result.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from sqlalchemy.orm import Session

from integrity_kernel.domain.dtos import (
    MultiplierValidation,
    RevenueValidation,
    SplitValidation,
)
from integrity_kernel.domain.policy import IntegrityPolicy
from integrity_kernel.domain.revenue_validator import (
    validate_purchasing_power_multiplier,
    validate_revenue_event,
)
from integrity_kernel.domain.split_enforcer import validate_split
from integrity_kernel.domain.values import RevenueEvent, SplitProposal
from integrity_kernel.logging_config import LogContext
from integrity_kernel.services.audit_log import AuditLog
from integrity_kernel.services.base import BaseService


class FailsafeService(BaseService):
    """Validates candidate money movements and records every anomaly."""

    def __init__(
        self,
        session: Session,
        audit_log: AuditLog,
        policy: IntegrityPolicy | None = None,
    ):
        super().__init__(session)
        self._audit = audit_log
        self._policy = policy or IntegrityPolicy()

    def validate(self, event: RevenueEvent) -> RevenueValidation:
        with LogContext.bind(
            party_id=event.earning_party_id or None,
            transaction_id=event.source_transaction_id,
        ):
            result = validate_revenue_event(event, self._policy.revenue)
            self._audit.record_findings(result.findings)
        return result

    def validate_purchasing_power_multiplier(
        self,
        multiplier: Decimal,
        region: str,
    ) -> MultiplierValidation:
        result = validate_purchasing_power_multiplier(
            multiplier, region, self._policy.revenue
        )
        if result.finding is not None:
            self._audit.record_finding(result.finding)
        return result

    def validate_split(self, split: SplitProposal | Mapping) -> SplitValidation:
        result = validate_split(SplitProposal.coerce(split), self._policy.split)
        self._audit.record_findings(result.findings)
        return result
