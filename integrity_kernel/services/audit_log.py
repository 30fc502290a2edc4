"""
AuditLog -- append-only writer for the four audit record types.

Responsibility:
    Turns domain findings, refused charges, operator overrides and
    kill-switch transitions into ORM rows and flushes them into the
    caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell.  The only writer of audit rows.

Invariants enforced:
    - One row per call; rows are never updated or deleted
      (db/immutability.py).
    - A storage failure is a hard failure: every ``SQLAlchemyError`` is
      re-raised as ``AuditAppendError`` so that no caller proceeds past an
      un-logged quarantine or override.

Failure modes:
    - AuditAppendError (wrapping the SQLAlchemy error as ``__cause__``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from integrity_kernel.db.base import Base
from integrity_kernel.domain.clock import Clock, SystemClock
from integrity_kernel.domain.dtos import BlockRule, FailsafeFinding, OverrideKind
from integrity_kernel.domain.kill_switch import KillSwitchTransition
from integrity_kernel.exceptions import AuditAppendError
from integrity_kernel.logging_config import get_logger
from integrity_kernel.models import (
    BlockedChargeAttempt,
    FailsafeEvent,
    KillSwitchEvent,
    OverrideRecord,
)
from integrity_kernel.services.base import BaseService

logger = get_logger("services.audit_log")


class AuditLog(BaseService):
    """
    Writer for FailsafeEvent, BlockedChargeAttempt, OverrideRecord and
    KillSwitchEvent rows.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _append(self, record: Base) -> Base:
        record_type = type(record).__name__
        try:
            self.session.add(record)
            self.session.flush()
        except SQLAlchemyError as exc:
            logger.critical(
                "audit_append_failed",
                extra={"record_type": record_type, "error": str(exc)},
            )
            raise AuditAppendError(record_type, str(exc)) from exc
        return record

    def record_finding(self, finding: FailsafeFinding) -> FailsafeEvent:
        event = FailsafeEvent.from_finding(finding, self._clock.now())
        self._append(event)
        logger.info(
            "failsafe_event_recorded",
            extra={
                "kind": finding.kind.value,
                "severity": finding.severity.value,
                "quarantined": finding.quarantined,
                "party_id": finding.affected_party_id,
                "transaction_id": finding.affected_transaction_id,
            },
        )
        return event

    def record_findings(self, findings) -> list[FailsafeEvent]:
        return [self.record_finding(f) for f in findings]

    def record_blocked_charge(
        self,
        subject_id: str,
        amount: Decimal,
        reason: str,
        rule: BlockRule,
    ) -> BlockedChargeAttempt:
        attempt = BlockedChargeAttempt(
            subject_id=subject_id,
            amount=amount,
            reason=reason,
            rule=rule.value,
            occurred_at=self._clock.now(),
        )
        return self._append(attempt)

    def record_override(
        self,
        operator_id: str,
        kind: OverrideKind,
        original_value: Any,
        new_value: Any,
        reason: str,
        affected_party_id: str | None = None,
        affected_transaction_id: str | None = None,
        seq: int | None = None,
    ) -> OverrideRecord:
        record = OverrideRecord(
            occurred_at=self._clock.now(),
            operator_id=operator_id,
            kind=kind.value,
            original_value=original_value,
            new_value=new_value,
            reason=reason,
            affected_party_id=affected_party_id,
            affected_transaction_id=affected_transaction_id,
            seq=seq,
        )
        self._append(record)
        logger.info(
            "override_recorded",
            extra={
                "kind": kind.value,
                "operator_id": operator_id,
                "party_id": affected_party_id,
                "transaction_id": affected_transaction_id,
            },
        )
        return record

    def record_kill_switch_transition(self, transition: KillSwitchTransition) -> KillSwitchEvent:
        """Append one transition.  Callers hold the kill-switch writer lock."""
        return self._append(KillSwitchEvent.from_transition(transition))
