"""
Module: integrity_kernel.selectors.audit_selector
Responsibility: Read-only forensic views and statistics over the audit trail.
Architecture position: Kernel > Selectors.

Statistics exposed (the administrator surface):
    - failsafe events: total, critical, quarantined, auto-corrected
    - blocked charges: count, total amount, distinct subjects
    - overrides: count by kind
    Kill-switch state is in-memory and is merged in by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import case, distinct, func, select

from integrity_kernel.domain.dtos import OverrideKind, Severity
from integrity_kernel.models import (
    BlockedChargeAttempt,
    FailsafeEvent,
    KillSwitchEvent,
    OverrideRecord,
)
from integrity_kernel.selectors.base import BaseSelector

DEFAULT_LIMIT = 50


@dataclass(frozen=True)
class FailsafeEventDTO:
    id: str
    occurred_at: datetime
    kind: str
    severity: str
    description: str
    affected_party_id: str | None
    affected_transaction_id: str | None
    correction_applied: bool
    correction_action: str
    correction_result: str
    quarantined: bool


@dataclass(frozen=True)
class BlockedChargeDTO:
    id: str
    occurred_at: datetime
    subject_id: str
    amount: Decimal
    reason: str
    rule: str


@dataclass(frozen=True)
class OverrideRecordDTO:
    id: str
    occurred_at: datetime
    operator_id: str
    kind: str
    original_value: Any
    new_value: Any
    reason: str
    affected_party_id: str | None
    affected_transaction_id: str | None


@dataclass(frozen=True)
class KillSwitchEventDTO:
    id: str
    occurred_at: datetime
    operator_id: str
    action: str
    reason: str | None
    components: tuple[str, ...]
    party_id: str | None
    seq: int


@dataclass(frozen=True)
class FailsafeStatistics:
    total: int = 0
    critical: int = 0
    quarantined: int = 0
    auto_corrected: int = 0


@dataclass(frozen=True)
class BlockedChargeStatistics:
    count: int = 0
    total_amount: Decimal = Decimal("0")
    distinct_subjects: int = 0


@dataclass(frozen=True)
class ControlPlaneStatistics:
    failsafe: FailsafeStatistics
    blocked_charges: BlockedChargeStatistics
    overrides_by_kind: dict[str, int] = field(default_factory=dict)
    kill_switch: dict[str, Any] = field(default_factory=dict)

    @property
    def override_total(self) -> int:
        return sum(self.overrides_by_kind.values())


class AuditSelector(BaseSelector):
    """Read-only queries over the four audit tables."""

    def recent_failsafe_events(self, limit: int = DEFAULT_LIMIT) -> list[FailsafeEventDTO]:
        rows = self.session.scalars(
            select(FailsafeEvent).order_by(FailsafeEvent.occurred_at.desc()).limit(limit)
        )
        return [
            FailsafeEventDTO(
                id=str(r.id),
                occurred_at=r.occurred_at,
                kind=r.kind,
                severity=r.severity,
                description=r.description,
                affected_party_id=r.affected_party_id,
                affected_transaction_id=r.affected_transaction_id,
                correction_applied=r.correction_applied,
                correction_action=r.correction_action,
                correction_result=r.correction_result,
                quarantined=r.quarantined,
            )
            for r in rows
        ]

    def recent_blocked_charges(self, limit: int = DEFAULT_LIMIT) -> list[BlockedChargeDTO]:
        rows = self.session.scalars(
            select(BlockedChargeAttempt)
            .order_by(BlockedChargeAttempt.occurred_at.desc())
            .limit(limit)
        )
        return [
            BlockedChargeDTO(
                id=str(r.id),
                occurred_at=r.occurred_at,
                subject_id=r.subject_id,
                amount=r.amount,
                reason=r.reason,
                rule=r.rule,
            )
            for r in rows
        ]

    def recent_overrides(self, limit: int = DEFAULT_LIMIT) -> list[OverrideRecordDTO]:
        rows = self.session.scalars(
            select(OverrideRecord).order_by(OverrideRecord.occurred_at.desc()).limit(limit)
        )
        return [
            OverrideRecordDTO(
                id=str(r.id),
                occurred_at=r.occurred_at,
                operator_id=r.operator_id,
                kind=r.kind,
                original_value=r.original_value,
                new_value=r.new_value,
                reason=r.reason,
                affected_party_id=r.affected_party_id,
                affected_transaction_id=r.affected_transaction_id,
            )
            for r in rows
        ]

    def kill_switch_trail(self) -> list[KillSwitchEventDTO]:
        rows = self.session.scalars(select(KillSwitchEvent).order_by(KillSwitchEvent.seq))
        return [
            KillSwitchEventDTO(
                id=str(r.id),
                occurred_at=r.occurred_at,
                operator_id=r.operator_id,
                action=r.action,
                reason=r.reason,
                components=tuple(r.components or ()),
                party_id=r.party_id,
                seq=r.seq,
            )
            for r in rows
        ]

    def failsafe_statistics(self) -> FailsafeStatistics:
        def tally(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        total, critical, quarantined, corrected = self.session.execute(
            select(
                func.count(FailsafeEvent.id),
                tally(FailsafeEvent.severity == Severity.CRITICAL.value),
                tally(FailsafeEvent.quarantined.is_(True)),
                tally(FailsafeEvent.correction_applied.is_(True)),
            )
        ).one()
        return FailsafeStatistics(
            total=int(total),
            critical=int(critical),
            quarantined=int(quarantined),
            auto_corrected=int(corrected),
        )

    def blocked_charge_statistics(self) -> BlockedChargeStatistics:
        count, amount, subjects = self.session.execute(
            select(
                func.count(BlockedChargeAttempt.id),
                func.coalesce(func.sum(BlockedChargeAttempt.amount), 0),
                func.count(distinct(BlockedChargeAttempt.subject_id)),
            )
        ).one()
        return BlockedChargeStatistics(
            count=count,
            total_amount=Decimal(str(amount)),
            distinct_subjects=subjects,
        )

    def override_counts(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in OverrideKind}
        rows = self.session.execute(
            select(OverrideRecord.kind, func.count(OverrideRecord.id)).group_by(
                OverrideRecord.kind
            )
        )
        for kind, n in rows:
            counts[kind] = n
        return counts

    def statistics(self, kill_switch: dict[str, Any] | None = None) -> ControlPlaneStatistics:
        return ControlPlaneStatistics(
            failsafe=self.failsafe_statistics(),
            blocked_charges=self.blocked_charge_statistics(),
            overrides_by_kind=self.override_counts(),
            kill_switch=dict(kill_switch or {}),
        )

    def latest_rate_change(self) -> tuple[Decimal, int] | None:
        """``(new rate, seq)`` of the highest-numbered RATE_CHANGE override, if any."""
        record = self.session.scalars(
            select(OverrideRecord)
            .where(OverrideRecord.kind == OverrideKind.RATE_CHANGE.value)
            .where(OverrideRecord.seq.is_not(None))
            .order_by(OverrideRecord.seq.desc())
            .limit(1)
        ).first()
        if record is None or not record.new_value:
            return None
        return Decimal(str(record.new_value["rate"])), record.seq
