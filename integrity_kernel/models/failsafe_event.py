"""
Module: integrity_kernel.models.failsafe_event
Responsibility: ORM persistence for detected economic anomalies.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain enums only.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (db/immutability.py).
    - One row per FailsafeFinding produced by the revenue validator, the
      multiplier clamp or the split enforcer.
"""

from datetime import datetime

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from integrity_kernel.db.base import Base
from integrity_kernel.domain.dtos import FailsafeFinding, FailsafeKind, Severity


class FailsafeEvent(Base):
    """
    One economic anomaly and what was done about it.

    Contract:
        Rows are immutable from creation.  ``quarantined`` means the caller
        was told not to commit the associated transaction.
    """

    __tablename__ = "failsafe_events"

    __table_args__ = (
        Index("idx_failsafe_occurred", "occurred_at"),
        Index("idx_failsafe_kind", "kind"),
        Index("idx_failsafe_severity", "severity"),
    )

    kind: Mapped[FailsafeKind] = mapped_column(String(50), nullable=False)

    severity: Mapped[Severity] = mapped_column(String(20), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    affected_party_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    affected_transaction_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    correction_applied: Mapped[bool] = mapped_column(Boolean, nullable=False)

    correction_action: Mapped[str] = mapped_column(String(255), nullable=False)

    correction_result: Mapped[str] = mapped_column(String(255), nullable=False)

    quarantined: Mapped[bool] = mapped_column(Boolean, nullable=False)

    @classmethod
    def from_finding(cls, finding: FailsafeFinding, occurred_at: datetime) -> "FailsafeEvent":
        return cls(
            occurred_at=occurred_at,
            kind=finding.kind.value,
            severity=finding.severity.value,
            description=finding.description,
            affected_party_id=finding.affected_party_id,
            affected_transaction_id=finding.affected_transaction_id,
            correction_applied=finding.correction_applied,
            correction_action=finding.correction_action,
            correction_result=finding.correction_result,
            quarantined=finding.quarantined,
        )

    def __repr__(self) -> str:
        return f"<FailsafeEvent {self.kind} {self.severity} quarantined={self.quarantined}>"
