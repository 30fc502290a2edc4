"""
Module: integrity_kernel.models.blocked_charge
Responsibility: ORM persistence for charges refused by the zero-billing guard.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (db/immutability.py).
    - ``amount`` is Numeric(38, 9), never float.
"""

from decimal import Decimal

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from integrity_kernel.db.base import Base
from integrity_kernel.domain.dtos import BlockRule


class BlockedChargeAttempt(Base):
    """A refused charge against a value-producer."""

    __tablename__ = "blocked_charge_attempts"

    __table_args__ = (
        Index("idx_blocked_subject", "subject_id"),
        Index("idx_blocked_occurred", "occurred_at"),
    )

    subject_id: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)

    rule: Mapped[BlockRule] = mapped_column(String(30), nullable=False)

    def __repr__(self) -> str:
        return f"<BlockedChargeAttempt {self.subject_id} {self.amount} {self.rule}>"
