"""
Module: integrity_kernel.models.override_record
Responsibility: ORM persistence for operator overrides.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (db/immutability.py).
    - Written only after operator authorization succeeded.  Unauthorized
      attempts never produce a row.
    - ``original_value`` / ``new_value`` are JSON with Decimals as strings.
    - RATE_CHANGE rows carry a unique ``seq``; the highest one is the
      standing rate.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from integrity_kernel.db.base import Base
from integrity_kernel.domain.dtos import OverrideKind


class OverrideRecord(Base):
    """An operator's audited change to a split, a payout or the standing rate."""

    __tablename__ = "override_records"

    __table_args__ = (
        Index("idx_override_occurred", "occurred_at"),
        Index("idx_override_kind", "kind"),
        Index("idx_override_operator", "operator_id"),
    )

    operator_id: Mapped[str] = mapped_column(String(255), nullable=False)

    kind: Mapped[OverrideKind] = mapped_column(String(30), nullable=False)

    original_value: Mapped[Any] = mapped_column(JSON, nullable=True)

    new_value: Mapped[Any] = mapped_column(JSON, nullable=True)

    reason: Mapped[str] = mapped_column(Text, nullable=False)

    # Standing-rate change order, set only on RATE_CHANGE rows
    seq: Mapped[int | None] = mapped_column(BigInteger, nullable=True, unique=True)

    affected_party_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    affected_transaction_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<OverrideRecord {self.kind} by {self.operator_id}>"
