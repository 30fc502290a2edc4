"""
Module: integrity_kernel.models.kill_switch_event
Responsibility: ORM persistence for the kill-switch transition trail.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (db/immutability.py).
    - ``seq`` is unique.  Replaying every row in ``seq`` order reproduces
      the live KillSwitchState, which is how state survives a restart.
    - Exactly one KillSwitch instance writes this table; a second writer
      would collide on ``seq`` and fail with AuditAppendError.
"""

from sqlalchemy import JSON, BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from integrity_kernel.db.base import Base
from integrity_kernel.domain.dtos import KillSwitchAction
from integrity_kernel.domain.kill_switch import KillSwitchTransition
from integrity_kernel.domain.values import SystemComponent


class KillSwitchEvent(Base):
    """One kill-switch transition."""

    __tablename__ = "kill_switch_events"

    __table_args__ = (Index("idx_kill_switch_occurred", "occurred_at", "seq"),)

    # Replay order; allocated by the in-process kill switch under its lock
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    operator_id: Mapped[str] = mapped_column(String(255), nullable=False)

    action: Mapped[KillSwitchAction] = mapped_column(String(20), nullable=False)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    components: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    party_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @classmethod
    def from_transition(cls, transition: KillSwitchTransition) -> "KillSwitchEvent":
        return cls(
            seq=transition.seq,
            occurred_at=transition.occurred_at,
            operator_id=transition.operator_id,
            action=transition.action.value,
            reason=transition.reason,
            components=sorted(c.value for c in transition.components),
            party_id=transition.party_id,
        )

    def to_transition(self) -> KillSwitchTransition:
        return KillSwitchTransition(
            action=KillSwitchAction(self.action),
            operator_id=self.operator_id,
            occurred_at=self.occurred_at,
            reason=self.reason,
            components=frozenset(SystemComponent(c) for c in self.components or ()),
            party_id=self.party_id,
            seq=self.seq,
        )

    def __repr__(self) -> str:
        return f"<KillSwitchEvent {self.action} by {self.operator_id}>"
