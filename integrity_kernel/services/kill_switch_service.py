"""
KillSwitchService -- audited kill-switch transitions.

Responsibility:
    Drives the injected ``KillSwitch`` and appends one KillSwitchEvent per
    successful transition, inside the writer lock, before the new state
    becomes visible.  Also rebuilds the state from the persisted trail.

Architecture position:
    Kernel > Services -- imperative shell over ``domain.kill_switch``.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from integrity_kernel.domain.dtos import OperatorResult
from integrity_kernel.domain.kill_switch import KillSwitch, KillSwitchState
from integrity_kernel.domain.operator_authority import actor_id_of
from integrity_kernel.domain.values import Actor, SystemComponent
from integrity_kernel.logging_config import LogContext, get_logger
from integrity_kernel.models import KillSwitchEvent
from integrity_kernel.services.audit_log import AuditLog
from integrity_kernel.services.base import BaseService

logger = get_logger("services.kill_switch")


class KillSwitchService(BaseService):
    """Audited front for one KillSwitch instance."""

    def __init__(self, session: Session, kill_switch: KillSwitch, audit_log: AuditLog):
        super().__init__(session)
        self._switch = kill_switch
        self._audit = audit_log

    def activate(
        self,
        operator: Actor | str,
        reason: str,
        components: Iterable[SystemComponent | str] | None = None,
    ) -> OperatorResult:
        with LogContext.bind(actor_id=actor_id_of(operator)):
            return self._switch.activate(
                operator,
                reason,
                components,
                record=self._audit.record_kill_switch_transition,
            )

    def deactivate(self, operator: Actor | str) -> OperatorResult:
        with LogContext.bind(actor_id=actor_id_of(operator)):
            return self._switch.deactivate(
                operator, record=self._audit.record_kill_switch_transition
            )

    def add_allowed_party(self, operator: Actor | str, party_id: str) -> OperatorResult:
        with LogContext.bind(actor_id=actor_id_of(operator)):
            return self._switch.add_allowed_party(
                operator, party_id, record=self._audit.record_kill_switch_transition
            )

    def is_blocked(self, component: SystemComponent | str, party_id: str) -> bool:
        blocked = self._switch.is_blocked(component, party_id)
        if blocked:
            logger.info(
                "kill_switch_blocked_request",
                extra={"component": SystemComponent(component).value, "party_id": party_id},
            )
        return blocked

    def state(self) -> KillSwitchState:
        return self._switch.state

    def restore(self) -> KillSwitchState:
        """Replay the persisted trail into the in-memory kill switch."""
        rows = self.session.scalars(
            select(KillSwitchEvent).order_by(KillSwitchEvent.seq)
        ).all()
        return self._switch.restore(row.to_transition() for row in rows)
