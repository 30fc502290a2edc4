"""
KillSwitch -- operator-controlled global / per-component halt.

Responsibility:
    Owns the kill-switch state machine (INACTIVE <-> ACTIVE), the set of
    affected components and the emergency allow-list.  One instance is
    created per deployment and injected into every request handler; there
    is no module-level singleton.

Architecture position:
    Kernel > Domain -- in-memory state, no I/O.  Persisting the transition
    trail is the job of ``KillSwitchService``, which passes a ``record``
    callback into each transition.

Invariants enforced:
    - Only the operator may activate, deactivate or extend the allow-list.
    - All writers hold one lock; readers see a complete immutable snapshot,
      so ``affected_components`` and ``allowed_party_ids`` are never observed
      half-updated.
    - A transition is committed only after its ``record`` callback returns.
      If recording fails the state is unchanged and the error propagates.
    - Every recorded transition carries a ``seq`` strictly greater than any
      earlier one in this process or in the restored trail, so replaying
      by ``seq`` reproduces the order the lock admitted them.
    - Deactivation clears every field, including the allow-list.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from integrity_kernel.domain.clock import Clock, SystemClock
from integrity_kernel.domain.dtos import KillSwitchAction, OperatorResult
from integrity_kernel.domain.operator_authority import (
    OperatorAuthority,
    actor_id_of,
    unauthorized_message,
)
from integrity_kernel.domain.values import Actor, SystemComponent, components_from
from integrity_kernel.logging_config import get_logger

logger = get_logger("domain.kill_switch")


@dataclass(frozen=True)
class KillSwitchState:
    """Immutable snapshot of the kill switch."""

    active: bool = False
    activated_at: datetime | None = None
    activated_by: str | None = None
    reason: str | None = None
    affected_components: frozenset[SystemComponent] = frozenset()
    allowed_party_ids: frozenset[str] = frozenset()

    def blocks(self, component: SystemComponent, party_id: str) -> bool:
        if not self.active:
            return False
        if party_id in self.allowed_party_ids:
            return False
        return (
            SystemComponent.ALL in self.affected_components
            or component in self.affected_components
        )

    def public_view(self) -> dict:
        """Status safe to show to any user."""
        return {
            "active": self.active,
            "reason": self.reason,
            "affected_components": sorted(c.value for c in self.affected_components),
            "activated_at": self.activated_at.isoformat() if self.activated_at else None,
        }


INACTIVE = KillSwitchState()


@dataclass(frozen=True)
class KillSwitchTransition:
    """One recorded kill-switch transition."""

    action: KillSwitchAction
    operator_id: str
    occurred_at: datetime
    reason: str | None = None
    components: frozenset[SystemComponent] = field(default_factory=frozenset)
    party_id: str | None = None
    # Position in the trail; allocated under the writer lock
    seq: int = 0


Recorder = Callable[[KillSwitchTransition], None]


def _no_record(_: KillSwitchTransition) -> None:
    return None


class KillSwitch:
    """
    Thread-safe kill-switch state machine.

    Contract:
        Every mutating call returns an ``OperatorResult``.  Unauthorized
        callers get ``success=False`` with an ``UNAUTHORIZED`` message.
    """

    def __init__(self, authority: OperatorAuthority, clock: Clock | None = None):
        self._authority = authority
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._state = INACTIVE
        self._seq = 0

    @property
    def state(self) -> KillSwitchState:
        return self._state

    def is_active(self) -> bool:
        return self._state.active

    def is_blocked(self, component: SystemComponent | str, party_id: str) -> bool:
        return self._state.blocks(SystemComponent(component), party_id)

    def activate(
        self,
        operator: Actor | str,
        reason: str,
        components: Iterable[SystemComponent | str] | None = None,
        record: Recorder = _no_record,
    ) -> OperatorResult:
        operator_id = actor_id_of(operator)
        allowed, why = self._authority.authorize(operator)
        if not allowed:
            logger.warning(
                "kill_switch_activation_denied",
                extra={"operator_id": operator_id, "reason": why},
            )
            return OperatorResult.rejected(unauthorized_message("activate the kill switch"))
        if not reason or not reason.strip():
            return OperatorResult.rejected("A reason is required to activate the kill switch")

        affected = components_from(components)
        with self._lock:
            now = self._clock.now()
            record(
                KillSwitchTransition(
                    action=KillSwitchAction.ACTIVATED,
                    operator_id=operator_id,
                    occurred_at=now,
                    reason=reason,
                    components=affected,
                    seq=self._seq + 1,
                )
            )
            self._seq += 1
            self._state = KillSwitchState(
                active=True,
                activated_at=now,
                activated_by=operator_id,
                reason=reason,
                affected_components=affected,
                allowed_party_ids=frozenset({operator_id}),
            )

        logger.critical(
            "kill_switch_activated",
            extra={
                "operator_id": operator_id,
                "reason": reason,
                "components": sorted(c.value for c in affected),
            },
        )
        return OperatorResult.ok(
            f"Kill switch activated. Reason: {reason}",
            components=sorted(c.value for c in affected),
        )

    def deactivate(
        self,
        operator: Actor | str,
        record: Recorder = _no_record,
    ) -> OperatorResult:
        operator_id = actor_id_of(operator)
        allowed, why = self._authority.authorize(operator)
        if not allowed:
            logger.warning(
                "kill_switch_deactivation_denied",
                extra={"operator_id": operator_id, "reason": why},
            )
            return OperatorResult.rejected(unauthorized_message("deactivate the kill switch"))

        with self._lock:
            if not self._state.active:
                return OperatorResult.rejected("Kill switch is not active")
            record(
                KillSwitchTransition(
                    action=KillSwitchAction.DEACTIVATED,
                    operator_id=operator_id,
                    occurred_at=self._clock.now(),
                    seq=self._seq + 1,
                )
            )
            self._seq += 1
            self._state = INACTIVE

        logger.info("kill_switch_deactivated", extra={"operator_id": operator_id})
        return OperatorResult.ok("Kill switch deactivated. System restored.")

    def add_allowed_party(
        self,
        operator: Actor | str,
        party_id: str,
        record: Recorder = _no_record,
    ) -> OperatorResult:
        operator_id = actor_id_of(operator)
        allowed, _ = self._authority.authorize(operator)
        if not allowed:
            return OperatorResult.rejected(unauthorized_message("extend the emergency allow-list"))

        with self._lock:
            state = self._state
            if not state.active:
                return OperatorResult.rejected("Kill switch is not active")
            if party_id in state.allowed_party_ids:
                return OperatorResult.ok(f"{party_id} is already allowed")
            record(
                KillSwitchTransition(
                    action=KillSwitchAction.PARTY_ALLOWED,
                    operator_id=operator_id,
                    occurred_at=self._clock.now(),
                    party_id=party_id,
                    seq=self._seq + 1,
                )
            )
            self._seq += 1
            self._state = KillSwitchState(
                active=True,
                activated_at=state.activated_at,
                activated_by=state.activated_by,
                reason=state.reason,
                affected_components=state.affected_components,
                allowed_party_ids=state.allowed_party_ids | {party_id},
            )

        logger.info(
            "kill_switch_party_allowed",
            extra={"operator_id": operator_id, "allowed_party_id": party_id},
        )
        return OperatorResult.ok(f"{party_id} may bypass the kill switch")

    def restore(self, transitions: Iterable[KillSwitchTransition]) -> KillSwitchState:
        """Rebuild state by replaying a recorded trail in order."""
        state = INACTIVE
        last_seq = 0
        for t in transitions:
            last_seq = max(last_seq, t.seq)
            if t.action == KillSwitchAction.ACTIVATED:
                state = KillSwitchState(
                    active=True,
                    activated_at=t.occurred_at,
                    activated_by=t.operator_id,
                    reason=t.reason,
                    affected_components=t.components or frozenset({SystemComponent.ALL}),
                    allowed_party_ids=frozenset({t.operator_id}),
                )
            elif t.action == KillSwitchAction.DEACTIVATED:
                state = INACTIVE
            elif t.action == KillSwitchAction.PARTY_ALLOWED and state.active and t.party_id:
                state = KillSwitchState(
                    active=True,
                    activated_at=state.activated_at,
                    activated_by=state.activated_by,
                    reason=state.reason,
                    affected_components=state.affected_components,
                    allowed_party_ids=state.allowed_party_ids | {t.party_id},
                )
        with self._lock:
            self._state = state
            self._seq = max(self._seq, last_seq)
        if state.active:
            logger.warning(
                "kill_switch_restored_active",
                extra={"reason": state.reason, "activated_by": state.activated_by},
            )
        return state
