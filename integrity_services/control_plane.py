"""
integrity_services.control_plane -- process-wide owner of control-plane state.

Responsibility:
    Creates the one ``KillSwitch``, ``StandingRate`` and ``OperatorAuthority``
    for a deployment, and exposes every control-plane operation with a
    transaction around it.  Kernel services are constructed per call against
    that call's session.

Architecture position:
    Services -- orchestration over ``integrity_kernel`` and
    ``integrity_config``.  The admin CLI and request handlers talk to this
    class; nothing below it knows sessions are short-lived.

Invariants enforced:
    - Each call runs in its own ``session_scope`` unless the caller passes
      ``session=``, in which case it joins the caller's transaction and the
      caller commits (validate-then-commit atomicity is the caller's).
    - On construction, the kill switch and standing rate are rebuilt from
      the persisted audit trail.
    - If a kill-switch transition or a standing-rate change fails to commit
      in an owned transaction, the in-memory state it touched is rebuilt
      from the committed trail before the error propagates.

Usage:
    from integrity_kernel.db import get_session_factory, init_engine_from_url
    from integrity_services import ControlPlane

    init_engine_from_url("sqlite:///integrity.db")
    plane = ControlPlane(get_session_factory())
    result = plane.validate(event)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from integrity_config import IntegrityConfigSet, get_active_config
from integrity_kernel.db.engine import session_scope
from integrity_kernel.db.immutability import register_immutability_listeners
from integrity_kernel.domain.clock import Clock, SystemClock
from integrity_kernel.domain.dtos import (
    DirectionValidation,
    FloorValidation,
    MultiplierValidation,
    OperatorCommission,
    OperatorResult,
    RevenueValidation,
    SplitValidation,
)
from integrity_kernel.domain.earnings_floor import apply_floor, validate_floor
from integrity_kernel.domain.kill_switch import KillSwitch, KillSwitchState
from integrity_kernel.domain.operator_authority import OperatorAuthority
from integrity_kernel.domain.operator_commission import (
    StandingRate,
    apply_operator_commission,
)
from integrity_kernel.domain.values import (
    Actor,
    CommissionBreakdown,
    PayoutTransfer,
    RecipientRole,
    RevenueEvent,
    SplitProposal,
    SystemComponent,
)
from integrity_kernel.domain.zero_billing import validate_direction
from integrity_kernel.logging_config import get_logger
from integrity_kernel.selectors.audit_selector import (
    DEFAULT_LIMIT,
    AuditSelector,
    BlockedChargeDTO,
    ControlPlaneStatistics,
    FailsafeEventDTO,
    KillSwitchEventDTO,
    OverrideRecordDTO,
)
from integrity_kernel.services.audit_log import AuditLog
from integrity_kernel.services.failsafe_service import FailsafeService
from integrity_kernel.services.kill_switch_service import KillSwitchService
from integrity_kernel.services.override_service import OverrideService
from integrity_kernel.services.zero_billing_service import ZeroBillingService

logger = get_logger("services.control_plane")

T = TypeVar("T")


class ControlPlane:
    """
    Economic integrity control plane for one deployment.

    Contract:
        Construct exactly once per process and share the instance.  All
        methods are safe to call from multiple threads.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: IntegrityConfigSet | None = None,
        clock: Clock | None = None,
        restore: bool = True,
    ) -> None:
        self.config = config or get_active_config()
        self._factory = session_factory
        self._clock = clock or SystemClock()

        policy = self.config.policy
        self.policy = policy
        self.authority = OperatorAuthority(policy.operator)
        self.kill_switch = KillSwitch(self.authority, self._clock)
        self.standing_rate = StandingRate(policy.operator)

        register_immutability_listeners()
        if restore:
            self.restore_state()

        logger.info(
            "control_plane_started",
            extra={
                "config_set_id": self.config.config_id,
                "checksum": self.config.checksum,
                "kill_switch_active": self.kill_switch.is_active(),
                "operator_rate": str(self.standing_rate.value),
            },
        )

    # ------------------------------------------------------------------
    # Transactions and wiring
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, session: Session | None) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with session_scope(self._factory) as owned:
            yield owned

    def _audit_log(self, session: Session) -> AuditLog:
        return AuditLog(session, self._clock)

    def _run(self, session: Session | None, call: Callable[[Session], T]) -> T:
        with self._transaction(session) as s:
            return call(s)

    def _run_restoring(
        self,
        session: Session | None,
        call: Callable[[Session], T],
        restore: Callable[[Session], Any],
        event: str,
    ) -> T:
        """
        Run ``call`` and, if an owned transaction fails, rebuild the
        in-memory state it touched from the committed trail.
        """
        try:
            return self._run(session, call)
        except Exception:
            if session is None:
                logger.error(event)
                self._run(None, restore)
            raise

    def _run_kill_switch(
        self,
        session: Session | None,
        call: Callable[[KillSwitchService], OperatorResult],
    ) -> OperatorResult:
        return self._run_restoring(
            session,
            lambda s: call(KillSwitchService(s, self.kill_switch, self._audit_log(s))),
            self._restore_kill_switch,
            "kill_switch_transition_not_committed",
        )

    def _override_service(self, session: Session) -> OverrideService:
        return OverrideService(
            session,
            self.authority,
            self.standing_rate,
            self._audit_log(session),
            self.policy.split,
        )

    def _restore_kill_switch(self, session: Session) -> KillSwitchState:
        return KillSwitchService(session, self.kill_switch, self._audit_log(session)).restore()

    def _restore_rate(self, session: Session) -> Decimal:
        latest = AuditSelector(session).latest_rate_change()
        if latest is None:
            self.standing_rate.restore(None)
        else:
            self.standing_rate.restore(*latest)
        return self.standing_rate.value

    def restore_state(self, session: Session | None = None) -> KillSwitchState:
        """
        Rebuild the kill switch and standing rate from the audit trail.

        The rate falls back to the policy default when no RATE_CHANGE has
        been committed.  Callers that pass their own ``session`` to a
        kill-switch or rate operation and then roll back must call this.
        """

        def restore(s: Session) -> KillSwitchState:
            self._restore_rate(s)
            return self._restore_kill_switch(s)

        return self._run(session, restore)

    # ------------------------------------------------------------------
    # Revenue event validator
    # ------------------------------------------------------------------

    def validate(self, event: RevenueEvent, session: Session | None = None) -> RevenueValidation:
        return self._run(
            session,
            lambda s: FailsafeService(s, self._audit_log(s), self.policy).validate(event),
        )

    def validate_purchasing_power_multiplier(
        self,
        multiplier: Decimal,
        region: str,
        session: Session | None = None,
    ) -> MultiplierValidation:
        return self._run(
            session,
            lambda s: FailsafeService(
                s, self._audit_log(s), self.policy
            ).validate_purchasing_power_multiplier(multiplier, region),
        )

    # ------------------------------------------------------------------
    # Split enforcer and earnings floor
    # ------------------------------------------------------------------

    def validate_split(
        self,
        split: SplitProposal | Mapping,
        session: Session | None = None,
    ) -> SplitValidation:
        return self._run(
            session,
            lambda s: FailsafeService(s, self._audit_log(s), self.policy).validate_split(split),
        )

    def apply_floor(
        self,
        breakdown: CommissionBreakdown,
        floor_percent: Decimal | None = None,
        protected_role: RecipientRole | None = None,
    ) -> CommissionBreakdown:
        return apply_floor(
            breakdown,
            self.policy.floor.floor_percent if floor_percent is None else floor_percent,
            protected_role or self.policy.floor.protected_role,
        )

    def validate_floor(
        self,
        breakdown: CommissionBreakdown,
        floor_percent: Decimal | None = None,
        protected_role: RecipientRole | None = None,
    ) -> FloorValidation:
        return validate_floor(
            breakdown,
            self.policy.floor.floor_percent if floor_percent is None else floor_percent,
            protected_role or self.policy.floor.protected_role,
        )

    # ------------------------------------------------------------------
    # Zero-billing guard
    # ------------------------------------------------------------------

    def should_block(
        self,
        subject_id: str,
        amount: Any,
        reason: str,
        session: Session | None = None,
    ) -> bool:
        return self._run(
            session,
            lambda s: ZeroBillingService(
                s, self._audit_log(s), self.policy.billing
            ).should_block(subject_id, amount, reason),
        )

    def validate_direction(self, transfer: PayoutTransfer) -> DirectionValidation:
        return validate_direction(transfer, self.policy.billing)

    # ------------------------------------------------------------------
    # Kill switch
    # ------------------------------------------------------------------

    def activate(
        self,
        operator: Actor | str,
        reason: str,
        components: Iterable[SystemComponent | str] | None = None,
        session: Session | None = None,
    ) -> OperatorResult:
        return self._run_kill_switch(
            session, lambda svc: svc.activate(operator, reason, components)
        )

    def deactivate(self, operator: Actor | str, session: Session | None = None) -> OperatorResult:
        return self._run_kill_switch(session, lambda svc: svc.deactivate(operator))

    def add_allowed_party(
        self,
        operator: Actor | str,
        party_id: str,
        session: Session | None = None,
    ) -> OperatorResult:
        return self._run_kill_switch(
            session, lambda svc: svc.add_allowed_party(operator, party_id)
        )

    def is_blocked(self, component: SystemComponent | str, party_id: str) -> bool:
        blocked = self.kill_switch.is_blocked(component, party_id)
        if blocked:
            logger.info(
                "kill_switch_blocked_request",
                extra={"component": SystemComponent(component).value, "party_id": party_id},
            )
        return blocked

    def is_active(self) -> bool:
        return self.kill_switch.is_active()

    def kill_switch_state(self) -> KillSwitchState:
        return self.kill_switch.state

    def status(self) -> dict[str, Any]:
        """Public kill-switch status, safe to show any user."""
        return self.kill_switch.state.public_view()

    # ------------------------------------------------------------------
    # Override authority
    # ------------------------------------------------------------------

    def override_split(
        self,
        operator: Actor | str,
        transaction_id: str,
        original_split: SplitProposal | Mapping,
        new_split: SplitProposal | Mapping,
        reason: str,
        affected_party_id: str | None = None,
        session: Session | None = None,
    ) -> OperatorResult:
        return self._run(
            session,
            lambda s: self._override_service(s).override_split(
                operator, transaction_id, original_split, new_split, reason, affected_party_id
            ),
        )

    def adjust_payout(
        self,
        operator: Actor | str,
        party_id: str,
        original_amount: Any,
        new_amount: Any,
        reason: str,
        session: Session | None = None,
    ) -> OperatorResult:
        return self._run(
            session,
            lambda s: self._override_service(s).adjust_payout(
                operator, party_id, original_amount, new_amount, reason
            ),
        )

    def set_operator_commission_rate(
        self,
        operator: Actor | str,
        new_rate: Any,
        session: Session | None = None,
    ) -> OperatorResult:
        return self._run_restoring(
            session,
            lambda s: self._override_service(s).set_operator_commission_rate(operator, new_rate),
            self._restore_rate,
            "operator_rate_change_not_committed",
        )

    def apply_operator_commission(self, total_revenue: Any) -> OperatorCommission:
        return apply_operator_commission(total_revenue, self.standing_rate.value)

    def operator_commission_rate(self) -> Decimal:
        return self.standing_rate.value

    # ------------------------------------------------------------------
    # Audit log queries
    # ------------------------------------------------------------------

    def statistics(self, session: Session | None = None) -> ControlPlaneStatistics:
        return self._run(
            session,
            lambda s: AuditSelector(s).statistics(kill_switch=self.status()),
        )

    def recent_failsafe_events(
        self, limit: int = DEFAULT_LIMIT, session: Session | None = None
    ) -> list[FailsafeEventDTO]:
        return self._run(session, lambda s: AuditSelector(s).recent_failsafe_events(limit))

    def recent_blocked_charges(
        self, limit: int = DEFAULT_LIMIT, session: Session | None = None
    ) -> list[BlockedChargeDTO]:
        return self._run(session, lambda s: AuditSelector(s).recent_blocked_charges(limit))

    def recent_overrides(
        self, limit: int = DEFAULT_LIMIT, session: Session | None = None
    ) -> list[OverrideRecordDTO]:
        return self._run(session, lambda s: AuditSelector(s).recent_overrides(limit))

    def kill_switch_trail(self, session: Session | None = None) -> list[KillSwitchEventDTO]:
        return self._run(session, lambda s: AuditSelector(s).kill_switch_trail())
