"""
Pure domain layer.

This module contains value objects, policy dataclasses, result DTOs and the
validators and correctors of the control plane, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files

Wall-clock time is only read through an injected Clock.
"""

from integrity_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from integrity_kernel.domain.dtos import (
    BlockRule,
    ChargeDecision,
    DirectionValidation,
    FailsafeFinding,
    FailsafeKind,
    FloorValidation,
    KillSwitchAction,
    MultiplierValidation,
    OperatorCommission,
    OperatorResult,
    OverrideKind,
    RevenueValidation,
    Severity,
    SplitValidation,
    ValidationError,
)
from integrity_kernel.domain.earnings_floor import (
    apply_floor,
    protected_percent,
    validate_floor,
)
from integrity_kernel.domain.kill_switch import (
    KillSwitch,
    KillSwitchState,
    KillSwitchTransition,
)
from integrity_kernel.domain.operator_authority import OperatorAuthority
from integrity_kernel.domain.operator_commission import (
    StandingRate,
    apply_operator_commission,
)
from integrity_kernel.domain.policy import (
    BillingPolicy,
    FloorPolicy,
    IntegrityPolicy,
    MultiplierBand,
    OperatorPolicy,
    RevenuePolicy,
    SplitPolicy,
)
from integrity_kernel.domain.revenue_validator import (
    validate_purchasing_power_multiplier,
    validate_revenue_event,
)
from integrity_kernel.domain.split_enforcer import validate_split
from integrity_kernel.domain.values import (
    Actor,
    CommissionBreakdown,
    PayoutTransfer,
    Recipient,
    RecipientRole,
    RevenueEvent,
    SplitProposal,
    SystemComponent,
)
from integrity_kernel.domain.zero_billing import classify_charge, validate_direction

__all__ = [
    # Value objects
    "Actor",
    "CommissionBreakdown",
    "PayoutTransfer",
    "Recipient",
    "RecipientRole",
    "RevenueEvent",
    "SplitProposal",
    "SystemComponent",
    # Policy
    "BillingPolicy",
    "FloorPolicy",
    "IntegrityPolicy",
    "MultiplierBand",
    "OperatorPolicy",
    "RevenuePolicy",
    "SplitPolicy",
    # DTOs
    "BlockRule",
    "ChargeDecision",
    "DirectionValidation",
    "FailsafeFinding",
    "FailsafeKind",
    "FloorValidation",
    "KillSwitchAction",
    "MultiplierValidation",
    "OperatorCommission",
    "OperatorResult",
    "OverrideKind",
    "RevenueValidation",
    "Severity",
    "SplitValidation",
    "ValidationError",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Validators and state
    "KillSwitch",
    "KillSwitchState",
    "KillSwitchTransition",
    "OperatorAuthority",
    "StandingRate",
    "apply_floor",
    "apply_operator_commission",
    "classify_charge",
    "protected_percent",
    "validate_direction",
    "validate_floor",
    "validate_purchasing_power_multiplier",
    "validate_revenue_event",
    "validate_split",
]
