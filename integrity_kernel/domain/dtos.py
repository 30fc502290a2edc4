"""
Domain Data Transfer Objects -- results returned by the control plane.

Every check in the control plane reports its outcome as one of these frozen
dataclasses rather than raising.  Anomalies detected by the pure validators
are described by ``FailsafeFinding`` values; the service layer turns each
finding into exactly one persisted FailsafeEvent.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from integrity_kernel.domain.values import RevenueEvent


class Severity(str, Enum):
    """Propagation tier of an economic anomaly."""

    CRITICAL = "CRITICAL"  # valid=False, always quarantined
    HIGH = "HIGH"  # auto-corrected, caller proceeds
    MEDIUM = "MEDIUM"  # silently corrected, logged for observability


class FailsafeKind(str, Enum):
    """Kinds of anomaly recorded as FailsafeEvents."""

    NEGATIVE_REVENUE = "NEGATIVE_REVENUE"
    INVALID_REGION = "INVALID_REGION"
    MISSING_PARTY = "MISSING_PARTY"
    CORRUPTED_SPLIT = "CORRUPTED_SPLIT"
    IMPOSSIBLE_MULTIPLIER = "IMPOSSIBLE_MULTIPLIER"


class BlockRule(str, Enum):
    """Why the zero-billing guard refused a charge."""

    FORBIDDEN_REASON = "FORBIDDEN_REASON"
    UNLISTED_REASON = "UNLISTED_REASON"


class OverrideKind(str, Enum):
    """Kinds of operator override."""

    SPLIT_OVERRIDE = "SPLIT_OVERRIDE"
    PAYOUT_ADJUSTMENT = "PAYOUT_ADJUSTMENT"
    RATE_CHANGE = "RATE_CHANGE"


class KillSwitchAction(str, Enum):
    """Transitions recorded on the kill-switch trail."""

    ACTIVATED = "ACTIVATED"
    DEACTIVATED = "DEACTIVATED"
    PARTY_ALLOWED = "PARTY_ALLOWED"


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Guarantees:
        - Immutable (frozen dataclass)
        - code is always present (machine-readable error code)
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class FailsafeFinding:
    """
    One detected economic anomaly, not yet persisted.

    Contract:
        Produced by pure validators.  The FailsafeService appends exactly one
        FailsafeEvent per finding.
    """

    kind: FailsafeKind
    severity: Severity
    description: str
    correction_applied: bool
    correction_action: str
    correction_result: str
    quarantined: bool
    affected_party_id: str | None = None
    affected_transaction_id: str | None = None


@dataclass(frozen=True)
class RevenueValidation:
    """
    Result of validating a RevenueEvent.

    ``valid`` is False iff any finding is CRITICAL.  ``corrected`` is set
    whenever any check fired; the caller must use it instead of the
    original event.
    """

    valid: bool
    errors: tuple[ValidationError, ...] = ()
    corrected: RevenueEvent | None = None
    findings: tuple[FailsafeFinding, ...] = ()

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.errors)

    @property
    def quarantined(self) -> bool:
        return any(f.quarantined for f in self.findings)

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class MultiplierValidation:
    """Result of clamping a purchasing-power multiplier."""

    valid: bool
    corrected: Decimal | None = None
    finding: FailsafeFinding | None = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class SplitValidation:
    """Result of checking a percentage split.  No auto-correction ever."""

    valid: bool
    errors: tuple[ValidationError, ...] = ()
    findings: tuple[FailsafeFinding, ...] = ()

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.errors)

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class FloorValidation:
    """Read-only earnings floor check."""

    valid: bool
    protected_percent: Decimal
    message: str

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class ChargeDecision:
    """Outcome of classifying a charge reason against the billing lists."""

    blocked: bool
    rule: BlockRule | None = None
    matched: str | None = None


@dataclass(frozen=True)
class DirectionValidation:
    """Outcome of checking which way a transfer flows."""

    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class OperatorResult:
    """
    Result of every operator-gated call.

    Authorization failures are ordinary results with a message starting
    with ``UNAUTHORIZED``; they never raise.
    """

    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **details: Any) -> OperatorResult:
        return cls(success=True, message=message, details=details)

    @classmethod
    def rejected(cls, message: str, **details: Any) -> OperatorResult:
        return cls(success=False, message=message, details=details)

    @property
    def unauthorized(self) -> bool:
        return not self.success and self.message.startswith("UNAUTHORIZED")

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class OperatorCommission:
    """Standing operator commission applied to a revenue total."""

    operator_amount: Decimal
    remaining: Decimal
    rate: Decimal
