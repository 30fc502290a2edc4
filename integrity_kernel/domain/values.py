"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the candidate money-movement descriptions that callers hand to
    the control plane: RevenueEvent, CommissionBreakdown, SplitProposal and
    PayoutTransfer, plus the closed enumerations they are tagged with
    (RecipientRole, SystemComponent) and the Actor identity used for
    operator authorization.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module.

Invariants enforced:
    - All amounts and percentages are Decimal (never float).  A float raises
      FloatAmountError at construction.
    - Recipients carry an explicit RecipientRole chosen when the breakdown is
      built; nothing downstream infers a role from a label string.
    - Value objects are frozen.  Corrections produce new instances via
      dataclasses.replace(); the caller's object is never mutated.

Failure modes:
    - FloatAmountError when a float is passed as money or a percentage.
    - ValueError on non-numeric strings or unknown enum values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from integrity_kernel.exceptions import FloatAmountError

HUNDRED = Decimal("100")


class RecipientRole(str, Enum):
    """Closed set of roles a split recipient can hold."""

    CREATOR = "creator"
    OPERATOR = "operator"
    FOUNDER = "founder"
    RECRUITER = "recruiter"
    AFFILIATE = "affiliate"
    PLATFORM = "platform"


class SystemComponent(str, Enum):
    """Components the kill switch can halt."""

    PAYMENTS = "payments"
    CONTENT_UPLOAD = "content_upload"
    LIVE_STREAMING = "live_streaming"
    MARKETPLACE = "marketplace"
    MESSAGING = "messaging"
    AI_GENERATION = "ai_generation"
    ALL = "all"


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """
    Convert an int, str or Decimal to a finite Decimal.

    Raises:
        FloatAmountError: value is a float.
        ValueError: value is not numeric, or is NaN or infinite.
    """
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be numeric, not bool")
    if isinstance(value, float):
        raise FloatAmountError(field_name, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"{field_name} is not a number: {value!r}") from exc
    else:
        raise TypeError(f"{field_name} must be Decimal, int or str, not {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"{field_name} must be finite, got {value!r}")
    return result


def floor_units(value: Decimal) -> Decimal:
    """Round down to a whole currency unit."""
    return value.to_integral_value(rounding=ROUND_FLOOR)


def percentage_of(amount: Decimal, total: Decimal) -> Decimal:
    """Return amount as a percentage of total (0 when total is 0)."""
    if total == 0:
        return Decimal("0")
    return amount / total * HUNDRED


def format_percent(value: Decimal) -> str:
    """Render a percentage without trailing zeros or exponent ("105", "70.5")."""
    return format(value.normalize(), "f")


@dataclass(frozen=True, slots=True)
class Actor:
    """
    An authenticated identity with role claims.

    The roles come from whatever authenticated the caller (a signed token,
    a session); the control plane never derives them from the id string.
    """

    actor_id: str
    roles: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", frozenset(self.roles))

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True, slots=True)
class RevenueEvent:
    """One unvalidated claim that a party earned ``amount``."""

    earning_party_id: str
    amount: Decimal
    origin_region: str
    source_transaction_id: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))


@dataclass(frozen=True, slots=True)
class Recipient:
    """One party's line in a commission breakdown."""

    recipient_id: str
    role: RecipientRole
    amount: Decimal
    percentage: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", RecipientRole(self.role))
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))
        object.__setattr__(
            self, "percentage", to_decimal(self.percentage, "percentage")
        )

    @classmethod
    def of(
        cls,
        recipient_id: str,
        role: RecipientRole | str,
        amount: Any,
        total_amount: Any,
    ) -> Recipient:
        """Build a recipient whose percentage is derived from the total."""
        amt = to_decimal(amount, "amount")
        total = to_decimal(total_amount, "total_amount")
        return cls(
            recipient_id=recipient_id,
            role=RecipientRole(role),
            amount=amt,
            percentage=percentage_of(amt, total),
        )


@dataclass(frozen=True, slots=True)
class CommissionBreakdown:
    """
    A multi-party split of ``total_amount``.

    Invariant: sum(recipient amounts) + platform_margin == total_amount.
    ``floor_adjustment`` is set only by the earnings floor corrector.
    """

    total_amount: Decimal
    platform_margin: Decimal
    recipients: tuple[Recipient, ...]
    floor_adjustment: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "total_amount", to_decimal(self.total_amount, "total_amount")
        )
        object.__setattr__(
            self, "platform_margin", to_decimal(self.platform_margin, "platform_margin")
        )
        object.__setattr__(self, "recipients", tuple(self.recipients))
        if self.floor_adjustment is not None:
            object.__setattr__(
                self,
                "floor_adjustment",
                to_decimal(self.floor_adjustment, "floor_adjustment"),
            )

    @property
    def recipients_total(self) -> Decimal:
        return sum((r.amount for r in self.recipients), Decimal("0"))

    @property
    def percentage_total(self) -> Decimal:
        return sum((r.percentage for r in self.recipients), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.recipients_total + self.platform_margin == self.total_amount

    def amount_for_role(self, role: RecipientRole) -> Decimal:
        """Sum of every recipient amount tagged with ``role``."""
        role = RecipientRole(role)
        return sum(
            (r.amount for r in self.recipients if r.role == role), Decimal("0")
        )


@dataclass(frozen=True)
class SplitProposal:
    """Proposed percentage split across roles."""

    recipient_percentages: Mapping[RecipientRole, Decimal]
    total: Decimal | None = None

    def __post_init__(self) -> None:
        normalized = {
            RecipientRole(role): to_decimal(pct, f"percentage[{role}]")
            for role, pct in self.recipient_percentages.items()
        }
        object.__setattr__(self, "recipient_percentages", normalized)
        if self.total is not None:
            object.__setattr__(self, "total", to_decimal(self.total, "total"))

    @classmethod
    def coerce(cls, value: SplitProposal | Mapping[Any, Any]) -> SplitProposal:
        if isinstance(value, SplitProposal):
            return value
        return cls(recipient_percentages=dict(value))

    @property
    def percentage_total(self) -> Decimal:
        return sum(self.recipient_percentages.values(), Decimal("0"))

    def percentage_for(self, role: RecipientRole) -> Decimal:
        return self.recipient_percentages.get(RecipientRole(role), Decimal("0"))

    def as_dict(self) -> dict[str, str]:
        """JSON-safe representation for audit records."""
        return {
            role.value: str(pct) for role, pct in self.recipient_percentages.items()
        }


@dataclass(frozen=True, slots=True)
class PayoutTransfer:
    """A proposed movement of money from one party to another."""

    from_id: str
    to_id: str
    amount: Decimal
    kind: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))


def components_from(
    values: Iterable[SystemComponent | str] | None,
) -> frozenset[SystemComponent]:
    """Normalize a caller-supplied component list; None or empty means ALL."""
    if not values:
        return frozenset({SystemComponent.ALL})
    return frozenset(SystemComponent(v) for v in values)
