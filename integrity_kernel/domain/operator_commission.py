"""
Operator commission -- standing rate holder and the pure commission split.

``apply_operator_commission`` is a read-derived calculation and is never
operator-gated.  ``StandingRate`` is the one piece of shared mutable state
besides the kill switch; writes are serialized by its own lock.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from decimal import Decimal

from integrity_kernel.domain.dtos import OperatorCommission
from integrity_kernel.domain.policy import OperatorPolicy
from integrity_kernel.domain.values import HUNDRED, floor_units, to_decimal
from integrity_kernel.logging_config import get_logger

logger = get_logger("domain.operator_commission")


def apply_operator_commission(total_revenue, rate) -> OperatorCommission:
    """operator_amount = floor(total * rate / 100); remaining is the rest."""
    total = to_decimal(total_revenue, "total_revenue")
    rate = to_decimal(rate, "rate")
    operator_amount = floor_units(total * rate / HUNDRED)
    return OperatorCommission(
        operator_amount=operator_amount,
        remaining=total - operator_amount,
        rate=rate,
    )


class StandingRate:
    """
    Thread-safe holder for the operator's standing commission rate.

    Each accepted change is numbered under the lock; the number is stored
    with its RATE_CHANGE record so the latest change is unambiguous on
    restore even when two changes share a timestamp.
    """

    def __init__(self, policy: OperatorPolicy | None = None):
        self._policy = policy or OperatorPolicy()
        self._lock = threading.Lock()
        self._rate = self._policy.default_commission_rate
        self._seq = 0

    @property
    def value(self) -> Decimal:
        return self._rate

    def in_bounds(self, rate: Decimal) -> bool:
        return (
            self._policy.minimum_commission_rate
            <= rate
            <= self._policy.maximum_commission_rate
        )

    def bounds(self) -> tuple[Decimal, Decimal]:
        return (self._policy.minimum_commission_rate, self._policy.maximum_commission_rate)

    def swap(
        self,
        new_rate: Decimal,
        record: Callable[[Decimal, Decimal, int], None] | None = None,
    ) -> Decimal:
        """
        Replace the rate and return the previous one.

        ``record(previous, new, seq)`` runs under the lock before the swap;
        if it raises, the rate is left unchanged.
        """
        new_rate = to_decimal(new_rate, "rate")
        if not self.in_bounds(new_rate):
            raise ValueError(f"Commission rate {new_rate} is outside {self.bounds()}")
        with self._lock:
            previous = self._rate
            seq = self._seq + 1
            if record is not None:
                record(previous, new_rate, seq)
            self._seq = seq
            self._rate = new_rate
            return previous

    def restore(self, rate: Decimal | None, seq: int = 0) -> None:
        """
        Reset to a persisted rate, or to the policy default when there is
        none.  An out-of-bounds persisted rate also falls back to the default.
        """
        rate = self._policy.default_commission_rate if rate is None else to_decimal(rate, "rate")
        if not self.in_bounds(rate):
            logger.warning(
                "operator_rate_restore_out_of_bounds",
                extra={"rate": str(rate), "bounds": [str(b) for b in self.bounds()]},
            )
            rate = self._policy.default_commission_rate
        with self._lock:
            self._rate = rate
            self._seq = max(self._seq, seq)
