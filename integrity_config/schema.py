"""
Integrity configuration schema.

``IntegrityConfigSet`` is the reviewable source artifact parsed from one
YAML file: identity, version and the kernel ``IntegrityPolicy`` it
describes, plus the checksum of the canonicalized source.  The policy
dataclasses themselves live in ``integrity_kernel.domain.policy`` because
the kernel validators consume them directly; they are re-exported here so
configuration code has a single import point.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from integrity_kernel.domain.policy import (
    BillingPolicy,
    FloorPolicy,
    IntegrityPolicy,
    MultiplierBand,
    OperatorPolicy,
    RevenuePolicy,
    SplitPolicy,
)


@dataclass(frozen=True)
class IntegrityConfigSet:
    """One parsed, validated policy set."""

    config_id: str
    version: int
    policy: IntegrityPolicy
    checksum: str
    description: str = ""
    source: Path | None = None


__all__ = [
    "BillingPolicy",
    "FloorPolicy",
    "IntegrityConfigSet",
    "IntegrityPolicy",
    "MultiplierBand",
    "OperatorPolicy",
    "RevenuePolicy",
    "SplitPolicy",
]
