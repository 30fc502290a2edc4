"""
Policy -- frozen policy parameters consumed by the pure validators.

Responsibility:
    Holds every tunable the control plane checks against: recognized region
    codes and purchasing-power bands, split floor and tolerance, earnings
    floor, billing allow/deny lists, and operator identities.  Defaults
    reproduce the reference marketplace policy; ``integrity_config`` builds
    these from YAML so new markets need no code change.

Architecture position:
    Kernel > Domain -- pure data.  The kernel never reads configuration
    files; callers pass an ``IntegrityPolicy`` in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from integrity_kernel.domain.values import RecipientRole


@dataclass(frozen=True)
class MultiplierBand:
    """Inclusive [minimum, maximum] band for a regional pricing multiplier."""

    minimum: Decimal
    maximum: Decimal

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(
                f"Multiplier band minimum {self.minimum} exceeds maximum {self.maximum}"
            )

    def clamp(self, value: Decimal) -> Decimal:
        return max(self.minimum, min(self.maximum, value))

    def contains(self, value: Decimal) -> bool:
        return self.minimum <= value <= self.maximum


def _default_bands() -> Mapping[str, MultiplierBand]:
    return MappingProxyType(
        {
            "US": MultiplierBand(Decimal("0.9"), Decimal("1.1")),
            "DR": MultiplierBand(Decimal("0.3"), Decimal("0.6")),
            "DO": MultiplierBand(Decimal("0.3"), Decimal("0.6")),
            "HAITI": MultiplierBand(Decimal("0.2"), Decimal("0.5")),
        }
    )


@dataclass(frozen=True)
class RevenuePolicy:
    """Region allow-list, default region and purchasing-power bands."""

    region_codes: frozenset[str] = frozenset({"US", "DR", "HAITI", "DO"})
    default_region: str = "US"
    multiplier_bands: Mapping[str, MultiplierBand] = field(default_factory=_default_bands)

    def __post_init__(self) -> None:
        codes = frozenset(c.upper() for c in self.region_codes)
        object.__setattr__(self, "region_codes", codes)
        object.__setattr__(self, "default_region", self.default_region.upper())
        object.__setattr__(
            self,
            "multiplier_bands",
            MappingProxyType({k.upper(): v for k, v in self.multiplier_bands.items()}),
        )
        if self.default_region not in codes:
            raise ValueError(
                f"Default region {self.default_region} is not a recognized region"
            )

    def is_recognized(self, region: str) -> bool:
        return (region or "").strip().upper() in self.region_codes

    def band_for(self, region: str) -> MultiplierBand | None:
        return self.multiplier_bands.get((region or "").strip().upper())


@dataclass(frozen=True)
class SplitPolicy:
    """Split totals and the primary earner's minimum share."""

    primary_role: RecipientRole = RecipientRole.CREATOR
    minimum_primary_percent: Decimal = Decimal("70")
    tolerance: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class FloorPolicy:
    """Protected party earnings floor funded from platform margin."""

    protected_role: RecipientRole = RecipientRole.OPERATOR
    floor_percent: Decimal = Decimal("15")


@dataclass(frozen=True)
class BillingPolicy:
    """Zero-billing reason lists and platform identities."""

    forbidden_reasons: tuple[str, ...] = (
        "platform_fee",
        "monthly_subscription",
        "storage_fee",
        "bandwidth_fee",
        "api_usage",
        "hosting_fee",
        "usage_fee",
    )
    allowed_reasons: tuple[str, ...] = (
        "premium_ai_generation",
        "verified_badge",
        "promoted_listing",
    )
    platform_ids: frozenset[str] = frozenset({"platform", "creatorvault", "system"})
    premium_marker: str = "premium"

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "forbidden_reasons", tuple(r.lower() for r in self.forbidden_reasons)
        )
        object.__setattr__(
            self, "allowed_reasons", tuple(r.lower() for r in self.allowed_reasons)
        )
        object.__setattr__(
            self, "platform_ids", frozenset(p.lower() for p in self.platform_ids)
        )

    def is_platform(self, party_id: str) -> bool:
        return (party_id or "").strip().lower() in self.platform_ids


@dataclass(frozen=True)
class OperatorPolicy:
    """Who may act as the operator, and the standing commission bounds."""

    operator_ids: frozenset[str] = frozenset()
    operator_id_prefixes: tuple[str, ...] = ()
    required_role: str = "operator"
    default_commission_rate: Decimal = Decimal("2")
    minimum_commission_rate: Decimal = Decimal("0")
    maximum_commission_rate: Decimal = Decimal("10")

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator_ids", frozenset(self.operator_ids))
        object.__setattr__(
            self, "operator_id_prefixes", tuple(p for p in self.operator_id_prefixes if p)
        )
        if not (
            self.minimum_commission_rate
            <= self.default_commission_rate
            <= self.maximum_commission_rate
        ):
            raise ValueError("Default commission rate lies outside its bounds")


@dataclass(frozen=True)
class IntegrityPolicy:
    """The complete policy set for one deployment."""

    revenue: RevenuePolicy = field(default_factory=RevenuePolicy)
    split: SplitPolicy = field(default_factory=SplitPolicy)
    floor: FloorPolicy = field(default_factory=FloorPolicy)
    billing: BillingPolicy = field(default_factory=BillingPolicy)
    operator: OperatorPolicy = field(default_factory=OperatorPolicy)
