"""
Configuration Loader (``integrity_config.loader``).

Responsibility
--------------
Loads a YAML policy set and parses it into the frozen policy dataclasses.
Runtime callers go through ``integrity_config.get_active_config()``.

Invariants enforced
-------------------
* Every parse failure, including malformed YAML and missing or invalid
  values, raises ``ConfigurationError`` naming the source and the field.
* Numbers become ``Decimal`` via their string form; a YAML float never
  reaches the kernel as a float.
* ``compute_checksum`` is deterministic for equal content.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from integrity_config.schema import (
    BillingPolicy,
    FloorPolicy,
    IntegrityConfigSet,
    IntegrityPolicy,
    MultiplierBand,
    OperatorPolicy,
    RevenuePolicy,
    SplitPolicy,
)
from integrity_kernel.domain.values import RecipientRole
from integrity_kernel.exceptions import ConfigurationError
from integrity_kernel.utils.hashing import hash_payload


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: the file is missing, unreadable, not YAML, or
            not a mapping at the top level.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(str(path), f"cannot read file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(path), f"malformed YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of the parsed YAML."""
    return hash_payload(data)


def _decimal(value: Any, source: str, field_name: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ConfigurationError(source, f"{field_name} must be a number, got {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ConfigurationError(source, f"{field_name} is not a number: {value!r}") from exc
    if not result.is_finite():
        raise ConfigurationError(source, f"{field_name} must be finite, got {value!r}")
    return result


def _strings(value: Any, source: str, field_name: str) -> tuple[str, ...]:
    """A YAML list of non-blank strings; a bare scalar is refused."""
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ConfigurationError(source, f"{field_name} must be a list, got {value!r}")
    items = tuple(str(v).strip() for v in value)
    if any(not item for item in items):
        raise ConfigurationError(source, f"{field_name} must not contain blank entries")
    return items


def _section(data: dict[str, Any], key: str, source: str) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(source, f"'{key}' must be a mapping")
    return section


def _role(value: Any, source: str, field_name: str) -> RecipientRole:
    try:
        return RecipientRole(str(value).lower())
    except ValueError as exc:
        raise ConfigurationError(source, f"{field_name} is not a recipient role: {value!r}") from exc


def parse_revenue(data: dict[str, Any], source: str) -> RevenuePolicy:
    regions = data.get("regions") or {}
    if not isinstance(regions, dict) or not regions:
        raise ConfigurationError(source, "revenue.regions must list at least one region")

    bands: dict[str, MultiplierBand] = {}
    for code, entry in regions.items():
        band = entry.get("multiplier") if isinstance(entry, dict) else None
        if band is None:
            continue
        if not isinstance(band, dict):
            raise ConfigurationError(source, f"revenue.regions.{code}.multiplier must be a mapping")
        try:
            bands[str(code)] = MultiplierBand(
                minimum=_decimal(band.get("min"), source, f"revenue.regions.{code}.multiplier.min"),
                maximum=_decimal(band.get("max"), source, f"revenue.regions.{code}.multiplier.max"),
            )
        except ValueError as exc:
            raise ConfigurationError(source, str(exc)) from exc

    try:
        return RevenuePolicy(
            region_codes=frozenset(str(c) for c in regions),
            default_region=str(data.get("default_region", "")),
            multiplier_bands=bands,
        )
    except ValueError as exc:
        raise ConfigurationError(source, str(exc)) from exc


def parse_split(data: dict[str, Any], source: str) -> SplitPolicy:
    defaults = SplitPolicy()
    return SplitPolicy(
        primary_role=_role(data.get("primary_role", defaults.primary_role.value), source, "split.primary_role"),
        minimum_primary_percent=_decimal(
            data.get("minimum_primary_percent", defaults.minimum_primary_percent),
            source,
            "split.minimum_primary_percent",
        ),
        tolerance=_decimal(data.get("tolerance", defaults.tolerance), source, "split.tolerance"),
    )


def parse_floor(data: dict[str, Any], source: str) -> FloorPolicy:
    defaults = FloorPolicy()
    floor_percent = _decimal(
        data.get("floor_percent", defaults.floor_percent), source, "floor.floor_percent"
    )
    if not Decimal("0") <= floor_percent <= Decimal("100"):
        raise ConfigurationError(source, f"floor.floor_percent {floor_percent} is outside [0, 100]")
    return FloorPolicy(
        protected_role=_role(
            data.get("protected_role", defaults.protected_role.value), source, "floor.protected_role"
        ),
        floor_percent=floor_percent,
    )


def parse_billing(data: dict[str, Any], source: str) -> BillingPolicy:
    defaults = BillingPolicy()
    marker = str(data.get("premium_marker", defaults.premium_marker) or "").strip().lower()
    if not marker:
        raise ConfigurationError(source, "billing.premium_marker must not be blank")
    return BillingPolicy(
        forbidden_reasons=_strings(
            data.get("forbidden_reasons", defaults.forbidden_reasons),
            source,
            "billing.forbidden_reasons",
        ),
        allowed_reasons=_strings(
            data.get("allowed_reasons", defaults.allowed_reasons),
            source,
            "billing.allowed_reasons",
        ),
        platform_ids=frozenset(
            _strings(data.get("platform_ids", defaults.platform_ids), source, "billing.platform_ids")
        ),
        premium_marker=marker,
    )


def parse_operator(data: dict[str, Any], source: str) -> OperatorPolicy:
    ids = frozenset(_strings(data.get("operator_ids"), source, "operator.operator_ids"))
    prefixes = _strings(data.get("operator_id_prefixes"), source, "operator.operator_id_prefixes")
    if not ids and not prefixes:
        raise ConfigurationError(source, "operator.operator_ids or operator_id_prefixes is required")

    rate = data.get("commission_rate") or {}
    defaults = OperatorPolicy()
    try:
        return OperatorPolicy(
            operator_ids=ids,
            operator_id_prefixes=prefixes,
            required_role=str(data.get("required_role", defaults.required_role)),
            default_commission_rate=_decimal(
                rate.get("default", defaults.default_commission_rate),
                source,
                "operator.commission_rate.default",
            ),
            minimum_commission_rate=_decimal(
                rate.get("min", defaults.minimum_commission_rate),
                source,
                "operator.commission_rate.min",
            ),
            maximum_commission_rate=_decimal(
                rate.get("max", defaults.maximum_commission_rate),
                source,
                "operator.commission_rate.max",
            ),
        )
    except ValueError as exc:
        raise ConfigurationError(source, str(exc)) from exc


def parse_config_set(data: dict[str, Any], source: str = "<memory>") -> IntegrityConfigSet:
    """Parse an already-loaded YAML mapping into an ``IntegrityConfigSet``."""
    config_id = data.get("config_id")
    if not config_id:
        raise ConfigurationError(source, "config_id is required")
    try:
        version = int(data.get("version", 1))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(source, f"version is not an integer: {data.get('version')!r}") from exc

    policy = IntegrityPolicy(
        revenue=parse_revenue(_section(data, "revenue", source), source),
        split=parse_split(_section(data, "split", source), source),
        floor=parse_floor(_section(data, "floor", source), source),
        billing=parse_billing(_section(data, "billing", source), source),
        operator=parse_operator(_section(data, "operator", source), source),
    )
    return IntegrityConfigSet(
        config_id=str(config_id),
        version=version,
        policy=policy,
        checksum=compute_checksum(data),
        description=str(data.get("description", "")),
    )


def load_config_set(path: Path) -> IntegrityConfigSet:
    """Load and parse one YAML policy set file."""
    path = Path(path)
    config_set = parse_config_set(load_yaml_file(path), source=str(path))
    return IntegrityConfigSet(
        config_id=config_set.config_id,
        version=config_set.version,
        policy=config_set.policy,
        checksum=config_set.checksum,
        description=config_set.description,
        source=path,
    )
