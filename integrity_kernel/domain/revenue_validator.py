"""RevenueValidator -- Pure revenue event and multiplier validation functions."""

from dataclasses import replace
from decimal import Decimal

from integrity_kernel.domain.dtos import (
    FailsafeFinding,
    FailsafeKind,
    MultiplierValidation,
    RevenueValidation,
    Severity,
    ValidationError,
)
from integrity_kernel.domain.policy import RevenuePolicy
from integrity_kernel.domain.values import RevenueEvent, to_decimal
from integrity_kernel.logging_config import get_logger

logger = get_logger("domain.revenue_validator")

NEGATIVE_REVENUE = "NEGATIVE_REVENUE"
INVALID_REGION = "INVALID_REGION"
MISSING_PARTY = "MISSING_PARTY"


def validate_revenue_event(
    event: RevenueEvent,
    policy: RevenuePolicy | None = None,
) -> RevenueValidation:
    """Validate a revenue event before it may generate commissions.

    Checks run in a fixed order (amount, region, party) and every check that
    fires yields one finding.  The input event is never mutated; when any
    check fires a corrected copy is returned.
    """
    policy = policy or RevenuePolicy()
    errors: list[ValidationError] = []
    findings: list[FailsafeFinding] = []
    corrected = event

    party_id = event.earning_party_id or None
    txn_id = event.source_transaction_id or None

    if event.amount < 0:
        errors.append(
            ValidationError(
                code=NEGATIVE_REVENUE,
                message="Revenue amount cannot be negative",
                field="amount",
                details={"amount": str(event.amount)},
            )
        )
        findings.append(
            FailsafeFinding(
                kind=FailsafeKind.NEGATIVE_REVENUE,
                severity=Severity.CRITICAL,
                description=f"Negative revenue detected: {event.amount}",
                correction_applied=True,
                correction_action="Set revenue to 0",
                correction_result="Event quarantined",
                quarantined=True,
                affected_party_id=party_id,
                affected_transaction_id=txn_id,
            )
        )
        corrected = replace(corrected, amount=Decimal("0"))

    if not policy.is_recognized(event.origin_region):
        errors.append(
            ValidationError(
                code=INVALID_REGION,
                message=(
                    "Region code must be one of "
                    f"{', '.join(sorted(policy.region_codes))}"
                ),
                field="origin_region",
                details={"origin_region": event.origin_region},
            )
        )
        findings.append(
            FailsafeFinding(
                kind=FailsafeKind.INVALID_REGION,
                severity=Severity.HIGH,
                description=f"Invalid region code: {event.origin_region}",
                correction_applied=True,
                correction_action=f"Default to {policy.default_region}",
                correction_result="Region code corrected",
                quarantined=False,
                affected_party_id=party_id,
                affected_transaction_id=txn_id,
            )
        )
        corrected = replace(corrected, origin_region=policy.default_region)

    if not event.earning_party_id or not event.earning_party_id.strip():
        errors.append(
            ValidationError(
                code=MISSING_PARTY,
                message="Earning party id is required",
                field="earning_party_id",
            )
        )
        findings.append(
            FailsafeFinding(
                kind=FailsafeKind.MISSING_PARTY,
                severity=Severity.CRITICAL,
                description="Missing earning party id in revenue event",
                correction_applied=False,
                correction_action="None",
                correction_result="Event quarantined",
                quarantined=True,
                affected_transaction_id=txn_id,
            )
        )

    if not findings:
        logger.debug(
            "revenue_event_passed",
            extra={"source_transaction_id": event.source_transaction_id},
        )
        return RevenueValidation(valid=True)

    valid = not any(f.severity == Severity.CRITICAL for f in findings)
    logger.warning(
        "revenue_event_anomalies",
        extra={
            "source_transaction_id": event.source_transaction_id,
            "error_codes": [e.code for e in errors],
            "valid": valid,
        },
    )
    return RevenueValidation(
        valid=valid,
        errors=tuple(errors),
        corrected=corrected,
        findings=tuple(findings),
    )


def validate_purchasing_power_multiplier(
    multiplier: Decimal,
    region: str,
    policy: RevenuePolicy | None = None,
) -> MultiplierValidation:
    """Clamp a regional pricing multiplier into the region's band.

    Unknown regions pass through unchanged; callers are expected to have
    defaulted the region through ``validate_revenue_event`` first.
    """
    policy = policy or RevenuePolicy()
    value = to_decimal(multiplier, "multiplier")
    band = policy.band_for(region)
    if band is None or band.contains(value):
        return MultiplierValidation(valid=True)

    corrected = band.clamp(value)
    logger.info(
        "multiplier_clamped",
        extra={
            "region": region,
            "multiplier": str(value),
            "corrected": str(corrected),
        },
    )
    return MultiplierValidation(
        valid=False,
        corrected=corrected,
        finding=FailsafeFinding(
            kind=FailsafeKind.IMPOSSIBLE_MULTIPLIER,
            severity=Severity.MEDIUM,
            description=f"Purchasing power multiplier {value} out of range for {region}",
            correction_applied=True,
            correction_action=f"Clamp to valid range [{band.minimum}, {band.maximum}]",
            correction_result=f"Multiplier corrected to {corrected}",
            quarantined=False,
        ),
    )
