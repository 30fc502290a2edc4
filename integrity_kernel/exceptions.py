"""
Typed Exception Hierarchy for the Integrity Kernel.

===============================================================================
WHAT RAISES AND WHAT DOES NOT
===============================================================================

The control plane reports economic anomalies and authorization failures as
ordinary RESULTS, never as exceptions:

    - A negative revenue amount        -> RevenueValidation(valid=False, ...)
    - A split that does not sum to 100 -> SplitValidation(valid=False, ...)
    - A non-operator calling activate  -> OperatorResult(success=False,
                                          message="UNAUTHORIZED: ...")

Exceptions are reserved for conditions that make the control plane itself
untrustworthy:

    - The audit log could not append a record (an un-logged quarantine or
      un-logged override is a correctness violation of the whole design).
    - Someone tried to UPDATE or DELETE an audit record.
    - The policy configuration is malformed.
    - A caller passed a float where money or a percentage was expected.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    IntegrityKernelError (base)
    |
    +-- AuditError
    |   +-- AuditAppendError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError
    |
    +-- ValueObjectError
        +-- FloatAmountError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_APPEND_FAILED         | Storage refused an audit record
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE on an audit record
Configuration   | CONFIGURATION_INVALID       | Policy YAML missing/invalid values
Value objects   | FLOAT_AMOUNT                | float passed as money or percentage

===============================================================================
"""


class IntegrityKernelError(Exception):
    """
    Base exception for all integrity kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INTEGRITY_KERNEL_ERROR"


# Audit-related exceptions


class AuditError(IntegrityKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditAppendError(AuditError):
    """
    The audit log failed to persist a record.

    This is the only legitimate fatal condition in the control plane and
    must propagate to the caller as a hard failure.
    """

    code: str = "AUDIT_APPEND_FAILED"

    def __init__(self, record_type: str, reason: str):
        self.record_type = record_type
        self.reason = reason
        super().__init__(f"Failed to append {record_type} to audit log: {reason}")


# Immutability-related exceptions


class ImmutabilityError(IntegrityKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    FailsafeEvent, BlockedChargeAttempt, OverrideRecord and KillSwitchEvent
    are immutable from creation.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(IntegrityKernelError):
    """Policy configuration is missing required values or is inconsistent."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid integrity configuration in {source}: {reason}")


# Value object exceptions


class ValueObjectError(IntegrityKernelError):
    """Base exception for value object construction errors."""

    code: str = "VALUE_OBJECT_ERROR"


class FloatAmountError(ValueObjectError, TypeError):
    """A float was supplied where a Decimal amount or percentage is required."""

    code: str = "FLOAT_AMOUNT"

    def __init__(self, field_name: str, value: float):
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"{field_name} must be Decimal, int or str, not float ({value!r})"
        )
