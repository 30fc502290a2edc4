"""Kernel services -- flush-only writers over the pure domain."""

from integrity_kernel.services.audit_log import AuditLog
from integrity_kernel.services.base import BaseService
from integrity_kernel.services.failsafe_service import FailsafeService
from integrity_kernel.services.kill_switch_service import KillSwitchService
from integrity_kernel.services.override_service import OverrideService
from integrity_kernel.services.zero_billing_service import ZeroBillingService

__all__ = [
    "AuditLog",
    "BaseService",
    "FailsafeService",
    "KillSwitchService",
    "OverrideService",
    "ZeroBillingService",
]
