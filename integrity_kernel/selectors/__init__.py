"""Read-only selectors over the audit trail."""

from integrity_kernel.selectors.audit_selector import (
    AuditSelector,
    BlockedChargeDTO,
    BlockedChargeStatistics,
    ControlPlaneStatistics,
    FailsafeEventDTO,
    FailsafeStatistics,
    KillSwitchEventDTO,
    OverrideRecordDTO,
)
from integrity_kernel.selectors.base import BaseSelector

__all__ = [
    "AuditSelector",
    "BaseSelector",
    "BlockedChargeDTO",
    "BlockedChargeStatistics",
    "ControlPlaneStatistics",
    "FailsafeEventDTO",
    "FailsafeStatistics",
    "KillSwitchEventDTO",
    "OverrideRecordDTO",
]
