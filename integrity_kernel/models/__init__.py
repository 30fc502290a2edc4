"""Append-only audit models for the integrity kernel."""

from integrity_kernel.models.blocked_charge import BlockedChargeAttempt
from integrity_kernel.models.failsafe_event import FailsafeEvent
from integrity_kernel.models.kill_switch_event import KillSwitchEvent
from integrity_kernel.models.override_record import OverrideRecord

__all__ = [
    "BlockedChargeAttempt",
    "FailsafeEvent",
    "KillSwitchEvent",
    "OverrideRecord",
]
