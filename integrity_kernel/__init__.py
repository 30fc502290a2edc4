"""
Integrity Kernel - economic integrity control plane.

Validation, correction and audit core that sits between "a revenue-bearing
event happened" and "the event is allowed to post":
- Revenue event sanity checks with quarantine
- Percentage split invariants
- Protected-party earnings floor funded from platform margin
- Fail-closed zero-billing guard
- Operator kill switch and audited overrides
- Append-only audit trail for every anomaly and operator action
"""

__version__ = "0.1.0"
