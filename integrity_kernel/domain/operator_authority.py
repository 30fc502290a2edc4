"""
OperatorAuthority -- the single authorization predicate for operator actions.

Responsibility:
    Decides whether a caller may act as the designated operator.  Every
    operator-gated entry point (kill switch, overrides, rate changes) calls
    ``authorize`` and nothing else.

Architecture position:
    Kernel > Domain -- pure, no I/O.

Invariants enforced:
    - Identity matching is exact, or an explicit configured prefix.  No
      substring or case-folded matching on free-text ids.
    - When the caller is an authenticated ``Actor``, the configured role
      claim is required in addition to the identity match.
    - Denial is a result, never an exception.
"""

from __future__ import annotations

from integrity_kernel.domain.policy import OperatorPolicy
from integrity_kernel.domain.values import Actor

UNAUTHORIZED = "UNAUTHORIZED"


def actor_id_of(caller: Actor | str | None) -> str:
    if isinstance(caller, Actor):
        return caller.actor_id
    return caller or ""


class OperatorAuthority:
    """
    Authorization predicate shared by every operator-gated call.

    Contract:
        ``authorize(caller)`` returns ``(allowed, reason)``.  ``reason`` is
        empty when allowed.
    """

    def __init__(self, policy: OperatorPolicy):
        self._policy = policy

    @property
    def policy(self) -> OperatorPolicy:
        return self._policy

    def _matches_identity(self, actor_id: str) -> bool:
        if not actor_id:
            return False
        if actor_id in self._policy.operator_ids:
            return True
        return any(actor_id.startswith(p) for p in self._policy.operator_id_prefixes)

    def authorize(self, caller: Actor | str | None) -> tuple[bool, str]:
        actor_id = actor_id_of(caller)
        if not self._matches_identity(actor_id):
            return (False, "caller is not the designated operator")
        if isinstance(caller, Actor) and not caller.has_role(self._policy.required_role):
            return (False, f"caller lacks the '{self._policy.required_role}' role claim")
        return (True, "")

    def is_operator(self, caller: Actor | str | None) -> bool:
        return self.authorize(caller)[0]


def unauthorized_message(action: str) -> str:
    """Uniform denial text, e.g. ``UNAUTHORIZED: Only the operator can activate the kill switch``."""
    return f"{UNAUTHORIZED}: Only the operator can {action}"
