"""
Authorization guard for the access ledger.

Every mutating store operation passes through AuthorizationGuard.check()
before any state is touched. The rule itself is an injected
AuthorizationPolicy; OwnerOnlyPolicy is the only one shipped.
"""

import logging
from enum import Enum
from typing import Protocol, Tuple

from accessledger.core.crypto import is_identity
from accessledger.core.exceptions import Unauthorized

logger = logging.getLogger(__name__)

# Revert reason of the deployed contract's onlyOwner modifier
OWNER_ONLY_REASON = "Only owner can call this function"


class Decision(Enum):
    ALLOW = "ALLOW"
    DENY  = "DENY"


class AuthorizationPolicy(Protocol):
    """Decides whether an identity may mutate the store."""

    def evaluate(self, caller_identity: str) -> Tuple[Decision, str]:
        """Return (decision, reason)."""
        ...


class OwnerOnlyPolicy:
    """
    Single fixed owner. Strict equality, no roles, no delegation,
    no ownership transfer.
    """

    def __init__(self, owner: str):
        if not is_identity(owner):
            raise ValueError(f"Owner identity must be 64 lowercase hex characters, got {owner!r}")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def evaluate(self, caller_identity: str) -> Tuple[Decision, str]:
        if caller_identity == self._owner:
            return Decision.ALLOW, "caller is owner"
        return Decision.DENY, OWNER_ONLY_REASON


class AuthorizationGuard:
    """Wraps a policy and turns DENY into Unauthorized."""

    def __init__(self, policy: AuthorizationPolicy):
        self.policy = policy
        self._decision_count = {Decision.ALLOW.value: 0, Decision.DENY.value: 0}

    def authorize(self, caller_identity: str) -> Decision:
        decision, _ = self.policy.evaluate(caller_identity)
        self._decision_count[decision.value] += 1
        return decision

    def check(self, caller_identity: str) -> None:
        """Raise Unauthorized unless the policy allows caller_identity."""
        decision, reason = self.policy.evaluate(caller_identity)
        self._decision_count[decision.value] += 1
        if decision is not Decision.ALLOW:
            logger.warning(
                "Denied append from %s: %s",
                str(caller_identity)[:16], reason,
            )
            raise Unauthorized(reason, {"caller": caller_identity})

    def get_stats(self) -> dict:
        return {
            "policy": type(self.policy).__name__,
            "decisions_by_type": self._decision_count.copy(),
        }
