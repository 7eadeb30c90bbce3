"""
AccessLedger authorization.

The guard is the only access-control rule in the system: appends are
allowed for the identity bound at genesis and nobody else.
"""

from accessledger.policy.guard import (
    OWNER_ONLY_REASON,
    AuthorizationGuard,
    AuthorizationPolicy,
    Decision,
    OwnerOnlyPolicy,
)

__all__ = [
    "OWNER_ONLY_REASON",
    "AuthorizationGuard",
    "AuthorizationPolicy",
    "Decision",
    "OwnerOnlyPolicy",
]
