"""
tests/test_guard.py

Authorization Guard: strict owner equality and injectable policies.
"""

import pytest

from accessledger.core.exceptions import Unauthorized
from accessledger.ledger.store import RecordStore
from accessledger.policy.guard import (
    OWNER_ONLY_REASON,
    AuthorizationGuard,
    Decision,
    OwnerOnlyPolicy,
)


class TestOwnerOnlyPolicy:

    def test_owner_allowed(self, owner_key):
        guard = AuthorizationGuard(OwnerOnlyPolicy(owner_key.identity))
        assert guard.authorize(owner_key.identity) is Decision.ALLOW

    def test_other_identity_denied(self, owner_key, other_key):
        guard = AuthorizationGuard(OwnerOnlyPolicy(owner_key.identity))
        assert guard.authorize(other_key.identity) is Decision.DENY

    @pytest.mark.parametrize("caller", ["", None, "0x1234"])
    def test_garbage_identity_denied(self, owner_key, caller):
        guard = AuthorizationGuard(OwnerOnlyPolicy(owner_key.identity))
        with pytest.raises(Unauthorized) as exc_info:
            guard.check(caller)
        assert exc_info.value.message == OWNER_ONLY_REASON

    def test_equality_is_strict(self, owner_key):
        """An upper-cased copy of the owner key is a different identity."""
        guard = AuthorizationGuard(OwnerOnlyPolicy(owner_key.identity))
        assert guard.authorize(owner_key.identity.upper()) is Decision.DENY

    def test_owner_must_look_like_identity(self):
        with pytest.raises(ValueError):
            OwnerOnlyPolicy("not-a-key")

    def test_stats_track_decisions(self, owner_key, other_key):
        guard = AuthorizationGuard(OwnerOnlyPolicy(owner_key.identity))
        guard.authorize(owner_key.identity)
        with pytest.raises(Unauthorized):
            guard.check(other_key.identity)
        stats = guard.get_stats()
        assert stats["decisions_by_type"] == {"ALLOW": 1, "DENY": 1}
        assert stats["policy"] == "OwnerOnlyPolicy"


class TestInjectedPolicy:

    def test_store_uses_injected_policy(self, owner_key, other_key):
        class AllowList:
            def __init__(self, identities):
                self.identities = set(identities)

            def evaluate(self, caller_identity):
                if caller_identity in self.identities:
                    return Decision.ALLOW, "listed"
                return Decision.DENY, "not listed"

        store = RecordStore(
            owner=owner_key.identity,
            policy=AllowList([owner_key.identity, other_key.identity]),
        )
        store.append(other_key.identity, "A", True, "1")
        assert store.count() == 1

        with pytest.raises(Unauthorized) as exc_info:
            store.append("f" * 64, "B", True, "2")
        assert exc_info.value.message == "not listed"
        assert store.count() == 1
