"""
Shared fixtures for the AccessLedger test suite.
"""

import pytest

from accessledger.core.crypto import Ed25519KeyManager
from accessledger.ledger.backend import InProcessLedger
from accessledger.ledger.store import RecordStore
from accessledger.relay.relay import TransactionRelay


class FakeClock:
    """Deterministic ledger clock: returns ``now`` until advanced."""

    def __init__(self, start: int = 1_700_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def owner_key():
    """The single identity allowed to append."""
    return Ed25519KeyManager.generate()


@pytest.fixture
def other_key():
    """An independent key — never the owner."""
    return Ed25519KeyManager.generate()


@pytest.fixture
def store(owner_key, clock):
    return RecordStore(owner=owner_key.identity, clock=clock)


@pytest.fixture
def backend(store):
    return InProcessLedger(store)


@pytest.fixture
def relay(backend, owner_key):
    return TransactionRelay(backend, owner_key, confirmation_timeout=2.0)
