"""
AccessLedger Ledger - Append-only record store and the backend that
orders writes into it.

The store is the source of truth for every access attempt.
"""

from accessledger.ledger.backend import (
    InProcessLedger,
    LedgerBackend,
    PendingTransaction,
)
from accessledger.ledger.store import RecordStore

__all__ = [
    "InProcessLedger",
    "LedgerBackend",
    "PendingTransaction",
    "RecordStore",
]
