"""
accessledger/__init__.py

AccessLedger: tamper-evident ledger of physical access attempts.

Door controllers submit (rfidId, success, fingerprintId) attempts to a
relay, which signs each one with the single owner key and waits for the
ledger to confirm it. Anyone may read; only the owner may append.
"""

__version__ = "0.1.0"

from accessledger.core.crypto import Ed25519KeyManager
from accessledger.core.exceptions import (
    AccessLedgerError,
    BackendUnavailable,
    IntegrityError,
    InvalidInput,
    LedgerError,
    OutOfRange,
    RejectedByLedger,
    TransientFailure,
    Unauthorized,
)
from accessledger.core.models import (
    GENESIS_HASH,
    AccessAttempt,
    AccessRecord,
    Confirmation,
    ConfirmationStatus,
    Transaction,
)
from accessledger.ledger import InProcessLedger, LedgerBackend, RecordStore
from accessledger.projection import ReadProjection, RecordPage
from accessledger.relay import LogAccessResponse, RelayOutcome, RelayState, TransactionRelay

__all__ = [
    # Core types
    "AccessRecord",
    "AccessAttempt",
    "Transaction",
    "Confirmation",
    "ConfirmationStatus",
    "Ed25519KeyManager",
    # Components
    "RecordStore",
    "LedgerBackend",
    "InProcessLedger",
    "TransactionRelay",
    "ReadProjection",
    "RecordPage",
    "RelayOutcome",
    "RelayState",
    "LogAccessResponse",
    # Errors
    "AccessLedgerError",
    "InvalidInput",
    "Unauthorized",
    "RejectedByLedger",
    "TransientFailure",
    "OutOfRange",
    "LedgerError",
    "IntegrityError",
    "BackendUnavailable",
    # Constants
    "GENESIS_HASH",
]
