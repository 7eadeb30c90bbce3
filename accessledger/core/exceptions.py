"""
AccessLedger Exception Hierarchy

All exceptions inherit from AccessLedgerError for easy catching.
Each class carries a stable ``kind`` string that the relay ingress
reports back to callers.
"""


class AccessLedgerError(Exception):
    """Base exception for all AccessLedger errors"""

    kind = "AccessLedgerError"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class InvalidInput(AccessLedgerError):
    """Caller supplied a malformed access attempt. Never retried."""

    kind = "InvalidInput"


class Unauthorized(AccessLedgerError):
    """The authorization guard denied a mutating operation."""

    kind = "Unauthorized"


class RejectedByLedger(AccessLedgerError):
    """
    The ledger backend definitively rejected a transaction.

    ``reason`` is the backend's diagnostic, verbatim.
    """

    kind = "RejectedByLedger"

    def __init__(self, reason: str, details: dict = None):
        super().__init__(f"Transaction rejected by ledger: {reason}", details)
        self.reason = reason


class TransientFailure(AccessLedgerError):
    """
    The final ledger state is unknown to the caller.

    The write may still confirm later. Callers must treat this as
    ambiguous, not as "no record written".
    """

    kind = "TransientFailure"


class OutOfRange(AccessLedgerError):
    """Read-path index outside the current record sequence."""

    kind = "OutOfRange"


class LedgerError(AccessLedgerError):
    """Raised when ledger storage operations fail"""

    kind = "LedgerError"


class IntegrityError(LedgerError):
    """Raised when a persisted ledger fails chain or genesis verification"""

    kind = "IntegrityError"


class BackendUnavailable(AccessLedgerError):
    """The ledger backend could not be reached."""

    kind = "BackendUnavailable"
