"""
AccessLedger Relay - bridges access attempts from door hardware into
confirmed ledger writes.
"""

from accessledger.relay.relay import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    LogAccessResponse,
    RelayEvent,
    RelayOutcome,
    RelayState,
    TransactionRelay,
)

__all__ = [
    "DEFAULT_CONFIRMATION_TIMEOUT",
    "LogAccessResponse",
    "RelayEvent",
    "RelayOutcome",
    "RelayState",
    "TransactionRelay",
]
