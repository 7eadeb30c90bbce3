"""
accessledger/relay/relay.py

Transaction Relay — turns one access attempt into one ledger write.

Per event:
    RECEIVED → VALIDATED → SUBMITTED → CONFIRMED
                                     → REJECTED           (RejectedByLedger, not retried)
                                     → TRANSIENT_FAILURE  (TransientFailure, state unknown)
             → INVALID                                    (InvalidInput, nothing submitted)

The relay never retries and never deduplicates. A caller that retries
after TransientFailure may append the same attempt twice: the first
submission can still confirm after the timeout.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from accessledger.core.crypto import Ed25519KeyManager
from accessledger.core.exceptions import (
    AccessLedgerError,
    BackendUnavailable,
    InvalidInput,
    RejectedByLedger,
    TransientFailure,
)
from accessledger.core.models import (
    AccessRecord,
    ConfirmationStatus,
    Transaction,
    validate_access_fields,
)
from accessledger.ledger.backend import LedgerBackend

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT = 30.0

# Backend failures that leave the ledger state unknown (OSError covers ConnectionError)
_TRANSIENT_ERRORS = (BackendUnavailable, OSError, asyncio.TimeoutError)


class RelayState(str, Enum):
    RECEIVED          = "received"
    VALIDATED         = "validated"
    INVALID           = "invalid"
    SUBMITTED         = "submitted"
    CONFIRMED         = "confirmed"
    REJECTED          = "rejected"
    TRANSIENT_FAILURE = "transient_failure"


_TERMINAL = {
    RelayState.INVALID,
    RelayState.CONFIRMED,
    RelayState.REJECTED,
    RelayState.TRANSIENT_FAILURE,
}


@dataclass
class RelayEvent:
    """One access attempt as it moves through the relay."""

    rfid_id:        Any
    success:        Any
    fingerprint_id: Any
    event_id:       str = field(default_factory=lambda: f"evt-{uuid.uuid4()}")
    state:          RelayState = RelayState.RECEIVED
    tx_hash:        Optional[str] = None
    history:        List[Tuple[RelayState, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append((self.state, time.monotonic()))

    def transition(self, state: RelayState) -> None:
        if self.state in _TERMINAL:
            raise RuntimeError(
                f"{self.event_id} already terminal ({self.state.value}), "
                f"cannot move to {state.value}"
            )
        self.state = state
        self.history.append((state, time.monotonic()))
        logger.debug("%s -> %s", self.event_id, state.value)

    @property
    def states(self) -> List[RelayState]:
        return [s for s, _ in self.history]


@dataclass
class RelayOutcome:
    """Successful relay: the write is confirmed and auditable by tx_hash."""

    confirmed: bool
    tx_hash:   str
    record:    AccessRecord
    index:     int
    event:     RelayEvent


@dataclass
class LogAccessResponse:
    """Ingress result. Always definitive: success, or an error with its kind."""

    success:    bool
    tx_hash:    Optional[str] = None
    error:      Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.tx_hash is not None:
            data["txHash"] = self.tx_hash
        if self.error is not None:
            data["error"] = self.error
        if self.error_kind is not None:
            data["errorKind"] = self.error_kind
        return data


class TransactionRelay:
    """
    Off-ledger service that submits owner-signed logAccess transactions.

    The relay is the only holder of the owner key. Concurrent calls share
    no mutable state; each suspends independently on its own confirmation.
    """

    def __init__(
        self,
        backend:              LedgerBackend,
        key_manager:          Ed25519KeyManager,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    ) -> None:
        if confirmation_timeout <= 0:
            raise ValueError("confirmation_timeout must be positive")
        self.backend              = backend
        self.key_manager          = key_manager
        self.confirmation_timeout = confirmation_timeout

    @property
    def owner(self) -> str:
        return self.key_manager.identity

    async def relay_log_access(
        self,
        rfid_id:        Any,
        success:        Any,
        fingerprint_id: Any,
    ) -> RelayOutcome:
        """
        Validate, sign, submit and await one access attempt.

        Returns RelayOutcome on confirmation.
        Raises InvalidInput, RejectedByLedger or TransientFailure; the
        RelayEvent is attached to the raised error as ``.event``.
        """
        event = RelayEvent(rfid_id=rfid_id, success=success, fingerprint_id=fingerprint_id)

        try:
            validate_access_fields(rfid_id, success, fingerprint_id)
        except InvalidInput as exc:
            event.transition(RelayState.INVALID)
            logger.info("%s rejected before submission: %s", event.event_id, exc)
            exc.event = event
            raise

        event.transition(RelayState.VALIDATED)

        tx = Transaction.create(self.key_manager, rfid_id, success, fingerprint_id)
        event.tx_hash = tx.tx_hash

        try:
            pending = await self.backend.submit(tx)
        except RejectedByLedger as exc:
            event.transition(RelayState.REJECTED)
            logger.warning("%s rejected at submission: %s", event.event_id, exc.reason)
            exc.event = event
            raise
        except _TRANSIENT_ERRORS as exc:
            raise self._transient(event, f"Submission failed: {_describe(exc)}") from exc

        event.transition(RelayState.SUBMITTED)
        logger.info("%s submitted as %s", event.event_id, pending.tx_hash)

        try:
            confirmation = await self.backend.wait(pending, self.confirmation_timeout)
        except _TRANSIENT_ERRORS as exc:
            raise self._transient(event, f"Confirmation failed: {_describe(exc)}") from exc

        if confirmation.status is ConfirmationStatus.CONFIRMED:
            event.transition(RelayState.CONFIRMED)
            logger.info(
                "%s confirmed as record #%s (%s)",
                event.event_id, confirmation.index, confirmation.tx_hash,
            )
            return RelayOutcome(
                confirmed= True,
                tx_hash=   confirmation.tx_hash,
                record=    confirmation.record,
                index=     confirmation.index,
                event=     event,
            )

        if confirmation.status is ConfirmationStatus.REJECTED:
            event.transition(RelayState.REJECTED)
            logger.warning("%s reverted: %s", event.event_id, confirmation.reason)
            exc = RejectedByLedger(confirmation.reason or "reverted", {"tx_hash": confirmation.tx_hash})
            exc.event = event
            raise exc

        raise self._transient(
            event,
            f"Transaction {pending.tx_hash} not confirmed within "
            f"{self.confirmation_timeout}s; ledger state unknown",
        )

    async def log_access(
        self,
        rfid_id:        Any,
        success:        Any,
        fingerprint_id: Any,
    ) -> LogAccessResponse:
        """Ingress form of relay_log_access(): returns, never raises."""
        try:
            outcome = await self.relay_log_access(rfid_id, success, fingerprint_id)
        except AccessLedgerError as exc:
            return LogAccessResponse(
                success=    False,
                tx_hash=    exc.details.get("tx_hash"),
                error=      str(exc),
                error_kind= exc.kind,
            )
        except Exception as exc:
            logger.exception("Unexpected relay failure")
            return LogAccessResponse(success=False, error=str(exc), error_kind="InternalError")
        return LogAccessResponse(success=True, tx_hash=outcome.tx_hash)

    def log_access_sync(
        self,
        rfid_id:        Any,
        success:        Any,
        fingerprint_id: Any,
    ) -> LogAccessResponse:
        """
        Blocking wrapper for callers without an event loop (CLI).

        The loop stays open until the backend has finished every broadcast
        inclusion, so a write that outlives the confirmation timeout still
        lands instead of being cancelled with the loop.
        """
        async def _run() -> LogAccessResponse:
            response = await self.log_access(rfid_id, success, fingerprint_id)
            await self.backend.drain()
            return response

        return asyncio.run(_run())

    # ── Internal ──────────────────────────────────────────────

    def _transient(self, event: RelayEvent, message: str) -> TransientFailure:
        event.transition(RelayState.TRANSIENT_FAILURE)
        logger.warning("%s transient failure: %s", event.event_id, message)
        exc = TransientFailure(message, {"tx_hash": event.tx_hash} if event.tx_hash else None)
        exc.event = event
        return exc


def _describe(exc: BaseException) -> str:
    if isinstance(exc, AccessLedgerError):
        return exc.message
    return str(exc) or type(exc).__name__
