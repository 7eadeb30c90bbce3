"""
accessledger/ledger/backend.py

Ledger backend contract and the in-process implementation.

Contract (LedgerBackend):
    submit(tx)             → PendingTransaction
                             raises BackendUnavailable   (cannot reach backend)
                             raises RejectedByLedger     (malformed, bad signature, known tx)
    wait(pending, timeout) → Confirmation(CONFIRMED | REJECTED | TIMED_OUT)
                             a timeout NEVER cancels the submission; it may still confirm

Ordering contract:
    inclusions are totally ordered by the backend, not by submitters;
    every inclusion is assigned a timestamp >= the previous inclusion's.
"""

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set, Union

from accessledger.core.exceptions import (
    BackendUnavailable,
    InvalidInput,
    LedgerError,
    RejectedByLedger,
    Unauthorized,
)
from accessledger.core.models import (
    AccessAttempt,
    Confirmation,
    ConfirmationStatus,
    Transaction,
)
from accessledger.ledger.store import RecordStore

logger = logging.getLogger(__name__)

DelaySpec = Union[float, Callable[[Transaction], float]]


@dataclass
class PendingTransaction:
    """Handle for a broadcast transaction awaiting inclusion."""

    tx_hash: str
    future:  "asyncio.Future[Confirmation]" = field(repr=False)

    def done(self) -> bool:
        return self.future.done()


class LedgerBackend(abc.ABC):
    """The opaque consensus / execution engine, as seen by the relay."""

    @abc.abstractmethod
    async def submit(self, tx: Transaction) -> PendingTransaction:
        ...

    @abc.abstractmethod
    async def wait(self, pending: PendingTransaction, timeout: float) -> Confirmation:
        ...

    async def drain(self) -> None:
        """Wait for outstanding inclusions. Backends without local work return at once."""
        return None


class InProcessLedger(LedgerBackend):
    """
    Single-node simulated ledger executing against a RecordStore.

    Each submitted transaction is included after ``confirmation_delay``
    seconds (a float, or a callable of the transaction). Inclusions are
    serialised by an asyncio.Lock, so inclusion order is lock order, not
    submission order.

    Setting ``available = False`` makes submit() raise BackendUnavailable,
    which is how tests simulate a network partition.

    Store writes run in a worker thread so a slow fsync never stalls the
    event loop. Hashes of included transactions are remembered for the
    life of the process (there is no pruning); a transaction whose
    inclusion task ends without a receipt is forgotten and may be
    broadcast again.
    """

    def __init__(
        self,
        store:              RecordStore,
        confirmation_delay: DelaySpec = 0.0,
    ) -> None:
        self.store              = store
        self.confirmation_delay = confirmation_delay
        self.available          = True

        self._inclusion_lock: Optional[asyncio.Lock] = None
        self._lock_loop:      Optional[asyncio.AbstractEventLoop] = None
        self._known:    Set[str]                = set()
        self._receipts: Dict[str, Confirmation] = {}
        self._tasks:    Set[asyncio.Task]       = set()

    # ── LedgerBackend ─────────────────────────────────────────

    async def submit(self, tx: Transaction) -> PendingTransaction:
        if not self.available:
            raise BackendUnavailable("Ledger backend unavailable: connection refused")

        schema = tx.validate_schema()
        if not schema:
            raise RejectedByLedger(
                "malformed transaction: " + "; ".join(schema.errors)
            )
        if not tx.verify_signature():
            raise RejectedByLedger("invalid signature")

        tx_hash = tx.tx_hash
        if tx_hash in self._known:
            raise RejectedByLedger("already known", {"tx_hash": tx_hash})
        self._known.add(tx_hash)

        loop = asyncio.get_running_loop()
        pending = PendingTransaction(tx_hash=tx_hash, future=loop.create_future())
        task = loop.create_task(self._include(tx, pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug("Broadcast %s", tx_hash)
        return pending

    async def wait(self, pending: PendingTransaction, timeout: float) -> Confirmation:
        try:
            # shield: giving up on waiting must not cancel the inclusion
            return await asyncio.wait_for(asyncio.shield(pending.future), timeout)
        except asyncio.TimeoutError:
            return Confirmation(
                status=  ConfirmationStatus.TIMED_OUT,
                tx_hash= pending.tx_hash,
                reason=  f"not confirmed within {timeout}s",
            )

    # ── Inspection ────────────────────────────────────────────

    def receipt(self, tx_hash: str) -> Optional[Confirmation]:
        """Final outcome of an included transaction, or None while pending."""
        return self._receipts.get(tx_hash)

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding inclusion to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Internal ──────────────────────────────────────────────

    def _delay_for(self, tx: Transaction) -> float:
        if callable(self.confirmation_delay):
            return float(self.confirmation_delay(tx))
        return float(self.confirmation_delay)

    async def _include(self, tx: Transaction, pending: PendingTransaction) -> None:
        try:
            delay = self._delay_for(tx)
            if delay > 0:
                await asyncio.sleep(delay)

            loop = asyncio.get_running_loop()
            if self._inclusion_lock is None or self._lock_loop is not loop:
                self._inclusion_lock = asyncio.Lock()
                self._lock_loop      = loop

            async with self._inclusion_lock:
                try:
                    confirmation = await asyncio.to_thread(self._execute, tx, pending.tx_hash)
                except LedgerError as exc:
                    logger.error("Storage failure including %s: %s", pending.tx_hash, exc)
                    if not pending.future.done():
                        pending.future.set_exception(
                            BackendUnavailable(f"Ledger storage failure: {exc}")
                        )
                    return

            self._receipts[pending.tx_hash] = confirmation
            if not pending.future.done():
                pending.future.set_result(confirmation)
        finally:
            if pending.tx_hash not in self._receipts:
                self._known.discard(pending.tx_hash)

    def _execute(self, tx: Transaction, tx_hash: str) -> Confirmation:
        events = []

        def _collect(event: AccessAttempt) -> None:
            if event.tx_hash == tx_hash:
                events.append(event)

        self.store.subscribe(_collect)
        try:
            record = self.store.append(
                tx.sender,
                tx.args["rfidId"],
                tx.args["success"],
                tx.args["fingerprintId"],
                tx_hash=tx_hash,
            )
        except (Unauthorized, InvalidInput) as exc:
            # execution revert: the transaction is included but has no effect
            logger.info("Reverted %s: %s", tx_hash, exc.message)
            return Confirmation(
                status=  ConfirmationStatus.REJECTED,
                tx_hash= tx_hash,
                reason=  exc.message,
            )
        finally:
            self.store.unsubscribe(_collect)

        index = events[0].index if events else self.store.count() - 1
        logger.info("Included %s as record #%d", tx_hash, index)
        return Confirmation(
            status=  ConfirmationStatus.CONFIRMED,
            tx_hash= tx_hash,
            record=  record,
            index=   index,
            events=  events,
        )
