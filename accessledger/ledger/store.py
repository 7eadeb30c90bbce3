"""
accessledger/ledger/store.py

Record Store — the ledger-resident, append-only access log.

append() MUST, in this exact order:
  1. Acquire lock
  2. Pass the caller through the AuthorizationGuard  (deny → Unauthorized, no state change)
  3. Assign the timestamp, clamped to be non-decreasing
  4. Build the LedgerEntry chained to the previous entry (or genesis)
  5. Append to the JSONL ledger when persistent  — fsync before returning
  6. Advance in-memory state                      — only after a confirmed write
  7. Release lock, then notify AccessAttempt subscribers

Reads never take the guard. count() is len(entries), never a stored field.
"""

import bisect
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from accessledger.core.exceptions import (
    IntegrityError,
    LedgerError,
    OutOfRange,
)
from accessledger.core.models import (
    AccessAttempt,
    AccessRecord,
    GenesisEntry,
    LedgerEntry,
    validate_access_fields,
)
from accessledger.core.time import Clock, ledger_timestamp
from accessledger.policy.guard import (
    AuthorizationGuard,
    AuthorizationPolicy,
    OwnerOnlyPolicy,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[AccessAttempt], None]


class RecordStore:
    """
    Append-only access record sequence with a single bound owner.

    Thread-safe via internal lock (single-process only).
    When ``ledger_path`` is given, state survives restart by replaying
    the JSONL file; the replayed chain is verified before use.
    """

    def __init__(
        self,
        owner:       str,
        ledger_path: Optional[Path] = None,
        policy:      Optional[AuthorizationPolicy] = None,
        clock:       Clock = ledger_timestamp,
    ) -> None:
        self.guard  = AuthorizationGuard(policy or OwnerOnlyPolicy(owner))
        self._clock = clock

        self._lock:        threading.Lock    = threading.Lock()
        self._entries:     List[LedgerEntry] = []
        self._subscribers: List[Subscriber]  = []
        self._timestamps:  List[int]         = []

        self.ledger_path = Path(ledger_path) if ledger_path else None

        if self.ledger_path and self.ledger_path.exists():
            self._load()
            self.verify_or_raise()
            if self._genesis.owner != owner:
                raise IntegrityError(
                    "Ledger is bound to a different owner",
                    {"ledger_owner": self._genesis.owner[:16], "configured": owner[:16]},
                )
            logger.info(
                "Restored %d access records from %s", len(self._entries), self.ledger_path,
            )
        else:
            self._genesis = GenesisEntry(owner=owner, created_at=self._clock())
            if self.ledger_path:
                self._write_line(self._genesis.to_dict())

    @classmethod
    def open(cls, ledger_path: Path, clock: Clock = ledger_timestamp) -> "RecordStore":
        """
        Open an existing persisted ledger, taking the owner from its genesis line.
        Raises LedgerError if the file is missing or has no genesis.
        """
        ledger_path = Path(ledger_path)
        if not ledger_path.exists():
            raise LedgerError(f"Ledger not found: {ledger_path}")
        with open(ledger_path, "r", encoding="utf-8") as f:
            first = f.readline().strip()
        if not first:
            raise LedgerError(f"Ledger has no genesis entry: {ledger_path}")
        try:
            genesis = GenesisEntry.from_dict(json.loads(first))
        except (ValueError, KeyError) as exc:
            raise LedgerError(f"Invalid genesis entry in {ledger_path}: {exc}") from exc
        return cls(owner=genesis.owner, ledger_path=ledger_path, clock=clock)

    # ── Writes ────────────────────────────────────────────────

    def append(
        self,
        caller:         str,
        rfid_id:        str,
        success:        bool,
        fingerprint_id: str,
        *,
        tx_hash:        Optional[str] = None,
        timestamp:      Optional[int] = None,
    ) -> AccessRecord:
        """
        Append one access record as ``caller``.

        Raises Unauthorized if the guard denies caller (nothing is written),
        InvalidInput for malformed fields, LedgerError on storage failure.
        """
        validate_access_fields(rfid_id, success, fingerprint_id)

        with self._lock:
            self.guard.check(caller)

            ts = self._clock() if timestamp is None else int(timestamp)
            if self._entries:
                ts = max(ts, self._entries[-1].record.timestamp)

            prev = self._entries[-1] if self._entries else self._genesis
            entry = LedgerEntry(
                index=       len(self._entries),
                tx_hash=     tx_hash,
                causal_hash= prev.hash(),
                record=      AccessRecord(
                    rfid_id=        rfid_id,
                    timestamp=      ts,
                    success=        success,
                    fingerprint_id= fingerprint_id,
                ),
            )

            if self.ledger_path:
                self._write_line(entry.to_dict())

            self._entries.append(entry)
            self._timestamps.append(ts)
            subscribers = list(self._subscribers)

        logger.debug("Appended access record #%d rfid=%s", entry.index, rfid_id)

        event = AccessAttempt.from_record(entry.record, entry.index, tx_hash)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("AccessAttempt subscriber %r failed", callback)

        return entry.record

    # ── Reads (no authorization) ──────────────────────────────

    def count(self) -> int:
        return len(self._entries)

    def records(self) -> List[AccessRecord]:
        """Full snapshot in append order."""
        with self._lock:
            return [e.record for e in self._entries]

    def record_at(self, index: int) -> AccessRecord:
        """Point lookup. Raises OutOfRange unless 0 <= index < count()."""
        with self._lock:
            if not isinstance(index, int) or isinstance(index, bool) or not (
                0 <= index < len(self._entries)
            ):
                raise OutOfRange(
                    f"Record index {index} out of range",
                    {"count": len(self._entries)},
                )
            return self._entries[index].record

    def slice(self, start: int, stop: int) -> List[AccessRecord]:
        with self._lock:
            return [e.record for e in self._entries[start:stop]]

    def timestamp_bounds(self, start: int, end: int) -> Tuple[int, int]:
        """Index range [lo, hi) of the records with start <= timestamp < end."""
        with self._lock:
            return (
                bisect.bisect_left(self._timestamps, start),
                bisect.bisect_left(self._timestamps, end),
            )

    def entries(self) -> List[LedgerEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def owner(self) -> str:
        return self._genesis.owner

    @property
    def genesis(self) -> GenesisEntry:
        return self._genesis

    # ── Notifications ─────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    # ── Integrity ─────────────────────────────────────────────

    def verify_chain(self) -> bool:
        try:
            self.verify_or_raise()
            return True
        except IntegrityError:
            return False

    def verify_or_raise(self) -> None:
        """Raise IntegrityError at the first broken link, index or timestamp."""
        entries = self.entries()
        prev: Any = self._genesis
        last_ts = None
        for i, entry in enumerate(entries):
            if entry.index != i:
                raise IntegrityError(f"Index gap at position {i}: found {entry.index}")
            if not entry.verify_chain(prev):
                raise IntegrityError(
                    f"Chain break at index {i}: "
                    f"expected ...{prev.hash()[-12:]}, got ...{entry.causal_hash[-12:]}"
                )
            if last_ts is not None and entry.record.timestamp < last_ts:
                raise IntegrityError(f"Timestamp regression at index {i}")
            last_ts = entry.record.timestamp
            prev = entry

    def get_stats(self) -> Dict[str, Any]:
        entries = self.entries()
        return {
            "owner":           self._genesis.owner,
            "total_records":   len(entries),
            "granted":         sum(1 for e in entries if e.record.success),
            "denied":          sum(1 for e in entries if not e.record.success),
            "first_timestamp": entries[0].record.timestamp if entries else None,
            "last_timestamp":  entries[-1].record.timestamp if entries else None,
            "head_hash":       entries[-1].hash() if entries else self._genesis.hash(),
            "ledger_file":     str(self.ledger_path) if self.ledger_path else None,
        }

    # ── Internal ──────────────────────────────────────────────

    def _write_line(self, data: Dict[str, Any]) -> None:
        """
        Append one JSON line and fsync.
        Raises LedgerError on any I/O failure; state MUST NOT advance then.
        """
        try:
            self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.ledger_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(data, ensure_ascii=False) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            raise LedgerError(f"Failed to write ledger entry: {exc}") from exc

    def _load(self) -> None:
        """Load genesis and entries from disk."""
        self._entries = []
        genesis = None
        try:
            with open(self.ledger_path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                        if genesis is None:
                            genesis = GenesisEntry.from_dict(data)
                        else:
                            self._entries.append(LedgerEntry.from_dict(data))
                    except (ValueError, KeyError, TypeError) as exc:
                        raise IntegrityError(f"Invalid ledger line {line_num}: {exc}") from exc
        except OSError as exc:
            raise LedgerError(f"Failed to load ledger: {exc}") from exc

        if genesis is None:
            raise IntegrityError(f"Ledger has no genesis entry: {self.ledger_path}")
        self._genesis    = genesis
        self._timestamps = [e.record.timestamp for e in self._entries]
