"""
accessledger/core/models.py

Access Ledger Data Model.

═══════════════════════════════════════════════════════════════════
CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Records
    AccessRecord is frozen. Wire names follow the deployed ABI:
    rfidId, timestamp, success, fingerprintId.
    timestamp is integer UNIX seconds assigned by the ledger.

CONTRACT 2 — Chain
    genesis.causal_hash  = GENESIS_HASH ("0" * 64)
    entry[0].causal_hash = SHA-256(JCS(genesis.to_chain_dict()))
    entry[n].causal_hash = SHA-256(JCS(entry[n-1].to_chain_dict()))
    record fields and tx_hash are IN the chain dict, so mutating any
    stored record breaks every later link.

CONTRACT 3 — Transactions
    bytes_signed = JCS(tx.to_signing_dict())
    algorithm    = Ed25519, base64url without padding
    tx_hash      = "0x" + SHA-256(JCS(tx.to_dict()))   (signature included)
    nonce        = 32 random hex chars; uniqueness only, not ordering
═══════════════════════════════════════════════════════════════════
"""

import re
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from accessledger.core.canonical import canonical_hash, canonicalize
from accessledger.core.crypto import Ed25519KeyManager, is_identity
from accessledger.core.exceptions import InvalidInput


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

LEDGER_VERSION    = "1.0"
GENESIS_HASH      = "0" * 64
LOG_ACCESS_METHOD = "logAccess"

# Longest rfidId / fingerprintId accepted anywhere in the system
MAX_ID_LENGTH = 256

_NONCE_HEX_LENGTH = 32
_TX_HASH_RE       = re.compile(r"^0x[0-9a-f]{64}$")


# ─────────────────────────────────────────────────────────────
# SchemaValidationResult
# ─────────────────────────────────────────────────────────────

@dataclass
class SchemaValidationResult:
    """
    Returned — not raised — so callers can choose hard fail vs log.
    bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "SchemaValidationResult(VALID)"
        return f"SchemaValidationResult(INVALID, errors={self.errors})"


# ─────────────────────────────────────────────────────────────
# AccessRecord / AccessAttempt
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AccessRecord:
    """One physical access attempt, immutable once appended."""

    rfid_id:        str
    timestamp:      int
    success:        bool
    fingerprint_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rfidId":        self.rfid_id,
            "timestamp":     self.timestamp,
            "success":       self.success,
            "fingerprintId": self.fingerprint_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessRecord":
        return cls(
            rfid_id=        data["rfidId"],
            timestamp=      int(data["timestamp"]),
            success=        bool(data["success"]),
            fingerprint_id= data["fingerprintId"],
        )


@dataclass(frozen=True)
class AccessAttempt:
    """Notification emitted once per successful append."""

    rfid_id:        str
    timestamp:      int
    success:        bool
    fingerprint_id: str
    index:          int
    tx_hash:        Optional[str] = None

    @classmethod
    def from_record(
        cls,
        record:  AccessRecord,
        index:   int,
        tx_hash: Optional[str] = None,
    ) -> "AccessAttempt":
        return cls(
            rfid_id=        record.rfid_id,
            timestamp=      record.timestamp,
            success=        record.success,
            fingerprint_id= record.fingerprint_id,
            index=          index,
            tx_hash=        tx_hash,
        )


# ─────────────────────────────────────────────────────────────
# Genesis / LedgerEntry — the tamper-evident chain
# ─────────────────────────────────────────────────────────────

@dataclass
class GenesisEntry:
    """Root of trust. Binds the owner identity at creation, forever."""

    owner:          str
    created_at:     int
    ledger_version: str = LEDGER_VERSION
    causal_hash:    str = GENESIS_HASH

    def to_chain_dict(self) -> Dict[str, Any]:
        return {
            "kind":           "genesis",
            "owner":          self.owner,
            "created_at":     self.created_at,
            "ledger_version": self.ledger_version,
            "causal_hash":    self.causal_hash,
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.to_chain_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenesisEntry":
        if data.get("kind") != "genesis":
            raise ValueError("First ledger line is not a genesis entry")
        return cls(
            owner=          data["owner"],
            created_at=     int(data["created_at"]),
            ledger_version= data.get("ledger_version", LEDGER_VERSION),
            causal_hash=    data.get("causal_hash", GENESIS_HASH),
        )

    def hash(self) -> str:
        return canonical_hash(self.to_chain_dict())


@dataclass
class LedgerEntry:
    """A stored record plus its position and chain link."""

    index:       int
    tx_hash:     Optional[str]
    causal_hash: str
    record:      AccessRecord

    def to_chain_dict(self) -> Dict[str, Any]:
        return {
            "kind":        "access",
            "index":       self.index,
            "tx_hash":     self.tx_hash,
            "causal_hash": self.causal_hash,
            "record":      self.record.to_dict(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.to_chain_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerEntry":
        return cls(
            index=       int(data["index"]),
            tx_hash=     data.get("tx_hash"),
            causal_hash= data["causal_hash"],
            record=      AccessRecord.from_dict(data["record"]),
        )

    def hash(self) -> str:
        return canonical_hash(self.to_chain_dict())

    def verify_chain(self, prev: Union["LedgerEntry", GenesisEntry]) -> bool:
        """True iff causal_hash links correctly to prev."""
        return self.causal_hash == prev.hash()


# ─────────────────────────────────────────────────────────────
# Transaction — one signed write call
# ─────────────────────────────────────────────────────────────

@dataclass
class Transaction:
    """
    A signed `logAccess` call authored by ``sender``.

    Construct through Transaction.create(); never mutate after signing.
    """

    method:         str
    args:           Dict[str, Any]
    sender:         str
    nonce:          str
    ledger_version: str = LEDGER_VERSION
    signature:      Optional[str] = None

    @classmethod
    def create(
        cls,
        key_manager:    Ed25519KeyManager,
        rfid_id:        str,
        success:        bool,
        fingerprint_id: str,
    ) -> "Transaction":
        """Build and sign a logAccess transaction with the sender's key."""
        tx = cls(
            method= LOG_ACCESS_METHOD,
            args=   {
                "rfidId":        rfid_id,
                "success":       success,
                "fingerprintId": fingerprint_id,
            },
            sender= key_manager.identity,
            nonce=  secrets.token_hex(_NONCE_HEX_LENGTH // 2),
        )
        tx.signature = key_manager.sign(tx.canonical_bytes_for_signing())
        return tx

    # ── Surfaces ──────────────────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        return {
            "ledger_version": self.ledger_version,
            "method":         self.method,
            "args":           self.args,
            "sender":         self.sender,
            "nonce":          self.nonce,
        }

    def canonical_bytes_for_signing(self) -> bytes:
        return canonicalize(self.to_signing_dict())

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict()
        d["signature"] = self.signature
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            method=         data["method"],
            args=           dict(data["args"]),
            sender=         data["sender"],
            nonce=          data["nonce"],
            ledger_version= data.get("ledger_version", LEDGER_VERSION),
            signature=      data.get("signature"),
        )

    @property
    def tx_hash(self) -> str:
        return "0x" + canonical_hash(self.to_dict())

    # ── Verification ──────────────────────────────────────────

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return Ed25519KeyManager.verify_detached(
            self.canonical_bytes_for_signing(),
            self.signature,
            self.sender,
        )

    def validate_schema(self) -> SchemaValidationResult:
        """Structural checks only. Signature is checked separately."""
        errors: List[str] = []

        if self.ledger_version != LEDGER_VERSION:
            errors.append(f"unsupported ledger_version {self.ledger_version!r}")
        if self.method != LOG_ACCESS_METHOD:
            errors.append(f"unknown method {self.method!r}")
        if not is_identity(self.sender):
            errors.append("sender must be 64 lowercase hex characters")
        if (
            not isinstance(self.nonce, str)
            or len(self.nonce) != _NONCE_HEX_LENGTH
            or not all(c in "0123456789abcdef" for c in self.nonce)
        ):
            errors.append(f"nonce must be {_NONCE_HEX_LENGTH} lowercase hex characters")

        args = self.args if isinstance(self.args, dict) else {}
        if set(args) != {"rfidId", "success", "fingerprintId"}:
            errors.append("args must contain exactly rfidId, success, fingerprintId")
        else:
            for name in ("rfidId", "fingerprintId"):
                value = args[name]
                if not isinstance(value, str) or not value.strip():
                    errors.append(f"args.{name} must be a non-empty string")
                elif len(value) > MAX_ID_LENGTH:
                    errors.append(f"args.{name} longer than {MAX_ID_LENGTH}")
            if not isinstance(args["success"], bool):
                errors.append("args.success must be a boolean")

        return SchemaValidationResult(valid=not errors, errors=errors)


def is_tx_hash(value: Any) -> bool:
    return isinstance(value, str) and bool(_TX_HASH_RE.match(value))


# ─────────────────────────────────────────────────────────────
# Confirmation — backend outcome for one pending transaction
# ─────────────────────────────────────────────────────────────

class ConfirmationStatus(str, Enum):
    CONFIRMED = "confirmed"
    REJECTED  = "rejected"
    TIMED_OUT = "timed_out"


@dataclass
class Confirmation:
    status:  ConfirmationStatus
    tx_hash: str
    reason:  Optional[str] = None
    record:  Optional[AccessRecord] = None
    index:   Optional[int] = None
    events:  List[AccessAttempt] = field(default_factory=list)

    @property
    def confirmed(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED


# ─────────────────────────────────────────────────────────────
# Field validation shared by relay, backend and store
# ─────────────────────────────────────────────────────────────

def validate_access_fields(rfid_id: Any, success: Any, fingerprint_id: Any) -> None:
    """
    Raise InvalidInput unless the three access-attempt fields are well formed.

    Identifiers must be non-blank strings of at most MAX_ID_LENGTH characters.
    success must be a real bool; 0/1 and "true" are rejected.
    """
    errors: Dict[str, str] = {}
    for name, value in (("rfidId", rfid_id), ("fingerprintId", fingerprint_id)):
        if not isinstance(value, str):
            errors[name] = f"expected string, got {type(value).__name__}"
        elif not value.strip():
            errors[name] = "must not be empty"
        elif len(value) > MAX_ID_LENGTH:
            errors[name] = f"longer than {MAX_ID_LENGTH} characters"
    if not isinstance(success, bool):
        errors["success"] = f"expected boolean, got {type(success).__name__}"
    if errors:
        raise InvalidInput("Invalid access attempt", errors)
