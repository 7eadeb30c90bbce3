"""
accessledger/core/crypto.py

Owner credential for the access ledger.

The owner identity IS the Ed25519 public key, encoded as 64 lowercase hex
characters. The relay holds the private half and signs every write
transaction with it; the ledger backend only ever needs the hex string.

Key contracts:
    identity                : @property → 64-char lowercase hex (NO parentheses)
    sign(data)              : bytes → base64url str, no padding
    verify_detached(...)    : @staticmethod — verifies with ONLY an identity string
"""

import base64
import logging
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

logger = logging.getLogger(__name__)

IDENTITY_HEX_LENGTH = 64


class Ed25519KeyManager:
    """
    Ed25519 signing credential.

    Public surface:
        Ed25519KeyManager.generate()                         → new random key
        Ed25519KeyManager.from_file(path)                    → load PEM private key
        Ed25519KeyManager.from_private_bytes(seed)           → load from raw 32-byte seed
        Ed25519KeyManager.load_or_generate(path)             → load, or create and save
        Ed25519KeyManager.verify_detached(data, sig, ident)  → @staticmethod

        key.identity                (@property) → 64-char lowercase hex
        key.sign(data: bytes)                   → base64url str (no padding)
        key.verify(data, sig)                   → bool
        key.save(path)                          → write PEM private key
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key: Ed25519PrivateKey = private_key
        self._public_key:  Ed25519PublicKey  = private_key.public_key()
        self._identity:    str = (
            self._public_key
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Load an Ed25519 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except Exception as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519KeyManager":
        """
        Load an Ed25519 key from a raw 32-byte seed.
        Raises ValueError if seed is not exactly 32 bytes.
        """
        if len(seed) != 32:
            raise ValueError(
                f"Ed25519 seed must be 32 bytes, got {len(seed)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def load_or_generate(cls, path: Path) -> "Ed25519KeyManager":
        """Load the owner key at path, creating and saving a new one if absent."""
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        key = cls.generate()
        key.save(path)
        logger.info("Generated new owner key %s at %s", key.identity[:16], path)
        return key

    # ── Identity ──────────────────────────────────────────────

    @property
    def identity(self) -> str:
        """
        64-character lowercase hex string of the raw Ed25519 public key.

        THIS IS A @property — access as key.identity (NO parentheses).
        """
        return self._identity

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> str:
        """
        Sign data with Ed25519. Returns base64url string, no '=' padding.
        Caller is responsible for canonicalization.
        """
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    def verify(self, data: bytes, signature_b64: str) -> bool:
        """Verify a signature against this key's own identity."""
        return Ed25519KeyManager.verify_detached(data, signature_b64, self._identity)

    @staticmethod
    def verify_detached(
        data:          bytes,
        signature_b64: str,
        identity:      str,
    ) -> bool:
        """
        Verify an Ed25519 signature using ONLY an identity hex string.

        Returns True if the signature is valid over data for that identity.
        False for ANY failure — wrong key, bad encoding, wrong length,
        corrupted signature. Never raises.
        """
        try:
            if not isinstance(identity, str) or len(identity) != IDENTITY_HEX_LENGTH:
                return False
            if not isinstance(signature_b64, str):
                return False

            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(identity))

            # Re-add base64url padding if stripped
            padding    = 4 - len(signature_b64) % 4
            padded_sig = signature_b64 + "=" * (padding % 4)
            raw_sig    = base64.urlsafe_b64decode(padded_sig)

            if len(raw_sig) != 64:
                return False

            pub.verify(raw_sig, data)
            return True

        except Exception:
            return False

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file (mode 0600).
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pem = self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
            path.write_bytes(pem)
            path.chmod(0o600)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to save Ed25519 key to {path}: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return f"Ed25519KeyManager(identity={self._identity[:16]}...)"


def is_identity(value: Optional[str]) -> bool:
    """True if value is shaped like an owner identity (64 lowercase hex chars)."""
    if not isinstance(value, str) or len(value) != IDENTITY_HEX_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in value)
