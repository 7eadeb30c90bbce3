"""
AccessLedger: Canonical JSON Encoding — RFC 8785 (JCS)

Every signature, transaction hash and chain hash in the ledger is
computed over the bytes produced here. Nothing else serialises for
hashing.
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "AccessLedger requires the 'jcs' package for RFC 8785 canonical JSON.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Values must be JSON primitives. Floats are avoided on purpose:
    timestamps are integers and flags are real booleans.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of the canonical form (64 characters)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
