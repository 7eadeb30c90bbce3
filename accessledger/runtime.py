"""
Runtime context: one fully wired relay process.
"""

import logging
from dataclasses import dataclass

from accessledger.config import RelayConfig
from accessledger.core.crypto import Ed25519KeyManager
from accessledger.ledger.backend import InProcessLedger
from accessledger.ledger.store import RecordStore
from accessledger.projection import ReadProjection
from accessledger.relay.relay import TransactionRelay

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    """Store, backend, relay and read projection sharing one owner key."""

    key_manager: Ed25519KeyManager
    store:       RecordStore
    backend:     InProcessLedger
    relay:       TransactionRelay
    projection:  ReadProjection

    @classmethod
    def from_config(cls, config: RelayConfig) -> "RuntimeContext":
        key_manager = Ed25519KeyManager.load_or_generate(config.key_path)
        store = RecordStore(owner=key_manager.identity, ledger_path=config.ledger_path)
        return cls.from_parts(
            key_manager,
            store,
            confirmation_timeout=config.confirmation_timeout,
            confirmation_delay=config.confirmation_delay,
        )

    @classmethod
    def from_parts(
        cls,
        key_manager:          Ed25519KeyManager,
        store:                RecordStore,
        confirmation_timeout: float = 30.0,
        confirmation_delay:   float = 0.0,
    ) -> "RuntimeContext":
        backend = InProcessLedger(store, confirmation_delay=confirmation_delay)
        relay = TransactionRelay(
            backend,
            key_manager,
            confirmation_timeout=confirmation_timeout,
        )
        logger.info(
            "Relay ready: owner=%s... records=%d",
            key_manager.identity[:16], store.count(),
        )
        return cls(
            key_manager= key_manager,
            store=       store,
            backend=     backend,
            relay=       relay,
            projection=  ReadProjection(store),
        )

    def __repr__(self) -> str:
        return (
            f"RuntimeContext("
            f"owner={self.key_manager.identity[:16]}..., "
            f"records={self.store.count()})"
        )
