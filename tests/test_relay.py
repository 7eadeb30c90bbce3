"""
tests/test_relay.py

Transaction Relay: validation, confirmation, rejection, transient
failure, the timeout ambiguity and the retry duplicate gap.
"""

import asyncio

import pytest

from accessledger.core.exceptions import (
    InvalidInput,
    RejectedByLedger,
    TransientFailure,
)
from accessledger.core.models import is_tx_hash
from accessledger.ledger.backend import InProcessLedger, LedgerBackend
from accessledger.policy.guard import OWNER_ONLY_REASON
from accessledger.relay.relay import RelayState, TransactionRelay


class TestConfirmed:

    def test_relay_confirms_and_returns_reference(self, store, relay):
        outcome = asyncio.run(relay.relay_log_access("63:5A:59:31", True, "1"))

        assert outcome.confirmed
        assert is_tx_hash(outcome.tx_hash)
        assert outcome.index == 0
        assert outcome.record.rfid_id == "63:5A:59:31"
        assert store.count() == 1
        assert store.entries()[0].tx_hash == outcome.tx_hash
        assert outcome.event.states == [
            RelayState.RECEIVED,
            RelayState.VALIDATED,
            RelayState.SUBMITTED,
            RelayState.CONFIRMED,
        ]

    def test_reference_scenario_through_relay(self, store, relay):
        asyncio.run(relay.relay_log_access("63:5A:59:31", True, "1"))
        asyncio.run(relay.relay_log_access("63:5A:59:31", False, "2"))
        assert store.count() == 2
        assert store.records()[1].fingerprint_id == "2"
        assert store.records()[1].success is False

    def test_concurrent_relay_calls(self, store, owner_key):
        backend = InProcessLedger(store, confirmation_delay=0.05)
        relay = TransactionRelay(backend, owner_key, confirmation_timeout=2.0)

        async def scenario():
            return await asyncio.gather(*(
                relay.relay_log_access(f"rfid-{i}", i % 2 == 0, str(i))
                for i in range(10)
            ))

        outcomes = asyncio.run(scenario())
        assert sorted(o.index for o in outcomes) == list(range(10))
        assert len({o.tx_hash for o in outcomes}) == 10
        assert store.count() == 10


class TestInvalidInput:

    @pytest.mark.parametrize("rfid_id, success, fingerprint_id", [
        ("", True, "1"),
        ("63:5A:59:31", "yes", "1"),
        ("63:5A:59:31", True, None),
    ])
    def test_nothing_submitted(self, store, backend, relay, rfid_id, success, fingerprint_id):
        with pytest.raises(InvalidInput) as exc_info:
            asyncio.run(relay.relay_log_access(rfid_id, success, fingerprint_id))

        assert exc_info.value.event.states == [RelayState.RECEIVED, RelayState.INVALID]
        assert exc_info.value.event.tx_hash is None
        assert store.count() == 0
        assert backend.pending_count == 0


class TestRejected:

    def test_wrong_credential_rejected_by_ledger(self, store, backend, other_key):
        """The relay holding a non-owner key gets the guard's revert reason, verbatim."""
        relay = TransactionRelay(backend, other_key, confirmation_timeout=2.0)

        with pytest.raises(RejectedByLedger) as exc_info:
            asyncio.run(relay.relay_log_access("63:5A:59:31", True, "1"))

        err = exc_info.value
        assert err.reason == OWNER_ONLY_REASON
        assert err.event.state is RelayState.REJECTED
        assert store.count() == 0

    def test_rejection_is_not_retried(self, store, other_key):
        submissions = []

        class CountingLedger(InProcessLedger):
            async def submit(self, tx):
                submissions.append(tx.tx_hash)
                return await super().submit(tx)

        relay = TransactionRelay(CountingLedger(store), other_key, confirmation_timeout=2.0)
        with pytest.raises(RejectedByLedger):
            asyncio.run(relay.relay_log_access("A", True, "1"))
        assert len(submissions) == 1


class TestTransientFailure:

    def test_backend_unavailable(self, store, backend, relay):
        backend.available = False

        with pytest.raises(TransientFailure) as exc_info:
            asyncio.run(relay.relay_log_access("63:5A:59:31", True, "1"))

        assert exc_info.value.event.states[-1] is RelayState.TRANSIENT_FAILURE
        assert store.count() == 0

    def test_timeout_is_ambiguous_not_failed(self, store, owner_key):
        """
        Confirmation lands after the relay gave up: the relay already
        reported TransientFailure, yet the record IS in the store.
        """
        backend = InProcessLedger(store, confirmation_delay=0.3)
        relay = TransactionRelay(backend, owner_key, confirmation_timeout=0.05)

        async def scenario():
            with pytest.raises(TransientFailure) as exc_info:
                await relay.relay_log_access("63:5A:59:31", True, "1")
            count_when_reported = store.count()
            await backend.drain()
            return exc_info.value, count_when_reported

        err, count_when_reported = asyncio.run(scenario())

        assert count_when_reported == 0
        assert store.count() == 1
        tx_hash = err.details["tx_hash"]
        assert backend.receipt(tx_hash).confirmed
        assert store.entries()[0].tx_hash == tx_hash

    def test_retry_after_timeout_can_duplicate(self, store, owner_key):
        """No idempotency: retrying the same event after a timeout appends it twice."""
        backend = InProcessLedger(store, confirmation_delay=0.2)
        relay = TransactionRelay(backend, owner_key, confirmation_timeout=0.05)

        async def scenario():
            with pytest.raises(TransientFailure):
                await relay.relay_log_access("63:5A:59:31", True, "1")
            # caller retries the same physical event with a generous timeout
            relay.confirmation_timeout = 2.0
            outcome = await relay.relay_log_access("63:5A:59:31", True, "1")
            await backend.drain()
            return outcome

        asyncio.run(scenario())
        records = store.records()
        assert len(records) == 2
        assert {(r.rfid_id, r.success, r.fingerprint_id) for r in records} == {
            ("63:5A:59:31", True, "1")
        }

    @pytest.mark.parametrize("error", [
        ConnectionRefusedError("connection refused"),
        OSError("network unreachable"),
        asyncio.TimeoutError(),
    ])
    def test_connection_errors_at_submit_are_transient(self, owner_key, error):
        class UnreachableLedger(LedgerBackend):
            async def submit(self, tx):
                raise error

            async def wait(self, pending, timeout):
                raise AssertionError("nothing was submitted")

        relay = TransactionRelay(UnreachableLedger(), owner_key, confirmation_timeout=2.0)

        with pytest.raises(TransientFailure) as exc_info:
            asyncio.run(relay.relay_log_access("63:5A:59:31", True, "1"))
        assert exc_info.value.event.states[-1] is RelayState.TRANSIENT_FAILURE
        assert exc_info.value.message.startswith("Submission failed")

    def test_connection_lost_while_waiting_is_transient(self, store, owner_key):
        class DroppingLedger(InProcessLedger):
            async def wait(self, pending, timeout):
                raise ConnectionResetError("connection reset by peer")

        backend = DroppingLedger(store)
        relay = TransactionRelay(backend, owner_key, confirmation_timeout=2.0)

        response = relay.log_access_sync("63:5A:59:31", True, "1")
        assert response.success is False
        assert response.error_kind == "TransientFailure"
        assert "connection reset by peer" in response.error
        assert is_tx_hash(response.tx_hash)


class TestLogAccessIngress:

    def test_success_response(self, relay):
        response = asyncio.run(relay.log_access("63:5A:59:31", True, "1"))
        assert response.success
        assert set(response.to_dict()) == {"success", "txHash"}

    def test_invalid_response(self, relay):
        response = asyncio.run(relay.log_access("", True, "1"))
        assert not response.success
        assert response.error_kind == "InvalidInput"
        assert "rfidId" in response.error

    def test_timeout_response_is_definitive(self, store, owner_key):
        backend = InProcessLedger(store, confirmation_delay=0.3)
        relay = TransactionRelay(backend, owner_key, confirmation_timeout=0.05)

        response = asyncio.run(relay.log_access("63:5A:59:31", True, "1"))
        assert response.success is False
        assert response.error_kind == "TransientFailure"
        assert is_tx_hash(response.tx_hash)

    def test_rejected_response(self, backend, other_key):
        relay = TransactionRelay(backend, other_key, confirmation_timeout=2.0)
        response = asyncio.run(relay.log_access("A", True, "1"))
        assert response.error_kind == "RejectedByLedger"
        assert OWNER_ONLY_REASON in response.error

    def test_sync_wrapper(self, store, relay):
        response = relay.log_access_sync("63:5A:59:31", True, "1")
        assert response.success
        assert store.count() == 1

    def test_sync_wrapper_timeout_still_lands(self, store, owner_key):
        """The blocking wrapper must not cancel an inclusion that outlives the timeout."""
        backend = InProcessLedger(store, confirmation_delay=0.2)
        relay = TransactionRelay(backend, owner_key, confirmation_timeout=0.05)

        response = relay.log_access_sync("63:5A:59:31", True, "1")

        assert response.error_kind == "TransientFailure"
        assert store.count() == 1
        assert store.entries()[0].tx_hash == response.tx_hash
        assert backend.receipt(response.tx_hash).confirmed
        assert backend.pending_count == 0

    def test_timeout_must_be_positive(self, backend, owner_key):
        with pytest.raises(ValueError):
            TransactionRelay(backend, owner_key, confirmation_timeout=0)
