"""
tests/test_projection.py

Read Projection: uncached reads, cursor pages and time-range slices.
"""

import pytest

from accessledger.core.exceptions import InvalidInput, OutOfRange
from accessledger.ledger.store import RecordStore
from accessledger.projection import MAX_PAGE_SIZE, ReadProjection


@pytest.fixture
def projection(store):
    return ReadProjection(store)


def fill(store, owner_key, clock, n, step=10):
    for i in range(n):
        store.append(owner_key.identity, f"rfid-{i}", i % 2 == 0, str(i))
        clock.advance(step)


class TestForwardedReads:

    def test_reflects_store_immediately(self, store, projection, owner_key):
        assert projection.access_count() == 0
        assert projection.list_records() == []

        store.append(owner_key.identity, "A", True, "1")
        assert projection.access_count() == 1
        assert projection.list_records()[0].rfid_id == "A"
        assert projection.record_at(0).rfid_id == "A"

    def test_record_at_out_of_range(self, projection):
        with pytest.raises(OutOfRange):
            projection.record_at(0)


class TestPage:

    def test_walk_all_pages(self, store, projection, owner_key, clock):
        fill(store, owner_key, clock, 23)

        seen = []
        cursor = 0
        while cursor is not None:
            page = projection.page(cursor=cursor, limit=10)
            assert page.total == 23
            seen.extend(page.records)
            cursor = page.next_cursor

        assert seen == store.records()

    def test_last_page_has_no_next_cursor(self, store, projection, owner_key, clock):
        fill(store, owner_key, clock, 5)
        page = projection.page(cursor=0, limit=5)
        assert len(page.records) == 5
        assert page.next_cursor is None

    def test_cursor_past_end_is_empty(self, store, projection, owner_key, clock):
        fill(store, owner_key, clock, 3)
        page = projection.page(cursor=10, limit=5)
        assert page.records == []
        assert page.next_cursor is None

    @pytest.mark.parametrize("cursor, limit", [
        (-1, 10),
        (0, 0),
        (0, MAX_PAGE_SIZE + 1),
        (True, 10),
    ])
    def test_bad_arguments(self, projection, cursor, limit):
        with pytest.raises(InvalidInput):
            projection.page(cursor=cursor, limit=limit)


class TestBetween:

    def test_time_range_slice(self, store, projection, owner_key, clock):
        start = clock.now
        fill(store, owner_key, clock, 10, step=10)

        window = projection.between(start + 20, start + 50)
        assert [r.rfid_id for r in window] == ["rfid-2", "rfid-3", "rfid-4"]

    def test_empty_range(self, store, projection, owner_key, clock):
        fill(store, owner_key, clock, 3)
        assert projection.between(0, 1) == []

    def test_reversed_range(self, projection):
        with pytest.raises(InvalidInput):
            projection.between(10, 5)

    def test_range_on_reopened_ledger(self, tmp_path, owner_key, clock):
        path = tmp_path / "ledger.jsonl"
        start = clock.now
        fill(RecordStore(owner=owner_key.identity, ledger_path=path, clock=clock), owner_key, clock, 5)

        window = ReadProjection(RecordStore.open(path)).between(start + 10, start + 30)
        assert [r.rfid_id for r in window] == ["rfid-1", "rfid-2"]
