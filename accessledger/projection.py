"""
Read Projection over the record store.

Pure reads, forwarded on every call. Nothing is cached, so there is no
staleness window. page() and between() are the bounded alternatives to
materialising the whole sequence with list_records().
"""

from dataclasses import dataclass
from typing import List, Optional

from accessledger.core.exceptions import InvalidInput
from accessledger.core.models import AccessRecord
from accessledger.ledger.store import RecordStore

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE     = 1000


@dataclass
class RecordPage:
    records:     List[AccessRecord]
    cursor:      int
    next_cursor: Optional[int]
    total:       int


class ReadProjection:

    def __init__(self, store: RecordStore):
        self.store = store

    def list_records(self) -> List[AccessRecord]:
        return self.store.records()

    def access_count(self) -> int:
        return self.store.count()

    def record_at(self, index: int) -> AccessRecord:
        return self.store.record_at(index)

    def page(self, cursor: int = 0, limit: int = DEFAULT_PAGE_SIZE) -> RecordPage:
        """
        Records [cursor, cursor + limit) in append order.

        The cursor is an append index, so pages stay stable while the
        store grows. next_cursor is None once the end is reached.
        """
        if not isinstance(cursor, int) or isinstance(cursor, bool) or cursor < 0:
            raise InvalidInput("cursor must be a non-negative integer", {"cursor": cursor})
        if not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidInput(f"limit must be between 1 and {MAX_PAGE_SIZE}", {"limit": limit})

        records = self.store.slice(cursor, cursor + limit)
        total   = self.store.count()
        end     = cursor + len(records)
        return RecordPage(
            records=     records,
            cursor=      cursor,
            next_cursor= end if end < total else None,
            total=       total,
        )

    def between(self, start: int, end: int) -> List[AccessRecord]:
        """Records with start <= timestamp < end (timestamps never decrease)."""
        if end < start:
            raise InvalidInput("end must not precede start", {"start": start, "end": end})
        lo, hi = self.store.timestamp_bounds(start, end)
        return self.store.slice(lo, hi)
