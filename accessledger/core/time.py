"""
accessledger/core/time.py

THE ONLY CLOCK IN ACCESSLEDGER.

Ledger timestamps are integer UNIX seconds, assigned at inclusion time
and never supplied by a client. Stores accept an injected clock with
the same signature so tests can pin time.
"""

import time
from typing import Callable

Clock = Callable[[], int]


def ledger_timestamp() -> int:
    """Return the current UTC time as whole UNIX seconds."""
    return int(time.time())
