"""
Pydantic models for the relay HTTP API.

Request fields are typed Any: type and emptiness checks
happen once, in the relay, so HTTP callers and in-process callers get
identical InvalidInput behaviour.
"""

from typing import Any, List, Optional

from pydantic import BaseModel


class LogAccessRequest(BaseModel):
    """
    Access attempt posted by door hardware.

    Attributes:
        rfidId: Identifier of the presented RFID credential, e.g. "63:5A:59:31"
        success: Combined RFID + fingerprint match outcome
        fingerprintId: Identifier of the fingerprint template involved
    """

    rfidId: Any = None
    success: Any = None
    fingerprintId: Any = None


class LogAccessResult(BaseModel):
    success: bool
    txHash: Optional[str] = None
    error: Optional[str] = None
    errorKind: Optional[str] = None


class AccessRecordModel(BaseModel):
    rfidId: str
    timestamp: int
    success: bool
    fingerprintId: str


class RecordPageModel(BaseModel):
    records: List[AccessRecordModel]
    cursor: int
    nextCursor: Optional[int] = None
    total: int


class AccessCountModel(BaseModel):
    count: int
