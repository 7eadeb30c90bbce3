"""
Relay API endpoints.

POST /log-access is the single write path used by door controllers. The
read endpoints expose the projection; none of them require credentials.
"""

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from accessledger.api.models import (
    AccessCountModel,
    AccessRecordModel,
    LogAccessRequest,
    LogAccessResult,
    RecordPageModel,
)
from accessledger.core.exceptions import InvalidInput, OutOfRange
from accessledger.projection import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

router = APIRouter()

# errorKind -> HTTP status for a failed /log-access
STATUS_BY_KIND = {
    "InvalidInput":     400,
    "RejectedByLedger": 409,
    "TransientFailure": 503,
}


@router.post("/log-access", response_model=LogAccessResult, response_model_exclude_none=True)
async def log_access(body: LogAccessRequest, request: Request):
    """Relay one access attempt and block until confirmation or failure."""
    relay = request.app.state.context.relay
    result = await relay.log_access(body.rfidId, body.success, body.fingerprintId)
    if result.success:
        return result.to_dict()
    status = STATUS_BY_KIND.get(result.error_kind, 500)
    return JSONResponse(status_code=status, content=result.to_dict())


@router.get("/access-records", response_model=RecordPageModel)
async def access_records(
    request: Request,
    cursor: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    page = request.app.state.context.projection.page(cursor=cursor, limit=limit)
    return {
        "records": [r.to_dict() for r in page.records],
        "cursor": page.cursor,
        "nextCursor": page.next_cursor,
        "total": page.total,
    }


@router.get("/access-records/{index}", response_model=AccessRecordModel)
async def access_record(index: int, request: Request):
    try:
        record = request.app.state.context.projection.record_at(index)
    except OutOfRange as exc:
        return JSONResponse(status_code=404, content={"error": str(exc), "errorKind": exc.kind})
    return record.to_dict()


@router.get("/access-count", response_model=AccessCountModel)
async def access_count(request: Request):
    return {"count": request.app.state.context.projection.access_count()}


@router.get("/health")
async def health(request: Request):
    context = request.app.state.context
    return {
        "status": "ok",
        "owner": context.key_manager.identity,
        "records": context.store.count(),
        "pending": context.backend.pending_count,
    }


async def invalid_request_handler(request: Request, exc: Exception):
    """Malformed bodies get the same definitive shape as relay failures."""
    logger.info("Malformed request to %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": str(exc), "errorKind": InvalidInput.kind},
    )
