from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from reprocessor.application import get_log_viewer

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("")
async def list_logs(record_id: str = Query(...)) -> dict:
    viewer = get_log_viewer()
    logs = await viewer.load(record_id)
    return {
        "record_id": record_id,
        "logging_enabled": await viewer.is_logging_enabled(),
        "items": [log.model_dump() for log in logs],
    }


@router.get("/{log_id}/lines")
async def get_log_lines(
    log_id: str,
    record_id: str = Query(...),
    filter: str = Query(default=""),
) -> dict:
    lines = await get_log_viewer().lines(record_id, log_id, filter)
    if lines is None:
        raise HTTPException(status_code=404, detail="log not found")
    return {"log_id": log_id, "filter": filter, "items": lines}
