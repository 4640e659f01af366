from __future__ import annotations

from fastapi import APIRouter, HTTPException

from reprocessor.application import get_session
from reprocessor.core.errors import ValidationError

router = APIRouter(prefix="/preview", tags=["preview"])


@router.post("")
async def run_preview() -> dict:
    session = get_session()
    try:
        records = await session.preview()
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if records is None:
        raise HTTPException(status_code=502, detail="preview query failed")
    return session.preview_engine.snapshot()


@router.get("")
async def get_preview() -> dict:
    return get_session().preview_engine.snapshot()


@router.post("/next")
async def next_page() -> dict:
    session = get_session()
    session.next_page()
    return session.preview_engine.snapshot()


@router.post("/prev")
async def prev_page() -> dict:
    session = get_session()
    session.prev_page()
    return session.preview_engine.snapshot()
