from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from reprocessor.application import get_session
from reprocessor.core.errors import ValidationError

router = APIRouter(prefix="/session", tags=["session"])


@router.get("")
async def get_session_state() -> dict:
    return get_session().snapshot()


@router.put("/selection")
async def update_selection(payload: dict[str, Any]) -> dict:
    """Change target type, trigger context, filter or batch size; the preview is not re-run."""
    session = get_session()
    try:
        if "filter" in payload:
            session.set_filter(str(payload["filter"] or ""))
        if "batch_size" in payload:
            session.set_batch_size(int(payload["batch_size"]))
        if payload.get("target_type") and payload["target_type"] != session.state.target_type:
            await session.change_target_type(str(payload["target_type"]))
        if payload.get("trigger_context") and payload["trigger_context"] != session.state.trigger_context:
            await session.change_trigger_context(str(payload["trigger_context"]))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"invalid selection: {exc}") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return session.snapshot()


@router.get("/logic")
async def list_logic_options() -> dict:
    session = get_session()
    return {
        "items": [option.model_dump() for option in session.state.logic_options],
        "selected_logic_ids": list(session.state.selected_logic_ids),
    }


@router.post("/logic/refresh")
async def refresh_logic_options() -> dict:
    """Reload logic options; selections that are still offered are kept."""
    session = get_session()
    await session.fetch_logic_options()
    return {
        "items": [option.model_dump() for option in session.state.logic_options],
        "selected_logic_ids": list(session.state.selected_logic_ids),
    }


@router.post("/logic/selection")
async def select_logic(payload: dict[str, Any]) -> dict:
    ids = payload.get("ids")
    if not isinstance(ids, list):
        raise HTTPException(status_code=400, detail="ids must be a list")
    session = get_session()
    try:
        fields = session.select_logic(str(item) for item in ids)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"selected_logic_ids": session.state.selected_logic_ids, "fields": fields}


@router.get("/fields/options")
async def list_field_options() -> dict:
    session = get_session()
    return {"items": await session.fetch_field_options()}


@router.put("/fields")
async def select_fields(payload: dict[str, Any]) -> dict:
    fields = payload.get("fields")
    if not isinstance(fields, list):
        raise HTTPException(status_code=400, detail="fields must be a list")
    session = get_session()
    selected = session.select_fields(str(item) for item in fields)
    return {"fields": selected, "field_text": session.state.field_text}


@router.put("/fields/text")
async def apply_field_text(payload: dict[str, Any]) -> dict:
    session = get_session()
    selected = session.apply_field_text(str(payload.get("text") or ""))
    return {"fields": selected, "field_text": session.state.field_text}
