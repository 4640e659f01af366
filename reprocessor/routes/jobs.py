from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from reprocessor.application import get_session

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("")
async def launch_job(payload: dict[str, Any] | None = None) -> dict:
    """Confirm and launch the selected logic; ``confirmed`` answers the confirmation prompt."""
    session = get_session()
    confirm = None
    if payload and "confirmed" in payload:
        answer = bool(payload["confirmed"])

        async def _answer(message: str) -> bool:
            return answer

        confirm = _answer

    handle = await session.run_logic(confirm=confirm)
    return {"launched": handle is not None, **session.controller.snapshot()}


@router.get("/current")
async def get_current_job() -> dict:
    return get_session().controller.snapshot()


@router.post("/current/poll")
async def poll_current_job() -> dict:
    session = get_session()
    await session.controller.poll_once()
    return session.controller.snapshot()


@router.delete("/current")
async def stop_current_job() -> dict:
    session = get_session()
    session.controller.stop()
    session.controller.close_progress()
    return session.controller.snapshot()
