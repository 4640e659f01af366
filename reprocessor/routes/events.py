from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from reprocessor.application import get_session
from reprocessor.infrastructure import InMemoryEventBus, InMemoryNotifier

router = APIRouter(tags=["events"])


@router.get("/events")
async def list_events(matched_only: bool = Query(default=False)) -> dict:
    correlator = get_session().correlator
    entries = correlator.entries
    if matched_only:
        entries = [entry for entry in entries if entry.matched]
    return {
        "channel": correlator.channel_name,
        "subscribed": correlator.subscription is not None,
        "items": [asdict(entry) for entry in entries],
    }


@router.post("/events")
async def publish_event(payload: dict[str, Any]) -> dict:
    """Webhook for executors that push trigger log events over HTTP."""
    correlator = get_session().correlator
    channel = correlator.channel
    if not isinstance(channel, InMemoryEventBus):
        raise HTTPException(status_code=409, detail="push channel does not accept published events")
    delivered = channel.publish(correlator.channel_name, payload)
    return {"delivered": delivered}


@router.delete("/events")
async def clear_events() -> dict:
    get_session().correlator.clear()
    return {"items": []}


@router.get("/notifications")
async def list_notifications() -> dict:
    notifier = get_session().notifier
    if not isinstance(notifier, InMemoryNotifier):
        return {"items": []}
    return {"items": [asdict(item) for item in notifier.notifications]}
