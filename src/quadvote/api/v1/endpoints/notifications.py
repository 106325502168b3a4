"""WebSocket stream of balance and vote-total changes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from quadvote.core.security import Principal, decode_access_token
from quadvote.services.errors import AuthorizationError
from quadvote.services.notifications import ChangeNotifier, balance_topic

from ..dependencies import get_notifier_dep

router = APIRouter(prefix="/notifications", tags=["notifications"])

logger = logging.getLogger(__name__)

BALANCE_PREFIX = "balance:"
VOTES_PREFIX = "votes:"


def _authorize_topic(topic: str, token: str | None) -> bool:
    if topic.startswith(VOTES_PREFIX) and len(topic) > len(VOTES_PREFIX):
        return True
    if not topic.startswith(BALANCE_PREFIX) or token is None:
        return False
    try:
        principal: Principal = decode_access_token(token)
    except AuthorizationError:
        return False
    return principal.is_service or topic == balance_topic(principal.user_id)


@router.websocket("/ws")
async def stream_changes(
    websocket: WebSocket,
    topic: str = Query(...),
    token: str | None = Query(None),
    notifier: ChangeNotifier = Depends(get_notifier_dep),
) -> None:
    """Forward every change published on ``topic`` to the client.

    ``votes:{issue_id}`` topics are public; ``balance:{user_id}`` topics need a
    token for that user or the service identity.
    """
    if not _authorize_topic(topic, token):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def _deliver(event_topic: str, payload: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, {"topic": event_topic, "payload": payload})

    unsubscribe = notifier.subscribe(topic, _deliver)
    await websocket.send_json({"type": "subscribed", "topic": topic})

    async def _forward() -> None:
        while True:
            event = await queue.get()
            await websocket.send_json({"type": "change", **event})

    async def _drain() -> None:
        while True:
            await websocket.receive_text()

    tasks = [asyncio.create_task(_forward()), asyncio.create_task(_drain())]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Notification stream for %s ended: %s", topic, exc)
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()
