"""WebSocket endpoint for pipeline notifications.

Every connected client receives every event; clients filter by animationId.
"""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from animation_engine.api.deps import WebSocketChannelDep
from animation_engine.logging import get_logger
from animation_engine.services.notifications import Subscription

router = APIRouter(tags=["Notifications"])
logger = get_logger(__name__)


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        message = await subscription.get()
        await websocket.send_json(message)


async def _receive(websocket: WebSocket) -> None:
    # Clients only send keepalives; reading detects the disconnect
    while True:
        data = await websocket.receive_text()
        if data == "ping":
            await websocket.send_json({"type": "pong"})


@router.websocket("/ws-animation")
async def animation_updates(websocket: WebSocket, channel: WebSocketChannelDep) -> None:
    await websocket.accept()
    subscription = channel.subscribe()

    forward = asyncio.create_task(_forward(websocket, subscription))
    receive = asyncio.create_task(_receive(websocket))
    try:
        done, _ = await asyncio.wait({forward, receive}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("websocket_closed_with_error", error=str(exc))
    finally:
        forward.cancel()
        receive.cancel()
        await asyncio.gather(forward, receive, return_exceptions=True)
        channel.unsubscribe(subscription)
