import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket

from housepoints.realtime.hub import BroadcastHub

logger = logging.getLogger(__name__)


async def live_updates(websocket: WebSocket):
    hub: BroadcastHub = websocket.app.state.broadcast_hub
    connection = await hub.connect(websocket)
    sender = asyncio.create_task(hub.pump(connection))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug("Live client %s closed the socket (code %s).", connection.id, message.get("code"))
                break
            # Only the text keepalive is answered; binary frames and other text are ignored.
            if message.get("text") == "ping":
                hub.reply(connection, "pong")
    finally:
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        hub.disconnect(connection)


def create_router(path: str) -> APIRouter:
    router = APIRouter(tags=["realtime"])
    router.add_api_websocket_route(path, live_updates)
    return router
