import asyncio, logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from blip.services.publisher import Viewer

router = APIRouter()
logger = logging.getLogger(__name__)

async def _on_close(websocket: WebSocket, viewer: Viewer) -> None:
    # inbound frames are ignored; this only notices the viewer going away
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except (WebSocketDisconnect, RuntimeError):
        pass
    viewer.close()

@router.websocket("/stream")
async def stream(websocket: WebSocket):
    await websocket.accept()
    publisher = websocket.app.state.monitor.publisher
    viewer = publisher.attach(websocket.send_text)
    watcher = asyncio.create_task(_on_close(websocket, viewer))
    try:
        await viewer.pump()
    finally:
        watcher.cancel()
    logger.debug("viewer %s done after %d message(s)", viewer.id, viewer.delivered)
    if (websocket.application_state == WebSocketState.CONNECTED
            and websocket.client_state == WebSocketState.CONNECTED):
        try:
            await websocket.close()
        except (RuntimeError, OSError):
            logger.debug("viewer %s already closed", viewer.id)
