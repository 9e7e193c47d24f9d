"""WebSocket feed of newly created posts."""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mikromatter.services.broadcast_service import hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def websocket_feed(websocket: WebSocket):
    await hub.connect(websocket)
    try:
        while True:
            # Inbound messages are ignored; reading keeps the connection open
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
