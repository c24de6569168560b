"""Live ETA feed: one snapshot frame on connect, then update frames."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fleet_eta.core.broadcaster import encode_frame

logger = logging.getLogger(__name__)

router = APIRouter()

# Will be set by main.py
engine = None
broadcaster = None


@router.websocket("/ws/etas")
async def eta_feed(websocket: WebSocket) -> None:
    await websocket.accept()
    if engine is None or broadcaster is None:
        await websocket.close(code=1011, reason="Service not ready")
        return

    # Subscribe first so an update racing the snapshot is queued, not lost
    updates = broadcaster.subscribe()
    try:
        await websocket.send_bytes(encode_frame("snapshot", engine.published_etas()))
        while True:
            await websocket.send_bytes(await updates.get())
    except WebSocketDisconnect:
        logger.debug("ETA feed client disconnected")
    finally:
        broadcaster.unsubscribe(updates)
