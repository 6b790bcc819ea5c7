"""
Live update route: WebSocket pushing NEW_ARTICLE events.
"""

import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from ..config import state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.websocket("/ws")
async def live_updates(websocket: WebSocket):
    """Stream new-article events to the client until it disconnects."""
    if state.broadcaster is None:
        await websocket.close(code=1011)
        return

    await websocket.accept()
    await state.broadcaster.serve(websocket)

    # Dropped by the server (slow or failing client) rather than by the peer
    if websocket.client_state == WebSocketState.CONNECTED:
        try:
            await websocket.close(code=1008)
        except RuntimeError as e:
            logger.debug(f"WebSocket already closing: {e}")
