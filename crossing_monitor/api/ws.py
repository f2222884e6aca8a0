"""WebSocket endpoint for live readings."""

import asyncio
import logging

import orjson
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()

# Will be set by main.py on startup
broadcaster = None
query = None


@router.websocket("/ws/readings")
async def readings_ws(websocket: WebSocket) -> None:
    """Send the current snapshot, then every new reading as it is recorded."""
    await websocket.accept()

    if broadcaster is None or query is None:
        await websocket.close(code=1011, reason="Service not ready")
        return

    # Subscribed before the snapshot is built so no reading falls between them
    queue = broadcaster.subscribe()
    try:
        snapshot = query.snapshot().model_dump(mode="json")
        snapshot["type"] = "snapshot"
        await websocket.send_bytes(orjson.dumps(snapshot))

        while True:
            data = await queue.get()
            await websocket.send_bytes(data)
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("WebSocket error")
    finally:
        broadcaster.unsubscribe(queue)
