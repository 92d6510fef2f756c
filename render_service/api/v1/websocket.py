"""WebSocket push channel for render progress, scoped to one owner."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from render_service.jobs.progress import ProgressEvent, event_payload

logger = logging.getLogger(__name__)
router = APIRouter()

# Set by main.py during lifespan
_publisher = None


def set_publisher(publisher):
    global _publisher
    _publisher = publisher


@router.websocket("/ws/jobs/{owner_id}")
async def job_events(websocket: WebSocket, owner_id: str) -> None:
    """Stream render:* events for every job owned by `owner_id`.

    Incoming messages are ignored; the client may send anything as a keepalive.
    """
    if _publisher is None:
        await websocket.close(code=1013)
        return

    await websocket.accept()

    async def forward(event: ProgressEvent) -> None:
        await websocket.send_json(event_payload(event))

    unsubscribe = _publisher.subscribe(forward, owner_id=owner_id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Progress socket disconnected: owner={owner_id}")
    finally:
        unsubscribe()
