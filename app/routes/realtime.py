from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import logging
from app.utils.websocket_manager import broadcaster

router = APIRouter()

logger = logging.getLogger(__name__)

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Push channel for quiz announcements.

    After connecting, send ``{"type": "join_quiz", "quiz_id": ...}`` for each quiz
    to follow; a ``quiz_started`` message arrives when it opens.
    """
    client_ip = websocket.client.host if websocket.client else None
    connection_id = await broadcaster.connect(websocket, client_ip)
    if not connection_id:
        return

    try:
        while True:
            data = await websocket.receive_text()
            await broadcaster.handle_message(connection_id, data)
    except WebSocketDisconnect:
        logger.info(f"Connection {connection_id} disconnected")
    except Exception as e:
        logger.error(f"Unexpected error in websocket {connection_id}: {e}")
    finally:
        await broadcaster.disconnect(connection_id)

@router.get("/health")
async def health_check():
    """Health check endpoint for the realtime broadcaster"""
    return broadcaster.get_health_status()

@router.get("/stats")
async def get_realtime_stats():
    """Get connection and topic counts"""
    return broadcaster.get_stats()
