"""WebSocket endpoint streaming a user's notifications as they are created."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict, Optional, Set
from datetime import datetime, timezone
import logging
import asyncio

from auth import manager as auth_manager
from errors import AuthenticationError
from notifications import subscribe, unsubscribe

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/ws",
    tags=["WebSocket"]
)

class ConnectionManager:
    """Track open notification streams per user."""
    
    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}
    
    async def connect(self, websocket: WebSocket, user_id: Any):
        """Accept connection and add to active connections."""
        await websocket.accept()
        self.active_connections.setdefault(str(user_id), set()).add(websocket)
        logger.info(f"Notification stream opened for user {user_id}")
    
    def disconnect(self, websocket: WebSocket, user_id: Any):
        """Remove connection from active connections."""
        connections = self.active_connections.get(str(user_id))
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            del self.active_connections[str(user_id)]
        logger.info(f"Notification stream closed for user {user_id}")
    
    def count(self) -> int:
        """Number of open connections across all users."""
        return sum(len(connections) for connections in self.active_connections.values())

# Create connection manager instance
manager = ConnectionManager()

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

async def _forward(websocket: WebSocket, queue: asyncio.Queue):
    """Send every notification put on the queue to the client."""
    while True:
        notification = await queue.get()
        await websocket.send_json({
            "type": "notification",
            "data": jsonable_encoder(notification),
            "timestamp": _now()
        })

async def _stop(task: asyncio.Task):
    """Cancel a forwarding task and wait for it to finish."""
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.warning(f"Notification forwarding stopped with an error: {e}")

@router.websocket("/notifications")
async def notifications_endpoint(websocket: WebSocket, token: Optional[str] = None):
    """Stream the token holder's new notifications.
    
    Clients may send "ping" at any time and receive a pong.
    """
    user = None
    if token:
        try:
            user = await auth_manager.verify_token(token)
        except AuthenticationError:
            user = None
    if not user:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    
    await manager.connect(websocket, user['id'])
    queue = subscribe(user['id'])
    sender = asyncio.create_task(_forward(websocket, queue))
    
    try:
        await websocket.send_json({"type": "connected", "timestamp": _now()})
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"type": "pong", "timestamp": _now()})
    except WebSocketDisconnect:
        pass
    finally:
        await _stop(sender)
        unsubscribe(user['id'], queue)
        manager.disconnect(websocket, user['id'])

__all__ = ['router', 'manager']
