from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from freight.database import async_session_maker
from freight.services.auth_service import AuthService
from freight.services.notification_service import bidding_room, user_room
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

# Rooms a client may join on request; user rooms come only from a valid token
JOINABLE_PREFIXES = ("bidding-", "load-")

def _room_name(value) -> Optional[str]:
    """Accept a full room name or a bare session id"""
    if not value:
        return None
    value = str(value)
    if value.startswith(JOINABLE_PREFIXES):
        return value
    return bidding_room(value)

async def _user_id_for(token: str):
    async with async_session_maker() as db:
        user = await AuthService.user_from_token(db, token)
        return user.id if user else None

@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket, token: Optional[str] = None):
    """
    Real-time events.
    A valid ?token= auto-joins the caller's user room; bidding and load rooms
    are joined with join-bidding-room. Relaying new-bid needs the token.
    """
    manager = websocket.app.state.connections
    notifier = websocket.app.state.notifier

    await manager.connect(websocket)
    user_id = None
    if token:
        user_id = await _user_id_for(token)
        if user_id is None:
            await websocket.close(code=1008)
            return
        manager.join(websocket, user_room(user_id))

    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                continue
            event = data.get("event")
            payload = data.get("data")

            if event == "ping":
                await websocket.send_json({"event": "pong"})

            elif event == "join-bidding-room":
                room_id = _room_name(payload)
                if room_id:
                    manager.join(websocket, room_id)
                    await websocket.send_json({"event": "joined", "data": room_id})

            elif event == "leave-bidding-room":
                room_id = _room_name(payload)
                if room_id:
                    manager.leave(websocket, room_id)

            # Only authenticated clients may relay bid updates
            elif event == "new-bid" and isinstance(payload, dict) and user_id is not None:
                room_id = _room_name(payload.get("roomId"))
                if room_id:
                    await notifier.emit(room_id, "bid-updated", payload)

            else:
                logger.debug("Ignoring websocket event %r", event)

    except WebSocketDisconnect:
        logger.debug("WebSocket client disconnected")
    finally:
        manager.disconnect(websocket)
