"""In-process realtime transport - WebSocket rooms"""
from typing import Any, Dict, Set

from fastapi import WebSocket

from app.utils.logger import logger

ADMINS_ROOM = "admins"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def chat_room(chat_id: str) -> str:
    return f"chat:{chat_id}"


class RoomManager:
    """Tracks which sockets joined which rooms and fans events out to them."""

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        # Drop empty rooms
        if not members:
            del self.rooms[room]

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self.rooms):
            self.leave(websocket, room)

    async def emit(self, room: str, event: str, data: Any) -> int:
        """Send ``{"event", "data"}`` to every socket in ``room``; returns deliveries"""
        delivered = 0
        # Copy so a failed socket can be removed while iterating
        for connection in list(self.rooms.get(room, ())):
            try:
                await connection.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as exc:
                logger.debug(f"Dropping dead socket from {room}", extra={"error": str(exc)})
                self.disconnect(connection)
        return delivered

    def members(self, room: str) -> int:
        return len(self.rooms.get(room, ()))
