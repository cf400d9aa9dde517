"""
Real-time Notification Service
Keeps the live user -> connection registry and pushes events over WebSockets.

Delivery is best-effort: users without a live connection miss the push and
recover the current state by reading their appointments.
"""

import logging
import threading
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any, Optional

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

# Server -> client event names
APPOINTMENT_UPDATED = "appointment_updated"
NEW_APPOINTMENT_REQUEST = "new_appointment_request"
APPOINTMENT_CONFIRMED = "appointment_confirmed"
APPOINTMENT_CANCELLED_BY_USER = "appointment_cancelled_by_user"
APPOINTMENT_ACTION_ERROR = "appointment_action_error"

ARTISTS_ROOM = "artists"


class SocketConnection:
    """A live, authenticated WebSocket connection"""

    def __init__(self, websocket: WebSocket, user_id: str, role: str):
        self.sid = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self.role = role
        self.connected_at = datetime.utcnow()

    async def send(self, event: str, data: Any = None) -> None:
        """Send one event frame: {"event": ..., "data": ...}"""
        await self.websocket.send_json({"event": event, "data": jsonable_encoder(data)})

    def __repr__(self) -> str:
        return f"<SocketConnection sid={self.sid} user={self.user_id}>"


class NotificationService:
    """Process-local session registry with rooms"""

    def __init__(self):
        self._lock = threading.RLock()
        self._connections: dict[str, SocketConnection] = {}
        self._user_sessions: dict[str, SocketConnection] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)

    # ------------------------------------------------------------------
    # Session registry
    # ------------------------------------------------------------------

    def register_session(self, user_id: str, connection: SocketConnection) -> None:
        """Associate a user with a live connection (last write wins)"""
        with self._lock:
            previous = self._user_sessions.get(user_id)
            self._user_sessions[user_id] = connection
            self._connections[connection.sid] = connection
        if previous is not None and previous.sid != connection.sid:
            logger.info(f"🔁 User {user_id} session replaced: {previous.sid} -> {connection.sid}")
        logger.info(f"🔌 User {user_id} connected with socket {connection.sid}")

    def unregister_session(self, user_id: str, connection: Optional[SocketConnection] = None) -> None:
        """
        Remove the user's mapping on disconnect.

        When a connection is given, the mapping is only removed if it still
        points at that connection, so a stale disconnect cannot evict a newer
        session for the same user.
        """
        with self._lock:
            current = self._user_sessions.get(user_id)
            if current is not None and (connection is None or current.sid == connection.sid):
                del self._user_sessions[user_id]
            if connection is not None:
                self._connections.pop(connection.sid, None)
                for members in self._rooms.values():
                    members.discard(connection.sid)
        logger.info(f"🔌 User {user_id} disconnected")

    def get_session(self, user_id: str) -> Optional[SocketConnection]:
        with self._lock:
            return self._user_sessions.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return self.get_session(user_id) is not None

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def join_room(self, connection: SocketConnection, room: str) -> None:
        with self._lock:
            self._rooms[room].add(connection.sid)
        logger.debug(f"User {connection.user_id} joined room {room}")

    def leave_all_rooms(self, connection: SocketConnection) -> None:
        with self._lock:
            for room in [name for name, members in self._rooms.items() if connection.sid in members]:
                self._rooms[room].discard(connection.sid)
                if not self._rooms[room]:
                    del self._rooms[room]

    def in_room(self, connection: SocketConnection, room: str) -> bool:
        with self._lock:
            return connection.sid in self._rooms.get(room, ())

    def _room_members(self, room: str) -> list[SocketConnection]:
        with self._lock:
            return [
                self._connections[sid] for sid in self._rooms.get(room, ()) if sid in self._connections
            ]

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def push_to_user(self, user_id: str, event: str, payload: Any = None) -> bool:
        """Send an event to the user's live connection, if any"""
        connection = self.get_session(user_id)
        if connection is None:
            logger.warning(f"⚠️ User {user_id} not connected, cannot send notification \"{event}\"")
            return False

        try:
            await connection.send(event, payload)
        except Exception as e:
            logger.error(f"❌ Failed to send \"{event}\" to user {user_id} (socket {connection.sid}): {e}")
            return False

        logger.info(f"📨 Sent notification \"{event}\" to user {user_id} (socket {connection.sid})")
        return True

    async def emit_to_room(
        self,
        room: str,
        event: str,
        payload: Any = None,
        skip: Optional[SocketConnection] = None,
    ) -> int:
        """Send an event to every connection in a room; returns the delivered count"""
        delivered = 0
        for connection in self._room_members(room):
            if skip is not None and connection.sid == skip.sid:
                continue
            try:
                await connection.send(event, payload)
                delivered += 1
            except Exception as e:
                logger.error(f"❌ Failed to send \"{event}\" to socket {connection.sid} in room {room}: {e}")
        return delivered

    async def broadcast(self, event: str, payload: Any = None, room: Optional[str] = None) -> int:
        """Send to a named room, or to every connected session when no room is given"""
        if room:
            delivered = await self.emit_to_room(room, event, payload)
            logger.info(f"📣 Broadcasted notification \"{event}\" to room {room}")
            return delivered

        with self._lock:
            connections = list(self._connections.values())

        delivered = 0
        for connection in connections:
            try:
                await connection.send(event, payload)
                delivered += 1
            except Exception as e:
                logger.error(f"❌ Failed to broadcast \"{event}\" to socket {connection.sid}: {e}")
        logger.info(f"📣 Broadcasted notification \"{event}\" to all connected clients")
        return delivered

    # Specific notification types
    async def notify_appointment_update(self, user_id: str, details: dict) -> bool:
        return await self.push_to_user(user_id, APPOINTMENT_UPDATED, details)

    async def notify_new_appointment_request(self, artist_id: str, details: dict) -> bool:
        return await self.push_to_user(artist_id, NEW_APPOINTMENT_REQUEST, details)


notification_service = NotificationService()


def get_notification_service() -> NotificationService:
    """Dependency returning the process-wide notification service"""
    return notification_service
