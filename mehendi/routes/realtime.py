"""
Realtime Router
WebSocket endpoint for live appointment notifications and appointment rooms.

Frames in both directions are JSON objects: {"event": <name>, "data": <payload>}
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as SchemaValidationError

from ..auth import decode_access_token
from ..database import SessionLocal
from ..domain.appointments.router import get_mailer
from ..domain.appointments.schemas import AppointmentStatusUpdate
from ..domain.appointments.service import AppointmentService, format_appointment_date
from ..domain.directory import UserDirectory
from ..enums import AppointmentStatus, UserRole
from ..models import User
from ..services.notification_service import (
    APPOINTMENT_ACTION_ERROR,
    APPOINTMENT_CANCELLED_BY_USER,
    APPOINTMENT_CONFIRMED,
    ARTISTS_ROOM,
    NotificationService,
    SocketConnection,
    get_notification_service,
)
from ..services.side_effects import SideEffectDispatcher, get_side_effects

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

MAX_ROOM_MESSAGE_LENGTH = 2000


def extract_socket_token(websocket: WebSocket) -> Optional[str]:
    """Read the access token from the query string or handshake headers"""
    token = websocket.query_params.get("token") or websocket.headers.get("x-socket-token")
    if token:
        return token

    authorization = websocket.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def authenticate_socket(websocket: WebSocket) -> Optional[tuple[str, str]]:
    """Resolve the handshake token to (user_id, role) of an active user"""
    claims = decode_access_token(extract_socket_token(websocket))
    if not claims:
        return None

    db = SessionLocal()
    try:
        user = UserDirectory.find_user_by_id(db, claims["sub"])
        if user is None or not user.is_active:
            return None
        return user.id, user.role
    finally:
        db.close()


def appointment_room(appointment_id: str) -> str:
    return f"appointment:{appointment_id}"


def _error_message(exc: Exception) -> str:
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    if isinstance(exc, SchemaValidationError):
        return "; ".join(error["msg"] for error in exc.errors())
    return "Something went wrong"


class SocketEventHandler:
    """Handles client -> server events for one authenticated connection"""

    def __init__(
        self,
        connection: SocketConnection,
        notifier: NotificationService,
        dispatcher: SideEffectDispatcher,
        mailer: Any,
    ):
        self.connection = connection
        self.mailer = mailer
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.handlers = {
            "artist_confirm_appointment": self.artist_confirm_appointment,
            "user_cancel_appointment": self.user_cancel_appointment,
            "join_appointment_room": self.join_appointment_room,
            "send_message_to_appointment_room": self.send_message_to_appointment_room,
            "client_ping": self.client_ping,
        }

    async def handle(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            await self.action_error("Invalid message format, expected JSON.")
            return

        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self.action_error("Invalid message format, expected an event name.")
            return

        event = frame["event"]
        data = frame.get("data")
        if not isinstance(data, dict):
            data = {}

        handler = self.handlers.get(event)
        if handler is None:
            logger.warning(f"⚠️ Unknown socket event \"{event}\" from user {self.connection.user_id}")
            await self.action_error(f"Unknown event: {event}")
            return

        # One short-lived session per event; an idle socket holds no connection
        db = SessionLocal()
        try:
            user = UserDirectory.find_user_by_id(db, self.connection.user_id)
            if user is None or not user.is_active:
                await self.action_error("Account is not available.")
                return

            service = AppointmentService(db, notifier=self.notifier, dispatcher=self.dispatcher, mailer=self.mailer)
            await handler(user, data, service)
        finally:
            db.close()

    async def action_error(self, message: str) -> None:
        await self.connection.send(APPOINTMENT_ACTION_ERROR, {"message": message})

    async def artist_confirm_appointment(self, user: User, data: dict, service: AppointmentService) -> None:
        appointment_id = data.get("appointmentId")
        if user.role != UserRole.ARTIST.value:
            await self.action_error("Only artists can confirm appointments.")
            return
        if not appointment_id:
            await self.action_error("appointmentId is required.")
            return

        try:
            appointment = await service.update_status(
                appointment_id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), user
            )
        except (HTTPException, SchemaValidationError) as e:
            logger.warning(f"⚠️ Artist {user.id} could not confirm appointment {appointment_id}: {e}")
            await self.action_error(_error_message(e))
            return

        self.dispatcher.dispatch(
            f"socket:confirmed:{appointment.id}",
            self.notifier.push_to_user(
                appointment.client_id,
                APPOINTMENT_CONFIRMED,
                {
                    "appointmentId": appointment.id,
                    "artistName": user.first_name,
                    "date": appointment.appointment_date.isoformat(),
                    "time": appointment.start_time,
                    "message": f"{user.first_name} confirmed your appointment on {format_appointment_date(appointment)}.",
                },
            ),
        )
        await self.connection.send(
            "appointment_confirmation_success",
            {"appointmentId": appointment.id, "status": appointment.status},
        )

    async def user_cancel_appointment(self, user: User, data: dict, service: AppointmentService) -> None:
        appointment_id = data.get("appointmentId")
        if not appointment_id:
            await self.action_error("appointmentId is required.")
            return

        reason = data.get("reason") or None
        reason_field = "cancellationReasonArtist" if user.role == UserRole.ARTIST.value else "cancellationReasonUser"
        try:
            request = AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED, **{reason_field: reason})
            appointment = await service.update_status(appointment_id, request, user)
        except (HTTPException, SchemaValidationError) as e:
            logger.warning(f"⚠️ User {user.id} could not cancel appointment {appointment_id}: {e}")
            await self.action_error(_error_message(e))
            return

        if appointment.artist_id != user.id:
            self.dispatcher.dispatch(
                f"socket:cancelled:{appointment.id}",
                self.notifier.push_to_user(
                    appointment.artist_id,
                    APPOINTMENT_CANCELLED_BY_USER,
                    {
                        "appointmentId": appointment.id,
                        "userName": user.first_name or "A user",
                        "date": appointment.appointment_date.isoformat(),
                        "time": appointment.start_time,
                        "reason": appointment.cancellation_reason,
                    },
                ),
            )
        await self.connection.send(
            "appointment_cancellation_success",
            {"appointmentId": appointment.id, "status": appointment.status},
        )

    async def join_appointment_room(self, user: User, data: dict, service: AppointmentService) -> None:
        appointment_id = data.get("appointmentId")
        if not appointment_id:
            await self.connection.send("error_joining_room", {"message": "appointmentId is required."})
            return

        try:
            appointment = await service.get_appointment(appointment_id, user)
        except HTTPException as e:
            logger.warning(f"⚠️ User {user.id} could not join room for appointment {appointment_id}")
            await self.connection.send(
                "error_joining_room", {"appointmentId": appointment_id, "message": str(e.detail)}
            )
            return

        room = appointment_room(appointment.id)
        self.notifier.join_room(self.connection, room)
        logger.info(f"🚪 User {user.id} joined room {room}")
        await self.connection.send("room_joined", {"appointmentId": appointment.id, "room": room})

    async def send_message_to_appointment_room(self, user: User, data: dict, service: AppointmentService) -> None:
        appointment_id = data.get("appointmentId")
        message = data.get("message")
        if not appointment_id or not isinstance(message, str) or not message.strip():
            await self.action_error("appointmentId and a non-empty message are required.")
            return
        if len(message) > MAX_ROOM_MESSAGE_LENGTH:
            await self.action_error(f"Message cannot exceed {MAX_ROOM_MESSAGE_LENGTH} characters.")
            return

        room = appointment_room(appointment_id)
        if not self.notifier.in_room(self.connection, room):
            await self.action_error("Join the appointment room before sending messages.")
            return

        await self.notifier.emit_to_room(
            room,
            "new_message_in_room",
            {
                "appointmentId": appointment_id,
                "senderId": user.id,
                "senderRole": user.role,
                "message": message.strip(),
                "timestamp": datetime.utcnow().isoformat(),
            },
            skip=self.connection,
        )

    async def client_ping(self, user: User, data: dict, service: AppointmentService) -> None:
        await self.connection.send("server_pong", {"timestamp": datetime.utcnow().isoformat()})


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    notifier: NotificationService = Depends(get_notification_service),
    dispatcher: SideEffectDispatcher = Depends(get_side_effects),
    mailer: Any = Depends(get_mailer),
):
    """Authenticated live channel for appointment notifications"""
    identity = authenticate_socket(websocket)
    if identity is None:
        logger.warning("🔒 Socket connection rejected: missing or invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    user_id, role = identity
    connection = SocketConnection(websocket, user_id, role)
    notifier.register_session(user_id, connection)
    notifier.join_room(connection, user_id)
    if role == UserRole.ARTIST.value:
        notifier.join_room(connection, ARTISTS_ROOM)

    handler = SocketEventHandler(connection, notifier, dispatcher, mailer)

    try:
        while True:
            raw = await websocket.receive_text()
            await handler.handle(raw)
    except WebSocketDisconnect as e:
        logger.info(f"🔌 Socket {connection.sid} closed by client (code={e.code})")
    finally:
        notifier.leave_all_rooms(connection)
        notifier.unregister_session(user_id, connection)
