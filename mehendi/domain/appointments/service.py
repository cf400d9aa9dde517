"""Appointment service - Booking lifecycle, status transitions and fan-out"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ... import email_service
from ...enums import OPEN_STATUSES, AppointmentStatus, UserRole
from ...exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ...models import Appointment, User
from ...services.notification_service import NotificationService, notification_service
from ...services.side_effects import SideEffectDispatcher, side_effects
from ...shared.validators import compute_end_time, validate_uuid
from ..directory import DesignCatalog, UserDirectory
from .repository import AppointmentRepository
from .schemas import (
    AppointmentCreate,
    AppointmentDetailsUpdate,
    AppointmentListParams,
    AppointmentStatusUpdate,
)

logger = logging.getLogger(__name__)

# Patch key -> column
DETAIL_FIELDS = {
    "appointmentDate": "appointment_date",
    "startTime": "start_time",
    "durationMinutes": "duration_minutes",
    "serviceType": "service_type",
    "location": "location",
    "notes": "notes",
    "artistNotes": "artist_notes",
    "price": "price",
    "priceBreakdown": "price_breakdown",
}

CLIENT_PROTECTED_FIELDS = ("artistNotes", "price")


def format_appointment_date(appointment: Appointment) -> str:
    return appointment.appointment_date.strftime("%A, %d %B %Y")


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationService] = None,
        dispatcher: Optional[SideEffectDispatcher] = None,
        mailer=None,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.users = UserDirectory()
        self.designs = DesignCatalog()
        self.notifier = notifier or notification_service
        self.dispatcher = dispatcher or side_effects
        # Anything exposing send_appointment_confirmation / send_appointment_status_update
        self.mailer = mailer or email_service

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_appointment(self, data: AppointmentCreate, user: User) -> Appointment:
        """Book a new pending appointment with an eligible artist"""
        logger.info(f"📥 Creating appointment for user_id: {user.id} with artist: {data.artist}")

        if user.role not in (UserRole.CLIENT.value, UserRole.ADMIN.value):
            logger.warning(f"⚠️ User {user.id} with role {user.role} tried to book an appointment")
            raise ForbiddenError("Only clients can book appointments.")

        client_id = user.id
        if data.client and data.client != user.id and user.role != UserRole.ADMIN.value:
            raise ForbiddenError("You can only book appointments for yourself.")
        if data.client and user.role == UserRole.ADMIN.value:
            client = self.users.find_user_by_id(self.db, data.client)
            # Only client accounts can own a booking
            if not client or client.role != UserRole.CLIENT.value:
                raise NotFoundError("Client not found.")
            client_id = client.id

        artist = self.users.find_active_profile_complete_artist_by_id(self.db, data.artist)
        if not artist:
            logger.warning(f"⚠️ Artist {data.artist} not found or not bookable")
            raise NotFoundError("Artist not found or not available.")

        if data.design and not self.designs.find_design_by_id(self.db, data.design):
            raise NotFoundError("Design not found.")

        if data.rescheduledFrom and not self.repo.appointment_exists(self.db, data.rescheduledFrom):
            raise NotFoundError("Original appointment not found.")

        appointment = self.repo.create_appointment(
            self.db,
            client_id=client_id,
            artist_id=artist.id,
            design_id=data.design,
            appointment_date=data.appointmentDate,
            start_time=data.startTime,
            duration_minutes=data.durationMinutes,
            end_time=compute_end_time(data.startTime, data.durationMinutes),
            service_type=data.serviceType,
            location=data.location.model_dump(exclude_none=True),
            notes=data.notes,
            price=data.price,
            price_breakdown=[item.model_dump() for item in data.priceBreakdown] if data.priceBreakdown else None,
            rescheduled_from_id=data.rescheduledFrom,
            status=AppointmentStatus.PENDING.value,
        )
        logger.info(f"✅ Appointment {appointment.id} created (client={client_id}, artist={artist.id})")

        self._dispatch(
            f"new_appointment_request:{appointment.id}",
            self.notifier.notify_new_appointment_request(
                artist.id,
                {
                    "appointmentId": appointment.id,
                    "userName": user.first_name or "A user",
                    "date": appointment.appointment_date.isoformat(),
                    "time": appointment.start_time,
                },
            ),
        )
        return appointment

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def list_appointments(self, user: User, params: AppointmentListParams) -> dict:
        """List appointments scoped to the requester's role"""
        client_id = None
        artist_id = None
        if user.role == UserRole.CLIENT.value:
            client_id = user.id
        elif user.role == UserRole.ARTIST.value:
            artist_id = user.id
        elif user.role == UserRole.ADMIN.value:
            client_id = params.clientId
            artist_id = params.artistId
        else:
            raise ForbiddenError("You are not authorized to view appointments.")

        appointments, total = self.repo.search_appointments(
            self.db,
            client_id=client_id,
            artist_id=artist_id,
            status=params.status.value if params.status else None,
            date_from=params.dateFrom,
            date_to=params.dateTo,
            sort_by=params.sortBy,
            sort_order=params.sortOrder,
            page=params.page,
            limit=params.limit,
        )
        return {
            "appointments": appointments,
            "currentPage": params.page,
            "totalPages": math.ceil(total / params.limit),
            "totalAppointments": total,
        }

    async def get_appointment(self, appointment_id: str, user: User) -> Appointment:
        """Get one appointment the requester is allowed to see"""
        appointment = self._get_or_404(appointment_id)

        if user.role == UserRole.ADMIN.value:
            return appointment
        if user.role == UserRole.CLIENT.value and appointment.client_id == user.id:
            return appointment
        if user.role == UserRole.ARTIST.value and appointment.artist_id == user.id:
            return appointment

        logger.warning(f"⚠️ User {user.id} denied access to appointment {appointment_id}")
        raise ForbiddenError("You are not authorized to view this appointment.")

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _resolve_status_actor(self, appointment: Appointment, user: User) -> str:
        """Which row of the authorization matrix the requester falls under"""
        if user.role == UserRole.ADMIN.value:
            return UserRole.ADMIN.value
        if user.role == UserRole.ARTIST.value and appointment.artist_id == user.id:
            return UserRole.ARTIST.value
        if user.role == UserRole.CLIENT.value and appointment.client_id == user.id:
            return UserRole.CLIENT.value
        raise ForbiddenError("You are not authorized to update this appointment status.")

    async def update_status(self, appointment_id: str, data: AppointmentStatusUpdate, user: User) -> Appointment:
        """Move an appointment to a new status and notify both parties"""
        appointment = self._get_or_404(appointment_id)
        actor = self._resolve_status_actor(appointment, user)
        target = data.status.value
        previous = appointment.status

        updates = {"status": target}
        if actor == UserRole.CLIENT.value:
            if target != AppointmentStatus.CANCELLED.value:
                raise ForbiddenError("Clients can only cancel their appointments.")
            if appointment.status not in OPEN_STATUSES:
                raise ConflictError(f"Cannot cancel appointment with status: {appointment.status}.")
            reason = data.cancellationReasonUser
        elif actor == UserRole.ARTIST.value:
            reason = data.cancellationReasonArtist
        else:
            reason = data.cancellationReasonArtist or data.cancellationReasonUser

        if actor != UserRole.CLIENT.value and data.artistNotes is not None:
            updates["artist_notes"] = data.artistNotes

        if target == AppointmentStatus.CANCELLED.value:
            if reason:
                updates["cancellation_reason"] = reason
        else:
            updates["cancellation_reason"] = None

        appointment = self.repo.update_appointment(self.db, appointment, **updates)
        logger.info(f"✅ Appointment {appointment.id} status {previous} -> {target} by {actor} {user.id}")

        self._dispatch_status_side_effects(appointment, actor, target)
        return appointment

    def _dispatch_status_side_effects(self, appointment: Appointment, actor: str, status: str) -> None:
        client = appointment.client
        artist = appointment.artist
        date_text = format_appointment_date(appointment)
        time_text = appointment.start_time

        if status == AppointmentStatus.CONFIRMED.value:
            self._dispatch(
                f"push:confirmed:{appointment.id}",
                self.notifier.notify_appointment_update(
                    client.id,
                    {
                        "appointmentId": appointment.id,
                        "status": status,
                        "message": f"Your appointment with {artist.first_name} on {date_text} is confirmed!",
                    },
                ),
            )
            self._dispatch(
                f"email:confirmation:{appointment.id}",
                self.mailer.send_appointment_confirmation(
                    to=client.email,
                    client_name=client.first_name,
                    artist_name=artist.first_name,
                    appointment_date=date_text,
                    appointment_time=time_text,
                ),
            )
            return

        self._dispatch(
            f"push:status:{appointment.id}:client",
            self.notifier.notify_appointment_update(
                client.id,
                {
                    "appointmentId": appointment.id,
                    "status": status,
                    "message": f"Your appointment with {artist.first_name} on {date_text} is now {status}.",
                },
            ),
        )
        if artist.id != client.id:
            self._dispatch(
                f"push:status:{appointment.id}:artist",
                self.notifier.notify_appointment_update(
                    artist.id,
                    {
                        "appointmentId": appointment.id,
                        "status": status,
                        "message": f"Appointment with {client.first_name} on {date_text} is now {status}.",
                    },
                ),
            )

        self._dispatch(
            f"email:status:{appointment.id}:client",
            self.mailer.send_appointment_status_update(
                to=client.email,
                recipient_name=client.first_name,
                counterpart_name=artist.first_name,
                appointment_date=date_text,
                appointment_time=time_text,
                status=status,
            ),
        )
        if actor != UserRole.CLIENT.value:
            self._dispatch(
                f"email:status:{appointment.id}:artist",
                self.mailer.send_appointment_status_update(
                    to=artist.email,
                    recipient_name=artist.first_name,
                    counterpart_name=client.first_name,
                    appointment_date=date_text,
                    appointment_time=time_text,
                    status=status,
                ),
            )

    # ------------------------------------------------------------------
    # Details
    # ------------------------------------------------------------------

    async def update_details(self, appointment_id: str, data: AppointmentDetailsUpdate, user: User) -> Appointment:
        """Patch non-status fields of an open appointment"""
        if "status" in data.model_fields_set:
            raise ValidationError("Use the status update endpoint to change appointment status.")
        if not data.model_fields_set:
            raise ValidationError("At least one field must be provided for update.")

        appointment = self._get_or_404(appointment_id)

        is_admin = user.role == UserRole.ADMIN.value
        is_party = user.id in (appointment.client_id, appointment.artist_id)
        if not (is_admin or is_party):
            raise ForbiddenError("You are not authorized to update this appointment.")

        if not is_admin and appointment.status not in OPEN_STATUSES:
            raise ConflictError(f"Cannot update appointment with status: {appointment.status}.")

        patch = data.model_dump(exclude_unset=True, exclude={"status"})
        if user.role == UserRole.CLIENT.value:
            dropped = [key for key in CLIENT_PROTECTED_FIELDS if patch.pop(key, None) is not None]
            if dropped:
                logger.info(f"ℹ️ Ignoring client-supplied {dropped} on appointment {appointment_id}")

        updates = {DETAIL_FIELDS[key]: value for key, value in patch.items()}

        if "start_time" in updates or "duration_minutes" in updates:
            updates["end_time"] = compute_end_time(
                updates.get("start_time", appointment.start_time),
                updates.get("duration_minutes", appointment.duration_minutes),
            )

        appointment = self.repo.update_appointment(self.db, appointment, **updates)
        logger.info(f"✅ Appointment {appointment.id} details updated by {user.id}: {sorted(patch)}")

        for recipient_id in {appointment.client_id, appointment.artist_id} - {user.id}:
            self._dispatch(
                f"push:details:{appointment.id}:{recipient_id}",
                self.notifier.notify_appointment_update(
                    recipient_id,
                    {
                        "appointmentId": appointment.id,
                        "status": appointment.status,
                        "message": "Appointment details were updated.",
                    },
                ),
            )
        return appointment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_or_404(self, appointment_id: str) -> Appointment:
        if not validate_uuid(appointment_id):
            raise ValidationError("Invalid appointment ID format.")
        appointment = self.repo.get_appointment_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found.")
        return appointment

    def _dispatch(self, label: str, coro) -> None:
        self.dispatcher.dispatch(label, coro)
