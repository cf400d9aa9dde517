"""Appointment router - FastAPI endpoints for the booking lifecycle"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ... import email_service
from ...auth import get_current_user, require_roles
from ...database import get_db
from ...enums import UserRole
from ...models import Appointment, User
from ...services.notification_service import NotificationService, get_notification_service
from ...services.side_effects import SideEffectDispatcher, get_side_effects
from .schemas import (
    AppointmentCreate,
    AppointmentDetailsUpdate,
    AppointmentListParams,
    AppointmentPage,
    AppointmentResponse,
    AppointmentStatusUpdate,
    DesignSummary,
    PartySummary,
    PaymentDetails,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/appointments", tags=["Appointments"])


def get_mailer():
    """Dependency returning the appointment email sender"""
    return email_service


def get_appointment_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
    dispatcher: SideEffectDispatcher = Depends(get_side_effects),
    mailer=Depends(get_mailer),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, notifier=notifier, dispatcher=dispatcher, mailer=mailer)


def _party(user: User) -> PartySummary:
    return PartySummary(
        id=user.id,
        firstName=user.first_name,
        lastName=user.last_name,
        email=user.email,
        phone=user.phone,
        avatar=user.avatar_url,
    )


def appointment_to_response(appointment: Appointment) -> AppointmentResponse:
    design = appointment.design
    return AppointmentResponse(
        id=appointment.id,
        client=_party(appointment.client),
        artist=_party(appointment.artist),
        design=DesignSummary(
            id=design.id,
            title=design.title,
            category=design.category,
            images=design.images,
        )
        if design
        else None,
        appointmentDate=appointment.appointment_date,
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        durationMinutes=appointment.duration_minutes,
        serviceType=appointment.service_type,
        location=appointment.location or {},
        notes=appointment.notes,
        artistNotes=appointment.artist_notes,
        price=appointment.price,
        priceBreakdown=appointment.price_breakdown,
        status=appointment.status,
        cancellationReason=appointment.cancellation_reason,
        rescheduledFrom=appointment.rescheduled_from_id,
        paymentDetails=PaymentDetails(**appointment.payment_details) if appointment.payment_details else None,
        createdAt=appointment.created_at,
        updatedAt=appointment.updated_at,
    )


def _page_to_response(page: dict) -> AppointmentPage:
    return AppointmentPage(
        appointments=[appointment_to_response(a) for a in page["appointments"]],
        currentPage=page["currentPage"],
        totalPages=page["totalPages"],
        totalAppointments=page["totalAppointments"],
    )


@router.post("/", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book a new appointment with an artist"""
    appointment = await service.create_appointment(data, current_user)
    return appointment_to_response(appointment)


@router.get("/", response_model=AppointmentPage)
async def list_appointments(
    params: Annotated[AppointmentListParams, Query()],
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List the current user's appointments (admins may filter by client/artist)"""
    page = await service.list_appointments(current_user, params)
    return _page_to_response(page)


@router.get("/admin/all", response_model=AppointmentPage)
async def list_all_appointments(
    params: Annotated[AppointmentListParams, Query()],
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List every appointment (admin only)"""
    page = await service.list_appointments(current_user, params)
    return _page_to_response(page)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get a specific appointment"""
    appointment = await service.get_appointment(appointment_id, current_user)
    return appointment_to_response(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Change an appointment's status (confirm, cancel, complete...)"""
    appointment = await service.update_status(appointment_id, data, current_user)
    return appointment_to_response(appointment)


@router.put("/{appointment_id}/details", response_model=AppointmentResponse)
async def update_appointment_details(
    appointment_id: str,
    data: AppointmentDetailsUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update date, time, location and other non-status details"""
    appointment = await service.update_details(appointment_id, data, current_user)
    return appointment_to_response(appointment)
