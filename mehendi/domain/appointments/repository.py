"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment

SORT_COLUMNS = {
    "appointmentDate": Appointment.appointment_date,
    "createdAt": Appointment.created_at,
    "status": Appointment.status,
}


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def _populated(db: Session):
        return db.query(Appointment).options(
            joinedload(Appointment.client),
            joinedload(Appointment.artist),
            joinedload(Appointment.design),
        )

    @staticmethod
    def get_appointment_by_id(db: Session, appointment_id: str) -> Optional[Appointment]:
        """Get an appointment with client, artist and design loaded"""
        return AppointmentRepository._populated(db).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def appointment_exists(db: Session, appointment_id: str) -> bool:
        return db.query(Appointment.id).filter(Appointment.id == appointment_id).first() is not None

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        """Create a new appointment"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        return AppointmentRepository.get_appointment_by_id(db, appointment.id)

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Apply updates (None clears the column) and commit"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)

        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def search_appointments(
        db: Session,
        client_id: Optional[str] = None,
        artist_id: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        sort_by: str = "appointmentDate",
        sort_order: str = "asc",
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Appointment], int]:
        """
        Filter, sort and paginate appointments.
        Returns (appointments, total_matching)
        """
        query = db.query(Appointment)

        if client_id:
            query = query.filter(Appointment.client_id == client_id)
        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if status:
            query = query.filter(Appointment.status == status)
        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date <= date_to)

        total = query.count()

        column = SORT_COLUMNS.get(sort_by, Appointment.appointment_date)
        ordering = [column.desc() if sort_order == "desc" else column.asc()]
        if sort_by == "appointmentDate":
            ordering.append(Appointment.start_time.desc() if sort_order == "desc" else Appointment.start_time.asc())
        ordering.append(Appointment.id.asc())

        appointments = (
            query.options(
                joinedload(Appointment.client),
                joinedload(Appointment.artist),
                joinedload(Appointment.design),
            )
            .order_by(*ordering)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total
