import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .enums import AppointmentStatus, UserRole


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    role = Column(String(20), default=UserRole.CLIENT.value, nullable=False)  # client, artist, admin
    is_active = Column(Boolean, default=True, nullable=False)
    # Artists must finish their profile before they can be booked
    is_profile_complete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    designs = relationship("Design", back_populates="artist")


class Design(Base):
    __tablename__ = "designs"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    artist_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)  # bridal, arabic, party...
    images = Column(JSON, default=list, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    artist = relationship("User", back_populates="designs")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_client_date", "client_id", "appointment_date"),
        Index("ix_appointments_artist_date", "artist_id", "appointment_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_public_id)
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    artist_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    design_id = Column(String(36), ForeignKey("designs.id"), nullable=True)

    appointment_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=True)  # derived from start_time + duration_minutes
    duration_minutes = Column(Integer, nullable=True)
    service_type = Column(String(100), nullable=False)  # e.g. "Bridal Mehendi"

    # {address, city, postalCode, notes, coordinates: {type: "Point", coordinates: [lng, lat]}}
    location = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)  # written by the client
    artist_notes = Column(Text, nullable=True)  # written by the artist
    price = Column(Float, nullable=True)
    price_breakdown = Column(JSON, nullable=True)  # [{item, amount}]

    status = Column(String(20), default=AppointmentStatus.PENDING.value, nullable=False, index=True)
    cancellation_reason = Column(Text, nullable=True)
    rescheduled_from_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    # {transactionId, paymentStatus, paymentMethod, amountPaid}
    payment_details = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("User", foreign_keys=[client_id])
    artist = relationship("User", foreign_keys=[artist_id])
    design = relationship("Design")
