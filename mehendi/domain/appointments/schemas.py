"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...enums import AppointmentStatus, PaymentStatus
from ...shared.validators import validate_time_string, validate_uuid

# Accepted on input as an alias of "cancelled"; never stored
REJECTED_ALIAS = "rejected"


def _validate_id(value: Optional[str], label: str) -> Optional[str]:
    if value is not None and not validate_uuid(value):
        raise ValueError(f"Invalid {label} ID format.")
    return value


class GeoPoint(BaseModel):
    """GeoJSON point: coordinates are [longitude, latitude]"""

    model_config = ConfigDict(extra="forbid")

    type: Literal["Point"] = "Point"
    coordinates: list[float] = Field(min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def validate_range(cls, v):
        lng, lat = v
        if not -180 <= lng <= 180 or not -90 <= lat <= 90:
            raise ValueError("Coordinates must be [longitude, latitude] within valid ranges")
        return v


class Location(BaseModel):
    """Where the appointment takes place"""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    postalCode: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=255)  # e.g. "Ring bell for unit 5"
    coordinates: Optional[GeoPoint] = None


class PriceItem(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    item: str = Field(min_length=1, max_length=100)
    amount: float = Field(ge=0)


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment"""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    artist: str
    # Admins may book on behalf of an existing client
    client: Optional[str] = None
    design: Optional[str] = None
    appointmentDate: date
    startTime: str
    durationMinutes: Optional[int] = Field(default=None, ge=15)
    serviceType: str = Field(min_length=3, max_length=100)
    location: Location
    notes: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[float] = Field(default=None, ge=0)
    priceBreakdown: Optional[list[PriceItem]] = None
    rescheduledFrom: Optional[str] = None

    @field_validator("artist", "client", "design", "rescheduledFrom")
    @classmethod
    def validate_ids(cls, v, info):
        return _validate_id(v, info.field_name)

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time_string(v)


class AppointmentStatusUpdate(BaseModel):
    """Schema for a status transition"""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    status: AppointmentStatus
    cancellationReasonUser: Optional[str] = Field(default=None, max_length=255)
    cancellationReasonArtist: Optional[str] = Field(default=None, max_length=255)
    artistNotes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_rejected(cls, v):
        if isinstance(v, str) and v.strip().lower() == REJECTED_ALIAS:
            return AppointmentStatus.CANCELLED.value
        return v

    @model_validator(mode="after")
    def reasons_only_when_cancelling(self):
        if self.status != AppointmentStatus.CANCELLED and (
            self.cancellationReasonUser is not None or self.cancellationReasonArtist is not None
        ):
            raise ValueError("Cancellation reasons are only allowed when cancelling an appointment")
        return self


class AppointmentDetailsUpdate(BaseModel):
    """Schema for updating non-status appointment details"""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    appointmentDate: Optional[date] = None
    startTime: Optional[str] = None
    durationMinutes: Optional[int] = Field(default=None, ge=15)
    serviceType: Optional[str] = Field(default=None, min_length=3, max_length=100)
    location: Optional[Location] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    artistNotes: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[float] = Field(default=None, ge=0)
    priceBreakdown: Optional[list[PriceItem]] = None
    # Declared only so the service can reject it; status changes use the status endpoint
    status: Optional[Any] = None

    @field_validator("appointmentDate", "startTime", "serviceType", "location")
    @classmethod
    def required_fields_not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time_string(v)


class AppointmentListParams(BaseModel):
    """Query parameters for listing appointments"""

    status: Optional[AppointmentStatus] = None
    clientId: Optional[str] = None
    artistId: Optional[str] = None
    dateFrom: Optional[date] = None
    dateTo: Optional[date] = None
    sortBy: Literal["appointmentDate", "createdAt", "status"] = "appointmentDate"
    sortOrder: Literal["asc", "desc"] = "asc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @field_validator("clientId", "artistId")
    @classmethod
    def validate_ids(cls, v, info):
        return _validate_id(v, info.field_name.removesuffix("Id"))

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.dateFrom and self.dateTo and self.dateTo < self.dateFrom:
            raise ValueError("dateTo must be on or after dateFrom")
        return self


class PartySummary(BaseModel):
    id: str
    firstName: str
    lastName: str
    email: str
    phone: Optional[str] = None
    avatar: Optional[str] = None


class DesignSummary(BaseModel):
    id: str
    title: str
    category: Optional[str] = None
    images: Optional[list] = None


class PaymentDetails(BaseModel):
    transactionId: Optional[str] = None
    paymentStatus: PaymentStatus = PaymentStatus.PENDING
    paymentMethod: Optional[str] = None
    amountPaid: Optional[float] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    client: PartySummary
    artist: PartySummary
    design: Optional[DesignSummary] = None
    appointmentDate: date
    startTime: str
    endTime: Optional[str] = None
    durationMinutes: Optional[int] = None
    serviceType: str
    location: dict
    notes: Optional[str] = None
    artistNotes: Optional[str] = None
    price: Optional[float] = None
    priceBreakdown: Optional[list[dict]] = None
    status: AppointmentStatus
    cancellationReason: Optional[str] = None
    rescheduledFrom: Optional[str] = None
    paymentDetails: Optional[PaymentDetails] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class AppointmentPage(BaseModel):
    """Schema for a page of appointments"""

    appointments: list[AppointmentResponse]
    currentPage: int
    totalPages: int
    totalAppointments: int
