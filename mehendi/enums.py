from enum import Enum


class UserRole(str, Enum):
    CLIENT = "client"
    ARTIST = "artist"
    ADMIN = "admin"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Statuses in which the parties may still cancel or edit details
OPEN_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)
