"""
Pytest configuration and shared fixtures for the mehendi booking tests.
"""

import os

# Must be set before the mehendi package reads its configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["RESEND_API_KEY"] = ""

from datetime import date  # noqa: E402
from typing import Any, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from mehendi.auth import create_access_token  # noqa: E402
from mehendi.database import Base, SessionLocal, engine  # noqa: E402
from mehendi.domain.appointments.router import get_mailer  # noqa: E402
from mehendi.domain.appointments.service import AppointmentService  # noqa: E402
from mehendi.enums import AppointmentStatus, UserRole  # noqa: E402
from mehendi.exceptions import DeliveryFailure  # noqa: E402
from mehendi.main import app  # noqa: E402
from mehendi.models import Appointment, Design, User  # noqa: E402
from mehendi.services.notification_service import (  # noqa: E402
    NotificationService,
    SocketConnection,
    get_notification_service,
)
from mehendi.services.side_effects import SideEffectDispatcher, get_side_effects  # noqa: E402


class FakeMailer:
    """Records appointment emails instead of sending them"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, dict]] = []

    async def send_appointment_confirmation(self, **kwargs) -> dict:
        if self.fail:
            raise DeliveryFailure("Email service not configured")
        self.sent.append(("confirmation", kwargs))
        return {"id": f"email-{len(self.sent)}"}

    async def send_appointment_status_update(self, **kwargs) -> dict:
        if self.fail:
            raise DeliveryFailure("Email service not configured")
        self.sent.append(("status_update", kwargs))
        return {"id": f"email-{len(self.sent)}"}

    def recipients(self, kind: Optional[str] = None) -> list[str]:
        return [mail["to"] for sent_kind, mail in self.sent if kind is None or sent_kind == kind]


class RecordingConnection(SocketConnection):
    """A live connection that keeps every frame it is sent"""

    def __init__(self, user_id: str, role: str = UserRole.CLIENT.value, fail: bool = False):
        super().__init__(websocket=None, user_id=user_id, role=role)
        self.fail = fail
        self.frames: list[dict[str, Any]] = []

    async def send(self, event: str, data: Any = None) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append({"event": event, "data": data})

    def events(self, name: Optional[str] = None) -> list[Any]:
        return [frame["data"] for frame in self.frames if name is None or frame["event"] == name]


@pytest.fixture
def db_session():
    """Fresh schema per test on the shared in-memory database"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def factory(
        role: str = UserRole.CLIENT.value,
        first_name: str = "Test",
        is_active: bool = True,
        is_profile_complete: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            first_name=first_name,
            last_name="User",
            email=f"{role}{counter['n']}@example.com",
            phone="555-0100",
            role=role,
            is_active=is_active,
            is_profile_complete=is_profile_complete,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return factory


@pytest.fixture
def client_user(make_user) -> User:
    return make_user(UserRole.CLIENT.value, first_name="Priya")


@pytest.fixture
def artist(make_user) -> User:
    return make_user(UserRole.ARTIST.value, first_name="Aisha")


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(UserRole.ADMIN.value, first_name="Admin")


@pytest.fixture
def stranger(make_user) -> User:
    return make_user(UserRole.CLIENT.value, first_name="Ravi")


@pytest.fixture
def design(db_session, artist) -> Design:
    design = Design(artist_id=artist.id, title="Bridal Full Hands", category="bridal", images=[])
    db_session.add(design)
    db_session.commit()
    db_session.refresh(design)
    return design


@pytest.fixture
def make_appointment(db_session):
    def factory(client: User, artist: User, status: str = AppointmentStatus.PENDING.value, **overrides) -> Appointment:
        values = {
            "client_id": client.id,
            "artist_id": artist.id,
            "appointment_date": date(2025, 6, 1),
            "start_time": "14:00",
            "duration_minutes": 90,
            "end_time": "15:30",
            "service_type": "Bridal Mehendi",
            "location": {"address": "12 Rose Lane", "city": "Leicester"},
            "status": status,
        }
        values.update(overrides)
        appointment = Appointment(**values)
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return factory


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def notifier() -> NotificationService:
    return NotificationService()


@pytest.fixture
def dispatcher() -> SideEffectDispatcher:
    return SideEffectDispatcher()


@pytest.fixture
def service(db_session, notifier, dispatcher, mailer) -> AppointmentService:
    return AppointmentService(db_session, notifier=notifier, dispatcher=dispatcher, mailer=mailer)


@pytest.fixture
def connect(notifier):
    """Register a recording connection for a user"""

    def factory(user: User, fail: bool = False) -> RecordingConnection:
        connection = RecordingConnection(user.id, user.role, fail=fail)
        notifier.register_session(user.id, connection)
        return connection

    return factory


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api(db_session, notifier, dispatcher, mailer):
    """TestClient wired to the per-test notifier, dispatcher and fake mailer"""
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_side_effects] = lambda: dispatcher
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def settle(api, dispatcher):
    """Wait until every side effect scheduled by the app has finished"""

    def wait():
        api.portal.call(dispatcher.drain)

    return wait
