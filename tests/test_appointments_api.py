"""
HTTP tests for the appointment endpoints.
"""

import pytest

from mehendi.enums import AppointmentStatus
from mehendi.models import Appointment
from tests.conftest import auth_headers

BASE = "/api/v1/appointments"


def booking_payload(artist_id: str, **overrides) -> dict:
    payload = {
        "artist": artist_id,
        "appointmentDate": "2025-06-01",
        "startTime": "14:00",
        "durationMinutes": 90,
        "serviceType": "Bridal Mehendi",
        "location": {"address": "12 Rose Lane", "city": "Leicester"},
    }
    payload.update(overrides)
    return payload


class TestServiceEndpoints:
    """Test root and health endpoints."""

    def test_root(self, api):
        response = api.get("/")
        assert response.status_code == 200
        assert "running" in response.json()["message"]

    def test_health_has_no_security_headers(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        assert "Content-Security-Policy" not in response.headers

    def test_api_responses_carry_security_headers(self, api, client_user):
        response = api.get(f"{BASE}/", headers=auth_headers(client_user))
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestAuthentication:
    """Test bearer token handling."""

    def test_missing_token(self, api):
        response = api.get(f"{BASE}/")
        assert response.status_code == 401

    def test_invalid_token(self, api):
        response = api.get(f"{BASE}/", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_deactivated_account(self, api, make_user):
        user = make_user(is_active=False)
        response = api.get(f"{BASE}/", headers=auth_headers(user))
        assert response.status_code == 403


class TestBookingFlow:
    """Test booking through the API."""

    def test_booking_scenario(self, api, settle, connect, client_user, artist):
        """Client books; artist receives a live request; GET returns the booking."""
        artist_socket = connect(artist)

        response = api.post(f"{BASE}/", json=booking_payload(artist.id), headers=auth_headers(client_user))
        settle()

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["endTime"] == "15:30"
        assert body["client"]["id"] == client_user.id
        assert body["artist"]["firstName"] == "Aisha"
        assert artist_socket.events("new_appointment_request")[0]["appointmentId"] == body["id"]

        fetched = api.get(f"{BASE}/{body['id']}", headers=auth_headers(client_user))
        assert fetched.status_code == 200
        assert fetched.json() == body

    def test_rescheduled_booking_round_trip(self, api, make_appointment, client_user, artist):
        original = make_appointment(client_user, artist, status=AppointmentStatus.RESCHEDULED.value)

        response = api.post(
            f"{BASE}/", json=booking_payload(artist.id, rescheduledFrom=original.id), headers=auth_headers(client_user)
        )
        assert response.status_code == 201
        assert response.json()["rescheduledFrom"] == original.id

        fetched = api.get(f"{BASE}/{response.json()['id']}", headers=auth_headers(client_user))
        assert fetched.json()["rescheduledFrom"] == original.id

    def test_rescheduled_from_unknown_appointment(self, api, client_user, artist):
        response = api.post(
            f"{BASE}/",
            json=booking_payload(artist.id, rescheduledFrom="0d8b7c3a-8a3e-4d5e-b1a4-2c2f9f0e9e01"),
            headers=auth_headers(client_user),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Original appointment not found."

    def test_payment_details_returned(self, api, make_appointment, client_user, artist):
        appointment = make_appointment(
            client_user,
            artist,
            payment_details={"transactionId": "txn_123", "paymentStatus": "paid", "amountPaid": 120.0},
        )

        response = api.get(f"{BASE}/{appointment.id}", headers=auth_headers(client_user))

        assert response.status_code == 200
        assert response.json()["paymentDetails"] == {
            "transactionId": "txn_123",
            "paymentStatus": "paid",
            "paymentMethod": None,
            "amountPaid": 120.0,
        }

    def test_admin_cannot_book_for_artist(self, api, admin_user, artist):
        response = api.post(
            f"{BASE}/", json=booking_payload(artist.id, client=artist.id), headers=auth_headers(admin_user)
        )

        assert response.status_code == 404

    def test_unavailable_artist_returns_404(self, api, db_session, client_user, stranger):
        response = api.post(f"{BASE}/", json=booking_payload(stranger.id), headers=auth_headers(client_user))

        assert response.status_code == 404
        assert response.json()["detail"] == "Artist not found or not available."
        assert db_session.query(Appointment).count() == 0

    def test_schema_errors_return_422(self, api, client_user, artist):
        response = api.post(
            f"{BASE}/", json=booking_payload(artist.id, startTime="2pm"), headers=auth_headers(client_user)
        )
        assert response.status_code == 422

    def test_artist_cannot_book(self, api, make_user, artist):
        other_artist = make_user("artist")
        response = api.post(f"{BASE}/", json=booking_payload(other_artist.id), headers=auth_headers(artist))
        assert response.status_code == 403


class TestListing:
    """Test list endpoints."""

    def test_list_page_shape(self, api, make_appointment, client_user, artist):
        for _ in range(3):
            make_appointment(client_user, artist)

        response = api.get(f"{BASE}/", params={"limit": 2, "page": 2}, headers=auth_headers(client_user))

        assert response.status_code == 200
        body = response.json()
        assert body["currentPage"] == 2
        assert body["totalPages"] == 2
        assert body["totalAppointments"] == 3
        assert len(body["appointments"]) == 1

    def test_invalid_date_range(self, api, client_user):
        response = api.get(
            f"{BASE}/",
            params={"dateFrom": "2025-06-10", "dateTo": "2025-06-01"},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 422

    def test_admin_list_requires_admin(self, api, make_appointment, client_user, artist, admin_user, stranger):
        make_appointment(client_user, artist)
        make_appointment(stranger, artist)

        assert api.get(f"{BASE}/admin/all", headers=auth_headers(client_user)).status_code == 403

        response = api.get(f"{BASE}/admin/all", headers=auth_headers(admin_user))
        assert response.status_code == 200
        assert response.json()["totalAppointments"] == 2

        response = api.get(f"{BASE}/admin/all", params={"clientId": stranger.id}, headers=auth_headers(admin_user))
        assert response.json()["totalAppointments"] == 1


class TestStatusEndpoint:
    """Test PATCH /{id}/status."""

    def test_confirm_scenario(self, api, settle, mailer, connect, make_appointment, client_user, artist):
        """Artist confirms; client is pushed and emailed; GET shows confirmed."""
        appointment = make_appointment(client_user, artist)
        client_socket = connect(client_user)

        response = api.patch(
            f"{BASE}/{appointment.id}/status", json={"status": "confirmed"}, headers=auth_headers(artist)
        )
        settle()

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        assert client_socket.events("appointment_updated")[0]["status"] == "confirmed"
        assert mailer.recipients("confirmation") == [client_user.email]

        fetched = api.get(f"{BASE}/{appointment.id}", headers=auth_headers(client_user))
        assert fetched.json()["status"] == "confirmed"

    def test_client_cannot_cancel_completed(self, api, db_session, make_appointment, client_user, artist):
        appointment = make_appointment(client_user, artist, status=AppointmentStatus.COMPLETED.value)

        response = api.patch(
            f"{BASE}/{appointment.id}/status", json={"status": "cancelled"}, headers=auth_headers(client_user)
        )

        assert response.status_code == 400
        db_session.expire_all()
        assert db_session.get(Appointment, appointment.id).status == AppointmentStatus.COMPLETED.value

    def test_stranger_forbidden(self, api, make_appointment, client_user, artist, stranger):
        appointment = make_appointment(client_user, artist)

        response = api.patch(
            f"{BASE}/{appointment.id}/status", json={"status": "cancelled"}, headers=auth_headers(stranger)
        )

        assert response.status_code == 403

    def test_unknown_appointment(self, api, artist):
        response = api.patch(
            f"{BASE}/0d8b7c3a-8a3e-4d5e-b1a4-2c2f9f0e9e01/status",
            json={"status": "confirmed"},
            headers=auth_headers(artist),
        )
        assert response.status_code == 404

    def test_unknown_keys_rejected(self, api, make_appointment, client_user, artist):
        appointment = make_appointment(client_user, artist)

        response = api.patch(
            f"{BASE}/{appointment.id}/status",
            json={"status": "confirmed", "price": 0},
            headers=auth_headers(artist),
        )
        assert response.status_code == 422


class TestDetailsEndpoint:
    """Test PUT /{id}/details."""

    def test_status_key_is_a_400(self, api, make_appointment, client_user, artist):
        appointment = make_appointment(client_user, artist)

        response = api.put(
            f"{BASE}/{appointment.id}/details", json={"status": "confirmed"}, headers=auth_headers(artist)
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("who", ["client_user", "artist"])
    def test_party_reschedules(self, api, request, make_appointment, client_user, artist, who):
        appointment = make_appointment(client_user, artist)
        user = request.getfixturevalue(who)

        response = api.put(
            f"{BASE}/{appointment.id}/details",
            json={"startTime": "10:00", "durationMinutes": 120},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json()["startTime"] == "10:00"
        assert response.json()["endTime"] == "12:00"

    def test_closed_appointment_is_a_400(self, api, make_appointment, client_user, artist):
        appointment = make_appointment(client_user, artist, status=AppointmentStatus.CANCELLED.value)

        response = api.put(
            f"{BASE}/{appointment.id}/details", json={"notes": "too late"}, headers=auth_headers(client_user)
        )

        assert response.status_code == 400
