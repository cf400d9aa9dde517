"""
Unit tests for the live session registry and side-effect dispatcher.
"""

import asyncio

import pytest

from mehendi.services.notification_service import (
    APPOINTMENT_UPDATED,
    NEW_APPOINTMENT_REQUEST,
    NotificationService,
)
from mehendi.services.side_effects import SideEffectDispatcher
from tests.conftest import RecordingConnection


class TestSessionRegistry:
    """Test register / unregister semantics."""

    def test_last_registration_wins(self):
        service = NotificationService()
        first = RecordingConnection("user-1")
        second = RecordingConnection("user-1")

        service.register_session("user-1", first)
        service.register_session("user-1", second)

        assert service.get_session("user-1") is second

    def test_stale_disconnect_keeps_newer_session(self):
        service = NotificationService()
        first = RecordingConnection("user-1")
        second = RecordingConnection("user-1")
        service.register_session("user-1", first)
        service.register_session("user-1", second)

        service.unregister_session("user-1", first)

        assert service.get_session("user-1") is second

    def test_unregister_removes_session_and_rooms(self):
        service = NotificationService()
        connection = RecordingConnection("user-1")
        service.register_session("user-1", connection)
        service.join_room(connection, "appointment:1")

        service.unregister_session("user-1", connection)

        assert not service.is_online("user-1")
        assert not service.in_room(connection, "appointment:1")


class TestDelivery:
    """Test best-effort pushes."""

    @pytest.mark.asyncio
    async def test_push_to_online_user(self):
        service = NotificationService()
        connection = RecordingConnection("user-1")
        service.register_session("user-1", connection)

        delivered = await service.notify_appointment_update("user-1", {"appointmentId": "a1", "status": "confirmed"})

        assert delivered is True
        assert connection.events(APPOINTMENT_UPDATED) == [{"appointmentId": "a1", "status": "confirmed"}]

    @pytest.mark.asyncio
    async def test_push_to_offline_user_is_dropped(self):
        service = NotificationService()

        assert await service.notify_new_appointment_request("nobody", {"appointmentId": "a1"}) is False

    @pytest.mark.asyncio
    async def test_failed_send_reports_false(self):
        service = NotificationService()
        service.register_session("user-1", RecordingConnection("user-1", fail=True))

        assert await service.push_to_user("user-1", NEW_APPOINTMENT_REQUEST, {}) is False

    @pytest.mark.asyncio
    async def test_emit_to_room_skips_sender(self):
        service = NotificationService()
        sender = RecordingConnection("user-1")
        listener = RecordingConnection("user-2")
        outsider = RecordingConnection("user-3")
        for connection in (sender, listener, outsider):
            service.register_session(connection.user_id, connection)
        service.join_room(sender, "appointment:1")
        service.join_room(listener, "appointment:1")

        delivered = await service.emit_to_room("appointment:1", "new_message_in_room", {"message": "hi"}, skip=sender)

        assert delivered == 1
        assert listener.events("new_message_in_room") == [{"message": "hi"}]
        assert sender.frames == []
        assert outsider.frames == []

    @pytest.mark.asyncio
    async def test_broadcast_without_room_reaches_everyone(self):
        service = NotificationService()
        connections = [RecordingConnection(f"user-{i}") for i in range(3)]
        for connection in connections:
            service.register_session(connection.user_id, connection)

        assert await service.broadcast("maintenance", {"at": "02:00"}) == 3
        assert all(c.events("maintenance") == [{"at": "02:00"}] for c in connections)


class TestSideEffectDispatcher:
    """Test detached side effects."""

    @pytest.mark.asyncio
    async def test_failures_are_logged_not_raised(self, caplog):
        dispatcher = SideEffectDispatcher()

        async def boom():
            raise RuntimeError("smtp down")

        dispatcher.dispatch("email:test", boom())
        await dispatcher.drain()

        assert dispatcher.pending == 0
        assert "email:test" in caplog.text
        assert "smtp down" in caplog.text

    @pytest.mark.asyncio
    async def test_drain_waits_for_pending_work(self):
        dispatcher = SideEffectDispatcher()
        finished = []

        async def slow():
            await asyncio.sleep(0.01)
            finished.append(True)

        dispatcher.dispatch("slow", slow())
        assert dispatcher.pending == 1

        await dispatcher.drain()

        assert finished == [True]
        assert dispatcher.pending == 0
