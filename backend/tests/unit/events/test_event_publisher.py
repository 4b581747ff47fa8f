# backend/tests/unit/events/test_event_publisher.py
"""Audit-then-notify routing of domain events."""

from datetime import datetime, timezone
from unittest.mock import Mock

from clinicbook.events.appointment_events import AppointmentCompleted, AppointmentCreated
from clinicbook.events.publisher import EventPublisher, build_event_publisher
from clinicbook.repositories.audit_repository import AuditRepository
from clinicbook.services.audit_sink import InMemoryAuditSink, NullAuditSink, SqlAuditSink
from clinicbook.services.notification_gateway import (
    CeleryNotificationGateway,
    LoggingNotificationGateway,
    RecordingNotificationGateway,
)

NOW = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)


def _created(appointment_id="apt-1"):
    return AppointmentCreated(
        appointment_id=appointment_id,
        user_id="patient-1",
        occurred_at=NOW,
        actor_id="patient-1",
        actor_role="patient",
        after={"status": "pending"},
        provider_id="dr-mehta",
        appointment_date=NOW.date(),
        start_time="10:00",
        confirmation_number="K7Q2M9XA",
    )


class TestEventPublisher:
    def test_record_only_audits(self):
        audit = InMemoryAuditSink()
        notifier = RecordingNotificationGateway()
        publisher = EventPublisher(audit_sink=audit, notifier=notifier)

        event = publisher.record(_created())

        assert audit.events == [event]
        assert notifier.sent == []

    def test_dispatch_renders_template_and_payload(self):
        notifier = RecordingNotificationGateway()
        publisher = EventPublisher(audit_sink=NullAuditSink(), notifier=notifier)

        publisher.dispatch([_created()])

        user_id, template, payload = notifier.sent[0]
        assert user_id == "patient-1"
        assert template == "appointment_booked"
        assert payload["event"] == "AppointmentCreated"
        assert payload["confirmation_number"] == "K7Q2M9XA"

    def test_staff_only_events_are_not_sent_to_patients(self):
        notifier = RecordingNotificationGateway()
        publisher = EventPublisher(notifier=notifier)

        publisher.dispatch(
            [
                AppointmentCompleted(
                    appointment_id="apt-1",
                    user_id="patient-1",
                    occurred_at=NOW,
                    actor_role="staff",
                )
            ]
        )

        assert notifier.sent == []

    def test_failed_notification_does_not_raise(self, caplog):
        notifier = Mock()
        notifier.notify.side_effect = RuntimeError("sms gateway down")
        publisher = EventPublisher(notifier=notifier)

        publisher.dispatch([_created("apt-1"), _created("apt-2")])

        assert notifier.notify.call_count == 2
        assert "appointment_booked" in caplog.text


class TestBuildEventPublisher:
    def test_wired_from_settings(self, db, test_settings):
        publisher = build_event_publisher(db, test_settings)

        assert isinstance(publisher.audit_sink, SqlAuditSink)
        assert isinstance(publisher.notifier, LoggingNotificationGateway)

    def test_audit_can_be_disabled(self, db, test_settings):
        config = test_settings.model_copy(
            update={"audit_enabled": False, "notification_backend": "celery"}
        )

        publisher = build_event_publisher(db, config)

        assert isinstance(publisher.audit_sink, NullAuditSink)
        assert isinstance(publisher.notifier, CeleryNotificationGateway)


class TestSqlAuditSink:
    def test_row_keeps_event_type_and_snapshots(self, db):
        SqlAuditSink(db).record(_created())
        db.commit()

        (row,) = AuditRepository(db).list(entity_id="apt-1")
        assert row.event_type == "AppointmentCreated"
        assert row.action == "created"
        assert row.actor_role == "patient"
        assert row.before is None
        assert row.after == {"status": "pending"}
