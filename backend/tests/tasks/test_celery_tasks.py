# backend/tests/tasks/test_celery_tasks.py
"""
Tests for the Celery beat schedule, the notification task and the
booking-lifecycle sweeps.
"""

from unittest.mock import MagicMock, patch

from celery.schedules import crontab

from clinicbook.core.config import Settings
from clinicbook.tasks.beat_schedule import CELERYBEAT_SCHEDULE, get_beat_schedule
from clinicbook.tasks.celery_app import ClinicTask, celery_app, create_celery_app
from clinicbook.tasks.notification_tasks import _next_backoff, deliver_notification, render_headline
from clinicbook.tasks.scheduling_tasks import expire_stale_offers, release_expired_pending


class TestCeleryApp:
    def test_broker_falls_back_to_redis_url(self):
        app = create_celery_app(Settings(environment="production", redis_url="redis://cache:6379/2"))

        assert app.conf.broker_url == "redis://cache:6379/2"
        assert app.conf.task_always_eager is False

    def test_explicit_broker_and_backend(self):
        app = create_celery_app(
            Settings(
                environment="production",
                celery_broker_url="amqp://rabbit//",
                celery_result_backend="redis://results:6379/0",
            )
        )

        assert app.conf.broker_url == "amqp://rabbit//"
        assert app.conf.result_backend == "redis://results:6379/0"

    def test_tasks_are_routed_to_their_queues(self):
        routes = celery_app.conf.task_routes

        assert routes["clinicbook.tasks.notification_tasks.*"] == {"queue": "notifications"}
        assert routes["clinicbook.tasks.scheduling_tasks.*"] == {"queue": "scheduling"}

    def test_default_task_base(self):
        assert celery_app.Task is ClinicTask


class TestBeatSchedule:
    def test_both_sweeps_are_scheduled(self):
        schedule = get_beat_schedule("production")

        assert set(schedule) == set(CELERYBEAT_SCHEDULE)
        tasks = {entry["task"] for entry in schedule.values()}
        assert "clinicbook.tasks.scheduling_tasks.release_expired_pending" in tasks
        assert "clinicbook.tasks.scheduling_tasks.expire_stale_offers" in tasks

    def test_pending_sweep_runs_every_minute(self):
        entry = get_beat_schedule("production")["release-expired-pending-appointments"]
        assert entry["schedule"] == crontab(minute="*")

    def test_development_expires_offers_more_often(self):
        entry = get_beat_schedule("development")["expire-stale-waitlist-offers"]
        assert entry["schedule"] == crontab(minute="*")

    def test_unknown_environment_uses_defaults(self):
        assert get_beat_schedule("staging") == CELERYBEAT_SCHEDULE


class TestNotificationTask:
    def test_headline_includes_confirmation_number(self):
        headline = render_headline("appointment_booked", {"confirmation_number": "K7Q2M9XA"})
        assert headline == "Your appointment is booked (K7Q2M9XA)"

    def test_unknown_template_gets_a_readable_headline(self):
        assert render_headline("something_else", {}) == "Something else"

    def test_backoff_is_capped(self):
        assert _next_backoff(1) == 30
        assert _next_backoff(2) == 120
        assert _next_backoff(10) == 600

    def test_deliver_notification_runs_inline(self):
        with patch(
            "clinicbook.tasks.notification_tasks.LoggingNotificationGateway"
        ) as gateway_cls:
            result = deliver_notification.apply(
                args=("patient-1", "waitlist_slot_available", {"offered_time": "10:00"})
            )

        assert result.get() == "A slot you were waiting for is available"
        gateway_cls.return_value.notify.assert_called_once()
        user_id, template, payload = gateway_cls.return_value.notify.call_args.args
        assert user_id == "patient-1"
        assert payload["headline"] == result.get()


class TestSchedulingSweeps:
    def test_release_expired_pending_uses_a_fresh_session(self):
        session = MagicMock()
        with patch(
            "clinicbook.tasks.scheduling_tasks.SessionLocal", return_value=session
        ), patch("clinicbook.tasks.scheduling_tasks.BookingLedger") as ledger_cls:
            ledger_cls.return_value.release_expired_pending.return_value = ["apt-1"]

            result = release_expired_pending.apply().get()

        assert result == ["apt-1"]
        assert ledger_cls.call_args.args[0] is session
        session.close.assert_called_once()

    def test_expire_stale_offers_delegates_to_waitlist(self):
        session = MagicMock()
        with patch(
            "clinicbook.tasks.scheduling_tasks.SessionLocal", return_value=session
        ), patch("clinicbook.tasks.scheduling_tasks.BookingLedger") as ledger_cls:
            ledger_cls.return_value.waitlist.expire_stale_offers.return_value = []

            result = expire_stale_offers.apply().get()

        assert result == []
        session.close.assert_called_once()

    def test_sweep_against_a_real_database(self, session_factory, booking, book, clock):
        """End to end: a lapsed hold in the database is released by the task."""
        appointment = book("10:00")
        clock.advance(minutes=20)

        with patch("clinicbook.tasks.scheduling_tasks.SessionLocal", session_factory), patch(
            "clinicbook.tasks.scheduling_tasks.BookingLedger",
            side_effect=lambda session, config=None: type(booking)(
                session, config=booking.config, clock=clock
            ),
        ):
            result = release_expired_pending.apply().get()

        assert result == [appointment.id]
