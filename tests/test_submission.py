"""Tests for the quick start / rest submission flows, full charges and the
rest-timer notification scheduler."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ServiceError, ValidationError
from app.core.timezone import REFERENCE_TZ
from app.schemas.journal import ActionType, EmotionEntry, EntrySubmission, RestSubmission, SleepStatus
from app.services.journal_submission import REST_OVER_TITLE, JournalSubmissionService
from app.services.rest_timer import NotificationScheduler

TS = datetime(2024, 3, 1, 15, 0, tzinfo=REFERENCE_TZ)


@pytest.fixture
def scheduler(db):
    return NotificationScheduler(db, user_id="test_user")


@pytest.fixture
def service(gateway, scheduler):
    return JournalSubmissionService(gateway, scheduler)


def submission(**overrides):
    fields = dict(
        negative_feeling="can't start the slides",
        emotions=[EmotionEntry(name="anxious", color_hex="#ffaa00")],
        topics=["work"],
        sleep_deprived=SleepStatus.yes,
        next_task="draft slide 1",
        task_duration_minutes=15,
        rest_activity="walk",
        timestamp=TS,
    )
    fields.update(overrides)
    return fields


class TestQuickStart:

    def test_persists_quick_start_entry(self, service, gateway):
        entry = service.quick_start(EntrySubmission(**submission()))

        assert entry.action_type is ActionType.quick_start
        assert entry.alarm_time is None
        assert gateway.get_entries_by_date(date(2024, 3, 1)) == [entry]

    def test_timestamp_defaults_to_now(self, service):
        before = datetime.now(timezone.utc)
        entry = service.quick_start(EntrySubmission(**submission(timestamp=None)))

        assert entry.timestamp >= before - timedelta(seconds=1)


class TestStartRest:

    def test_saves_entry_and_schedules_alarm(self, service, gateway, scheduler):
        alarm = TS + timedelta(minutes=20)

        entry, notification_id = service.start_rest(RestSubmission(**submission(alarm_time=alarm)))

        assert entry.action_type is ActionType.rest
        assert entry.alarm_time == alarm
        assert gateway.get_entries_by_date(date(2024, 3, 1)) == [entry]

        pending = scheduler.pending()
        assert [n.id for n in pending] == [notification_id]
        assert pending[0].title == REST_OVER_TITLE
        assert pending[0].body == "Next up: draft slide 1"

    def test_alarm_must_be_after_entry(self, service, gateway, scheduler):
        with pytest.raises(ValidationError):
            service.start_rest(RestSubmission(**submission(alarm_time=TS)))

        assert gateway.get_entries_by_date(date(2024, 3, 1)) == []
        assert scheduler.pending() == []


class TestFullCharge:

    def test_records_and_cancels_pending_alarm(self, service, gateway, scheduler):
        _, notification_id = service.start_rest(
            RestSubmission(**submission(alarm_time=TS + timedelta(minutes=30)))
        )

        charge = service.record_full_charge(
            "homeScreen", notification_id=notification_id, timestamp=TS + timedelta(minutes=10)
        )

        assert gateway.get_full_charges_by_date(date(2024, 3, 1)) == [charge]
        assert scheduler.pending() == []

    def test_without_notification(self, service, gateway):
        charge = service.record_full_charge("startScreen", timestamp=TS)

        assert charge.source == "startScreen"
        assert gateway.get_recent_full_charges(5) == [charge]


class TestNotificationScheduler:

    def test_pending_is_soonest_first(self, scheduler):
        late = scheduler.schedule(TS + timedelta(hours=2), "late")
        soon = scheduler.schedule(TS + timedelta(hours=1), "soon")

        assert [n.id for n in scheduler.pending()] == [soon, late]

    def test_cancel_unknown_returns_false(self, scheduler):
        assert scheduler.cancel("missing") is False

    def test_cancel_is_scoped_to_user(self, db, scheduler):
        other = NotificationScheduler(db, user_id="someone_else")
        notification_id = other.schedule(TS, "theirs")

        assert scheduler.cancel(notification_id) is False
        assert [n.id for n in other.pending()] == [notification_id]

    def test_cancel_twice(self, scheduler):
        notification_id = scheduler.schedule(TS, "rest over")

        assert scheduler.cancel(notification_id) is True
        assert scheduler.cancel(notification_id) is True
        assert scheduler.pending() == []


class TestSchedulingFailure:

    def test_entry_kept_and_service_error_raised(self, gateway, db):
        class BrokenScheduler(NotificationScheduler):
            def schedule(self, at, title, body=None):
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        service = JournalSubmissionService(gateway, BrokenScheduler(db, user_id="test_user"))

        with pytest.raises(ServiceError):
            service.start_rest(RestSubmission(**submission(alarm_time=TS + timedelta(minutes=5))))

        assert len(gateway.get_entries_by_date(date(2024, 3, 1))) == 1
