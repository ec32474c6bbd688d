# services/journal_submission.py
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ServiceError, ValidationError
from app.core.timezone import REFERENCE_TZ, ensure_aware
from app.schemas.journal import (
    ActionType,
    EntrySubmission,
    FullChargeEntry,
    JournalEntry,
    RestSubmission,
)
from app.services.journal_gateway import JournalGateway
from app.services.rest_timer import NotificationScheduler

logger = logging.getLogger(__name__)


REST_OVER_TITLE = "Rest is over"


class JournalSubmissionService:
    """
    The two ways of finishing a journal entry (quick start and rest) and
    the full-charge check-in that closes a rest.
    """

    def __init__(self, gateway: JournalGateway, scheduler: NotificationScheduler):
        self.gateway = gateway
        self.scheduler = scheduler

    # ====================================================
    # HELPERS
    # ====================================================

    @staticmethod
    def _now() -> datetime:
        return datetime.now(REFERENCE_TZ)

    def _build_entry(
        self,
        submission: EntrySubmission,
        action_type: ActionType,
        alarm_time: Optional[datetime] = None,
    ) -> JournalEntry:
        return JournalEntry(
            timestamp=submission.timestamp or self._now(),
            negative_feeling=submission.negative_feeling,
            emotions=submission.emotions,
            topics=submission.topics,
            sleep_deprived=submission.sleep_deprived,
            next_task=submission.next_task,
            task_duration_minutes=submission.task_duration_minutes,
            rest_activity=submission.rest_activity,
            alarm_time=alarm_time,
            action_type=action_type,
        )

    # ====================================================
    # SUBMISSION PATHS
    # ====================================================

    def quick_start(self, submission: EntrySubmission) -> JournalEntry:
        """Record the entry and go straight to the next task."""
        entry = self._build_entry(submission, ActionType.quick_start)
        self.gateway.save_entry(entry)
        return entry

    def start_rest(self, submission: RestSubmission) -> Tuple[JournalEntry, str]:
        """
        Record the entry and schedule the end-of-rest alarm.

        Returns:
            (saved entry, notification id)

        Raises:
            ValidationError: If the alarm is not after the entry time
            ServiceError: If the entry was saved but the alarm could not be scheduled
        """
        entry = self._build_entry(submission, ActionType.rest, alarm_time=submission.alarm_time)
        if entry.alarm_time <= entry.timestamp:
            raise ValidationError("alarm_time must be later than the entry time")

        self.gateway.save_entry(entry)

        body = f"Next up: {entry.next_task}" if entry.next_task else "Time to get going again."
        try:
            notification_id = self.scheduler.schedule(entry.alarm_time, REST_OVER_TITLE, body)
        except SQLAlchemyError as exc:
            logger.error(f"Entry {entry.id} saved but its rest alarm was not scheduled: {exc}")
            raise ServiceError("Could not schedule the rest alarm") from exc
        return entry, notification_id

    def record_full_charge(
        self,
        source: str,
        notification_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> FullChargeEntry:
        """Persist a recovery check-in and drop the pending rest alarm, if any."""
        entry = FullChargeEntry(
            timestamp=ensure_aware(timestamp) if timestamp else self._now(),
            source=source,
        )
        self.gateway.save_full_charge(entry)

        if notification_id:
            self.scheduler.cancel(notification_id)
        return entry
