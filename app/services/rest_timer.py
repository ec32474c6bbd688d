# services/rest_timer.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.timezone import ensure_aware
from app.crud.scheduled_notification import crud_scheduled_notification
from app.models.scheduled_notification import ScheduledNotification

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """
    Local notifications for the end of a rest period.

    Notifications are kept in the database; handing them to the device is
    left to the client.
    """

    def __init__(self, db: Session, user_id: Optional[str] = None):
        self.db = db
        self.user_id = user_id or settings.FIXED_USER_ID

    def schedule(self, at: datetime, title: str, body: Optional[str] = None) -> str:
        """Schedule a notification and return its id."""
        fire_at = ensure_aware(at).astimezone(timezone.utc)
        notification = crud_scheduled_notification.create(
            self.db, user_id=self.user_id, fire_at=fire_at, title=title, body=body
        )
        logger.info(f"Scheduled notification {notification.id} at {fire_at.isoformat()}")
        return notification.id

    def cancel(self, notification_id: str) -> bool:
        """
        Cancel a pending notification.

        Returns:
            False if the id is unknown or belongs to someone else
        """
        notification = crud_scheduled_notification.get(self.db, id=notification_id)
        if notification is None or notification.user_id != self.user_id:
            logger.warning(f"Notification {notification_id} not found, nothing to cancel")
            return False
        if not notification.cancelled:
            crud_scheduled_notification.cancel(self.db, db_obj=notification)
            logger.info(f"Cancelled notification {notification_id}")
        return True

    def pending(self) -> List[ScheduledNotification]:
        return crud_scheduled_notification.get_pending(self.db, user_id=self.user_id)
