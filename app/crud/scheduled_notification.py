# crud/scheduled_notification.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.scheduled_notification import ScheduledNotification


class CRUDScheduledNotification:
    """CRUD operations for ScheduledNotification model."""

    def create(
        self, db: Session, *, user_id: str, fire_at: datetime, title: str, body: Optional[str] = None
    ) -> ScheduledNotification:
        db_obj = ScheduledNotification(user_id=user_id, fire_at=fire_at, title=title, body=body)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get(self, db: Session, *, id: str) -> Optional[ScheduledNotification]:
        return db.query(ScheduledNotification).filter(ScheduledNotification.id == id).first()

    def get_pending(self, db: Session, *, user_id: str) -> List[ScheduledNotification]:
        """Not-cancelled notifications for a user, soonest first."""
        return (
            db.query(ScheduledNotification)
            .filter(ScheduledNotification.user_id == user_id)
            .filter(ScheduledNotification.cancelled.is_(False))
            .order_by(ScheduledNotification.fire_at.asc())
            .all()
        )

    def cancel(self, db: Session, *, db_obj: ScheduledNotification) -> ScheduledNotification:
        db_obj.cancelled = True
        db.commit()
        db.refresh(db_obj)
        return db_obj


# Create singleton instance
crud_scheduled_notification = CRUDScheduledNotification()
