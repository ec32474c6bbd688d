# models/scheduled_notification.py

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Boolean
from app.core.config import Base


class ScheduledNotification(Base):
    __tablename__ = "scheduled_notification"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)

    fire_at = Column(DateTime(timezone=True), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)

    cancelled = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
