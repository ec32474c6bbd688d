# models/step_sample.py

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Date, DateTime, Float, UniqueConstraint
from app.core.config import Base


class StepSample(Base):
    __tablename__ = "step_sample"
    __table_args__ = (UniqueConstraint("user_id", "day", name="uq_step_sample_user_day"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    day = Column(Date, nullable=False, index=True)

    steps = Column(Float, nullable=False)  # daily cumulative total

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
