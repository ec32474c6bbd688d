# crud/step_sample.py
from datetime import date, datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.step_sample import StepSample


class CRUDStepSample:
    """CRUD operations for StepSample model."""

    # =====================================================================
    # WRITE OPERATIONS
    # =====================================================================

    def upsert(self, db: Session, *, user_id: str, day: date, steps: float) -> StepSample:
        """
        Store the daily total for a day, replacing any earlier upload.

        Args:
            db: Database session
            user_id: Owner partition
            day: Calendar day the total belongs to
            steps: Cumulative step count for that day

        Returns:
            Stored StepSample instance
        """
        db_obj = self.get_by_day(db, user_id=user_id, day=day)
        if db_obj is None:
            db_obj = StepSample(user_id=user_id, day=day, steps=steps)
            db.add(db_obj)
        else:
            db_obj.steps = steps
            db_obj.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    # =====================================================================
    # READ OPERATIONS
    # =====================================================================

    def get_by_day(self, db: Session, *, user_id: str, day: date) -> Optional[StepSample]:
        return (
            db.query(StepSample)
            .filter(StepSample.user_id == user_id)
            .filter(StepSample.day == day)
            .first()
        )

    def get_by_date_range(
        self, db: Session, *, user_id: str, start_date: date, end_date: date
    ) -> List[StepSample]:
        """Get daily totals within a date range (inclusive), oldest first."""
        return (
            db.query(StepSample)
            .filter(StepSample.user_id == user_id)
            .filter(StepSample.day >= start_date)
            .filter(StepSample.day <= end_date)
            .order_by(StepSample.day.asc())
            .all()
        )


# Create singleton instance
crud_step_sample = CRUDStepSample()
