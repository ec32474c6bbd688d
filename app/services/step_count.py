# services/step_count.py
import logging
from datetime import date
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import StepSourceError
from app.crud.step_sample import crud_step_sample

logger = logging.getLogger(__name__)


class StepCountSource:
    """
    Read-only source of per-day step totals.

    Implementations raise StepSourceError, and nothing else, when totals
    cannot be read.
    """

    def authorize(self) -> bool:
        raise NotImplementedError

    def fetch_daily_totals(self, start: date, end: date) -> Dict[date, float]:
        """
        Raises:
            StepSourceError: If the totals could not be read
        """
        raise NotImplementedError


class UnavailableStepCountSource(StepCountSource):
    """Used when step data is switched off; never grants access."""

    def authorize(self) -> bool:
        return False

    def fetch_daily_totals(self, start: date, end: date) -> Dict[date, float]:
        return {}


class StoredStepCountSource(StepCountSource):
    """Daily totals uploaded by the device, read back from the database."""

    def __init__(self, db: Session, user_id: Optional[str] = None):
        self.db = db
        self.user_id = user_id or settings.FIXED_USER_ID

    def authorize(self) -> bool:
        return True

    def fetch_daily_totals(self, start: date, end: date) -> Dict[date, float]:
        try:
            samples = crud_step_sample.get_by_date_range(
                self.db, user_id=self.user_id, start_date=start, end_date=end
            )
        except SQLAlchemyError as exc:
            logger.error(f"Step totals query failed for {start}..{end}: {exc}")
            raise StepSourceError(f"Could not read step totals for {start}..{end}") from exc
        totals = {sample.day: sample.steps for sample in samples}
        logger.debug(f"Loaded {len(totals)} day(s) of step totals for {start}..{end}")
        return totals

    def record_daily_total(self, day: date, steps: float) -> None:
        crud_step_sample.upsert(self.db, user_id=self.user_id, day=day, steps=steps)
        logger.info(f"Recorded {steps:.0f} steps for {day}")
