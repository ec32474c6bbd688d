# app/api/routers/steps.py
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import get_db
from app.schemas.journal import StepTotalRequest
from app.services.step_count import StoredStepCountSource

router = APIRouter(prefix="/steps", tags=["Step Counts"])


@router.put("/{day}", summary="Upload the step total for one day")
def put_daily_total(day: date, request: StepTotalRequest, db: Session = Depends(get_db)):
    StoredStepCountSource(db).record_daily_total(day, request.steps)
    return {"day": day, "steps": request.steps}


@router.get("", response_model=List[dict])
def get_daily_totals(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
):
    totals = StoredStepCountSource(db).fetch_daily_totals(start, end)
    return [{"day": day, "steps": steps} for day, steps in sorted(totals.items())]
