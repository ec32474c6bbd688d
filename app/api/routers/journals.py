# app/api/routers/journals.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_gateway, get_submission_service
from app.core.exceptions import NotFoundError
from app.core.timezone import date_key_of_day
from app.schemas.journal import (
    DeleteResponse,
    EntrySubmission,
    JournalEntry,
    RestStartedResponse,
    RestSubmission,
)
from app.services.grouping import calendar_summary
from app.services.journal_gateway import DeleteOutcome, JournalGateway
from app.services.journal_submission import JournalSubmissionService

router = APIRouter(prefix="/journals", tags=["Journals"])


# =====================================================================
# SUBMISSION
# =====================================================================

@router.post(
    "/quick-start",
    response_model=JournalEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record an entry and start the next task",
)
def quick_start(
    submission: EntrySubmission,
    service: JournalSubmissionService = Depends(get_submission_service),
):
    return service.quick_start(submission)


@router.post(
    "/rest",
    response_model=RestStartedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an entry and start a timed rest",
)
def start_rest(
    submission: RestSubmission,
    service: JournalSubmissionService = Depends(get_submission_service),
):
    """
    Saves the entry and schedules a notification at `alarm_time`.

    The returned `notification_id` is what the full-charge check-in passes
    back to cancel the alarm early.
    """
    entry, notification_id = service.start_rest(submission)
    return RestStartedResponse(entry=entry, notification_id=notification_id)


# =====================================================================
# READS
# =====================================================================

@router.get("/date/{day}", response_model=List[JournalEntry])
def get_entries_by_date(day: date, gateway: JournalGateway = Depends(get_gateway)):
    return gateway.get_entries_by_date(day)


@router.get("/range", response_model=List[JournalEntry])
def get_entries_by_date_range(
    start: date = Query(...),
    end: date = Query(...),
    gateway: JournalGateway = Depends(get_gateway),
):
    """Entries dated within [start, end] inclusive, newest first."""
    return gateway.get_entries_by_date_range(start, end)


@router.get("/recent", response_model=List[JournalEntry])
def get_recent_entries(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    gateway: JournalGateway = Depends(get_gateway),
):
    return gateway.get_recent_entries(limit)


@router.get("/calendar", response_model=List[dict])
def get_calendar(
    start: date = Query(...),
    end: date = Query(...),
    gateway: JournalGateway = Depends(get_gateway),
):
    """One row per day that has entries, built from that day's latest entry."""
    return calendar_summary(gateway.get_entries_by_date_range(start, end))


# =====================================================================
# DELETE
# =====================================================================

@router.delete("/{day}/{entry_id}", response_model=DeleteResponse)
def delete_entry(
    day: date,
    entry_id: str,
    gateway: JournalGateway = Depends(get_gateway),
):
    date_key = date_key_of_day(day)
    outcome = gateway.delete_entry_by_key(entry_id, date_key)
    if outcome is DeleteOutcome.not_found:
        raise NotFoundError(f"Entry {entry_id} not found on {date_key}")
    return DeleteResponse(outcome=outcome.value, id=entry_id, date_key=date_key)
