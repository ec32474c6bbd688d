# app/api/routers/full_charges.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_gateway, get_submission_service
from app.schemas.journal import FullChargeEntry, FullChargeRequest
from app.services.journal_gateway import JournalGateway
from app.services.journal_submission import JournalSubmissionService

router = APIRouter(prefix="/full-charges", tags=["Full Charges"])


@router.post(
    "",
    response_model=FullChargeEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record a full-charge check-in",
)
def record_full_charge(
    request: FullChargeRequest,
    service: JournalSubmissionService = Depends(get_submission_service),
):
    """
    Saves the check-in. When `notification_id` is given, the pending
    end-of-rest alarm is cancelled as well.
    """
    return service.record_full_charge(
        request.source,
        notification_id=request.notification_id,
        timestamp=request.timestamp,
    )


@router.get("/date/{day}", response_model=List[FullChargeEntry])
def get_full_charges_by_date(day: date, gateway: JournalGateway = Depends(get_gateway)):
    return gateway.get_full_charges_by_date(day)


@router.get("/recent", response_model=List[FullChargeEntry])
def get_recent_full_charges(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    gateway: JournalGateway = Depends(get_gateway),
):
    return gateway.get_recent_full_charges(limit)
