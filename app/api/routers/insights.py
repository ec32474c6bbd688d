# app/api/routers/insights.py
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_insight_service
from app.core.exceptions import ValidationError
from app.core.timezone import REFERENCE_TZ
from app.schemas.insight import InsightReportResponse
from app.services.insight import InsightService

router = APIRouter(prefix="/insights", tags=["Insights"])

DEFAULT_WINDOW_DAYS = 30


@router.get(
    "/report",
    response_model=InsightReportResponse,
    summary="Insight report for a date window",
)
def get_report(
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    service: InsightService = Depends(get_insight_service),
):
    """
    Analyze entries dated within [start, end].

    Without parameters the window is the last 30 days up to today.
    `text` holds the whole report rendered as titled paragraphs.
    """
    end = end or datetime.now(REFERENCE_TZ).date()
    start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
    if end < start:
        raise ValidationError("end must not be before start")

    report = service.build_report(start, end)
    return InsightReportResponse(**report.model_dump(), text=report.to_text())
