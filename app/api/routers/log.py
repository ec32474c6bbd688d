# app/api/routers/log.py
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_gateway
from app.schemas.journal import LogItem
from app.services.grouping import build_log
from app.services.journal_gateway import JournalGateway

router = APIRouter(prefix="/log", tags=["Log"])


@router.get("", response_model=List[LogItem], summary="Journal entries and full charges on one timeline")
def get_log(
    limit: int = Query(default=30, ge=1, le=500),
    ascending: bool = Query(default=False),
    gateway: JournalGateway = Depends(get_gateway),
):
    """Reads the latest `limit` records of each kind and merges them."""
    entries = gateway.get_recent_entries(limit)
    full_charges = gateway.get_recent_full_charges(limit)
    return build_log(entries, full_charges, ascending=ascending)
