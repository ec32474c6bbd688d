# app/api/deps.py
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import SessionLocal, get_db, settings
from app.crud.document_store import CRUDDocumentStore
from app.services.insight import InsightService
from app.services.journal_gateway import JournalGateway
from app.services.journal_submission import JournalSubmissionService
from app.services.rest_timer import NotificationScheduler
from app.services.step_count import StepCountSource, StoredStepCountSource, UnavailableStepCountSource


@lru_cache()
def get_document_store() -> CRUDDocumentStore:
    """One store client per process; it opens a session per call."""
    return CRUDDocumentStore(SessionLocal, settings.COLLECTION_GROUP_INDEXES)


def get_gateway(store: CRUDDocumentStore = Depends(get_document_store)) -> JournalGateway:
    return JournalGateway(store)


def get_step_source(db: Session = Depends(get_db)) -> StepCountSource:
    if not settings.STEP_COUNT_ENABLED:
        return UnavailableStepCountSource()
    return StoredStepCountSource(db)


def get_notification_scheduler(db: Session = Depends(get_db)) -> NotificationScheduler:
    return NotificationScheduler(db)


def get_submission_service(
    gateway: JournalGateway = Depends(get_gateway),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
) -> JournalSubmissionService:
    return JournalSubmissionService(gateway, scheduler)


def get_insight_service(
    gateway: JournalGateway = Depends(get_gateway),
    step_source: StepCountSource = Depends(get_step_source),
) -> InsightService:
    return InsightService(gateway, step_source)
