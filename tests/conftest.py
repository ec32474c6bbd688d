"""Shared fixtures.

Provides:
- A file-backed SQLite engine per test (the gateway's fan-out reads run on
  worker threads, each with its own connection, so :memory: will not do)
- Document store / gateway instances with and without collection group indexes
- Factories for journal entries and full charges
- FastAPI TestClient with the database dependencies overridden
"""

import os

# Keep the app's own engine off the working directory during test runs
os.environ.setdefault("DATABASE_URL", "sqlite://")

import logging
from datetime import datetime
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app import models  # noqa: F401
from app.api.deps import get_document_store
from app.core.config import Base, get_db
from app.crud.document_store import CRUDDocumentStore
from app.schemas.journal import ActionType, EmotionEntry, FullChargeEntry, JournalEntry, SleepStatus
from app.services.journal_gateway import ENTRIES, FULL_CHARGES, JournalGateway

logger = logging.getLogger(__name__)

TEST_USER_ID = "test_user"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Store and gateway
# ---------------------------------------------------------------------------

@pytest.fixture
def store(session_factory) -> CRUDDocumentStore:
    """No collection group indexes: cross-partition reads take the fallback path."""
    return CRUDDocumentStore(session_factory)


@pytest.fixture
def indexed_store(session_factory) -> CRUDDocumentStore:
    return CRUDDocumentStore(session_factory, [ENTRIES, FULL_CHARGES])


@pytest.fixture
def user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def gateway(store) -> JournalGateway:
    return JournalGateway(store, user_id=TEST_USER_ID, max_workers=4)


@pytest.fixture
def indexed_gateway(indexed_store) -> JournalGateway:
    return JournalGateway(indexed_store, user_id=TEST_USER_ID, max_workers=4)


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_entry():
    def _make_entry(
        timestamp: datetime,
        sleep: SleepStatus = SleepStatus.unreported,
        emotions=(),
        topics=(),
        action_type: ActionType = ActionType.quick_start,
        rest_activity: str = "",
        **kwargs,
    ) -> JournalEntry:
        return JournalEntry(
            timestamp=timestamp,
            negative_feeling=kwargs.pop("negative_feeling", "tired and behind"),
            emotions=[EmotionEntry(name=name, color_hex="FF8800") for name in emotions],
            topics=list(topics),
            sleep_deprived=sleep,
            action_type=action_type,
            rest_activity=rest_activity,
            **kwargs,
        )

    return _make_entry


@pytest.fixture
def make_full_charge():
    def _make_full_charge(timestamp: datetime, source: str = "homeScreen") -> FullChargeEntry:
        return FullChargeEntry(timestamp=timestamp, source=source)

    return _make_full_charge


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
def client(session_factory, store) -> Generator[TestClient, None, None]:
    """TestClient bound to the per-test database; the store has no indexes."""
    from main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_document_store] = lambda: store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
