# models/document.py

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON
from app.core.config import Base


class Document(Base):
    __tablename__ = "document"

    # Full slash-separated path: users/{uid}/journals/{dateKey}/entries/{id}
    path = Column(String(512), primary_key=True)

    collection_path = Column(String(512), nullable=False, index=True)  # parent collection
    collection_id = Column(String(128), nullable=False, index=True)    # last collection segment
    document_id = Column(String(128), nullable=False)

    data = Column(JSON, nullable=False)  # encoded fields, timestamps tagged

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
