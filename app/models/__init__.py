# app/models/__init__.py

from app.core.config import Base

# Import all models here so metadata.create_all and app-wide imports work
from .document import Document
from .step_sample import StepSample
from .scheduled_notification import ScheduledNotification

__all__ = [
    "Base",
    "Document",
    "StepSample",
    "ScheduledNotification",
]
