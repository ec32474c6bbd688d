from __future__ import annotations
import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.core.timezone import date_key_for, ensure_aware


MAX_EMOTIONS = 3
MAX_TOPICS = 3

HEX_COLOR_RE = re.compile(r"^[0-9A-F]{6}$")


# ----------------------
# Enumerations
# ----------------------
class SleepStatus(str, Enum):
    """Self-reported sleep deprivation; stored as an optional boolean."""

    yes = "yes"
    no = "no"
    unreported = "unreported"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "SleepStatus":
        if flag is None:
            return cls.unreported
        return cls.yes if flag else cls.no

    def to_flag(self) -> Optional[bool]:
        if self is SleepStatus.unreported:
            return None
        return self is SleepStatus.yes


class ActionType(str, Enum):
    rest = "rest"
    quick_start = "quickStart"


# ----------------------
# Records
# ----------------------
class EmotionEntry(BaseModel):
    name: str = Field(..., min_length=1)
    color_hex: str = Field(..., description="RRGGBB, upper-case, no alpha")

    @field_validator("color_hex", mode="before")
    @classmethod
    def normalize_color_hex(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("color_hex must be a string")
        normalized = value.strip().lstrip("#").upper()
        if not HEX_COLOR_RE.match(normalized):
            raise ValueError(f"color_hex must be 6 hex digits, got {value!r}")
        return normalized

    class Config:
        frozen = True


class JournalEntry(BaseModel):
    """One negative-feeling episode recorded by the user."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime
    negative_feeling: str
    emotions: List[EmotionEntry] = Field(default_factory=list, max_length=MAX_EMOTIONS)
    topics: List[str] = Field(default_factory=list, max_length=MAX_TOPICS)
    sleep_deprived: SleepStatus = SleepStatus.unreported
    next_task: str = ""
    task_duration_minutes: int = Field(0, ge=0)
    rest_activity: str = ""
    alarm_time: Optional[datetime] = None
    action_type: ActionType

    @field_validator("timestamp", "alarm_time")
    @classmethod
    def make_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    @computed_field
    @property
    def date_key(self) -> str:
        return date_key_for(self.timestamp)

    class Config:
        frozen = True


class FullChargeEntry(BaseModel):
    """A recovery ("all clear") check-in."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime
    source: str = Field(..., min_length=1, description="Screen that triggered the check-in")

    @field_validator("timestamp")
    @classmethod
    def make_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @computed_field
    @property
    def date_key(self) -> str:
        return date_key_for(self.timestamp)

    class Config:
        frozen = True


class LogItemKind(str, Enum):
    journal = "journal"
    full_charge = "fullCharge"


class LogItem(BaseModel):
    """Display-time wrapper putting both record kinds on one timeline."""

    id: str
    kind: LogItemKind
    timestamp: datetime
    journal_entry: Optional[JournalEntry] = None
    full_charge: Optional[FullChargeEntry] = None

    @classmethod
    def from_journal_entry(cls, entry: JournalEntry) -> "LogItem":
        return cls(
            id=f"journal_{entry.id}",
            kind=LogItemKind.journal,
            timestamp=entry.timestamp,
            journal_entry=entry,
        )

    @classmethod
    def from_full_charge(cls, entry: FullChargeEntry) -> "LogItem":
        return cls(
            id=f"fullCharge_{entry.id}",
            kind=LogItemKind.full_charge,
            timestamp=entry.timestamp,
            full_charge=entry,
        )


# ----------------------
# Document codec
# ----------------------
class Ok(NamedTuple):
    value: Any


class Skip(NamedTuple):
    reason: str


Decoded = Union[Ok, Skip]


def journal_entry_to_document(entry: JournalEntry) -> Dict[str, Any]:
    """Field layout stored under users/{uid}/journals/{dateKey}/entries/{id}."""
    doc: Dict[str, Any] = {
        "id": entry.id,
        "date": entry.timestamp,
        "negativeFeeling": entry.negative_feeling,
        "emotions": [{"name": e.name, "colorHex": e.color_hex} for e in entry.emotions],
        "thinkings": list(entry.topics),
        "nextTask": entry.next_task,
        "taskDurationMinutes": entry.task_duration_minutes,
        "restActivity": entry.rest_activity,
        "actionType": entry.action_type.value,
    }

    # Optional values are omitted rather than stored as null
    flag = entry.sleep_deprived.to_flag()
    if flag is not None:
        doc["isSleepDeprived"] = flag
    if entry.alarm_time is not None:
        doc["alarmTime"] = entry.alarm_time

    return doc


def full_charge_to_document(entry: FullChargeEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "date": entry.timestamp,
        "source": entry.source,
        "type": "fullCharge",
    }


def _require(doc: Dict[str, Any], field: str, kind: type) -> Any:
    if field not in doc:
        raise KeyError(field)
    value = doc[field]
    if not isinstance(value, kind):
        raise TypeError(f"{field} should be {kind.__name__}, got {type(value).__name__}")
    return value


def decode_journal_entry(doc: Dict[str, Any]) -> Decoded:
    """
    Validate a stored document into a JournalEntry.

    Required fields with a wrong type or missing produce Skip. Optional fields
    with a wrong type fall back to their defaults, and emotion items without a
    name/colorHex pair are dropped.
    """
    try:
        raw_emotions = _require(doc, "emotions", list)
        emotions = [
            {"name": item["name"], "color_hex": item["colorHex"]}
            for item in raw_emotions
            if isinstance(item, dict)
            and isinstance(item.get("name"), str)
            and isinstance(item.get("colorHex"), str)
        ]

        flag = doc.get("isSleepDeprived")
        alarm = doc.get("alarmTime")
        duration = doc.get("taskDurationMinutes")
        next_task = doc.get("nextTask")

        entry = JournalEntry(
            id=_require(doc, "id", str),
            timestamp=_require(doc, "date", datetime),
            negative_feeling=_require(doc, "negativeFeeling", str),
            emotions=emotions,
            topics=_require(doc, "thinkings", list),
            sleep_deprived=SleepStatus.from_flag(flag if isinstance(flag, bool) else None),
            next_task=next_task if isinstance(next_task, str) else "",
            task_duration_minutes=duration if isinstance(duration, int) and not isinstance(duration, bool) else 0,
            rest_activity=_require(doc, "restActivity", str),
            alarm_time=alarm if isinstance(alarm, datetime) else None,
            action_type=_require(doc, "actionType", str),
        )
    except KeyError as exc:
        return Skip(f"missing field {exc.args[0]}")
    except TypeError as exc:
        return Skip(str(exc))
    except PydanticValidationError as exc:
        return Skip(f"invalid journal entry: {exc.error_count()} error(s): {exc.errors()[0]['msg']}")
    return Ok(entry)


def decode_full_charge(doc: Dict[str, Any]) -> Decoded:
    try:
        entry = FullChargeEntry(
            id=_require(doc, "id", str),
            timestamp=_require(doc, "date", datetime),
            source=_require(doc, "source", str),
        )
    except KeyError as exc:
        return Skip(f"missing field {exc.args[0]}")
    except TypeError as exc:
        return Skip(str(exc))
    except PydanticValidationError as exc:
        return Skip(f"invalid full charge: {exc.errors()[0]['msg']}")
    return Ok(entry)


# ----------------------
# Request bodies
# ----------------------
class EntrySubmission(BaseModel):
    """Fields the user fills in before choosing quick start or rest."""

    negative_feeling: str
    emotions: List[EmotionEntry] = Field(default_factory=list, max_length=MAX_EMOTIONS)
    topics: List[str] = Field(default_factory=list, max_length=MAX_TOPICS)
    sleep_deprived: SleepStatus = SleepStatus.unreported
    next_task: str = ""
    task_duration_minutes: int = Field(0, ge=0)
    rest_activity: str = ""
    timestamp: Optional[datetime] = None


class RestSubmission(EntrySubmission):
    alarm_time: datetime


class RestStartedResponse(BaseModel):
    entry: JournalEntry
    notification_id: str


class FullChargeRequest(BaseModel):
    source: str = Field(..., min_length=1)
    notification_id: Optional[str] = Field(
        default=None, description="Pending rest alarm to cancel"
    )
    timestamp: Optional[datetime] = None


class DeleteResponse(BaseModel):
    outcome: str
    id: str
    date_key: str


class StepTotalRequest(BaseModel):
    steps: float = Field(..., ge=0)
