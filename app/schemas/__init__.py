# app/schemas/__init__.py

from .journal import (
    SleepStatus,
    ActionType,
    EmotionEntry,
    JournalEntry,
    FullChargeEntry,
    LogItemKind,
    LogItem,
    Ok,
    Skip,
    Decoded,
    journal_entry_to_document,
    full_charge_to_document,
    decode_journal_entry,
    decode_full_charge,
    EntrySubmission,
    RestSubmission,
    RestStartedResponse,
    FullChargeRequest,
    DeleteResponse,
    StepTotalRequest,
)
from .insight import (
    InsightSection,
    InsightReport,
    InsightReportResponse,
)


__all__ = [
    # Records
    "SleepStatus", "ActionType", "EmotionEntry", "JournalEntry",
    "FullChargeEntry", "LogItemKind", "LogItem",

    # Codec
    "Ok", "Skip", "Decoded",
    "journal_entry_to_document", "full_charge_to_document",
    "decode_journal_entry", "decode_full_charge",

    # Requests / responses
    "EntrySubmission", "RestSubmission", "RestStartedResponse",
    "FullChargeRequest", "DeleteResponse", "StepTotalRequest",

    # Insights
    "InsightSection", "InsightReport", "InsightReportResponse",
]
