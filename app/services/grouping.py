# services/grouping.py
from typing import Dict, Iterable, List, TypeVar, Union

from app.schemas.journal import FullChargeEntry, JournalEntry, LogItem

Record = TypeVar("Record", JournalEntry, FullChargeEntry)


def latest_by_date(entries: Iterable[Record]) -> Dict[str, Record]:
    """
    Pick the most recent record for each date key.

    When two records on the same day share a timestamp, the first one seen
    is kept. Keys come back in ascending date order.
    """
    latest: Dict[str, Record] = {}
    for entry in entries:
        current = latest.get(entry.date_key)
        if current is None or entry.timestamp > current.timestamp:
            latest[entry.date_key] = entry
    return dict(sorted(latest.items()))


def group_by_date(entries: Iterable[Record]) -> Dict[str, List[Record]]:
    """All records per date key, newest first within each day."""
    groups: Dict[str, List[Record]] = {}
    for entry in entries:
        groups.setdefault(entry.date_key, []).append(entry)
    for records in groups.values():
        records.sort(key=lambda record: record.timestamp, reverse=True)
    return dict(sorted(groups.items()))


def build_log(
    entries: Iterable[JournalEntry],
    full_charges: Iterable[FullChargeEntry],
    ascending: bool = False,
) -> List[LogItem]:
    """Merge both record kinds into one timeline (newest first by default)."""
    items: List[LogItem] = [LogItem.from_journal_entry(entry) for entry in entries]
    items.extend(LogItem.from_full_charge(entry) for entry in full_charges)
    items.sort(key=lambda item: item.timestamp, reverse=not ascending)
    return items


def calendar_summary(entries: Iterable[JournalEntry]) -> List[Dict[str, Union[str, int, None, List[str]]]]:
    """
    Per-day indicator rows for a calendar: the entry count plus the sleep
    flag and emotion colours of that day's latest entry.
    """
    entries = list(entries)
    counts = {key: len(records) for key, records in group_by_date(entries).items()}
    rows = []
    for date_key, entry in latest_by_date(entries).items():
        rows.append({
            "date_key": date_key,
            "entry_count": counts[date_key],
            "latest_entry_id": entry.id,
            "sleep_deprived": entry.sleep_deprived.value,
            "emotion_colors": [emotion.color_hex for emotion in entry.emotions],
        })
    return rows
