# services/insight_analyzer.py
"""
Insight report over a window of journal entries, full-charge check-ins and
daily step totals.

Every section function is pure and can be called on its own. A section that
lacks the data it needs returns INSUFFICIENT_DATA (or STEP_DATA_UNAVAILABLE)
instead of raising.
"""
from collections import Counter
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.core.timezone import date_key_for, date_key_of_day
from app.schemas.insight import InsightReport, InsightSection
from app.schemas.journal import ActionType, FullChargeEntry, JournalEntry, SleepStatus
from app.services.grouping import latest_by_date


INSUFFICIENT_DATA = "Not enough data yet. Keep journaling and check back later."
STEP_DATA_UNAVAILABLE = (
    "Step data is unavailable. Allow step-count access to see how activity relates to your sleep."
)

TOP_N = 3
STEP_THRESHOLD = 5000
WELL_RESTED_HIGH = 70
WELL_RESTED_LOW = 40
SLEEP_FIRST_RATIO = 0.5
RECOVERY_LOW_RATIO = 0.5

SECONDS_PER_DAY = 86400.0

# Checked in this order; the first bucket wins ties
REST_BUCKETS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("video", ("video", "youtube", "movie", "netflix", "動画", "映画", "テレビ")),
    ("music", ("music", "song", "playlist", "音楽", "曲", "歌")),
    ("walking", ("walk", "stroll", "散歩", "歩")),
    ("nap", ("nap", "sleep", "昼寝", "仮眠", "寝")),
)

REST_BUCKET_LABELS = {
    "video": "watching videos",
    "music": "listening to music",
    "walking": "going for a walk",
    "nap": "taking a nap",
}

REST_BUCKET_TIPS = {
    "video": "Set a timer for video breaks so a short rest does not turn into a long one.",
    "music": "Music makes a good short reset; try closing your eyes for one track.",
    "walking": "Walking is one of the most reliable resets, so keep it in the rotation.",
    "nap": "Short naps work best; keep them under 30 minutes.",
}


# =====================================================================
# HELPERS
# =====================================================================

def _chronological(entries: Iterable[JournalEntry]) -> List[JournalEntry]:
    return sorted(entries, key=lambda entry: entry.timestamp)


def _insufficient(key: str, title: str, stats: Optional[dict] = None) -> InsightSection:
    return InsightSection(
        key=key, title=title, message=INSUFFICIENT_DATA, sufficient=False, stats=stats or {}
    )


def rank(values: Iterable[str], n: int = TOP_N) -> List[Tuple[str, int]]:
    """
    Count values and return the n most common, highest count first.
    Equal counts keep the order in which values were first seen.
    """
    counts = Counter(values)
    return sorted(counts.items(), key=lambda item: -item[1])[:n]


def _format_ranking(ranking: Sequence[Tuple[str, int]]) -> str:
    return ", ".join(f"{name} ({count})" for name, count in ranking)


def _day_key(day: date) -> str:
    if isinstance(day, datetime):
        return date_key_for(day)
    return date_key_of_day(day)


# =====================================================================
# 1. FREQUENCY
# =====================================================================

def analyze_frequency(entries: Iterable[JournalEntry]) -> InsightSection:
    """Mean gap between consecutive entries and the total span, in days."""
    ordered = _chronological(entries)
    if len(ordered) < 2:
        return _insufficient("frequency", "Journaling frequency", {"entry_count": len(ordered)})

    intervals = [
        (later.timestamp - earlier.timestamp).total_seconds() / SECONDS_PER_DAY
        for earlier, later in zip(ordered, ordered[1:])
    ]
    mean_interval = sum(intervals) / len(intervals)
    span = (ordered[-1].timestamp - ordered[0].timestamp).total_seconds() / SECONDS_PER_DAY

    return InsightSection(
        key="frequency",
        title="Journaling frequency",
        message=(
            f"You wrote {len(ordered)} entries over {span:.1f} days, "
            f"about one every {mean_interval:.1f} days."
        ),
        sufficient=True,
        stats={
            "entry_count": len(ordered),
            "mean_interval_days": round(mean_interval, 2),
            "span_days": round(span, 2),
        },
    )


# =====================================================================
# 2. EMOTION / TOPIC HISTOGRAM
# =====================================================================

def emotion_histogram(entries: Iterable[JournalEntry], n: int = TOP_N) -> List[Tuple[str, int]]:
    return rank(
        (emotion.name for entry in _chronological(entries) for emotion in entry.emotions), n
    )


def topic_histogram(entries: Iterable[JournalEntry], n: int = TOP_N) -> List[Tuple[str, int]]:
    return rank((topic for entry in _chronological(entries) for topic in entry.topics), n)


def analyze_histograms(entries: Iterable[JournalEntry]) -> InsightSection:
    entries = list(entries)
    emotions = emotion_histogram(entries)
    topics = topic_histogram(entries)
    if not emotions and not topics:
        return _insufficient("histogram", "Common emotions and topics")

    lines = [
        f"Most frequent emotions: {_format_ranking(emotions)}." if emotions
        else "No emotions recorded yet.",
        f"Most frequent topics: {_format_ranking(topics)}." if topics
        else "No topics recorded yet.",
    ]
    return InsightSection(
        key="histogram",
        title="Common emotions and topics",
        message=" ".join(lines),
        sufficient=True,
        stats={
            "top_emotions": [{"name": name, "count": count} for name, count in emotions],
            "top_topics": [{"name": name, "count": count} for name, count in topics],
        },
    )


# =====================================================================
# 3. ACTION TYPE RATIO
# =====================================================================

def analyze_action_ratio(entries: Iterable[JournalEntry]) -> InsightSection:
    """Which of rest / quick start the user picks more often."""
    entries = list(entries)
    if not entries:
        return _insufficient("action_ratio", "Rest or quick start")

    rest = sum(1 for entry in entries if entry.action_type is ActionType.rest)
    quick_start = len(entries) - rest
    stats = {"rest": rest, "quick_start": quick_start}

    if rest == quick_start:
        stats.update(majority=None, majority_percent=50.0)
        message = "You chose rest and quick start equally often."
    else:
        majority = ActionType.rest if rest > quick_start else ActionType.quick_start
        percent = max(rest, quick_start) / len(entries) * 100
        stats.update(majority=majority.value, majority_percent=round(percent, 1))
        if majority is ActionType.rest:
            message = f"You chose to rest {percent:.0f}% of the time."
        else:
            message = f"You jumped straight back in with a quick start {percent:.0f}% of the time."

    return InsightSection(
        key="action_ratio", title="Rest or quick start", message=message, sufficient=True, stats=stats
    )


# =====================================================================
# 4. STEPS vs. SLEEP
# =====================================================================

def analyze_step_sleep(
    entries: Iterable[JournalEntry],
    step_totals: Optional[Mapping[date, float]],
    threshold: float = STEP_THRESHOLD,
) -> InsightSection:
    """
    On days with at least `threshold` steps, how often the day's latest
    entry reported enough sleep. Days without an entry count as well rested.
    """
    title = "Activity and sleep"
    entries = list(entries)
    if not entries:
        return _insufficient("step_sleep", title)
    if not step_totals:
        return InsightSection(
            key="step_sleep", title=title, message=STEP_DATA_UNAVAILABLE, sufficient=False
        )

    latest = latest_by_date(entries)
    qualifying = sorted(_day_key(day) for day, steps in step_totals.items() if steps >= threshold)
    if not qualifying:
        return _insufficient("step_sleep", title, {"qualifying_days": 0})

    deprived = [
        key for key in qualifying
        if key in latest and latest[key].sleep_deprived is SleepStatus.yes
    ]
    well_rested = len(qualifying) - len(deprived)
    percent = well_rested / len(qualifying) * 100

    if percent >= WELL_RESTED_HIGH:
        tier = "high"
        message = (
            f"On {len(qualifying)} active days ({threshold:,.0f}+ steps) you were well rested "
            f"{percent:.0f}% of the time. Moving and sleeping well seem to go together for you."
        )
    elif percent >= WELL_RESTED_LOW:
        tier = "mixed"
        message = (
            f"On {len(qualifying)} active days ({threshold:,.0f}+ steps) you were well rested "
            f"{percent:.0f}% of the time. Some active days still came on short sleep."
        )
    else:
        tier = "low"
        message = (
            f"On {len(qualifying)} active days ({threshold:,.0f}+ steps) you were well rested only "
            f"{percent:.0f}% of the time. You may be pushing through on too little sleep."
        )

    return InsightSection(
        key="step_sleep",
        title=title,
        message=message,
        sufficient=True,
        stats={
            "qualifying_days": len(qualifying),
            "well_rested_days": well_rested,
            "sleep_deprived_days": len(deprived),
            "well_rested_percent": round(percent, 1),
            "tier": tier,
        },
    )


# =====================================================================
# 5. EMOTIONS ON SHORT SLEEP
# =====================================================================

def analyze_sleep_deprived_emotions(entries: Iterable[JournalEntry]) -> InsightSection:
    deprived = [entry for entry in entries if entry.sleep_deprived is SleepStatus.yes]
    ranking = emotion_histogram(deprived)
    if not ranking:
        return _insufficient(
            "sleep_deprived_emotions", "Emotions on short sleep", {"sleep_deprived_entries": len(deprived)}
        )

    return InsightSection(
        key="sleep_deprived_emotions",
        title="Emotions on short sleep",
        message=f"When you were short on sleep you most often felt: {_format_ranking(ranking)}.",
        sufficient=True,
        stats={
            "sleep_deprived_entries": len(deprived),
            "top_emotions": [{"name": name, "count": count} for name, count in ranking],
        },
    )


# =====================================================================
# 6. REST ACTIVITY + RECOVERY ADVICE
# =====================================================================

def classify_rest_activity(text: str) -> Optional[str]:
    """Coarse bucket for a free-text rest activity, by case-insensitive substring."""
    lowered = text.lower()
    for bucket, keywords in REST_BUCKETS:
        if any(keyword in lowered for keyword in keywords):
            return bucket
    return None


def top_rest_bucket(entries: Iterable[JournalEntry]) -> Optional[str]:
    counts: Dict[str, int] = Counter(
        bucket for bucket in (classify_rest_activity(entry.rest_activity) for entry in entries) if bucket
    )
    if not counts:
        return None
    best = max(counts.values())
    for bucket, _ in REST_BUCKETS:
        if counts.get(bucket) == best:
            return bucket
    return None


def analyze_advice(
    entries: Iterable[JournalEntry],
    full_charges: Iterable[FullChargeEntry],
) -> InsightSection:
    """Pick an advice template from the sleep and recovery ratios."""
    entries = list(entries)
    full_charges = list(full_charges)
    if not entries:
        return _insufficient("advice", "Advice", {"full_charge_count": len(full_charges)})

    total = len(entries)
    sleep_ratio = sum(1 for entry in entries if entry.sleep_deprived is SleepStatus.yes) / total
    recovery_ratio = len(full_charges) / total
    bucket = top_rest_bucket(entries)

    if sleep_ratio >= SLEEP_FIRST_RATIO:
        template = "sleep_first"
        message = (
            f"{sleep_ratio * 100:.0f}% of your entries came on short sleep. "
            "Protecting tonight's sleep may help more than anything else."
        )
    elif recovery_ratio < RECOVERY_LOW_RATIO:
        template = "close_the_loop"
        message = (
            f"You marked {len(full_charges)} full recoveries for {total} entries. "
            "When a rest works, mark it as a full charge so you can see what helps."
        )
    else:
        template = "keep_going"
        message = (
            f"You marked {len(full_charges)} full recoveries for {total} entries. "
            "You are bouncing back well; keep doing what works."
        )

    if bucket:
        message += f" Your most common way to rest is {REST_BUCKET_LABELS[bucket]}. {REST_BUCKET_TIPS[bucket]}"

    return InsightSection(
        key="advice",
        title="Advice",
        message=message,
        sufficient=True,
        stats={
            "template": template,
            "sleep_deprived_ratio": round(sleep_ratio, 3),
            "recovery_ratio": round(recovery_ratio, 3),
            "top_rest_activity": bucket,
        },
    )


# =====================================================================
# REPORT
# =====================================================================

class InsightAnalyzer:
    """Runs every section over the same window; holds no state between calls."""

    def generate_report(
        self,
        entries: Iterable[JournalEntry],
        full_charges: Iterable[FullChargeEntry] = (),
        step_totals: Optional[Mapping[date, float]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> InsightReport:
        """
        Args:
            entries: Journal entries in the window
            full_charges: Recovery check-ins in the window
            step_totals: Steps per day, or None when the step source is unavailable
        """
        entries = list(entries)
        full_charges = list(full_charges)

        return InsightReport(
            start=start,
            end=end,
            entry_count=len(entries),
            full_charge_count=len(full_charges),
            sections=[
                analyze_frequency(entries),
                analyze_histograms(entries),
                analyze_action_ratio(entries),
                analyze_step_sleep(entries, step_totals),
                analyze_sleep_deprived_emotions(entries),
                analyze_advice(entries, full_charges),
            ],
        )
