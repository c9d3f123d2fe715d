"""
Insight rules.

Each rule looks at the partitioned events and returns zero or more insight
strings. `RULES` is evaluated in order and that order is the priority of
the output, so new analyses are added by appending a rule here; the
service and the persistence code do not change.

All date bucketing goes through `RunContext.local_date` so every rule uses
the same "now" and the same timezone as the fetch that produced the data.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from math import ceil
from typing import Callable, Dict, List, Optional, Sequence, Set

from models import ActivityLog, MoodLog, SleepLog
from partition import EventBuckets
from stats import fmt, frequency_pct, mean, mood_name_to_score, pearson_correlation


DAY = timedelta(days=1)

FALLBACK_KEEP_LOGGING = "Continue logging consistently to unlock personalized insights!"
FALLBACK_MORE_DATA = (
    "More data needed for meaningful analysis. Keep logging your daily activities."
)
MIN_EVENTS_FOR_ANALYSIS = 10


@dataclass(frozen=True)
class RunContext:
    """Everything about one run that is not the events themselves."""

    user_id: str
    as_of: datetime
    window_start: datetime
    tz: tzinfo

    def local_date(self, ts: datetime) -> date:
        return ts.astimezone(self.tz).date()

    @property
    def total_days(self) -> int:
        return ceil((self.as_of - self.window_start) / DAY)


@dataclass(frozen=True)
class InsightRule:
    name: str
    evaluate: Callable[[EventBuckets, RunContext], List[str]]


def _active_days(activity: Sequence[ActivityLog], ctx: RunContext) -> Set[date]:
    return {ctx.local_date(a.created_at) for a in activity}


# --- Rule A: sleep quality vs next-day mood ---------------------------------


def _mood_score(mood: MoodLog) -> float:
    if isinstance(mood.mood, str):
        return mood_name_to_score(mood.mood)
    return mood.mood


def _next_mood(sleep: SleepLog, moods: Sequence[MoodLog]) -> Optional[MoodLog]:
    """First morning mood strictly inside (sleep, sleep + 24h)."""
    end = sleep.created_at + DAY
    for mood in moods:
        if sleep.created_at < mood.created_at < end:
            return mood
    return None


def pair_sleep_with_mood(sleep: Sequence[SleepLog], moods: Sequence[MoodLog]):
    """Return (qualities, mood_scores) for every sleep log with a usable next-day mood."""
    qualities: List[float] = []
    scores: List[float] = []
    for s in sleep:
        mood = _next_mood(s, moods)
        # zero and blank values count as "not logged"
        if mood is None or not s.quality or not mood.mood:
            continue
        qualities.append(s.quality)
        scores.append(_mood_score(mood))
    return qualities, scores


def sleep_mood_rule(buckets: EventBuckets, ctx: RunContext) -> List[str]:
    if len(buckets.sleep) < 5 or len(buckets.mood_am) < 5:
        return []
    qualities, scores = pair_sleep_with_mood(buckets.sleep, buckets.mood_am)
    if len(qualities) < 3:
        return []

    out: List[str] = []
    r = pearson_correlation(qualities, scores)
    avg_quality = mean(qualities)
    if r > 0.3:
        out.append(
            "Strong positive correlation detected: Better sleep quality leads to "
            f"improved next-day mood (correlation: {fmt(r * 100)}%)"
        )
    elif r < -0.3:
        out.append(
            "Negative correlation detected: Higher sleep quality appears linked "
            "to lower mood scores"
        )
    if avg_quality < 3:
        out.append(
            f"Your average sleep quality is {fmt(avg_quality, 1)}/5. "
            "Consider improving your sleep routine."
        )
    return out


# --- Rule B: activity frequency ---------------------------------------------


def activity_frequency_rule(buckets: EventBuckets, ctx: RunContext) -> List[str]:
    if len(buckets.activity) < 3:
        return []
    pct = frequency_pct(len(_active_days(buckets.activity, ctx)), ctx.total_days)
    if pct > 50:
        return [f"Excellent activity consistency! You're active {fmt(pct)}% of days."]
    if pct < 25:
        return [
            f"Low activity frequency detected ({fmt(pct)}% of days). "
            "Consider increasing physical activity."
        ]
    return []


# --- Rule C: hydration volume -----------------------------------------------


def daily_hydration_totals(buckets: EventBuckets, ctx: RunContext) -> Dict[date, float]:
    totals: Dict[date, float] = {}
    for h in buckets.hydration:
        day = ctx.local_date(h.created_at)
        totals[day] = totals.get(day, 0.0) + (h.quantity_ml or 0.0)
    return totals


def hydration_rule(buckets: EventBuckets, ctx: RunContext) -> List[str]:
    if len(buckets.hydration) < 5:
        return []
    avg_ml = mean(list(daily_hydration_totals(buckets, ctx).values()))
    if avg_ml < 1500:
        return [
            f"Low hydration detected: Average {fmt(avg_ml)}ml/day. "
            "Aim for 2000ml+ daily."
        ]
    if avg_ml > 2500:
        return [f"Great hydration habits! You're averaging {fmt(avg_ml)}ml/day."]
    return []


# --- Rule D: pain on active vs rest days ------------------------------------


def split_pain_by_activity(buckets: EventBuckets, ctx: RunContext):
    """Return (pain on active days, pain on rest days)."""
    active_days = _active_days(buckets.activity, ctx)
    on_active: List[float] = []
    on_rest: List[float] = []
    for s in buckets.somatic_am:
        pain = s.pain or 0.0
        if ctx.local_date(s.created_at) in active_days:
            on_active.append(pain)
        else:
            on_rest.append(pain)
    return on_active, on_rest


def pain_activity_rule(buckets: EventBuckets, ctx: RunContext) -> List[str]:
    if len(buckets.somatic_am) < 5 or len(buckets.activity) < 3:
        return []
    on_active, on_rest = split_pain_by_activity(buckets, ctx)
    if len(on_active) < 2 or len(on_rest) < 2:
        return []

    avg_active = mean(on_active)
    avg_rest = mean(on_rest)
    if avg_active < avg_rest - 1:
        return [
            "Activity appears to reduce pain levels. "
            f"Pain on active days: {fmt(avg_active, 1)}/10 vs rest days: {fmt(avg_rest, 1)}/10"
        ]
    if avg_active > avg_rest + 1:
        return [
            "Higher pain levels on active days detected. "
            "Consider adjusting activity intensity."
        ]
    return []


RULES: List[InsightRule] = [
    InsightRule("sleep_mood", sleep_mood_rule),
    InsightRule("activity_frequency", activity_frequency_rule),
    InsightRule("hydration", hydration_rule),
    InsightRule("pain_activity", pain_activity_rule),
]


def fallback_insights(total_events: int) -> List[str]:
    out = [FALLBACK_KEEP_LOGGING]
    if total_events < MIN_EVENTS_FOR_ANALYSIS:
        out.append(FALLBACK_MORE_DATA)
    return out
