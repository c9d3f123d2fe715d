"""
Pydantic models used across the backend.

Three groups live here:
- `Event` / `EventIn`: rows of `daily_events` as read by the fetcher and as
  written by the demo seeder.
- Typed payloads (`SleepLog`, `MoodLog`, ...): what the partitioner decodes
  each event's open `payload` map into. Fields the rules read are coerced
  leniently: a value that is missing or cannot be read as a number becomes
  `None` instead of raising, so one malformed row never fails a run.
- `Insight` plus the request/response shapes of the HTTP layer.
"""

import math

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from typing import Annotated, Any, Dict, List, Optional, Union
from datetime import datetime


SLEEP_LOG = "SLEEP_LOG"
MOOD_LOG_AM = "MOOD_LOG_AM"
ACTIVITY_LOG = "ACTIVITY_LOG"
HYDRATION_LOG = "HYDRATION_LOG"
SOMATIC_LOG_AM = "SOMATIC_LOG_AM"
DAILY_REFLECTION = "DAILY_REFLECTION"

# Written by other parts of the app; not read by any insight rule yet.
OTHER_EVENT_TYPES = {
    "MOOD_LOG",
    "NUTRITION_LOG",
    "PAIN_LOG",
    "SUPPLEMENT_LOG",
    "WORK_LOG",
    "ROUTINE_COMPLETION",
}

KNOWN_EVENT_TYPES = {
    SLEEP_LOG,
    MOOD_LOG_AM,
    ACTIVITY_LOG,
    HYDRATION_LOG,
    SOMATIC_LOG_AM,
    DAILY_REFLECTION,
} | OTHER_EVENT_TYPES


def _finite(x: float) -> Optional[float]:
    # "NaN", "Infinity" and "1e999" parse as floats but are not readings
    return x if math.isfinite(x) else None


def _number_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        return _finite(float(value.strip() if isinstance(value, str) else value))
    except (ValueError, OverflowError):
        return None


def _mood_value(value: Any) -> Union[float, str, None]:
    # Numbers are scores, strings are mood names resolved later.
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _number_or_none(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


LenientFloat = Annotated[Optional[float], BeforeValidator(_number_or_none)]
LenientText = Annotated[Optional[str], BeforeValidator(_text_or_none)]
MoodValue = Annotated[Union[float, str, None], BeforeValidator(_mood_value)]


class Event(BaseModel):
    """One row of `daily_events` as returned by `EventRepo`.

    Frozen: the pipeline derives values from events and never edits them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    created_at: datetime
    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class EventIn(BaseModel):
    """Input shape for an event written by the demo seeder."""

    user_id: str
    created_at: datetime
    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class TypedLog(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    created_at: datetime


class SleepLog(TypedLog):
    quality: LenientFloat = None


class MoodLog(TypedLog):
    mood: MoodValue = None


class ActivityLog(TypedLog):
    type: LenientText = None
    duration_min: LenientFloat = None


class HydrationLog(TypedLog):
    quantity_ml: LenientFloat = None


class SomaticLog(TypedLog):
    pain: LenientFloat = None


class ReflectionLog(TypedLog):
    final_pain: LenientFloat = None
    final_mood: MoodValue = None
    final_energy: LenientFloat = None


class Insight(BaseModel):
    """One stored row of `user_insights`."""

    user_id: str
    insight_text: str
    generated_at: datetime
    priority: int


class InsightsRequest(BaseModel):
    user_id: Optional[str] = None


class InsightsResponse(BaseModel):
    success: bool = True
    insights: List[str]
    events_analyzed: int
    persisted: bool = True
