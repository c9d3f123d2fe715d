"""
Event partitioner.

Splits the fetched, time-ordered events into per-type buckets and decodes
each payload into its typed log model. Decoding happens here, once, so the
rules work with `SleepLog.quality` and friends instead of digging through
raw dicts.

Events whose type no rule reads are left out of the buckets but still
counted in `total`.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Type

from models import (
    ACTIVITY_LOG,
    DAILY_REFLECTION,
    HYDRATION_LOG,
    KNOWN_EVENT_TYPES,
    MOOD_LOG_AM,
    SLEEP_LOG,
    SOMATIC_LOG_AM,
    ActivityLog,
    Event,
    HydrationLog,
    MoodLog,
    ReflectionLog,
    SleepLog,
    SomaticLog,
    TypedLog,
)

logger = logging.getLogger(__name__)


@dataclass
class EventBuckets:
    sleep: List[SleepLog] = field(default_factory=list)
    mood_am: List[MoodLog] = field(default_factory=list)
    activity: List[ActivityLog] = field(default_factory=list)
    hydration: List[HydrationLog] = field(default_factory=list)
    somatic_am: List[SomaticLog] = field(default_factory=list)
    reflection: List[ReflectionLog] = field(default_factory=list)
    total: int = 0


# event_type -> (bucket attribute, payload model)
BUCKETS: Dict[str, tuple[str, Type[TypedLog]]] = {
    SLEEP_LOG: ("sleep", SleepLog),
    MOOD_LOG_AM: ("mood_am", MoodLog),
    ACTIVITY_LOG: ("activity", ActivityLog),
    HYDRATION_LOG: ("hydration", HydrationLog),
    SOMATIC_LOG_AM: ("somatic_am", SomaticLog),
    DAILY_REFLECTION: ("reflection", ReflectionLog),
}


def decode(event: Event) -> TypedLog:
    """Decode one event's payload into the model for its type.

    Raises KeyError for a type without a bucket.
    """

    _, model = BUCKETS[event.event_type]
    # created_at always comes from the row, never from the payload
    return model.model_validate({**event.payload, "created_at": event.created_at})


def partition_events(events: Iterable[Event]) -> EventBuckets:
    buckets = EventBuckets()
    for event in events:
        buckets.total += 1
        target = BUCKETS.get(event.event_type)
        if target is None:
            if event.event_type not in KNOWN_EVENT_TYPES:
                logger.debug("skipping event %s of unknown type %r", event.id, event.event_type)
            continue
        getattr(buckets, target[0]).append(decode(event))
    return buckets
