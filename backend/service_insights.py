"""
Service / facade layer for the insights engine.

One call to `InsightsService.run()` is one pipeline run:

1. validate the user id (before any I/O)
2. capture a single `as_of` instant and fetch the trailing window
3. partition and decode the events
4. evaluate every rule in `rules.RULES` in order, falling back to the
   generic messages when nothing fired
5. number the insights by emission order and replace the stored set

This module is free of SQL; it talks to the repositories only.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from errors import EventFetchError, InsightPersistError, InvalidRequestError
from models import Insight
from partition import EventBuckets, partition_events
from repo_events import EventRepo
from repo_insights import InsightRepo
from rules import RULES, InsightRule, RunContext, fallback_insights
from settings import settings

logger = logging.getLogger(__name__)


@dataclass
class InsightsResult:
    insights: List[str]
    events_analyzed: int
    generated_at: datetime
    persisted: bool = True


def evaluate_rules(
    buckets: EventBuckets, ctx: RunContext, rules: Sequence[InsightRule] = RULES
) -> List[str]:
    """Run every rule in order and concatenate what they emit."""

    out: List[str] = []
    for rule in rules:
        emitted = rule.evaluate(buckets, ctx)
        if emitted:
            logger.debug("rule %s fired %d insight(s) for %s", rule.name, len(emitted), ctx.user_id)
        out.extend(emitted)
    if not out:
        out = fallback_insights(buckets.total)
    return out


def rank(user_id: str, texts: Sequence[str], generated_at: datetime) -> List[Insight]:
    """Priority is emission order, starting at 1."""

    return [
        Insight(user_id=user_id, insight_text=t, generated_at=generated_at, priority=i)
        for i, t in enumerate(texts, start=1)
    ]


class InsightsService:
    """Runs the insights pipeline for one user at a time.

    Example usage:
        svc = InsightsService(EventRepo(), InsightRepo())
        result = svc.run("alice")
    """

    def __init__(
        self,
        events: EventRepo,
        insights: InsightRepo,
        clock: Optional[Callable[[], datetime]] = None,
        window_days: Optional[int] = None,
        tz: Optional[tzinfo] = None,
        strict_persist: Optional[bool] = None,
        rules: Sequence[InsightRule] = RULES,
    ):
        self.events = events
        self.insights = insights
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.window_days = window_days or settings.window_days
        self.tz = tz or ZoneInfo(settings.local_timezone)
        self.strict_persist = (
            settings.strict_persist if strict_persist is None else strict_persist
        )
        self.rules = rules

    def run(self, user_id: Optional[str]) -> InsightsResult:
        """Compute and store the insights of `user_id`.

        Raises:
        - `InvalidRequestError` for a missing or blank user id
        - `EventFetchError` if reading events fails (nothing is computed)
        - `InsightPersistError` if storing fails and `strict_persist` is set
        """

        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidRequestError("user_id is required")

        as_of = self.clock()
        if as_of.tzinfo is None:
            raise ValueError("clock must return a timezone-aware datetime")
        ctx = RunContext(
            user_id=user_id,
            as_of=as_of,
            window_start=as_of - timedelta(days=self.window_days),
            tz=self.tz,
        )

        try:
            events = self.events.fetch_window(user_id, ctx.window_start)
        except Exception as e:
            raise EventFetchError(f"Failed to fetch events: {e}") from e

        logger.info("Analyzing %d events for user %s", len(events), user_id)

        buckets = partition_events(events)
        texts = evaluate_rules(buckets, ctx, self.rules)
        result = InsightsResult(
            insights=texts, events_analyzed=buckets.total, generated_at=as_of
        )

        try:
            self.insights.replace_for_user(user_id, rank(user_id, texts, as_of))
        except Exception as e:
            if self.strict_persist:
                raise InsightPersistError(f"Failed to store insights: {e}") from e
            logger.exception("Error storing insights for user %s", user_id)
            result.persisted = False

        return result

    def stored(self, user_id: str) -> List[Insight]:
        if not user_id.strip():
            raise InvalidRequestError("user_id is required")
        return self.insights.list_for_user(user_id)

    def health_check(self) -> None:
        self.events.ping()
