"""Shared test fixtures.

- `ctx`: a `RunContext` pinned to `AS_OF` in UTC
- `event_repo` / `insight_repo`: in-memory repositories
- `service`: an `InsightsService` wired to the fakes with a fixed clock
"""

from datetime import timedelta, timezone

import pytest

from rules import RunContext
from service_insights import InsightsService
from tests.factories import AS_OF, USER, FakeEventRepo, FakeInsightRepo


@pytest.fixture
def ctx() -> RunContext:
    return RunContext(
        user_id=USER,
        as_of=AS_OF,
        window_start=AS_OF - timedelta(days=30),
        tz=timezone.utc,
    )


@pytest.fixture
def event_repo() -> FakeEventRepo:
    return FakeEventRepo()


@pytest.fixture
def insight_repo() -> FakeInsightRepo:
    return FakeInsightRepo()


@pytest.fixture
def service(event_repo, insight_repo) -> InsightsService:
    return InsightsService(
        event_repo,
        insight_repo,
        clock=lambda: AS_OF,
        window_days=30,
        tz=timezone.utc,
        strict_persist=False,
    )
