from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import List
from datetime import datetime, timedelta, timezone
import logging
import random

from errors import EventFetchError, InsightPersistError, InvalidRequestError
from models import (
    ACTIVITY_LOG,
    HYDRATION_LOG,
    MOOD_LOG_AM,
    SLEEP_LOG,
    SOMATIC_LOG_AM,
    EventIn,
    Insight,
    InsightsRequest,
    InsightsResponse,
)
from repo_events import EventRepo
from repo_insights import InsightRepo
from service_insights import InsightsService
from settings import settings
from stats import MOOD_SCORES

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Habit Insights Backend")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# Routes take the service through `get_service` so tests can swap in
# in-memory repositories with `app.dependency_overrides`.
repo = EventRepo()
svc = InsightsService(repo, InsightRepo())


def get_service() -> InsightsService:
    return svc


def get_event_repo() -> EventRepo:
    return repo


# Starlette's class also covers its own 404/405 responses.
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {exc.errors()}"})


@app.get("/health")
def health(service: InsightsService = Depends(get_service)):
    try:
        service.health_check()
        return {"ok": True}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


@app.post("/insights", response_model=InsightsResponse)
def run_insights(body: InsightsRequest, service: InsightsService = Depends(get_service)):
    try:
        result = service.run(body.user_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EventFetchError as e:
        logger.error("Error in insights engine: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    except InsightPersistError as e:
        logger.error("Error in insights engine: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return InsightsResponse(
        insights=result.insights,
        events_analyzed=result.events_analyzed,
        persisted=result.persisted,
    )


@app.get("/insights/{user_id}", response_model=List[Insight])
def stored_insights(user_id: str, service: InsightsService = Depends(get_service)):
    try:
        return service.stored(user_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Reading insights failed: {e}")


def demo_events(user_id: str, days: int, now: datetime, rng: random.Random) -> List[EventIn]:
    """A plausible month of wellness logs: a morning check-in every day,
    activity on some days, a few drinks of water spread over the day."""

    events: List[EventIn] = []
    moods = list(MOOD_SCORES)
    for d in range(days, 0, -1):
        morning = (now - timedelta(days=d)).replace(hour=7, minute=30, second=0, microsecond=0)
        quality = rng.randint(1, 5)
        active = rng.random() < 0.4

        events.append(EventIn(user_id=user_id, created_at=morning, event_type=SLEEP_LOG,
                              payload={"quality": quality, "hours": rng.choice([5, 6, 7, 8, 9])}))
        # better nights tend to give better mornings
        mood = moods[min(len(moods) - 1, max(0, quality + rng.randint(-1, 2)))]
        events.append(EventIn(user_id=user_id, created_at=morning + timedelta(minutes=5),
                              event_type=MOOD_LOG_AM, payload={"mood": mood}))
        events.append(EventIn(user_id=user_id, created_at=morning + timedelta(minutes=6),
                              event_type=SOMATIC_LOG_AM,
                              payload={"pain": rng.randint(0, 4) if active else rng.randint(2, 7)}))
        if active:
            events.append(EventIn(user_id=user_id, created_at=morning + timedelta(hours=10),
                                  event_type=ACTIVITY_LOG,
                                  payload={"type": rng.choice(["walk", "run", "gym", "yoga"]),
                                           "duration_min": rng.choice([20, 30, 45, 60])}))
        for h in (9, 13, 17):
            events.append(EventIn(user_id=user_id, created_at=morning + timedelta(hours=h - 7),
                                  event_type=HYDRATION_LOG,
                                  payload={"beverage": "water",
                                           "quantity_ml": rng.choice([250, 330, 500, 750])}))
    return events


@app.post("/seed")
def seed(user_id: str = settings.default_user, days: int = 30, seed: int | None = None,
         events_repo: EventRepo = Depends(get_event_repo)):
    days = max(1, min(days, settings.window_days))
    now = datetime.now(timezone.utc)
    events = demo_events(user_id, days, now, random.Random(seed))
    try:
        inserted = events_repo.insert_events(events)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Insert failed: {e}")
    return {"inserted": inserted}
