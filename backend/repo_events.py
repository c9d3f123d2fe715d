"""
Repository: SQL operations for `daily_events`.

This file contains only DB interaction code. It converts DB rows into
`Event` models and maps `EventIn` models to SQL parameters. Keep business
rules out of this module.

Important notes:
- `fetch_window` pages with a keyset on `(created_at, id)` so a window
  holding more rows than one page is read completely and in order.
- We convert `payload` using `Jsonb` so Postgres stores native JSONB.
- `insert_events` commits after executing the batch.
"""

from datetime import datetime
from typing import List, Optional
from psycopg.types.json import Jsonb
from db import get_conn
from models import Event, EventIn
from settings import settings


_FIRST_PAGE = (
    "SELECT id, user_id, created_at, event_type, payload FROM daily_events "
    "WHERE user_id=%s AND created_at >= %s "
    "ORDER BY created_at ASC, id ASC LIMIT %s"
)
_NEXT_PAGE = (
    "SELECT id, user_id, created_at, event_type, payload FROM daily_events "
    "WHERE user_id=%s AND created_at >= %s AND (created_at, id) > (%s, %s) "
    "ORDER BY created_at ASC, id ASC LIMIT %s"
)


def _row_to_event(row: dict) -> Event:
    return Event(
        id=str(row["id"]),
        user_id=row["user_id"],
        created_at=row["created_at"],
        event_type=row["event_type"],
        payload=row["payload"] or {},
    )


class EventRepo:
    """DB access only. No business logic here."""

    def __init__(self, page_size: Optional[int] = None):
        self.page_size = page_size or settings.fetch_page_size

    def fetch_window(self, user_id: str, since: datetime) -> List[Event]:
        """Every event of `user_id` with `created_at >= since`, oldest first.

        Pages until a short page comes back. Any database error propagates;
        the caller never sees a partial list.
        """

        out: List[Event] = []
        with get_conn() as conn:
            with conn.cursor() as cur:
                last = None
                while True:
                    if last is None:
                        cur.execute(_FIRST_PAGE, (user_id, since, self.page_size))
                    else:
                        cur.execute(
                            _NEXT_PAGE,
                            (user_id, since, last["created_at"], last["id"], self.page_size),
                        )
                    rows = cur.fetchall()
                    out.extend(_row_to_event(r) for r in rows)
                    if len(rows) < self.page_size:
                        break
                    last = rows[-1]
        return out

    def insert_events(self, events: List[EventIn]) -> int:
        """Batch-insert a list of events. Returns the number of rows written."""

        rows = [
            (e.user_id, e.created_at, e.event_type, Jsonb(e.payload)) for e in events
        ]
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.executemany(
                    "INSERT INTO daily_events (user_id, created_at, event_type, payload) "
                    "VALUES (%s, %s, %s, %s)",
                    rows,
                )
            conn.commit()
        return len(rows)

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
