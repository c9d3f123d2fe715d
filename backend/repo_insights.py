"""
Repository: SQL operations for `user_insights`.

A user only ever has the insights of their latest run. `replace_for_user`
deletes the old rows and inserts the new ones on one connection, inside
one transaction: if the insert fails the delete is rolled back and the
previous set stays in place.
"""

from typing import List
from db import get_conn
from models import Insight


class InsightRepo:
    """DB access only. No business logic here."""

    def replace_for_user(self, user_id: str, insights: List[Insight]) -> int:
        rows = [
            (i.user_id, i.insight_text, i.generated_at, i.priority) for i in insights
        ]
        with get_conn() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM user_insights WHERE user_id=%s", (user_id,))
                    if rows:
                        cur.executemany(
                            "INSERT INTO user_insights "
                            "(user_id, insight_text, generated_at, priority) "
                            "VALUES (%s, %s, %s, %s)",
                            rows,
                        )
        return len(rows)

    def list_for_user(self, user_id: str) -> List[Insight]:
        """Stored insights for `user_id`, highest priority (1) first."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT user_id, insight_text, generated_at, priority "
                    "FROM user_insights WHERE user_id=%s ORDER BY priority ASC",
                    (user_id,),
                )
                return [Insight(**r) for r in cur.fetchall()]
