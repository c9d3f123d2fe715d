"""
Database connection helper.

Both repositories (`repo_events`, `repo_insights`) open connections through
`get_conn()`. Rows come back as dicts (`dict_row`) so repository code maps
columns by name instead of position.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")

Note: `with get_conn() as conn` commits on a clean exit and rolls back if
the block raises. `repo_insights` relies on that to make its
delete+insert a single transaction.
"""

import psycopg
from psycopg.rows import dict_row
from settings import settings


def get_conn():
    """Return a new psycopg connection using `settings.db_url`.

    A short `connect_timeout` keeps an insights request from hanging
    when the database is unreachable.
    """

    return psycopg.connect(settings.db_url, connect_timeout=5, row_factory=dict_row)
