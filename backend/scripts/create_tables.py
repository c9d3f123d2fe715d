from settings import settings
import psycopg

DDL = '''
CREATE TABLE IF NOT EXISTS daily_events (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    event_type TEXT NOT NULL,
    payload JSONB NOT NULL DEFAULT '{}'::jsonb
);

CREATE INDEX IF NOT EXISTS idx_daily_events_user_created
    ON daily_events (user_id, created_at, id);

CREATE TABLE IF NOT EXISTS user_insights (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    insight_text TEXT NOT NULL,
    generated_at TIMESTAMP WITH TIME ZONE NOT NULL,
    priority INT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_user_insights_user_priority
    ON user_insights (user_id, priority);
'''

print('Connecting to', settings.db_url)
with psycopg.connect(settings.db_url, connect_timeout=5) as conn:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
print('DDL applied')
