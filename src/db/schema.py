"""
Database schema for Daily Movie Discovery.
Designed for Supabase (Postgres); the service only talks to it with the
service-role key, so RLS stays enabled with no public policies.

Tables:
- subscriptions: One row per purchase/subscription event, owns the feed token
- users: Denormalized per-email flag, recomputable from subscriptions
- analytics: Append-only feed access / movie selection events
- movie_stats: Per-movie selection counters

Key design decisions:
1. Tokens are opaque and unique; lookups are exact matches
2. Rows are never hard-deleted; cancellation flips status
3. Subscription + user rows change together inside one function call
4. Counters are incremented in SQL, never read-modify-write from Python
"""

SCHEMA_SQL = """
-- Subscriptions
-- expires_at is fixed at creation; renewal is a new row
CREATE TABLE IF NOT EXISTS subscriptions (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    plan_id TEXT NOT NULL CHECK (
        plan_id IN (
            'premium-monthly', 'premium-yearly',
            'ultimate-monthly', 'ultimate-yearly',
            'genre-pack', 'one-time-support'
        )
    ),
    source TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'cancelled')),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    expires_at TIMESTAMPTZ NOT NULL,
    cancelled_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    token TEXT UNIQUE NOT NULL,
    external_ref TEXT,  -- provider's subscription id
    metadata JSONB NOT NULL DEFAULT '{}'::jsonb
);

-- Users
-- Keyed by lower-cased email
CREATE TABLE IF NOT EXISTS users (
    email TEXT PRIMARY KEY,
    has_active_subscription BOOLEAN NOT NULL DEFAULT FALSE,
    latest_subscription_id TEXT REFERENCES subscriptions(id),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- Analytics events
CREATE TABLE IF NOT EXISTS analytics (
    id BIGSERIAL PRIMARY KEY,
    type TEXT NOT NULL,  -- feed_access, movie_selection
    feed_type TEXT NOT NULL,
    tmdb_id TEXT,
    metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Movie selection counters
CREATE TABLE IF NOT EXISTS movie_stats (
    tmdb_id TEXT PRIMARY KEY,
    selection_count INTEGER NOT NULL DEFAULT 0,
    first_selected TIMESTAMPTZ DEFAULT NOW(),
    last_selected TIMESTAMPTZ DEFAULT NOW()
);

ALTER TABLE subscriptions ENABLE ROW LEVEL SECURITY;
ALTER TABLE users ENABLE ROW LEVEL SECURITY;
ALTER TABLE analytics ENABLE ROW LEVEL SECURITY;
ALTER TABLE movie_stats ENABLE ROW LEVEL SECURITY;
"""

INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_subscriptions_email ON subscriptions(email);
CREATE INDEX IF NOT EXISTS idx_subscriptions_status ON subscriptions(status);
CREATE INDEX IF NOT EXISTS idx_subscriptions_external_ref ON subscriptions(source, external_ref);
CREATE INDEX IF NOT EXISTS idx_subscriptions_email_active ON subscriptions(email, expires_at)
    WHERE status = 'active';

CREATE INDEX IF NOT EXISTS idx_analytics_type ON analytics(type, created_at);
CREATE INDEX IF NOT EXISTS idx_movie_stats_count ON movie_stats(selection_count DESC);
"""

FUNCTIONS_SQL = """
-- Write a subscription row and its user row in one transaction.
-- Both arguments are full rows; existing rows are overwritten.
CREATE OR REPLACE FUNCTION record_subscription_change(p_subscription JSONB, p_user JSONB)
RETURNS VOID
LANGUAGE plpgsql
AS $$
BEGIN
    INSERT INTO subscriptions (
        id, email, plan_id, source, status, created_at, expires_at,
        cancelled_at, token, external_ref, metadata, updated_at
    ) VALUES (
        p_subscription->>'id',
        p_subscription->>'email',
        p_subscription->>'plan_id',
        p_subscription->>'source',
        p_subscription->>'status',
        (p_subscription->>'created_at')::timestamptz,
        (p_subscription->>'expires_at')::timestamptz,
        (p_subscription->>'cancelled_at')::timestamptz,
        p_subscription->>'token',
        p_subscription->>'external_ref',
        COALESCE(p_subscription->'metadata', '{}'::jsonb),
        NOW()
    )
    ON CONFLICT (id) DO UPDATE SET
        status = EXCLUDED.status,
        cancelled_at = EXCLUDED.cancelled_at,
        metadata = EXCLUDED.metadata,
        updated_at = NOW();

    INSERT INTO users (email, has_active_subscription, latest_subscription_id, updated_at)
    VALUES (
        p_user->>'email',
        (p_user->>'has_active_subscription')::boolean,
        p_user->>'latest_subscription_id',
        NOW()
    )
    ON CONFLICT (email) DO UPDATE SET
        has_active_subscription = EXCLUDED.has_active_subscription,
        latest_subscription_id = COALESCE(EXCLUDED.latest_subscription_id, users.latest_subscription_id),
        updated_at = NOW();
END;
$$;

-- Atomic selection counter
CREATE OR REPLACE FUNCTION increment_movie_selection(p_tmdb_id TEXT)
RETURNS INTEGER
LANGUAGE sql
AS $$
    INSERT INTO movie_stats (tmdb_id, selection_count)
    VALUES (p_tmdb_id, 1)
    ON CONFLICT (tmdb_id) DO UPDATE SET
        selection_count = movie_stats.selection_count + 1,
        last_selected = NOW()
    RETURNING selection_count;
$$;
"""
