"""
SQL schema for the garment and try-on session tables.
Run these queries in your Supabase SQL editor.
"""

ENABLE_EXTENSIONS = """
-- pgvector stores the 768-dimension description embeddings
CREATE EXTENSION IF NOT EXISTS vector;
"""

CREATE_GARMENTS_TABLE = """
-- Garments table
CREATE TABLE IF NOT EXISTS garments (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    original_url TEXT NOT NULL,
    category VARCHAR(100) NOT NULL DEFAULT 'clothing',
    hash VARCHAR(128),
    metadata JSONB,
    embedding VECTOR(768),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    deleted_at TIMESTAMPTZ,
    CONSTRAINT garments_enriched_together CHECK ((metadata IS NULL) = (embedding IS NULL))
);

-- Owner scoped lookups and hash based deduplication
CREATE INDEX IF NOT EXISTS idx_garments_user_id ON garments(user_id);
CREATE INDEX IF NOT EXISTS idx_garments_user_hash ON garments(user_id, hash) WHERE deleted_at IS NULL;

-- Reconciliation scan: live rows still waiting for metadata
CREATE INDEX IF NOT EXISTS idx_garments_unprocessed ON garments(created_at)
    WHERE metadata IS NULL AND deleted_at IS NULL;

ALTER TABLE garments ENABLE ROW LEVEL SECURITY;

-- Policy: Users can read their own garments
CREATE POLICY garments_select_own ON garments
    FOR SELECT
    USING (auth.uid()::text = user_id::text AND deleted_at IS NULL);

-- Policy: Service role can do everything (for API and workers)
CREATE POLICY garments_service_role_all ON garments
    FOR ALL
    USING (auth.role() = 'service_role');
"""

CREATE_TRY_ON_SESSIONS_TABLE = """
-- Try-on sessions table
CREATE TABLE IF NOT EXISTS try_on_sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    mannequin_url TEXT NOT NULL,
    stance VARCHAR(20) NOT NULL DEFAULT 'female',
    result_url TEXT,
    metadata JSONB,
    embedding VECTOR(768),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    deleted_at TIMESTAMPTZ,
    CONSTRAINT sessions_enriched_together CHECK ((metadata IS NULL) = (embedding IS NULL)),
    CONSTRAINT sessions_enriched_after_result CHECK (metadata IS NULL OR result_url IS NOT NULL)
);

CREATE INDEX IF NOT EXISTS idx_try_on_sessions_user_id ON try_on_sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_try_on_sessions_unprocessed ON try_on_sessions(created_at)
    WHERE metadata IS NULL AND deleted_at IS NULL AND result_url IS NOT NULL;

ALTER TABLE try_on_sessions ENABLE ROW LEVEL SECURITY;

CREATE POLICY try_on_sessions_select_own ON try_on_sessions
    FOR SELECT
    USING (auth.uid()::text = user_id::text AND deleted_at IS NULL);

CREATE POLICY try_on_sessions_service_role_all ON try_on_sessions
    FOR ALL
    USING (auth.role() = 'service_role');
"""

CREATE_SESSION_GARMENTS_TABLE = """
-- Ordered garments of a session; garments are shared, never cascaded from sessions
CREATE TABLE IF NOT EXISTS session_garments (
    session_id UUID NOT NULL REFERENCES try_on_sessions(id) ON DELETE CASCADE,
    garment_id UUID NOT NULL REFERENCES garments(id) ON DELETE RESTRICT,
    position INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (session_id, garment_id)
);

CREATE INDEX IF NOT EXISTS idx_session_garments_garment_id ON session_garments(garment_id);

ALTER TABLE session_garments ENABLE ROW LEVEL SECURITY;

CREATE POLICY session_garments_service_role_all ON session_garments
    FOR ALL
    USING (auth.role() = 'service_role');
"""

PREVENT_RESULT_RESET_TRIGGER = """
-- result_url may be set once and never cleared
CREATE OR REPLACE FUNCTION prevent_result_url_reset()
RETURNS TRIGGER AS $$
BEGIN
    IF OLD.result_url IS NOT NULL AND NEW.result_url IS NULL THEN
        RAISE EXCEPTION 'result_url of try-on session % cannot be cleared', OLD.id;
    END IF;
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS keep_try_on_result ON try_on_sessions;
CREATE TRIGGER keep_try_on_result
    BEFORE UPDATE ON try_on_sessions
    FOR EACH ROW
    EXECUTE FUNCTION prevent_result_url_reset();
"""

# Combined setup script
FULL_SCHEMA_SETUP = f"""
-- =====================================================
-- Prendas Try-On Schema Setup
-- =====================================================
-- Run this in your Supabase SQL Editor
-- =====================================================

{ENABLE_EXTENSIONS}

{CREATE_GARMENTS_TABLE}

{CREATE_TRY_ON_SESSIONS_TABLE}

{CREATE_SESSION_GARMENTS_TABLE}

{PREVENT_RESULT_RESET_TRIGGER}

-- =====================================================
-- Setup Complete!
-- =====================================================
"""

if __name__ == "__main__":
    print(FULL_SCHEMA_SETUP)
