"""Database initialization and schema management."""

import logging
from typing import Any, Dict

import psycopg

from .connection import get_connection

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
-- Validated sources, one row per (location, item_pattern)
CREATE TABLE IF NOT EXISTS municipal_sources (
    id SERIAL PRIMARY KEY,
    location TEXT NOT NULL,
    item_pattern TEXT NOT NULL,
    guidance_text TEXT NOT NULL DEFAULT '',
    source_type TEXT CHECK (source_type IN ('jpa', 'gov', 'hauler', 'microsite')),
    source_url TEXT,
    source_phone TEXT,
    source_facility_name TEXT,
    content_hash TEXT,
    http_status INTEGER,
    soft_404_detected BOOLEAN NOT NULL DEFAULT FALSE,
    parked_domain_detected BOOLEAN NOT NULL DEFAULT FALSE,
    last_verified_at TIMESTAMPTZ,
    next_check_date TIMESTAMPTZ,
    verification_error TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (location, item_pattern)
);

-- Append-only audit trail, one row per probe
CREATE TABLE IF NOT EXISTS source_stability_log (
    id SERIAL PRIMARY KEY,
    source_id INTEGER NOT NULL REFERENCES municipal_sources(id),
    url TEXT NOT NULL,
    checked_at TIMESTAMPTZ NOT NULL,
    http_status INTEGER,
    is_valid BOOLEAN NOT NULL,
    soft_404_detected BOOLEAN NOT NULL DEFAULT FALSE,
    parked_domain_detected BOOLEAN NOT NULL DEFAULT FALSE,
    content_hash TEXT,
    content_changed BOOLEAN NOT NULL DEFAULT FALSE,
    error_message TEXT,
    repair_attempted BOOLEAN NOT NULL DEFAULT FALSE,
    repair_successful BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Regulatory deadlines, maintained outside this package
CREATE TABLE IF NOT EXISTS legislative_events (
    id SERIAL PRIMARY KEY,
    region TEXT NOT NULL,
    deadline_date DATE NOT NULL,
    description TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_municipal_sources_location ON municipal_sources(location);
CREATE INDEX IF NOT EXISTS idx_municipal_sources_next_check ON municipal_sources(next_check_date);
CREATE INDEX IF NOT EXISTS idx_stability_log_source_checked
    ON source_stability_log(source_id, checked_at DESC);
CREATE INDEX IF NOT EXISTS idx_legislative_events_region ON legislative_events(lower(region), deadline_date);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_municipal_sources_updated_at ON municipal_sources;
CREATE TRIGGER update_municipal_sources_updated_at BEFORE UPDATE ON municipal_sources
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


async def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        async with get_connection(config) as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                result = await cur.fetchone()
                return result is not None and result["ok"] == 1
    except (psycopg.Error, OSError) as e:
        logger.error("Database connection failed: %s", e)
        return False


async def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        async with get_connection(config) as conn:
            async with conn.cursor() as cur:
                await cur.execute(SCHEMA_SQL)
            await conn.commit()
            logger.info("Database schema initialized successfully")
    except psycopg.DatabaseError as e:
        logger.error("Failed to initialize database schema: %s", e)
        raise
