"""Database schema definitions for phaser.

Contains the SQL schema and version tracking for migrations.
SQLite is the single source of truth for certification state.
"""

from __future__ import annotations

# Current schema version - increment when adding migrations
CURRENT_VERSION = 2

# Initial schema creation SQL (version 1)
SCHEMA_V1 = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Certifications
CREATE TABLE IF NOT EXISTS certifications (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    phase TEXT,
    next_phase_transition TEXT,
    use_rolling_phases INTEGER NOT NULL DEFAULT 0,
    signed INTEGER NOT NULL DEFAULT 0,
    phase_configs TEXT NOT NULL DEFAULT '[]'
);

CREATE INDEX IF NOT EXISTS idx_certifications_next_transition
    ON certifications(next_phase_transition);

-- Certification items
CREATE TABLE IF NOT EXISTS certification_items (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    entity_id TEXT,
    phase TEXT,
    next_phase_transition TEXT,
    needs_refresh INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (owner_id) REFERENCES certifications(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_items_next_transition
    ON certification_items(next_phase_transition);
CREATE INDEX IF NOT EXISTS idx_items_owner ON certification_items(owner_id);
CREATE INDEX IF NOT EXISTS idx_items_entity ON certification_items(owner_id, entity_id);
"""

# Migration v2: Named per-certification locks
SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS certification_locks (
    certification_id TEXT PRIMARY KEY,
    owner TEXT NOT NULL,
    acquired_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_locks_expires ON certification_locks(expires_at);
"""

# All migrations in order
MIGRATIONS: dict[int, str] = {
    1: SCHEMA_V1,
    2: SCHEMA_V2,
}


def get_migration_sql(version: int) -> str | None:
    """Get SQL for a specific migration version.

    Args:
        version: Migration version number

    Returns:
        SQL string or None if version doesn't exist
    """
    return MIGRATIONS.get(version)


def get_pending_versions(current: int) -> list[int]:
    """Get list of migration versions that need to be applied.

    Args:
        current: Current schema version in database

    Returns:
        List of version numbers to apply, in order
    """
    return [v for v in sorted(MIGRATIONS.keys()) if v > current]
