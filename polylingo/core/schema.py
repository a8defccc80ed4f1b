"""
Database Schema Management Module

This module handles database initialization, schema validation, and migrations.
For CRUD operations, see core/database.py
"""

import sqlite3

# Import database module to use DB_FILE and get_connection dynamically
# This ensures monkeypatching in tests works correctly
import polylingo.core.database as db

DB_VERSION = 2  # Increment when schema changes (external_id column added in v2)


def get_connection():
    """Get a database connection using the database module's DB_FILE."""
    return db.get_connection()


def get_db_version() -> int:
    """Get current database version."""
    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT version FROM db_version LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else 0
    except sqlite3.OperationalError:
        return 0


def set_db_version(version: int):
    """Set database version."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS db_version (version INTEGER)")
        cursor.execute("DELETE FROM db_version")
        cursor.execute("INSERT INTO db_version (version) VALUES (?)", (version,))
        conn.commit()


def table_exists(name: str) -> bool:
    """Check whether a table exists (reading config can create an empty database file)."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,))
        return cursor.fetchone() is not None


def initialize_database():
    """Initializes the database and creates the tables."""
    from polylingo.logger import get_logger
    logger = get_logger(__name__)

    if db.DB_FILE.exists() and table_exists("translation_jobs"):
        current_version = get_db_version()
        if current_version < DB_VERSION:
            migrate_database(current_version, DB_VERSION)
        elif current_version == DB_VERSION:
            # Verify that all required columns exist even if version matches
            try:
                ensure_all_schemas()
            except Exception as e:
                logger.warning(f"Failed to verify database schema: {e}")
        return

    with get_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS translation_jobs (
            id TEXT PRIMARY KEY,
            content_id INTEGER NOT NULL,
            content_title TEXT NOT NULL DEFAULT '',
            source_language TEXT NOT NULL,
            target_language TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING',
            progress INTEGER NOT NULL DEFAULT 0,
            tokens_used INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            translated_title TEXT,
            translated_content TEXT,
            external_id INTEGER,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS job_logs (
            id TEXT PRIMARY KEY,
            job_id TEXT NOT NULL,
            level TEXT NOT NULL,
            message TEXT NOT NULL,
            metadata TEXT,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (job_id) REFERENCES translation_jobs(id) ON DELETE CASCADE
        )
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS app_config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """)

        conn.commit()

    ensure_database_indexes()
    set_db_version(DB_VERSION)


# ============================================================
# Database Schema Validation
# ============================================================

def ensure_jobs_schema():
    """
    Ensure translation_jobs table has all required columns.
    This function should be called during database initialization/migration.
    """
    from polylingo.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("PRAGMA table_info(translation_jobs)")
            existing_cols = {row[1] for row in cursor.fetchall()}

            if "external_id" not in existing_cols:
                logger.info("Adding external_id column to translation_jobs table")
                cursor.execute("ALTER TABLE translation_jobs ADD COLUMN external_id INTEGER")

            conn.commit()
    except Exception as e:
        logger.error(f"Failed to ensure translation_jobs schema: {e}")
        raise


def ensure_database_indexes():
    """
    Ensure all performance-critical indexes exist.
    This function should be called during database initialization/migration.
    """
    from polylingo.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()

            # Startup recovery and the jobs list filter on status
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_translation_jobs_status
                ON translation_jobs(status, created_at)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_job_logs_job_id
                ON job_logs(job_id, created_at)
            """)

            conn.commit()
            logger.debug("Database indexes created/verified successfully")

    except Exception as e:
        logger.error(f"Failed to ensure database indexes: {e}")
        raise


def ensure_all_schemas():
    """
    Ensure all tables have all required columns and indexes.
    """
    ensure_jobs_schema()
    ensure_database_indexes()


# ============================================================
# Database Migration
# ============================================================

def migrate_database(from_version: int, to_version: int):
    """
    Migrate database from one version to another.

    Every migration so far only adds columns, so ensuring schema integrity
    covers any version mismatch.
    """
    from polylingo.logger import get_logger
    logger = get_logger(__name__)

    logger.info(f"Migrating database from version {from_version} to {to_version}")

    ensure_all_schemas()
    set_db_version(to_version)
    logger.info(f"Database migration completed: now at version {to_version}")
