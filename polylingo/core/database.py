"""
Database CRUD Operations Module

This module handles all database CRUD operations for:
- Translation jobs
- Job logs
- App Config

For schema management and migrations, see core/schema.py
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable

DB_FILE = Path(__file__).parent.parent.parent / "polylingo.db"

# Columns a caller may change through update_job()
JOB_UPDATABLE_COLUMNS = (
    "content_title",
    "status",
    "progress",
    "tokens_used",
    "error_message",
    "translated_title",
    "translated_content",
    "external_id",
)


def get_connection():
    """Get a database connection."""
    conn = sqlite3.connect(DB_FILE, timeout=30)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# Translation Job CRUD Operations
# ============================================================

def create_job(content_id: int, content_title: str, source_language: str,
               target_language: str, status: str = "PENDING") -> Dict[str, Any]:
    """Create a new translation job and return its row."""
    job_id = uuid.uuid4().hex
    timestamp = _now()
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO translation_jobs (
                id, content_id, content_title, source_language, target_language,
                status, progress, tokens_used, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?, ?)
        """, (job_id, content_id, content_title, source_language, target_language,
              status, timestamp, timestamp))
        conn.commit()
    return get_job(job_id)


def get_job(job_id: str) -> Optional[Dict[str, Any]]:
    """Get a job by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM translation_jobs WHERE id = ?", (job_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def get_all_jobs(status: Optional[str] = None) -> List[Dict[str, Any]]:
    """Get all jobs, newest first, optionally filtered by status."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        if status:
            cursor.execute("""
                SELECT * FROM translation_jobs
                WHERE status = ?
                ORDER BY created_at DESC
            """, (status,))
        else:
            cursor.execute("SELECT * FROM translation_jobs ORDER BY created_at DESC")
        return [dict(row) for row in cursor.fetchall()]


def get_jobs_by_status(statuses: Iterable[str]) -> List[Dict[str, Any]]:
    """Get jobs in any of the given statuses, oldest first (submission order)."""
    statuses = list(statuses)
    if not statuses:
        return []
    placeholders = ", ".join("?" for _ in statuses)
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute(f"""
            SELECT * FROM translation_jobs
            WHERE status IN ({placeholders})
            ORDER BY created_at ASC, rowid ASC
        """, statuses)
        return [dict(row) for row in cursor.fetchall()]


def get_job_stats(translated_statuses: Iterable[str]) -> Dict[str, Any]:
    """
    Aggregate over all jobs.

    Returns:
        Dict with "by_status" (status -> count), "tokens_used" (sum over all jobs)
        and "translated_items" (distinct content ids with a job in translated_statuses)
    """
    translated_statuses = list(translated_statuses)
    placeholders = ", ".join("?" for _ in translated_statuses) or "NULL"
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT status, COUNT(*) FROM translation_jobs GROUP BY status")
        by_status = {row[0]: row[1] for row in cursor.fetchall()}
        cursor.execute("SELECT COALESCE(SUM(tokens_used), 0) FROM translation_jobs")
        tokens_used = cursor.fetchone()[0]
        cursor.execute(f"""
            SELECT COUNT(DISTINCT content_id) FROM translation_jobs
            WHERE status IN ({placeholders})
        """, translated_statuses)
        translated_items = cursor.fetchone()[0]
    return {"by_status": by_status, "tokens_used": tokens_used, "translated_items": translated_items}


def update_job(job_id: str, **fields) -> Optional[Dict[str, Any]]:
    """
    Update a job's columns and bump updated_at.

    Returns:
        The updated row, or None when the job does not exist.
    """
    unknown = set(fields) - set(JOB_UPDATABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Cannot update job columns: {', '.join(sorted(unknown))}")

    updates = [f"{column} = ?" for column in fields]
    params: List[Any] = list(fields.values())
    updates.append("updated_at = ?")
    params.append(_now())
    params.append(job_id)

    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(f"UPDATE translation_jobs SET {', '.join(updates)} WHERE id = ?", params)
        conn.commit()
        if cursor.rowcount == 0:
            return None
    return get_job(job_id)


def delete_job(job_id: str) -> bool:
    """Delete a job and its logs."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM job_logs WHERE job_id = ?", (job_id,))
        cursor.execute("DELETE FROM translation_jobs WHERE id = ?", (job_id,))
        conn.commit()
        return cursor.rowcount > 0


# ============================================================
# Job Log CRUD Operations
# ============================================================

def create_log(job_id: str, level: str, message: str,
               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Append a log entry for a job."""
    log_id = uuid.uuid4().hex
    timestamp = _now()
    metadata_json = json.dumps(metadata, ensure_ascii=False, default=str) if metadata else None
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO job_logs (id, job_id, level, message, metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (log_id, job_id, level, message, metadata_json, timestamp))
        conn.commit()
    return {
        "id": log_id,
        "job_id": job_id,
        "level": level,
        "message": message,
        "metadata": metadata or {},
        "created_at": timestamp,
    }


def get_logs_by_job_id(job_id: str) -> List[Dict[str, Any]]:
    """Get all log entries of a job, oldest first."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM job_logs
            WHERE job_id = ?
            ORDER BY created_at ASC, rowid ASC
        """, (job_id,))
        rows = []
        for row in cursor.fetchall():
            entry = dict(row)
            try:
                entry["metadata"] = json.loads(entry["metadata"]) if entry.get("metadata") else {}
            except (json.JSONDecodeError, TypeError):
                entry["metadata"] = {}
            rows.append(entry)
        return rows


# ============================================================
# App Config CRUD Operations
# ============================================================

def get_app_config(key: str) -> Optional[str]:
    """Get a configuration value by key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM app_config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None


def set_app_config(key: str, value: str):
    """Set a configuration value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        # Ensure app_config table exists
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            INSERT OR REPLACE INTO app_config (key, value, updated_at)
            VALUES (?, ?, ?)
        """, (key, value, _now()))
        conn.commit()


def get_all_app_config() -> Dict[str, str]:
    """Get all configuration values."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT key, value FROM app_config")
        return {row[0]: row[1] for row in cursor.fetchall()}
