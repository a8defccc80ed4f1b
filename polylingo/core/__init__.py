"""
Core module - Database utilities

This module provides:
- database: CRUD operations for jobs, job logs and app config
- schema: Database initialization and migrations
"""

from polylingo.core.database import (
    DB_FILE,
    get_connection,
    # Job operations
    create_job,
    get_job,
    get_all_jobs,
    get_jobs_by_status,
    get_job_stats,
    update_job,
    delete_job,
    # Job log operations
    create_log,
    get_logs_by_job_id,
    # App config operations
    get_app_config,
    set_app_config,
    get_all_app_config,
)

from polylingo.core.schema import (
    DB_VERSION,
    get_db_version,
    set_db_version,
    initialize_database,
    ensure_all_schemas,
    migrate_database,
)
