"""
SQLite storage implementation.

Alternative backend for hosts without DuckDB. Opens one connection per
operation. Dates and timestamps are stored as ISO-8601 text, which keeps
the half-open window comparisons correct as plain string comparisons.
"""

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

import structlog

from .base import StorageError
from .sql_backend import SQLStorageBackend

logger = structlog.get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    agent_type TEXT NOT NULL,
    business_type TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS portal_requests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT,
    agent_id INTEGER,
    business_type TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    created_by TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_portal_requests_created ON portal_requests(created_at);

CREATE TABLE IF NOT EXISTS agent_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER NOT NULL,
    recorded_at TEXT NOT NULL,
    requests_processed INTEGER,
    avg_latency REAL,
    error_rate REAL,
    queue_time REAL,
    ai_assisted_decisions INTEGER,
    ai_assisted_decisions_validated INTEGER,
    ai_recommendations INTEGER,
    decisions_overridden INTEGER,
    cognitive_load_before_score REAL,
    cognitive_load_after_score REAL,
    handoff_time_seconds REAL,
    team_satisfaction_score REAL,
    innovation_count INTEGER
);
CREATE INDEX IF NOT EXISTS idx_agent_metrics_recorded ON agent_metrics(recorded_at);

CREATE TABLE IF NOT EXISTS agent_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER NOT NULL,
    job_id TEXT,
    status TEXT NOT NULL,
    received_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS portal_users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS user_business_domain (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    business_type TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS human_ai_collaboration_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER,
    period_start TEXT NOT NULL,
    period_end TEXT NOT NULL,
    business_type TEXT,
    agent_type TEXT,
    decision_accuracy_pct REAL,
    override_rate_pct REAL,
    cognitive_load_reduction_pct REAL,
    handoff_time_seconds REAL,
    team_satisfaction_score REAL,
    innovation_count INTEGER,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS risk_management (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER,
    use_case TEXT,
    business_type TEXT,
    agent_type TEXT,
    risk_ethics_score INTEGER,
    risk_reputation_score INTEGER,
    risk_operational_score INTEGER,
    risk_legal_score INTEGER,
    audit_required INTEGER NOT NULL DEFAULT 0,
    audit_completed INTEGER NOT NULL DEFAULT 0,
    human_reviewed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS adoption_funnel_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    stage TEXT NOT NULL,
    business_type TEXT,
    agent_type TEXT,
    metadata TEXT,
    event_time TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS portal_metric_inputs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    metric_key TEXT NOT NULL,
    value NUMERIC NOT NULL,
    unit TEXT,
    description TEXT,
    business_type TEXT NOT NULL DEFAULT '',
    agent_type TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (metric_key, business_type, agent_type)
);

CREATE TABLE IF NOT EXISTS business_task_baseline (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_code TEXT NOT NULL,
    domain TEXT NOT NULL DEFAULT '',
    before_time_min NUMERIC NOT NULL,
    before_cost NUMERIC,
    description TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (task_code, domain)
);

CREATE TABLE IF NOT EXISTS labor_cost (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    role TEXT NOT NULL,
    hourly_cost NUMERIC NOT NULL,
    currency TEXT NOT NULL DEFAULT 'KRW',
    business_type TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (role, business_type)
);

CREATE TABLE IF NOT EXISTS roi_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    period_start TEXT NOT NULL,
    period_end TEXT NOT NULL,
    business_type TEXT NOT NULL DEFAULT '',
    agent_type TEXT NOT NULL DEFAULT '',
    saved_hours NUMERIC NOT NULL DEFAULT 0,
    saved_cost NUMERIC NOT NULL DEFAULT 0,
    roi_ratio_pct NUMERIC NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (period_start, period_end, business_type, agent_type)
);
"""


class SQLiteStorage(SQLStorageBackend):
    """SQLite implementation of the storage backend."""

    backend_name = "sqlite"

    def __init__(self, db_path: str = "./data/portal.sqlite3"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("sqlite_storage_initialized", db_path=str(self.db_path))

        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """
        Open a connection for one operation and close it afterwards.

        Raises:
            StorageError: If connection cannot be established
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            logger.error("sqlite_connection_failed", error=str(e))
            raise StorageError(f"Failed to connect to SQLite: {e}") from e

        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_schema(self):
        try:
            with self._get_connection() as conn:
                conn.executescript(SCHEMA)
                conn.commit()
            logger.info("sqlite_schema_initialized")

        except Exception as e:
            logger.error("sqlite_schema_initialization_failed", error=str(e))
            raise StorageError(f"Failed to initialize schema: {e}") from e

    # =========================================================================
    # Dialect hooks
    # =========================================================================

    def _insert_returning_id(self, conn, table, columns, params) -> int:
        placeholders = ", ".join("?" for _ in columns)
        cursor = conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            params,
        )
        return int(cursor.lastrowid)

    def _count_where(self, condition: str) -> str:
        return f"COALESCE(SUM(CASE WHEN {condition} THEN 1 ELSE 0 END), 0)"

    def _is_true(self, column: str) -> str:
        return f"{column} = 1"

    def _param(self, value):
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, date):
            return value.isoformat()
        return value
