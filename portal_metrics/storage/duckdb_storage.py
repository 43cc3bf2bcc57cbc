"""
DuckDB storage implementation for the portal metrics engine.

Default backend. Holds operational samples (requests, agent telemetry,
tasks, collaboration, risk, funnel events), the operator-configured
baselines and the cached ROI rows in a single local DuckDB file.

Key features:
- Thread-safe per-thread connections
- Automatic schema creation on first access
- Null-safe upserts through ``''`` scope columns and ``ON CONFLICT``
- Comprehensive error handling with structured logging
"""

import threading
from contextlib import contextmanager
from pathlib import Path

import duckdb
import structlog

from .base import StorageError
from .sql_backend import SQLStorageBackend

logger = structlog.get_logger(__name__)

_SEQUENCE_TABLES = (
    "agents",
    "portal_requests",
    "agent_metrics",
    "agent_tasks",
    "portal_users",
    "user_business_domain",
    "human_ai_collaboration_metrics",
    "risk_management",
    "adoption_funnel_events",
    "portal_metric_inputs",
    "business_task_baseline",
    "labor_cost",
    "roi_metrics",
)


class DuckDBStorage(SQLStorageBackend):
    """
    DuckDB implementation of the storage backend.

    Attributes:
        db_path: Path to the DuckDB database file
        _local: Thread-local storage for per-thread connections
        _lock: Thread lock for schema operations
        _initialized: Flag tracking whether schema is initialized
    """

    backend_name = "duckdb"

    def __init__(self, db_path: str = "./data/portal.duckdb"):
        """
        Initialize DuckDB storage backend.

        Args:
            db_path: Path to DuckDB database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False

        logger.info("duckdb_storage_initialized", db_path=str(self.db_path))

        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """
        Get a thread-local DuckDB connection.

        Yields:
            DuckDB connection instance

        Raises:
            StorageError: If connection cannot be established
        """
        if not hasattr(self._local, "connection"):
            try:
                self._local.connection = duckdb.connect(str(self.db_path))
                logger.debug("duckdb_connection_created", thread_id=threading.get_ident())
            except Exception as e:
                logger.error("duckdb_connection_failed", error=str(e))
                raise StorageError(f"Failed to connect to DuckDB: {e}") from e

        try:
            yield self._local.connection
        except Exception:
            try:
                self._local.connection.rollback()
            except duckdb.Error:
                # No open transaction to roll back.
                pass
            raise

    def close(self) -> None:
        """Close the calling thread's connection, if any."""
        connection = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            del self._local.connection

    # =========================================================================
    # Dialect hooks
    # =========================================================================

    def _insert_returning_id(self, conn, table, columns, params) -> int:
        placeholders = ", ".join("?" for _ in columns)
        row = conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id",
            params,
        ).fetchone()
        return int(row[0])

    def _count_where(self, condition: str) -> str:
        return f"COUNT(*) FILTER (WHERE {condition})"

    # =========================================================================
    # Schema
    # =========================================================================

    def _initialize_schema(self):
        """
        Create every table and index. Idempotent.

        Raises:
            StorageError: If schema creation fails
        """
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                with self._get_connection() as conn:
                    for table in _SEQUENCE_TABLES:
                        conn.execute(f"CREATE SEQUENCE IF NOT EXISTS seq_{table} START 1")

                    # =========================================================
                    # Operational samples
                    # =========================================================

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS agents (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_agents'),
                            name VARCHAR NOT NULL,
                            agent_type VARCHAR NOT NULL,
                            business_type VARCHAR,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS portal_requests (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_portal_requests'),
                            title VARCHAR,
                            agent_id INTEGER,
                            business_type VARCHAR,
                            status VARCHAR NOT NULL DEFAULT 'pending',
                            created_by VARCHAR,
                            created_at TIMESTAMP NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE INDEX IF NOT EXISTS idx_portal_requests_created
                        ON portal_requests(created_at)
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS agent_metrics (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_agent_metrics'),
                            agent_id INTEGER NOT NULL,
                            recorded_at TIMESTAMP NOT NULL,
                            requests_processed INTEGER,
                            avg_latency DOUBLE,
                            error_rate DOUBLE,
                            queue_time DOUBLE,
                            ai_assisted_decisions INTEGER,
                            ai_assisted_decisions_validated INTEGER,
                            ai_recommendations INTEGER,
                            decisions_overridden INTEGER,
                            cognitive_load_before_score DOUBLE,
                            cognitive_load_after_score DOUBLE,
                            handoff_time_seconds DOUBLE,
                            team_satisfaction_score DOUBLE,
                            innovation_count INTEGER
                        )
                    """)

                    conn.execute("""
                        CREATE INDEX IF NOT EXISTS idx_agent_metrics_recorded
                        ON agent_metrics(recorded_at)
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS agent_tasks (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_agent_tasks'),
                            agent_id INTEGER NOT NULL,
                            job_id VARCHAR,
                            status VARCHAR NOT NULL,
                            received_at TIMESTAMP NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS portal_users (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_portal_users'),
                            user_id VARCHAR NOT NULL UNIQUE,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS user_business_domain (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_user_business_domain'),
                            user_id VARCHAR NOT NULL,
                            business_type VARCHAR NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS human_ai_collaboration_metrics (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_human_ai_collaboration_metrics'),
                            agent_id INTEGER,
                            period_start DATE NOT NULL,
                            period_end DATE NOT NULL,
                            business_type VARCHAR,
                            agent_type VARCHAR,
                            decision_accuracy_pct DOUBLE,
                            override_rate_pct DOUBLE,
                            cognitive_load_reduction_pct DOUBLE,
                            handoff_time_seconds DOUBLE,
                            team_satisfaction_score DOUBLE,
                            innovation_count INTEGER,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS risk_management (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_risk_management'),
                            agent_id INTEGER,
                            use_case VARCHAR,
                            business_type VARCHAR,
                            agent_type VARCHAR,
                            risk_ethics_score INTEGER,
                            risk_reputation_score INTEGER,
                            risk_operational_score INTEGER,
                            risk_legal_score INTEGER,
                            audit_required BOOLEAN NOT NULL DEFAULT FALSE,
                            audit_completed BOOLEAN NOT NULL DEFAULT FALSE,
                            human_reviewed BOOLEAN NOT NULL DEFAULT FALSE,
                            created_at TIMESTAMP NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS adoption_funnel_events (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_adoption_funnel_events'),
                            user_id VARCHAR NOT NULL,
                            stage VARCHAR NOT NULL,
                            business_type VARCHAR,
                            agent_type VARCHAR,
                            metadata JSON,
                            event_time TIMESTAMP NOT NULL
                        )
                    """)

                    # =========================================================
                    # Baselines and ROI cache
                    # =========================================================

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS portal_metric_inputs (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_portal_metric_inputs'),
                            metric_key VARCHAR NOT NULL,
                            value DECIMAL(18, 4) NOT NULL,
                            unit VARCHAR,
                            description VARCHAR,
                            business_type VARCHAR NOT NULL DEFAULT '',
                            agent_type VARCHAR NOT NULL DEFAULT '',
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            UNIQUE (metric_key, business_type, agent_type)
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS business_task_baseline (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_business_task_baseline'),
                            task_code VARCHAR NOT NULL,
                            domain VARCHAR NOT NULL DEFAULT '',
                            before_time_min DECIMAL(12, 2) NOT NULL,
                            before_cost DECIMAL(18, 2),
                            description VARCHAR,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            UNIQUE (task_code, domain)
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS labor_cost (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_labor_cost'),
                            role VARCHAR NOT NULL,
                            hourly_cost DECIMAL(18, 2) NOT NULL,
                            currency VARCHAR NOT NULL DEFAULT 'KRW',
                            business_type VARCHAR NOT NULL DEFAULT '',
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            UNIQUE (role, business_type)
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS roi_metrics (
                            id INTEGER PRIMARY KEY DEFAULT nextval('seq_roi_metrics'),
                            period_start DATE NOT NULL,
                            period_end DATE NOT NULL,
                            business_type VARCHAR NOT NULL DEFAULT '',
                            agent_type VARCHAR NOT NULL DEFAULT '',
                            saved_hours DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            saved_cost DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            roi_ratio_pct DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                            UNIQUE (period_start, period_end, business_type, agent_type)
                        )
                    """)

                    conn.commit()
                    self._initialized = True
                    logger.info("duckdb_schema_initialized")

            except Exception as e:
                logger.error("duckdb_schema_initialization_failed", error=str(e))
                raise StorageError(f"Failed to initialize schema: {e}") from e
