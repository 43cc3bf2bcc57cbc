"""
Shared SQL implementation of the storage contract.

Both bundled backends speak close-enough SQL that the queries live here,
with the dialect differences pushed into a handful of hooks:

- ``_count_where``: conditional count (``FILTER`` clause vs ``CASE``)
- ``_is_true``: boolean column test
- ``_param``: Python value -> driver parameter
- ``_insert_returning_id``: id of a freshly inserted row

Scope columns (``business_type``, ``agent_type``, ``domain``) are stored as
``''`` for "global" so that unique constraints and ``ON CONFLICT`` upserts
treat two global rows as the same key. The mapping back to ``None`` happens
in the row readers.
"""

import os
from abc import abstractmethod
from datetime import date, datetime
from typing import Any, Iterator, Optional

import structlog

from portal_metrics.models.baselines import (
    BaselineEntry,
    LaborCost,
    ROIMetricKey,
    ROIMetricRecord,
    TaskBaseline,
)
from portal_metrics.models.metrics import MetricWindow, RawAggregate
from portal_metrics.utils.numeric import to_number

from .base import (
    AGENT_METRIC_COLUMNS,
    COLLABORATION_COLUMNS,
    ERROR_TASK_STATUSES,
    PENDING_REQUEST_STATUSES,
    SUCCESS_TASK_STATUSES,
    RawAggregateFetchError,
    StorageBackend,
    StorageError,
)

logger = structlog.get_logger(__name__)

GLOBAL_SCOPE = ""

# Tables in delete order (children first).
TABLES = (
    "roi_metrics",
    "adoption_funnel_events",
    "risk_management",
    "human_ai_collaboration_metrics",
    "user_business_domain",
    "portal_users",
    "agent_tasks",
    "agent_metrics",
    "portal_requests",
    "labor_cost",
    "business_task_baseline",
    "portal_metric_inputs",
    "agents",
)


def _scope(value: Optional[str]) -> str:
    """Python scope value -> stored scope value."""
    if value is None:
        return GLOBAL_SCOPE
    value = value.strip()
    return value or GLOBAL_SCOPE


def _unscope(value: Optional[str]) -> Optional[str]:
    """Stored scope value -> Python scope value."""
    return value or None


def _in_list(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{v}'" for v in values)


def _to_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class SQLStorageBackend(StorageBackend):
    """
    StorageBackend implemented on top of a DB-API style connection.

    Subclasses provide the connection, the schema DDL and the dialect hooks.
    """

    backend_name = "sql"

    # =========================================================================
    # Dialect hooks
    # =========================================================================

    @abstractmethod
    def _get_connection(self) -> Iterator[Any]:
        """Yield a connection; roll back and re-raise on error."""
        pass

    @abstractmethod
    def _insert_returning_id(self, conn: Any, table: str, columns: list[str], params: list) -> int:
        """Insert one row and return its generated id."""
        pass

    @abstractmethod
    def _count_where(self, condition: str) -> str:
        """SQL expression counting rows that satisfy ``condition``."""
        pass

    def _is_true(self, column: str) -> str:
        """SQL condition that is true when a boolean column is set."""
        return column

    def _param(self, value: Any) -> Any:
        """Convert a Python value into a driver parameter."""
        return value

    def _params(self, values: list) -> list:
        return [self._param(v) for v in values]

    # =========================================================================
    # Raw Aggregate Provider
    # =========================================================================

    def _agent_filters(
        self,
        agent_type: Optional[str],
        business_type: Optional[str],
        alias: str = "a",
    ) -> tuple[str, list]:
        clauses, params = [], []
        if agent_type:
            clauses.append(f"{alias}.agent_type = ?")
            params.append(agent_type)
        if business_type:
            clauses.append(f"{alias}.business_type = ?")
            params.append(business_type)
        return "".join(f" AND {c}" for c in clauses), params

    def _request_filters(
        self,
        agent_type: Optional[str],
        business_type: Optional[str],
    ) -> tuple[str, list]:
        clauses, params = [], []
        if agent_type:
            clauses.append("r.agent_id IN (SELECT id FROM agents WHERE agent_type = ?)")
            params.append(agent_type)
        if business_type:
            clauses.append("r.business_type = ?")
            params.append(business_type)
        return "".join(f" AND {c}" for c in clauses), params

    def _window_params(self, window: MetricWindow) -> list:
        return self._params([window.date_from, window.date_to])

    def fetch_raw_aggregate(
        self,
        window: MetricWindow,
        prev_window: MetricWindow,
        agent_type: Optional[str] = None,
        business_type: Optional[str] = None,
    ) -> RawAggregate:
        """Aggregate every operational source for a window and filter scope."""
        agent_type = agent_type or None
        business_type = business_type or None

        try:
            with self._get_connection() as conn:
                raw: dict[str, Any] = {
                    "date_from": window.date_from,
                    "date_to": window.date_to,
                }
                raw.update(self._fetch_requests(conn, window, prev_window, agent_type, business_type))
                raw.update(self._fetch_agent_telemetry(conn, window, agent_type, business_type))
                raw.update(self._fetch_tasks(conn, window, agent_type, business_type))
                raw.update(self._fetch_users(conn, business_type))
                raw.update(self._fetch_collaboration(conn, window, agent_type, business_type))
                raw.update(self._fetch_risk(conn, window, agent_type, business_type))
                raw["breakdown"] = self._fetch_agent_breakdown(conn, window, agent_type, business_type)
                raw["domain_breakdown"] = self._fetch_domain_breakdown(
                    conn, window, agent_type, business_type
                )
                raw["funnel_breakdown"] = self._fetch_funnel(conn, window, agent_type, business_type)

            logger.debug(
                "raw_aggregate_fetched",
                backend=self.backend_name,
                date_from=str(window.date_from),
                date_to=str(window.date_to),
                agent_type=agent_type,
                business_type=business_type,
            )
            return RawAggregate(**raw)

        except Exception as e:
            logger.error("fetch_raw_aggregate_failed", backend=self.backend_name, error=str(e))
            raise RawAggregateFetchError(f"Failed to fetch raw aggregate: {e}") from e

    def _fetch_requests(self, conn, window, prev_window, agent_type, business_type) -> dict:
        where, filter_params = self._request_filters(agent_type, business_type)
        completed = self._count_where("r.status = 'completed'")
        pending = self._count_where(f"r.status IN ({_in_list(PENDING_REQUEST_STATUSES)})")
        row = conn.execute(
            f"""
            SELECT
                COUNT(*) AS total_requests,
                {completed} AS completed_requests,
                {pending} AS pending_requests
            FROM portal_requests r
            WHERE r.created_at >= ? AND r.created_at < ?{where}
            """,
            self._window_params(window) + filter_params,
        ).fetchone()
        prev = conn.execute(
            f"""
            SELECT COUNT(*) FROM portal_requests r
            WHERE r.created_at >= ? AND r.created_at < ?{where}
            """,
            self._window_params(prev_window) + filter_params,
        ).fetchone()
        return {
            "total_requests": row[0],
            "completed_requests": row[1],
            "pending_requests": row[2],
            "prev_total_requests": prev[0],
        }

    def _fetch_agent_telemetry(self, conn, window, agent_type, business_type) -> dict:
        where, filter_params = self._agent_filters(agent_type, business_type)
        row = conn.execute(
            f"""
            SELECT
                AVG(am.avg_latency),
                AVG(am.error_rate),
                AVG(am.queue_time),
                SUM(am.requests_processed),
                SUM(am.ai_assisted_decisions),
                SUM(am.ai_assisted_decisions_validated),
                SUM(am.ai_recommendations),
                SUM(am.decisions_overridden),
                AVG(am.cognitive_load_before_score),
                AVG(am.cognitive_load_after_score),
                AVG(am.handoff_time_seconds),
                AVG(am.team_satisfaction_score),
                SUM(am.innovation_count)
            FROM agent_metrics am
            JOIN agents a ON a.id = am.agent_id
            WHERE am.recorded_at >= ? AND am.recorded_at < ?{where}
            """,
            self._window_params(window) + filter_params,
        ).fetchone()
        keys = (
            "avg_latency_ms",
            "avg_error_rate",
            "avg_queue_time_ms",
            "requests_processed",
            "ai_assisted_decisions",
            "ai_validated_decisions",
            "ai_recommendations",
            "decisions_overridden",
            "avg_cognitive_load_before",
            "avg_cognitive_load_after",
            "avg_handoff_time_seconds",
            "avg_team_satisfaction_score",
            "innovation_count",
        )
        return dict(zip(keys, row))

    def _fetch_tasks(self, conn, window, agent_type, business_type) -> dict:
        where, filter_params = self._agent_filters(agent_type, business_type)
        success = self._count_where(f"t.status IN ({_in_list(SUCCESS_TASK_STATUSES)})")
        error = self._count_where(f"t.status IN ({_in_list(ERROR_TASK_STATUSES)})")
        row = conn.execute(
            f"""
            SELECT
                COUNT(*),
                {success},
                {error}
            FROM agent_tasks t
            JOIN agents a ON a.id = t.agent_id
            WHERE t.received_at >= ? AND t.received_at < ?{where}
            """,
            self._window_params(window) + filter_params,
        ).fetchone()
        return {"total_tasks": row[0], "success_tasks": row[1], "error_tasks": row[2]}

    def _fetch_users(self, conn, business_type) -> dict:
        total = conn.execute("SELECT COUNT(*) FROM portal_users").fetchone()
        if business_type:
            mapped = conn.execute(
                """
                SELECT COUNT(DISTINCT ubd.user_id)
                FROM user_business_domain ubd
                JOIN portal_users u ON u.user_id = ubd.user_id
                WHERE ubd.business_type = ?
                """,
                [business_type],
            ).fetchone()
        else:
            mapped = conn.execute(
                """
                SELECT COUNT(DISTINCT ubd.user_id)
                FROM user_business_domain ubd
                JOIN portal_users u ON u.user_id = ubd.user_id
                """
            ).fetchone()
        return {"total_users": total[0], "mapped_users": mapped[0]}

    def _fetch_collaboration(self, conn, window, agent_type, business_type) -> dict:
        where, filter_params = self._agent_filters(agent_type, business_type, alias="c")
        # Samples cover a period of their own; take every sample overlapping the window.
        row = conn.execute(
            f"""
            SELECT
                AVG(c.decision_accuracy_pct),
                AVG(c.override_rate_pct),
                AVG(c.cognitive_load_reduction_pct),
                AVG(c.handoff_time_seconds),
                AVG(c.team_satisfaction_score),
                SUM(c.innovation_count)
            FROM human_ai_collaboration_metrics c
            WHERE c.period_start < ? AND c.period_end >= ?{where}
            """,
            self._params([window.date_to, window.date_from]) + filter_params,
        ).fetchone()
        keys = (
            "collaboration_decision_accuracy_pct",
            "collaboration_override_rate_pct",
            "collaboration_cognitive_reduction_pct",
            "collaboration_handoff_seconds",
            "collaboration_satisfaction",
            "collaboration_innovation_count",
        )
        return dict(zip(keys, row))

    def _fetch_risk(self, conn, window, agent_type, business_type) -> dict:
        where, filter_params = self._agent_filters(agent_type, business_type, alias="rm")
        audit_required = self._count_where(self._is_true("rm.audit_required"))
        audit_completed = self._count_where(self._is_true("rm.audit_completed"))
        human_reviewed = self._count_where(self._is_true("rm.human_reviewed"))
        row = conn.execute(
            f"""
            SELECT
                COUNT(*),
                AVG((COALESCE(rm.risk_ethics_score, 0)
                     + COALESCE(rm.risk_reputation_score, 0)
                     + COALESCE(rm.risk_operational_score, 0)
                     + COALESCE(rm.risk_legal_score, 0)) / 4.0),
                {audit_required},
                {audit_completed},
                {human_reviewed}
            FROM risk_management rm
            WHERE rm.created_at >= ? AND rm.created_at < ?{where}
            """,
            self._window_params(window) + filter_params,
        ).fetchone()
        keys = (
            "total_risk_items",
            "avg_risk_score",
            "audit_required_count",
            "audit_completed_count",
            "human_reviewed_count",
        )
        return dict(zip(keys, row))

    def _fetch_agent_breakdown(self, conn, window, agent_type, business_type) -> list[dict]:
        where, filter_params = self._agent_filters(agent_type, business_type)
        rows = conn.execute(
            f"""
            SELECT
                a.agent_type,
                a.business_type,
                SUM(am.requests_processed),
                AVG(am.avg_latency),
                AVG(am.error_rate)
            FROM agent_metrics am
            JOIN agents a ON a.id = am.agent_id
            WHERE am.recorded_at >= ? AND am.recorded_at < ?{where}
            GROUP BY a.agent_type, a.business_type
            ORDER BY a.agent_type, a.business_type
            """,
            self._window_params(window) + filter_params,
        ).fetchall()
        return [
            {
                "agent_type": row[0],
                "business_type": row[1],
                "requests_processed": row[2],
                "avg_latency_ms": row[3],
                "avg_error_rate": row[4],
            }
            for row in rows
        ]

    def _fetch_domain_breakdown(self, conn, window, agent_type, business_type) -> list[dict]:
        where, filter_params = self._request_filters(agent_type, business_type)
        completed = self._count_where("r.status = 'completed'")
        rows = conn.execute(
            f"""
            SELECT
                r.business_type,
                COUNT(*) AS request_count,
                {completed} AS completed_count
            FROM portal_requests r
            WHERE r.created_at >= ? AND r.created_at < ?{where}
            GROUP BY r.business_type
            ORDER BY request_count DESC, r.business_type
            """,
            self._window_params(window) + filter_params,
        ).fetchall()
        return [
            {"business_type": row[0], "request_count": row[1], "completed_count": row[2]}
            for row in rows
        ]

    def _fetch_funnel(self, conn, window, agent_type, business_type) -> list[dict]:
        where, filter_params = self._agent_filters(agent_type, business_type, alias="f")
        rows = conn.execute(
            f"""
            SELECT
                f.stage,
                COUNT(DISTINCT f.user_id) AS user_count,
                COUNT(*) AS event_count
            FROM adoption_funnel_events f
            WHERE f.event_time >= ? AND f.event_time < ?{where}
            GROUP BY f.stage
            ORDER BY user_count DESC, f.stage
            """,
            self._window_params(window) + filter_params,
        ).fetchall()
        return [{"stage": row[0], "user_count": row[1], "event_count": row[2]} for row in rows]

    # =========================================================================
    # Baseline Store
    # =========================================================================

    @staticmethod
    def _baseline_from_row(row) -> BaselineEntry:
        return BaselineEntry(
            metric_key=row[0],
            value=to_number(row[1]),
            unit=row[2],
            description=row[3],
            business_type=_unscope(row[4]),
            agent_type=_unscope(row[5]),
        )

    def list_baselines(
        self,
        business_type: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> list[BaselineEntry]:
        """List applicable baselines, least specific first."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT metric_key, value, unit, description, business_type, agent_type
                    FROM portal_metric_inputs
                    WHERE (business_type = '' OR business_type = ?)
                      AND (agent_type = '' OR agent_type = ?)
                    ORDER BY
                        (CASE WHEN business_type = '' THEN 0 ELSE 1 END)
                        + (CASE WHEN agent_type = '' THEN 0 ELSE 1 END),
                        (CASE WHEN business_type = '' THEN 0 ELSE 1 END),
                        id
                    """,
                    [_scope(business_type), _scope(agent_type)],
                ).fetchall()
            return [self._baseline_from_row(row) for row in rows]

        except Exception as e:
            logger.error("list_baselines_failed", error=str(e))
            raise StorageError(f"Failed to list baselines: {e}") from e

    def list_all_baselines(self) -> list[BaselineEntry]:
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT metric_key, value, unit, description, business_type, agent_type
                    FROM portal_metric_inputs
                    ORDER BY metric_key, business_type, agent_type
                    """
                ).fetchall()
            return [self._baseline_from_row(row) for row in rows]

        except Exception as e:
            logger.error("list_all_baselines_failed", error=str(e))
            raise StorageError(f"Failed to list baselines: {e}") from e

    def upsert_baseline(self, entry: BaselineEntry) -> BaselineEntry:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO portal_metric_inputs
                        (metric_key, value, unit, description, business_type, agent_type,
                         created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (metric_key, business_type, agent_type) DO UPDATE SET
                        value = EXCLUDED.value,
                        unit = EXCLUDED.unit,
                        description = EXCLUDED.description,
                        updated_at = EXCLUDED.updated_at
                    """,
                    self._params([
                        entry.metric_key,
                        entry.value,
                        entry.unit,
                        entry.description,
                        _scope(entry.business_type),
                        _scope(entry.agent_type),
                        datetime.utcnow(),
                        datetime.utcnow(),
                    ]),
                )
                conn.commit()
            logger.info(
                "baseline_upserted",
                metric_key=entry.metric_key,
                business_type=entry.business_type,
                agent_type=entry.agent_type,
            )
            return entry

        except Exception as e:
            logger.error("upsert_baseline_failed", metric_key=entry.metric_key, error=str(e))
            raise StorageError(f"Failed to upsert baseline: {e}") from e

    def seed_default_baselines(self, entries: list[BaselineEntry]) -> int:
        inserted = 0
        try:
            with self._get_connection() as conn:
                for entry in entries:
                    existing = conn.execute(
                        """
                        SELECT COUNT(*) FROM portal_metric_inputs
                        WHERE metric_key = ? AND business_type = '' AND agent_type = ''
                        """,
                        [entry.metric_key],
                    ).fetchone()
                    if existing[0]:
                        continue
                    conn.execute(
                        """
                        INSERT INTO portal_metric_inputs
                            (metric_key, value, unit, description, business_type, agent_type,
                             created_at, updated_at)
                        VALUES (?, ?, ?, ?, '', '', ?, ?)
                        """,
                        self._params([
                            entry.metric_key,
                            entry.value,
                            entry.unit,
                            entry.description,
                            datetime.utcnow(),
                            datetime.utcnow(),
                        ]),
                    )
                    inserted += 1
                conn.commit()
            logger.info("default_baselines_seeded", inserted=inserted)
            return inserted

        except Exception as e:
            logger.error("seed_default_baselines_failed", error=str(e))
            raise StorageError(f"Failed to seed baselines: {e}") from e

    def list_task_baselines(self, domain: Optional[str] = None) -> list[TaskBaseline]:
        try:
            with self._get_connection() as conn:
                query = """
                    SELECT task_code, domain, before_time_min, before_cost, description
                    FROM business_task_baseline
                """
                params: list = []
                if domain:
                    query += " WHERE domain = ?"
                    params.append(domain)
                query += " ORDER BY updated_at DESC, id DESC"
                rows = conn.execute(query, params).fetchall()

            return [
                TaskBaseline(
                    task_code=row[0],
                    domain=_unscope(row[1]),
                    before_time_min=to_number(row[2]),
                    before_cost=None if row[3] is None else to_number(row[3]),
                    description=row[4],
                )
                for row in rows
            ]

        except Exception as e:
            logger.error("list_task_baselines_failed", error=str(e))
            raise StorageError(f"Failed to list task baselines: {e}") from e

    def upsert_task_baseline(self, task_baseline: TaskBaseline) -> TaskBaseline:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO business_task_baseline
                        (task_code, domain, before_time_min, before_cost, description,
                         created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (task_code, domain) DO UPDATE SET
                        before_time_min = EXCLUDED.before_time_min,
                        before_cost = EXCLUDED.before_cost,
                        description = EXCLUDED.description,
                        updated_at = EXCLUDED.updated_at
                    """,
                    self._params([
                        task_baseline.task_code,
                        _scope(task_baseline.domain),
                        task_baseline.before_time_min,
                        task_baseline.before_cost,
                        task_baseline.description,
                        datetime.utcnow(),
                        datetime.utcnow(),
                    ]),
                )
                conn.commit()
            logger.info(
                "task_baseline_upserted",
                task_code=task_baseline.task_code,
                domain=task_baseline.domain,
            )
            return task_baseline

        except Exception as e:
            logger.error("upsert_task_baseline_failed", task_code=task_baseline.task_code, error=str(e))
            raise StorageError(f"Failed to upsert task baseline: {e}") from e

    def list_labor_costs(self, business_type: Optional[str] = None) -> list[LaborCost]:
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT role, hourly_cost, currency, business_type
                    FROM labor_cost
                    WHERE business_type = '' OR business_type = ?
                    ORDER BY (CASE WHEN business_type = '' THEN 1 ELSE 0 END),
                             updated_at DESC, id DESC
                    """,
                    [_scope(business_type)],
                ).fetchall()

            return [
                LaborCost(
                    role=row[0],
                    hourly_cost=to_number(row[1]),
                    currency=row[2] or "KRW",
                    business_type=_unscope(row[3]),
                )
                for row in rows
            ]

        except Exception as e:
            logger.error("list_labor_costs_failed", error=str(e))
            raise StorageError(f"Failed to list labor costs: {e}") from e

    def upsert_labor_cost(self, labor_cost: LaborCost) -> LaborCost:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO labor_cost
                        (role, hourly_cost, currency, business_type, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (role, business_type) DO UPDATE SET
                        hourly_cost = EXCLUDED.hourly_cost,
                        currency = EXCLUDED.currency,
                        updated_at = EXCLUDED.updated_at
                    """,
                    self._params([
                        labor_cost.role,
                        labor_cost.hourly_cost,
                        labor_cost.currency,
                        _scope(labor_cost.business_type),
                        datetime.utcnow(),
                        datetime.utcnow(),
                    ]),
                )
                conn.commit()
            logger.info(
                "labor_cost_upserted",
                role=labor_cost.role,
                business_type=labor_cost.business_type,
            )
            return labor_cost

        except Exception as e:
            logger.error("upsert_labor_cost_failed", role=labor_cost.role, error=str(e))
            raise StorageError(f"Failed to upsert labor cost: {e}") from e

    # =========================================================================
    # ROI Store
    # =========================================================================

    def _roi_key_params(self, key: ROIMetricKey) -> list:
        return self._params([
            key.period_start,
            key.period_end,
            _scope(key.business_type),
            _scope(key.agent_type),
        ])

    def upsert_roi_metric(self, record: ROIMetricRecord) -> ROIMetricRecord:
        now = datetime.utcnow()
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO roi_metrics
                        (period_start, period_end, business_type, agent_type,
                         saved_hours, saved_cost, roi_ratio_pct, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (period_start, period_end, business_type, agent_type) DO UPDATE SET
                        saved_hours = EXCLUDED.saved_hours,
                        saved_cost = EXCLUDED.saved_cost,
                        roi_ratio_pct = EXCLUDED.roi_ratio_pct,
                        updated_at = EXCLUDED.updated_at
                    """,
                    self._roi_key_params(record)
                    + self._params([
                        record.saved_hours,
                        record.saved_cost,
                        record.roi_ratio_pct,
                        now,
                        now,
                    ]),
                )
                conn.commit()
            logger.debug(
                "roi_metric_upserted",
                period_start=str(record.period_start),
                period_end=str(record.period_end),
                business_type=record.business_type,
                agent_type=record.agent_type,
            )
            return record.model_copy(update={"updated_at": now})

        except Exception as e:
            logger.error("upsert_roi_metric_failed", error=str(e))
            raise StorageError(f"Failed to upsert ROI metric: {e}") from e

    def read_roi_metric(self, key: ROIMetricKey) -> Optional[ROIMetricRecord]:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    """
                    SELECT period_start, period_end, business_type, agent_type,
                           saved_hours, saved_cost, roi_ratio_pct, updated_at
                    FROM roi_metrics
                    WHERE period_start = ? AND period_end = ?
                      AND business_type = ? AND agent_type = ?
                    """,
                    self._roi_key_params(key),
                ).fetchone()

            if row is None:
                return None
            return ROIMetricRecord(
                period_start=_to_date(row[0]),
                period_end=_to_date(row[1]),
                business_type=_unscope(row[2]),
                agent_type=_unscope(row[3]),
                saved_hours=to_number(row[4]),
                saved_cost=to_number(row[5]),
                roi_ratio_pct=to_number(row[6]),
                updated_at=_to_datetime(row[7]),
            )

        except Exception as e:
            logger.error("read_roi_metric_failed", error=str(e))
            raise StorageError(f"Failed to read ROI metric: {e}") from e

    def count_roi_metrics(self, key: ROIMetricKey) -> int:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    """
                    SELECT COUNT(*) FROM roi_metrics
                    WHERE period_start = ? AND period_end = ?
                      AND business_type = ? AND agent_type = ?
                    """,
                    self._roi_key_params(key),
                ).fetchone()
            return int(row[0])

        except Exception as e:
            logger.error("count_roi_metrics_failed", error=str(e))
            raise StorageError(f"Failed to count ROI metrics: {e}") from e

    # =========================================================================
    # Sample Writers
    # =========================================================================

    def _write_row(self, table: str, values: dict[str, Any]) -> int:
        columns = list(values)
        try:
            with self._get_connection() as conn:
                row_id = self._insert_returning_id(
                    conn, table, columns, self._params(list(values.values()))
                )
                conn.commit()
            return row_id

        except Exception as e:
            logger.error("write_row_failed", table=table, error=str(e))
            raise StorageError(f"Failed to write {table} row: {e}") from e

    def write_agent(self, name, agent_type, business_type=None) -> int:
        return self._write_row(
            "agents",
            {"name": name, "agent_type": agent_type, "business_type": business_type},
        )

    def write_request(
        self,
        created_at,
        status="pending",
        agent_id=None,
        business_type=None,
        title="request",
        created_by=None,
    ) -> int:
        return self._write_row(
            "portal_requests",
            {
                "title": title,
                "agent_id": agent_id,
                "business_type": business_type,
                "status": status,
                "created_by": created_by,
                "created_at": created_at,
            },
        )

    def write_agent_metric(self, agent_id, timestamp, **values) -> int:
        unknown = set(values) - set(AGENT_METRIC_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown agent metric columns: {sorted(unknown)}")
        return self._write_row(
            "agent_metrics",
            {"agent_id": agent_id, "recorded_at": timestamp, **values},
        )

    def write_agent_task(self, agent_id, status, received_at) -> int:
        return self._write_row(
            "agent_tasks",
            {"agent_id": agent_id, "status": status, "received_at": received_at},
        )

    def write_user(self, user_id) -> None:
        self._write_row("portal_users", {"user_id": user_id, "created_at": datetime.utcnow()})

    def write_user_business_domain(self, user_id, business_type) -> None:
        self._write_row(
            "user_business_domain",
            {"user_id": user_id, "business_type": business_type},
        )

    def write_collaboration_metric(
        self,
        period_start,
        period_end,
        business_type=None,
        agent_type=None,
        agent_id=None,
        **values,
    ) -> int:
        unknown = set(values) - set(COLLABORATION_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown collaboration columns: {sorted(unknown)}")
        return self._write_row(
            "human_ai_collaboration_metrics",
            {
                "agent_id": agent_id,
                "period_start": period_start,
                "period_end": period_end,
                "business_type": business_type,
                "agent_type": agent_type,
                **values,
            },
        )

    def write_risk_item(
        self,
        created_at,
        scores,
        business_type=None,
        agent_type=None,
        agent_id=None,
        use_case=None,
        audit_required=False,
        audit_completed=False,
        human_reviewed=False,
    ) -> int:
        ethics, reputation, operational, legal = scores
        return self._write_row(
            "risk_management",
            {
                "agent_id": agent_id,
                "use_case": use_case,
                "business_type": business_type,
                "agent_type": agent_type,
                "risk_ethics_score": ethics,
                "risk_reputation_score": reputation,
                "risk_operational_score": operational,
                "risk_legal_score": legal,
                "audit_required": audit_required,
                "audit_completed": audit_completed,
                "human_reviewed": human_reviewed,
                "created_at": created_at,
            },
        )

    def write_funnel_event(self, user_id, stage, event_time, business_type=None, agent_type=None) -> int:
        return self._write_row(
            "adoption_funnel_events",
            {
                "user_id": user_id,
                "stage": stage,
                "business_type": business_type,
                "agent_type": agent_type,
                "event_time": event_time,
            },
        )

    def clear_for_testing(self) -> None:
        """
        Truncate all tables. For testing only, use when TESTING=true.
        Allows each test to start with a clean slate.
        """
        if not os.environ.get("TESTING"):
            return
        with self._get_connection() as conn:
            for table in TABLES:
                conn.execute(f"DELETE FROM {table}")
            conn.commit()
