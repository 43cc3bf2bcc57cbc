"""
Abstract storage interface for the portal metrics engine.

The formula layer is written once against this contract. The bundled
backends (DuckDB, SQLite) share their queries through ``SQLStorageBackend``
and differ only in connection handling, schema DDL and query dialect.

The contract groups into four roles:
- Raw aggregate provider: windowed sums, averages and counts
- Baseline store: metric inputs, task baselines, labour costs
- ROI store: the single cached ROI row per (window, filter) key
- Sample writers: operational rows, used by seeding scripts and tests
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Optional

from portal_metrics.models.baselines import (
    BaselineEntry,
    LaborCost,
    ROIMetricKey,
    ROIMetricRecord,
    TaskBaseline,
)
from portal_metrics.models.metrics import MetricWindow, RawAggregate


class StorageError(Exception):
    """Base exception for all storage operation failures."""

    pass


class RawAggregateFetchError(StorageError):
    """The raw aggregate query failed; no payload can be built without it."""

    pass


class StorageBackend(ABC):
    """
    Abstract base class for all storage implementations.

    Implementations should ensure:
    - Every driver error is wrapped in ``StorageError`` and logged
    - Upserts match keys null-safely (``NULL`` scope equals ``NULL`` scope)
    - List methods return rows in a deterministic order
    """

    # =========================================================================
    # Raw Aggregate Provider
    # =========================================================================

    @abstractmethod
    def fetch_raw_aggregate(
        self,
        window: MetricWindow,
        prev_window: MetricWindow,
        agent_type: Optional[str] = None,
        business_type: Optional[str] = None,
    ) -> RawAggregate:
        """
        Aggregate operational samples for a window and filter scope.

        Args:
            window: Current reporting window
            prev_window: Preceding window, used only for ``prev_total_requests``
            agent_type: Optional agent category filter
            business_type: Optional business domain filter

        Returns:
            RawAggregate with driver-native values (not yet coerced)

        Raises:
            RawAggregateFetchError: If any aggregate query fails
        """
        pass

    # =========================================================================
    # Baseline Store
    # =========================================================================

    @abstractmethod
    def list_baselines(
        self,
        business_type: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> list[BaselineEntry]:
        """
        List baseline entries applicable to a scope.

        Returns entries whose scope is global or matches the requested
        value on each dimension, ordered from least to most specific so
        that a last-seen-wins merge keeps the most specific entry.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    def list_all_baselines(self) -> list[BaselineEntry]:
        """List every baseline entry ordered by metric key."""
        pass

    @abstractmethod
    def upsert_baseline(self, entry: BaselineEntry) -> BaselineEntry:
        """
        Insert or update a baseline keyed by (metric_key, business_type, agent_type).

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def seed_default_baselines(self, entries: list[BaselineEntry]) -> int:
        """
        Insert global baseline rows that do not exist yet.

        Existing rows (including operator-edited values) are left untouched.

        Returns:
            Number of rows inserted
        """
        pass

    @abstractmethod
    def list_task_baselines(self, domain: Optional[str] = None) -> list[TaskBaseline]:
        """
        List task baselines, newest first.

        Args:
            domain: When given, only task baselines of that domain
        """
        pass

    @abstractmethod
    def upsert_task_baseline(self, task_baseline: TaskBaseline) -> TaskBaseline:
        """Insert or update a task baseline keyed by (task_code, domain)."""
        pass

    @abstractmethod
    def list_labor_costs(self, business_type: Optional[str] = None) -> list[LaborCost]:
        """
        List labour costs applicable to a business domain.

        Rows scoped to ``business_type`` come first, then scope-less rows.
        Without a business type only scope-less rows are returned.
        """
        pass

    @abstractmethod
    def upsert_labor_cost(self, labor_cost: LaborCost) -> LaborCost:
        """Insert or update a labour cost keyed by (role, business_type)."""
        pass

    # =========================================================================
    # ROI Store
    # =========================================================================

    @abstractmethod
    def upsert_roi_metric(self, record: ROIMetricRecord) -> ROIMetricRecord:
        """
        Write the cached ROI figures for a natural key.

        A second write with the same key overwrites the stored figures
        (last writer wins, no merge).

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def read_roi_metric(self, key: ROIMetricKey) -> Optional[ROIMetricRecord]:
        """Read the cached ROI row for a key, or ``None``."""
        pass

    @abstractmethod
    def count_roi_metrics(self, key: ROIMetricKey) -> int:
        """Number of stored rows for a key (always 0 or 1 when upserts are used)."""
        pass

    # =========================================================================
    # Sample Writers
    # =========================================================================

    @abstractmethod
    def write_agent(
        self,
        name: str,
        agent_type: str,
        business_type: Optional[str] = None,
    ) -> int:
        """Register an agent and return its id."""
        pass

    @abstractmethod
    def write_request(
        self,
        created_at: datetime,
        status: str = "pending",
        agent_id: Optional[int] = None,
        business_type: Optional[str] = None,
        title: str = "request",
        created_by: Optional[str] = None,
    ) -> int:
        """Record a portal request and return its id."""
        pass

    @abstractmethod
    def write_agent_metric(self, agent_id: int, timestamp: datetime, **values: Any) -> int:
        """
        Record an agent telemetry sample.

        Accepted values: requests_processed, avg_latency, error_rate,
        queue_time, ai_assisted_decisions, ai_assisted_decisions_validated,
        ai_recommendations, decisions_overridden, cognitive_load_before_score,
        cognitive_load_after_score, handoff_time_seconds,
        team_satisfaction_score, innovation_count.
        """
        pass

    @abstractmethod
    def write_agent_task(self, agent_id: int, status: str, received_at: datetime) -> int:
        """Record an agent task outcome."""
        pass

    @abstractmethod
    def write_user(self, user_id: str) -> None:
        """Register a portal user."""
        pass

    @abstractmethod
    def write_user_business_domain(self, user_id: str, business_type: str) -> None:
        """Map a user to a business domain."""
        pass

    @abstractmethod
    def write_collaboration_metric(
        self,
        period_start: date,
        period_end: date,
        business_type: Optional[str] = None,
        agent_type: Optional[str] = None,
        agent_id: Optional[int] = None,
        **values: Any,
    ) -> int:
        """
        Record a direct human/AI collaboration sample.

        Accepted values: decision_accuracy_pct, override_rate_pct,
        cognitive_load_reduction_pct, handoff_time_seconds,
        team_satisfaction_score, innovation_count.
        """
        pass

    @abstractmethod
    def write_risk_item(
        self,
        created_at: datetime,
        scores: tuple[int, int, int, int],
        business_type: Optional[str] = None,
        agent_type: Optional[str] = None,
        agent_id: Optional[int] = None,
        use_case: Optional[str] = None,
        audit_required: bool = False,
        audit_completed: bool = False,
        human_reviewed: bool = False,
    ) -> int:
        """
        Record a risk assessment.

        Args:
            scores: (ethics, reputation, operational, legal) sub-scores
        """
        pass

    @abstractmethod
    def write_funnel_event(
        self,
        user_id: str,
        stage: str,
        event_time: datetime,
        business_type: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> int:
        """Record an adoption funnel event."""
        pass

    @abstractmethod
    def clear_for_testing(self) -> None:
        """Delete all rows from every table. For tests only."""
        pass


# Metric value columns accepted by ``write_agent_metric``.
AGENT_METRIC_COLUMNS = (
    "requests_processed",
    "avg_latency",
    "error_rate",
    "queue_time",
    "ai_assisted_decisions",
    "ai_assisted_decisions_validated",
    "ai_recommendations",
    "decisions_overridden",
    "cognitive_load_before_score",
    "cognitive_load_after_score",
    "handoff_time_seconds",
    "team_satisfaction_score",
    "innovation_count",
)

# Value columns accepted by ``write_collaboration_metric``.
COLLABORATION_COLUMNS = (
    "decision_accuracy_pct",
    "override_rate_pct",
    "cognitive_load_reduction_pct",
    "handoff_time_seconds",
    "team_satisfaction_score",
    "innovation_count",
)

# Request states counted as pending / task states counted as success or error.
PENDING_REQUEST_STATUSES = ("pending", "in_progress")
SUCCESS_TASK_STATUSES = ("completed", "success")
ERROR_TASK_STATUSES = ("failed", "error")
