"""
Pytest configuration and shared fixtures for the portal metrics test suite.

Data factories, an in-memory storage mock, real DuckDB/SQLite stores in a
temp dir, and a FastAPI test client wired to the mock.
"""

import os
import tempfile
from datetime import date, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing the app. Each run gets its own
# database files so that the real get_storage() never touches ./data.
_test_dir = tempfile.mkdtemp(prefix="portal_metrics_test_")
os.environ["TESTING"] = "true"
os.environ["DB_PATH"] = os.path.join(_test_dir, "portal.duckdb")
os.environ["SQLITE_PATH"] = os.path.join(_test_dir, "portal.sqlite3")


from portal_metrics.config import Settings
from portal_metrics.models.baselines import (
    BaselineEntry,
    LaborCost,
    ROIMetricKey,
    ROIMetricRecord,
    TaskBaseline,
)
from portal_metrics.models.metrics import MetricWindow, RawAggregate
from portal_metrics.storage import DuckDBStorage, SQLiteStorage, get_storage

# Reference date of the fixtures: the reported week is 2026-10-13 .. 2026-10-19
TODAY = date(2026, 10, 20)


# ---------------------------------------------------------------------------
# Model factories, reusable across all test suites
# ---------------------------------------------------------------------------


def make_raw_aggregate(**overrides) -> RawAggregate:
    """Factory for a RawAggregate with realistic, internally consistent values."""
    defaults = dict(
        total_requests=120,
        prev_total_requests=100,
        completed_requests=90,
        pending_requests=20,
        avg_latency_ms=1500,
        avg_error_rate=0.02,
        avg_queue_time_ms=800,
        requests_processed=400,
        ai_assisted_decisions=50,
        ai_validated_decisions=40,
        ai_recommendations=40,
        decisions_overridden=6,
        avg_cognitive_load_before=8,
        avg_cognitive_load_after=5,
        avg_handoff_time_seconds=60,
        avg_team_satisfaction_score=4.2,
        innovation_count=3,
        total_tasks=200,
        success_tasks=180,
        error_tasks=10,
        total_users=50,
        mapped_users=40,
        total_risk_items=10,
        avg_risk_score=2.5,
        audit_required_count=6,
        audit_completed_count=3,
        human_reviewed_count=8,
        breakdown=[
            {
                "agent_type": "document",
                "business_type": "finance",
                "requests_processed": 250,
                "avg_latency_ms": 1400,
                "avg_error_rate": 0.01,
            },
            {
                "agent_type": "assistant",
                "business_type": "hr",
                "requests_processed": 150,
                "avg_latency_ms": 1700,
                "avg_error_rate": 3,
            },
        ],
        domain_breakdown=[
            {"business_type": "finance", "request_count": 80, "completed_count": 60},
            {"business_type": "hr", "request_count": 40, "completed_count": 30},
        ],
        funnel_breakdown=[
            {"stage": "visited", "user_count": 40, "event_count": 55},
            {"stage": "adopted", "user_count": 22, "event_count": 22},
        ],
    )
    defaults.update(overrides)
    return RawAggregate(**defaults)


def make_baseline_entry(
    metric_key: str = "cost_per_hour",
    value: float = 45000,
    business_type: Optional[str] = None,
    agent_type: Optional[str] = None,
    **overrides,
) -> BaselineEntry:
    """Factory for a BaselineEntry (global scope by default)."""
    return BaselineEntry(
        metric_key=metric_key,
        value=value,
        business_type=business_type,
        agent_type=agent_type,
        **overrides,
    )


def make_window(today: date = TODAY, days: int = 7) -> MetricWindow:
    """Factory for the window of ``days`` days ending before ``today``."""
    return MetricWindow(date_from=today - timedelta(days=days), date_to=today, days=days)


def make_test_settings(**overrides) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, **overrides)


# ---------------------------------------------------------------------------
# Mock storage
# ---------------------------------------------------------------------------


def _roi_key(key: ROIMetricKey) -> tuple:
    return (key.period_start, key.period_end, key.business_type, key.agent_type)


class MockStorage:
    """
    In-memory mock of StorageBackend for unit tests.

    ``fetch_error`` / ``roi_write_error`` make the matching call raise.
    """

    def __init__(self, raw: Optional[RawAggregate] = None):
        self.raw = raw or make_raw_aggregate()
        self.fetch_error: Optional[Exception] = None
        self.roi_write_error: Optional[Exception] = None
        self.fetch_calls: list[tuple] = []
        self.baselines: list[BaselineEntry] = []
        self.task_baselines: list[TaskBaseline] = []
        self.labor_costs: list[LaborCost] = []
        self.roi_rows: dict[tuple, ROIMetricRecord] = {}

    # --- Raw aggregate ---
    def fetch_raw_aggregate(self, window, prev_window, agent_type=None, business_type=None):
        self.fetch_calls.append((window, prev_window, agent_type, business_type))
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.raw.model_copy(update={"date_from": window.date_from, "date_to": window.date_to})

    # --- Baselines ---
    def list_baselines(self, business_type=None, agent_type=None):
        rows = [
            b for b in self.baselines
            if b.business_type in (None, business_type) and b.agent_type in (None, agent_type)
        ]
        return sorted(rows, key=lambda b: b.specificity)

    def list_all_baselines(self):
        return sorted(self.baselines, key=lambda b: b.metric_key)

    def upsert_baseline(self, entry):
        key = (entry.metric_key, entry.business_type, entry.agent_type)
        self.baselines = [
            b for b in self.baselines if (b.metric_key, b.business_type, b.agent_type) != key
        ]
        self.baselines.append(entry)
        return entry

    def seed_default_baselines(self, entries):
        existing = {b.metric_key for b in self.baselines if b.specificity == 0}
        new = [e for e in entries if e.metric_key not in existing]
        self.baselines.extend(new)
        return len(new)

    def list_task_baselines(self, domain=None):
        return [t for t in reversed(self.task_baselines) if domain is None or t.domain == domain]

    def upsert_task_baseline(self, task_baseline):
        self.task_baselines = [
            t for t in self.task_baselines
            if (t.task_code, t.domain) != (task_baseline.task_code, task_baseline.domain)
        ]
        self.task_baselines.append(task_baseline)
        return task_baseline

    def list_labor_costs(self, business_type=None):
        scoped = [
            c for c in reversed(self.labor_costs)
            if business_type is not None and c.business_type == business_type
        ]
        unscoped = [c for c in reversed(self.labor_costs) if c.business_type is None]
        return scoped + unscoped

    def upsert_labor_cost(self, labor_cost):
        self.labor_costs = [
            c for c in self.labor_costs
            if (c.role, c.business_type) != (labor_cost.role, labor_cost.business_type)
        ]
        self.labor_costs.append(labor_cost)
        return labor_cost

    # --- ROI cache ---
    def upsert_roi_metric(self, record):
        if self.roi_write_error is not None:
            raise self.roi_write_error
        self.roi_rows[_roi_key(record)] = record
        return record

    def read_roi_metric(self, key):
        return self.roi_rows.get(_roi_key(key))

    def count_roi_metrics(self, key):
        return 1 if _roi_key(key) in self.roi_rows else 0


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_storage():
    """Fresh MockStorage instance."""
    return MockStorage()


@pytest.fixture
def test_settings():
    """Default settings, independent of any .env file."""
    return make_test_settings()


@pytest.fixture
def duckdb_storage(tmp_path):
    """DuckDB store in a temp dir (a file: :memory: is per-connection)."""
    storage = DuckDBStorage(db_path=str(tmp_path / "portal.duckdb"))
    yield storage
    storage.close()


@pytest.fixture
def sqlite_storage(tmp_path):
    """SQLite store in a temp dir."""
    return SQLiteStorage(db_path=str(tmp_path / "portal.sqlite3"))


@pytest.fixture(params=["duckdb", "sqlite"])
def sql_storage(request, tmp_path):
    """Each real storage backend in turn."""
    if request.param == "duckdb":
        storage = DuckDBStorage(db_path=str(tmp_path / "portal.duckdb"))
        yield storage
        storage.close()
    else:
        yield SQLiteStorage(db_path=str(tmp_path / "portal.sqlite3"))


@pytest.fixture
def client(mock_storage):
    """FastAPI test client backed by MockStorage."""
    from portal_metrics.main import app

    app.dependency_overrides[get_storage] = lambda: mock_storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
