"""
Unit tests for DashboardService: pipeline wiring, failure boundaries and
the ROI cache side effect.
"""

from datetime import date

import pytest

from portal_metrics.engine.dashboard import DashboardService
from portal_metrics.engine.roi_cache import RoiCacheWriter
from portal_metrics.models.baselines import LaborCost, ROIMetricKey, TaskBaseline
from portal_metrics.models.enums import Period
from portal_metrics.storage.base import RawAggregateFetchError, StorageError
from tests.conftest import TODAY, MockStorage, make_baseline_entry, make_test_settings, make_window


@pytest.fixture
def service(mock_storage):
    return DashboardService(mock_storage, make_test_settings())


def _roi_key(business_type=None, agent_type=None):
    window = make_window()
    return ROIMetricKey(
        period_start=window.date_from,
        period_end=window.date_to,
        business_type=business_type,
        agent_type=agent_type,
    )


# =============================================================================
# Happy path
# =============================================================================


def test_get_metrics_computes_payload(service, mock_storage):
    payload = service.get_metrics("week", today=TODAY)

    assert payload.is_fallback is False
    assert payload.period == "week"
    assert payload.date_from == date(2026, 10, 13)
    assert payload.date_to == date(2026, 10, 20)
    assert payload.total_requests == 120
    assert payload.growth_rate_pct == 20.00
    assert payload.sla_compliance_pct == 85.00
    assert payload.task_success_rate_pct == 90.00
    assert payload.user_coverage_pct == 80.00


def test_get_metrics_passes_windows_and_filters(service, mock_storage):
    service.get_metrics("month", agent_type="document", business_type="finance", today=TODAY)

    window, prev_window, agent_type, business_type = mock_storage.fetch_calls[0]
    assert window.days == 30
    assert prev_window.date_to == window.date_from
    assert agent_type == "document"
    assert business_type == "finance"


def test_empty_filters_are_treated_as_absent(service, mock_storage):
    service.get_metrics("week", agent_type="", business_type="", today=TODAY)

    _, _, agent_type, business_type = mock_storage.fetch_calls[0]
    assert agent_type is None
    assert business_type is None


def test_unknown_period_resolves_to_week(service):
    payload = service.get_metrics("fortnight", today=TODAY)

    assert payload.period == Period.WEEK.value
    assert (payload.date_to - payload.date_from).days == 7


def test_breakdown_error_rates_are_normalized(service):
    payload = service.get_metrics("week", today=TODAY)

    rates = {row.agent_type: row.error_rate_pct for row in payload.breakdown}
    assert rates == {"document": 1.00, "assistant": 3.00}


def test_scoped_baselines_reach_the_payload(service, mock_storage):
    mock_storage.baselines = [make_baseline_entry("cost_per_hour", 60000, business_type="finance")]

    payload = service.get_metrics("week", business_type="finance", today=TODAY)

    baselines = {b.metric_key: b.value for b in payload.baselines}
    assert baselines["cost_per_hour"] == 60000


# =============================================================================
# Failure boundaries
# =============================================================================


def test_fetch_failure_raises(service, mock_storage):
    mock_storage.fetch_error = RuntimeError("connection refused")

    with pytest.raises(RawAggregateFetchError):
        service.get_metrics("week", today=TODAY)


def test_fetch_failure_keeps_original_error_type(service, mock_storage):
    mock_storage.fetch_error = RawAggregateFetchError("query failed")

    with pytest.raises(RawAggregateFetchError, match="query failed"):
        service.get_metrics("week", today=TODAY)


def test_fetch_failure_writes_nothing(service, mock_storage):
    mock_storage.fetch_error = RuntimeError("connection refused")

    with pytest.raises(RawAggregateFetchError):
        service.get_metrics("week", today=TODAY)

    assert mock_storage.roi_rows == {}


def test_assembly_failure_returns_fallback():
    storage = MockStorage()
    # Skip validation so a malformed row reaches the assembler
    storage.raw = storage.raw.model_copy(update={"breakdown": ["not-a-row"]})
    service = DashboardService(storage, make_test_settings())

    payload = service.get_metrics("month", today=TODAY)

    assert payload.is_fallback is True
    assert payload.period == "month"
    assert payload.total_requests == 0
    assert payload.growth_rate_pct == 0.0
    assert payload.savings.roi_ratio_pct == 0.0
    assert payload.breakdown == []
    assert payload.baselines


def test_baseline_failure_returns_fallback_with_default_baselines(service, mock_storage, monkeypatch):
    def broken(**kwargs):
        raise StorageError("baselines table missing")

    monkeypatch.setattr(mock_storage, "list_baselines", broken)

    payload = service.get_metrics("week", today=TODAY)

    assert payload.is_fallback is True
    keys = {b.metric_key for b in payload.baselines}
    assert "cost_per_hour" in keys
    assert mock_storage.roi_rows == {}


def test_override_failure_returns_fallback(service, mock_storage, monkeypatch):
    def broken(**kwargs):
        raise StorageError("task_baselines locked")

    monkeypatch.setattr(mock_storage, "list_task_baselines", broken)

    payload = service.get_metrics("week", business_type="finance", today=TODAY)

    assert payload.is_fallback is True
    assert payload.date_from == date(2026, 10, 13)


# =============================================================================
# ROI cache
# =============================================================================


def test_roi_row_written_per_key(service, mock_storage):
    service.get_metrics("week", today=TODAY)
    service.get_metrics("week", business_type="finance", today=TODAY)

    assert len(mock_storage.roi_rows) == 2
    assert mock_storage.count_roi_metrics(_roi_key()) == 1
    assert mock_storage.count_roi_metrics(_roi_key(business_type="finance")) == 1


def test_roi_row_last_write_wins(service, mock_storage):
    service.get_metrics("week", today=TODAY)
    mock_storage.raw = mock_storage.raw.model_copy(update={"completed_requests": 10})
    service.get_metrics("week", today=TODAY)

    record = mock_storage.read_roi_metric(_roi_key())
    assert len(mock_storage.roi_rows) == 1
    # 12 min baseline, ~0.04 min response, 10 completions
    assert record.saved_hours == pytest.approx(1.99, abs=0.01)


def test_roi_cache_failure_is_swallowed(service, mock_storage):
    mock_storage.roi_write_error = StorageError("disk full")

    payload = service.get_metrics("week", today=TODAY)

    assert payload.is_fallback is False
    assert payload.total_requests == 120


def test_roi_cache_can_be_disabled(mock_storage):
    service = DashboardService(mock_storage, make_test_settings(roi_cache_enabled=False))

    payload = service.get_metrics("week", today=TODAY)

    assert payload.is_fallback is False
    assert mock_storage.roi_rows == {}


def test_roi_record_is_rounded():
    from portal_metrics.models.metrics import DerivedMetrics

    record = RoiCacheWriter.build_record(
        make_window(),
        "finance",
        None,
        DerivedMetrics(saved_hours=1.23456, cost_savings=55555.555, roi_ratio_pct=12.345),
    )

    assert record.saved_hours == 1.23
    assert record.saved_cost == 55555.56
    assert record.roi_ratio_pct == 12.35
    assert record.period_end == make_window().date_to


def test_roi_writer_reports_failure(mock_storage):
    from portal_metrics.models.metrics import DerivedMetrics

    mock_storage.roi_write_error = StorageError("disk full")
    writer = RoiCacheWriter(mock_storage)

    assert writer.write(make_window(), None, None, DerivedMetrics()) is False


# =============================================================================
# Cost overrides
# =============================================================================


def test_task_baseline_ignored_without_business_filter(service, mock_storage):
    mock_storage.task_baselines = [
        TaskBaseline(task_code="invoice", domain="finance", before_time_min=30)
    ]

    payload = service.get_metrics("week", today=TODAY)

    assert payload.savings.baseline_minutes_per_request == 12.00


def test_global_labor_cost_applied_without_business_filter(service, mock_storage):
    mock_storage.labor_costs = [LaborCost(role="staff", hourly_cost=60000)]

    payload = service.get_metrics("week", today=TODAY)

    savings = payload.savings
    assert savings.time_savings_minutes > 0
    assert savings.cost_savings == pytest.approx(savings.time_savings_minutes / 60 * 60000, rel=1e-4)


def test_load_overrides_without_filter_uses_global_labor_cost(service, mock_storage):
    mock_storage.task_baselines = [TaskBaseline(task_code="invoice", domain="finance", before_time_min=30)]
    mock_storage.labor_costs = [
        LaborCost(role="accountant", hourly_cost=70000, business_type="finance"),
        LaborCost(role="staff", hourly_cost=60000),
    ]

    overrides = service.load_overrides(None)

    assert overrides.task_baseline is None
    assert overrides.labor_cost.hourly_cost == 60000


def test_overrides_applied_with_business_filter(service, mock_storage):
    mock_storage.task_baselines = [
        TaskBaseline(task_code="invoice", domain="finance", before_time_min=30)
    ]
    mock_storage.labor_costs = [LaborCost(role="accountant", hourly_cost=70000, business_type="finance")]

    payload = service.get_metrics("week", business_type="finance", today=TODAY)

    assert payload.savings.baseline_minutes_per_request == 30.00
    assert mock_storage.read_roi_metric(_roi_key(business_type="finance")).saved_cost > 0


def test_load_overrides_prefers_domain_labor_cost(service, mock_storage):
    mock_storage.labor_costs = [
        LaborCost(role="staff", hourly_cost=40000),
        LaborCost(role="accountant", hourly_cost=70000, business_type="finance"),
    ]

    overrides = service.load_overrides("finance")

    assert overrides.labor_cost.hourly_cost == 70000
    assert overrides.task_baseline is None


def test_load_overrides_falls_back_to_global_labor_cost(service, mock_storage):
    mock_storage.labor_costs = [LaborCost(role="staff", hourly_cost=40000)]

    overrides = service.load_overrides("hr")

    assert overrides.labor_cost.hourly_cost == 40000
