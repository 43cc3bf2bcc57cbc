"""
Unit tests for the derived metric calculator.
"""

from decimal import Decimal

import pytest

from portal_metrics.engine.baselines import resolve_baselines
from portal_metrics.engine.calculator import (
    CostOverrides,
    compute_derived_metrics,
    normalize_error_rate,
    ratio_pct,
    sla_compliance_pct,
)
from portal_metrics.models.baselines import LaborCost, TaskBaseline
from portal_metrics.utils.numeric import round_to
from tests.conftest import make_baseline_entry, make_raw_aggregate


def _baselines(*entries):
    return resolve_baselines(list(entries))


# =============================================================================
# Helpers
# =============================================================================


def test_ratio_pct_zero_denominator():
    assert ratio_pct(5, 0) == 0.0
    assert ratio_pct(5, -1) == 0.0


@pytest.mark.parametrize("raw,expected", [(0.42, 0.42), (42, 0.42), (1, 1.0), (0, 0.0), (-0.5, 0.0), ("3", 0.03), (None, 0.0)])
def test_normalize_error_rate(raw, expected):
    assert normalize_error_rate(raw) == pytest.approx(expected)


@pytest.mark.parametrize(
    "latency_total,sla,expected",
    [
        (1500, 2000, 100.0),
        (2000, 2000, 100.0),
        (2300, 2000, 85.0),
        (4000, 2000, 0.0),
        (9000, 2000, 0.0),
        (0, 0, 100.0),
        (10, 0, 0.0),
    ],
)
def test_sla_compliance_pct(latency_total, sla, expected):
    assert sla_compliance_pct(latency_total, sla) == pytest.approx(expected)


# =============================================================================
# Volume and quality
# =============================================================================


def test_growth_rate():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())
    assert round_to(derived.growth_rate_pct) == 20.00


def test_growth_rate_without_previous_window_is_zero():
    derived = compute_derived_metrics(make_raw_aggregate(prev_total_requests=0), _baselines())
    assert derived.growth_rate_pct == 0.0


def test_negative_growth():
    raw = make_raw_aggregate(total_requests=75, prev_total_requests=100)
    derived = compute_derived_metrics(raw, _baselines())
    assert round_to(derived.growth_rate_pct) == -25.00


def test_sla_compliance_from_latency_and_queue():
    raw = make_raw_aggregate(avg_latency_ms=1500, avg_queue_time_ms=800)
    derived = compute_derived_metrics(raw, _baselines())
    assert round_to(derived.sla_compliance_pct) == 85.00


def test_sla_compliance_uses_baseline_sla():
    raw = make_raw_aggregate(avg_latency_ms=1500, avg_queue_time_ms=800)
    derived = compute_derived_metrics(raw, _baselines(make_baseline_entry("sla_latency_ms", 2500)))
    assert derived.sla_compliance_pct == 100.0
    assert derived.sla_latency_ms == 2500


@pytest.mark.parametrize("error_rate", [0.42, 42, "42", Decimal("0.42")])
def test_error_rate_pct_accepts_fraction_or_percentage(error_rate):
    derived = compute_derived_metrics(make_raw_aggregate(avg_error_rate=error_rate), _baselines())
    assert round_to(derived.error_rate_pct) == 42.00
    assert round_to(derived.stability_score) == 58.00
    assert round_to(derived.quality_score) == 2.90


def test_task_rates():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())
    assert round_to(derived.task_success_rate_pct) == 90.00
    assert round_to(derived.task_error_rate_pct) == 5.00


def test_task_rates_without_tasks_are_zero():
    raw = make_raw_aggregate(total_tasks=0, success_tasks=0, error_tasks=0)
    derived = compute_derived_metrics(raw, _baselines())
    assert derived.task_success_rate_pct == 0.0
    assert derived.task_error_rate_pct == 0.0


def test_user_coverage():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())
    assert round_to(derived.user_coverage_pct) == 80.00


def test_user_coverage_without_users_is_zero():
    derived = compute_derived_metrics(make_raw_aggregate(total_users=None, mapped_users=None), _baselines())
    assert derived.user_coverage_pct == 0.0


# =============================================================================
# Savings and ROI
# =============================================================================


def _roi_raw(**overrides):
    # 20s latency + 10s queue = 0.5 minute per request
    values = dict(completed_requests=100, avg_latency_ms=20000, avg_queue_time_ms=10000)
    values.update(overrides)
    return make_raw_aggregate(**values)


def test_roi_ratio_against_baseline_cost():
    baselines = _baselines(
        make_baseline_entry("cost_per_hour", 60000),
        make_baseline_entry("baseline_minutes_per_request", 1),
    )

    derived = compute_derived_metrics(_roi_raw(), baselines)

    assert derived.avg_response_minutes == pytest.approx(0.5)
    assert derived.time_savings_minutes == pytest.approx(50)
    assert round_to(derived.cost_savings) == 50000.00
    assert round_to(derived.baseline_cost) == 100000.00
    assert round_to(derived.investment_cost) == 100000.00
    assert round_to(derived.roi_ratio_pct) == 50.00


def test_roi_ratio_uses_investment_cost_when_positive():
    baselines = _baselines(
        make_baseline_entry("cost_per_hour", 60000),
        make_baseline_entry("baseline_minutes_per_request", 1),
        make_baseline_entry("investment_cost", 25000),
    )

    derived = compute_derived_metrics(_roi_raw(), baselines)

    assert round_to(derived.investment_cost) == 25000.00
    assert round_to(derived.roi_ratio_pct) == 200.00


def test_roi_ratio_zero_investment_and_no_completions():
    derived = compute_derived_metrics(_roi_raw(completed_requests=0), _baselines())

    assert derived.baseline_cost == 0.0
    assert derived.roi_ratio_pct == 0.0


def test_time_savings_never_negative():
    # 30 minutes per request is slower than the 12 minute default
    raw = make_raw_aggregate(avg_latency_ms=1_800_000, avg_queue_time_ms=0)
    derived = compute_derived_metrics(raw, _baselines())
    assert derived.time_savings_minutes == 0.0
    assert derived.cost_savings == 0.0


def test_task_baseline_override_takes_precedence():
    overrides = CostOverrides(
        task_baseline=TaskBaseline(task_code="invoice", domain="finance", before_time_min=2)
    )
    baselines = _baselines(make_baseline_entry("cost_per_hour", 60000))

    derived = compute_derived_metrics(_roi_raw(), baselines, overrides)

    assert derived.baseline_minutes_per_request == 2
    assert derived.time_savings_minutes == pytest.approx(150)


def test_task_baseline_before_cost_sets_baseline_cost():
    overrides = CostOverrides(
        task_baseline=TaskBaseline(
            task_code="invoice", domain="finance", before_time_min=1, before_cost=1000
        )
    )
    baselines = _baselines(make_baseline_entry("cost_per_hour", 60000))

    derived = compute_derived_metrics(_roi_raw(), baselines, overrides)

    assert round_to(derived.baseline_cost) == 100000.00
    assert round_to(derived.roi_ratio_pct) == 50.00


def test_zero_task_baseline_minutes_is_ignored():
    overrides = CostOverrides(
        task_baseline=TaskBaseline(task_code="invoice", domain="finance", before_time_min=0)
    )
    derived = compute_derived_metrics(_roi_raw(), _baselines(), overrides)
    assert derived.baseline_minutes_per_request == 12


def test_labor_cost_override_takes_precedence():
    overrides = CostOverrides(labor_cost=LaborCost(role="analyst", hourly_cost=90000))
    derived = compute_derived_metrics(_roi_raw(), _baselines(), overrides)
    assert derived.cost_per_hour == 90000


def test_zero_labor_cost_is_ignored():
    overrides = CostOverrides(labor_cost=LaborCost(role="analyst", hourly_cost=0))
    derived = compute_derived_metrics(_roi_raw(), _baselines(), overrides)
    assert derived.cost_per_hour == 45000


# =============================================================================
# Collaboration, risk and value
# =============================================================================


def test_collaboration_estimates_from_telemetry():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())

    assert round_to(derived.decision_accuracy_pct) == 80.00
    assert round_to(derived.override_rate_pct) == 15.00
    assert round_to(derived.cognitive_load_reduction_pct) == 37.50
    assert derived.handoff_time_seconds == 60
    assert derived.team_satisfaction_score == pytest.approx(4.2)
    assert derived.innovation_count == 3


def test_direct_collaboration_samples_win():
    raw = make_raw_aggregate(
        collaboration_decision_accuracy_pct=91.5,
        collaboration_override_rate_pct="7.25",
        collaboration_cognitive_reduction_pct=Decimal("22"),
        collaboration_handoff_seconds=35,
        collaboration_satisfaction=4.8,
        collaboration_innovation_count=9,
    )

    derived = compute_derived_metrics(raw, _baselines())

    assert derived.decision_accuracy_pct == 91.5
    assert derived.override_rate_pct == 7.25
    assert derived.cognitive_load_reduction_pct == 22
    assert derived.handoff_time_seconds == 35
    assert derived.team_satisfaction_score == 4.8
    assert derived.innovation_count == 9


def test_collaboration_without_samples_is_zero():
    raw = make_raw_aggregate(
        ai_assisted_decisions=0,
        ai_recommendations=None,
        avg_cognitive_load_before=None,
        avg_cognitive_load_after=None,
        avg_handoff_time_seconds=None,
    )

    derived = compute_derived_metrics(raw, _baselines())

    assert derived.decision_accuracy_pct == 0.0
    assert derived.override_rate_pct == 0.0
    assert derived.cognitive_load_reduction_pct == 0.0
    assert derived.handoff_time_seconds == 0.0


def test_risk_rates():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())

    assert derived.risk_exposure_score == 2.5
    assert round_to(derived.audit_required_rate_pct) == 60.00
    assert round_to(derived.audit_completed_rate_pct) == 30.00
    assert round_to(derived.human_review_rate_pct) == 80.00


def test_risk_rates_without_items_are_zero():
    raw = make_raw_aggregate(total_risk_items=0, audit_required_count=0, human_reviewed_count=0)
    derived = compute_derived_metrics(raw, _baselines())
    assert derived.audit_required_rate_pct == 0.0
    assert derived.human_review_rate_pct == 0.0


def test_role_redesign_ratio():
    baselines = _baselines(
        make_baseline_entry("total_roles", 10),
        make_baseline_entry("roles_redefined", 4),
    )
    derived = compute_derived_metrics(make_raw_aggregate(), baselines)
    assert round_to(derived.role_redesign_ratio_pct) == 40.00


def test_role_redesign_ratio_without_roles_is_zero():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())
    assert derived.role_redesign_ratio_pct == 0.0


def test_value_figures_pass_through_baselines():
    baselines = _baselines(
        make_baseline_entry("customer_nps_delta", 6),
        make_baseline_entry("error_reduction_pct", 18.5),
        make_baseline_entry("decision_speed_improvement_pct", 30),
    )
    derived = compute_derived_metrics(make_raw_aggregate(), baselines)
    assert derived.customer_nps_delta == 6
    assert derived.error_reduction_pct == 18.5
    assert derived.decision_speed_improvement_pct == 30


def test_domain_penetration():
    derived = compute_derived_metrics(make_raw_aggregate(), _baselines())

    shares = {row.business_type: round_to(row.penetration_pct) for row in derived.domain_penetration}
    assert shares == {"finance": 66.67, "hr": 33.33}
    assert [row.request_count for row in derived.domain_penetration] == [80, 40]


def test_empty_aggregate_degrades_to_zero():
    derived = compute_derived_metrics(
        make_raw_aggregate(
            **{field: None for field in make_raw_aggregate().model_dump() if field not in (
                "breakdown", "domain_breakdown", "funnel_breakdown"
            )}
        ),
        _baselines(),
    )

    assert derived.growth_rate_pct == 0.0
    assert derived.error_rate_pct == 0.0
    assert derived.sla_compliance_pct == 100.0
    assert derived.roi_ratio_pct == 0.0
    assert derived.stability_score == 100.0
