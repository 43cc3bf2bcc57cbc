"""
Derived metric calculator.

Pure functions that turn a ``RawAggregate`` plus resolved baselines into
``DerivedMetrics``. Every raw value passes through ``to_number`` first, and
every ratio is guarded against a zero denominator, so one malformed or
missing sample degrades a single figure to zero instead of the whole
computation.

Figures are left unrounded here; rounding happens in the assembler.
"""

from typing import Any, Optional

from pydantic import BaseModel

from portal_metrics.models.baselines import LaborCost, ResolvedBaseline, TaskBaseline
from portal_metrics.models.enums import BaselineKey
from portal_metrics.models.metrics import DerivedMetrics, DomainPenetration, RawAggregate
from portal_metrics.utils.numeric import to_int, to_number

from .baselines import baseline_value


class CostOverrides(BaseModel):
    """Per-domain cost inputs that take precedence over baseline entries."""

    task_baseline: Optional[TaskBaseline] = None
    labor_cost: Optional[LaborCost] = None


def ratio_pct(numerator: float, denominator: float) -> float:
    """``numerator / denominator * 100``, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def normalize_error_rate(raw_error_rate: Any) -> float:
    """
    Normalize an error rate to a 0-1 fraction.

    Samples store the rate either as a fraction or as a percentage. Values
    above 1 are read as percentages.
    """
    raw = to_number(raw_error_rate)
    normalized = raw / 100 if raw > 1 else raw
    return max(0.0, normalized)


def sla_compliance_pct(latency_total: float, sla_latency_ms: float) -> float:
    """Share of the SLA budget met, 100 when within budget, linear decay above it."""
    if sla_latency_ms <= 0:
        return 100.0 if latency_total <= 0 else 0.0
    if latency_total <= sla_latency_ms:
        return 100.0
    return max(0.0, 100 - (latency_total - sla_latency_ms) / sla_latency_ms * 100)


def _prefer(direct: Any, fallback: float) -> float:
    """Direct collaboration sample when present, estimate otherwise."""
    if direct is None:
        return fallback
    return to_number(direct, fallback)


def _domain_penetration(rows: list[dict], total_requests: float) -> list[DomainPenetration]:
    penetration = []
    for row in rows:
        count = to_number(row.get("request_count"))
        penetration.append(
            DomainPenetration(
                business_type=row.get("business_type"),
                request_count=to_int(count),
                penetration_pct=ratio_pct(count, total_requests),
            )
        )
    return penetration


def compute_derived_metrics(
    raw: RawAggregate,
    baselines: dict[str, ResolvedBaseline],
    overrides: Optional[CostOverrides] = None,
) -> DerivedMetrics:
    """
    Compute every derived dashboard figure.

    Args:
        raw: Raw aggregate for the window and filter scope
        baselines: Resolved baselines (see ``resolve_baselines``)
        overrides: Task baseline and labour cost for the business domain

    Returns:
        DerivedMetrics with unrounded floats
    """
    overrides = overrides or CostOverrides()

    # Volume
    total_requests = to_number(raw.total_requests)
    prev_total_requests = to_number(raw.prev_total_requests)
    completed_requests = to_number(raw.completed_requests)
    growth_rate_pct = ratio_pct(total_requests - prev_total_requests, prev_total_requests)
    user_coverage_pct = ratio_pct(to_number(raw.mapped_users), to_number(raw.total_users))

    # Service quality
    normalized_error_rate = normalize_error_rate(raw.avg_error_rate)
    error_rate_pct = normalized_error_rate * 100
    quality_score = max(0.0, (1 - normalized_error_rate) * 5)
    stability_score = max(0.0, 100 - error_rate_pct)

    total_tasks = to_number(raw.total_tasks)
    task_success_rate_pct = ratio_pct(to_number(raw.success_tasks), total_tasks)
    task_error_rate_pct = ratio_pct(to_number(raw.error_tasks), total_tasks)

    avg_latency_ms = to_number(raw.avg_latency_ms)
    avg_queue_time_ms = to_number(raw.avg_queue_time_ms)
    latency_total = avg_latency_ms + avg_queue_time_ms
    sla_latency_ms = baseline_value(baselines, BaselineKey.SLA_LATENCY_MS)

    # Savings: task baseline and labour cost beat baseline entries when positive
    baseline_minutes = baseline_value(baselines, BaselineKey.BASELINE_MINUTES_PER_REQUEST)
    task_baseline = overrides.task_baseline
    if task_baseline is not None and to_number(task_baseline.before_time_min) > 0:
        baseline_minutes = to_number(task_baseline.before_time_min)

    cost_per_hour = baseline_value(baselines, BaselineKey.COST_PER_HOUR)
    labor_cost = overrides.labor_cost
    if labor_cost is not None and to_number(labor_cost.hourly_cost) > 0:
        cost_per_hour = to_number(labor_cost.hourly_cost)

    avg_response_minutes = latency_total / 1000 / 60
    time_savings_minutes = max(0.0, (baseline_minutes - avg_response_minutes) * completed_requests)
    saved_hours = time_savings_minutes / 60
    cost_savings = saved_hours * cost_per_hour

    before_cost = to_number(task_baseline.before_cost) if task_baseline is not None else 0.0
    if before_cost > 0:
        baseline_cost = before_cost * completed_requests
    else:
        baseline_cost = baseline_minutes / 60 * completed_requests * cost_per_hour

    investment_input = baseline_value(baselines, BaselineKey.INVESTMENT_COST)
    investment_cost = investment_input if investment_input > 0 else baseline_cost
    roi_ratio_pct = ratio_pct(cost_savings, investment_cost)

    # Collaboration: direct samples first, telemetry estimates otherwise
    cognitive_before = to_number(raw.avg_cognitive_load_before)
    cognitive_after = to_number(raw.avg_cognitive_load_after)
    decision_accuracy_pct = _prefer(
        raw.collaboration_decision_accuracy_pct,
        ratio_pct(to_number(raw.ai_validated_decisions), to_number(raw.ai_assisted_decisions)),
    )
    override_rate_pct = _prefer(
        raw.collaboration_override_rate_pct,
        ratio_pct(to_number(raw.decisions_overridden), to_number(raw.ai_recommendations)),
    )
    cognitive_load_reduction_pct = _prefer(
        raw.collaboration_cognitive_reduction_pct,
        ratio_pct(cognitive_before - cognitive_after, cognitive_before),
    )
    handoff_time_seconds = _prefer(
        raw.collaboration_handoff_seconds, to_number(raw.avg_handoff_time_seconds)
    )
    team_satisfaction_score = _prefer(
        raw.collaboration_satisfaction, to_number(raw.avg_team_satisfaction_score)
    )
    innovation_count = _prefer(
        raw.collaboration_innovation_count, to_number(raw.innovation_count)
    )

    # Risk
    total_risk_items = to_number(raw.total_risk_items)

    return DerivedMetrics(
        normalized_error_rate=normalized_error_rate,
        error_rate_pct=error_rate_pct,
        quality_score=quality_score,
        stability_score=stability_score,
        task_success_rate_pct=task_success_rate_pct,
        task_error_rate_pct=task_error_rate_pct,
        sla_compliance_pct=sla_compliance_pct(latency_total, sla_latency_ms),
        sla_latency_ms=sla_latency_ms,
        growth_rate_pct=growth_rate_pct,
        user_coverage_pct=user_coverage_pct,
        baseline_minutes_per_request=baseline_minutes,
        cost_per_hour=cost_per_hour,
        avg_response_minutes=avg_response_minutes,
        time_savings_minutes=time_savings_minutes,
        saved_hours=saved_hours,
        cost_savings=cost_savings,
        baseline_cost=baseline_cost,
        investment_cost=investment_cost,
        roi_ratio_pct=roi_ratio_pct,
        decision_accuracy_pct=decision_accuracy_pct,
        override_rate_pct=override_rate_pct,
        cognitive_load_reduction_pct=cognitive_load_reduction_pct,
        handoff_time_seconds=handoff_time_seconds,
        team_satisfaction_score=team_satisfaction_score,
        innovation_count=innovation_count,
        risk_exposure_score=to_number(raw.avg_risk_score),
        audit_required_rate_pct=ratio_pct(to_number(raw.audit_required_count), total_risk_items),
        audit_completed_rate_pct=ratio_pct(to_number(raw.audit_completed_count), total_risk_items),
        human_review_rate_pct=ratio_pct(to_number(raw.human_reviewed_count), total_risk_items),
        total_risk_items=total_risk_items,
        role_redesign_ratio_pct=ratio_pct(
            baseline_value(baselines, BaselineKey.ROLES_REDEFINED),
            baseline_value(baselines, BaselineKey.TOTAL_ROLES),
        ),
        customer_nps_delta=baseline_value(baselines, BaselineKey.CUSTOMER_NPS_DELTA),
        error_reduction_pct=baseline_value(baselines, BaselineKey.ERROR_REDUCTION_PCT),
        decision_speed_improvement_pct=baseline_value(
            baselines, BaselineKey.DECISION_SPEED_IMPROVEMENT_PCT
        ),
        domain_penetration=_domain_penetration(raw.domain_breakdown, total_requests),
    )
