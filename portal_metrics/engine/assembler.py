"""
Response assembler.

Merges raw pass-through fields, derived metrics and resolved baselines into
the dashboard payload. Counts become integers; percentages and money are
rounded half away from zero to two decimal places.
"""

from portal_metrics.models.baselines import ResolvedBaseline
from portal_metrics.models.dashboard import (
    AgentBreakdownRow,
    CollaborationSection,
    DashboardPayload,
    DomainStatRow,
    FunnelStatRow,
    RiskSection,
    SavingsSection,
    ValueSection,
)
from portal_metrics.models.enums import Period
from portal_metrics.models.metrics import (
    DerivedMetrics,
    DomainPenetration,
    MetricWindow,
    RawAggregate,
)
from portal_metrics.utils.numeric import round_to, to_int

from .baselines import baselines_as_list
from .calculator import normalize_error_rate


def _breakdown_rows(raw: RawAggregate) -> list[AgentBreakdownRow]:
    return [
        AgentBreakdownRow(
            agent_type=row.get("agent_type"),
            business_type=row.get("business_type"),
            requests_processed=to_int(row.get("requests_processed")),
            avg_latency_ms=round_to(row.get("avg_latency_ms")),
            error_rate_pct=round_to(normalize_error_rate(row.get("avg_error_rate")) * 100),
        )
        for row in raw.breakdown
    ]


def _domain_rows(raw: RawAggregate) -> list[DomainStatRow]:
    return [
        DomainStatRow(
            business_type=row.get("business_type"),
            request_count=to_int(row.get("request_count")),
            completed_count=to_int(row.get("completed_count")),
        )
        for row in raw.domain_breakdown
    ]


def _funnel_rows(raw: RawAggregate) -> list[FunnelStatRow]:
    return [
        FunnelStatRow(
            stage=str(row.get("stage") or "unknown"),
            user_count=to_int(row.get("user_count")),
            event_count=to_int(row.get("event_count")),
        )
        for row in raw.funnel_breakdown
    ]


def assemble_payload(
    period: Period,
    window: MetricWindow,
    raw: RawAggregate,
    derived: DerivedMetrics,
    baselines: dict[str, ResolvedBaseline],
) -> DashboardPayload:
    """Build the full dashboard payload from computed parts."""
    return DashboardPayload(
        period=period.value,
        date_from=window.date_from,
        date_to=window.date_to,
        total_requests=to_int(raw.total_requests),
        prev_total_requests=to_int(raw.prev_total_requests),
        growth_rate_pct=round_to(derived.growth_rate_pct),
        completed_requests=to_int(raw.completed_requests),
        pending_requests=to_int(raw.pending_requests),
        avg_latency_ms=round_to(raw.avg_latency_ms),
        error_rate_pct=round_to(derived.error_rate_pct),
        quality_score=round_to(derived.quality_score),
        stability_score=round_to(derived.stability_score),
        avg_queue_time_ms=round_to(raw.avg_queue_time_ms),
        task_success_rate_pct=round_to(derived.task_success_rate_pct),
        task_error_rate_pct=round_to(derived.task_error_rate_pct),
        sla_compliance_pct=round_to(derived.sla_compliance_pct),
        user_coverage_pct=round_to(derived.user_coverage_pct),
        requests_processed=to_int(raw.requests_processed),
        breakdown=_breakdown_rows(raw),
        domain_stats=_domain_rows(raw),
        domain_penetration=[
            DomainPenetration(
                business_type=row.business_type,
                request_count=row.request_count,
                penetration_pct=round_to(row.penetration_pct),
            )
            for row in derived.domain_penetration
        ],
        funnel_stats=_funnel_rows(raw),
        baselines=baselines_as_list(baselines),
        collaboration=CollaborationSection(
            decision_accuracy_pct=round_to(derived.decision_accuracy_pct),
            override_rate_pct=round_to(derived.override_rate_pct),
            cognitive_load_reduction_pct=round_to(derived.cognitive_load_reduction_pct),
            handoff_time_seconds=round_to(derived.handoff_time_seconds),
            team_satisfaction_score=round_to(derived.team_satisfaction_score),
            innovation_count=to_int(derived.innovation_count),
        ),
        risk=RiskSection(
            risk_exposure_score=round_to(derived.risk_exposure_score),
            audit_required_rate_pct=round_to(derived.audit_required_rate_pct),
            audit_completed_rate_pct=round_to(derived.audit_completed_rate_pct),
            human_review_rate_pct=round_to(derived.human_review_rate_pct),
            total_risk_items=to_int(derived.total_risk_items),
        ),
        value=ValueSection(
            role_redesign_ratio_pct=round_to(derived.role_redesign_ratio_pct),
            customer_nps_delta=round_to(derived.customer_nps_delta),
            error_reduction_pct=round_to(derived.error_reduction_pct),
            decision_speed_improvement_pct=round_to(derived.decision_speed_improvement_pct),
        ),
        savings=SavingsSection(
            baseline_minutes_per_request=round_to(derived.baseline_minutes_per_request),
            avg_response_minutes=round_to(derived.avg_response_minutes, 4),
            time_savings_minutes=round_to(derived.time_savings_minutes),
            cost_savings=round_to(derived.cost_savings),
            baseline_cost=round_to(derived.baseline_cost),
            investment_cost=round_to(derived.investment_cost),
            roi_ratio_pct=round_to(derived.roi_ratio_pct),
            sla_latency_ms=round_to(derived.sla_latency_ms),
        ),
    )
