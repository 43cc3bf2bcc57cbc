"""
Dashboard response payload.

Every field has a zero default so that the fallback payload and the
computed payload share exactly the same shape.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .metrics import DomainPenetration


class AgentBreakdownRow(BaseModel):
    """Telemetry totals for one (agent_type, business_type) pair."""

    agent_type: Optional[str] = None
    business_type: Optional[str] = None
    requests_processed: int = 0
    avg_latency_ms: float = 0.0
    error_rate_pct: float = 0.0


class DomainStatRow(BaseModel):
    """Request counts for one business domain."""

    business_type: Optional[str] = None
    request_count: int = 0
    completed_count: int = 0


class FunnelStatRow(BaseModel):
    """Adoption funnel counts for one stage."""

    stage: str
    user_count: int = 0
    event_count: int = 0


class BaselineItem(BaseModel):
    """Resolved baseline as exposed to the dashboard."""

    metric_key: str
    value: float
    unit: Optional[str] = None
    description: Optional[str] = None


class CollaborationSection(BaseModel):
    decision_accuracy_pct: float = 0.0
    override_rate_pct: float = 0.0
    cognitive_load_reduction_pct: float = 0.0
    handoff_time_seconds: float = 0.0
    team_satisfaction_score: float = 0.0
    innovation_count: int = 0


class RiskSection(BaseModel):
    risk_exposure_score: float = 0.0
    audit_required_rate_pct: float = 0.0
    audit_completed_rate_pct: float = 0.0
    human_review_rate_pct: float = 0.0
    total_risk_items: int = 0


class ValueSection(BaseModel):
    role_redesign_ratio_pct: float = 0.0
    customer_nps_delta: float = 0.0
    error_reduction_pct: float = 0.0
    decision_speed_improvement_pct: float = 0.0


class SavingsSection(BaseModel):
    baseline_minutes_per_request: float = 0.0
    avg_response_minutes: float = 0.0
    time_savings_minutes: float = 0.0
    cost_savings: float = 0.0
    baseline_cost: float = 0.0
    investment_cost: float = 0.0
    roi_ratio_pct: float = 0.0
    sla_latency_ms: float = 0.0


class DashboardPayload(BaseModel):
    """
    Full response of the dashboard metrics endpoint.

    Counts are integers, percentages and money are rounded to two decimal
    places. ``is_fallback`` is set when the derivation step failed and the
    payload was replaced by zeros.
    """

    period: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    total_requests: int = 0
    prev_total_requests: int = 0
    growth_rate_pct: float = 0.0
    completed_requests: int = 0
    pending_requests: int = 0

    avg_latency_ms: float = 0.0
    error_rate_pct: float = 0.0
    quality_score: float = 0.0
    stability_score: float = 0.0
    avg_queue_time_ms: float = 0.0
    task_success_rate_pct: float = 0.0
    task_error_rate_pct: float = 0.0
    sla_compliance_pct: float = 0.0
    user_coverage_pct: float = 0.0
    requests_processed: int = 0

    breakdown: list[AgentBreakdownRow] = Field(default_factory=list)
    domain_stats: list[DomainStatRow] = Field(default_factory=list)
    domain_penetration: list[DomainPenetration] = Field(default_factory=list)
    funnel_stats: list[FunnelStatRow] = Field(default_factory=list)
    baselines: list[BaselineItem] = Field(default_factory=list)

    collaboration: CollaborationSection = Field(default_factory=CollaborationSection)
    risk: RiskSection = Field(default_factory=RiskSection)
    value: ValueSection = Field(default_factory=ValueSection)
    savings: SavingsSection = Field(default_factory=SavingsSection)

    is_fallback: bool = False
