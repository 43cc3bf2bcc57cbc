"""
Window, raw aggregate and derived metric models.

``RawAggregate`` is the contract between the storage backends and the
formula layer. Its scalar fields are deliberately typed ``Any``: they carry
whatever the database driver returned (``Decimal``, strings, ``None``...)
and are only coerced inside the calculator.
"""

from datetime import date, timedelta
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricWindow(BaseModel):
    """
    Half-open reporting window ``[date_from, date_to)``.

    Attributes:
        date_from: First day included in the window
        date_to: First day after the window
        days: Window length in days
    """

    model_config = ConfigDict(frozen=True)

    date_from: date = Field(description="First day included in the window")
    date_to: date = Field(description="First day after the window (exclusive)")
    days: int = Field(description="Window length in days", ge=1)

    @model_validator(mode="after")
    def validate_length(self) -> "MetricWindow":
        """Ensure the bounds span exactly ``days`` days."""
        if (self.date_to - self.date_from).days != self.days:
            raise ValueError("date_to - date_from must equal days")
        return self

    def previous(self) -> "MetricWindow":
        """The immediately preceding window of the same length."""
        return MetricWindow(
            date_from=self.date_from - timedelta(days=self.days),
            date_to=self.date_from,
            days=self.days,
        )


class RawAggregate(BaseModel):
    """
    Flat bag of sums, averages and counts for one window and filter scope.

    ``None`` on any scalar means "no sample". The ``collaboration_*`` fields
    come from dedicated human/AI collaboration samples; when they are
    ``None`` the calculator falls back to estimates built from agent
    telemetry.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    date_from: Any = None
    date_to: Any = None

    # Request volumes
    total_requests: Any = None
    prev_total_requests: Any = None
    completed_requests: Any = None
    pending_requests: Any = None

    # Agent telemetry
    avg_latency_ms: Any = None
    avg_error_rate: Any = None
    avg_queue_time_ms: Any = None
    requests_processed: Any = None
    ai_assisted_decisions: Any = None
    ai_validated_decisions: Any = None
    ai_recommendations: Any = None
    decisions_overridden: Any = None
    avg_cognitive_load_before: Any = None
    avg_cognitive_load_after: Any = None
    avg_handoff_time_seconds: Any = None
    avg_team_satisfaction_score: Any = None
    innovation_count: Any = None

    # Task outcomes
    total_tasks: Any = None
    success_tasks: Any = None
    error_tasks: Any = None

    # Adoption
    total_users: Any = None
    mapped_users: Any = None

    # Direct collaboration samples
    collaboration_decision_accuracy_pct: Any = None
    collaboration_override_rate_pct: Any = None
    collaboration_cognitive_reduction_pct: Any = None
    collaboration_handoff_seconds: Any = None
    collaboration_satisfaction: Any = None
    collaboration_innovation_count: Any = None

    # Risk assessments
    total_risk_items: Any = None
    avg_risk_score: Any = None
    audit_required_count: Any = None
    audit_completed_count: Any = None
    human_reviewed_count: Any = None

    # Breakdowns
    breakdown: list[dict[str, Any]] = Field(default_factory=list)
    domain_breakdown: list[dict[str, Any]] = Field(default_factory=list)
    funnel_breakdown: list[dict[str, Any]] = Field(default_factory=list)


class DomainPenetration(BaseModel):
    """Share of all requests in the window that belongs to one business domain."""

    business_type: Optional[str] = None
    request_count: int = 0
    penetration_pct: float = 0.0


class DerivedMetrics(BaseModel):
    """Every figure computed from a raw aggregate and resolved baselines."""

    # Service quality
    normalized_error_rate: float = 0.0
    error_rate_pct: float = 0.0
    quality_score: float = 0.0
    stability_score: float = 0.0
    task_success_rate_pct: float = 0.0
    task_error_rate_pct: float = 0.0
    sla_compliance_pct: float = 0.0
    sla_latency_ms: float = 0.0

    # Volume
    growth_rate_pct: float = 0.0
    user_coverage_pct: float = 0.0

    # Savings and ROI
    baseline_minutes_per_request: float = 0.0
    cost_per_hour: float = 0.0
    avg_response_minutes: float = 0.0
    time_savings_minutes: float = 0.0
    saved_hours: float = 0.0
    cost_savings: float = 0.0
    baseline_cost: float = 0.0
    investment_cost: float = 0.0
    roi_ratio_pct: float = 0.0

    # Collaboration
    decision_accuracy_pct: float = 0.0
    override_rate_pct: float = 0.0
    cognitive_load_reduction_pct: float = 0.0
    handoff_time_seconds: float = 0.0
    team_satisfaction_score: float = 0.0
    innovation_count: float = 0.0

    # Risk
    risk_exposure_score: float = 0.0
    audit_required_rate_pct: float = 0.0
    audit_completed_rate_pct: float = 0.0
    human_review_rate_pct: float = 0.0
    total_risk_items: float = 0.0

    # Value
    role_redesign_ratio_pct: float = 0.0
    customer_nps_delta: float = 0.0
    error_reduction_pct: float = 0.0
    decision_speed_improvement_pct: float = 0.0

    domain_penetration: list[DomainPenetration] = Field(default_factory=list)
