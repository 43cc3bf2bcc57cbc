"""
Enumeration types for the portal metrics engine.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class Period(str, Enum):
    """Reporting period selector accepted by the dashboard endpoint."""

    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, value: "str | Period | None") -> "Period":
        """Resolve a selector, treating anything unknown as a week."""
        if isinstance(value, Period):
            return value
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.WEEK


class RequestStatus(str, Enum):
    """Lifecycle states of a portal request."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TaskStatus(str, Enum):
    """Lifecycle states of an agent task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BaselineKey(str, Enum):
    """Metric keys that always have a resolved baseline value."""

    BASELINE_MINUTES_PER_REQUEST = "baseline_minutes_per_request"
    COST_PER_HOUR = "cost_per_hour"
    SLA_LATENCY_MS = "sla_latency_ms"
    INVESTMENT_COST = "investment_cost"
    TOTAL_ROLES = "total_roles"
    ROLES_REDEFINED = "roles_redefined"
    CUSTOMER_NPS_DELTA = "customer_nps_delta"
    ERROR_REDUCTION_PCT = "error_reduction_pct"
    DECISION_SPEED_IMPROVEMENT_PCT = "decision_speed_improvement_pct"
