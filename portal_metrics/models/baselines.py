"""
Operator-configured reference values and the cached ROI row.

Baselines are scoped by ``business_type`` and ``agent_type``; ``None`` on
either dimension means the entry applies to every value of it.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class BaselineEntry(BaseModel):
    """
    A persisted metric input (``portal_metric_inputs`` row).

    Attributes:
        metric_key: Name of the reference value (e.g. ``cost_per_hour``)
        value: Numeric value entered by an operator
        unit: Display unit (``minute``, ``KRW``, ``ms``...)
        description: Human readable explanation
        business_type: Business domain scope, ``None`` for every domain
        agent_type: Agent category scope, ``None`` for every category
    """

    metric_key: str = Field(description="Name of the reference value", min_length=1)
    value: float = Field(description="Numeric value entered by an operator")
    unit: Optional[str] = Field(default=None, description="Display unit")
    description: Optional[str] = Field(default=None, description="Human readable explanation")
    business_type: Optional[str] = Field(default=None, description="Business domain scope")
    agent_type: Optional[str] = Field(default=None, description="Agent category scope")

    @field_validator("metric_key")
    @classmethod
    def validate_metric_key(cls, v: str) -> str:
        """Metric keys are trimmed and must not be blank."""
        v = v.strip()
        if not v:
            raise ValueError("metric_key cannot be blank")
        return v

    @field_validator("business_type", "agent_type")
    @classmethod
    def normalize_scope(cls, v: Optional[str]) -> Optional[str]:
        """Empty scope strings mean global scope."""
        return _blank_to_none(v)

    @property
    def specificity(self) -> int:
        """Number of scoped dimensions (0 = global, 2 = fully scoped)."""
        return int(self.business_type is not None) + int(self.agent_type is not None)


class ResolvedBaseline(BaseModel):
    """A single baseline value after scope resolution and default filling."""

    metric_key: str
    value: float
    unit: Optional[str] = None
    description: Optional[str] = None
    is_default: bool = False


class TaskBaseline(BaseModel):
    """Pre-automation effort for a task in a business domain."""

    task_code: str = Field(description="Task identifier", min_length=1)
    domain: Optional[str] = Field(default=None, description="Business domain the task belongs to")
    before_time_min: float = Field(description="Minutes per task before automation", ge=0)
    before_cost: Optional[float] = Field(default=None, description="Cost per task before automation", ge=0)
    description: Optional[str] = None

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class LaborCost(BaseModel):
    """Hourly labour cost for a role, optionally scoped to a business domain."""

    role: str = Field(description="Role name", min_length=1)
    hourly_cost: float = Field(description="Cost of one hour of work", ge=0)
    currency: str = Field(default="KRW", description="Currency code")
    business_type: Optional[str] = Field(default=None, description="Business domain scope")

    @field_validator("business_type")
    @classmethod
    def normalize_business_type(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ROIMetricKey(BaseModel):
    """Natural key of a cached ROI row."""

    period_start: date
    period_end: date
    business_type: Optional[str] = None
    agent_type: Optional[str] = None

    @field_validator("business_type", "agent_type")
    @classmethod
    def normalize_scope(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ROIMetricRecord(ROIMetricKey):
    """
    Cached ROI figures for one window and filter scope.

    Written once per successful dashboard computation and overwritten by
    every later computation with the same key.
    """

    saved_hours: float = 0.0
    saved_cost: float = 0.0
    roi_ratio_pct: float = 0.0
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> ROIMetricKey:
        return ROIMetricKey(
            period_start=self.period_start,
            period_end=self.period_end,
            business_type=self.business_type,
            agent_type=self.agent_type,
        )
