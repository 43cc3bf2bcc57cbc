"""
Pydantic v2 data models for the portal metrics engine.

Model Organization:
    - enums: Period selector, request/task states, baseline keys
    - metrics: Reporting window, raw aggregate, derived metrics
    - baselines: Metric inputs, task baselines, labour costs, cached ROI rows
    - dashboard: Dashboard response payload
"""

from .enums import BaselineKey, Period, RequestStatus, TaskStatus
from .metrics import DerivedMetrics, DomainPenetration, MetricWindow, RawAggregate
from .baselines import (
    BaselineEntry,
    LaborCost,
    ResolvedBaseline,
    ROIMetricKey,
    ROIMetricRecord,
    TaskBaseline,
)
from .dashboard import (
    AgentBreakdownRow,
    BaselineItem,
    CollaborationSection,
    DashboardPayload,
    DomainStatRow,
    FunnelStatRow,
    RiskSection,
    SavingsSection,
    ValueSection,
)

__all__ = [
    # Enumerations
    "BaselineKey",
    "Period",
    "RequestStatus",
    "TaskStatus",
    # Metrics
    "DerivedMetrics",
    "DomainPenetration",
    "MetricWindow",
    "RawAggregate",
    # Baselines
    "BaselineEntry",
    "LaborCost",
    "ResolvedBaseline",
    "ROIMetricKey",
    "ROIMetricRecord",
    "TaskBaseline",
    # Dashboard
    "AgentBreakdownRow",
    "BaselineItem",
    "CollaborationSection",
    "DashboardPayload",
    "DomainStatRow",
    "FunnelStatRow",
    "RiskSection",
    "SavingsSection",
    "ValueSection",
]
