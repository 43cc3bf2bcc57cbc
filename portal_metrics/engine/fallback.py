"""
Fallback payload builder.

Produces the zero-valued dashboard returned when the derivation step fails
after a successful raw fetch. The shape is identical to a computed payload.
"""

from typing import Optional

from portal_metrics.models.baselines import ResolvedBaseline
from portal_metrics.models.dashboard import DashboardPayload
from portal_metrics.models.enums import Period
from portal_metrics.models.metrics import MetricWindow

from .baselines import baselines_as_list, default_baselines


def build_fallback_payload(
    period: "str | Period",
    window: Optional[MetricWindow] = None,
    baselines: Optional[dict[str, ResolvedBaseline]] = None,
) -> DashboardPayload:
    """
    Build a structurally complete payload with every figure at zero.

    Args:
        period: Resolved period selector
        window: Window to echo, when it was resolved
        baselines: Resolved baselines, when resolution got that far;
            the compiled defaults otherwise
    """
    period_value = period.value if isinstance(period, Period) else str(period)
    return DashboardPayload(
        period=period_value,
        date_from=window.date_from if window else None,
        date_to=window.date_to if window else None,
        baselines=baselines_as_list(baselines or default_baselines()),
        is_fallback=True,
    )
