"""
Period resolver.

Turns a period selector into a concrete half-open window ending at
today (exclusive), plus the preceding window of the same length used for growth.
"""

from datetime import date, timedelta
from typing import Optional

from portal_metrics.config import Settings, get_settings
from portal_metrics.models.enums import Period
from portal_metrics.models.metrics import MetricWindow


def window_days(period: Period, settings: Optional[Settings] = None) -> int:
    """Configured window length for a period selector."""
    settings = settings or get_settings()
    return settings.period_days[period.value]


def resolve_window(
    period: "str | Period | None",
    today: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> tuple[Period, MetricWindow, MetricWindow]:
    """
    Resolve a period selector into the current and previous windows.

    The current window covers the ``days`` calendar days before today;
    ``date_to`` is today and is exclusive, so activity of the running day
    is not reported.

    Args:
        period: ``week`` or ``month``; anything else resolves to ``week``
        today: Reference date (default: ``date.today()``)
        settings: Settings providing window lengths

    Returns:
        (resolved period, current window, previous window)
    """
    resolved = Period.parse(period)
    days = window_days(resolved, settings)
    date_to = today or date.today()
    window = MetricWindow(date_from=date_to - timedelta(days=days), date_to=date_to, days=days)
    return resolved, window, window.previous()
