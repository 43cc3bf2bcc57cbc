"""
Baseline resolver.

Holds the single compiled-in default table and merges persisted baseline
rows over it for a (business_type, agent_type) scope.
"""

from typing import Iterable, Optional

from portal_metrics.models.baselines import BaselineEntry, ResolvedBaseline
from portal_metrics.models.dashboard import BaselineItem
from portal_metrics.models.enums import BaselineKey
from portal_metrics.utils.numeric import to_number

# metric_key -> (value, unit, description)
DEFAULT_BASELINES: dict[str, tuple[float, str, str]] = {
    BaselineKey.BASELINE_MINUTES_PER_REQUEST.value: (
        12.0,
        "minute",
        "Average handling time of one request before automation",
    ),
    BaselineKey.COST_PER_HOUR.value: (45000.0, "KRW", "Average hourly labour cost"),
    BaselineKey.SLA_LATENCY_MS.value: (2000.0, "ms", "Target end-to-end response time"),
    BaselineKey.INVESTMENT_COST.value: (0.0, "KRW", "Investment made in the AI programme"),
    BaselineKey.TOTAL_ROLES.value: (0.0, "count", "Number of roles in scope"),
    BaselineKey.ROLES_REDEFINED.value: (0.0, "count", "Roles redesigned around AI agents"),
    BaselineKey.CUSTOMER_NPS_DELTA.value: (0.0, "point", "Change in customer NPS"),
    BaselineKey.ERROR_REDUCTION_PCT.value: (0.0, "pct", "Reduction in process errors"),
    BaselineKey.DECISION_SPEED_IMPROVEMENT_PCT.value: (
        0.0,
        "pct",
        "Improvement in decision turnaround",
    ),
}


def default_baseline_entries() -> list[BaselineEntry]:
    """The default table as global baseline entries, for seeding a store."""
    return [
        BaselineEntry(metric_key=key, value=value, unit=unit, description=description)
        for key, (value, unit, description) in DEFAULT_BASELINES.items()
    ]


def default_baselines() -> dict[str, ResolvedBaseline]:
    """The default table as a resolved map."""
    return {
        key: ResolvedBaseline(
            metric_key=key,
            value=value,
            unit=unit,
            description=description,
            is_default=True,
        )
        for key, (value, unit, description) in DEFAULT_BASELINES.items()
    }


def _in_scope(entry_scope: Optional[str], requested: Optional[str]) -> bool:
    return entry_scope is None or entry_scope == requested


def resolve_baselines(
    rows: Iterable[BaselineEntry],
    business_type: Optional[str] = None,
    agent_type: Optional[str] = None,
) -> dict[str, ResolvedBaseline]:
    """
    Merge persisted baseline rows for a scope over the compiled defaults.

    Rows outside the scope are ignored. For duplicate keys the last row seen
    wins, so callers pass rows ordered from least to most specific. Every
    default key is present in the result; extra operator keys are kept.

    Args:
        rows: Persisted baseline entries
        business_type: Requested business domain (empty means no filter)
        agent_type: Requested agent category (empty means no filter)

    Returns:
        metric_key -> ResolvedBaseline
    """
    business_type = business_type or None
    agent_type = agent_type or None

    resolved = default_baselines()
    for row in rows:
        if not _in_scope(row.business_type, business_type):
            continue
        if not _in_scope(row.agent_type, agent_type):
            continue

        default = DEFAULT_BASELINES.get(row.metric_key)
        fallback = default[0] if default else 0.0
        resolved[row.metric_key] = ResolvedBaseline(
            metric_key=row.metric_key,
            value=to_number(row.value, fallback),
            unit=row.unit if row.unit is not None else (default[1] if default else None),
            description=(
                row.description if row.description is not None else (default[2] if default else None)
            ),
            is_default=False,
        )

    return resolved


def baseline_value(resolved: dict[str, ResolvedBaseline], key: "str | BaselineKey") -> float:
    """Resolved value for a key, falling back to the compiled default."""
    key = key.value if isinstance(key, BaselineKey) else key
    entry = resolved.get(key)
    if entry is not None:
        return entry.value
    default = DEFAULT_BASELINES.get(key)
    return default[0] if default else 0.0


def baselines_as_list(resolved: dict[str, ResolvedBaseline]) -> list[BaselineItem]:
    """Render the ``baselines[]`` payload section, ordered by metric key."""
    return [
        BaselineItem(
            metric_key=entry.metric_key,
            value=entry.value,
            unit=entry.unit,
            description=entry.description,
        )
        for entry in sorted(resolved.values(), key=lambda e: e.metric_key)
    ]
