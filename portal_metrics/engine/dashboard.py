"""
Dashboard pipeline.

fetch -> resolve baselines -> compute -> cache ROI (best-effort) -> assemble.

Only a failed raw fetch is surfaced to the caller. Anything that goes wrong
afterwards is caught at one boundary and replaced by the fallback payload.
"""

from datetime import date
from typing import Optional

from portal_metrics.config import Settings, get_settings
from portal_metrics.models.baselines import ResolvedBaseline
from portal_metrics.models.dashboard import DashboardPayload
from portal_metrics.models.enums import Period
from portal_metrics.storage.base import RawAggregateFetchError, StorageBackend
from portal_metrics.utils.logging import get_logger

from .assembler import assemble_payload
from .baselines import resolve_baselines
from .calculator import CostOverrides, compute_derived_metrics
from .fallback import build_fallback_payload
from .period import resolve_window
from .roi_cache import RoiCacheWriter

logger = get_logger(__name__)


class DashboardService:
    """
    Computes the portal KPI dashboard for a period and filter scope.

    Usage:
        service = DashboardService(storage)
        payload = service.get_metrics("month", business_type="finance")
    """

    def __init__(self, storage: StorageBackend, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()
        self.roi_cache = RoiCacheWriter(storage, enabled=self.settings.roi_cache_enabled)

    def load_overrides(self, business_type: Optional[str]) -> CostOverrides:
        """
        Task baseline and labour cost for a filter scope.

        Task baselines only apply to a business domain filter, the newest one
        of the domain wins. Labour costs always apply: the store orders
        domain-scoped rows before scope-less ones, and returns only the
        scope-less rows without a filter.
        """
        task_baselines = self.storage.list_task_baselines(domain=business_type) if business_type else []
        labor_costs = self.storage.list_labor_costs(business_type=business_type)
        return CostOverrides(
            task_baseline=task_baselines[0] if task_baselines else None,
            labor_cost=labor_costs[0] if labor_costs else None,
        )

    def get_metrics(
        self,
        period: "str | Period | None" = Period.WEEK,
        agent_type: Optional[str] = None,
        business_type: Optional[str] = None,
        today: Optional[date] = None,
    ) -> DashboardPayload:
        """
        Compute the dashboard payload.

        Args:
            period: ``week`` or ``month`` (anything else is a week)
            agent_type: Optional agent category filter
            business_type: Optional business domain filter
            today: Reference date (default: today)

        Returns:
            The computed payload, or the zero-valued fallback payload when
            derivation fails

        Raises:
            RawAggregateFetchError: If the raw aggregate cannot be fetched
        """
        agent_type = agent_type or None
        business_type = business_type or None
        resolved_period, window, prev_window = resolve_window(period, today, self.settings)

        try:
            raw = self.storage.fetch_raw_aggregate(window, prev_window, agent_type, business_type)
        except RawAggregateFetchError:
            raise
        except Exception as e:
            logger.error("raw_aggregate_fetch_failed", error=str(e))
            raise RawAggregateFetchError(f"Failed to fetch raw aggregate: {e}") from e

        stage = "resolve_baselines"
        baselines: Optional[dict[str, ResolvedBaseline]] = None
        try:
            rows = self.storage.list_baselines(business_type=business_type, agent_type=agent_type)
            baselines = resolve_baselines(rows, business_type, agent_type)

            stage = "load_overrides"
            overrides = self.load_overrides(business_type)

            stage = "compute"
            derived = compute_derived_metrics(raw, baselines, overrides)

            stage = "cache_roi"
            self.roi_cache.write(window, business_type, agent_type, derived)

            stage = "assemble"
            payload = assemble_payload(resolved_period, window, raw, derived, baselines)

        except Exception as e:
            logger.error(
                "dashboard_derivation_failed",
                error_type=type(e).__name__,
                stage=stage,
                period=resolved_period.value,
                agent_type=agent_type,
                business_type=business_type,
            )
            return build_fallback_payload(resolved_period, window, baselines)

        logger.info(
            "dashboard_metrics_computed",
            period=resolved_period.value,
            date_from=str(window.date_from),
            date_to=str(window.date_to),
            agent_type=agent_type,
            business_type=business_type,
            total_requests=payload.total_requests,
        )
        return payload
