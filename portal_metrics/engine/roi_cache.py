"""
ROI cache writer.

Persists the ROI figures of a successful dashboard computation, keyed by
(window bounds, business filter, agent filter). The write is best-effort:
a failure is logged and never reaches the dashboard response.
"""

from typing import Optional

from portal_metrics.models.baselines import ROIMetricRecord
from portal_metrics.models.metrics import DerivedMetrics, MetricWindow
from portal_metrics.storage.base import StorageBackend
from portal_metrics.utils.logging import get_logger
from portal_metrics.utils.numeric import round_to

logger = get_logger(__name__)


class RoiCacheWriter:
    """Upserts one ROI row per (window, filter) key, last writer wins."""

    def __init__(self, storage: StorageBackend, enabled: bool = True):
        self.storage = storage
        self.enabled = enabled

    @staticmethod
    def build_record(
        window: MetricWindow,
        business_type: Optional[str],
        agent_type: Optional[str],
        metrics: DerivedMetrics,
    ) -> ROIMetricRecord:
        return ROIMetricRecord(
            period_start=window.date_from,
            period_end=window.date_to,
            business_type=business_type,
            agent_type=agent_type,
            saved_hours=round_to(metrics.saved_hours),
            saved_cost=round_to(metrics.cost_savings),
            roi_ratio_pct=round_to(metrics.roi_ratio_pct),
        )

    def write(
        self,
        window: MetricWindow,
        business_type: Optional[str],
        agent_type: Optional[str],
        metrics: DerivedMetrics,
    ) -> bool:
        """
        Write the ROI row for a key.

        Returns:
            True when the row was written, False when disabled or failed
        """
        if not self.enabled:
            return False

        try:
            record = self.build_record(window, business_type, agent_type, metrics)
            self.storage.upsert_roi_metric(record)
        except Exception as e:
            logger.warning(
                "roi_cache_write_failed",
                error_type=type(e).__name__,
                period_start=str(window.date_from),
                period_end=str(window.date_to),
            )
            return False

        logger.debug(
            "roi_cache_written",
            period_start=str(window.date_from),
            period_end=str(window.date_to),
            business_type=business_type,
            agent_type=agent_type,
        )
        return True
