"""
Portal dashboard router.

Wired to:
- DashboardService for the KPI payload
- StorageBackend for the cached ROI row
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from portal_metrics.config import get_settings
from portal_metrics.engine.dashboard import DashboardService
from portal_metrics.engine.period import resolve_window
from portal_metrics.models.baselines import ROIMetricKey
from portal_metrics.models.dashboard import DashboardPayload
from portal_metrics.storage import get_storage
from portal_metrics.storage.base import RawAggregateFetchError, StorageBackend, StorageError
from portal_metrics.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def get_dashboard_service(storage: StorageBackend = Depends(get_storage)) -> DashboardService:
    return DashboardService(storage, get_settings())


@router.get("/metrics", response_model=DashboardPayload)
async def get_portal_metrics(
    period: str = Query(default="week", description="week or month"),
    agent_type: Optional[str] = Query(default=None, alias="agentType"),
    business_type: Optional[str] = Query(default=None, alias="businessType"),
    service: DashboardService = Depends(get_dashboard_service),
):
    """
    Get the KPI dashboard for a period and optional filters.

    Returns the zero-valued payload (200) when derivation fails; only a
    failed raw fetch is an error.
    """
    logger.info(
        "portal_metrics_requested",
        period=period,
        agent_type=agent_type,
        business_type=business_type,
    )

    try:
        return service.get_metrics(period, agent_type=agent_type, business_type=business_type)
    except RawAggregateFetchError as e:
        logger.error("portal_metrics_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load dashboard metrics")


@router.get("/roi")
async def get_cached_roi(
    period: str = Query(default="week", description="week or month"),
    agent_type: Optional[str] = Query(default=None, alias="agentType"),
    business_type: Optional[str] = Query(default=None, alias="businessType"),
    storage: StorageBackend = Depends(get_storage),
):
    """Get the cached ROI row for the current window and filters, if any."""
    resolved, window, _ = resolve_window(period, settings=get_settings())
    key = ROIMetricKey(
        period_start=window.date_from,
        period_end=window.date_to,
        business_type=business_type,
        agent_type=agent_type,
    )

    try:
        record = storage.read_roi_metric(key)
    except StorageError as e:
        logger.error("roi_read_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read ROI metrics")

    return {
        "success": True,
        "data": {
            "period": resolved.value,
            "date_from": window.date_from.isoformat(),
            "date_to": window.date_to.isoformat(),
            "roi": record.model_dump(mode="json") if record else None,
        },
    }
