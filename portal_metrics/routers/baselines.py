"""
Baseline administration router.

Operators maintain the reference values behind savings and ROI here:
metric inputs, per-domain task baselines and labour costs.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from portal_metrics.models.baselines import BaselineEntry, LaborCost, TaskBaseline
from portal_metrics.storage import get_storage
from portal_metrics.storage.base import StorageBackend, StorageError
from portal_metrics.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class BaselineUpsertRequest(BaseModel):
    """Create or update a baseline entry. ``metric_key`` and ``value`` are required."""

    metric_key: Optional[str] = Field(default=None, description="Name of the reference value")
    value: Optional[float] = Field(default=None, description="Numeric value")
    unit: Optional[str] = None
    description: Optional[str] = None
    business_type: Optional[str] = Field(default=None, description="Business domain scope")
    agent_type: Optional[str] = Field(default=None, description="Agent category scope")


@router.get("/baselines")
async def list_baselines(storage: StorageBackend = Depends(get_storage)):
    """List every baseline entry, ordered by metric key."""
    try:
        entries = storage.list_all_baselines()
    except StorageError as e:
        logger.error("baselines_list_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to list baselines")

    return {"success": True, "data": [entry.model_dump() for entry in entries]}


@router.post("/baselines")
async def upsert_baseline(
    request: BaselineUpsertRequest,
    storage: StorageBackend = Depends(get_storage),
):
    """Create or update a baseline entry for its (metric_key, business_type, agent_type) scope."""
    if not (request.metric_key or "").strip() or request.value is None:
        raise HTTPException(status_code=400, detail="metric_key and value are required")

    entry = BaselineEntry(**request.model_dump())
    logger.info(
        "baseline_upsert_requested",
        metric_key=entry.metric_key,
        business_type=entry.business_type,
        agent_type=entry.agent_type,
    )

    try:
        saved = storage.upsert_baseline(entry)
    except StorageError as e:
        logger.error("baseline_upsert_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to save baseline")

    return {"success": True, "data": saved.model_dump()}


@router.get("/task-baselines")
async def list_task_baselines(
    domain: Optional[str] = Query(default=None, description="Business domain"),
    storage: StorageBackend = Depends(get_storage),
):
    """List task baselines, newest first."""
    try:
        items = storage.list_task_baselines(domain=domain or None)
    except StorageError as e:
        logger.error("task_baselines_list_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to list task baselines")

    return {"success": True, "data": [t.model_dump() for t in items]}


@router.post("/task-baselines")
async def upsert_task_baseline(
    task_baseline: TaskBaseline,
    storage: StorageBackend = Depends(get_storage),
):
    """Create or update a task baseline for its (task_code, domain) key."""
    try:
        saved = storage.upsert_task_baseline(task_baseline)
    except StorageError as e:
        logger.error("task_baseline_upsert_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to save task baseline")

    return {"success": True, "data": saved.model_dump()}


@router.get("/labor-costs")
async def list_labor_costs(
    business_type: Optional[str] = Query(default=None, alias="businessType"),
    storage: StorageBackend = Depends(get_storage),
):
    """List labour costs applicable to a business domain, most specific first."""
    try:
        items = storage.list_labor_costs(business_type=business_type or None)
    except StorageError as e:
        logger.error("labor_costs_list_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to list labor costs")

    return {"success": True, "data": [c.model_dump() for c in items]}


@router.post("/labor-costs")
async def upsert_labor_cost(
    labor_cost: LaborCost,
    storage: StorageBackend = Depends(get_storage),
):
    """Create or update a labour cost for its (role, business_type) key."""
    try:
        saved = storage.upsert_labor_cost(labor_cost)
    except StorageError as e:
        logger.error("labor_cost_upsert_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to save labor cost")

    return {"success": True, "data": saved.model_dump()}
