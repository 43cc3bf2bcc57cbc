"""
Portal KPI engine.

Period resolution, baseline resolution, derived metric computation, ROI
caching, fallback and response assembly.
"""

from .assembler import assemble_payload
from .baselines import (
    DEFAULT_BASELINES,
    baselines_as_list,
    default_baseline_entries,
    resolve_baselines,
)
from .calculator import CostOverrides, compute_derived_metrics, normalize_error_rate
from .dashboard import DashboardService
from .fallback import build_fallback_payload
from .period import resolve_window
from .roi_cache import RoiCacheWriter

__all__ = [
    "DEFAULT_BASELINES",
    "CostOverrides",
    "DashboardService",
    "RoiCacheWriter",
    "assemble_payload",
    "baselines_as_list",
    "build_fallback_payload",
    "compute_derived_metrics",
    "default_baseline_entries",
    "normalize_error_rate",
    "resolve_baselines",
    "resolve_window",
]
