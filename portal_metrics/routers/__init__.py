"""API routers."""

from . import baselines, dashboard

__all__ = ["baselines", "dashboard"]
