"""
Portal Metrics - KPI aggregation engine for the AI agent workflow portal.

Turns raw operational counters (requests, agent telemetry, collaboration
samples, risk assessments, adoption funnel events) into the derived
indicators shown on the portal dashboard.
"""

__version__ = "0.1.0"
