"""Utility modules for logging, numeric coercion, and common helpers."""

from portal_metrics.utils.logging import configure_logging, get_logger
from portal_metrics.utils.numeric import round_to, to_fixed_text, to_int, to_number

__all__ = [
    "configure_logging",
    "get_logger",
    "round_to",
    "to_fixed_text",
    "to_int",
    "to_number",
]
