"""Utility modules for mcrisk."""

from mcrisk.utils.formatting import format_number, format_percent
from mcrisk.utils.simulation_logger import (
    log_simulation_start,
    log_simulation_complete,
    log_simulation_cancelled,
    log_simulation_failed,
    log_output_summary,
)

__all__ = [
    "format_number",
    "format_percent",
    "log_simulation_start",
    "log_simulation_complete",
    "log_simulation_cancelled",
    "log_simulation_failed",
    "log_output_summary",
]
