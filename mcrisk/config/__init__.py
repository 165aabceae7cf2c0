"""mcrisk configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
"""

from mcrisk.config.settings import settings, clamp_iterations, MIN_ITERATIONS, MAX_ITERATIONS
from mcrisk.config.errors import (
    MonteCarloError,
    ValidationError,
    UnsupportedDistributionError,
    EvaluatorError,
    SimulationError,
    ErrorCode,
)

__all__ = [
    "settings",
    "clamp_iterations",
    "MIN_ITERATIONS",
    "MAX_ITERATIONS",
    "MonteCarloError",
    "ValidationError",
    "UnsupportedDistributionError",
    "EvaluatorError",
    "SimulationError",
    "ErrorCode",
]
