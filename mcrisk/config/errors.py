"""mcrisk error handling.

Custom exceptions and error codes for the simulation engine.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Precondition Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NO_INPUTS = "NO_INPUTS"
    NO_OUTPUTS = "NO_OUTPUTS"
    CONFIG_OUT_OF_RANGE = "CONFIG_OUT_OF_RANGE"
    INVALID_PARAMS = "INVALID_PARAMS"
    INVALID_SHAPE = "INVALID_SHAPE"

    # Distribution Errors (2xxx)
    UNSUPPORTED_DISTRIBUTION = "UNSUPPORTED_DISTRIBUTION"

    # Evaluator Errors (3xxx)
    EVALUATOR_FAILED = "EVALUATOR_FAILED"
    EVALUATOR_MALFORMED_OUTPUT = "EVALUATOR_MALFORMED_OUTPUT"

    # Run Errors (4xxx)
    SIMULATION_FAILED = "SIMULATION_FAILED"


class MonteCarloError(Exception):
    """Base exception for mcrisk errors.

    Provides structured error information for callers that surface
    failures to a user interface.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize MonteCarloError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(MonteCarloError):
    """Precondition or parameter validation error."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.VALIDATION_ERROR,
        field: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class UnsupportedDistributionError(MonteCarloError):
    """Raised for a distribution type tag the library does not know."""

    def __init__(self, distribution_type: Any, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.UNSUPPORTED_DISTRIBUTION,
            message=f"Unsupported distribution: {distribution_type}",
            details={**(details or {}), "distribution_type": str(distribution_type)}
        )
        self.distribution_type = distribution_type


class EvaluatorError(MonteCarloError):
    """The external evaluator failed or returned malformed data."""

    def __init__(
        self,
        message: str,
        iteration: int,
        code: str = ErrorCode.EVALUATOR_FAILED,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "iteration": iteration}
        )
        self.iteration = iteration


class SimulationError(MonteCarloError):
    """Run-level failure not attributable to the evaluator."""

    def __init__(
        self,
        message: str,
        status: str,
        code: str = ErrorCode.SIMULATION_FAILED,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "status": status}
        )
        self.status = status
