"""Simulation run models for mcrisk.

Pydantic models for run configuration, progress snapshots, descriptive
statistics, sensitivity rankings and the aggregate results of a run.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from mcrisk.config.settings import MAX_ITERATIONS, MAX_SEED, MIN_ITERATIONS, settings


# =============================================================================
# ENUMS
# =============================================================================


class SimulationStatus(str, Enum):
    """Lifecycle state of a simulation run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


# =============================================================================
# CONFIGURATION
# =============================================================================


class SimulationConfig(BaseModel):
    """Configuration for a simulation run.

    Out-of-range values fail at construction; the engine never clamps.
    """

    iterations: int = Field(
        default_factory=lambda: settings.default_iterations,
        ge=MIN_ITERATIONS,
        le=MAX_ITERATIONS,
        description="Number of iterations to run"
    )
    seed: int = Field(
        default_factory=lambda: settings.default_seed,
        ge=0,
        le=MAX_SEED,
        description="Random seed (0 = non-deterministic)"
    )
    confidence_level: float = Field(
        default_factory=lambda: settings.default_confidence,
        gt=0.0,
        lt=1.0,
        alias="confidenceLevel",
        description="Confidence level for the reported interval (e.g. 0.90)"
    )
    probability_threshold: float = Field(
        default=0.0,
        alias="probabilityThreshold",
        description="Threshold for the P(X < threshold) metric"
    )
    strict_outputs: bool = Field(
        default_factory=lambda: settings.strict_outputs,
        alias="strictOutputs",
        description="Fail the run on non-numeric evaluator output instead of coercing to 0.0"
    )

    class Config:
        frozen = True
        populate_by_name = True


# =============================================================================
# PROGRESS
# =============================================================================


class SimulationProgress(BaseModel):
    """Progress snapshot delivered to the caller's progress sink."""

    status: SimulationStatus
    current_iteration: int = Field(
        default=0, ge=0, alias="currentIteration", description="Iterations completed"
    )
    total_iterations: int = Field(
        default=0, ge=0, alias="totalIterations", description="Iterations requested"
    )
    iterations_per_second: float = Field(default=0.0, ge=0.0, alias="iterationsPerSecond")
    elapsed_ms: float = Field(default=0.0, ge=0.0, alias="elapsedMs")
    estimated_remaining_ms: float = Field(default=0.0, ge=0.0, alias="estimatedRemainingMs")

    class Config:
        frozen = True
        populate_by_name = True

    def get_progress_percentage(self) -> int:
        """Calculate progress percentage."""
        if self.total_iterations == 0:
            return 0
        return int((self.current_iteration / self.total_iterations) * 100)


# =============================================================================
# STATISTICS
# =============================================================================


class PercentileValues(BaseModel):
    """Key percentiles of an output distribution."""

    p1: float = 0.0
    p5: float = 0.0
    p10: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0

    class Config:
        frozen = True


class OutputStatistics(BaseModel):
    """Descriptive statistics for one output's value series."""

    minimum: float = 0.0
    maximum: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    mode: float = Field(default=0.0, description="Histogram-estimated mode")
    std_dev: float = Field(default=0.0, alias="stdDev", description="Population standard deviation")
    variance: float = Field(default=0.0, description="Population variance")
    skewness: float = 0.0
    kurtosis: float = Field(default=0.0, description="Excess kurtosis (raw minus 3)")
    percentiles: PercentileValues = Field(default_factory=PercentileValues)
    confidence_interval: Tuple[float, float] = Field(default=(0.0, 0.0), alias="confidenceInterval")
    prob_negative: float = Field(default=0.0, ge=0.0, le=1.0, alias="probNegative")
    prob_below_threshold: float = Field(default=0.0, ge=0.0, le=1.0, alias="probBelowThreshold")
    probability_threshold: float = Field(default=0.0, alias="probabilityThreshold")
    count: int = Field(default=0, ge=0)

    class Config:
        frozen = True
        populate_by_name = True

    @classmethod
    def empty(cls, probability_threshold: float = 0.0) -> "OutputStatistics":
        """Zero-filled statistics for an empty series."""
        return cls(probability_threshold=probability_threshold)


class HistogramBin(BaseModel):
    """Single histogram bin for distribution visualization."""

    x0: float = Field(..., description="Lower edge")
    x1: float = Field(..., description="Upper edge")
    count: int = Field(..., ge=0)
    frequency: float = Field(..., description="count / total")
    density: float = Field(..., description="frequency / bin width")


class CDFPoint(BaseModel):
    """Point of an empirical cumulative distribution."""

    x: float
    cdf: float = Field(..., ge=0.0, le=1.0, description="Proportion of values <= x")


# =============================================================================
# SENSITIVITY
# =============================================================================


class SensitivityResult(BaseModel):
    """Sensitivity of one output to one input."""

    input_id: str = Field(..., alias="inputId")
    input_name: str = Field(..., alias="inputName")
    coefficient: float = Field(..., description="Standardised regression coefficient")
    rank_correlation: float = Field(..., alias="rankCorrelation", description="Spearman rank correlation")

    class Config:
        frozen = True
        populate_by_name = True


# =============================================================================
# RESULTS
# =============================================================================


class OutputResults(BaseModel):
    """Results for a single output across all completed iterations."""

    output_id: str = Field(..., alias="outputId")
    name: str
    values: List[float] = Field(default_factory=list, description="Raw iteration values")
    stats: OutputStatistics
    coerced_count: int = Field(
        default=0,
        ge=0,
        alias="coercedCount",
        description="Evaluator values that were non-numeric and coerced to 0.0"
    )

    class Config:
        frozen = True
        populate_by_name = True


class SimulationResults(BaseModel):
    """Aggregate results of a completed or cancelled run."""

    config: SimulationConfig
    status: SimulationStatus
    outputs: List[OutputResults] = Field(default_factory=list)
    sensitivity: Dict[str, List[SensitivityResult]] = Field(
        default_factory=dict,
        description="Output id -> sensitivity list sorted by |coefficient| descending"
    )
    elapsed_ms: float = Field(default=0.0, ge=0.0, alias="elapsedMs")
    input_samples: List[List[float]] = Field(
        default_factory=list,
        alias="inputSamples",
        description="Rows = iterations, columns = inputs in registration order"
    )
    completed_iterations: int = Field(default=0, ge=0, alias="completedIterations")

    class Config:
        frozen = True
        populate_by_name = True

    def get_output(self, output_id: str) -> Optional[OutputResults]:
        """Look up the results of one output by id."""
        for output in self.outputs:
            if output.output_id == output_id:
                return output
        return None

    def to_dict(self, include_samples: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Raw value series and the sample matrix are large and excluded
        unless ``include_samples`` is set.
        """
        exclude = None if include_samples else {
            "input_samples": True,
            "outputs": {"__all__": {"values"}},
        }
        return self.model_dump(by_alias=True, mode="json", exclude=exclude)
