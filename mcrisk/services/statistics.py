"""
Descriptive statistics for simulation output series.

Pure NumPy math over a finite sample array: order statistics,
population moments, histogram-estimated mode, plus the histogram and
CDF series used for charting and reporting.

Architecture:
- Percentiles interpolate linearly between order statistics at
  rank p*(n-1), matching np.percentile's "linear" method
- Moments are population (not sample-corrected); kurtosis is excess
- Bin counts follow Sturges' rule, bounded per use
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from mcrisk.config.errors import ErrorCode, ValidationError
from mcrisk.models.simulation import (
    CDFPoint,
    HistogramBin,
    OutputStatistics,
    PercentileValues,
)

# Sturges bounds for the histogram-estimated mode
MODE_MIN_BINS = 10
MODE_MAX_BINS = 200

# Sturges bounds for the default charting histogram
HISTOGRAM_MIN_BINS = 20
HISTOGRAM_MAX_BINS = 100

DEFAULT_CDF_POINTS = 200

# Reported percentile levels, keyed by PercentileValues field
PERCENTILE_LEVELS = {
    "p1": 0.01,
    "p5": 0.05,
    "p10": 0.10,
    "p25": 0.25,
    "p50": 0.50,
    "p75": 0.75,
    "p90": 0.90,
    "p95": 0.95,
    "p99": 0.99,
}


# =============================================================================
# Order Statistics
# =============================================================================


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Linear-interpolation percentile on an ascending array.

    Args:
        sorted_values: Values sorted ascending
        p: Quantile in [0, 1]

    Returns:
        Interpolated value at rank p*(n-1); 0.0 for an empty array and
        the single element when n == 1
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n == 1:
        return float(sorted_values[0])

    idx = p * (n - 1)
    lo = int(math.floor(idx))
    hi = int(math.ceil(idx))
    lo = min(max(lo, 0), n - 1)
    hi = min(max(hi, 0), n - 1)
    frac = idx - lo
    return float(sorted_values[lo] * (1 - frac) + sorted_values[hi] * frac)


def sturges_bin_count(n: int, lower: int, upper: int) -> int:
    """Sturges' rule ceil(1 + 3.322*log10(n)) clamped to [lower, upper]."""
    if n <= 0:
        return lower
    return max(lower, min(upper, int(math.ceil(1 + 3.322 * math.log10(n)))))


def _bin_indices(values: np.ndarray, minimum: float, bin_width: float, num_bins: int) -> np.ndarray:
    # Values equal to the maximum belong to the last bin
    idx = np.floor((values - minimum) / bin_width).astype(np.int64)
    return np.clip(idx, 0, num_bins - 1)


def compute_mode(sorted_values: Sequence[float]) -> float:
    """
    Histogram-estimated mode.

    Bins the data into equal-width Sturges bins and returns the midpoint
    of the most populous bin; the first such bin wins ties.
    """
    arr = np.asarray(sorted_values, dtype=float)
    n = arr.size
    if n == 0:
        return 0.0

    minimum = float(arr[0])
    value_range = float(arr[-1]) - minimum
    if n <= 2 or value_range == 0:
        return minimum

    num_bins = sturges_bin_count(n, MODE_MIN_BINS, MODE_MAX_BINS)
    bin_width = value_range / num_bins
    counts = np.bincount(_bin_indices(arr, minimum, bin_width, num_bins), minlength=num_bins)
    # argmax returns the first maximal bin
    max_bin = int(np.argmax(counts))
    return minimum + (max_bin + 0.5) * bin_width


# =============================================================================
# Descriptive Statistics
# =============================================================================


def compute_statistics(
    values: Sequence[float],
    confidence_level: float = 0.9,
    probability_threshold: float = 0.0,
) -> OutputStatistics:
    """
    Compute full descriptive statistics for one output series.

    Args:
        values: Output values, one per completed iteration
        confidence_level: Central interval mass (e.g. 0.90 -> [P5, P95])
        probability_threshold: Threshold for P(X < threshold)

    Returns:
        OutputStatistics; the zero-filled structure when values is empty
    """
    arr = np.asarray(values, dtype=float)
    n = int(arr.size)
    if n == 0:
        return OutputStatistics.empty(probability_threshold=probability_threshold)

    sorted_arr = np.sort(arr)
    minimum = float(sorted_arr[0])
    maximum = float(sorted_arr[-1])
    mean = float(np.mean(arr))

    if maximum == minimum:
        # Constant series: every location statistic is that value
        mean = minimum
        variance = 0.0
        std_dev = 0.0
        skewness = 0.0
        kurtosis = 0.0
    else:
        diff = arr - mean
        d2 = diff * diff
        variance = float(np.sum(d2) / n)
        std_dev = math.sqrt(variance)
        if std_dev > 0:
            skewness = float(np.sum(d2 * diff) / n) / (std_dev ** 3)
            kurtosis = float(np.sum(d2 * d2) / n) / (variance * variance) - 3
        else:
            skewness = 0.0
            kurtosis = 0.0

    percentiles = PercentileValues(
        **{key: percentile(sorted_arr, level) for key, level in PERCENTILE_LEVELS.items()}
    )

    alpha = (1 - confidence_level) / 2
    confidence_interval = (
        percentile(sorted_arr, alpha),
        percentile(sorted_arr, 1 - alpha),
    )

    return OutputStatistics(
        minimum=minimum,
        maximum=maximum,
        mean=mean,
        median=percentile(sorted_arr, 0.5),
        mode=compute_mode(sorted_arr),
        std_dev=std_dev,
        variance=variance,
        skewness=skewness,
        kurtosis=kurtosis,
        percentiles=percentiles,
        confidence_interval=confidence_interval,
        prob_negative=float(np.count_nonzero(arr < 0)) / n,
        prob_below_threshold=float(np.count_nonzero(arr < probability_threshold)) / n,
        probability_threshold=probability_threshold,
        count=n,
    )


# =============================================================================
# Chart Series
# =============================================================================


def compute_histogram(values: Sequence[float], num_bins: Optional[int] = None) -> List[HistogramBin]:
    """
    Equal-width histogram for distribution charts.

    Args:
        values: Output values
        num_bins: Bin count override (default: bounded Sturges rule)

    Returns:
        List of HistogramBin whose counts sum to len(values). A constant
        series yields one synthetic bin of width 1 centred on the value.

    Raises:
        ValidationError: If num_bins is given and < 1
    """
    if num_bins is not None and num_bins < 1:
        raise ValidationError(
            f"num_bins must be >= 1 (got {num_bins})",
            code=ErrorCode.INVALID_SHAPE,
            field="num_bins",
        )

    arr = np.asarray(values, dtype=float)
    n = int(arr.size)
    if n == 0:
        return []

    minimum = float(np.min(arr))
    maximum = float(np.max(arr))
    value_range = maximum - minimum

    if value_range == 0:
        return [HistogramBin(x0=minimum - 0.5, x1=maximum + 0.5, count=n, frequency=1.0, density=1.0)]

    bins = num_bins or sturges_bin_count(n, HISTOGRAM_MIN_BINS, HISTOGRAM_MAX_BINS)
    bin_width = value_range / bins
    counts = np.bincount(_bin_indices(arr, minimum, bin_width, bins), minlength=bins)

    histogram = []
    for i in range(bins):
        frequency = int(counts[i]) / n
        histogram.append(
            HistogramBin(
                x0=minimum + i * bin_width,
                x1=minimum + (i + 1) * bin_width,
                count=int(counts[i]),
                frequency=frequency,
                density=frequency / bin_width,
            )
        )
    return histogram


def compute_cdf(values: Sequence[float], num_points: int = DEFAULT_CDF_POINTS) -> List[CDFPoint]:
    """
    Empirical CDF sampled on an even grid from min to max.

    Each point carries the proportion of values <= x; the last point
    is the sample maximum with cdf == 1.0. A constant series yields a
    two-point step.

    Raises:
        ValidationError: If num_points < 2
    """
    if num_points < 2:
        raise ValidationError(
            f"num_points must be >= 2 (got {num_points})",
            code=ErrorCode.INVALID_SHAPE,
            field="num_points",
        )

    arr = np.asarray(values, dtype=float)
    n = int(arr.size)
    if n == 0:
        return []

    sorted_arr = np.sort(arr)
    minimum = float(sorted_arr[0])
    maximum = float(sorted_arr[-1])

    if maximum == minimum:
        return [CDFPoint(x=minimum - 0.5, cdf=0.0), CDFPoint(x=minimum, cdf=1.0)]

    xs = np.linspace(minimum, maximum, num_points)
    below = np.searchsorted(sorted_arr, xs, side="right")
    return [CDFPoint(x=float(x), cdf=int(count) / n) for x, count in zip(xs, below)]
