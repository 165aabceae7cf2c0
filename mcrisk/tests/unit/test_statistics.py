"""
Unit Tests for the statistics engine.

Tests percentile(), compute_statistics(), compute_histogram() and
compute_cdf():
- Linear-interpolation percentiles on order statistics
- Empty and single-value series
- Population moments and excess kurtosis
- Histogram counts sum to n; CDF ends at 1.0
"""

import math

import numpy as np
import pytest

from mcrisk.config.errors import ErrorCode, ValidationError
from mcrisk.services.statistics import (
    compute_cdf,
    compute_histogram,
    compute_mode,
    compute_statistics,
    percentile,
    sturges_bin_count,
)


@pytest.fixture
def normal_values():
    return np.random.default_rng(7).normal(50, 5, size=1000).tolist()


# =============================================================================
# Test: percentile
# =============================================================================


def test_percentile_interpolates_even_length():
    assert percentile([1, 2, 3, 4], 0.5) == 2.5


def test_percentile_odd_length_hits_middle():
    assert percentile([1, 2, 3], 0.5) == 2


def test_percentile_single_value():
    assert percentile([5], 0.5) == 5
    assert percentile([5], 0.99) == 5


def test_percentile_empty_is_zero():
    assert percentile([], 0.5) == 0.0


def test_percentile_extremes_are_min_and_max():
    values = [2, 4, 8, 16]

    assert percentile(values, 0.0) == 2
    assert percentile(values, 1.0) == 16


def test_percentile_matches_numpy_linear():
    values = sorted(np.random.default_rng(1).uniform(0, 100, size=257).tolist())

    for p in (0.01, 0.1, 0.33, 0.9, 0.99):
        assert percentile(values, p) == pytest.approx(float(np.percentile(values, p * 100)))


# =============================================================================
# Test: compute_statistics edge cases
# =============================================================================


def test_empty_series_returns_zero_stats():
    stats = compute_statistics([])

    assert stats.count == 0
    assert stats.mean == 0
    assert stats.median == 0
    assert stats.std_dev == 0
    assert stats.percentiles.p99 == 0
    assert stats.confidence_interval == (0.0, 0.0)


def test_single_value_series():
    stats = compute_statistics([7])

    assert stats.count == 1
    assert stats.mean == 7
    assert stats.median == 7
    assert stats.mode == 7
    assert stats.minimum == 7
    assert stats.maximum == 7
    assert stats.std_dev == 0
    assert stats.variance == 0
    assert stats.skewness == 0
    assert stats.kurtosis == 0


def test_constant_series_has_zero_spread():
    stats = compute_statistics([0.1, 0.1, 0.1, 0.1])

    assert stats.mean == 0.1
    assert stats.std_dev == 0
    assert stats.mode == 0.1
    assert stats.percentiles.p5 == pytest.approx(0.1)


# =============================================================================
# Test: moments
# =============================================================================


def test_population_moments():
    stats = compute_statistics([1, 2, 3, 4])

    assert stats.mean == 2.5
    assert stats.median == 2.5
    assert stats.variance == pytest.approx(1.25)
    assert stats.std_dev == pytest.approx(math.sqrt(1.25))
    assert stats.skewness == pytest.approx(0.0, abs=1e-12)
    assert stats.kurtosis == pytest.approx(-1.36)


def test_right_skewed_series_has_positive_skewness():
    stats = compute_statistics([1, 1, 1, 1, 2, 2, 3, 10])

    assert stats.skewness > 0


def test_normal_sample_statistics(normal_values):
    stats = compute_statistics(normal_values)

    assert stats.count == 1000
    assert stats.mean == pytest.approx(50, abs=0.6)
    assert stats.std_dev == pytest.approx(5, abs=0.4)
    assert abs(stats.kurtosis) < 0.6
    assert stats.minimum <= stats.percentiles.p1 <= stats.percentiles.p25
    assert stats.percentiles.p25 <= stats.median <= stats.percentiles.p75
    assert stats.percentiles.p95 <= stats.percentiles.p99 <= stats.maximum


# =============================================================================
# Test: interval and probabilities
# =============================================================================


def test_confidence_interval_uses_tail_percentiles():
    values = list(range(101))
    stats = compute_statistics(values, confidence_level=0.9)

    low, high = stats.confidence_interval
    assert low == pytest.approx(5)
    assert high == pytest.approx(95)


def test_prob_negative_and_threshold():
    stats = compute_statistics([-2, -1, 0, 1, 2], probability_threshold=1.5)

    assert stats.prob_negative == pytest.approx(0.4)
    assert stats.prob_below_threshold == pytest.approx(0.8)
    assert stats.probability_threshold == 1.5


# =============================================================================
# Test: mode estimation
# =============================================================================


def test_sturges_bin_count_is_bounded():
    assert sturges_bin_count(1000, 10, 200) == 11
    assert sturges_bin_count(1000, 20, 100) == 20
    assert sturges_bin_count(10 ** 60, 10, 200) == 200
    assert sturges_bin_count(0, 10, 200) == 10


def test_mode_is_midpoint_of_peak_bin():
    values = sorted([0.0] + [5.0] * 50 + [10.0])

    # 10 bins of width 1; 5.0 lands in bin 5
    assert compute_mode(values) == pytest.approx(5.5)


def test_mode_of_two_values_is_minimum():
    assert compute_mode([3.0, 9.0]) == 3.0


def test_mode_ties_resolve_to_first_bin():
    values = sorted([0.0] * 5 + [10.0] * 5)

    assert compute_mode(values) == pytest.approx(0.5)


# =============================================================================
# Test: histogram
# =============================================================================


def test_histogram_counts_sum_to_n(normal_values):
    bins = compute_histogram(normal_values)

    assert len(bins) == 20
    assert sum(b.count for b in bins) == len(normal_values)


def test_histogram_spans_min_to_max(normal_values):
    bins = compute_histogram(normal_values, num_bins=7)

    assert len(bins) == 7
    assert bins[0].x0 == pytest.approx(min(normal_values))
    assert bins[-1].x1 == pytest.approx(max(normal_values))


def test_histogram_density_integrates_to_one(normal_values):
    bins = compute_histogram(normal_values)

    assert sum(b.density * (b.x1 - b.x0) for b in bins) == pytest.approx(1.0)
    assert sum(b.frequency for b in bins) == pytest.approx(1.0)


def test_histogram_constant_series_single_bin():
    bins = compute_histogram([4.0, 4.0, 4.0])

    assert len(bins) == 1
    assert bins[0].count == 3
    assert bins[0].x0 == 3.5
    assert bins[0].x1 == 4.5


def test_histogram_empty_series():
    assert compute_histogram([]) == []


def test_histogram_rejects_zero_bins():
    with pytest.raises(ValidationError) as exc_info:
        compute_histogram([1, 2, 3], num_bins=0)

    assert exc_info.value.code == ErrorCode.INVALID_SHAPE


# =============================================================================
# Test: CDF
# =============================================================================


def test_cdf_ends_at_one_for_maximum(normal_values):
    points = compute_cdf(normal_values)

    assert len(points) == 200
    assert points[-1].x == pytest.approx(max(normal_values))
    assert points[-1].cdf == 1.0


def test_cdf_is_non_decreasing(normal_values):
    points = compute_cdf(normal_values, num_points=50)
    cdfs = [p.cdf for p in points]

    assert cdfs == sorted(cdfs)
    assert cdfs[0] == pytest.approx(1 / len(normal_values))


def test_cdf_constant_series_is_step():
    points = compute_cdf([2.0, 2.0])

    assert [(p.x, p.cdf) for p in points] == [(1.5, 0.0), (2.0, 1.0)]


def test_cdf_empty_series():
    assert compute_cdf([]) == []


def test_cdf_rejects_single_point():
    with pytest.raises(ValidationError):
        compute_cdf([1, 2, 3], num_points=1)
