"""
Unit Tests for sensitivity analysis.

Tests compute_sensitivity() and its helpers:
- output = 3*A - B ranks A above B with correct signs
- Average ranks for ties in the Spearman transform
- Fewer than 3 iterations or no inputs yields no ranking
- Shape mismatches fail with a structured error
"""

import math

import numpy as np
import pytest

from mcrisk.config.errors import ErrorCode, ValidationError
from mcrisk.services.sensitivity import (
    compute_sensitivity,
    pearson_coefficient,
    rank_transform,
    spearman_rank_correlation,
)


@pytest.fixture
def linear_model():
    """1000 iterations of independent Uniform(0, 1) A, B and output 3A - B."""
    matrix = np.random.default_rng(2024).uniform(0, 1, size=(1000, 2))
    output = 3 * matrix[:, 0] - matrix[:, 1]
    return matrix.tolist(), output.tolist()


# =============================================================================
# Test: ranking
# =============================================================================


def test_linear_model_ranks_a_above_b(linear_model):
    matrix, output = linear_model

    results = compute_sensitivity(matrix, output, ["inputA", "inputB"], ["a", "b"])

    assert [r.input_id for r in results] == ["a", "b"]
    assert results[0].coefficient > 0
    assert results[1].coefficient < 0
    assert abs(results[0].coefficient) > abs(results[1].coefficient)


def test_linear_model_coefficients_match_theory(linear_model):
    """corr(A, 3A - B) = 3/sqrt(10); corr(B, 3A - B) = -1/sqrt(10)."""
    matrix, output = linear_model

    results = {r.input_id: r for r in compute_sensitivity(matrix, output, ["A", "B"], ["a", "b"])}

    assert results["a"].coefficient == pytest.approx(3 / math.sqrt(10), abs=0.03)
    assert results["b"].coefficient == pytest.approx(-1 / math.sqrt(10), abs=0.1)
    assert results["a"].rank_correlation > 0
    assert results["b"].rank_correlation < 0


def test_result_carries_names_and_ids(linear_model):
    matrix, output = linear_model

    results = compute_sensitivity(matrix, output, ["Alpha", "Beta"], ["a", "b"])

    assert results[0].input_name == "Alpha"
    assert results[1].input_name == "Beta"


def test_equal_coefficients_keep_input_order():
    column = [1.0, 2.0, 3.0, 4.0, 5.0]
    matrix = [[v, v] for v in column]

    results = compute_sensitivity(matrix, column, ["first", "second"], ["first", "second"])

    assert [r.input_id for r in results] == ["first", "second"]


# =============================================================================
# Test: guards
# =============================================================================


def test_fewer_than_three_iterations_returns_empty():
    assert compute_sensitivity([[1.0], [2.0]], [1.0, 2.0], ["x"], ["x"]) == []


def test_no_inputs_returns_empty():
    assert compute_sensitivity([[], [], []], [1.0, 2.0, 3.0], [], []) == []


def test_row_count_mismatch_raises():
    with pytest.raises(ValidationError) as exc_info:
        compute_sensitivity([[1.0], [2.0], [3.0]], [1.0, 2.0, 3.0, 4.0], ["x"], ["x"])

    assert exc_info.value.code == ErrorCode.INVALID_SHAPE


def test_column_count_mismatch_raises():
    with pytest.raises(ValidationError):
        compute_sensitivity([[1.0, 2.0]] * 4, [1.0, 2.0, 3.0, 4.0], ["x"], ["x"])


def test_names_and_ids_length_mismatch_raises():
    with pytest.raises(ValidationError):
        compute_sensitivity([[1.0]] * 4, [1.0, 2.0, 3.0, 4.0], ["x"], ["x", "y"])


# =============================================================================
# Test: helpers
# =============================================================================


def test_rank_transform_distinct_values():
    assert rank_transform([30, 10, 20]).tolist() == [3.0, 1.0, 2.0]


def test_rank_transform_averages_ties():
    assert rank_transform([10, 20, 20, 30]).tolist() == [1.0, 2.5, 2.5, 4.0]
    assert rank_transform([5, 5, 5]).tolist() == [2.0, 2.0, 2.0]


def test_pearson_zero_variance_is_zero():
    assert pearson_coefficient([1, 1, 1], [1, 2, 3]) == 0.0
    assert pearson_coefficient([1, 2, 3], [4, 4, 4]) == 0.0


def test_pearson_constant_column_is_exactly_zero():
    """A constant 0.1 column has rounding noise in its mean; coefficient stays 0."""
    column = [0.1] * 1000
    output = [float(i) for i in range(1000)]

    assert pearson_coefficient(column, output) == 0.0
    assert pearson_coefficient(output, column) == 0.0


def test_constant_input_ranks_with_zero_coefficients():
    rng = np.random.default_rng(7)
    varying = rng.uniform(0, 1, size=500)
    matrix = [[0.1, v] for v in varying]

    results = compute_sensitivity(matrix, (2 * varying).tolist(), ["flat", "live"], ["flat", "live"])

    flat = next(r for r in results if r.input_id == "flat")
    assert flat.coefficient == 0.0
    assert flat.rank_correlation == 0.0
    assert results[0].input_id == "live"


def test_pearson_non_finite_series_is_zero():
    assert pearson_coefficient([math.inf] * 5, [1, 2, 3, 4, 5]) == 0.0
    assert pearson_coefficient([1, 2, math.inf, 4], [1, 2, 3, 4]) == 0.0


def test_pearson_perfect_linear():
    assert pearson_coefficient([1, 2, 3, 4], [2, 4, 6, 8]) == pytest.approx(1.0)
    assert pearson_coefficient([1, 2, 3, 4], [8, 6, 4, 2]) == pytest.approx(-1.0)


def test_spearman_detects_monotone_nonlinear():
    x = [0.1 * i for i in range(1, 50)]
    y = [math.exp(v) for v in x]

    assert spearman_rank_correlation(x, y) == pytest.approx(1.0)
    assert pearson_coefficient(x, y) < 1.0
