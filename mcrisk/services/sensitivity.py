"""
Sensitivity analysis for simulation outputs.

For each output, ranks every input by how strongly its sampled column
moves the output series:
- coefficient: standardised regression coefficient, which for a single
  regressor equals the Pearson correlation
- rank_correlation: Spearman correlation, robust to monotone
  non-linear relationships
"""

from typing import List, Sequence

import numpy as np

from mcrisk.config.errors import ErrorCode, ValidationError
from mcrisk.models.simulation import SensitivityResult

MIN_SENSITIVITY_ITERATIONS = 3


def pearson_coefficient(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Population covariance over the product of population standard deviations.

    Returns:
        Correlation in [-1, 1]; 0.0 when either series has zero variance
        or holds a non-finite value
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if x_arr.size == 0:
        return 0.0
    if not (np.isfinite(x_arr).all() and np.isfinite(y_arr).all()):
        return 0.0
    # Constant series: rounding in the mean would leave a tiny nonzero spread
    if np.ptp(x_arr) == 0 or np.ptp(y_arr) == 0:
        return 0.0

    dx = x_arr - np.mean(x_arr)
    dy = y_arr - np.mean(y_arr)
    sx = float(np.sqrt(np.mean(dx * dx)))
    sy = float(np.sqrt(np.mean(dy * dy)))
    if sx == 0 or sy == 0:
        return 0.0

    cov = float(np.mean(dx * dy))
    return cov / (sx * sy)


def rank_transform(values: Sequence[float]) -> np.ndarray:
    """1-based ranks; tied values share the average rank of their group."""
    arr = np.asarray(values, dtype=float)
    n = arr.size
    order = np.argsort(arr, kind="stable")
    sorted_vals = arr[order]
    ranks = np.empty(n, dtype=float)

    i = 0
    while i < n:
        j = i
        while j < n - 1 and sorted_vals[j + 1] == sorted_vals[i]:
            j += 1
        ranks[order[i:j + 1]] = (i + j) / 2 + 1
        i = j + 1
    return ranks


def spearman_rank_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    return pearson_coefficient(rank_transform(x), rank_transform(y))


def compute_sensitivity(
    input_matrix: Sequence[Sequence[float]],
    output_values: Sequence[float],
    input_names: Sequence[str],
    input_ids: Sequence[str],
) -> List[SensitivityResult]:
    """
    Rank inputs by their influence on one output.

    Args:
        input_matrix: Rows = iterations, columns = inputs
        output_values: Output series, one value per iteration
        input_names: Input display names, in column order
        input_ids: Input ids, in column order

    Returns:
        SensitivityResult per input sorted by |coefficient| descending
        (ties keep input order); empty with fewer than 3 iterations or
        no inputs

    Raises:
        ValidationError: If the matrix shape does not match the output
                         series and input lists
    """
    n = len(output_values)
    num_inputs = len(input_names)
    if len(input_ids) != num_inputs:
        raise ValidationError(
            f"input_ids and input_names differ in length ({len(input_ids)} vs {num_inputs})",
            code=ErrorCode.INVALID_SHAPE,
            field="input_ids",
        )
    if n < MIN_SENSITIVITY_ITERATIONS or num_inputs == 0:
        return []

    matrix = np.asarray(input_matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != n or matrix.shape[1] != num_inputs:
        raise ValidationError(
            f"Input matrix shape {matrix.shape} does not match "
            f"{n} iterations x {num_inputs} inputs",
            code=ErrorCode.INVALID_SHAPE,
            field="input_matrix",
        )

    output_arr = np.asarray(output_values, dtype=float)
    results = []
    for j in range(num_inputs):
        column = matrix[:, j]
        results.append(
            SensitivityResult(
                input_id=input_ids[j],
                input_name=input_names[j],
                coefficient=pearson_coefficient(column, output_arr),
                rank_correlation=spearman_rank_correlation(column, output_arr),
            )
        )

    # sort() is stable, so equal magnitudes keep input order
    results.sort(key=lambda r: abs(r.coefficient), reverse=True)
    return results
