"""
Distribution samplers for the simulation engine.

Transforms uniform draws from a RandomSource into samples of the
supported parametric distributions, and provides each distribution's
expected value (the "static" value shown outside a simulation).

Architecture:
- DistributionSampler owns its RandomSource and the Box-Muller spare,
  so concurrent runs never share sampler state
- Normal: Box-Muller polar method, second deviate buffered
- Triangular: inverse CDF
- PERT: Beta via two Marsaglia-Tsang gamma draws
- Degenerate parameters never raise; each sampler returns a
  deterministic value instead
"""

import math
from typing import Any, Mapping, Optional, Sequence, Union

from mcrisk.models.distribution import (
    DiscreteParams,
    DistributionParams,
    DistributionType,
    LognormalParams,
    NormalParams,
    PertParams,
    TriangularParams,
    UniformParams,
    parse_params,
    resolve_distribution_type,
)
from mcrisk.services.random_source import RandomSource

# Lower bound on derived Beta shape parameters for PERT sampling.
# Tunable stability guard, not part of the PERT definition.
PERT_MIN_SHAPE = 0.5

# PERT lambda used by the fallback shape derivation
PERT_LAMBDA = 4.0

ParamsLike = Union[DistributionParams, Mapping[str, Any]]


def _exp(x: float) -> float:
    """math.exp that saturates to inf instead of raising OverflowError."""
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


# =============================================================================
# Expected Values
# =============================================================================


def expected_normal(mean: float, stdev: float) -> float:
    return mean


def expected_uniform(min_val: float, max_val: float) -> float:
    return (min_val + max_val) / 2


def expected_triangular(min_val: float, mode: float, max_val: float) -> float:
    # The static display value is the mode, not the triangular mean
    return mode


def expected_pert(min_val: float, mode: float, max_val: float) -> float:
    """PERT weighted mean (min + 4*mode + max) / 6."""
    return (min_val + 4 * mode + max_val) / 6


def expected_lognormal(mu: float, sigma: float) -> float:
    """E[X] = exp(mu + sigma^2 / 2)."""
    return _exp(mu + (sigma * sigma) / 2)


def expected_discrete(values: Sequence[float], probs: Sequence[float]) -> float:
    """Probability-weighted sum of the outcomes."""
    return sum(value * prob for value, prob in zip(values, probs))


def expected_value(dist_type: Any, params: ParamsLike) -> float:
    """
    Expected (static) value of a distribution.

    Args:
        dist_type: Distribution type tag or DistributionType
        params: Typed params model or raw parameter mapping

    Returns:
        The distribution's closed-form mean (mode for triangular)

    Raises:
        UnsupportedDistributionError: If the type tag is unknown
        ValidationError: If raw parameters are invalid
    """
    resolved = resolve_distribution_type(dist_type)
    p = parse_params(resolved, params)

    if resolved == DistributionType.NORMAL:
        return expected_normal(p.mean, p.stdev)
    elif resolved == DistributionType.UNIFORM:
        return expected_uniform(p.min, p.max)
    elif resolved == DistributionType.TRIANGULAR:
        return expected_triangular(p.min, p.mode, p.max)
    elif resolved == DistributionType.PERT:
        return expected_pert(p.min, p.mode, p.max)
    elif resolved == DistributionType.LOGNORMAL:
        return expected_lognormal(p.mu, p.sigma)
    else:
        return expected_discrete(p.values, p.probs)


# =============================================================================
# Sampler
# =============================================================================


class DistributionSampler:
    """Draws single samples from the supported distributions."""

    def __init__(self, random_source: Optional[RandomSource] = None):
        """
        Initialize sampler.

        Args:
            random_source: Uniform source to draw from (default: a fresh
                           non-deterministic source)
        """
        self.random_source = random_source or RandomSource()
        self._has_spare = False
        self._spare = 0.0

    def reset(self) -> None:
        """Drop the buffered Box-Muller deviate (called at run start)."""
        self._has_spare = False
        self._spare = 0.0

    def _rand(self) -> float:
        return self.random_source.next()

    # -------------------------------------------------------------------------
    # Normal family
    # -------------------------------------------------------------------------

    def standard_normal(self) -> float:
        """Standard normal deviate via the Box-Muller polar method.

        Each accepted pair yields two deviates; the second is buffered
        and returned by the next call.
        """
        if self._has_spare:
            self._has_spare = False
            return self._spare

        while True:
            u = self._rand() * 2 - 1
            v = self._rand() * 2 - 1
            s = u * u + v * v
            if 0 < s < 1:
                break

        mul = math.sqrt(-2 * math.log(s) / s)
        self._spare = v * mul
        self._has_spare = True
        return u * mul

    def normal(self, mean: float, stdev: float) -> float:
        return mean + stdev * self.standard_normal()

    def lognormal(self, mu: float, sigma: float) -> float:
        return _exp(mu + sigma * self.standard_normal())

    # -------------------------------------------------------------------------
    # Bounded distributions
    # -------------------------------------------------------------------------

    def uniform(self, min_val: float, max_val: float) -> float:
        return min_val + self._rand() * (max_val - min_val)

    def triangular(self, min_val: float, mode: float, max_val: float) -> float:
        """
        Triangular sample by inverse CDF.

        Args:
            min_val: Left bound
            mode: Peak (clamped into [min_val, max_val])
            max_val: Right bound

        Returns:
            Sample in [min_val, max_val]; ``mode`` when the range is empty
        """
        range_ = max_val - min_val
        if range_ <= 0:
            return mode

        mode = min(max(mode, min_val), max_val)
        u = self._rand()
        fc = (mode - min_val) / range_
        if u < fc:
            return min_val + math.sqrt(u * range_ * (mode - min_val))
        return max_val - math.sqrt((1 - u) * range_ * (max_val - mode))

    def pert(self, min_val: float, mode: float, max_val: float) -> float:
        """
        PERT sample: Beta(alpha, beta) rescaled onto [min_val, max_val].

        Shape parameters come from the PERT mean
        mu = (min + 4*mode + max) / 6. When the closed form gives a
        non-positive (or undefined) alpha, the lambda=4 approximation
        is used instead. Both shapes are floored at PERT_MIN_SHAPE.

        Returns:
            Sample in [min_val, max_val]; ``mode`` when the range is empty
        """
        range_ = max_val - min_val
        if range_ <= 0:
            return mode

        mu = expected_pert(min_val, mode, max_val)
        alpha = 0.0
        beta = 0.0
        if mode != mu and mu != min_val:
            alpha = ((mu - min_val) * (2 * mode - min_val - max_val)) / ((mode - mu) * range_)
            if alpha > 0:
                beta = alpha * (max_val - mu) / (mu - min_val)

        if alpha <= 0:
            alpha = 1 + PERT_LAMBDA * (mu - min_val) / range_
            beta = 1 + PERT_LAMBDA * (max_val - mu) / range_

        alpha = max(alpha, PERT_MIN_SHAPE)
        beta = max(beta, PERT_MIN_SHAPE)
        return min_val + self.beta(alpha, beta) * range_

    def discrete(self, values: Sequence[float], probs: Sequence[float]) -> float:
        """First value whose running cumulative probability reaches u."""
        u = self._rand()
        cumulative = 0.0
        for value, prob in zip(values, probs):
            cumulative += prob
            if u <= cumulative:
                return value
        return values[-1]

    # -------------------------------------------------------------------------
    # Gamma / Beta helpers
    # -------------------------------------------------------------------------

    def gamma(self, shape: float, scale: float = 1.0) -> float:
        """
        Gamma sample by Marsaglia & Tsang rejection.

        Shapes below 1 are boosted by one and corrected with u^(1/shape).
        """
        if shape < 1:
            return self.gamma(shape + 1, scale) * self._rand() ** (1 / shape)

        d = shape - 1 / 3
        c = 1 / math.sqrt(9 * d)
        while True:
            while True:
                x = self.standard_normal()
                v = 1 + c * x
                if v > 0:
                    break
            v = v * v * v
            u = self._rand()
            if u < 1 - 0.0331 * (x * x) * (x * x):
                return d * v * scale
            if u > 0 and math.log(u) < 0.5 * x * x + d * (1 - v + math.log(v)):
                return d * v * scale

    def beta(self, a: float, b: float) -> float:
        x = self.gamma(a, 1.0)
        y = self.gamma(b, 1.0)
        total = x + y
        if total == 0:
            return 0.5
        return x / total

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def sample(self, dist_type: Any, params: ParamsLike) -> float:
        """
        Draw one sample from a distribution.

        Args:
            dist_type: Distribution type tag or DistributionType
            params: Typed params model or raw parameter mapping

        Returns:
            One stochastic draw

        Raises:
            UnsupportedDistributionError: If the type tag is unknown
            ValidationError: If raw parameters are invalid
        """
        resolved = resolve_distribution_type(dist_type)
        p = parse_params(resolved, params)

        if resolved == DistributionType.NORMAL:
            return self.normal(p.mean, p.stdev)
        elif resolved == DistributionType.UNIFORM:
            return self.uniform(p.min, p.max)
        elif resolved == DistributionType.TRIANGULAR:
            return self.triangular(p.min, p.mode, p.max)
        elif resolved == DistributionType.PERT:
            return self.pert(p.min, p.mode, p.max)
        elif resolved == DistributionType.LOGNORMAL:
            return self.lognormal(p.mu, p.sigma)
        else:
            return self.discrete(p.values, p.probs)


# Module-level convenience function for direct use
def sample_distribution(
    dist_type: Any,
    params: ParamsLike,
    sampler: Optional[DistributionSampler] = None,
) -> float:
    """Draw one sample, using a throwaway non-deterministic sampler if none is given."""
    return (sampler or DistributionSampler()).sample(dist_type, params)


__all__ = [
    "PERT_MIN_SHAPE",
    "DistributionSampler",
    "sample_distribution",
    "expected_value",
    "expected_normal",
    "expected_uniform",
    "expected_triangular",
    "expected_pert",
    "expected_lognormal",
    "expected_discrete",
    "NormalParams",
    "UniformParams",
    "TriangularParams",
    "PertParams",
    "LognormalParams",
    "DiscreteParams",
]
