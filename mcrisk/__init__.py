"""mcrisk - Monte Carlo risk analysis engine.

This package contains the simulation engine for probabilistic risk
analysis of spreadsheet-style models.

Architecture:
- Random Source: seedable xoshiro128** or ambient randomness
- Distribution Library: normal, uniform, triangular, PERT, lognormal, discrete
- Statistics Engine: order statistics, moments, histogram and CDF series
- Sensitivity Engine: regression coefficients and Spearman rank correlation
- Orchestrator: sequential async iteration loop with progress and cancellation
"""

__version__ = "1.0.0"
