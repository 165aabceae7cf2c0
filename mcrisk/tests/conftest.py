"""Pytest configuration and shared fixtures for mcrisk tests."""

import os
import sys
from typing import List
from unittest.mock import AsyncMock

import pytest


# ============================================================================
# Ensure the package imports work
# ============================================================================
#
# Tests live inside the package tree without __init__.py files, so the
# repository root may not be on sys.path during collection.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from mcrisk.models.distribution import DistributionInput, SimulationOutput  # noqa: E402
from mcrisk.models.simulation import SimulationConfig  # noqa: E402
from mcrisk.services.evaluators import CallableEvaluator, Evaluator  # noqa: E402
from mcrisk.services.registry import SimulationRegistry  # noqa: E402
from mcrisk.services.simulator import SimulationOrchestrator  # noqa: E402
from mcrisk.tests.fixtures.mock_simulation_data import (  # noqa: E402
    get_mock_inputs,
    get_mock_outputs,
)


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def seeded_config() -> SimulationConfig:
    """Deterministic 500-iteration config."""
    return SimulationConfig(iterations=500, seed=12345, confidence_level=0.9)


@pytest.fixture
def mock_inputs() -> List[DistributionInput]:
    return get_mock_inputs()


@pytest.fixture
def mock_outputs() -> List[SimulationOutput]:
    return get_mock_outputs()


@pytest.fixture
def two_uniform_inputs() -> List[DistributionInput]:
    """Independent Uniform(0, 1) inputs A and B."""
    return [
        DistributionInput.create(id="a", type="uniform", params={"min": 0, "max": 1}, name="inputA"),
        DistributionInput.create(id="b", type="uniform", params={"min": 0, "max": 1}, name="inputB"),
    ]


@pytest.fixture
def single_output() -> List[SimulationOutput]:
    return [SimulationOutput(id="out", name="Output")]


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def orchestrator() -> SimulationOrchestrator:
    return SimulationOrchestrator(progress_interval=10)


@pytest.fixture
def registry() -> SimulationRegistry:
    return SimulationRegistry()


@pytest.fixture
def sum_evaluator() -> CallableEvaluator:
    """Evaluator whose single output is the sum of the input row."""
    return CallableEvaluator(lambda row: [sum(row)])


@pytest.fixture
def mock_evaluator():
    """Evaluator double with AsyncMock lifecycle hooks.

    evaluate() returns [1.0] by default; tests override side_effect.
    """
    evaluator = AsyncMock(spec=Evaluator)
    evaluator.prepare = AsyncMock(return_value=None)
    evaluator.evaluate = AsyncMock(return_value=[1.0])
    evaluator.restore = AsyncMock(return_value=None)
    return evaluator
