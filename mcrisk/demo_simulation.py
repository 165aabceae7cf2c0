#!/usr/bin/env python3
"""Demo script to run a Monte Carlo cost-risk simulation locally.

This script:
1. Registers a small project-cost model (PERT, triangular, normal,
   lognormal, uniform and discrete inputs)
2. Evaluates it with in-process formulas
3. Prints statistics and the sensitivity ranking per output

Usage:
    python -m mcrisk.demo_simulation --iterations 5000 --seed 42
"""

import argparse
import asyncio
import json
import logging
from typing import Dict

import structlog

from mcrisk.config.settings import clamp_iterations, settings
from mcrisk.models.simulation import SimulationConfig, SimulationProgress, SimulationResults
from mcrisk.services.evaluators import FunctionEvaluator
from mcrisk.services.registry import SimulationRegistry
from mcrisk.services.simulator import SimulationOrchestrator, run_simulation
from mcrisk.utils.simulation_logger import log_output_summary

# Configure logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
)
logger = structlog.get_logger()


# =============================================================================
# PROJECT MODEL
# =============================================================================


def build_project_model(registry: SimulationRegistry) -> FunctionEvaluator:
    """Register a kitchen-remodel cost model and return its evaluator."""
    registry.register_distribution(
        "pert", {"min": 18000, "mode": 22000, "max": 31000}, name="materials", input_id="materials"
    )
    registry.register_distribution(
        "triangular", {"min": 320, "mode": 400, "max": 560}, name="labor_hours", input_id="labor_hours"
    )
    registry.register_distribution(
        "normal", {"mean": 68.0, "stdev": 6.5}, name="labor_rate", input_id="labor_rate"
    )
    registry.register_distribution(
        "lognormal", {"mu": 7.6, "sigma": 0.45}, name="permits", input_id="permits"
    )
    registry.register_distribution(
        "uniform", {"min": 0.05, "max": 0.12}, name="overhead_pct", input_id="overhead_pct"
    )
    registry.register_distribution(
        "discrete",
        {"values": [0, 2500, 8000], "probs": [0.7, 0.2, 0.1]},
        name="change_orders",
        input_id="change_orders",
    )

    registry.register_output("Total Cost", output_id="total_cost")
    registry.register_output("Labor Cost", output_id="labor_cost")

    def labor_cost(v: Dict[str, float]) -> float:
        return v["labor_hours"] * v["labor_rate"]

    def total_cost(v: Dict[str, float]) -> float:
        direct = v["materials"] + labor_cost(v) + v["permits"]
        return direct * (1 + v["overhead_pct"]) + v["change_orders"]

    return FunctionEvaluator({"total_cost": total_cost, "labor_cost": labor_cost})


def _print_progress(progress: SimulationProgress) -> None:
    logger.debug(
        "simulation_progress",
        status=progress.status.value,
        percent=progress.get_progress_percentage(),
        ips=round(progress.iterations_per_second, 1),
    )


# =============================================================================
# MAIN
# =============================================================================


async def run_demo(iterations: int, seed: int, confidence: float) -> SimulationResults:
    registry = SimulationRegistry()
    evaluator = build_project_model(registry)

    static = await evaluator.static_outputs(registry.inputs(), registry.outputs())
    logger.info("static_outputs", **{k: round(v, 2) for k, v in static.items()})

    config = SimulationConfig(
        iterations=clamp_iterations(iterations),
        seed=seed,
        confidence_level=confidence,
    )
    results = await run_simulation(
        config,
        registry,
        evaluator,
        on_progress=_print_progress,
        orchestrator=SimulationOrchestrator(),
    )

    for output in results.outputs:
        log_output_summary(output, results.sensitivity.get(output.output_id))
    return results


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the mcrisk demo cost-risk simulation")
    parser.add_argument("--iterations", type=int, default=settings.default_iterations,
                        help="Number of iterations (clamped to the supported range)")
    parser.add_argument("--seed", type=int, default=settings.default_seed,
                        help="Random seed; 0 for non-deterministic draws")
    parser.add_argument("--confidence", type=float, default=settings.default_confidence,
                        help="Confidence level for the reported interval")
    parser.add_argument("--json", action="store_true",
                        help="Print the results summary as JSON")
    args = parser.parse_args()

    results = asyncio.run(run_demo(args.iterations, args.seed, args.confidence))

    if args.json:
        print(json.dumps(results.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
