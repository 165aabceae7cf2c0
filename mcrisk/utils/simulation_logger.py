"""Simulation Run Logger for mcrisk.

Provides highly visible, formatted console banners for simulation
runs, with a structured log event alongside each banner.
"""

import structlog
from typing import List, Optional
from datetime import datetime, timezone

from mcrisk.utils.formatting import format_number, format_percent

logger = structlog.get_logger()

# Visual markers for different log types
BANNER_WIDTH = 80
RUN_BANNER_CHAR = "█"
SUMMARY_BANNER_CHAR = "═"
CANCEL_BANNER_CHAR = "~"
FAILURE_BANNER_CHAR = "!"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_simulation_start(iterations: int, seed: int, input_count: int, output_count: int) -> None:
    """Log run start with prominent banner."""
    print("\n")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(RUN_BANNER_CHAR, "MONTE CARLO SIMULATION STARTED"))
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Timestamp   : {_timestamp()}")
    print(f"║ Iterations  : {iterations:,}")
    print(f"║ Seed        : {seed if seed > 0 else 'random'}")
    print(f"║ Inputs      : {input_count}")
    print(f"║ Outputs     : {output_count}")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "simulation_start_logged",
        iterations=iterations,
        seed=seed,
        input_count=input_count,
        output_count=output_count
    )


def log_simulation_complete(
    completed_iterations: int,
    elapsed_ms: float,
    output_names: List[str]
) -> None:
    """Log run completion with summary."""
    ips = completed_iterations / (elapsed_ms / 1000) if elapsed_ms > 0 else 0.0

    print("\n")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(RUN_BANNER_CHAR, "✓ SIMULATION COMPLETED"))
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Timestamp   : {_timestamp()}")
    print(f"║ Iterations  : {completed_iterations:,}")
    print(f"║ Duration    : {elapsed_ms:,.0f} ms ({elapsed_ms / 1000:.2f}s)")
    print(f"║ Throughput  : {ips:,.1f} iterations/s")
    print(f"║ Outputs     : {', '.join(output_names)}")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "simulation_complete_logged",
        completed_iterations=completed_iterations,
        elapsed_ms=round(elapsed_ms, 1)
    )


def log_simulation_cancelled(completed_iterations: int, total_iterations: int) -> None:
    """Log a run stopped by cancel()."""
    print("\n")
    print(CANCEL_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(CANCEL_BANNER_CHAR, "↻ SIMULATION CANCELLED"))
    print(CANCEL_BANNER_CHAR * BANNER_WIDTH)
    print(f"~ Timestamp   : {_timestamp()}")
    print(f"~ Completed   : {completed_iterations:,} of {total_iterations:,} iterations")
    print(f"~ Results     : partial")
    print(CANCEL_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "simulation_cancel_logged",
        completed_iterations=completed_iterations,
        total_iterations=total_iterations
    )


def log_simulation_failed(
    error: str,
    completed_iterations: int,
    failed_iteration: Optional[int] = None
) -> None:
    """Log run failure with details."""
    print("\n")
    print(FAILURE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(FAILURE_BANNER_CHAR, "✗ SIMULATION FAILED"))
    print(FAILURE_BANNER_CHAR * BANNER_WIDTH)
    print(f"! Timestamp        : {_timestamp()}")
    print(f"! Failed Iteration : {failed_iteration if failed_iteration is not None else 'N/A'}")
    print(f"! Completed Before : {completed_iterations:,}")
    print(f"! Error            : {error}")
    print(FAILURE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.error(
        "simulation_failed_logged",
        error=error,
        completed_iterations=completed_iterations,
        failed_iteration=failed_iteration
    )


def log_output_summary(output_results, sensitivity=None, top_n: int = 5) -> None:
    """Log a statistics table for one output and its top sensitivity drivers.

    Args:
        output_results: OutputResults for the output.
        sensitivity: Optional SensitivityResult list, already ranked.
        top_n: Number of sensitivity drivers to show.
    """
    stats = output_results.stats
    low, high = stats.confidence_interval

    print("\n")
    print(SUMMARY_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(SUMMARY_BANNER_CHAR, f"OUTPUT: {output_results.name.upper()}"))
    print(SUMMARY_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Samples      : {stats.count:,}")
    print(f"║ Mean         : {format_number(stats.mean)}")
    print(f"║ Median       : {format_number(stats.median)}")
    print(f"║ Mode (est.)  : {format_number(stats.mode)}")
    print(f"║ Std Dev      : {format_number(stats.std_dev)}")
    print(f"║ Min / Max    : {format_number(stats.minimum)} / {format_number(stats.maximum)}")
    print(f"║ P10/P50/P90  : {format_number(stats.percentiles.p10)} / "
          f"{format_number(stats.percentiles.p50)} / {format_number(stats.percentiles.p90)}")
    print(f"║ Interval     : [{format_number(low)}, {format_number(high)}]")
    print(f"║ Skew / Kurt  : {stats.skewness:.3f} / {stats.kurtosis:.3f}")
    print(f"║ P(X < 0)     : {format_percent(stats.prob_negative)}")
    if output_results.coerced_count:
        print(f"║ Coerced      : {output_results.coerced_count:,} non-numeric values")

    if sensitivity:
        print(SUMMARY_BANNER_CHAR * BANNER_WIDTH)
        print("║ SENSITIVITY (by |coefficient|):")
        for item in sensitivity[:top_n]:
            print(f"║   • {item.input_name}: {item.coefficient:+.3f} (rank {item.rank_correlation:+.3f})")

    print(SUMMARY_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "output_summary_logged",
        output_id=output_results.output_id,
        mean=stats.mean,
        std_dev=stats.std_dev,
        count=stats.count
    )
