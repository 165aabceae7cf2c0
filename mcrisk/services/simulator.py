"""
Monte Carlo Simulation Orchestrator for mcrisk.

Runs the iteration loop:
1. Validate the run (inputs, outputs, config) before anything starts
2. Seed the random source and reset sampler buffering
3. Per iteration: sample every input, hand the row to the evaluator,
   record one value per output, report progress
4. Restore evaluator state on every exit path
5. Compute statistics and sensitivity per output

Iterations are strictly sequential; the evaluator is a shared stateful
resource that handles one round trip at a time. Cancellation is
cooperative and checked between iterations only.
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from mcrisk.config.errors import (
    ErrorCode,
    EvaluatorError,
    MonteCarloError,
    SimulationError,
    ValidationError,
)
from mcrisk.config.settings import MAX_ITERATIONS, MIN_ITERATIONS, settings
from mcrisk.models.distribution import DistributionInput, SimulationOutput
from mcrisk.models.simulation import (
    OutputResults,
    SensitivityResult,
    SimulationConfig,
    SimulationProgress,
    SimulationResults,
    SimulationStatus,
)
from mcrisk.services.distributions import DistributionSampler
from mcrisk.services.evaluators import Evaluator, coerce_output_value
from mcrisk.services.random_source import RandomSource
from mcrisk.services.registry import RegistrySnapshot, SimulationRegistry
from mcrisk.services.sensitivity import compute_sensitivity
from mcrisk.services.statistics import compute_statistics
from mcrisk.utils.simulation_logger import (
    log_simulation_cancelled,
    log_simulation_complete,
    log_simulation_failed,
    log_simulation_start,
)

logger = structlog.get_logger()

ProgressCallback = Callable[[SimulationProgress], Union[None, Awaitable[None]]]


class SimulationOrchestrator:
    """Runs one simulation at a time.

    State machine: idle -> running -> completed | cancelled | error.
    A run that fails its preconditions never starts and stays idle.
    """

    def __init__(self, progress_interval: Optional[int] = None):
        """Initialize SimulationOrchestrator.

        Args:
            progress_interval: Emit progress every N iterations
                               (default: settings.progress_interval).
        """
        self.progress_interval = progress_interval or settings.progress_interval
        self._status = SimulationStatus.IDLE
        self._cancelled = False
        self._current_iteration = 0
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

    @property
    def status(self) -> SimulationStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == SimulationStatus.RUNNING

    @property
    def current_iteration(self) -> int:
        """Iterations completed so far in the current (or last) run."""
        return self._current_iteration

    @property
    def elapsed_ms(self) -> float:
        """Wall time of the current (or last) run in milliseconds."""
        if self._start_time is None:
            return 0.0
        end = self._end_time if self._end_time is not None else time.perf_counter()
        return (end - self._start_time) * 1000

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next iteration boundary.

        Idempotent. The flag is cleared when the next run starts.
        """
        if self.is_running and not self._cancelled:
            logger.info("simulation_cancel_requested", current_iteration=self._current_iteration)
        self._cancelled = True

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_config(config: Any) -> SimulationConfig:
        if not isinstance(config, SimulationConfig):
            try:
                config = SimulationConfig.model_validate(config)
            except PydanticValidationError as exc:
                raise ValidationError(
                    f"Invalid simulation config: {exc.error_count()} error(s)",
                    code=ErrorCode.CONFIG_OUT_OF_RANGE,
                    field="config",
                    details={"errors": exc.errors(include_url=False, include_context=False)},
                ) from exc

        # Configs built with model_construct() skip field validation
        if not MIN_ITERATIONS <= config.iterations <= MAX_ITERATIONS:
            raise ValidationError(
                f"iterations must be in [{MIN_ITERATIONS}, {MAX_ITERATIONS}] (got {config.iterations})",
                code=ErrorCode.CONFIG_OUT_OF_RANGE,
                field="iterations",
            )
        if not 0.0 < config.confidence_level < 1.0:
            raise ValidationError(
                f"confidence_level must be in (0, 1) (got {config.confidence_level})",
                code=ErrorCode.CONFIG_OUT_OF_RANGE,
                field="confidence_level",
            )
        return config

    @staticmethod
    def _coerce_inputs(inputs: Sequence[Any]) -> Tuple[DistributionInput, ...]:
        coerced = []
        for item in inputs:
            if isinstance(item, DistributionInput):
                coerced.append(item)
            elif isinstance(item, Mapping):
                try:
                    coerced.append(
                        DistributionInput.create(
                            id=item.get("id"),
                            type=item.get("type"),
                            params=item.get("params"),
                            name=item.get("name"),
                        )
                    )
                except PydanticValidationError as exc:
                    raise ValidationError(
                        f"Invalid input record: {exc.error_count()} error(s)",
                        field="inputs",
                        details={"errors": exc.errors(include_url=False, include_context=False)},
                    ) from exc
            else:
                raise ValidationError(
                    f"Unsupported input record: {type(item).__name__}",
                    field="inputs",
                )
        return tuple(coerced)

    @staticmethod
    def _coerce_outputs(outputs: Sequence[Any]) -> Tuple[SimulationOutput, ...]:
        coerced = []
        for item in outputs:
            if isinstance(item, SimulationOutput):
                coerced.append(item)
                continue
            try:
                coerced.append(SimulationOutput.model_validate(item))
            except PydanticValidationError as exc:
                raise ValidationError(
                    f"Invalid output record: {exc.error_count()} error(s)",
                    field="outputs",
                    details={"errors": exc.errors(include_url=False, include_context=False)},
                ) from exc
        return tuple(coerced)

    def _check_preconditions(
        self,
        config: Any,
        inputs: Sequence[Any],
        outputs: Sequence[Any],
    ) -> Tuple[SimulationConfig, Tuple[DistributionInput, ...], Tuple[SimulationOutput, ...]]:
        """Validate a run before it starts.

        Raises:
            SimulationError: If a run is already in progress.
            ValidationError: If there are no inputs/outputs or config is out of range.
            UnsupportedDistributionError: If a raw input has an unknown type tag.
        """
        if self.is_running:
            raise SimulationError(
                "A simulation is already running",
                status=self._status.value,
            )
        if not inputs:
            raise ValidationError("No inputs registered", code=ErrorCode.NO_INPUTS, field="inputs")
        if not outputs:
            raise ValidationError("No outputs registered", code=ErrorCode.NO_OUTPUTS, field="outputs")

        return (
            self._validate_config(config),
            self._coerce_inputs(inputs),
            self._coerce_outputs(outputs),
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(
        self,
        config: Union[SimulationConfig, Mapping[str, Any]],
        inputs: Sequence[Any],
        outputs: Sequence[Any],
        evaluator: Evaluator,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SimulationResults:
        """Run a full Monte Carlo simulation.

        Args:
            config: Run configuration.
            inputs: Distribution inputs, in registration order.
            outputs: Outputs, in registration order.
            evaluator: Maps each sampled input row to one value per output.
            on_progress: Optional progress sink, sync or async.

        Returns:
            SimulationResults with status completed or cancelled.

        Raises:
            ValidationError: If preconditions fail (run never starts).
            EvaluatorError: If the evaluator fails or returns malformed data.
            SimulationError: For any other failure during the run.
        """
        config, inputs, outputs = self._check_preconditions(config, inputs, outputs)
        total = config.iterations

        # Setup
        random_source = RandomSource()
        if config.seed > 0:
            random_source.seed(config.seed)
            random_source.set_mode(True)
        else:
            random_source.set_mode(False)
        sampler = DistributionSampler(random_source)
        sampler.reset()

        self._cancelled = False
        self._current_iteration = 0
        self._status = SimulationStatus.RUNNING
        self._start_time = time.perf_counter()
        self._end_time = None

        log_simulation_start(total, config.seed, len(inputs), len(outputs))
        logger.info(
            "simulation_started",
            iterations=total,
            seed=config.seed,
            deterministic=random_source.deterministic,
            input_count=len(inputs),
            output_count=len(outputs),
        )

        input_samples: List[List[float]] = []
        output_values: List[List[float]] = [[] for _ in outputs]
        coerced_counts = [0] * len(outputs)

        try:
            loop_error: Optional[BaseException] = None
            try:
                await evaluator.prepare(inputs, outputs)

                for iteration in range(total):
                    if self._cancelled:
                        break

                    row = [sampler.sample(inp.type, inp.params) for inp in inputs]
                    input_samples.append(row)

                    try:
                        result = await evaluator.evaluate(list(row))
                    except EvaluatorError:
                        raise
                    except Exception as e:
                        raise EvaluatorError(
                            f"Evaluator failed at iteration {iteration}: {e}",
                            iteration=iteration,
                        ) from e

                    self._record_outputs(
                        result, outputs, output_values, coerced_counts, iteration, config.strict_outputs
                    )
                    self._current_iteration = iteration + 1

                    if on_progress and (iteration % self.progress_interval == 0 or iteration == total - 1):
                        await self._emit_progress(
                            on_progress, SimulationStatus.RUNNING, iteration + 1, total
                        )

                    # Let a concurrent cancel() run between iterations
                    await asyncio.sleep(0)
            except BaseException as e:
                loop_error = e
                raise
            finally:
                await self._restore(evaluator, loop_error)

            self._end_time = time.perf_counter()
            completed = len(input_samples)
            final_status = (
                SimulationStatus.CANCELLED if self._cancelled and completed < total
                else SimulationStatus.COMPLETED
            )

            results = self._build_results(
                config, final_status, inputs, outputs, input_samples, output_values, coerced_counts
            )

            if on_progress:
                await self._emit_progress(on_progress, final_status, completed, total)

        except MonteCarloError as e:
            self._fail(e)
            raise
        except Exception as e:
            self._fail(e)
            raise SimulationError(
                f"Simulation failed: {e}",
                status=SimulationStatus.ERROR.value,
                details={"completed_iterations": self._current_iteration},
            ) from e

        self._status = final_status
        if final_status == SimulationStatus.CANCELLED:
            log_simulation_cancelled(completed, total)
            logger.info(
                "simulation_cancelled",
                completed_iterations=completed,
                total_iterations=total,
                elapsed_ms=round(results.elapsed_ms, 1),
            )
        else:
            log_simulation_complete(completed, results.elapsed_ms, [o.name for o in outputs])
            logger.info(
                "simulation_completed",
                completed_iterations=completed,
                elapsed_ms=round(results.elapsed_ms, 1),
                coerced_values=sum(coerced_counts),
            )
        return results

    @staticmethod
    async def _restore(evaluator: Evaluator, pending: Optional[BaseException]) -> None:
        """Restore evaluator state without masking an error already in flight.

        A restore failure propagates only when the run itself succeeded.
        """
        try:
            await evaluator.restore()
        except Exception as e:
            if pending is None:
                raise
            logger.error(
                "evaluator_restore_failed",
                error=str(e),
                pending_error=type(pending).__name__,
            )

    def _record_outputs(
        self,
        result: Any,
        outputs: Sequence[SimulationOutput],
        output_values: List[List[float]],
        coerced_counts: List[int],
        iteration: int,
        strict: bool,
    ) -> None:
        """Append one evaluator row to the output series.

        Raises:
            EvaluatorError: If the row is malformed, or a value is
                            non-numeric while ``strict`` is set.
        """
        if isinstance(result, (str, bytes, Mapping)) or not hasattr(result, "__iter__"):
            raise EvaluatorError(
                f"Evaluator returned {type(result).__name__}, expected a sequence of {len(outputs)} values",
                iteration=iteration,
                code=ErrorCode.EVALUATOR_MALFORMED_OUTPUT,
            )
        row = list(result)
        if len(row) != len(outputs):
            raise EvaluatorError(
                f"Evaluator returned {len(row)} values for {len(outputs)} outputs",
                iteration=iteration,
                code=ErrorCode.EVALUATOR_MALFORMED_OUTPUT,
            )

        for k, raw in enumerate(row):
            value, ok = coerce_output_value(raw)
            if not ok:
                if strict:
                    raise EvaluatorError(
                        f"Non-numeric value {raw!r} for output {outputs[k].id} at iteration {iteration}",
                        iteration=iteration,
                        code=ErrorCode.EVALUATOR_MALFORMED_OUTPUT,
                        details={"output_id": outputs[k].id},
                    )
                if coerced_counts[k] == 0:
                    logger.warning(
                        "evaluator_output_coerced",
                        output_id=outputs[k].id,
                        iteration=iteration,
                        value=repr(raw),
                    )
                coerced_counts[k] += 1
            output_values[k].append(value)

    async def _emit_progress(
        self,
        on_progress: ProgressCallback,
        status: SimulationStatus,
        completed: int,
        total: int,
    ) -> None:
        elapsed_ms = self.elapsed_ms
        ips = completed / (elapsed_ms / 1000) if elapsed_ms > 0 else 0.0
        remaining_ms = ((total - completed) / ips) * 1000 if ips > 0 else 0.0
        progress = SimulationProgress(
            status=status,
            current_iteration=completed,
            total_iterations=total,
            iterations_per_second=ips,
            elapsed_ms=elapsed_ms,
            estimated_remaining_ms=remaining_ms,
        )
        result = on_progress(progress)
        if inspect.isawaitable(result):
            await result

    def _build_results(
        self,
        config: SimulationConfig,
        status: SimulationStatus,
        inputs: Sequence[DistributionInput],
        outputs: Sequence[SimulationOutput],
        input_samples: List[List[float]],
        output_values: List[List[float]],
        coerced_counts: List[int],
    ) -> SimulationResults:
        output_results = [
            OutputResults(
                output_id=output.id,
                name=output.name,
                values=output_values[k],
                stats=compute_statistics(
                    output_values[k], config.confidence_level, config.probability_threshold
                ),
                coerced_count=coerced_counts[k],
            )
            for k, output in enumerate(outputs)
        ]

        input_names = [inp.name for inp in inputs]
        input_ids = [inp.id for inp in inputs]
        sensitivity: Dict[str, List[SensitivityResult]] = {
            output.id: compute_sensitivity(input_samples, output_values[k], input_names, input_ids)
            for k, output in enumerate(outputs)
        }

        return SimulationResults(
            config=config,
            status=status,
            outputs=output_results,
            sensitivity=sensitivity,
            elapsed_ms=self.elapsed_ms,
            input_samples=input_samples,
            completed_iterations=len(input_samples),
        )

    def _fail(self, error: Exception) -> None:
        if self._end_time is None:
            self._end_time = time.perf_counter()
        self._status = SimulationStatus.ERROR
        failed_iteration = getattr(error, "iteration", None)
        log_simulation_failed(str(error), self._current_iteration, failed_iteration)
        logger.error(
            "simulation_failed",
            error=str(error),
            code=getattr(error, "code", None),
            completed_iterations=self._current_iteration,
            failed_iteration=failed_iteration,
        )


# Convenience function for callers holding a registry
async def run_simulation(
    config: Union[SimulationConfig, Mapping[str, Any]],
    source: Union[SimulationRegistry, RegistrySnapshot],
    evaluator: Evaluator,
    on_progress: Optional[ProgressCallback] = None,
    orchestrator: Optional[SimulationOrchestrator] = None,
) -> SimulationResults:
    """Snapshot a registry and run a simulation against it.

    Args:
        config: Run configuration.
        source: Registry (snapshotted now) or an existing snapshot.
        evaluator: Evaluator for the run.
        on_progress: Optional progress sink.
        orchestrator: Orchestrator to use, e.g. one the caller may cancel.

    Returns:
        SimulationResults.
    """
    snapshot = source.snapshot() if isinstance(source, SimulationRegistry) else source
    orchestrator = orchestrator or SimulationOrchestrator()
    return await orchestrator.run(config, snapshot.inputs, snapshot.outputs, evaluator, on_progress)
