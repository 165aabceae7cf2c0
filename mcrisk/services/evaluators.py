"""Evaluator boundary for the simulation orchestrator.

An evaluator maps one sampled input row to one value per registered
output. It is the only external round trip of an iteration and may be
slow (e.g. recalculating a dependent formula graph), so it is modelled
as an explicit coroutine boundary.
"""

import inspect
import math
import numbers
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import structlog

from mcrisk.config.errors import ValidationError
from mcrisk.models.distribution import DistributionInput, SimulationOutput
from mcrisk.services.distributions import expected_value

logger = structlog.get_logger()

RowFunction = Callable[[List[float]], Union[Sequence[Any], Awaitable[Sequence[Any]]]]
Formula = Callable[[Dict[str, float]], Union[Any, Awaitable[Any]]]


async def _resolve(value: Any) -> Any:
    """Await ``value`` if the callee turned out to be async."""
    if inspect.isawaitable(value):
        return await value
    return value


def coerce_output_value(value: Any) -> Tuple[float, bool]:
    """Coerce one evaluator value to a float.

    Real numbers, numeric strings and other float()-convertible values
    (e.g. Decimal) pass through. Booleans, None, non-numeric values and
    non-finite numbers become 0.0.

    Returns:
        Tuple of (value, ok); ``ok`` is False when the value was coerced.
    """
    if isinstance(value, bool) or value is None:
        return 0.0, False
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0, False
    elif hasattr(value, "__float__"):
        # Decimal and other numeric types outside the numbers.Real tower
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0, False
    else:
        return 0.0, False

    if not math.isfinite(number):
        return 0.0, False
    return number, True


class Evaluator(ABC):
    """Abstract evaluator called once per iteration.

    Lifecycle per run:
    1. prepare(inputs, outputs) before the first iteration
    2. evaluate(input_row) once per iteration, strictly sequentially
    3. restore() on every exit path (completion, cancellation, failure)
    """

    async def prepare(
        self,
        inputs: Sequence[DistributionInput],
        outputs: Sequence[SimulationOutput],
    ) -> None:
        """Bind the run's inputs and outputs. Default: no-op."""

    @abstractmethod
    async def evaluate(self, input_row: Sequence[float]) -> Sequence[Any]:
        """Map one input row (registration order) to one value per output."""

    async def restore(self) -> None:
        """Undo any state touched during the run. Default: no-op."""


class CallableEvaluator(Evaluator):
    """Adapts a plain ``row -> row`` function, sync or async."""

    def __init__(self, fn: RowFunction):
        self.fn = fn

    async def evaluate(self, input_row: Sequence[float]) -> Sequence[Any]:
        return await _resolve(self.fn(list(input_row)))


class FunctionEvaluator(Evaluator):
    """In-process model: one Python formula per output.

    Keeps a cell table holding each input's current value. Outside a
    run the cells hold the expected (static) values; during a run
    ``evaluate`` writes the sampled row into them, and ``restore`` puts
    the expected values back.

    Formulas receive a mapping keyed by both input id and input name.
    """

    def __init__(self, formulas: Mapping[str, Formula]):
        """Initialize FunctionEvaluator.

        Args:
            formulas: Output id (or output name) -> formula callable.
        """
        self.formulas = dict(formulas)
        self._inputs: Tuple[DistributionInput, ...] = ()
        self._outputs: Tuple[SimulationOutput, ...] = ()
        self._bound: List[Formula] = []
        self._cells: Dict[str, float] = {}

    @property
    def cells(self) -> Dict[str, float]:
        """Current value of each input, keyed by input id."""
        return dict(self._cells)

    def _formula_for(self, output: SimulationOutput) -> Formula:
        formula = self.formulas.get(output.id) or self.formulas.get(output.name)
        if formula is None:
            raise ValidationError(
                f"No formula for output {output.id!r} ({output.name})",
                field="formulas",
                details={"output_id": output.id},
            )
        return formula

    def _expected_cells(self) -> Dict[str, float]:
        return {inp.id: expected_value(inp.type, inp.params) for inp in self._inputs}

    def _scope(self) -> Dict[str, float]:
        scope = {}
        for inp in self._inputs:
            value = self._cells[inp.id]
            scope[inp.name] = value
            scope[inp.id] = value
        return scope

    async def _compute(self) -> List[Any]:
        scope = self._scope()
        return [await _resolve(formula(scope)) for formula in self._bound]

    async def prepare(
        self,
        inputs: Sequence[DistributionInput],
        outputs: Sequence[SimulationOutput],
    ) -> None:
        """Bind inputs and outputs and seed the cells with expected values.

        Raises:
            ValidationError: If a registered output has no formula.
        """
        self._inputs = tuple(inputs)
        self._outputs = tuple(outputs)
        self._bound = [self._formula_for(output) for output in self._outputs]
        self._cells = self._expected_cells()

    async def evaluate(self, input_row: Sequence[float]) -> List[Any]:
        for inp, value in zip(self._inputs, input_row):
            self._cells[inp.id] = value
        return await self._compute()

    async def restore(self) -> None:
        self._cells = self._expected_cells()
        logger.debug("evaluator_cells_restored", inputs=len(self._inputs))

    async def static_outputs(
        self,
        inputs: Optional[Sequence[DistributionInput]] = None,
        outputs: Optional[Sequence[SimulationOutput]] = None,
    ) -> Dict[str, Any]:
        """Evaluate every output with all inputs at their expected values.

        Args:
            inputs: Inputs to bind first (default: the last prepared set).
            outputs: Outputs to bind first (default: the last prepared set).

        Returns:
            Output id -> value.
        """
        if inputs is not None or outputs is not None:
            await self.prepare(
                inputs if inputs is not None else self._inputs,
                outputs if outputs is not None else self._outputs,
            )
        saved = self._cells
        self._cells = self._expected_cells()
        try:
            values = await self._compute()
        finally:
            self._cells = saved
        return {output.id: value for output, value in zip(self._outputs, values)}


__all__ = [
    "Evaluator",
    "CallableEvaluator",
    "FunctionEvaluator",
    "coerce_output_value",
]
