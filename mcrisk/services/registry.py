"""Registration source for simulation inputs and outputs.

Holds the distribution inputs and outputs known to a host, in
registration order. The orchestrator never reads a registry directly;
it receives an immutable snapshot taken at run start.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import structlog

from mcrisk.models.distribution import DistributionInput, SimulationOutput, resolve_distribution_type
from mcrisk.services.distributions import expected_value

logger = structlog.get_logger()


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time view of registered inputs and outputs."""

    inputs: Tuple[DistributionInput, ...] = ()
    outputs: Tuple[SimulationOutput, ...] = ()


class SimulationRegistry:
    """Ordered, explicitly owned store of inputs and outputs.

    Re-registering an existing id replaces the entry in place, keeping
    its position.
    """

    def __init__(self):
        self._inputs: Dict[str, DistributionInput] = {}
        self._outputs: Dict[str, SimulationOutput] = {}
        self._input_counter = 0
        self._output_counter = 0

    def __len__(self) -> int:
        return len(self._inputs)

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def register_input(self, distribution_input: DistributionInput) -> DistributionInput:
        self._inputs[distribution_input.id] = distribution_input
        logger.debug(
            "input_registered",
            input_id=distribution_input.id,
            type=distribution_input.type.value,
        )
        return distribution_input

    def register_distribution(
        self,
        type: Any,
        params: Any,
        name: Optional[str] = None,
        input_id: Optional[str] = None,
    ) -> float:
        """Register a distribution and return its expected (static) value.

        Args:
            type: Distribution type tag (e.g. "pert").
            params: Parameter mapping or typed params model.
            name: Optional display name.
            input_id: Optional explicit id; defaults to "{type}_{n}".

        Returns:
            The distribution's expected value.

        Raises:
            UnsupportedDistributionError: If the type tag is unknown.
            ValidationError: If the parameters are invalid.
        """
        dist_type = resolve_distribution_type(type)
        if input_id is None:
            # Never reuse an id taken by an explicit registration
            self._input_counter += 1
            while f"{dist_type.value}_{self._input_counter}" in self._inputs:
                self._input_counter += 1
            input_id = f"{dist_type.value}_{self._input_counter}"
        distribution_input = DistributionInput.create(id=input_id, type=dist_type, params=params, name=name)
        self.register_input(distribution_input)
        return expected_value(distribution_input.type, distribution_input.params)

    def remove_input(self, input_id: str) -> bool:
        """Remove an input; returns False if it was not registered."""
        return self._inputs.pop(input_id, None) is not None

    def get_input(self, input_id: str) -> Optional[DistributionInput]:
        return self._inputs.get(input_id)

    def inputs(self) -> Tuple[DistributionInput, ...]:
        return tuple(self._inputs.values())

    def clear_inputs(self) -> None:
        self._inputs.clear()

    # -------------------------------------------------------------------------
    # Outputs
    # -------------------------------------------------------------------------

    def register_output(self, name: str, output_id: Optional[str] = None) -> SimulationOutput:
        """Register an output; ``output_id`` defaults to "output_{n}"."""
        if output_id is None:
            self._output_counter += 1
            while f"output_{self._output_counter}" in self._outputs:
                self._output_counter += 1
            output_id = f"output_{self._output_counter}"
        output = SimulationOutput(id=output_id, name=name)
        self._outputs[output_id] = output
        logger.debug("output_registered", output_id=output_id, name=name)
        return output

    def remove_output(self, output_id: str) -> bool:
        return self._outputs.pop(output_id, None) is not None

    def get_output(self, output_id: str) -> Optional[SimulationOutput]:
        return self._outputs.get(output_id)

    def outputs(self) -> Tuple[SimulationOutput, ...]:
        return tuple(self._outputs.values())

    def clear_outputs(self) -> None:
        self._outputs.clear()

    # -------------------------------------------------------------------------
    # Whole registry
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Remove all inputs and outputs and reset auto-generated ids."""
        self.clear_inputs()
        self.clear_outputs()
        self._input_counter = 0
        self._output_counter = 0

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(inputs=self.inputs(), outputs=self.outputs())
