"""
Unit Tests for SimulationRegistry.

Tests registration, replacement, removal and snapshots:
- register_distribution returns the expected value and auto-ids
- Re-registration replaces in place, keeping order
- Snapshots are immutable point-in-time views
"""

import math

import pytest

from mcrisk.config.errors import UnsupportedDistributionError, ValidationError
from mcrisk.models.distribution import DistributionInput
from mcrisk.services.registry import RegistrySnapshot, SimulationRegistry


def test_register_distribution_returns_expected_value(registry):
    value = registry.register_distribution("pert", {"min": 0, "mode": 2, "max": 10})

    assert value == pytest.approx(3)


def test_register_distribution_auto_ids(registry):
    registry.register_distribution("normal", {"mean": 0, "stdev": 1})
    registry.register_distribution("uniform", {"min": 0, "max": 1})

    assert [inp.id for inp in registry.inputs()] == ["normal_1", "uniform_2"]
    assert registry.get_input("normal_1").name == "normal_normal_1"


def test_register_distribution_explicit_id_and_name(registry):
    registry.register_distribution("normal", {"mean": 5, "stdev": 1}, name="Rate", input_id="rate")

    inp = registry.get_input("rate")
    assert inp.name == "Rate"
    assert inp.params.mean == 5


def test_auto_id_skips_explicit_ids(registry):
    registry.register_distribution("normal", {"mean": 1, "stdev": 1}, input_id="normal_1")
    registry.register_distribution("normal", {"mean": 2, "stdev": 1})

    assert [inp.id for inp in registry.inputs()] == ["normal_1", "normal_2"]
    assert registry.get_input("normal_1").params.mean == 1


def test_output_auto_id_skips_explicit_ids(registry):
    registry.register_output("Total", output_id="output_1")
    second = registry.register_output("Margin")

    assert second.id == "output_2"
    assert len(registry.outputs()) == 2


def test_register_lognormal_overflow_returns_inf(registry):
    assert registry.register_distribution("lognormal", {"mu": 800, "sigma": 2}) == math.inf


def test_register_distribution_unknown_type(registry):
    with pytest.raises(UnsupportedDistributionError):
        registry.register_distribution("weibull", {})

    assert len(registry) == 0


def test_register_distribution_invalid_params(registry):
    with pytest.raises(ValidationError):
        registry.register_distribution("triangular", {"min": 0, "max": 1})


def test_reregistration_replaces_in_place(registry):
    registry.register_distribution("normal", {"mean": 1, "stdev": 1}, input_id="a")
    registry.register_distribution("normal", {"mean": 2, "stdev": 1}, input_id="b")
    registry.register_input(
        DistributionInput.create(id="a", type="uniform", params={"min": 0, "max": 4})
    )

    inputs = registry.inputs()
    assert [inp.id for inp in inputs] == ["a", "b"]
    assert inputs[0].type.value == "uniform"


def test_remove_input(registry):
    registry.register_distribution("normal", {"mean": 1, "stdev": 1}, input_id="a")

    assert registry.remove_input("a") is True
    assert registry.remove_input("a") is False
    assert registry.get_input("a") is None


def test_register_output_auto_ids(registry):
    first = registry.register_output("Total")
    second = registry.register_output("Margin", output_id="margin")

    assert first.id == "output_1"
    assert second.id == "margin"
    assert [o.name for o in registry.outputs()] == ["Total", "Margin"]
    assert registry.get_output("margin") == second


def test_clear_resets_everything(registry):
    registry.register_distribution("normal", {"mean": 1, "stdev": 1})
    registry.register_output("Total")

    registry.clear()

    assert registry.inputs() == ()
    assert registry.outputs() == ()
    registry.register_distribution("normal", {"mean": 1, "stdev": 1})
    assert registry.inputs()[0].id == "normal_1"


def test_clear_inputs_keeps_outputs(registry):
    registry.register_distribution("normal", {"mean": 1, "stdev": 1})
    registry.register_output("Total")

    registry.clear_inputs()

    assert registry.inputs() == ()
    assert len(registry.outputs()) == 1

    registry.clear_outputs()
    assert registry.outputs() == ()


def test_snapshot_is_point_in_time(registry):
    registry.register_distribution("normal", {"mean": 1, "stdev": 1}, input_id="a")
    registry.register_output("Total", output_id="total")

    snapshot = registry.snapshot()
    registry.register_distribution("normal", {"mean": 2, "stdev": 1}, input_id="b")
    registry.remove_output("total")

    assert isinstance(snapshot, RegistrySnapshot)
    assert [inp.id for inp in snapshot.inputs] == ["a"]
    assert [o.id for o in snapshot.outputs] == ["total"]
