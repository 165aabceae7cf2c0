"""Distribution input models for mcrisk.

Pydantic models for registered random-variable inputs and simulation
outputs. Each distribution type carries its own typed parameter model,
validated once at registration instead of on every sample call.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from mcrisk.config.errors import ErrorCode, UnsupportedDistributionError, ValidationError


# =============================================================================
# ENUMS
# =============================================================================


class DistributionType(str, Enum):
    """Supported parametric distributions."""

    NORMAL = "normal"
    UNIFORM = "uniform"
    TRIANGULAR = "triangular"
    PERT = "pert"
    LOGNORMAL = "lognormal"
    DISCRETE = "discrete"


# =============================================================================
# PARAMETER MODELS
# =============================================================================


class _DistributionParams(BaseModel):
    """Shared configuration for parameter models.

    Values must be finite. Bound relations (min <= mode <= max, stdev > 0)
    are deliberately not enforced here; the samplers handle violations
    deterministically.
    """

    class Config:
        frozen = True
        extra = "forbid"
        allow_inf_nan = False


class NormalParams(_DistributionParams):
    """Normal(mean, stdev)."""

    kind: Literal["normal"] = "normal"
    mean: float = Field(..., description="Mean of the distribution")
    stdev: float = Field(..., description="Standard deviation")


class UniformParams(_DistributionParams):
    """Uniform(min, max)."""

    kind: Literal["uniform"] = "uniform"
    min: float = Field(..., description="Lower bound")
    max: float = Field(..., description="Upper bound")


class TriangularParams(_DistributionParams):
    """Triangular(min, mode, max)."""

    kind: Literal["triangular"] = "triangular"
    min: float = Field(..., description="Minimum value")
    mode: float = Field(..., description="Most likely value")
    max: float = Field(..., description="Maximum value")


class PertParams(_DistributionParams):
    """PERT(min, mode, max), a Beta distribution rescaled onto [min, max]."""

    kind: Literal["pert"] = "pert"
    min: float = Field(..., description="Minimum value")
    mode: float = Field(..., description="Most likely value")
    max: float = Field(..., description="Maximum value")


class LognormalParams(_DistributionParams):
    """Lognormal(mu, sigma) with parameters of the underlying normal."""

    kind: Literal["lognormal"] = "lognormal"
    mu: float = Field(..., description="Mean of log(X)")
    sigma: float = Field(..., description="Standard deviation of log(X)")


class DiscreteParams(_DistributionParams):
    """Discrete distribution over explicit values."""

    kind: Literal["discrete"] = "discrete"
    values: List[float] = Field(..., min_length=1, description="Possible outcomes")
    probs: List[float] = Field(..., min_length=1, description="Probability of each outcome")

    @model_validator(mode="after")
    def check_lengths(self) -> "DiscreteParams":
        """Values and probabilities must pair up."""
        if len(self.values) != len(self.probs):
            raise ValueError(
                f"values and probs must have equal length "
                f"(got {len(self.values)} and {len(self.probs)})"
            )
        return self


DistributionParams = Union[
    NormalParams,
    UniformParams,
    TriangularParams,
    PertParams,
    LognormalParams,
    DiscreteParams,
]

PARAMS_MODELS: Dict[DistributionType, type] = {
    DistributionType.NORMAL: NormalParams,
    DistributionType.UNIFORM: UniformParams,
    DistributionType.TRIANGULAR: TriangularParams,
    DistributionType.PERT: PertParams,
    DistributionType.LOGNORMAL: LognormalParams,
    DistributionType.DISCRETE: DiscreteParams,
}


def resolve_distribution_type(type_tag: Any) -> DistributionType:
    """Map a raw type tag onto DistributionType.

    Raises:
        UnsupportedDistributionError: If the tag is unknown.
    """
    if isinstance(type_tag, DistributionType):
        return type_tag
    try:
        return DistributionType(type_tag)
    except ValueError:
        raise UnsupportedDistributionError(type_tag) from None


def parse_params(dist_type: Any, params: Any) -> DistributionParams:
    """Validate a raw parameter mapping for the given distribution type.

    Typed parameter models pass through unchanged when they match.

    Raises:
        UnsupportedDistributionError: If the type tag is unknown.
        ValidationError: If the parameters do not fit the distribution.
    """
    resolved = resolve_distribution_type(dist_type)
    model = PARAMS_MODELS[resolved]
    if isinstance(params, model):
        return params
    if isinstance(params, BaseModel):
        params = params.model_dump(exclude={"kind"})
    if not isinstance(params, Mapping):
        raise ValidationError(
            f"Parameters for {resolved.value} must be a mapping",
            code=ErrorCode.INVALID_PARAMS,
            field="params",
        )
    try:
        return model(**{**params, "kind": resolved.value})
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid parameters for {resolved.value} distribution: {exc.error_count()} error(s)",
            code=ErrorCode.INVALID_PARAMS,
            field="params",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


# =============================================================================
# REGISTRATION MODELS
# =============================================================================


class DistributionInput(BaseModel):
    """A registered random-variable input.

    Immutable once registered; the orchestrator captures a fresh set at
    the start of each run.
    """

    id: str = Field(..., min_length=1, description="Unique input identifier")
    name: str = Field(..., description="User-given name")
    type: DistributionType = Field(..., description="Distribution type")
    params: DistributionParams = Field(
        ..., discriminator="kind", description="Typed distribution parameters"
    )

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def tag_params(cls, data: Any) -> Any:
        """Route a raw parameter mapping to the model matching ``type``."""
        if isinstance(data, dict) and isinstance(data.get("params"), Mapping):
            type_tag = data.get("type")
            if isinstance(type_tag, DistributionType):
                type_tag = type_tag.value
            data = {**data, "params": {**data["params"], "kind": type_tag}}
        return data

    @model_validator(mode="after")
    def check_params_match_type(self) -> "DistributionInput":
        """Reject a typed params model that belongs to another distribution."""
        if self.params.kind != self.type.value:
            raise ValueError(
                f"params of kind {self.params.kind!r} do not match type {self.type.value!r}"
            )
        return self

    @classmethod
    def create(
        cls,
        id: str,
        type: Any,
        params: Any,
        name: Optional[str] = None,
    ) -> "DistributionInput":
        """Build an input from a raw type tag and parameter mapping.

        Args:
            id: Unique input identifier.
            type: Distribution type tag (e.g. "normal").
            params: Parameter mapping or typed params model.
            name: Optional display name; defaults to "{type}_{id}".

        Returns:
            Validated DistributionInput.

        Raises:
            UnsupportedDistributionError: If the type tag is unknown.
            ValidationError: If the parameters are invalid.
        """
        dist_type = resolve_distribution_type(type)
        typed_params = parse_params(dist_type, params)
        return cls(
            id=id,
            name=name or f"{dist_type.value}_{id}",
            type=dist_type,
            params=typed_params.model_dump(),
        )


class SimulationOutput(BaseModel):
    """A quantity the evaluator produces once per iteration."""

    id: str = Field(..., min_length=1, description="Unique output identifier")
    name: str = Field(..., description="User-given name")

    class Config:
        frozen = True
