"""Core typing contracts for layernet."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Mapping, Type, TypeVar

import numpy as np

from .errors import InvalidOptions

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .matrix import Matrix

Array = np.ndarray

_E = TypeVar("_E", bound=Enum)


class MatrixAxis(str, Enum):
    """Axis a matrix is flattened onto."""

    ROW = "row"
    COL = "col"


class LayerRole(str, Enum):
    """Position class of a layer inside a network."""

    INPUT = "input"
    HIDDEN = "hidden"
    OUTPUT = "output"


class DistStrategy(str, Enum):
    """Weight initialization schemes."""

    RANDOM = "random"
    ZERO = "zero"
    HE = "he"
    XAVIER = "xavier"
    HE_XAVIER = "he_xavier"


class TravDirection(str, Enum):
    """Direction of a layer traversal."""

    FORWARD = "forward"
    BACKWARD = "backward"


class NodeOrientation(str, Enum):
    """Whether samples and biases are laid out as rows or columns."""

    ROW = "row"
    COLUMN = "column"

    @property
    def axis(self) -> MatrixAxis:
        return MatrixAxis.ROW if self is NodeOrientation.ROW else MatrixAxis.COL


def coerce_enum(enum_cls: Type[_E], value: Any) -> _E:
    """Return ``value`` as a member of ``enum_cls``.

    Accepts members, member values and member names in any case, with ``-``
    treated as ``_`` (``"he-xavier"`` resolves to ``DistStrategy.HE_XAVIER``).
    """

    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().lower().replace("-", "_")
    for member in enum_cls:
        if key in {member.value, member.name.lower()}:
            return member
    choices = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"Unknown {enum_cls.__name__} {value!r}; expected one of: {choices}")


@dataclass(frozen=True)
class NetworkOptions:
    """Configuration for weight initialization and training.

    Attributes
    ----------
    dist_strategy:
        Scheme used to randomly initialize every layer's weights.
    dist_spread:
        Size of the uniform distribution before the per-strategy multiplier.
    initial_bias:
        Constant every bias entry starts at.
    learning_rate:
        Step size used by :func:`layernet.training.trainer.train_batch`.
    node_orientation:
        Row or column layout for samples flowing through the network.
    """

    dist_strategy: DistStrategy = DistStrategy.RANDOM
    dist_spread: float = 1.0
    initial_bias: float = 0.0
    learning_rate: float = 0.0
    node_orientation: NodeOrientation = NodeOrientation.COLUMN

    def is_valid(self) -> bool:
        try:
            self.validate()
        except InvalidOptions:
            return False
        return True

    def validate(self) -> "NetworkOptions":
        if not isinstance(self.dist_strategy, DistStrategy):
            raise InvalidOptions(f"Invalid distribution strategy: {self.dist_strategy!r}")
        if not isinstance(self.node_orientation, NodeOrientation):
            raise InvalidOptions(f"Invalid node orientation: {self.node_orientation!r}")
        for name in ("dist_spread", "initial_bias", "learning_rate"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise InvalidOptions(f"{name} must be a real number, got {value!r}")
        if not np.isfinite(self.dist_spread) or self.dist_spread < 0:
            raise InvalidOptions(f"dist_spread must be >= 0, got {self.dist_spread}")
        if not np.isfinite(self.learning_rate) or self.learning_rate < 0:
            raise InvalidOptions(f"learning_rate must be >= 0, got {self.learning_rate}")
        if not np.isfinite(self.initial_bias):
            raise InvalidOptions(f"initial_bias must be finite, got {self.initial_bias}")
        return self

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "NetworkOptions":
        known = {f.name for f in fields(cls)}
        unknown = set(payload) - known
        if unknown:
            raise InvalidOptions(f"Unknown network options: {', '.join(sorted(unknown))}")
        kwargs = dict(payload)
        try:
            if "dist_strategy" in kwargs:
                kwargs["dist_strategy"] = coerce_enum(DistStrategy, kwargs["dist_strategy"])
            if "node_orientation" in kwargs:
                kwargs["node_orientation"] = coerce_enum(
                    NodeOrientation, kwargs["node_orientation"]
                )
            for key in ("dist_spread", "initial_bias", "learning_rate"):
                if key in kwargs:
                    kwargs[key] = float(kwargs[key])
        except (TypeError, ValueError) as exc:
            raise InvalidOptions(str(exc)) from exc
        return cls(**kwargs).validate()

    def to_dict(self) -> dict:
        return {
            "dist_strategy": self.dist_strategy.value,
            "dist_spread": self.dist_spread,
            "initial_bias": self.initial_bias,
            "learning_rate": self.learning_rate,
            "node_orientation": self.node_orientation.value,
        }


@dataclass(frozen=True)
class LayerSpec:
    """Node count and role used to build one layer."""

    nodes: int
    role: LayerRole = LayerRole.HIDDEN

    @classmethod
    def parse(cls, value: Any) -> "LayerSpec":
        if isinstance(value, LayerSpec):
            return value
        if isinstance(value, Mapping):
            return cls(int(value["nodes"]), coerce_enum(LayerRole, value.get("role", "hidden")))
        nodes, role = value
        return cls(int(nodes), coerce_enum(LayerRole, role))


@dataclass
class Sample:
    """One labeled example: the class label and its feature matrix."""

    expected_value: int
    input_values: "Matrix"


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`layernet.training.pipelines.run_pipeline`."""

    epochs: int
    accuracy: float
    metrics_path: str
    manifest_path: str
    history: List[dict] = field(default_factory=list)


__all__ = [
    "Array",
    "DistStrategy",
    "LayerRole",
    "LayerSpec",
    "MatrixAxis",
    "NetworkOptions",
    "NodeOrientation",
    "RunResult",
    "Sample",
    "TravDirection",
    "coerce_enum",
]
