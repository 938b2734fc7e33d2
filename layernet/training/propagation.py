"""Sample preparation, forward propagation and evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Sequence, Tuple

import numpy as np

from ..core import matrix as mx
from ..core.activations import Activation, ActivationFn
from ..core.errors import DimensionMismatch, InvalidArgument
from ..core.network import Layer, Network
from ..core.types import Array, MatrixAxis, NodeOrientation, Sample, coerce_enum

Transform = Callable[[Array], object]


def _orientation(value: NodeOrientation | str) -> NodeOrientation:
    try:
        return coerce_enum(NodeOrientation, value)
    except ValueError as exc:
        raise InvalidArgument(str(exc)) from exc


def prepare_sample(
    sample: Sample,
    orientation: NodeOrientation | str,
    transform: Transform | None,
) -> Sample:
    """Flatten ``sample`` to a row, transform it in place, then orient it.

    ``transform`` receives the 1-D feature buffer and must modify it in place
    (see :mod:`layernet.data.stats`).
    """

    orientation = _orientation(orientation)
    if transform is None:
        raise InvalidArgument("A transform function is required to prepare a sample")
    values = sample.input_values
    mx.flatten(values, MatrixAxis.ROW)
    transform(values.entries[0])
    if orientation is NodeOrientation.COLUMN:
        mx.transpose(values)
    return sample


def prepare_dataset(
    samples: Sequence[Sample],
    orientation: NodeOrientation | str,
    transform: Transform | None,
) -> Sequence[Sample]:
    if not samples:
        raise InvalidArgument("Cannot prepare an empty dataset")
    orientation = _orientation(orientation)
    if transform is None:
        raise InvalidArgument("A transform function is required to prepare a dataset")
    for sample in samples:
        prepare_sample(sample, orientation, transform)
    return samples


def _affine(current: mx.Matrix, layer: Layer, orientation: NodeOrientation) -> mx.Matrix:
    if orientation is NodeOrientation.COLUMN:
        return mx.add(mx.dot(layer.weights, current), layer.bias)
    return mx.add(mx.dot(current, mx.transposed(layer.weights)), mx.transposed(layer.bias))


def _walk(
    inputs: mx.Matrix, network: Network, activation: ActivationFn
) -> Iterator[Tuple[Layer, mx.Matrix, mx.Matrix, mx.Matrix]]:
    orientation = network.options.node_orientation
    current = inputs
    for layer in network.traverse():
        if layer.weights.is_zero():
            continue
        weighted = _affine(current, layer, orientation)
        activated = mx.copy(weighted)
        mx.apply(activated, activation)
        yield layer, current, weighted, activated
        current = activated


def forward_propagate(
    sample: Sample, network: Network, activation: Activation | ActivationFn | None
) -> mx.Matrix:
    """Return the output layer's activations for a prepared ``sample``.

    Layers that own the zero matrix (the input layer) pass values through.
    The result is a new matrix owned by the caller.
    """

    if activation is None:
        raise InvalidArgument("An activation function is required")
    result = sample.input_values
    for _, _, _, activated in _walk(sample.input_values, network, activation):
        result = activated
    return mx.copy(result) if result is sample.input_values else result


@dataclass
class ForwardTrace:
    """Per-layer values recorded during one forward pass."""

    layers: List[Layer] = field(default_factory=list)
    inputs: List[mx.Matrix] = field(default_factory=list)
    pre_activations: List[mx.Matrix] = field(default_factory=list)
    output: mx.Matrix = field(default_factory=mx.create_zero)


def forward_trace(
    sample: Sample, network: Network, activation: Activation | ActivationFn | None
) -> ForwardTrace:
    if activation is None:
        raise InvalidArgument("An activation function is required")
    trace = ForwardTrace(output=mx.copy(sample.input_values))
    for layer, layer_input, weighted, activated in _walk(
        sample.input_values, network, activation
    ):
        trace.layers.append(layer)
        trace.inputs.append(layer_input)
        trace.pre_activations.append(weighted)
        trace.output = activated
    return trace


def _check_batch(observed: Sequence[mx.Matrix], expected: Sequence[mx.Matrix], batch_size: int) -> None:
    if batch_size <= 0:
        raise InvalidArgument(f"batch_size must be positive, got {batch_size}")
    if batch_size > len(observed) or batch_size > len(expected):
        raise InvalidArgument(
            f"batch_size {batch_size} exceeds the {min(len(observed), len(expected))} available pairs"
        )
    shape = observed[0].shape
    for obs, exp in zip(observed[:batch_size], expected[:batch_size]):
        if obs.shape != shape or exp.shape != shape:
            raise DimensionMismatch(
                f"Batch entries must share shape {shape}, got {obs.shape} and {exp.shape}"
            )


def loss_gradient(
    observed: Sequence[mx.Matrix], expected: Sequence[mx.Matrix], batch_size: int
) -> mx.Matrix:
    """Return ``-2 * sum(expected - observed)`` over the first ``batch_size`` pairs."""

    _check_batch(observed, expected, batch_size)
    total = np.zeros(observed[0].shape, dtype=np.float64)
    for obs, exp in zip(observed[:batch_size], expected[:batch_size]):
        total += exp.entries - obs.entries
    return mx.Matrix(-2.0 * total)


def sum_squared_residuals(observed: mx.Matrix, expected: mx.Matrix) -> float:
    if observed.shape != expected.shape:
        raise DimensionMismatch(f"Shapes differ: {observed.shape} vs {expected.shape}")
    residual = mx.add(expected, mx.scale(observed, -1.0))
    return float(np.sum(np.square(residual.entries)))


def one_hot(label: int, like: mx.Matrix) -> mx.Matrix:
    """Return a matrix shaped like ``like`` with ``1.0`` at row-major index ``label``."""

    if not like.is_valid():
        raise InvalidArgument("one_hot needs a valid template matrix")
    if not 0 <= int(label) < like.size:
        raise InvalidArgument(f"Label {label} does not fit an output of {like.size} nodes")
    target = mx.create(like.rows, like.cols)
    mx.fill(target, 0.0)
    target.entries.reshape(-1)[int(label)] = 1.0
    return target


def decode(m: mx.Matrix) -> int:
    """Return the row-major linear index of the largest entry (first wins ties)."""

    if not m.is_valid():
        raise InvalidArgument("Cannot decode an invalid matrix")
    return int(np.argmax(m.entries.reshape(-1)))


def evaluate(
    network: Network,
    activation: Activation | ActivationFn | None,
    samples: Sequence[Sample],
) -> float:
    """Return the fraction of ``samples`` whose decoded output matches the label."""

    if activation is None:
        raise InvalidArgument("An activation function is required")
    if not samples:
        raise InvalidArgument("Cannot evaluate an empty dataset")
    correct = 0
    for sample in samples:
        prediction = decode(forward_propagate(sample, network, activation))
        if prediction == sample.expected_value:
            correct += 1
    return correct / len(samples)


__all__ = [
    "ForwardTrace",
    "decode",
    "evaluate",
    "forward_propagate",
    "forward_trace",
    "loss_gradient",
    "one_hot",
    "prepare_dataset",
    "prepare_sample",
    "sum_squared_residuals",
]
