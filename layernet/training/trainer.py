"""Mini-batch training loops for layer-store networks."""

from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Mapping, Sequence

import numpy as np

from ..core import matrix as mx
from ..core.activations import Activation, ActivationFn, resolve
from ..core.errors import InvalidArgument, InvalidShape
from ..core.network import Layer, Network
from ..core.types import NodeOrientation, Sample
from .propagation import (
    evaluate,
    forward_propagate,
    forward_trace,
    loss_gradient,
    one_hot,
    sum_squared_residuals,
)

logger = logging.getLogger(__name__)

UPDATE_RULES = ("bias", "backprop")


def _batches(samples: Sequence[Sample], batch_size: int) -> List[Sequence[Sample]]:
    return [samples[start : start + batch_size] for start in range(0, len(samples), batch_size)]


def _as_column(m: mx.Matrix, orientation: NodeOrientation) -> mx.Matrix:
    return mx.transposed(m) if orientation is NodeOrientation.ROW else m


def _output_layer(network: Network) -> Layer:
    if not len(network):
        raise InvalidShape("Cannot train a network without layers")
    layer = network.get_layer(len(network))
    if layer.bias.is_zero():
        raise InvalidShape("The final layer has no bias to update")
    return layer


def _subtract(current: mx.Matrix, delta: mx.Matrix) -> mx.Matrix:
    updated = mx.add(current, mx.scale(delta, -1.0))
    mx.free(current)
    return updated


def _bias_step(
    network: Network, activation: Activation | ActivationFn, batch: Sequence[Sample]
) -> float:
    layer = _output_layer(network)
    observed = [forward_propagate(sample, network, activation) for sample in batch]
    expected = [one_hot(sample.expected_value, out) for sample, out in zip(batch, observed)]
    gradient = loss_gradient(observed, expected, len(batch))
    options = network.options
    step = _as_column(mx.scale(gradient, options.learning_rate), options.node_orientation)
    layer.bias = _subtract(layer.bias, step)
    return sum(sum_squared_residuals(o, e) for o, e in zip(observed, expected))


def _backprop_step(network: Network, activation: Activation, batch: Sequence[Sample]) -> float:
    if activation.prime is None:
        raise InvalidArgument(f"Activation {activation.name!r} has no derivative for backprop")
    _output_layer(network)
    orientation = network.options.node_orientation
    grads_w: Dict[int, mx.Matrix] = {}
    grads_b: Dict[int, mx.Matrix] = {}
    loss = 0.0
    for sample in batch:
        trace = forward_trace(sample, network, activation)
        output = _as_column(trace.output, orientation)
        expected = one_hot(sample.expected_value, output)
        loss += sum_squared_residuals(output, expected)
        # dL/da for L = sum((y - a)^2)
        upstream = mx.scale(mx.add(expected, mx.scale(output, -1.0)), -2.0)
        for idx in reversed(range(len(trace.layers))):
            layer = trace.layers[idx]
            z = _as_column(trace.pre_activations[idx], orientation)
            derivative = mx.copy(z)
            mx.apply(derivative, activation.prime)
            delta = mx.multiply(upstream, derivative)
            layer_input = _as_column(trace.inputs[idx], orientation)
            grad_w = mx.dot(delta, mx.transposed(layer_input))
            key = id(layer)
            grads_w[key] = mx.add(grads_w[key], grad_w) if key in grads_w else grad_w
            grads_b[key] = mx.add(grads_b[key], delta) if key in grads_b else delta
            upstream = mx.dot(mx.transposed(layer.weights), delta)
    lr = network.options.learning_rate
    for layer in network.traverse():
        key = id(layer)
        if key not in grads_w:
            continue
        layer.weights = _subtract(layer.weights, mx.scale(grads_w[key], lr))
        layer.bias = _subtract(layer.bias, mx.scale(grads_b[key], lr))
    return loss


def train_batch(
    network: Network,
    activation: Activation | ActivationFn | str | None,
    batch_size: int,
    samples: Sequence[Sample],
    *,
    rule: str = "bias",
) -> float:
    """Run one pass over ``samples`` in mini-batches of ``batch_size``.

    ``rule="bias"`` forward-propagates each batch, one-hot encodes the labels,
    and subtracts ``learning_rate * loss_gradient`` from the output layer's
    bias; hidden weights are left untouched.  ``rule="backprop"`` instead
    applies gradient descent on the sum of squared residuals to every
    layer's weights and bias.

    Returns the mean sum of squared residuals observed over the pass.
    """

    if activation is None:
        raise InvalidArgument("An activation function is required")
    if batch_size <= 0:
        raise InvalidArgument(f"batch_size must be positive, got {batch_size}")
    if not samples:
        raise InvalidArgument("Cannot train on an empty dataset")
    if rule not in UPDATE_RULES:
        raise InvalidArgument(f"Unknown update rule {rule!r}; expected one of {UPDATE_RULES}")
    activation = resolve(activation)
    total = 0.0
    for batch in _batches(samples, batch_size):
        if rule == "bias":
            total += _bias_step(network, activation, batch)
        else:
            total += _backprop_step(network, activation, batch)
    return total / len(samples)


EpochCallback = Callable[[int, Mapping[str, float]], None]


class Trainer:
    """Run epochs of :func:`train_batch` and report per-epoch metrics."""

    def __init__(
        self,
        network: Network,
        activation: Activation | ActivationFn | str,
        *,
        batch_size: int = 32,
        rule: str = "bias",
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if rule not in UPDATE_RULES:
            raise InvalidArgument(f"Unknown update rule {rule!r}; expected one of {UPDATE_RULES}")
        self.network = network
        self.activation = resolve(activation)
        if self.activation is None:
            raise InvalidArgument("An activation function is required")
        self.batch_size = int(batch_size)
        self.rule = rule
        self.callbacks = list(callbacks or [])

    def run(
        self,
        train_samples: Sequence[Sample],
        epochs: int,
        *,
        test_samples: Sequence[Sample] | None = None,
        seed: int | None = None,
        shuffle: bool = False,
    ) -> List[Dict[str, float]]:
        if epochs <= 0:
            raise InvalidArgument(f"epochs must be positive, got {epochs}")
        rng = self._set_seed(seed)
        history: List[Dict[str, float]] = []
        order = list(train_samples)
        for epoch in range(1, epochs + 1):
            if shuffle:
                order = [order[idx] for idx in rng.permutation(len(order))]
            loss = train_batch(self.network, self.activation, self.batch_size, order, rule=self.rule)
            metrics = {
                "loss": float(loss),
                "accuracy": evaluate(self.network, self.activation, train_samples),
            }
            if test_samples:
                metrics["test_accuracy"] = evaluate(self.network, self.activation, test_samples)
            history.append(metrics)
            logger.info(
                "epoch %d/%d loss=%.6f accuracy=%.4f%s",
                epoch,
                epochs,
                metrics["loss"],
                metrics["accuracy"],
                f" test_accuracy={metrics['test_accuracy']:.4f}" if "test_accuracy" in metrics else "",
            )
            self._emit_epoch(epoch, metrics)
        return history

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)

    @staticmethod
    def _set_seed(seed: int | None) -> np.random.Generator:
        if seed is not None:
            random.seed(seed)
            np.random.seed(seed % (2**32 - 1))
        return np.random.default_rng(seed)


__all__ = ["Trainer", "UPDATE_RULES", "train_batch"]
