"""Weight and bias initialization for network layers."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from . import matrix as mx
from .errors import InvalidArgument, InvalidShape
from .types import DistStrategy, LayerRole, NetworkOptions

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .network import Layer


def distribution_multiplier(strategy: DistStrategy, nodes: int, prev_nodes: int) -> float:
    """Return the strategy-specific scale applied to uniform samples."""

    if strategy is DistStrategy.HE:
        return math.sqrt(2.0 / nodes)
    if strategy is DistStrategy.XAVIER:
        return math.sqrt(2.0 / prev_nodes)
    if strategy is DistStrategy.HE_XAVIER:
        return math.sqrt(2.0 / (nodes + prev_nodes))
    if strategy is DistStrategy.RANDOM:
        return 1.0
    if strategy is DistStrategy.ZERO:
        return 0.0
    raise InvalidArgument(f"Invalid distribution strategy: {strategy!r}")


def distribution_bound(spread: float, nodes: int, prev_nodes: int) -> float:
    return spread / math.sqrt(nodes * prev_nodes)


def initialize_weights(
    weights: mx.Matrix,
    options: NetworkOptions,
    rng: np.random.Generator | None = None,
) -> None:
    """Fill a ``(nodes, prev_nodes)`` weight matrix per ``options``."""

    if options.dist_strategy is DistStrategy.ZERO:
        mx.fill(weights, 0.0)
        return
    nodes, prev_nodes = weights.shape
    mult = distribution_multiplier(options.dist_strategy, nodes, prev_nodes)
    bound = distribution_bound(options.dist_spread, nodes, prev_nodes)
    mx.fill_random_bounded(weights, -bound, bound, mult, rng=rng)


def initialize_bias(bias: mx.Matrix, options: NetworkOptions) -> None:
    mx.fill(bias, options.initial_bias)


def activate_layer(
    layer: "Layer",
    prev_nodes: int,
    options: NetworkOptions,
    rng: np.random.Generator | None = None,
) -> None:
    """Allocate and initialize ``layer``'s weights and bias.

    Input layers and layers without a predecessor own the zero matrix.
    """

    if prev_nodes < 0:
        raise InvalidShape(f"Predecessor node count must be >= 0, got {prev_nodes}")
    if prev_nodes == 0 or layer.role is LayerRole.INPUT:
        layer.weights = mx.create_zero()
        layer.bias = mx.create_zero()
        return
    weights = mx.create(layer.nodes, prev_nodes)
    bias = mx.create(layer.nodes, 1)
    initialize_weights(weights, options, rng=rng)
    initialize_bias(bias, options)
    layer.weights, layer.bias = weights, bias


def reactivate_layer(
    layer: "Layer",
    prev_nodes: int,
    options: NetworkOptions,
    rng: np.random.Generator | None = None,
) -> None:
    """Release ``layer``'s matrices and re-run :func:`activate_layer`."""

    if prev_nodes < 0:
        raise InvalidShape(f"Predecessor node count must be >= 0, got {prev_nodes}")
    mx.free(layer.weights)
    mx.free(layer.bias)
    activate_layer(layer, prev_nodes, options, rng=rng)


__all__ = [
    "activate_layer",
    "distribution_bound",
    "distribution_multiplier",
    "initialize_bias",
    "initialize_weights",
    "reactivate_layer",
]
