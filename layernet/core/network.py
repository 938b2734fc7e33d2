"""Position-addressable layer store for feed-forward networks.

Positions are 1-based.  Layer ``i`` always derives its weight shape
``(nodes, prev_nodes)`` from layer ``i - 1``; every structural edit
re-initializes the layer that follows the edited position so this holds
after the edit returns.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence

import numpy as np

from . import matrix as mx
from .errors import InvalidArgument, InvalidOptions, InvalidPosition, InvalidShape
from .initializers import activate_layer, reactivate_layer
from .types import LayerRole, LayerSpec, NetworkOptions, TravDirection, coerce_enum

logger = logging.getLogger(__name__)


@dataclass
class Layer:
    """One affine + activation stage."""

    nodes: int
    role: LayerRole
    weights: mx.Matrix = field(default_factory=mx.create_zero, repr=False)
    bias: mx.Matrix = field(default_factory=mx.create_zero, repr=False)

    @property
    def prev_nodes(self) -> int:
        return self.weights.cols

    def release(self) -> None:
        mx.free(self.weights)
        mx.free(self.bias)


def _coerce_role(role: LayerRole | str) -> LayerRole:
    try:
        return coerce_enum(LayerRole, role)
    except ValueError as exc:
        raise InvalidArgument(str(exc)) from exc


def create_layer(
    nodes: int,
    role: LayerRole | str,
    prev_nodes: int,
    options: NetworkOptions,
    rng: np.random.Generator | None = None,
) -> Layer:
    """Build a layer whose weights are shaped against ``prev_nodes``."""

    if nodes <= 0:
        raise InvalidShape(f"A layer needs a positive node count, got {nodes}")
    layer = Layer(nodes=int(nodes), role=_coerce_role(role))
    activate_layer(layer, prev_nodes, options, rng=rng)
    return layer


class LayerCursor(Iterator[Layer]):
    """Iterator over a network's layers with its own position.

    Raises :class:`RuntimeError` if the network is structurally edited while
    the cursor is in use.
    """

    def __init__(self, network: "Network", direction: TravDirection) -> None:
        self._network = network
        self._direction = coerce_enum(TravDirection, direction)
        with network._lock:
            self._version = network._version
            size = len(network._layers)
        self._index = 0 if self._direction is TravDirection.FORWARD else size - 1
        self._step = 1 if self._direction is TravDirection.FORWARD else -1

    @property
    def direction(self) -> TravDirection:
        return self._direction

    @property
    def position(self) -> int:
        """1-based position of the next layer to be yielded."""

        return self._index + 1

    def __iter__(self) -> "LayerCursor":
        return self

    def __next__(self) -> Layer:
        with self._network._lock:
            if self._network._version != self._version:
                raise RuntimeError("Network changed size during traversal")
            layers = self._network._layers
            if not 0 <= self._index < len(layers):
                raise StopIteration
            layer = layers[self._index]
        self._index += self._step
        return layer


class Network:
    """Ordered sequence of :class:`Layer` records plus their options.

    Structural edits and their neighbour re-initialization run under one
    re-entrant lock that every read path also takes, so readers on other
    threads never observe a half-applied edit.
    """

    def __init__(
        self,
        options: NetworkOptions | None = None,
        layers: Iterable[LayerSpec | Sequence[object]] = (),
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        options = options if options is not None else NetworkOptions()
        if not isinstance(options, NetworkOptions):
            raise InvalidOptions(f"Expected NetworkOptions, got {type(options).__name__}")
        self._options = options.validate()
        self._layers: List[Layer] = []
        self._rng = rng
        self._version = 0
        self._lock = threading.RLock()
        for spec in layers:
            spec = LayerSpec.parse(spec)
            self.append_layer(spec.nodes, spec.role)

    @property
    def options(self) -> NetworkOptions:
        return self._options

    @property
    def layers(self) -> tuple[Layer, ...]:
        with self._lock:
            return tuple(self._layers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._layers)

    def __iter__(self) -> LayerCursor:
        return self.traverse(TravDirection.FORWARD)

    def __repr__(self) -> str:
        return f"Network(nodes={self.node_counts()}, options={self._options!r})"

    # ------------------------------------------------------------------
    # Structural edits

    def append_layer(self, nodes: int, role: LayerRole | str = LayerRole.HIDDEN) -> Layer:
        with self._lock:
            prev_nodes = self._layers[-1].nodes if self._layers else 0
            layer = create_layer(nodes, role, prev_nodes, self._options, rng=self._rng)
            self._layers.append(layer)
            self._version += 1
            logger.debug(
                "Appended %s layer with %d nodes at position %d",
                layer.role.value,
                nodes,
                len(self._layers),
            )
            return layer

    def insert_layer(self, position: int, nodes: int, role: LayerRole | str = LayerRole.HIDDEN) -> Layer:
        """Insert a layer so it occupies 1-based ``position``.

        The layer previously at ``position`` is re-initialized against the
        new layer's node count.
        """

        with self._lock:
            size = len(self._layers)
            if not 1 <= position <= size + 1:
                raise InvalidPosition(f"Insert position must be in [1, {size + 1}], got {position}")
            index = position - 1
            prev_nodes = self._layers[index - 1].nodes if index > 0 else 0
            layer = create_layer(nodes, role, prev_nodes, self._options, rng=self._rng)
            self._layers.insert(index, layer)
            if index + 1 < len(self._layers):
                reactivate_layer(self._layers[index + 1], layer.nodes, self._options, rng=self._rng)
            self._version += 1
            logger.debug(
                "Inserted %s layer with %d nodes at position %d", layer.role.value, nodes, position
            )
            return layer

    def delete_layer(self, position: int) -> None:
        """Remove the layer at 1-based ``position``.

        The new occupant of ``position`` is re-initialized against its new
        predecessor (none when ``position`` is 1).
        """

        with self._lock:
            size = len(self._layers)
            if not 1 <= position <= size:
                raise InvalidPosition(f"Delete position must be in [1, {size}], got {position}")
            index = position - 1
            removed = self._layers.pop(index)
            removed.release()
            if index < len(self._layers):
                prev_nodes = self._layers[index - 1].nodes if index > 0 else 0
                reactivate_layer(self._layers[index], prev_nodes, self._options, rng=self._rng)
            self._version += 1
            logger.debug("Deleted layer at position %d", position)

    def destroy(self) -> None:
        """Release every layer and reset the options to their defaults."""

        with self._lock:
            for layer in self._layers:
                layer.release()
            self._layers.clear()
            self._options = NetworkOptions()
            self._version += 1

    # ------------------------------------------------------------------
    # Access

    def get_layer(self, position: int) -> Layer:
        with self._lock:
            size = len(self._layers)
            if not 1 <= position <= size:
                raise InvalidPosition(f"Layer position must be in [1, {size}], got {position}")
            return self._layers[position - 1]

    def traverse(self, direction: TravDirection | str = TravDirection.FORWARD) -> LayerCursor:
        """Begin a new traversal in ``direction``."""

        return LayerCursor(self, direction)

    def node_counts(self) -> List[int]:
        with self._lock:
            return [layer.nodes for layer in self._layers]

    def output_nodes(self) -> int:
        with self._lock:
            if not self._layers:
                raise InvalidShape("Network has no layers")
            return self._layers[-1].nodes

    def parameter_count(self) -> int:
        with self._lock:
            return sum(layer.weights.size + layer.bias.size for layer in self._layers)

    def describe(self) -> List[dict]:
        with self._lock:
            return [
                {
                    "position": idx,
                    "nodes": layer.nodes,
                    "role": layer.role.value,
                    "weights": list(layer.weights.shape),
                    "bias": list(layer.bias.shape),
                }
                for idx, layer in enumerate(self._layers, start=1)
            ]


def create_network(
    options: NetworkOptions,
    layers: Iterable[LayerSpec | Sequence[object]] = (),
    *,
    rng: np.random.Generator | None = None,
) -> Network:
    """Build a network left to right from ``layers``."""

    return Network(options, layers, rng=rng)


__all__ = ["Layer", "LayerCursor", "Network", "create_layer", "create_network"]
