"""Activation functions and their derivatives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Union

import numpy as np

from .types import Array

Scalar = Union[float, Array]
ActivationFn = Callable[[Scalar], Scalar]


def _out(value: Array) -> Scalar:
    return float(value) if np.ndim(value) == 0 else value


def sigmoid(x: Scalar) -> Scalar:
    """Return ``1 / (1 + e^-x)`` without overflowing for large ``|x|``."""

    x = np.asarray(x, dtype=np.float64)
    z = np.exp(-np.abs(x))
    return _out(np.where(x >= 0, 1.0 / (1.0 + z), z / (1.0 + z)))


def relu(x: Scalar) -> Scalar:
    """Return the ReLU activation."""

    return _out(np.maximum(np.asarray(x, dtype=np.float64), 0.0))


def tanh(x: Scalar) -> Scalar:
    return _out(np.tanh(np.asarray(x, dtype=np.float64)))


def sigmoid_prime(x: Scalar) -> Scalar:
    s = np.asarray(sigmoid(x))
    return _out(s * (1.0 - s))


def relu_prime(x: Scalar) -> Scalar:
    # The derivative at exactly 0 is taken as 0.
    return _out((np.asarray(x, dtype=np.float64) > 0).astype(np.float64))


def tanh_prime(x: Scalar) -> Scalar:
    return _out(1.0 - np.tanh(np.asarray(x, dtype=np.float64)) ** 2)


@dataclass(frozen=True)
class Activation:
    """An activation paired with its derivative."""

    name: str
    fn: ActivationFn
    prime: ActivationFn | None = None

    def __call__(self, x: Scalar) -> Scalar:
        return self.fn(x)


class ActivationRegistry:
    """Name -> :class:`Activation` lookup used by configs and the CLI."""

    def __init__(self) -> None:
        self._registry: Dict[str, Activation] = {}

    def register(self, name: str, fn: ActivationFn, prime: ActivationFn) -> None:
        self._registry[name] = Activation(name, fn, prime)

    def get(self, name: str) -> Activation:
        key = name.strip().lower()
        if key not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown activation {name!r}. Available activations: {available}")
        return self._registry[key]

    def names(self) -> Iterable[str]:
        return sorted(self._registry)


REGISTRY = ActivationRegistry()
REGISTRY.register("sigmoid", sigmoid, sigmoid_prime)
REGISTRY.register("relu", relu, relu_prime)
REGISTRY.register("tanh", tanh, tanh_prime)

SIGMOID = REGISTRY.get("sigmoid")
RELU = REGISTRY.get("relu")
TANH = REGISTRY.get("tanh")


def resolve(activation: Activation | ActivationFn | str | None) -> Activation | None:
    """Return ``activation`` as an :class:`Activation` when it can be paired.

    Bare callables that match a registered function resolve to the registered
    pair; other callables are wrapped without a derivative.
    """

    if activation is None or isinstance(activation, Activation):
        return activation
    if isinstance(activation, str):
        return REGISTRY.get(activation)
    for name in REGISTRY.names():
        registered = REGISTRY.get(name)
        if registered.fn is activation:
            return registered
    return Activation(getattr(activation, "__name__", "custom"), activation)


__all__ = [
    "Activation",
    "ActivationRegistry",
    "REGISTRY",
    "RELU",
    "SIGMOID",
    "TANH",
    "relu",
    "relu_prime",
    "resolve",
    "sigmoid",
    "sigmoid_prime",
    "tanh",
    "tanh_prime",
]
