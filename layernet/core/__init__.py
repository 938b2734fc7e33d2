"""Core numerical primitives for layernet."""

from . import activations, errors, initializers, matrix, network, types

__all__ = ["activations", "errors", "initializers", "matrix", "network", "types"]
