"""One-dimensional statistics and in-place feature transforms."""

from __future__ import annotations

import sys
from typing import Callable, Dict

import numpy as np

from ..core.errors import InvalidArgument
from ..core.types import Array

EPSILON = sys.float_info.epsilon


def _view(arr: Array, size: int | None) -> Array:
    if not isinstance(arr, np.ndarray) or arr.ndim != 1:
        raise InvalidArgument("Expected a one-dimensional NumPy array")
    size = arr.size if size is None else size
    if size <= 0 or size > arr.size:
        raise InvalidArgument(f"size must be in [1, {arr.size}], got {size}")
    return arr[:size]


def is_close_zero(value: float) -> bool:
    return abs(value) <= EPSILON


def minimum(arr: Array, size: int | None = None) -> float:
    return float(np.min(_view(arr, size)))


def maximum(arr: Array, size: int | None = None) -> float:
    return float(np.max(_view(arr, size)))


def average(arr: Array, size: int | None = None) -> float:
    return float(np.mean(_view(arr, size)))


def stddev(arr: Array, size: int | None = None) -> float:
    """Population standard deviation."""

    return float(np.std(_view(arr, size)))


def random_uniform(low: float, high: float, rng: np.random.Generator | None = None) -> float:
    generator = rng if rng is not None else np.random.default_rng()
    return float(generator.uniform(low, high))


def normalize(arr: Array, size: int | None = None) -> Array:
    """Rescale the first ``size`` values of ``arr`` to ``[0, 1]`` in place.

    Left untouched when the range is numerically zero.
    """

    view = _view(arr, size)
    low = float(np.min(view))
    span = float(np.max(view)) - low
    if not is_close_zero(span):
        view -= low
        view /= span
    return arr


def standardize(arr: Array, size: int | None = None) -> Array:
    """Shift the first ``size`` values of ``arr`` to zero mean, unit variance.

    Left untouched when the standard deviation is numerically zero.
    """

    view = _view(arr, size)
    mean = float(np.mean(view))
    sdev = float(np.std(view))
    if not is_close_zero(sdev):
        view -= mean
        view /= sdev
    return arr


def scale255(arr: Array, size: int | None = None) -> Array:
    """Divide 8-bit pixel intensities by 255 in place."""

    view = _view(arr, size)
    view /= 255.0
    return arr


def identity(arr: Array, size: int | None = None) -> Array:
    _view(arr, size)
    return arr


TRANSFORMS: Dict[str, Callable[..., Array]] = {
    "normalize": normalize,
    "standardize": standardize,
    "scale255": scale255,
    "identity": identity,
}


def get_transform(name: str) -> Callable[..., Array]:
    try:
        return TRANSFORMS[name]
    except KeyError as exc:
        available = ", ".join(sorted(TRANSFORMS))
        raise KeyError(f"Unknown transform {name!r}. Available transforms: {available}") from exc


__all__ = [
    "EPSILON",
    "TRANSFORMS",
    "average",
    "get_transform",
    "identity",
    "is_close_zero",
    "maximum",
    "minimum",
    "normalize",
    "random_uniform",
    "scale255",
    "standardize",
    "stddev",
]
