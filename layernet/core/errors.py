"""Error taxonomy shared by the matrix engine, layer store and trainer."""

from __future__ import annotations


class LayerNetError(Exception):
    """Base class for every precondition violation raised by layernet."""


class InvalidArgument(LayerNetError, ValueError):
    """A required callback or argument is missing or unusable."""


class InvalidDimension(LayerNetError, ValueError):
    """A non-positive or otherwise illegal matrix dimension."""


class InvalidShape(LayerNetError, ValueError):
    """A non-positive or otherwise illegal layer shape."""


class DimensionMismatch(LayerNetError, ValueError):
    """Two matrices are incompatible for the requested operation."""


class InvalidPosition(LayerNetError, ValueError, IndexError):
    """A 1-based network position is out of range."""


class InvalidOptions(LayerNetError, ValueError):
    """Malformed :class:`~layernet.core.types.NetworkOptions`."""


class AllocationFailure(LayerNetError, MemoryError):
    """Backing storage for a matrix could not be obtained."""


class InvalidMatrix(LayerNetError, ValueError):
    """The matrix is neither valid nor the canonical zero matrix."""


__all__ = [
    "AllocationFailure",
    "DimensionMismatch",
    "InvalidArgument",
    "InvalidDimension",
    "InvalidMatrix",
    "InvalidOptions",
    "InvalidPosition",
    "InvalidShape",
    "LayerNetError",
]
