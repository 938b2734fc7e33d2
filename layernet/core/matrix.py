"""Dense two-dimensional matrix engine.

A :class:`Matrix` is either *valid* (``rows > 0`` and ``cols > 0`` with an
owned ``float64`` buffer) or the canonical *zero matrix* (``0 x 0`` with no
storage).  Operations that produce a new matrix never consume their inputs;
:func:`transpose` and :func:`flatten` replace the caller's storage in a single
assignment so the matrix is never observed half-transformed.
"""

from __future__ import annotations

from typing import Callable, MutableSequence, Sequence

import numpy as np

from .errors import (
    AllocationFailure,
    DimensionMismatch,
    InvalidArgument,
    InvalidDimension,
    InvalidMatrix,
)
from .types import Array, MatrixAxis

_RNG: np.random.Generator = np.random.default_rng()


def default_rng() -> np.random.Generator:
    """Return the generator used when no explicit ``rng`` is supplied."""

    return _RNG


def reseed(seed: int | None) -> np.random.Generator:
    """Reseed the module generator and return it."""

    global _RNG
    _RNG = np.random.default_rng(seed)
    return _RNG


class Matrix:
    """Row-major 2-D grid of floating point entries."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Array | None = None) -> None:
        if entries is None:
            self._entries = None
            return
        array = np.array(entries, dtype=np.float64)
        if array.ndim != 2:
            raise InvalidDimension(f"Matrix entries must be 2-D, got {array.ndim}-D")
        self._entries = array

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> "Matrix":
        return cls(np.asarray(rows, dtype=np.float64))

    @property
    def rows(self) -> int:
        return 0 if self._entries is None else int(self._entries.shape[0])

    @property
    def cols(self) -> int:
        return 0 if self._entries is None else int(self._entries.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @property
    def entries(self) -> Array | None:
        """The owned buffer, or ``None`` for the zero matrix."""

        return self._entries

    def is_valid(self) -> bool:
        return self._entries is not None and self.rows > 0 and self.cols > 0

    def is_zero(self) -> bool:
        return self._entries is None

    def is_row_vector(self) -> bool:
        return self.is_valid() and self.rows == 1 and self.cols > 1

    def is_column_vector(self) -> bool:
        return self.is_valid() and self.cols == 1 and self.rows > 1

    def tolist(self) -> list[list[float]]:
        return [] if self._entries is None else self._entries.tolist()

    def __getitem__(self, index: tuple[int, int]) -> float:
        _require_valid(self)
        return float(self._entries[index])

    def __setitem__(self, index: tuple[int, int], value: float) -> None:
        _require_valid(self)
        self._entries[index] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        if self.shape != other.shape:
            return False
        if self._entries is None or other._entries is None:
            return self._entries is None and other._entries is None
        return bool(np.array_equal(self._entries, other._entries))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Matrix(rows={self.rows}, cols={self.cols})"

    def __str__(self) -> str:
        return format_matrix(self)

    def _install(self, entries: Array | None) -> None:
        self._entries = entries


def _require_valid(m: Matrix) -> None:
    if not isinstance(m, Matrix) or not m.is_valid():
        raise InvalidMatrix(f"Operation requires a valid matrix, got {m!r}")


def _allocate(rows: int, cols: int) -> Array:
    try:
        return np.empty((rows, cols), dtype=np.float64)
    except MemoryError as exc:
        raise AllocationFailure(f"Could not allocate a {rows}x{cols} matrix") from exc


def create(rows: int, cols: int) -> Matrix:
    """Return a ``rows x cols`` matrix with uninitialized entries."""

    if int(rows) != rows or rows <= 0:
        raise InvalidDimension(f"rows must be a positive integer, got {rows!r}")
    if int(cols) != cols or cols <= 0:
        raise InvalidDimension(f"cols must be a positive integer, got {cols!r}")
    m = Matrix()
    m._install(_allocate(int(rows), int(cols)))
    return m


def create_zero() -> Matrix:
    """Return the canonical ``0 x 0`` matrix."""

    return Matrix()


def copy(m: Matrix) -> Matrix:
    if m.is_zero():
        return create_zero()
    _require_valid(m)
    out = Matrix()
    out._install(m.entries.copy())
    return out


def fill(m: Matrix, value: float) -> None:
    _require_valid(m)
    m.entries.fill(value)


def fill_random_bounded(
    m: Matrix,
    low: float,
    high: float,
    multiplier: float = 1.0,
    rng: np.random.Generator | None = None,
) -> None:
    """Fill ``m`` with ``uniform(low, high) * multiplier`` samples."""

    _require_valid(m)
    if low > high:
        raise InvalidArgument(f"low ({low}) must not exceed high ({high})")
    generator = rng if rng is not None else _RNG
    m.entries[...] = generator.uniform(low, high, size=m.shape) * multiplier


def free(m: Matrix) -> None:
    """Release ``m``'s storage and reset it to the zero matrix."""

    if m.is_zero():
        return
    _require_valid(m)
    m._install(None)


def apply(m: Matrix, fn: Callable, *, elementwise: bool = False) -> None:
    """Map ``fn`` over every entry of ``m`` in place.

    ``fn`` is first called once with the whole buffer.  Scalar-only callables,
    those that raise ``TypeError`` or ``ValueError`` on an array or return
    something of another shape, are then mapped entry by entry through
    :func:`numpy.vectorize`.  Setting ``elementwise`` skips the whole-buffer
    attempt.
    """

    if fn is None:
        raise InvalidArgument("A mapping function is required")
    if m.is_zero():
        return
    _require_valid(m)
    result = None
    if not elementwise:
        try:
            result = np.asarray(fn(m.entries.copy()), dtype=np.float64)
        except (TypeError, ValueError):
            result = None
        if result is not None and result.shape != m.shape:
            result = None
    if result is None:
        result = np.vectorize(fn, otypes=[np.float64])(m.entries)
    m.entries[...] = result


def add(a: Matrix, b: Matrix) -> Matrix:
    if a.shape != b.shape:
        raise DimensionMismatch(f"Matrices can't be added: {a.shape} vs {b.shape}")
    if a.is_zero():
        return create_zero()
    _require_valid(a)
    _require_valid(b)
    return Matrix(a.entries + b.entries)


def multiply(a: Matrix, b: Matrix) -> Matrix:
    """Entrywise (Hadamard) product."""

    if a.shape != b.shape:
        raise DimensionMismatch(f"Matrices can't be multiplied entrywise: {a.shape} vs {b.shape}")
    _require_valid(a)
    _require_valid(b)
    return Matrix(a.entries * b.entries)


def scale(a: Matrix, k: float) -> Matrix:
    if a.is_zero():
        return create_zero()
    _require_valid(a)
    return Matrix(a.entries * float(k))


def dot(a: Matrix, b: Matrix) -> Matrix:
    """Matrix product ``a . b``; requires ``a.cols == b.rows``."""

    _require_valid(a)
    _require_valid(b)
    if a.cols != b.rows:
        raise DimensionMismatch(f"Matrices can't be dotted: {a.shape} . {b.shape}")
    return Matrix(np.matmul(a.entries, b.entries, dtype=np.float64))


def dot_auto_orient(a: Matrix, b: Matrix) -> Matrix:
    """Product that swaps operands when only ``b . a`` is defined.

    Returns ``dot(a, b)`` when ``a.cols == b.rows``.  Otherwise, if
    ``b.cols == a.rows``, returns ``dot(b, a)``: the operands trade places, so
    the result is ``b . a`` rather than a transpose of ``a . b``.
    """

    _require_valid(a)
    _require_valid(b)
    if a.cols == b.rows:
        return dot(a, b)
    if b.cols == a.rows:
        return dot(b, a)
    raise DimensionMismatch(f"Matrices can't be dotted in either order: {a.shape}, {b.shape}")


def transposed(a: Matrix) -> Matrix:
    if a.is_zero():
        return create_zero()
    _require_valid(a)
    return Matrix(a.entries.T)


def transpose(a: Matrix) -> None:
    """Replace ``a`` with its transpose."""

    if a.is_zero():
        return
    _require_valid(a)
    a._install(np.ascontiguousarray(a.entries.T))


def flatten(a: Matrix, axis: MatrixAxis) -> None:
    """Replace ``a`` with a single row or column in row-major order."""

    if not isinstance(axis, MatrixAxis):
        raise InvalidArgument(f"Invalid axis: {axis!r}")
    _require_valid(a)
    shape = (1, a.size) if axis is MatrixAxis.ROW else (a.size, 1)
    a._install(a.entries.reshape(shape).copy())


def copy_bounded(src: Matrix, dest: Matrix) -> None:
    """Copy ``src`` into the top-left of ``dest`` and zero the remainder."""

    _require_valid(src)
    _require_valid(dest)
    if dest.rows < src.rows or dest.cols < src.cols:
        raise DimensionMismatch(f"Destination {dest.shape} is smaller than source {src.shape}")
    dest.entries.fill(0.0)
    dest.entries[: src.rows, : src.cols] = src.entries


def copy_array_to_matrix(src: Sequence[float], size: int, dest: Matrix) -> None:
    """Lay the first ``size`` values of ``src`` into ``dest`` row by row.

    Values past the capacity of ``dest`` are dropped; cells past ``size``
    are zero-filled.
    """

    _require_valid(dest)
    values = np.asarray(src, dtype=np.float64).reshape(-1)
    if size <= 0 or size > values.size:
        raise InvalidArgument(f"size must be in [1, {values.size}], got {size}")
    flat = np.zeros(dest.size, dtype=np.float64)
    count = min(size, dest.size)
    flat[:count] = values[:count]
    dest.entries[...] = flat.reshape(dest.shape)


def copy_matrix_to_array(
    src: Matrix, dest: MutableSequence[float], size: int
) -> MutableSequence[float]:
    """Write ``src`` in row-major order into the first ``size`` slots of ``dest``.

    Entries past ``size`` are dropped; slots past ``src``'s extent are zero.
    """

    _require_valid(src)
    if size <= 0 or size > len(dest):
        raise InvalidArgument(f"size must be in [1, {len(dest)}], got {size}")
    flat = np.zeros(size, dtype=np.float64)
    count = min(size, src.size)
    flat[:count] = src.entries.reshape(-1)[:count]
    dest[:size] = flat if isinstance(dest, np.ndarray) else flat.tolist()
    return dest


def format_matrix(m: Matrix) -> str:
    if m.is_zero():
        return ""
    return "\n".join(
        "".join(f"{value:5.2f} " for value in row) for row in m.entries.tolist()
    )


__all__ = [
    "Matrix",
    "add",
    "apply",
    "copy",
    "copy_array_to_matrix",
    "copy_bounded",
    "copy_matrix_to_array",
    "create",
    "create_zero",
    "default_rng",
    "dot",
    "dot_auto_orient",
    "fill",
    "fill_random_bounded",
    "flatten",
    "format_matrix",
    "free",
    "multiply",
    "reseed",
    "scale",
    "transpose",
    "transposed",
]
