"""Dense N-dimensional real-valued grid with mirrored boundary access."""

from __future__ import annotations

from typing import Iterator, Sequence, Tuple

import numpy as np

from perona_malik.errors import InvalidDtype, InvalidShape, OutOfBounds, ShapeMismatch


def mirror_index(coordinate, extent: int):
    """Reflect ``coordinate`` into ``[0, extent)`` by single-mirror extension.

    ``-1 -> 0``, ``-2 -> 1``, ``extent -> extent - 1``; larger overshoots
    keep reflecting, which is periodic with period ``2 * extent``.
    Works on Python ints and on integer ndarrays.
    """
    period = 2 * extent
    if isinstance(coordinate, np.ndarray):
        c = np.mod(coordinate, period)
        return np.where(c >= extent, period - 1 - c, c)
    c = int(coordinate) % period
    return period - 1 - c if c >= extent else c


def _validate_dimensions(dimensions) -> Tuple[int, ...]:
    dims = tuple(int(d) for d in dimensions)
    if not dims or any(d <= 0 for d in dims):
        raise InvalidShape(dims)
    return dims


class Grid:
    """Owned, dense, row-major grid of real values.

    The backing ndarray is always C-contiguous so ``data`` is a flat view of
    the same buffer: ``len(data) == prod(dimensions)`` at all times.
    """

    __hash__ = None

    def __init__(self, array: np.ndarray):
        if array.dtype.kind not in "biuf":
            raise InvalidDtype(array.dtype)
        _validate_dimensions(array.shape)
        self._array = np.ascontiguousarray(array)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def create(cls, dimensions: Sequence[int], dtype=np.float64) -> "Grid":
        """Zero-initialised grid of the given extents."""
        dims = _validate_dimensions(dimensions)
        return cls(np.zeros(dims, dtype=dtype))

    @classmethod
    def from_array(cls, array, copy: bool = True) -> "Grid":
        arr = np.asarray(array)
        if arr.ndim == 0 or arr.size == 0:
            raise InvalidShape(arr.shape)
        return cls(arr.copy(order="C") if copy else arr)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    @property
    def dimensions(self) -> Tuple[int, ...]:
        return self._array.shape

    @property
    def ndim(self) -> int:
        return self._array.ndim

    @property
    def size(self) -> int:
        return self._array.size

    @property
    def dtype(self) -> np.dtype:
        return self._array.dtype

    @property
    def array(self) -> np.ndarray:
        """Shaped view of the buffer (no copy)."""
        return self._array

    @property
    def data(self) -> np.ndarray:
        """Flat row-major view of the buffer (no copy)."""
        return self._array.reshape(-1)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def _checked(self, coordinates) -> Tuple[int, ...]:
        coords = tuple(int(c) for c in coordinates)
        if len(coords) != self.ndim or any(
            c < 0 or c >= n for c, n in zip(coords, self.dimensions)
        ):
            raise OutOfBounds(coords, self.dimensions)
        return coords

    def get(self, coordinates: Sequence[int]) -> float:
        return float(self._array[self._checked(coordinates)])

    def set(self, coordinates: Sequence[int], value) -> None:
        self._array[self._checked(coordinates)] = value

    def mirrored_access(self, coordinates: Sequence[int]) -> float:
        """Read with out-of-range coordinates reflected back into the grid."""
        coords = tuple(int(c) for c in coordinates)
        if len(coords) != self.ndim:
            raise OutOfBounds(coords, self.dimensions)
        resolved = tuple(mirror_index(c, n) for c, n in zip(coords, self.dimensions))
        return float(self._array[resolved])

    def copy_from(self, other: "Grid") -> None:
        if other.dimensions != self.dimensions:
            raise ShapeMismatch(self.dimensions, other.dimensions)
        np.copyto(self._array, other.array, casting="unsafe")

    def copy(self) -> "Grid":
        return Grid(self._array.copy())

    def astype(self, dtype) -> "Grid":
        """Independent copy converted to ``dtype``."""
        return Grid(self._array.astype(dtype, copy=True))

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    def for_each(self) -> Iterator[float]:
        """Values in row-major order."""
        return iter(self.data.astype(np.float64).tolist())

    def indexed_for_each(self) -> Iterator[Tuple[Tuple[int, ...], float]]:
        """``(coordinates, value)`` pairs in row-major order."""
        for coords in np.ndindex(*self.dimensions):
            yield coords, float(self._array[coords])

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return NotImplemented
        return self.dimensions == other.dimensions and bool(
            np.array_equal(self._array, other.array)
        )

    def __repr__(self) -> str:
        return f"Grid(dimensions={self.dimensions}, dtype={self.dtype})"
