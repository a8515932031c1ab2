"""Error taxonomy for grid construction, access and diffusion input checks.

All of these signal programming errors, not transient faults: they are
raised immediately with the offending shape or coordinates and never
retried inside the package.
"""

from __future__ import annotations


class GridError(ValueError):
    """Base class for every grid/solver error raised by this package."""


class InvalidShape(GridError):
    """A grid was requested with a missing or non-positive extent."""

    def __init__(self, dimensions):
        self.dimensions = tuple(dimensions)
        super().__init__(f"invalid grid dimensions {self.dimensions}: every extent must be > 0")


class ShapeMismatch(GridError):
    """Two grids combined by one operation have different dimensions."""

    def __init__(self, expected, actual):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(f"shape mismatch: expected {self.expected}, got {self.actual}")


class OutOfBounds(GridError, IndexError):
    """Direct (non-mirrored) access outside the grid extents."""

    def __init__(self, coordinates, dimensions):
        self.coordinates = tuple(coordinates)
        self.dimensions = tuple(dimensions)
        super().__init__(
            f"coordinates {self.coordinates} out of bounds for grid of dimensions {self.dimensions}"
        )


class DegenerateInput(GridError):
    """Input grid too small for the +/-1 central-difference stencil."""

    def __init__(self, dimensions):
        self.dimensions = tuple(dimensions)
        super().__init__(
            f"degenerate input of dimensions {self.dimensions}: "
            "need at least one axis and >= 2 cells along every axis"
        )


class InvalidDtype(GridError, TypeError):
    """Grid values are not real numbers (complex, object, string...)."""

    def __init__(self, dtype):
        self.dtype = dtype
        super().__init__(f"grid values must be real numbers, got dtype {dtype}")
