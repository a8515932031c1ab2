"""Perona-Malik anisotropic diffusion: an explicit, fixed-step solver for
du/dt = div(g(|grad u|^2) grad u) on N-dimensional grids."""

from perona_malik.config import DiffusionConfig
from perona_malik.errors import (
    DegenerateInput, GridError, InvalidDtype, InvalidShape, OutOfBounds, ShapeMismatch,
)
from perona_malik.grid import Grid, mirror_index
from perona_malik.solver import DiffusionSolver, DiffusionState
