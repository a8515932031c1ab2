"""Stencil kernels for the explicit Perona-Malik scheme.

State and flux are shaped ndarrays; the flux arena has shape
``(ndim, *dimensions)``. Boundaries are handled by padding one mirrored
slice on every side (``np.pad(..., mode="symmetric")`` repeats the edge
sample, so index -1 reads index 0). Every kernel works on a row range
``[start, stop)`` along axis 0, reading one halo slice on each side, so the
two passes can be split across workers without changing per-pixel
arithmetic.
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np


def halo_slab(arr: np.ndarray, start: int, stop: int) -> np.ndarray:
    """``arr[start:stop]`` plus one neighbour slice on every side of every axis.

    Interior chunk edges along axis 0 take the real neighbouring rows; grid
    edges are mirrored.
    """
    n0 = arr.shape[0]
    lo, hi = max(start - 1, 0), min(stop + 1, n0)
    pad = [(1 if start == 0 else 0, 1 if stop == n0 else 0)] + [(1, 1)] * (arr.ndim - 1)
    return np.pad(arr[lo:hi], pad, mode="symmetric")


def central_difference(padded: np.ndarray, axis: int) -> np.ndarray:
    """``u(p + e_axis) - u(p - e_axis)`` over the unpadded interior."""
    core = [slice(1, -1)] * padded.ndim
    plus = list(core)
    minus = list(core)
    plus[axis] = slice(2, None)
    minus[axis] = slice(None, -2)
    return padded[tuple(plus)] - padded[tuple(minus)]


def diffusivity(coeff: np.ndarray, beta: float) -> np.ndarray:
    """g(s) = 1 / (1 + s/beta) for squared gradient magnitudes ``s``.

    beta == 0 is the degenerate limit: 1 where s == 0, else 0.
    """
    if beta == 0:
        return (coeff == 0).astype(np.float64)
    return 1.0 / (1.0 + coeff / beta)


def compute_flux(
    state: np.ndarray,
    flux: np.ndarray,
    beta: float,
    start: int,
    stop: int,
) -> None:
    """Write ``flux[:, start:stop]`` from a read-only ``state`` array."""
    padded = halo_slab(state, start, stop)
    coeff = np.zeros((stop - start,) + state.shape[1:], dtype=np.float64)
    for d in range(state.ndim):
        du = central_difference(padded, d)
        flux[d, start:stop] = du
        coeff += du * du
    flux[:, start:stop] *= diffusivity(coeff, beta)


def flux_divergence(
    flux: np.ndarray,
    out: np.ndarray,
    start: int,
    stop: int,
) -> None:
    """Write ``sum_d (flux_d(p + e_d) - flux_d(p - e_d))`` into ``out[start:stop]``."""
    acc = np.zeros((stop - start,) + out.shape[1:], dtype=np.float64)
    for d in range(flux.shape[0]):
        acc += central_difference(halo_slab(flux[d], start, stop), d)
    out[start:stop] = acc


def chunk_bounds(size: int, parts: int) -> List[Tuple[int, int]]:
    """Split ``range(size)`` into at most ``parts`` contiguous, non-empty ranges."""
    parts = max(1, min(int(parts), int(size)))
    base, extra = divmod(int(size), parts)
    bounds = []
    start = 0
    for k in range(parts):
        stop = start + base + (1 if k < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds
