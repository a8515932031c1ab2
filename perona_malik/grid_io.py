"""Loading, saving, converting and displaying grids.

These are the outer collaborators of the solver: they turn image files or
``.npy`` arrays into ``Grid`` objects and hand results back out.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

from perona_malik.grid import Grid

logger = logging.getLogger(__name__)

# Pillow modes that are already single-channel and kept at native depth.
_NATIVE_GRAY_MODES = ("L", "I;16", "I", "F")


def load_grid(path: str) -> Grid:
    """Load a grid from ``.npy`` or from any image format Pillow can open.

    Images are reduced to a single grayscale channel; the grid keeps the
    native sample type (uint8 for 8-bit grayscale).
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(path)

    if path.lower().endswith(".npy"):
        grid = Grid.from_array(np.load(path, allow_pickle=False), copy=False)
    else:
        with Image.open(path) as img:
            if img.mode not in _NATIVE_GRAY_MODES:
                img = img.convert("L")
            grid = Grid.from_array(np.array(img), copy=False)

    logger.info("Loaded %s: dimensions=%s dtype=%s", path, grid.dimensions, grid.dtype)
    return grid


def to_dtype(grid: Grid, dtype=np.uint8) -> Grid:
    """Convert a working-precision grid to ``dtype``.

    Integer targets are rounded (half to even) and clipped to the dtype's
    range; float targets are a plain cast. NaN or infinite values (a
    diverged run) cannot be represented in an integer dtype and raise
    ``ValueError``.
    """
    dtype = np.dtype(dtype)
    values = grid.array
    if dtype.kind in "iu":
        bad = int(np.count_nonzero(~np.isfinite(values)))
        if bad:
            raise ValueError(
                f"cannot convert {bad} non-finite value(s) to {dtype}; "
                "the run diverged, try a smaller alpha"
            )
        info = np.iinfo(dtype)
        values = np.clip(np.rint(values), info.min, info.max)
    elif dtype.kind == "b":
        values = values != 0
    return Grid(values.astype(dtype))


def save_grid(grid: Grid, path: str, dtype=np.uint8) -> None:
    """Write ``grid`` to ``.npy`` (values as-is) or to an image file.

    Image formats need a 2-D grid; values are converted with ``to_dtype``.
    """
    if path.lower().endswith(".npy"):
        np.save(path, grid.array)
    else:
        if grid.ndim != 2:
            raise ValueError(
                f"cannot write {grid.ndim}-D grid {grid.dimensions} as an image; use .npy"
            )
        Image.fromarray(to_dtype(grid, dtype).array).save(path)
    logger.info("Saved %s: dimensions=%s", path, grid.dimensions)


def show_comparison(
    before: Grid,
    after: Grid,
    path: Optional[str] = None,
    title: str = "Perona-Malik denoising",
) -> None:
    """Plot ``before`` next to ``after``; save to ``path`` or open a window."""
    if before.ndim == 1:
        fig = plt.figure(figsize=(8, 3.5))
        plt.plot(before.array, label="before", marker=".")
        plt.plot(after.array, label="after", marker=".")
        plt.xlabel("index")
        plt.ylabel("value")
        plt.legend(loc="upper right")
    elif before.ndim == 2:
        fig, axes = plt.subplots(1, 2, figsize=(10, 4.5))
        vmin = float(min(before.array.min(), after.array.min()))
        vmax = float(max(before.array.max(), after.array.max()))
        for ax, grid, label in zip(axes, (before, after), ("before", "after")):
            ax.imshow(grid.array, cmap="gray", vmin=vmin, vmax=vmax)
            ax.set_title(label)
            ax.axis("off")
    else:
        raise ValueError(f"can only display 1-D or 2-D grids, got {before.dimensions}")

    fig.suptitle(title)
    plt.tight_layout()
    if path is not None:
        plt.savefig(path, dpi=150)
        plt.close(fig)
    else:
        plt.show()
