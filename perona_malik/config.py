from __future__ import annotations

import math
import numbers
from dataclasses import dataclass


@dataclass(frozen=True)
class DiffusionConfig:
    """Explicit Perona-Malik scheme configuration.

    alpha and beta are scaled by the grid spacing (dt/h and lambda/h^2), so
    they are dimensionless in grid units.
    """
    alpha: float = 0.1      # explicit time-step coefficient dt/h
    beta: float = 0.1       # diffusivity scale lambda/h^2: g(s) = 1/(1 + s/beta)

    # Execution
    workers: int = 1        # threads per pass; results do not depend on it

    def __post_init__(self):
        for name in ("alpha", "beta"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ValueError(f"{name} must be a real number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be finite and >= 0, got {value!r}")
        if isinstance(self.workers, bool) or not isinstance(self.workers, numbers.Integral) or self.workers < 1:
            raise ValueError(f"workers must be a positive integer, got {self.workers!r}")

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------
    @classmethod
    def default(cls) -> "DiffusionConfig":
        return cls()

    @classmethod
    def edge_preserving(cls) -> "DiffusionConfig":
        """Small beta: strong edges keep g close to 0 and barely move."""
        return cls(alpha=0.1, beta=0.01)

    @classmethod
    def smoothing(cls) -> "DiffusionConfig":
        """Large beta: g stays near 1, close to linear (heat) diffusion."""
        return cls(alpha=0.1, beta=100.0)

    @classmethod
    def original_demo(cls) -> "DiffusionConfig":
        """Parameters used by the original grayscale-image demo."""
        return cls(alpha=1.0, beta=0.1)

    @classmethod
    def preset(cls, name: str) -> "DiffusionConfig":
        presets = {
            "default": cls.default,
            "edge_preserving": cls.edge_preserving,
            "smoothing": cls.smoothing,
            "original_demo": cls.original_demo,
        }
        try:
            return presets[name]()
        except KeyError:
            raise ValueError(
                f"unknown preset {name!r}; choose from {sorted(presets)}"
            ) from None

    def stable_alpha(self, ndim: int) -> float:
        """Largest alpha for which the linear (g == 1) scheme stays stable.

        The +/-1 central stencil applied twice couples cells two apart with
        weight 1, so each axis contributes a factor of 4 to the spectral
        radius: alpha * 4 * ndim <= 2.
        """
        return 0.5 / max(int(ndim), 1)
