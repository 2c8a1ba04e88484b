"""
Particle Size Distribution container.

A :class:`Distribution` pairs a size grid with a number density. The density
is either an explicit vector or a function of size that is evaluated lazily
on the grid, so the same type represents analytic and sampled distributions
and the grid of an analytic distribution can be changed without
re-specifying the density.
"""

from __future__ import annotations

import warnings
from typing import Callable, Optional, Sequence, Union

import numpy as np

from cryst_pbm.core.warnings import SizeMismatchWarning

DensitySpec = Union[Callable[[np.ndarray], np.ndarray], Sequence[float], np.ndarray]


def _validate_grid(grid) -> np.ndarray:
    arr = np.asarray(grid, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError("grid must be a non-empty 1D vector")
    if not np.all(np.isfinite(arr)):
        raise ValueError("grid must contain finite values")
    if np.any(np.diff(arr) <= 0):
        raise ValueError("grid must be strictly increasing")
    arr.setflags(write=False)
    return arr


class Distribution:
    """Number density over a strictly increasing size grid.

    Args:
        grid: Size coordinates (1D, strictly increasing)
        density: Explicit non-negative vector or a callable ``size -> density``

    Raises:
        ValueError: If the grid is invalid or the density is neither callable
            nor a 1D non-negative vector

    Example:
        >>> from scipy.stats import norm
        >>> dist = Distribution(np.linspace(0, 2, 50), lambda y: norm.pdf(y, 1, 0.1))
        >>> dist.value_at().shape
        (50,)
        >>> Distribution([0.0, 1.0, 2.0], [0.0, 1.0]).value_at()  # warns, None
    """

    __slots__ = ("_grid", "_density")

    def __init__(
        self,
        grid: Union[Sequence[float], np.ndarray] = None,
        density: Optional[DensitySpec] = None,
    ):
        if grid is None:
            grid = np.linspace(0.0, 1.0, 20)
        self._grid = _validate_grid(grid)

        if density is None or callable(density):
            self._density = density
        else:
            values = np.array(density, dtype=float)
            if values.ndim != 1:
                raise ValueError("density has to be a function or a 1D vector")
            if np.any(values < 0) or not np.all(np.isfinite(values)):
                raise ValueError("density values must be finite and non-negative")
            values.setflags(write=False)
            self._density = values

    @property
    def grid(self) -> np.ndarray:
        return self._grid

    @property
    def density(self) -> Optional[DensitySpec]:
        """Raw density specification (callable or explicit vector)."""
        return self._density

    @property
    def is_analytic(self) -> bool:
        return callable(self._density)

    def value_at(self, grid: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        """Return the density evaluated on ``grid`` (default: own grid).

        An explicit density is returned as-is when its length matches the
        grid. On a mismatch a :class:`SizeMismatchWarning` is issued and
        ``None`` is returned; the vector is never truncated or padded.
        """
        target = self._grid if grid is None else np.asarray(grid, dtype=float)

        if self._density is None:
            return None

        if callable(self._density):
            values = np.asarray(self._density(target), dtype=float)
            if values.ndim == 0:
                values = np.full(target.shape, float(values))
            return values

        if self._density.shape != target.shape:
            warnings.warn(
                f"density has {self._density.size} values but the grid has "
                f"{target.size} points",
                SizeMismatchWarning,
                stacklevel=2,
            )
            return None
        return np.array(self._density)

    @property
    def density_values(self) -> Optional[np.ndarray]:
        return self.value_at()

    def with_grid(self, grid: Union[Sequence[float], np.ndarray]) -> "Distribution":
        """New distribution with the same density specification on ``grid``."""
        return Distribution(grid, self._density)

    def with_density(self, density: DensitySpec) -> "Distribution":
        return Distribution(self._grid, density)

    def __len__(self) -> int:
        return self._grid.size

    def __repr__(self) -> str:
        kind = "function" if self.is_analytic else "vector"
        return (
            f"Distribution(n={self._grid.size}, "
            f"range=[{self._grid[0]:.4g}, {self._grid[-1]:.4g}], density={kind})"
        )


__all__ = ["Distribution"]
