"""
Moments of particle size distributions.

The k-th moment of a number density F(y) is

    m_k = ∫ F(y) y^k dy

computed here with the trapezoidal rule on the distribution's own grid.
m_0 is the particle count per unit mass of medium, m_3 is proportional to
crystal volume (and mass), m_4/m_3 is the weight-averaged size.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.utils.helper_functions import trapezoid_weights


def moment_vector(
    grid: np.ndarray,
    density: np.ndarray,
    orders: Sequence[float] = (0, 1, 2, 3),
) -> np.ndarray:
    """Moments of an explicit (grid, density) pair for several orders."""
    grid = np.asarray(grid, dtype=float)
    weighted = trapezoid_weights(grid) * np.asarray(density, dtype=float)
    return np.array([np.dot(weighted, grid ** k) for k in orders])


def moment(distribution: Distribution, order: float) -> float:
    """Moment of given order of a single distribution.

    Returns ``nan`` when the distribution cannot be evaluated (e.g. explicit
    density with the wrong length; a warning has been issued by then).
    """
    values = distribution.value_at()
    if values is None:
        return float("nan")
    return float(moment_vector(distribution.grid, values, (order,))[0])


def moments(distributions: Iterable[Distribution], order: float) -> np.ndarray:
    """Moment of given order for each distribution of a trajectory."""
    return np.array([moment(d, order) for d in distributions], dtype=float)


def weight_average_size(distributions: Iterable[Distribution]) -> np.ndarray:
    """Weight-averaged characteristic size m4/m3 per time point."""
    dists = list(distributions)
    m3 = moments(dists, 3)
    m4 = moments(dists, 4)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(m3 > 0, m4 / m3, np.nan)


def mean_size(distributions: Iterable[Distribution]) -> np.ndarray:
    """Number-averaged size m1/m0 per time point."""
    dists = list(distributions)
    m0 = moments(dists, 0)
    m1 = moments(dists, 1)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(m0 > 0, m1 / m0, np.nan)


__all__ = [
    "moment_vector",
    "moment",
    "moments",
    "weight_average_size",
    "mean_size",
]
