"""
Helper Functions for cryst-pbm.

General-purpose numerical utilities shared by the moment engine, the
discretization schemes and the plotting helpers.
"""

from typing import Union
import numpy as np


def trapezoid_weights(x: Union[np.ndarray, list]) -> np.ndarray:
    """Quadrature weights of the trapezoidal rule on a (non-uniform) grid.

    For grid points x_0 < ... < x_N the rule reads
    ∫ y(x) dx ≈ Σ w_i * y_i with
    w_0 = (x_1 - x_0)/2, w_i = (x_{i+1} - x_{i-1})/2, w_N = (x_N - x_{N-1})/2

    The weights double as control-volume widths for the fixed-grid schemes,
    which is what makes the discrete mass balance exact.

    Args:
        x: Grid points (1D, increasing)

    Returns:
        Array of weights with the same length as x

    Note:
        If x has fewer than 2 points, all weights are 0.0

    Example:
        >>> trapezoid_weights([0.0, 1.0, 3.0])
        array([0.5, 1.5, 1. ])
    """
    x = np.asarray(x, dtype=float)
    w = np.zeros_like(x)
    if x.size < 2:
        return w
    dx = np.diff(x)
    w[:-1] += 0.5 * dx
    w[1:] += 0.5 * dx
    return w


def trapz(y: Union[np.ndarray, list], x: Union[np.ndarray, list]) -> float:
    """Trapezoidal integration of y over x.

    Computes the definite integral using the trapezoidal rule:
    ∫ y(x) dx ≈ Σ 0.5 * (y[i] + y[i+1]) * (x[i+1] - x[i])

    Args:
        y: Function values at grid points (1D array)
        x: Grid points (1D array, same length as y)

    Returns:
        Integral value as float

    Note:
        If x has fewer than 2 points, returns 0.0

    Example:
        >>> trapz([0.0, 1.0, 2.0], [0.0, 1.0, 2.0])
        2.0
    """
    return float(np.dot(trapezoid_weights(x), np.asarray(y, dtype=float)))


def tail_trapz(g: np.ndarray, grid: np.ndarray) -> np.ndarray:
    """Compute tail integral from each point to the grid end.

    For a grid of points, computes the integral from each point y_i to the
    largest size:
    TI[i] = ∫_{y_i}^{y_max} g(y) dy

    Divided by the total, this is the cumulative oversize fraction of a size
    distribution.

    Args:
        g: Function values on grid (can be batched: [batch, n_points])
        grid: Size grid points (1D array)

    Returns:
        Tail integrals at each grid point (same shape as g)

    Example:
        >>> grid = np.array([1.0, 2.0, 3.0, 4.0])
        >>> tail_trapz(np.ones(4), grid)
        array([3., 2., 1., 0.])
    """
    g = np.asarray(g, dtype=float)
    grid = np.asarray(grid, dtype=float)

    # Segment contributions
    seg = 0.5 * (g[..., :-1] + g[..., 1:]) * np.diff(grid)

    # Reverse cumulative sum to get tail integrals
    rev_cum = np.flip(np.cumsum(np.flip(seg, axis=-1), axis=-1), axis=-1)

    # Append zero for the last point (no tail)
    return np.concatenate([rev_cum, np.zeros_like(g[..., :1])], axis=-1)


def delta_peak(
    x_grid: Union[np.ndarray, list],
    center: float,
    area: float,
    width_fraction: float = 0.01
) -> np.ndarray:
    """Approximate a delta function as a narrow Gaussian peak.

    Creates a smooth approximation of δ(x - center) with specified area,
    used for near-monodisperse seed populations.

    Args:
        x_grid: Grid points where to evaluate the peak
        center: Center location of the delta peak
        area: Total area under the peak (integral)
        width_fraction: Peak width as fraction of center (default: 0.01 = 1%)

    Returns:
        Array of peak values at each grid point

    Note:
        - Uses Gaussian: A * exp(-0.5 * ((x - center) / width)^2)
        - Height A is chosen to give specified area
        - Minimum width is ensured for numerical stability

    Example:
        >>> x = np.linspace(0, 200, 401)
        >>> peak = delta_peak(x, center=100.0, area=1.0, width_fraction=0.05)
        >>> trapz(peak, x)  # close to 1.0
    """
    x_grid_np = np.asarray(x_grid, dtype=float)

    width = center * width_fraction

    if width < 1e-9:
        positive_x = x_grid_np[x_grid_np > 0]
        if len(positive_x) > 0:
            width = np.min(positive_x) * width_fraction
        else:
            width = 1e-9

    # For Gaussian: area = height * width * sqrt(2*pi)
    height = area / (width * np.sqrt(2 * np.pi) + 1e-30)

    return height * np.exp(-0.5 * ((x_grid_np - center) / width) ** 2)


__all__ = [
    'trapezoid_weights',
    'trapz',
    'tail_trapz',
    'delta_peak',
]
