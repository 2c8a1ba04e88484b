"""
Analytical Solutions for Crystallization Test Cases.

Exact solutions of the growth/nucleation population balance

    ∂F/∂t + ∂(G F)/∂y = 0,    G(y0) F(y0, t) = B

for kinetics that do not depend on supersaturation, so the distribution
decouples from the solute balance. Used to validate the discretization
schemes.

Cases:
1. Constant growth: G = G0
2. Affine size-dependent growth: G = a + b·y
3. Constant growth with constant nucleation at y0
"""

from typing import Callable, Union

import numpy as np

from cryst_pbm.core.utils.helper_functions import trapz


def growth_constant(
    F0: Callable[[np.ndarray], np.ndarray],
    y: np.ndarray,
    t: float,
    G: float,
) -> np.ndarray:
    """Analytical solution for constant growth.

    The initial distribution is translated without change of shape:

        F(y, t) = F0(y - G t)

    Args:
        F0: Initial density as a function of size
        y: Size values (1D array)
        t: Time
        G: Growth rate

    Returns:
        Number density F(y, t)

    Example:
        >>> from scipy.stats import norm
        >>> y = np.linspace(0, 500, 200)
        >>> F = growth_constant(lambda x: norm.pdf(x, 100, 20), y, 100.0, 1.0)
        >>> y[np.argmax(F)]  # peak moved to ~200
    """
    y = np.asarray(y, dtype=float)
    return np.asarray(F0(y - G * t), dtype=float)


def growth_linear(
    F0: Callable[[np.ndarray], np.ndarray],
    y: np.ndarray,
    t: float,
    a: float,
    b: float,
) -> np.ndarray:
    """Analytical solution for affine size-dependent growth G = a + b·y.

    Characteristics satisfy y + a/b = (y0 + a/b)·exp(b t), and the density
    along them decays as exp(-b t):

        F(y, t) = F0((y + a/b)·exp(-b t) - a/b) · exp(-b t)

    Falls back to :func:`growth_constant` for b = 0.

    Args:
        F0: Initial density as a function of size
        y: Size values (1D array)
        t: Time
        a: Size-independent growth part
        b: Growth increase per unit size
    """
    if b == 0:
        return growth_constant(F0, y, t, a)
    y = np.asarray(y, dtype=float)
    decay = np.exp(-b * t)
    origin = (y + a / b) * decay - a / b
    return np.asarray(F0(origin), dtype=float) * decay


def growth_nucleation_constant(
    F0: Callable[[np.ndarray], np.ndarray],
    y: np.ndarray,
    t: float,
    G: float,
    B: float,
    y0: float,
) -> np.ndarray:
    """Analytical solution for constant growth and constant nucleation at y0.

    Nuclei form a plateau of height B/G between y0 and the size reached by
    the first nuclei, y0 + G t, on top of the translated seeds:

        F(y, t) = F0(y - G t) + B/G · 1[y0 <= y < y0 + G t]

    Args:
        F0: Initial density as a function of size
        y: Size values (1D array)
        t: Time
        G: Growth rate (positive)
        B: Nucleation rate per unit medium mass
        y0: Nucleation size
    """
    y = np.asarray(y, dtype=float)
    plateau = ((y >= y0) & (y < y0 + G * t)).astype(float) * (B / G)
    return growth_constant(F0, y, t, G) + plateau


def get_analytical_solution(
    y: np.ndarray,
    t: Union[float, np.ndarray],
    case_type: str,
    F0: Callable[[np.ndarray], np.ndarray],
    **params,
) -> np.ndarray:
    """Get analytical solution for a specified crystallization case.

    Convenience function that dispatches to the case-specific function.

    Args:
        y: Size values (1D array)
        t: Time value, or an array of times (one row per time)
        case_type: 'growth_constant', 'growth_linear' or 'growth_nucleation'
        F0: Initial density as a function of size
        **params: Case parameters (G; a, b; G, B, y0)

    Returns:
        Number density F(y, t)

    Raises:
        ValueError: If case_type is not recognized

    Example:
        >>> F = get_analytical_solution(y, 50.0, 'growth_linear', F0, a=0.5, b=0.005)
    """
    case_functions = {
        'growth_constant': lambda tt: growth_constant(F0, y, tt, params['G']),
        'growth_linear': lambda tt: growth_linear(F0, y, tt, params['a'], params['b']),
        'growth_nucleation': lambda tt: growth_nucleation_constant(
            F0, y, tt, params['G'], params['B'], params['y0']
        ),
    }

    if case_type not in case_functions:
        raise ValueError(
            f"Unsupported case type: {case_type}. "
            f"Must be one of: {list(case_functions.keys())}"
        )

    if np.ndim(t) == 0:
        return case_functions[case_type](float(t))
    return np.array([case_functions[case_type](float(tt)) for tt in np.asarray(t)])


def relative_l1_error(y: np.ndarray, F: np.ndarray, F_exact: np.ndarray) -> float:
    """Relative L1 distance ∫|F - F_exact| dy / ∫|F_exact| dy."""
    norm = trapz(np.abs(F_exact), y)
    if norm <= 0:
        return float("nan")
    return trapz(np.abs(np.asarray(F) - np.asarray(F_exact)), y) / norm


def validate_distribution(
    y: np.ndarray,
    t: float,
    F: np.ndarray,
    case_type: str
) -> dict:
    """Check a distribution for basic physical constraints.

    Checks:
    - Non-negativity: F(y,t) >= 0 for all y
    - Smoothness: No NaN or Inf values
    - Total number is finite and positive

    Returns:
        Dictionary with validation results and diagnostics

    Example:
        >>> results = validate_distribution(y, 50.0, F, 'growth_constant')
        >>> if results['valid']:
        ...     print("Solution is physically valid")
    """
    results = {
        'valid': True,
        'case_type': case_type,
        'time': t,
        'errors': []
    }

    if np.any(F < 0):
        results['valid'] = False
        results['errors'].append('Negative values detected')

    if not np.all(np.isfinite(F)):
        results['valid'] = False
        results['errors'].append('Non-finite values (NaN or Inf) detected')

    total = trapz(F, y)
    if not np.isfinite(total) or total <= 0:
        results['valid'] = False
        results['errors'].append(f'Invalid total number: {total}')
    else:
        results['total_number'] = total
        peak_idx = int(np.argmax(F))
        results['peak_location'] = float(y[peak_idx])
        results['peak_value'] = float(F[peak_idx])

    return results


__all__ = [
    'growth_constant',
    'growth_linear',
    'growth_nucleation_constant',
    'get_analytical_solution',
    'relative_l1_error',
    'validate_distribution'
]
