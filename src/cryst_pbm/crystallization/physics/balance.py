"""
Process model and mass balance for crystallization runs.

The :class:`ProcessModel` bundles the canonical kinetics and operating
profiles a scheme needs, and derives the quantities that depend on the
antisolvent addition:

    M(t)  = M0 + AS(t) - AS(t0)        total medium mass
    xm(t) = AS(t) / M(t)               antisolvent mass fraction
    S     = c / cs(T(t), xm(t))        supersaturation

:func:`mass_balance_error` reports the relative deviation (in percent) of
total solute plus crystal mass from its initial value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.moments import moments
from cryst_pbm.crystallization.physics.profiles import ProfileEvaluator


@dataclass
class ProcessModel:
    """Canonical kinetics, profiles and physical constants of one run.

    Attributes:
        growth: ``G(S, T, y) -> ndarray``
        nucleation: ``B(S, T, m) -> float``
        solubility: ``cs(T, xm) -> float``
        temperature: Temperature profile
        antisolvent: Cumulative antisolvent mass profile (g)
        init_massmedium: Medium mass M0 at ``t0`` (g)
        rhoc: Crystal density (g/µm³)
        kv: Volume shape factor
        t0: Start time of the run
    """

    growth: Callable
    nucleation: Callable
    solubility: Callable
    temperature: ProfileEvaluator
    antisolvent: ProfileEvaluator
    init_massmedium: float = 1.0
    rhoc: float = 1e-12
    kv: float = 1.0
    t0: float = 0.0

    def medium_mass(self, t):
        return self.init_massmedium + self.antisolvent(t) - self.antisolvent(self.t0)

    def antisolvent_fraction(self, t):
        mass = np.asarray(self.medium_mass(t), dtype=float)
        added = np.asarray(self.antisolvent(t), dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            frac = np.where(mass > 0, added / mass, 0.0)
        return float(frac) if frac.ndim == 0 else frac

    def solubility_at(self, t) -> float:
        return self.solubility(self.temperature(t), self.antisolvent_fraction(t))

    def supersaturation(self, t: float, concentration: float) -> float:
        """S = c / cs; infinite when the solubility vanishes."""
        cs = self.solubility_at(t)
        if cs <= 0:
            return np.inf if concentration > 0 else 1.0
        return concentration / cs

    def growth_at(self, t: float, concentration: float, sizes: np.ndarray) -> np.ndarray:
        S = self.supersaturation(t, concentration)
        return self.growth(S, self.temperature(t), sizes)

    def nucleation_at(self, t: float, concentration: float, mom: Sequence[float]) -> float:
        """Nucleation rate per unit medium mass, clamped non-negative."""
        S = self.supersaturation(t, concentration)
        return max(float(self.nucleation(S, self.temperature(t), mom)), 0.0)

    def crystal_mass_factor(self) -> float:
        return self.rhoc * self.kv


def crystal_mass(
    distributions: Sequence[Distribution],
    medium_mass,
    rhoc: float,
    kv: float,
) -> np.ndarray:
    """Total crystal mass rhoc·kv·M·m3 per time point."""
    m3 = moments(distributions, 3)
    return rhoc * kv * np.asarray(medium_mass, dtype=float) * m3


def mass_balance_error(
    concentrations,
    distributions: Sequence[Distribution],
    medium_mass,
    rhoc: float,
    kv: float,
) -> np.ndarray:
    """Percent deviation of total (solute + crystal) mass from its initial value.

    Args:
        concentrations: Solute concentration per time point (g/g medium)
        distributions: Distribution per time point
        medium_mass: Medium mass per time point (g)
        rhoc: Crystal density
        kv: Volume shape factor

    Returns:
        ``100 * (total / total[0] - 1)``; all zeros when there is no mass
        at the start. Never raises on deviation.

    Example:
        >>> err = mass_balance_error(result.concentrations, result.distributions,
        ...                          result.medium_mass, rhoc=1e-12, kv=0.5)
        >>> abs(err).max() < 1.0
    """
    medium_mass = np.asarray(medium_mass, dtype=float)
    solute = np.asarray(concentrations, dtype=float) * medium_mass
    total = solute + crystal_mass(distributions, medium_mass, rhoc, kv)
    if total.size == 0 or total[0] == 0:
        return np.zeros_like(total)
    return 100.0 * (total / total[0] - 1.0)


__all__ = [
    'ProcessModel',
    'crystal_mass',
    'mass_balance_error',
]
