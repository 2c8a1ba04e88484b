"""
Fixed-grid finite volume base for the population balance.

The grid points are cell centres; cell widths are the trapezoid weights of
the grid, so the crystal mass the scheme conserves is exactly the trapezoid
third moment used by the mass balance diagnostic.

State vector: ``[n_0, ..., n_{P-1}, m_s]`` with ``n = M(t)·F`` the particle
count density in the whole crystallizer and ``m_s = c·M(t)`` the solute mass.
Keeping totals makes antisolvent dilution implicit in ``M(t)``.

    dn_i/dt  = (Φ_{i-1/2} - Φ_{i+1/2}) / w_i
    Φ_{-1/2} = B·M + min(G(y_0), 0)·n_0        nucleation / dissolution outflow
    Φ_{P-1/2} = 0                              closed upper boundary
    dm_s/dt  = -ρc·kv · Σ w_i y_i³ dn_i/dt

Subclasses provide the interior face fluxes :meth:`face_flux`.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Optional

import numpy as np
from scipy.sparse import csc_matrix

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.schemes.base_scheme import PBEScheme, PBEState, SolverOptions
from cryst_pbm.core.utils.helper_functions import trapezoid_weights

logger = logging.getLogger(__name__)


class FixedGridScheme(PBEScheme):
    """Finite volume scheme on the grid of the initial distribution."""

    def __init__(self, process, options: Optional[SolverOptions] = None):
        super().__init__(process, options)
        self.grid = None
        self.widths = None
        self._sizes = None
        self._powers = None
        self._mass_weights = None
        self._sparsity = None

    def prepare(self, state: PBEState, t_end: float) -> None:
        grid = np.asarray(state.distribution.grid, dtype=float)
        if grid.size < 2:
            raise ConfigurationError(f"{self.name} needs at least two grid points")

        self.grid = grid
        self.widths = trapezoid_weights(grid)
        # growth is evaluated at the first cell centre and at every interior face
        self._sizes = np.concatenate([grid[:1], 0.5 * (grid[:-1] + grid[1:])])
        self._powers = np.vstack([grid ** k for k in range(4)]) * self.widths
        self._mass_weights = self.widths * grid ** 3
        self._sparsity = self._jacobian_sparsity(grid.size)
        logger.debug("%s: %d cells on [%.4g, %.4g]", self.name, grid.size, grid[0], grid[-1])

    @staticmethod
    def _jacobian_sparsity(P: int) -> csc_matrix:
        pattern = np.zeros((P + 1, P + 1), dtype=bool)
        idx = np.arange(P)
        for offset in range(-2, 3):
            rows = idx[(idx + offset >= 0) & (idx + offset < P)]
            pattern[rows, rows + offset] = True
        pattern[0, :] = True   # nucleation depends on all moments
        pattern[:, -1] = True  # every rate depends on the concentration
        pattern[-1, :] = True
        return csc_matrix(pattern)

    @abstractmethod
    def face_flux(self, n: np.ndarray, g_face: np.ndarray) -> np.ndarray:
        """Fluxes through the P-1 interior faces."""

    def rhs(self, t: float, z: np.ndarray) -> np.ndarray:
        process = self.process
        n = z[:-1]
        M = process.medium_mass(t)
        c = z[-1] / M

        mom = self._powers @ n / M
        B = process.nucleation_at(t, c, mom)
        G = np.asarray(process.growth_at(t, c, self._sizes), dtype=float)

        flux = np.empty(n.size + 1)
        flux[0] = B * M + min(G[0], 0.0) * n[0]
        flux[1:-1] = self.face_flux(n, G[1:])
        flux[-1] = 0.0

        dn = (flux[:-1] - flux[1:]) / self.widths
        dms = -process.crystal_mass_factor() * np.dot(self._mass_weights, dn)
        return np.append(dn, dms)

    def advance(self, state: PBEState, target_time: float) -> PBEState:
        if self.grid is None:
            self.prepare(state, target_time)

        t0 = float(state.time)
        M0 = self.process.medium_mass(t0)
        n0 = M0 * state.distribution.value_at(self.grid)
        ms0 = state.concentration * M0

        n_scale = float(np.abs(n0).max()) or 1.0
        ms_scale = abs(ms0) or 1.0
        scale = np.append(np.full(n0.size, n_scale), ms_scale)

        z = self._integrate(
            self.rhs,
            (t0, float(target_time)),
            np.append(n0, ms0),
            scale=scale,
            jac_sparsity=self._sparsity,
        )

        M1 = self.process.medium_mass(target_time)
        n1 = self._clamp(z[:-1], target_time)
        return PBEState(
            float(target_time),
            Distribution(self.grid, n1 / M1),
            float(z[-1] / M1),
        )


__all__ = ['FixedGridScheme']
