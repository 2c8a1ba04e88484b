"""
Moving pivot scheme.

Instead of transporting density across a fixed grid, every pivot x_j moves
with the growth rate and carries a particle count N_j:

    dx_j/dt = G(S, T, x_j)
    dN_j/dt = B·M  for the nucleation pivot, 0 otherwise
    dm_s/dt = -ρc·kv · (Σ 3 N_j x_j² G_j + B·M·x_nuc³)

which removes numerical diffusion entirely. Each integration interval is
split into insertion sub-steps; at the start of every sub-step a fresh pivot
is placed at the nucleation coordinate (the smallest initial grid point) to
collect new nuclei. Between sub-steps

- inserted pivots that collected no particles are dropped,
- pivots that dissolved below the nucleation coordinate are removed and
  their mass returned to solution,
- pivots that crossed are merged conserving number and mass.

Snapshots report the density F_j = N_j / (M · w_j) on the pivot grid, with w_j
the trapezoid weights of the pivots, so moments of the snapshot equal the
pivot sums Σ N_j x_j^k / M.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np
from scipy.sparse import csc_matrix

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.schemes.base_scheme import PBEScheme, PBEState, SolverOptions
from cryst_pbm.core.utils.helper_functions import trapezoid_weights

logger = logging.getLogger(__name__)


class MovingPivotScheme(PBEScheme):
    """Lagrangian scheme with pivot insertion for nucleation."""

    name = "moving-pivot"

    def __init__(self, process, options: Optional[SolverOptions] = None):
        super().__init__(process, options)
        self.nucleation_size = None
        self.insertion_dt = None
        self.merge_count = 0
        self.removed_count = 0
        self._tol = 0.0

    def prepare(self, state: PBEState, t_end: float) -> None:
        grid = np.asarray(state.distribution.grid, dtype=float)
        if grid.size < 2:
            raise ConfigurationError(f"{self.name} needs at least two grid points")

        self.nucleation_size = float(grid[0])
        self._tol = 1e-6 * float(np.diff(grid).min())

        span = float(t_end) - float(state.time)
        dt = self.options.pivot_insertion_dt
        if dt is None or dt <= 0:
            dt = span / 100.0 if span > 0 else 1.0
        self.insertion_dt = dt
        logger.debug(
            "%s: %d pivots, nucleation at %.4g, insertion step %.4g",
            self.name, grid.size, self.nucleation_size, dt,
        )

    # ------------------------------------------------------------------
    # Sub-step integration
    # ------------------------------------------------------------------

    def _rhs(self, nuc_idx: int):
        process = self.process
        factor = process.crystal_mass_factor()

        def rhs(t, z):
            P = (z.size - 1) // 2
            x = z[:P]
            N = z[P:2 * P]
            M = process.medium_mass(t)
            c = z[-1] / M

            mom = np.array([np.dot(N, x ** k) for k in range(4)]) / M
            B = process.nucleation_at(t, c, mom)
            G = np.asarray(process.growth_at(t, c, x), dtype=float)

            dN = np.zeros(P)
            dN[nuc_idx] = B * M
            dms = -factor * (np.dot(3.0 * N * x ** 2, G) + B * M * x[nuc_idx] ** 3)
            return np.concatenate([G, dN, [dms]])

        return rhs

    @staticmethod
    def _jacobian_sparsity(P: int, nuc_idx: int) -> csc_matrix:
        pattern = np.zeros((2 * P + 1, 2 * P + 1), dtype=bool)
        idx = np.arange(P)
        pattern[idx, idx] = True       # growth at each pivot
        pattern[:P, -1] = True         # through the supersaturation
        pattern[P + nuc_idx, :] = True  # nucleation depends on all moments
        pattern[-1, :] = True
        return csc_matrix(pattern)

    def _substep(
        self,
        x: np.ndarray,
        N: np.ndarray,
        ms: float,
        t0: float,
        t1: float,
        nuc_idx: int,
    ) -> Tuple[np.ndarray, np.ndarray, float]:
        P = x.size
        scale = np.concatenate([
            np.full(P, float(np.abs(x).max()) or 1.0),
            np.full(P, float(N.max()) or 1.0),
            [abs(ms) or 1.0],
        ])
        z = self._integrate(
            self._rhs(nuc_idx),
            (t0, t1),
            np.concatenate([x, N, [ms]]),
            scale=scale,
            jac_sparsity=self._jacobian_sparsity(P, nuc_idx),
        )
        return z[:P], np.maximum(z[P:2 * P], 0.0), float(z[-1])

    # ------------------------------------------------------------------
    # Pivot bookkeeping
    # ------------------------------------------------------------------

    def _remove_dissolved(self, x, N, ms):
        dissolved = x < self.nucleation_size - self._tol
        if not np.any(dissolved):
            return x, N, ms
        ms += self.process.crystal_mass_factor() * float(np.dot(N[dissolved], x[dissolved] ** 3))
        self.removed_count += int(dissolved.sum())
        return x[~dissolved], N[~dissolved], ms

    def _merge_crossed(self, x, N):
        x = list(x)
        N = list(N)
        j = 0
        while j < len(x) - 1:
            if x[j + 1] - x[j] > self._tol:
                j += 1
                continue
            total = N[j] + N[j + 1]
            if total > 0:
                merged = np.cbrt((N[j] * x[j] ** 3 + N[j + 1] * x[j + 1] ** 3) / total)
            else:
                merged = 0.5 * (x[j] + x[j + 1])
            x[j:j + 2] = [merged]
            N[j:j + 2] = [total]
            self.merge_count += 1
            if j > 0:
                j -= 1
        return np.array(x, dtype=float), np.array(N, dtype=float)

    def _ensure_two(self, x, N):
        """Pad with empty pivots so trapezoid weights stay defined."""
        if x.size >= 2:
            return x, N
        step = max(self._tol * 1e3, 1e-12)
        if x.size == 0:
            return (
                np.array([self.nucleation_size, self.nucleation_size + step]),
                np.zeros(2),
            )
        return np.append(x, x[-1] + max(step, 1e-6 * abs(x[-1]))), np.append(N, 0.0)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def advance(self, state: PBEState, target_time: float) -> PBEState:
        if self.nucleation_size is None:
            self.prepare(state, target_time)

        t = float(state.time)
        target_time = float(target_time)
        x = np.array(state.distribution.grid, dtype=float)
        M = self.process.medium_mass(t)
        N = M * state.distribution.value_at() * trapezoid_weights(x)
        ms = state.concentration * M

        while t < target_time:
            t_next = min(t + self.insertion_dt, target_time)
            if target_time - t_next < 1e-9 * self.insertion_dt:
                t_next = target_time

            inserted = x[0] > self.nucleation_size + self._tol
            if inserted:
                x = np.insert(x, 0, self.nucleation_size)
                N = np.insert(N, 0, 0.0)

            x, N, ms = self._substep(x, N, ms, t, t_next, nuc_idx=0)

            if inserted and N[0] <= 0.0:
                x, N = x[1:], N[1:]
            x, N, ms = self._remove_dissolved(x, N, ms)
            x, N = self._merge_crossed(x, N)
            x, N = self._ensure_two(x, N)
            t = t_next

        M1 = self.process.medium_mass(target_time)
        density = self._clamp(N / (M1 * trapezoid_weights(x)), target_time)
        logger.debug("%s: %d pivots at t=%.6g", self.name, x.size, target_time)
        return PBEState(target_time, Distribution(x, density), float(ms / M1))


__all__ = ['MovingPivotScheme']
