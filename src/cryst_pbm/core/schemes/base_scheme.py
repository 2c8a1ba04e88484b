"""
Base Scheme for cryst-pbm.

Provides the contract shared by all population balance discretizations plus
the state and result containers that flow between the solver and a scheme.
Subclasses implement the scheme-specific local update rule.
"""

from __future__ import annotations

import logging
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import IntegrationError
from cryst_pbm.core.warnings import NumericalWarning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PBEState:
    """Snapshot of a run: time, distribution and solute concentration."""

    time: float
    distribution: Distribution
    concentration: float


@dataclass
class SolverOptions:
    """Integrator settings shared by all schemes.

    Attributes:
        method: ``scipy.integrate.solve_ivp`` method name
        rtol, atol: Integrator tolerances (atol applies to the scaled state)
        max_step: Largest internal step
        max_nfev: Budget of right-hand-side evaluations per ``advance`` call;
            exceeding it aborts the run
        negative_tolerance: Relative size of clamped negative densities above
            which a diagnostic is reported
        pivot_insertion_dt: Time between new nucleation pivots (moving pivot
            only); ``None`` splits the run into 100 insertion steps
    """

    method: str = "BDF"
    rtol: float = 1e-6
    atol: float = 1e-9
    max_step: float = np.inf
    max_nfev: int = 500_000
    negative_tolerance: float = 1e-6
    pivot_insertion_dt: Optional[float] = None

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, values: Optional[Dict[str, Any]]) -> "SolverOptions":
        return cls(**dict(values or {}))


@dataclass(frozen=True)
class RunResult:
    """Ordered trajectory produced by a solver run.

    ``times``, ``distributions``, ``concentrations`` and ``medium_mass`` are
    parallel sequences; element 0 is the initial condition.
    """

    times: np.ndarray
    distributions: Tuple[Distribution, ...]
    concentrations: np.ndarray
    medium_mass: np.ndarray
    scheme: str = ""
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        n = len(self.times)
        if not (len(self.distributions) == len(self.concentrations) == len(self.medium_mass) == n):
            raise ValueError("times, distributions, concentrations and medium_mass must have equal length")
        if n > 1 and np.any(np.diff(self.times) <= 0):
            raise ValueError("times must be strictly increasing")

    def __len__(self) -> int:
        return len(self.times)

    @property
    def final(self) -> PBEState:
        return PBEState(
            float(self.times[-1]),
            self.distributions[-1],
            float(self.concentrations[-1]),
        )


class PBEScheme(ABC):
    """Abstract base class for population balance discretizations.

    A scheme is selected once per run and advances a :class:`PBEState` to a
    target time with :meth:`advance`. The process model supplies the
    canonical rate laws and profiles:

    - ``growth(S, T, y) -> ndarray``, ``nucleation(S, T, m) -> float``
    - ``temperature(t)``, ``medium_mass(t)``, ``supersaturation(t, c)``
    - ``rhoc``, ``kv``

    Attributes:
        name: Canonical scheme identifier
        process: Process model with the canonical functions
        options: Integrator settings
        last_nfev: Right-hand-side evaluations of the last ``advance`` call
        last_min_density: Smallest raw density before clamping
    """

    name: ClassVar[str] = ""

    def __init__(self, process, options: Optional[SolverOptions] = None):
        self.process = process
        self.options = options or SolverOptions()
        self.last_nfev = 0
        self.last_min_density = 0.0
        self.clamp_events = 0

    @abstractmethod
    def advance(self, state: PBEState, target_time: float) -> PBEState:
        """Integrate from ``state`` to ``target_time`` and return the new state.

        Must be implemented by subclasses. The interval passed in never
        contains a profile breakpoint in its interior.
        """

    def prepare(self, state: PBEState, t_end: float) -> None:
        """Hook called once before the first ``advance`` of a run."""

    def _integrate(
        self,
        rhs: Callable[[float, np.ndarray], np.ndarray],
        t_span: Tuple[float, float],
        y0: np.ndarray,
        scale: Optional[np.ndarray] = None,
        jac_sparsity=None,
    ) -> np.ndarray:
        """Run ``solve_ivp`` over ``t_span`` and return the final state.

        ``scale`` holds a typical magnitude per state entry; the absolute
        tolerance is ``options.atol * scale``.

        Raises:
            IntegrationError: If the integrator fails or the evaluation
                budget is exhausted
        """
        budget = self.options.max_nfev
        count = [0]

        def counted(t, y):
            count[0] += 1
            if count[0] > budget:
                raise IntegrationError(
                    f"{self.name}: exceeded {budget} right-hand-side evaluations "
                    f"between t={t_span[0]:.6g} and t={t_span[1]:.6g}"
                )
            return rhs(t, y)

        atol = self.options.atol
        if scale is not None:
            atol = self.options.atol * np.maximum(np.asarray(scale, dtype=float), 1e-300)

        kwargs = {}
        if jac_sparsity is not None and self.options.method in ("BDF", "Radau"):
            kwargs["jac_sparsity"] = jac_sparsity

        sol = solve_ivp(
            counted,
            t_span,
            y0,
            method=self.options.method,
            t_eval=[t_span[1]],
            rtol=self.options.rtol,
            atol=atol,
            max_step=self.options.max_step,
            **kwargs,
        )
        self.last_nfev += count[0]
        if not sol.success:
            raise IntegrationError(
                f"{self.name}: integration failed between t={t_span[0]:.6g} "
                f"and t={t_span[1]:.6g}: {sol.message}"
            )
        return sol.y[:, -1]

    def _clamp(self, values: np.ndarray, time: float) -> np.ndarray:
        """Clamp densities to be non-negative and report large negatives."""
        values = np.asarray(values, dtype=float)
        if values.size == 0:
            self.last_min_density = 0.0
            return values
        self.last_min_density = float(values.min())
        if self.last_min_density >= 0.0:
            return values
        scale = float(np.abs(values).max())
        if -self.last_min_density > self.options.negative_tolerance * scale:
            self.clamp_events += 1
            message = (
                f"{self.name}: clamped negative density {self.last_min_density:.3e} "
                f"(max {scale:.3e}) at t={time:.6g}"
            )
            logger.warning(message)
            warnings.warn(message, NumericalWarning, stacklevel=3)
        return np.maximum(values, 0.0)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(method='{self.options.method}')"


__all__ = ['PBEState', 'SolverOptions', 'RunResult', 'PBEScheme']
