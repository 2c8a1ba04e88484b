"""
Crystallizer run configuration.

:class:`Crystallizer` gathers everything needed to simulate one
crystallization experiment: the initial distribution and concentration,
kinetics, operating profiles, physical constants and solver settings.
Every property is validated on assignment; an invalid value issues a
:class:`~cryst_pbm.core.warnings.ValidationWarning` and the previous value
is kept. Only an unknown scheme name is fatal.

Example:
    >>> cryst = Crystallizer(init_conc=1.2)
    >>> cryst.growth_rate = lambda S, y: 1e-1 * (S - 1) * (1 + 0.01 * y)
    >>> cryst.nucleation_rate = "1e3 * (S - 1)**2"
    >>> cryst.temperature_profile = [[0, 50, 100], [40, 25, 25]]
    >>> result = cryst.solve()
    >>> abs(cryst.massbal()).max() < 1.0
    True
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.moments import moment
from cryst_pbm.core.schemes.base_scheme import RunResult, SolverOptions
from cryst_pbm.core.warnings import RateShapeWarning, ValidationWarning
from cryst_pbm.crystallization.physics.balance import ProcessModel, mass_balance_error
from cryst_pbm.crystallization.physics.profiles import build_profile
from cryst_pbm.crystallization.physics.rates import (
    Adapted,
    adapt_growth_rate,
    adapt_nucleation_rate,
    adapt_solubility,
)
from cryst_pbm.crystallization.schemes import DEFAULT_SCHEME, canonical_scheme_name
from cryst_pbm.crystallization.solver import solve as solve_pbe

logger = logging.getLogger(__name__)

Hook = Callable[["Crystallizer", str], None]


class _ValidatedField:
    """Descriptor routing assignments through ``Crystallizer._assign``."""

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return obj._values.get(self.name)

    def __set__(self, obj, value):
        obj._assign(self.name, value)


def _finite_scalar(value) -> Optional[float]:
    if isinstance(value, (bool, np.bool_, str)) or not np.isscalar(value):
        if not (isinstance(value, np.ndarray) and value.size == 1):
            return None
    try:
        value = float(np.asarray(value).reshape(-1)[0])
    except (TypeError, ValueError):
        return None
    return value if np.isfinite(value) else None


def _frozen_spec(value):
    if isinstance(value, (list, tuple, np.ndarray)):
        return np.array(value, dtype=float)
    return value


def _extend_profiles(cryst: "Crystallizer", name: str) -> None:
    """Rebuild table profiles so their flat extension ends at the new final time."""
    if name != "sol_time":
        return
    for field in cryst._PROFILE_FIELDS:
        spec = cryst._profile_specs.get(field)
        if spec is None:
            continue
        rebuilt = getattr(cryst, f"_validate_{field}")(spec)
        if rebuilt.ok:
            cryst._values[field] = rebuilt.value


class Crystallizer:
    """Validated configuration and results of one crystallization run.

    Attributes:
        init_dist: Initial :class:`Distribution` (number per µm per g medium)
        init_conc: Initial concentration (g/g) or ``'sat'``
        solubility: Solubility law, adapted to ``cs(T, xm)``
        temperature_profile: Temperature profile
        antisolvent_profile: Cumulative antisolvent mass profile (non-decreasing)
        growth_rate: Growth law, adapted to ``G(S, T, y)``
        nucleation_rate: Nucleation law, adapted to ``B(S, T, m)``
        init_seed: Seed mass (g); the initial distribution is scaled to it,
            ``None`` keeps the distribution as given
        init_massmedium: Initial medium mass (g)
        sol_time: Strictly increasing output times
        rhoc: Crystal density (g/µm³)
        kv: Volume shape factor
        sol_method: Canonical scheme name
        sol_options: :class:`SolverOptions`
        result: :class:`RunResult` of the last :meth:`solve`, or None
    """

    init_dist = _ValidatedField()
    init_conc = _ValidatedField()
    solubility = _ValidatedField()
    temperature_profile = _ValidatedField()
    antisolvent_profile = _ValidatedField()
    growth_rate = _ValidatedField()
    nucleation_rate = _ValidatedField()
    init_seed = _ValidatedField()
    init_massmedium = _ValidatedField()
    sol_time = _ValidatedField()
    rhoc = _ValidatedField()
    kv = _ValidatedField()
    sol_method = _ValidatedField()
    sol_options = _ValidatedField()

    _RATE_FIELDS = ("growth_rate", "nucleation_rate", "solubility")
    _PROFILE_FIELDS = ("temperature_profile", "antisolvent_profile")

    def __init__(self, defaults: bool = True, **properties):
        self._values: Dict[str, Any] = {}
        self._hooks: List[Hook] = [_extend_profiles]
        self._profile_specs: Dict[str, Any] = {}
        self.result: Optional[RunResult] = None
        if defaults:
            self.set_defaults()
        for name, value in properties.items():
            if not isinstance(getattr(type(self), name, None), _ValidatedField):
                raise AttributeError(f"Crystallizer has no property '{name}'")
            setattr(self, name, value)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def add_hook(self, hook: Hook) -> None:
        """Register ``hook(crystallizer, name)``, called after every accepted assignment."""
        self._hooks.append(hook)

    def _assign(self, name: str, value) -> None:
        result: Adapted = getattr(self, f"_validate_{name}")(value)
        if not result.ok:
            logger.warning("Rejected %s: %s", name, result.error)
            warnings.warn(f"{name}: {result.error}", ValidationWarning, stacklevel=3)
            return
        category = RateShapeWarning if name in self._RATE_FIELDS else ValidationWarning
        for remark in result.warnings:
            warnings.warn(f"{name}: {remark}", category, stacklevel=3)

        self._values[name] = result.value
        if name in self._PROFILE_FIELDS:
            self._profile_specs[name] = _frozen_spec(value)
        for hook in self._hooks:
            hook(self, name)

    def _validate_init_dist(self, value) -> Adapted:
        if isinstance(value, Distribution):
            return Adapted(value=value, kind="distribution")
        return Adapted(error="the initial distribution must be a Distribution object")

    def _validate_init_conc(self, value) -> Adapted:
        if isinstance(value, str) and value.lower() == "sat":
            return Adapted(value="sat", kind="saturated")
        conc = _finite_scalar(value)
        if conc is None or conc < 0:
            return Adapted(error="must be a non-negative, finite scalar or the string 'sat'")
        return Adapted(value=conc, kind="value")

    def _validate_solubility(self, value) -> Adapted:
        return adapt_solubility(value)

    def _validate_growth_rate(self, value) -> Adapted:
        return adapt_growth_rate(value)

    def _validate_nucleation_rate(self, value) -> Adapted:
        return adapt_nucleation_rate(value)

    def _profile_end(self) -> Optional[float]:
        times = self._values.get("sol_time")
        return None if times is None else float(times[-1])

    def _validate_temperature_profile(self, value) -> Adapted:
        return build_profile(value, t_final=self._profile_end(), name="temperature profile")

    def _validate_antisolvent_profile(self, value) -> Adapted:
        return build_profile(
            value, t_final=self._profile_end(), monotonic=True, name="antisolvent profile"
        )

    def _validate_init_seed(self, value) -> Adapted:
        if value is None:
            return Adapted(value=None, kind="unscaled")
        seed = _finite_scalar(value)
        if seed is None or seed < 0:
            return Adapted(error="must be a non-negative, finite scalar")
        return Adapted(value=seed, kind="mass")

    def _validate_init_massmedium(self, value) -> Adapted:
        mass = _finite_scalar(value)
        if mass is None or mass < 0:
            return Adapted(error="must be a non-negative, finite scalar")
        return Adapted(value=mass)

    def _validate_sol_time(self, value) -> Adapted:
        scalar = _finite_scalar(value)
        if scalar is not None:
            if scalar <= 0:
                return Adapted(error="a scalar end time must be positive")
            return Adapted(value=np.array([0.0, scalar]), kind="span")
        try:
            times = np.asarray(value, dtype=float)
        except (TypeError, ValueError):
            return Adapted(error="must be a vector of increasing times")
        if times.ndim != 1 or times.size < 2:
            return Adapted(error="must be a scalar or a vector of at least two times")
        if not np.all(np.isfinite(times)) or np.any(times < 0) or np.any(np.diff(times) <= 0):
            return Adapted(error="must be a vector of finite, non-negative, strictly increasing times")
        return Adapted(value=times, kind="vector")

    def _validate_rhoc(self, value) -> Adapted:
        rhoc = _finite_scalar(value)
        if rhoc is None or rhoc <= 0:
            return Adapted(error="the crystal density must be a positive scalar")
        return Adapted(value=rhoc)

    def _validate_kv(self, value) -> Adapted:
        kv = _finite_scalar(value)
        if kv is None or kv <= 0:
            return Adapted(error="the shape factor must be a positive scalar")
        return Adapted(value=kv)

    def _validate_sol_method(self, value) -> Adapted:
        if value is None or (isinstance(value, str) and not value.strip()):
            return Adapted(
                value=DEFAULT_SCHEME,
                warnings=[f"no scheme given, using the default ({DEFAULT_SCHEME})"],
            )
        if not isinstance(value, str):
            return Adapted(error="the solution method must be a string")
        # unknown names raise ConfigurationError
        return Adapted(value=canonical_scheme_name(value))

    def _validate_sol_options(self, value) -> Adapted:
        if value is None:
            return Adapted(value=SolverOptions())
        if isinstance(value, SolverOptions):
            return Adapted(value=value)
        if not isinstance(value, Mapping):
            return Adapted(error="must be a SolverOptions instance or a mapping of its fields")
        unknown = set(value) - set(SolverOptions.field_names())
        if unknown:
            return Adapted(error=f"unknown solver options {sorted(unknown)}")
        return Adapted(value=SolverOptions.from_mapping(value))

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def set_defaults(self) -> None:
        """Reset every property to the default run: constant growth of a
        normal seed distribution at constant temperature, no nucleation."""
        from scipy.stats import norm

        self.init_dist = Distribution(np.linspace(1, 500, 200), lambda y: norm.pdf(y, 100, 20))
        self.init_conc = 1.0
        self.solubility = 1.0
        self.sol_time = [0.0, 100.0]
        self.temperature_profile = 25.0
        self.antisolvent_profile = 0.0
        self.growth_rate = 1.0
        self.nucleation_rate = 0.0
        self.init_seed = None
        self.init_massmedium = 1000.0
        self.rhoc = 1e-12
        self.kv = 1.0
        self.sol_method = DEFAULT_SCHEME
        self.sol_options = SolverOptions()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Crystallizer":
        """Build a crystallizer from a (YAML-derived) configuration dict."""
        from cryst_pbm.core.utils.config_loader import crystallizer_properties

        return cls(**crystallizer_properties(config))

    def process_model(self) -> ProcessModel:
        return ProcessModel(
            growth=self.growth_rate,
            nucleation=self.nucleation_rate,
            solubility=self.solubility,
            temperature=self.temperature_profile,
            antisolvent=self.antisolvent_profile,
            init_massmedium=self.init_massmedium,
            rhoc=self.rhoc,
            kv=self.kv,
            t0=float(self.sol_time[0]),
        )

    def initial_concentration(self) -> float:
        """Initial concentration, resolving ``'sat'`` to the solubility at t0."""
        if self.init_conc != "sat":
            return float(self.init_conc)
        return float(self.process_model().solubility_at(float(self.sol_time[0])))

    def initial_distribution(self) -> Distribution:
        """Initial distribution, scaled to the seed mass when ``init_seed`` is set."""
        dist = self.init_dist
        if self.init_seed is None:
            return dist
        values = dist.density_values
        if values is None:
            return dist
        m3 = moment(dist, 3)
        seed_mass = self.rhoc * self.kv * self.init_massmedium * m3
        if seed_mass <= 0:
            logger.warning("Initial distribution has no mass; seed mass %.4g ignored", self.init_seed)
            return dist
        return dist.with_density(values * (self.init_seed / seed_mass))

    def massmedium(self, t=None):
        """Medium mass at ``t`` (default: the output times of the last run)."""
        if t is None:
            t = self.result.times if self.result is not None else self.sol_time
        return self.process_model().medium_mass(np.asarray(t, dtype=float))

    # ------------------------------------------------------------------
    # Run and post-processing
    # ------------------------------------------------------------------

    def solve(self, verbose: bool = False) -> RunResult:
        """Simulate the configured run and store the result on ``self.result``.

        Raises:
            ConfigurationError: Invalid output times or unusable distribution
            IntegrationError: Integrator failure or evaluation budget exhausted
        """
        self.result = solve_pbe(
            self.process_model(),
            self.initial_distribution(),
            self.initial_concentration(),
            self.sol_time,
            method=self.sol_method,
            options=self.sol_options,
            verbose=verbose,
        )
        return self.result

    def _require_result(self) -> RunResult:
        if self.result is None:
            raise RuntimeError("No results yet; call solve() first")
        return self.result

    def massbal(self) -> np.ndarray:
        """Percent mass balance error per output time of the last run."""
        result = self._require_result()
        return mass_balance_error(
            result.concentrations,
            result.distributions,
            result.medium_mass,
            self.rhoc,
            self.kv,
        )

    def supersaturation(self) -> np.ndarray:
        result = self._require_result()
        process = self.process_model()
        return np.array([
            process.supersaturation(t, c) for t, c in zip(result.times, result.concentrations)
        ])

    def save(self, name: str = "kitten", directory: str = ".") -> str:
        """Save the last run to ``{name}_no{n}.npz`` without overwriting.

        Returns:
            Path of the written file
        """
        from cryst_pbm.core.utils.result_manager import save_run

        path = save_run(self._require_result(), directory, name, metadata=self.summary())
        logger.info("Saved run to %s", path)
        return path

    def summary(self) -> Dict[str, Any]:
        """JSON-serializable description of the scalar settings."""
        init_conc = self.init_conc
        return {
            "init_conc": init_conc if isinstance(init_conc, str) else float(init_conc),
            "init_seed": self.init_seed,
            "init_massmedium": self.init_massmedium,
            "rhoc": self.rhoc,
            "kv": self.kv,
            "sol_method": self.sol_method,
            "sol_time": [float(t) for t in self.sol_time],
            "temperature_profile": self.temperature_profile.kind,
            "antisolvent_profile": self.antisolvent_profile.kind,
        }

    def plot(self, what: str = "results"):
        """Plot results of the last run.

        Args:
            what: 'results' (distributions, cumulative properties, process
                variables), 'detailed_results' (additionally moments and
                integration details), or one of 'distributions', 'cumprop',
                'process', 'moments', 'integration'

        Returns:
            Dict mapping plot name to matplotlib figure
        """
        from cryst_pbm.core import visualization as viz

        result = self._require_result()
        groups = {
            "results": ("distributions", "cumprop", "process"),
            "detailed_results": ("distributions", "cumprop", "process", "moments", "integration"),
        }
        selected = groups.get(what, (what,))

        figures = {}
        for key in selected:
            if key in ("distributions", "distoverlap"):
                figures[key] = viz.plot_distributions(result.times, result.distributions)
            elif key == "cumprop":
                figures[key] = viz.plot_cumulative_properties([result], labels=[self.sol_method])
            elif key == "process":
                process = self.process_model()
                figures[key] = viz.plot_process_variables(
                    result.times,
                    result.concentrations,
                    solubility=np.array([process.solubility_at(t) for t in result.times]),
                    temperature=process.temperature(result.times),
                    medium_mass=result.medium_mass,
                )
            elif key == "moments":
                figures[key] = viz.plot_moments(result.times, result.distributions)
            elif key == "integration":
                figures[key] = viz.plot_mass_balance(result.times, self.massbal())
            else:
                raise ValueError(
                    f"Unsupported plot: {what}. Must be one of: "
                    f"{list(groups.keys()) + ['distributions', 'cumprop', 'process', 'moments', 'integration']}"
                )
        return figures

    def compare(self, *others: "Crystallizer"):
        """Overlay the cumulative properties of this run and ``others``."""
        from cryst_pbm.core.visualization import plot_cumulative_properties

        runs = (self,) + others
        return plot_cumulative_properties(
            [c._require_result() for c in runs],
            labels=[c.sol_method for c in runs],
        )

    def __repr__(self) -> str:
        return (
            f"Crystallizer(sol_method='{self.sol_method}', "
            f"sol_time=[{self.sol_time[0]:.4g} .. {self.sol_time[-1]:.4g}], "
            f"solved={self.result is not None})"
        )


__all__ = ['Crystallizer']
