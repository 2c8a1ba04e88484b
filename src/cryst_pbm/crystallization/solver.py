"""
Population balance solver.

:class:`PBESolver` walks the merged set of integration stops (profile
breakpoints plus requested output times), advancing the selected scheme
from stop to stop and recording a snapshot at every requested output time.
Stopping at each breakpoint means the integrator never steps across a kink
in the temperature or antisolvent profile.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
from tqdm.auto import tqdm

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.schemes.base_scheme import PBEScheme, PBEState, RunResult, SolverOptions
from cryst_pbm.core.utils.run_logger import RunLogger
from cryst_pbm.crystallization.physics.balance import ProcessModel
from cryst_pbm.crystallization.physics.profiles import merge_time_nodes
from cryst_pbm.crystallization.schemes import DEFAULT_SCHEME, get_scheme

logger = logging.getLogger(__name__)


def _validate_output_times(output_times) -> np.ndarray:
    times = np.atleast_1d(np.asarray(output_times, dtype=float))
    if times.ndim != 1 or times.size == 0:
        raise ConfigurationError("output times must be a non-empty vector")
    if not np.all(np.isfinite(times)) or np.any(times < 0):
        raise ConfigurationError("output times must be finite and non-negative")
    if np.any(np.diff(times) <= 0):
        raise ConfigurationError("output times must be strictly increasing")
    return times


class PBESolver:
    """Time-node driver for a population balance scheme.

    Args:
        scheme: Scheme instance bound to a process model
        run_logger: Collector for per-stop diagnostics, reset at the start of
            every run (default: new RunLogger)
        verbose: Show a progress bar over the integration stops

    Example:
        >>> scheme = get_scheme('hr')(process, SolverOptions())
        >>> result = PBESolver(scheme).run(initial_state, np.linspace(0, 100, 11))
        >>> len(result)
        11
    """

    def __init__(
        self,
        scheme: PBEScheme,
        run_logger: Optional[RunLogger] = None,
        verbose: bool = False,
    ):
        self.scheme = scheme
        self.run_logger = run_logger or RunLogger()
        self.verbose = verbose

    def run(
        self,
        initial_state: PBEState,
        output_times: Sequence[float],
        time_nodes: Optional[Sequence[float]] = None,
    ) -> RunResult:
        """Integrate from ``initial_state`` through all stops.

        Args:
            initial_state: State at the start time; recorded as element 0
            output_times: Strictly increasing times at which snapshots are kept
            time_nodes: Extra stops (profile breakpoints); only those inside
                the output range are used

        Returns:
            :class:`RunResult` with the initial state followed by a snapshot
            at every output time after the start

        Raises:
            ConfigurationError: If the output times are invalid or start
                before the initial state
            IntegrationError: If the scheme fails; no partial result is returned
        """
        outputs = _validate_output_times(output_times)
        t0 = float(initial_state.time)
        if outputs[0] < t0:
            raise ConfigurationError(
                f"output times start at {outputs[0]:.6g}, before the initial state at {t0:.6g}"
            )

        breakpoints = [] if time_nodes is None else [time_nodes]
        stops = merge_time_nodes(*breakpoints, output_times=outputs, t_start=t0, t_end=outputs[-1])
        stops = stops[stops > t0]
        keep = set(outputs.tolist())

        scheme = self.scheme
        scheme.prepare(initial_state, float(outputs[-1]))
        self.run_logger.reset()
        logger.info(
            "Running %s from t=%.6g to t=%.6g (%d stops, %d outputs)",
            scheme.name, t0, outputs[-1], stops.size, outputs.size,
        )

        times = [t0]
        distributions = [initial_state.distribution]
        concentrations = [float(initial_state.concentration)]

        state = initial_state
        progress = tqdm(stops, desc=scheme.name, disable=not self.verbose)
        for stop in progress:
            nfev_before = scheme.last_nfev
            clamps_before = scheme.clamp_events
            state = scheme.advance(state, float(stop))

            self.run_logger.log_stop(
                state.time,
                scheme.last_nfev - nfev_before,
                scheme.last_min_density,
                scheme.clamp_events > clamps_before,
                len(state.distribution),
            )
            logger.debug(
                "t=%.6g c=%.6g points=%d nfev=%d",
                state.time, state.concentration, len(state.distribution),
                scheme.last_nfev - nfev_before,
            )
            if float(stop) in keep:
                times.append(state.time)
                distributions.append(state.distribution)
                concentrations.append(state.concentration)
            progress.set_postfix(c=f"{state.concentration:.4g}")

        times = np.array(times)
        medium_mass = np.asarray(scheme.process.medium_mass(times), dtype=float)
        diagnostics = {
            **self.run_logger.to_dict(),
            "total_nfev": self.run_logger.total_nfev,
            "clamp_count": self.run_logger.clamp_count,
        }
        logger.info(
            "%s finished: %d rhs evaluations, %d clamp events",
            scheme.name, self.run_logger.total_nfev, self.run_logger.clamp_count,
        )
        return RunResult(
            times=times,
            distributions=tuple(distributions),
            concentrations=np.array(concentrations),
            medium_mass=medium_mass,
            scheme=scheme.name,
            diagnostics=diagnostics,
        )


def solve(
    process: ProcessModel,
    initial_distribution: Distribution,
    initial_concentration: float,
    output_times: Sequence[float],
    method: str = DEFAULT_SCHEME,
    options: Optional[SolverOptions] = None,
    verbose: bool = False,
) -> RunResult:
    """Simulate a crystallization run.

    Args:
        process: Canonical kinetics, profiles and constants
        initial_distribution: Distribution at ``output_times[0]``
        initial_concentration: Solute concentration at ``output_times[0]``
        output_times: Strictly increasing snapshot times
        method: Scheme identifier or alias
        options: Integrator settings
        verbose: Show a progress bar

    Returns:
        :class:`RunResult`

    Raises:
        ConfigurationError: Unknown scheme or invalid output times
        IntegrationError: Integrator failure or evaluation budget exhausted
    """
    outputs = _validate_output_times(output_times)
    if initial_distribution.value_at() is None:
        raise ConfigurationError("initial distribution has no usable density on its grid")

    scheme = get_scheme(method)(process, options or SolverOptions())
    state = PBEState(float(outputs[0]), initial_distribution, float(initial_concentration))
    breakpoints = np.concatenate([
        process.temperature.breakpoints,
        process.antisolvent.breakpoints,
    ])
    return PBESolver(scheme, verbose=verbose).run(state, outputs, breakpoints)


__all__ = ['PBESolver', 'solve']
