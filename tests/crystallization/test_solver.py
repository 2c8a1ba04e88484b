"""Tests for the time-node solver driver."""

from __future__ import annotations

import numpy as np
import pytest

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import ConfigurationError, IntegrationError
from cryst_pbm.core.moments import moment
from cryst_pbm.core.schemes import PBEState, SolverOptions
from cryst_pbm.core.utils import RunLogger
from cryst_pbm.crystallization.schemes import HighResolutionScheme
from cryst_pbm.crystallization.solver import PBESolver, solve


def test_snapshots_only_at_output_times(seed_distribution, process_factory):
    process = process_factory(temperature=[[0.0, 30.0, 60.0], [40.0, 30.0, 30.0]])
    result = solve(process, seed_distribution, 1.0, [0.0, 45.0, 60.0])

    np.testing.assert_array_equal(result.times, [0.0, 45.0, 60.0])
    assert len(result.distributions) == 3
    # the run also stopped at the profile breakpoint
    assert result.diagnostics["times"] == [30.0, 45.0, 60.0]
    assert result.scheme == "central-difference"


def test_initial_state_is_first_element(seed_distribution, process_factory):
    result = solve(process_factory(), seed_distribution, 0.7, [10.0, 20.0])
    assert result.times[0] == 10.0
    assert result.distributions[0] is seed_distribution
    assert result.concentrations[0] == 0.7


def test_initial_particle_count_is_unchanged(seed_distribution, process_factory):
    process = process_factory(growth=0.0, init_massmedium=250.0)
    result = solve(process, seed_distribution, 1.0, [0.0, 5.0])
    count = moment(result.distributions[0], 0) * result.medium_mass[0]
    assert count == moment(seed_distribution, 0) * 250.0


def test_breakpoints_outside_run_are_ignored(seed_distribution, process_factory):
    process = process_factory(antisolvent=[[0.0, 500.0], [0.0, 10.0]])
    result = solve(process, seed_distribution, 1.0, [0.0, 10.0])
    assert result.diagnostics["times"] == [10.0]


@pytest.mark.parametrize("times", [[], [0.0, 0.0], [5.0, 1.0], [-1.0, 1.0], [0.0, np.inf]])
def test_invalid_output_times(times, seed_distribution, process_factory):
    with pytest.raises(ConfigurationError):
        solve(process_factory(), seed_distribution, 1.0, times)


def test_output_times_before_initial_state(seed_distribution, process_factory):
    scheme = HighResolutionScheme(process_factory(), SolverOptions())
    with pytest.raises(ConfigurationError):
        PBESolver(scheme).run(PBEState(5.0, seed_distribution, 1.0), [0.0, 10.0])


def test_unusable_initial_distribution(process_factory):
    broken = Distribution([0.0, 1.0, 2.0], [1.0, 1.0])
    with pytest.warns(UserWarning), pytest.raises(ConfigurationError):
        solve(process_factory(), broken, 1.0, [0.0, 1.0])


def test_evaluation_budget_raises(seed_distribution, process_factory):
    with pytest.raises(IntegrationError, match="right-hand-side evaluations"):
        solve(process_factory(), seed_distribution, 1.0, [0.0, 100.0], options=SolverOptions(max_nfev=2))


def test_unknown_method(seed_distribution, process_factory):
    with pytest.raises(ConfigurationError):
        solve(process_factory(), seed_distribution, 1.0, [0.0, 1.0], method="spectral")


def test_run_logger_collects_stops(seed_distribution, process_factory):
    log = RunLogger()
    scheme = HighResolutionScheme(process_factory(), SolverOptions())
    result = PBESolver(scheme, run_logger=log).run(
        PBEState(0.0, seed_distribution, 1.0), [0.0, 10.0, 20.0], time_nodes=[5.0]
    )
    assert log.times == [5.0, 10.0, 20.0]
    assert log.total_nfev > 0
    assert log.stats["points"] == [61, 61, 61]
    assert result.diagnostics["total_nfev"] == log.total_nfev
    assert len(result) == 3


def test_cooling_consumes_solute(seed_distribution, process_factory):
    process = process_factory(
        growth="0.1*(S - 1)",
        solubility="0.05 + 0.001*T",
        temperature=[[0.0, 50.0], [40.0, 20.0]],
        rhoc=1e-6,
    )
    result = solve(process, seed_distribution, 0.09, np.linspace(0.0, 50.0, 6), method="hr")
    assert np.all(np.diff(result.concentrations) <= 1e-6)
    assert result.concentrations[-1] < 0.09


def test_reused_solver_reports_only_the_latest_run(seed_distribution, process_factory):
    log = RunLogger()
    scheme = HighResolutionScheme(process_factory(), SolverOptions())
    solver = PBESolver(scheme, run_logger=log)
    state = PBEState(0.0, seed_distribution, 1.0)

    first = solver.run(state, [0.0, 10.0, 20.0])
    second = solver.run(state, [0.0, 10.0])

    assert first.diagnostics["times"] == [10.0, 20.0]
    assert second.diagnostics["times"] == [10.0]
    assert log.times == [10.0]
    assert second.diagnostics["total_nfev"] == sum(second.diagnostics["nfev"])
