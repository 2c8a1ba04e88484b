"""Tests for the discretization schemes."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.stats import norm

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.moments import moment
from cryst_pbm.core.schemes import PBEState, SolverOptions
from cryst_pbm.crystallization.physics.balance import mass_balance_error
from cryst_pbm.crystallization.schemes import (
    CentralDifferenceScheme,
    FixedGridScheme,
    HighResolutionScheme,
    MovingPivotScheme,
    canonical_scheme_name,
    get_scheme,
    van_leer_slope,
)
from cryst_pbm.crystallization.solver import solve

ALL_SCHEMES = ["central-difference", "high-resolution", "moving-pivot"]


@pytest.mark.parametrize(
    "alias, expected",
    [
        ("cd", "central-difference"),
        ("Central Difference", "central-difference"),
        ("HiRes", "high-resolution"),
        ("high_resolution", "high-resolution"),
        ("MP", "moving-pivot"),
        ("moving-pivot", "moving-pivot"),
    ],
)
def test_scheme_aliases(alias, expected):
    assert canonical_scheme_name(alias) == expected


def test_unknown_scheme_raises():
    with pytest.raises(ConfigurationError, match="Unsupported scheme"):
        get_scheme("finite-element")


def test_get_scheme_returns_classes():
    assert get_scheme("cd") is CentralDifferenceScheme
    assert get_scheme("hr") is HighResolutionScheme
    assert get_scheme("mp") is MovingPivotScheme


def test_van_leer_slope_limits_extrema():
    a = np.array([1.0, 1.0, 0.0, 2.0])
    b = np.array([1.0, -1.0, 0.0, 1.0])
    np.testing.assert_allclose(van_leer_slope(a, b), [1.0, 0.0, 0.0, 4.0 / 3.0])


@pytest.mark.parametrize("method", ALL_SCHEMES)
def test_zero_rates_leave_state_unchanged(method, seed_distribution, process_factory):
    process = process_factory(growth=0.0, nucleation=0.0)
    result = solve(process, seed_distribution, 1.0, [0.0, 50.0, 100.0], method=method)

    initial = seed_distribution.value_at()
    for dist in result.distributions:
        np.testing.assert_allclose(dist.grid, seed_distribution.grid)
        np.testing.assert_allclose(dist.value_at(), initial, atol=1e-10)
    np.testing.assert_allclose(result.concentrations, 1.0)
    err = mass_balance_error(result.concentrations, result.distributions, result.medium_mass, 1e-12, 1.0)
    np.testing.assert_allclose(err, 0.0, atol=1e-10)


def test_moving_pivot_translates_pivots_with_constant_growth(seed_distribution, process_factory):
    process = process_factory(growth=0.5, nucleation=0.0)
    times = [0.0, 20.0, 40.0]
    result = solve(process, seed_distribution, 1.0, times, method="mp")

    for t, dist in zip(times, result.distributions):
        np.testing.assert_allclose(dist.grid, seed_distribution.grid + 0.5 * t, rtol=1e-6, atol=1e-6)
    assert moment(result.distributions[-1], 0) == pytest.approx(moment(seed_distribution, 0), rel=1e-6)


@pytest.mark.parametrize("method", ALL_SCHEMES)
def test_mass_balance_with_growth_and_nucleation(method, process_factory):
    grid = np.linspace(0.0, 300.0, 121)
    seed = Distribution(grid, lambda y: norm.pdf(y, 80.0, 15.0))
    process = process_factory(
        growth="0.5*(S - 1)",
        nucleation="1e-3*(S - 1)**2",
        solubility=0.5,
        rhoc=1e-6,
    )
    result = solve(process, seed, 1.0, np.linspace(0.0, 100.0, 5), method=method)

    err = mass_balance_error(result.concentrations, result.distributions, result.medium_mass, 1e-6, 1.0)
    assert np.max(np.abs(err)) < 1.0
    # solute is consumed by growth
    assert result.concentrations[-1] < result.concentrations[0]
    assert np.all(result.concentrations >= 0.5 - 1e-6)


@pytest.mark.parametrize("method", ALL_SCHEMES)
def test_antisolvent_addition_conserves_mass(method, process_factory):
    grid = np.geomspace(1.0, 300.0, 121)
    seed = Distribution(grid, lambda y: norm.pdf(y, 80.0, 15.0))
    process = process_factory(
        growth="0.5*(S - 1)",
        nucleation="1e-3*(S - 1)**2",
        solubility="0.1*exp(-5*xm)",
        antisolvent=[[0.0, 20.0, 60.0], [0.0, 0.0, 300.0]],
        rhoc=1e-6,
    )
    result = solve(process, seed, 0.1, [0.0, 10.0, 20.0, 40.0, 60.0], method=method)

    np.testing.assert_allclose(result.medium_mass, [1000.0, 1000.0, 1000.0, 1150.0, 1300.0])
    err = mass_balance_error(result.concentrations, result.distributions, result.medium_mass, 1e-6, 1.0)
    assert np.max(np.abs(err)) < 1.0
    for dist in result.distributions:
        assert np.all(np.diff(dist.grid) > 0)
        assert dist.value_at().min() >= 0.0
    # dilution and the falling solubility both drive crystallization
    assert result.concentrations[-1] < 0.1 * 1000.0 / 1300.0


def test_fixed_grid_base_is_abstract(process_factory):
    with pytest.raises(TypeError):
        FixedGridScheme(process_factory(), SolverOptions())


@pytest.mark.parametrize("method", ["central-difference", "high-resolution"])
def test_fixed_grid_growth_moves_mean_size(method, seed_distribution, process_factory):
    process = process_factory(growth=1.0)
    result = solve(process, seed_distribution, 1.0, [0.0, 40.0], method=method)
    final = result.distributions[-1]
    mean = moment(final, 1) / moment(final, 0)
    assert mean == pytest.approx(120.0, rel=0.02)


def test_high_resolution_keeps_density_non_negative(process_factory):
    grid = np.linspace(0.0, 100.0, 101)
    square = Distribution(grid, np.where((grid > 10) & (grid < 20), 1.0, 0.0))
    process = process_factory(growth=1.0)
    result = solve(process, square, 1.0, [0.0, 30.0], method="hr")
    final = result.distributions[-1].value_at()
    assert final.min() >= 0.0
    assert final.max() <= 1.05
    assert 40.0 <= grid[np.argmax(final)] <= 50.0


def test_dissolution_removes_pivots_and_returns_mass(process_factory):
    grid = np.linspace(1.0, 51.0, 26)
    seed = Distribution(grid, lambda y: norm.pdf(y, 10.0, 3.0))
    process = process_factory(growth=-0.5, solubility=2.0, rhoc=1e-4)
    scheme = MovingPivotScheme(process, SolverOptions())
    state = PBEState(0.0, seed, 1.0)
    scheme.prepare(state, 20.0)
    final = scheme.advance(state, 20.0)

    assert scheme.removed_count > 0
    assert final.distribution.grid[0] >= 1.0 - 1e-6
    assert final.concentration > 1.0


def test_fixed_grid_needs_two_points(process_factory):
    scheme = CentralDifferenceScheme(process_factory(), SolverOptions())
    with pytest.raises(ConfigurationError):
        scheme.prepare(PBEState(0.0, Distribution([1.0], [1.0]), 1.0), 1.0)


def test_jacobian_sparsity_pattern():
    pattern = CentralDifferenceScheme._jacobian_sparsity(6).toarray()
    assert pattern.shape == (7, 7)
    assert pattern[3, 1] and pattern[3, 5] and not pattern[3, 0]
    assert pattern[0].all() and pattern[:, -1].all() and pattern[-1].all()
