"""Tests for analytical solutions and their agreement with the schemes."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.stats import norm

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.utils import trapz
from cryst_pbm.crystallization.solutions import (
    get_analytical_solution,
    growth_constant,
    growth_linear,
    growth_nucleation_constant,
    relative_l1_error,
    validate_distribution,
)
from cryst_pbm.crystallization.solver import solve


def F0(y):
    return norm.pdf(y, 100.0, 20.0)


Y = np.linspace(0.0, 500.0, 1001)


def test_growth_constant_translates_peak():
    F = growth_constant(F0, Y, 100.0, 1.0)
    assert Y[np.argmax(F)] == pytest.approx(200.0)
    assert trapz(F, Y) == pytest.approx(1.0, rel=1e-6)


def test_growth_linear_conserves_number():
    F = growth_linear(F0, Y, 50.0, 0.5, 0.005)
    assert trapz(F, Y) == pytest.approx(1.0, rel=1e-4)
    np.testing.assert_allclose(growth_linear(F0, Y, 50.0, 0.5, 0.0), growth_constant(F0, Y, 50.0, 0.5))


def test_growth_nucleation_adds_plateau():
    F = growth_nucleation_constant(F0, Y, 100.0, 1.0, 5e-4, 0.0)
    extra = trapz(F, Y) - 1.0
    assert extra == pytest.approx(5e-4 * 100.0, rel=1e-2)
    assert F[np.searchsorted(Y, 20.0)] == pytest.approx(5e-4 + F0(-80.0))


def test_dispatch_over_times():
    F = get_analytical_solution(Y, np.array([0.0, 10.0]), "growth_constant", F0, G=1.0)
    assert F.shape == (2, Y.size)
    with pytest.raises(ValueError, match="Unsupported case type"):
        get_analytical_solution(Y, 0.0, "breakage", F0)


def test_relative_error_and_validation():
    assert relative_l1_error(Y, F0(Y), F0(Y)) == 0.0
    assert np.isnan(relative_l1_error(Y, F0(Y), np.zeros_like(Y)))

    report = validate_distribution(Y, 0.0, F0(Y), "growth_constant")
    assert report["valid"]
    assert report["peak_location"] == pytest.approx(100.0)

    bad = validate_distribution(Y, 0.0, -F0(Y), "growth_constant")
    assert not bad["valid"]


@pytest.mark.parametrize("method, tolerance", [
    ("central-difference", 0.1),
    ("high-resolution", 0.1),
    ("moving-pivot", 1e-3),
])
def test_schemes_follow_constant_growth(method, tolerance, process_factory):
    grid = np.linspace(0.0, 400.0, 201)
    seed = Distribution(grid, F0)
    result = solve(process_factory(growth=1.0), seed, 1.0, [0.0, 50.0], method=method)

    final = result.distributions[-1]
    exact = growth_constant(F0, final.grid, 50.0, 1.0)
    assert relative_l1_error(final.grid, final.value_at(), exact) < tolerance


def test_size_dependent_growth_matches_characteristics(process_factory):
    grid = np.linspace(0.0, 600.0, 301)
    seed = Distribution(grid, F0)
    process = process_factory(growth=lambda S, y: 0.5 + 0.005 * y)
    result = solve(process, seed, 1.0, [0.0, 50.0], method="mp")

    final = result.distributions[-1]
    exact = growth_linear(F0, final.grid, 50.0, 0.5, 0.005)
    assert relative_l1_error(final.grid, final.value_at(), exact) < 0.02
