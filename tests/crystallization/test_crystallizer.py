"""Tests for the Crystallizer run configuration."""

from __future__ import annotations

import os
import warnings

import matplotlib.pyplot as plt
import numpy as np
import pytest
from scipy.stats import norm

from cryst_pbm import Crystallizer, Distribution, SolverOptions
from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.moments import moment
from cryst_pbm.core.utils import get_default_crystallization_config, load_run
from cryst_pbm.core.warnings import RateShapeWarning, ValidationWarning


@pytest.fixture
def small_crystallizer():
    return Crystallizer(
        init_dist=Distribution(np.linspace(1.0, 300.0, 60), lambda y: norm.pdf(y, 100.0, 20.0)),
        sol_time=[0.0, 20.0, 40.0],
    )


def test_defaults():
    cryst = Crystallizer()
    assert cryst.sol_method == "central-difference"
    np.testing.assert_array_equal(cryst.sol_time, [0.0, 100.0])
    assert len(cryst.init_dist) == 200
    assert cryst.init_massmedium == 1000.0
    assert cryst.init_seed is None
    assert isinstance(cryst.sol_options, SolverOptions)
    assert cryst.temperature_profile(10.0) == 25.0
    assert moment(cryst.initial_distribution(), 0) == pytest.approx(1.0, rel=1e-3)


def test_without_defaults_fields_are_empty():
    cryst = Crystallizer(defaults=False, kv=0.5)
    assert cryst.kv == 0.5
    assert cryst.rhoc is None


def test_unknown_property_raises():
    with pytest.raises(AttributeError):
        Crystallizer(temperature=25.0)


@pytest.mark.parametrize(
    "name, bad",
    [
        ("rhoc", -1.0),
        ("kv", 0.0),
        ("init_conc", "supersaturated"),
        ("init_massmedium", np.nan),
        ("init_seed", -2.0),
        ("init_dist", [1.0, 2.0]),
        ("sol_time", [0.0, 5.0, 3.0]),
        ("sol_time", -4.0),
        ("temperature_profile", lambda t, x: t),
        ("antisolvent_profile", [[0.0, 10.0], [5.0, 1.0]]),
        ("growth_rate", "k*S"),
        ("nucleation_rate", [1.0, 2.0]),
        ("solubility", -0.5),
        ("sol_options", {"tolerance": 1.0}),
        ("sol_method", 3),
    ],
)
def test_invalid_value_keeps_previous(name, bad):
    cryst = Crystallizer()
    before = getattr(cryst, name)
    with pytest.warns(ValidationWarning):
        setattr(cryst, name, bad)
    after = getattr(cryst, name)
    if isinstance(before, np.ndarray):
        np.testing.assert_array_equal(after, before)
    else:
        assert after is before or after == before


def test_scalar_sol_time_is_span():
    cryst = Crystallizer()
    cryst.sol_time = 50
    np.testing.assert_array_equal(cryst.sol_time, [0.0, 50.0])


def test_empty_sol_method_falls_back_with_warning():
    cryst = Crystallizer(sol_method="mp")
    assert cryst.sol_method == "moving-pivot"
    with pytest.warns(ValidationWarning, match="default"):
        cryst.sol_method = ""
    assert cryst.sol_method == "central-difference"


def test_unknown_sol_method_is_fatal():
    cryst = Crystallizer()
    with pytest.raises(ConfigurationError):
        cryst.sol_method = "lattice-boltzmann"


def test_rate_shape_warning_still_installs_rate():
    cryst = Crystallizer()
    with pytest.warns(RateShapeWarning):
        cryst.growth_rate = lambda S, T, y: np.ones(3)
    assert cryst.growth_rate(1.0, 25.0, np.ones(3)).shape == (3,)


def test_valid_assignment_emits_no_warning():
    cryst = Crystallizer()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        cryst.growth_rate = lambda S, y: 0.1 * (S - 1) * y
        cryst.temperature_profile = [[0, 50, 100], [40, 25, 25]]
        cryst.sol_options = {"rtol": 1e-5}
    assert cryst.sol_options.rtol == 1e-5


def test_hooks_called_on_accepted_assignments():
    seen = []
    cryst = Crystallizer()
    cryst.add_hook(lambda c, name: seen.append(name))
    cryst.kv = 0.5
    with pytest.warns(ValidationWarning):
        cryst.kv = -1.0
    assert seen == ["kv"]


def test_profiles_follow_later_sol_time():
    cryst = Crystallizer(
        temperature_profile=[[0, 50], [40, 20]],
        antisolvent_profile=[[0, 20], [0, 100]],
        sol_time=[0, 300],
    )
    np.testing.assert_array_equal(cryst.temperature_profile.breakpoints, [0.0, 50.0, 300.0])
    np.testing.assert_array_equal(cryst.antisolvent_profile.breakpoints, [0.0, 20.0, 300.0])
    assert cryst.temperature_profile(200.0) == pytest.approx(20.0)

    cryst.sol_time = 30.0
    np.testing.assert_array_equal(cryst.temperature_profile.breakpoints, [0.0, 50.0])


def test_saturated_initial_concentration():
    cryst = Crystallizer(solubility="0.05 + 0.001*T", temperature_profile=25.0, init_conc="SAT")
    assert cryst.init_conc == "sat"
    assert cryst.initial_concentration() == pytest.approx(0.075)


def test_seed_mass_scales_initial_distribution():
    cryst = Crystallizer(init_seed=2.0, rhoc=1e-12, kv=1.0, init_massmedium=1000.0)
    dist = cryst.initial_distribution()
    seed_mass = cryst.rhoc * cryst.kv * cryst.init_massmedium * moment(dist, 3)
    assert seed_mass == pytest.approx(2.0)


def test_massmedium_follows_antisolvent():
    cryst = Crystallizer(antisolvent_profile=[[0.0, 10.0], [0.0, 100.0]], sol_time=[0.0, 10.0])
    np.testing.assert_allclose(cryst.massmedium([0.0, 10.0]), [1000.0, 1100.0])
    np.testing.assert_allclose(cryst.massmedium(), [1000.0, 1100.0])


def test_results_required_before_postprocessing():
    cryst = Crystallizer()
    with pytest.raises(RuntimeError):
        cryst.massbal()


def test_solve_and_postprocess(small_crystallizer, tmp_path):
    cryst = small_crystallizer
    result = cryst.solve()

    assert len(result) == 3
    np.testing.assert_allclose(cryst.massbal(), 0.0, atol=1e-6)
    np.testing.assert_allclose(cryst.supersaturation(), 1.0, atol=1e-4)

    final = result.distributions[-1]
    assert moment(final, 1) / moment(final, 0) == pytest.approx(140.0, rel=0.02)

    path = cryst.save(directory=str(tmp_path))
    assert os.path.basename(path) == "kitten_no1.npz"
    loaded = load_run(path)
    assert loaded.diagnostics["metadata"]["sol_method"] == "central-difference"

    figures = cryst.plot("detailed_results")
    assert set(figures) == {"distributions", "cumprop", "process", "moments", "integration"}
    assert all(isinstance(f, plt.Figure) for f in figures.values())
    with pytest.raises(ValueError):
        cryst.plot("histogram")


def test_compare_runs(small_crystallizer):
    other = Crystallizer(init_dist=small_crystallizer.init_dist, sol_time=[0.0, 20.0, 40.0], sol_method="hr")
    small_crystallizer.solve()
    other.solve()
    fig = small_crystallizer.compare(other)
    assert isinstance(fig, plt.Figure)


def test_from_config():
    config = get_default_crystallization_config()
    config["process"]["growth_rate"] = "0.5*(S - 1)"
    config["solver"]["sol_method"] = "hr"
    cryst = Crystallizer.from_config(config)
    assert cryst.sol_method == "high-resolution"
    assert len(cryst.init_dist) == 200
    np.testing.assert_allclose(cryst.growth_rate(3.0, 25.0, np.ones(2)), [1.0, 1.0])


def test_repr_and_summary():
    cryst = Crystallizer()
    assert "central-difference" in repr(cryst)
    summary = cryst.summary()
    assert summary["temperature_profile"] == "constant"
    assert summary["sol_time"] == [0.0, 100.0]
