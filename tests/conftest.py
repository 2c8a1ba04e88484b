"""Shared fixtures for the cryst-pbm test suite."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402
from scipy.stats import norm  # noqa: E402

from cryst_pbm.core.distribution import Distribution  # noqa: E402
from cryst_pbm.crystallization.physics.balance import ProcessModel  # noqa: E402
from cryst_pbm.crystallization.physics.profiles import ProfileEvaluator  # noqa: E402
from cryst_pbm.crystallization.physics.rates import (  # noqa: E402
    adapt_growth_rate,
    adapt_nucleation_rate,
    adapt_solubility,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


@pytest.fixture
def seed_distribution():
    """Normal seed distribution on a coarse grid."""
    return Distribution(np.linspace(0.0, 300.0, 61), lambda y: norm.pdf(y, 80.0, 15.0))


def make_process(growth=1.0, nucleation=0.0, solubility=1.0, temperature=25.0, antisolvent=0.0,
                 init_massmedium=1000.0, rhoc=1e-12, kv=1.0):
    """Process model built through the same adapters the Crystallizer uses."""

    def profile(spec):
        if isinstance(spec, ProfileEvaluator):
            return spec
        if np.isscalar(spec):
            return ProfileEvaluator.constant(spec)
        return ProfileEvaluator.from_table(spec)

    return ProcessModel(
        growth=adapt_growth_rate(growth).value,
        nucleation=adapt_nucleation_rate(nucleation).value,
        solubility=adapt_solubility(solubility).value,
        temperature=profile(temperature),
        antisolvent=profile(antisolvent),
        init_massmedium=init_massmedium,
        rhoc=rhoc,
        kv=kv,
    )


@pytest.fixture
def process_factory():
    return make_process
