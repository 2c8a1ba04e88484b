"""High-level runner for crystallization benchmark cases.

The primary entry point is :func:`run_case`, which builds a preset
:class:`~cryst_pbm.crystallization.crystallizer.Crystallizer`, solves it with
the requested scheme, and reports mass balance, the error against an
analytical solution where one exists, and diagnostic figures.

Presets:

- ``growth_only``: constant growth of a normal seed distribution
- ``size_dependent_growth``: affine growth G = a + b·y
- ``constant_nucleation``: constant growth and constant nucleation
- ``nucleation_growth``: cooling profile with supersaturation-driven kinetics
- ``antisolvent``: antisolvent addition lowering the solubility
- ``seeded_monodisperse``: narrow seed peak under constant growth
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Dict, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
from scipy.stats import norm

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.utils import (
    ResultManager,
    delta_peak,
    get_default_crystallization_config,
    merge_configs,
)
from cryst_pbm.crystallization.crystallizer import Crystallizer
from cryst_pbm.crystallization.physics.rates import RateLaw
from cryst_pbm.crystallization.solutions import (
    get_analytical_solution,
    relative_l1_error,
)


# ---------------------------------------------------------------------------
# Configuration helpers
# ---------------------------------------------------------------------------


def _normal_seeds(y):
    return norm.pdf(y, 100.0, 20.0)


def _narrow_seeds(y):
    return delta_peak(y, center=50.0, area=1.0, width_fraction=0.05)


def _cooling_nucleation(S, T):
    return 1e2 * max(S - 1.0, 0.0) ** 2


def _antisolvent_nucleation(S, T):
    return 10.0 * max(S - 1.0, 0.0) ** 2


@dataclass(frozen=True)
class CaseConfig:
    """Configuration describing a crystallization benchmark case."""

    case_type: str
    grid: Tuple[float, float, int]
    t_final: float
    t_slices: Tuple[float, ...]
    density: Callable[[np.ndarray], np.ndarray]
    growth: Any = 1.0
    nucleation: Any = 0.0
    solubility: Any = 1.0
    temperature: Any = 25.0
    antisolvent: Any = 0.0
    init_conc: Any = 1.0
    init_seed: Optional[float] = None
    init_massmedium: float = 1000.0
    analytical: Optional[str] = None
    analytical_params: Dict[str, float] = field(default_factory=dict)


def _build_case_config(case_type: str) -> CaseConfig:
    case = case_type.lower()
    slices = (0.0, 25.0, 50.0, 75.0, 100.0)
    if case == "growth_only":
        return CaseConfig(
            case_type="growth_only",
            grid=(0.0, 500.0, 200),
            t_final=100.0,
            t_slices=slices,
            density=_normal_seeds,
            growth=1.0,
            analytical="growth_constant",
            analytical_params={"G": 1.0},
        )
    if case == "size_dependent_growth":
        return CaseConfig(
            case_type="size_dependent_growth",
            grid=(0.0, 600.0, 240),
            t_final=100.0,
            t_slices=slices,
            density=_normal_seeds,
            growth=RateLaw(lambda S, y: 0.5 + 0.005 * y, ("S", "y")),
            analytical="growth_linear",
            analytical_params={"a": 0.5, "b": 0.005},
        )
    if case == "constant_nucleation":
        return CaseConfig(
            case_type="constant_nucleation",
            grid=(0.0, 500.0, 200),
            t_final=100.0,
            t_slices=slices,
            density=_normal_seeds,
            growth=1.0,
            nucleation=5e-4,
            analytical="growth_nucleation",
            analytical_params={"G": 1.0, "B": 5e-4, "y0": 0.0},
        )
    if case == "nucleation_growth":
        return CaseConfig(
            case_type="nucleation_growth",
            grid=(0.0, 500.0, 200),
            t_final=100.0,
            t_slices=slices,
            density=_normal_seeds,
            growth="10*(S - 1)",
            nucleation=_cooling_nucleation,
            solubility="0.05 + 0.001*T",
            temperature=[[0.0, 50.0, 100.0], [40.0, 25.0, 25.0]],
            init_conc="sat",
            init_seed=5.0,
        )
    if case == "antisolvent":
        return CaseConfig(
            case_type="antisolvent",
            grid=(0.0, 500.0, 200),
            t_final=100.0,
            t_slices=slices,
            density=_normal_seeds,
            growth="S - 1",
            nucleation=_antisolvent_nucleation,
            solubility="0.1*exp(-5*xm)",
            antisolvent=[[0.0, 60.0, 100.0], [0.0, 500.0, 500.0]],
            init_conc="sat",
            init_seed=5.0,
        )
    if case == "seeded_monodisperse":
        return CaseConfig(
            case_type="seeded_monodisperse",
            grid=(0.0, 300.0, 300),
            t_final=100.0,
            t_slices=slices,
            density=_narrow_seeds,
            growth=1.0,
            analytical="growth_constant",
            analytical_params={"G": 1.0},
        )
    raise ValueError(
        f"Unsupported case type: {case_type}. Must be one of: "
        "['growth_only', 'size_dependent_growth', 'constant_nucleation', "
        "'nucleation_growth', 'antisolvent', 'seeded_monodisperse']"
    )


def build_crystallizer(config: CaseConfig, scheme: str = "high-resolution") -> Crystallizer:
    """Crystallizer for a case preset."""
    start, stop, num = config.grid
    return Crystallizer(
        init_dist=Distribution(np.linspace(start, stop, num), config.density),
        sol_time=np.array(config.t_slices),
        init_conc=config.init_conc,
        solubility=config.solubility,
        temperature_profile=config.temperature,
        antisolvent_profile=config.antisolvent,
        growth_rate=config.growth,
        nucleation_rate=config.nucleation,
        init_seed=config.init_seed,
        init_massmedium=config.init_massmedium,
        sol_method=scheme,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run_case(
    case_type: str = "growth_only",
    scheme: str = "high-resolution",
    n_grid: Optional[int] = None,
    make_plots: bool = True,
    output_dir: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    output: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Run a benchmark case end-to-end.

    Parameters
    ----------
    case_type:
        Preset identifier (see module docstring).
    scheme:
        Scheme identifier or alias.
    n_grid:
        Override for the number of grid points.
    make_plots:
        Whether to assemble Matplotlib figures.
    output_dir:
        Optional base directory; results, metadata and figures are written
        through a :class:`ResultManager`.
    verbose:
        Show a progress bar and print a summary.
    output:
        ``output`` block of a case configuration (see
        :func:`~cryst_pbm.core.utils.load_case_config`). ``save_results``
        and ``save_plots`` select what is written under ``output_dir``;
        ``plot_format`` and ``plot_dpi`` control the saved figures.

    Returns
    -------
    dict
        The case configuration, crystallizer, run result, mass balance error
        series, relative errors per slice (None without an analytical
        solution), figure handles and wall-clock duration.
    """
    config = _build_case_config(case_type)
    settings = merge_configs(get_default_crystallization_config()["output"], output or {})
    if n_grid is not None:
        config = replace(config, grid=(config.grid[0], config.grid[1], int(n_grid)))

    cryst = build_crystallizer(config, scheme)

    start = perf_counter()
    result = cryst.solve(verbose=verbose)
    duration = perf_counter() - start

    mass_balance = cryst.massbal()

    relative_errors = None
    exact = None
    if config.analytical is not None:
        F0 = cryst.initial_distribution().density
        exact = [
            get_analytical_solution(d.grid, t, config.analytical, F0, **config.analytical_params)
            for t, d in zip(result.times, result.distributions)
        ]
        relative_errors = np.array([
            relative_l1_error(d.grid, d.value_at(), F_exact)
            for d, F_exact in zip(result.distributions, exact)
        ])

    figures: Dict[str, plt.Figure] = {}
    if make_plots:
        figures.update(cryst.plot("results"))
        figures["integration"] = cryst.plot("integration")["integration"]

        if exact is not None:
            fig_cmp, ax = plt.subplots(figsize=(10, 6))
            colors = plt.cm.viridis(np.linspace(0, 1, len(result.times)))
            for t, d, F_exact, color in zip(result.times, result.distributions, exact, colors):
                ax.plot(d.grid, F_exact, color=color, lw=2.5, label=f"Analytical t={t:.0f}")
                ax.plot(d.grid, d.value_at(), "r--", lw=1.5)
            ax.set_xlabel("Characteristic length [µm]")
            ax.set_ylabel("F(y,t)")
            ax.set_title(f"{config.case_type}: {result.scheme} (dashed) vs analytical")
            ax.grid(True, ls="--", alpha=0.3)
            ax.legend(fontsize="small")
            fig_cmp.tight_layout()
            figures["comparison"] = fig_cmp

    if output_dir is not None:
        rm = ResultManager("crystallization", config.case_type, base_dir=str(output_dir))
        if settings["save_results"]:
            rm.save_run(result, name=config.case_type, metadata=cryst.summary())
            rm.save_diagnostics({k: v for k, v in result.diagnostics.items() if isinstance(v, list)})
            metrics = {
                "max_abs_mass_balance_error": float(np.max(np.abs(mass_balance))),
                "duration_sec": duration,
            }
            if relative_errors is not None:
                metrics["final_relative_error"] = float(relative_errors[-1])
            rm.save_metadata(cryst.summary(), metrics)
        if settings["save_plots"]:
            fmt = str(settings["plot_format"]).lstrip(".")
            for name, fig in figures.items():
                fig.savefig(
                    rm.get_plot_path(f"{config.case_type}_{name}.{fmt}"),
                    dpi=settings["plot_dpi"],
                )

    if verbose:
        print(
            f"{config.case_type} with {result.scheme}: {duration:.2f} s, "
            f"max |mass balance error| {np.max(np.abs(mass_balance)):.2e} %"
        )

    return {
        "config": config,
        "crystallizer": cryst,
        "result": result,
        "mass_balance": mass_balance,
        "relative_errors": relative_errors,
        "figures": figures,
        "duration_sec": duration,
    }


__all__ = ["run_case", "CaseConfig", "build_crystallizer"]
