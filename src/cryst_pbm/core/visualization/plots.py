"""
Plotting utilities for crystallization results.

All functions build and return matplotlib figures; nothing is shown or saved
here, so callers decide on backends and file formats.
"""

from __future__ import annotations

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.moments import moments, weight_average_size
from cryst_pbm.core.utils.helper_functions import tail_trapz

_LINE_STYLES = ("b-", "r-", "k-", "g-d", "m-s", "c-o")


def plot_distribution(
    distribution: Distribution,
    ax: Optional[plt.Axes] = None,
    **plot_kwargs,
) -> plt.Figure:
    """Plot a single distribution against size."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 5))
    else:
        fig = ax.figure
    values = distribution.value_at()
    if values is not None:
        ax.plot(distribution.grid, values, **plot_kwargs)
    ax.set_xlabel("Characteristic length [µm]")
    ax.set_ylabel("Number density [#/(µm·g)]")
    ax.grid(True, ls="--", alpha=0.4)
    return fig


def plot_distributions(
    times: Sequence[float],
    distributions: Sequence[Distribution],
) -> plt.Figure:
    """Overlapping number and normalized volume distributions, coloured by time.

    Also shows the cumulative oversize fraction of each snapshot.
    """
    fig, (ax1, ax2, ax3) = plt.subplots(1, 3, figsize=(18, 5))
    colors = plt.cm.viridis(np.linspace(0, 1, max(len(times), 1)))
    m3 = moments(distributions, 3)

    for t, dist, m3_t, color in zip(times, distributions, m3, colors):
        values = dist.value_at()
        if values is None:
            continue
        label = f"t = {t:.4g}"
        ax1.plot(dist.grid, values, color=color, label=label)
        if m3_t > 0:
            ax2.plot(dist.grid, values * dist.grid ** 3 / m3_t, color=color, label=label)
        total = tail_trapz(values, dist.grid)
        if total.size and total[0] > 0:
            ax3.plot(dist.grid, total / total[0], color=color, label=label)

    ax1.set_ylabel("Number distribution")
    ax2.set_ylabel("Normalized volume distribution")
    ax3.set_ylabel("Cumulative oversize fraction")
    for ax in (ax1, ax2, ax3):
        ax.set_xlabel("Characteristic length [µm]")
        ax.grid(True, ls="--", alpha=0.4)
    if len(times) <= 12:
        ax1.legend(fontsize="small")

    fig.tight_layout()
    return fig


def plot_cumulative_properties(results, labels: Optional[Sequence[str]] = None) -> plt.Figure:
    """Zeroth moment, third moment and weight average size over time.

    ``results`` is a sequence of run results; each is drawn with its own line
    style so several runs can be compared.
    """
    fig, axes = plt.subplots(3, 1, figsize=(8, 10), sharex=True)
    labels = list(labels) if labels is not None else [r.scheme for r in results]

    for i, (result, label) in enumerate(zip(results, labels)):
        style = _LINE_STYLES[i % len(_LINE_STYLES)]
        axes[0].plot(result.times, moments(result.distributions, 0), style, label=label)
        axes[1].plot(result.times, moments(result.distributions, 3), style, label=label)
        axes[2].plot(result.times, weight_average_size(result.distributions), style, label=label)

    axes[0].set_ylabel("0$^{th}$ moment [#/g]")
    axes[1].set_ylabel("3$^{rd}$ moment [µm³/g]")
    axes[2].set_ylabel("Weight average length [µm]")
    axes[2].set_xlabel("Time [s]")
    for ax in axes:
        ax.grid(True, ls="--", alpha=0.4)
    axes[0].legend()

    fig.tight_layout()
    return fig


def plot_moments(
    times: Sequence[float],
    distributions: Sequence[Distribution],
    orders: Sequence[int] = (0, 1, 2, 3),
) -> plt.Figure:
    """One panel per moment order."""
    fig, axes = plt.subplots(2, 2, figsize=(12, 8))
    for ax, order in zip(axes.flatten(), orders):
        ax.plot(times, moments(distributions, order), "b-")
        ax.set_title(f"Moment {order}")
        ax.set_xlabel("Time")
        ax.grid(True, ls="--", alpha=0.4)
    fig.tight_layout()
    return fig


def plot_process_variables(
    times: Sequence[float],
    concentrations: Sequence[float],
    solubility: Optional[Sequence[float]] = None,
    temperature: Optional[Sequence[float]] = None,
    medium_mass: Optional[Sequence[float]] = None,
) -> plt.Figure:
    """Concentration (with solubility), supersaturation, temperature and medium mass."""
    fig, axes = plt.subplots(2, 2, figsize=(12, 8))
    ax_c, ax_s, ax_t, ax_m = axes.flatten()
    times = np.asarray(times, dtype=float)
    concentrations = np.asarray(concentrations, dtype=float)

    ax_c.plot(times, concentrations, "b-", label="Concentration")
    if solubility is not None:
        solubility = np.asarray(solubility, dtype=float)
        ax_c.plot(times, solubility, "r--", label="Solubility")
        with np.errstate(divide="ignore", invalid="ignore"):
            ax_s.plot(times, np.where(solubility > 0, concentrations / solubility, np.nan), "k-")
    ax_c.set_ylabel("Concentration [g/g]")
    ax_c.legend()
    ax_s.set_ylabel("Supersaturation [-]")

    if temperature is not None:
        ax_t.plot(times, temperature, "r-")
    ax_t.set_ylabel("Temperature")

    if medium_mass is not None:
        ax_m.plot(times, medium_mass, "g-")
    ax_m.set_ylabel("Medium mass [g]")

    for ax in (ax_c, ax_s, ax_t, ax_m):
        ax.set_xlabel("Time [s]")
        ax.grid(True, ls="--", alpha=0.4)

    fig.tight_layout()
    return fig


def plot_mass_balance(times: Sequence[float], errors: Sequence[float]) -> plt.Figure:
    """Mass balance error in percent over time."""
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(times, errors, "k.-")
    ax.axhline(0.0, color="grey", lw=0.8)
    ax.set_xlabel("Time [s]")
    ax.set_ylabel("Mass balance error [%]")
    ax.grid(True, ls="--", alpha=0.4)
    fig.tight_layout()
    return fig


__all__ = [
    'plot_distribution',
    'plot_distributions',
    'plot_cumulative_properties',
    'plot_moments',
    'plot_process_variables',
    'plot_mass_balance',
]
