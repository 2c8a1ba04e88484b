"""
Visualization utilities for cryst-pbm.
"""

from .plots import (
    plot_distribution,
    plot_distributions,
    plot_cumulative_properties,
    plot_moments,
    plot_process_variables,
    plot_mass_balance,
)

__all__ = [
    'plot_distribution',
    'plot_distributions',
    'plot_cumulative_properties',
    'plot_moments',
    'plot_process_variables',
    'plot_mass_balance',
]
