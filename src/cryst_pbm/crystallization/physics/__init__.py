"""
Physics of crystallization runs.

Includes:
- Rate law adaptation: growth G(S,T,y), nucleation B(S,T,m), solubility cs(T,xm)
- Operating profiles: temperature and antisolvent addition
- Process model and mass balance diagnostic
"""

from .rates import (
    Adapted,
    RateLaw,
    adapt_growth_rate,
    adapt_nucleation_rate,
    adapt_solubility,
)
from .profiles import ProfileEvaluator, build_profile, merge_time_nodes, validate_table
from .balance import ProcessModel, crystal_mass, mass_balance_error

__all__ = [
    'Adapted',
    'RateLaw',
    'adapt_growth_rate',
    'adapt_nucleation_rate',
    'adapt_solubility',
    'ProfileEvaluator',
    'build_profile',
    'merge_time_nodes',
    'validate_table',
    'ProcessModel',
    'crystal_mass',
    'mass_balance_error',
]
