"""
Core infrastructure module for cryst-pbm.

Shared components used across all problem types:
- distribution, moments: Size distributions and their moments
- schemes: Discretization contract and run containers
- errors, warnings: Exception and warning categories
- utils: Result management, configuration, helpers
- visualization: Plotting utilities
"""

from .distribution import Distribution
from .errors import ConfigurationError, CrystPBMError, IntegrationError
from .moments import mean_size, moment, moment_vector, moments, weight_average_size
from .schemes import PBEScheme, PBEState, RunResult, SolverOptions

__all__ = [
    'Distribution',
    'CrystPBMError',
    'ConfigurationError',
    'IntegrationError',
    'moment',
    'moments',
    'moment_vector',
    'weight_average_size',
    'mean_size',
    'PBEScheme',
    'PBEState',
    'RunResult',
    'SolverOptions',
]
