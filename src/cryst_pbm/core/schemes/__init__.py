"""
Scheme contract for cryst-pbm.

Provides the abstract discretization interface and the state, options and
result containers exchanged with the solver.
"""

from .base_scheme import PBEScheme, PBEState, RunResult, SolverOptions

__all__ = ['PBEScheme', 'PBEState', 'RunResult', 'SolverOptions']
