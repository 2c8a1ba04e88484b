"""
cryst-pbm: Population Balance Modelling of Crystallization

A modular toolbox for simulating particle size distributions under growth
and nucleation in batch crystallizers.
"""

__version__ = "0.1.0"
__author__ = "cryst-pbm Contributors"

from cryst_pbm.core import Distribution, RunResult, SolverOptions
from cryst_pbm.crystallization import Crystallizer, RateLaw

__all__ = ['Distribution', 'RunResult', 'SolverOptions', 'Crystallizer', 'RateLaw']
