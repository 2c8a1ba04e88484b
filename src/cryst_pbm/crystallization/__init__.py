"""
Crystallization module for cryst-pbm.

Population balance of a batch crystallizer with growth and nucleation,
coupled to the solute mass balance under temperature and antisolvent
profiles. Three interchangeable schemes are available: central difference,
high resolution and moving pivot.
"""

from .crystallizer import Crystallizer
from .physics import ProcessModel, RateLaw, mass_balance_error
from .schemes import get_scheme
from .solver import PBESolver, solve

__all__ = [
    'Crystallizer',
    'ProcessModel',
    'RateLaw',
    'mass_balance_error',
    'get_scheme',
    'PBESolver',
    'solve',
]
