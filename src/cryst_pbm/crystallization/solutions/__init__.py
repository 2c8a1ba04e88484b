"""
Analytical solutions for crystallization test cases.

Provides exact solutions for validation:
- Constant growth
- Affine size-dependent growth
- Constant growth with constant nucleation
"""

from .analytical import (
    growth_constant,
    growth_linear,
    growth_nucleation_constant,
    get_analytical_solution,
    relative_l1_error,
    validate_distribution
)

__all__ = [
    'growth_constant',
    'growth_linear',
    'growth_nucleation_constant',
    'get_analytical_solution',
    'relative_l1_error',
    'validate_distribution'
]
