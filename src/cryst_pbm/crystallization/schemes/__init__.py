"""
Discretization schemes for the crystallization population balance.

Includes:
- CentralDifferenceScheme: fixed grid, centred face values
- HighResolutionScheme: fixed grid, van Leer limited upwind
- MovingPivotScheme: Lagrangian pivots with nucleation insertion
"""

from typing import Dict, Type

from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.schemes.base_scheme import PBEScheme

from .central_difference import CentralDifferenceScheme
from .fixed_grid import FixedGridScheme
from .high_resolution import HighResolutionScheme, van_leer_slope
from .moving_pivot import MovingPivotScheme

DEFAULT_SCHEME = CentralDifferenceScheme.name

SCHEMES: Dict[str, Type[PBEScheme]] = {
    CentralDifferenceScheme.name: CentralDifferenceScheme,
    HighResolutionScheme.name: HighResolutionScheme,
    MovingPivotScheme.name: MovingPivotScheme,
}

_ALIASES = {
    "cd": CentralDifferenceScheme.name,
    "centraldifference": CentralDifferenceScheme.name,
    "hr": HighResolutionScheme.name,
    "hires": HighResolutionScheme.name,
    "highresolution": HighResolutionScheme.name,
    "mp": MovingPivotScheme.name,
    "movingpivot": MovingPivotScheme.name,
}


def canonical_scheme_name(identifier: str) -> str:
    """Resolve a scheme identifier or alias to its canonical name.

    Matching ignores case, spaces, dashes and underscores.

    Raises:
        ConfigurationError: If the identifier is not a known scheme

    Example:
        >>> canonical_scheme_name("HiRes")
        'high-resolution'
    """
    key = "".join(ch for ch in str(identifier).lower() if ch not in " -_")
    if key in _ALIASES:
        return _ALIASES[key]
    raise ConfigurationError(
        f"Unsupported scheme: {identifier}. "
        f"Must be one of: {list(SCHEMES.keys())} (or aliases {list(_ALIASES.keys())})"
    )


def get_scheme(identifier: str) -> Type[PBEScheme]:
    """Scheme class for an identifier or alias."""
    return SCHEMES[canonical_scheme_name(identifier)]


__all__ = [
    'FixedGridScheme',
    'CentralDifferenceScheme',
    'HighResolutionScheme',
    'MovingPivotScheme',
    'van_leer_slope',
    'SCHEMES',
    'DEFAULT_SCHEME',
    'canonical_scheme_name',
    'get_scheme',
]
