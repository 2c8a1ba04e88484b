"""
Central difference scheme.

Face flux is the growth rate at the face times the arithmetic mean of the two
adjacent cells. Second order on smooth distributions but prone to
oscillations at steep fronts; negative overshoots are clamped after each
stop.
"""

import numpy as np

from cryst_pbm.crystallization.schemes.fixed_grid import FixedGridScheme


class CentralDifferenceScheme(FixedGridScheme):
    """Finite volume scheme with centred face values."""

    name = "central-difference"

    def face_flux(self, n: np.ndarray, g_face: np.ndarray) -> np.ndarray:
        return g_face * 0.5 * (n[:-1] + n[1:])


__all__ = ['CentralDifferenceScheme']
