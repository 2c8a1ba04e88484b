"""Structured warning classes for the :mod:`cryst_pbm` package."""
from __future__ import annotations


class CrystPBMWarning(UserWarning):
    """Base warning class for cryst_pbm."""


class ValidationWarning(CrystPBMWarning):
    """A property value was rejected; the previous value is kept."""


class SizeMismatchWarning(CrystPBMWarning):
    """Explicit density length does not match the size grid."""


class RateShapeWarning(CrystPBMWarning):
    """A rate law returns an output of unexpected shape."""


class NumericalWarning(CrystPBMWarning):
    """Numerical artifacts such as clamped negative densities."""


__all__ = [
    "CrystPBMWarning",
    "ValidationWarning",
    "SizeMismatchWarning",
    "RateShapeWarning",
    "NumericalWarning",
]
