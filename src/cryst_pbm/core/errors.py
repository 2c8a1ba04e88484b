"""Custom exceptions for the :mod:`cryst_pbm` package."""
from __future__ import annotations


class CrystPBMError(Exception):
    """Base exception for crystallization PBE errors."""


class ConfigurationError(CrystPBMError, ValueError):
    """Invalid configuration that cannot be defaulted (e.g. unknown scheme)."""


class IntegrationError(CrystPBMError, RuntimeError):
    """The time integrator failed or exhausted its evaluation budget."""


__all__ = [
    "CrystPBMError",
    "ConfigurationError",
    "IntegrationError",
]
