"""Experiment runners for crystallization benchmark cases.

The :mod:`cryst_pbm.crystallization.experiments.runner` module exposes the
high-level ``run_case`` helper.
"""

from .runner import CaseConfig, build_crystallizer, run_case

__all__ = ["CaseConfig", "build_crystallizer", "run_case"]
