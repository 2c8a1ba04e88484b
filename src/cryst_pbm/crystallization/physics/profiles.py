"""
Operating profiles for crystallization runs.

Temperature and antisolvent-addition profiles are given as

- a constant scalar,
- a two-row table of (time, value) breakpoints, interpolated piecewise
  linearly and held flat after the last breakpoint,
- a single-argument function of time.

Table breakpoints are non-smooth points of the forcing. They are exported so
the solver can stop exactly at each of them instead of letting a
variable-step integrator interpolate across a kink.
"""

from __future__ import annotations

import inspect
from typing import Callable, Optional, Tuple, Union

import numpy as np

from cryst_pbm.crystallization.physics.rates import Adapted


class ProfileEvaluator:
    """Continuous-time evaluator of an operating profile.

    Scalar input gives a float, array input an array of the same shape.

    Attributes:
        kind: 'constant', 'table' or 'function'
        breakpoints: Times at which the profile is not smooth
        table: 2xK breakpoint table for 'table' profiles, else None
    """

    def __init__(
        self,
        func: Callable[[np.ndarray], np.ndarray],
        kind: str = "function",
        breakpoints: Union[Tuple[float, ...], np.ndarray] = (),
        table: Optional[np.ndarray] = None,
    ):
        self._func = func
        self.kind = kind
        self.breakpoints = np.asarray(breakpoints, dtype=float)
        self.table = table

    def __call__(self, t):
        arr = np.asarray(t, dtype=float)
        out = np.asarray(self._func(np.atleast_1d(arr)), dtype=float)
        if arr.ndim == 0:
            return float(out.reshape(-1)[0])
        return out.reshape(arr.shape)

    @classmethod
    def constant(cls, value: float) -> "ProfileEvaluator":
        value = float(value)
        return cls(lambda t: np.full(t.shape, value), kind="constant")

    @classmethod
    def from_table(
        cls,
        table: np.ndarray,
        t_final: Optional[float] = None,
    ) -> "ProfileEvaluator":
        """Piecewise-linear profile; assumes ``table`` was validated."""
        table = np.array(table, dtype=float)
        if t_final is not None and table[0, -1] < t_final:
            table = np.hstack([table, [[t_final], [table[1, -1]]]])
        times = table[0].copy()
        values = table[1].copy()
        return cls(
            lambda t: np.interp(t, times, values),
            kind="table",
            breakpoints=times,
            table=table,
        )

    @classmethod
    def from_function(cls, func: Callable, breakpoints=()) -> "ProfileEvaluator":
        """Wrap a function of time, vectorizing it when needed."""
        probe = np.array([0.0, 10.0])
        try:
            out = np.asarray(func(probe), dtype=float)
            vectorized = out.shape == probe.shape
        except (TypeError, ValueError):
            vectorized = False

        if vectorized:
            return cls(func, kind="function", breakpoints=breakpoints)

        def broadcast(t):
            return np.array([float(np.asarray(func(ti)).reshape(-1)[0]) for ti in t])

        return cls(broadcast, kind="function", breakpoints=breakpoints)

    def __repr__(self) -> str:
        return f"ProfileEvaluator(kind='{self.kind}', breakpoints={self.breakpoints.size})"


def _single_argument(func: Callable) -> bool:
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return getattr(func, "nin", 1) == 1
    positional = [
        p for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    ]
    variadic = any(p.kind == p.VAR_POSITIONAL for p in params)
    return len(positional) == 1 or (variadic and len(positional) == 0)


def validate_table(table, monotonic: bool = False) -> Optional[str]:
    """Return an error message for an invalid breakpoint table, else None."""
    try:
        arr = np.array(table, dtype=float)
    except (TypeError, ValueError):
        return "profile table must be numeric"
    if arr.ndim != 2 or arr.shape[0] != 2 or arr.shape[1] < 1:
        return "profile table must have two rows (times, values)"
    if not np.all(np.isfinite(arr)):
        return "profile table must contain finite values"
    if np.any(arr[0] < 0):
        return "profile breakpoint times must be non-negative"
    if np.any(np.diff(arr[0]) <= 0):
        return "profile breakpoint times must be strictly increasing"
    if monotonic and np.any(np.diff(arr[1]) < 0):
        return "profile values must be non-decreasing (added mass cannot decrease)"
    return None


def build_profile(
    spec,
    *,
    t_final: Optional[float] = None,
    monotonic: bool = False,
    name: str = "profile",
) -> Adapted:
    """Normalize a profile specification into a :class:`ProfileEvaluator`.

    Args:
        spec: Scalar, 2xK table or single-argument function of time
        t_final: Final simulation time used to extend tables flat
        monotonic: Require non-decreasing table values (antisolvent mass)
        name: Property name used in messages

    Returns:
        :class:`Adapted` holding the evaluator or the rejection reason

    Example:
        >>> result = build_profile([[0, 50, 100], [40, 20, 20]], t_final=200)
        >>> result.value(25.0)
        30.0
    """
    if isinstance(spec, ProfileEvaluator):
        if monotonic and spec.table is not None:
            error = validate_table(spec.table, monotonic=True)
            if error:
                return Adapted(error=f"{name}: {error}")
        return Adapted(value=spec, kind=spec.kind)

    if np.isscalar(spec) and not isinstance(spec, str):
        try:
            value = float(spec)
        except (TypeError, ValueError):
            return Adapted(error=f"{name} must be a number, a table or a function of time")
        if not np.isfinite(value):
            return Adapted(error=f"{name} must be finite")
        return Adapted(value=ProfileEvaluator.constant(value), kind="constant")

    if callable(spec):
        if not _single_argument(spec):
            return Adapted(error=f"{name} function must take exactly one argument (time)")
        return Adapted(value=ProfileEvaluator.from_function(spec), kind="function")

    if isinstance(spec, (list, tuple, np.ndarray)):
        error = validate_table(spec, monotonic=monotonic)
        if error:
            return Adapted(error=f"{name}: {error}")
        return Adapted(value=ProfileEvaluator.from_table(spec, t_final=t_final), kind="table")

    return Adapted(error=f"{name} must be a number, a table or a function of time")


def merge_time_nodes(
    *breakpoint_sets,
    output_times,
    t_start: Optional[float] = None,
    t_end: Optional[float] = None,
) -> np.ndarray:
    """Sorted, deduplicated integration stops.

    Union of all profile breakpoints inside ``[t_start, t_end]`` (defaults:
    first and last output time) and the requested output times.
    """
    output_times = np.asarray(output_times, dtype=float)
    t_start = float(output_times[0]) if t_start is None else float(t_start)
    t_end = float(output_times[-1]) if t_end is None else float(t_end)

    nodes = [output_times]
    for bps in breakpoint_sets:
        bps = np.asarray(bps, dtype=float).reshape(-1)
        nodes.append(bps[(bps >= t_start) & (bps <= t_end)])
    merged = np.unique(np.concatenate(nodes))
    return merged[merged >= 0]


__all__ = [
    'ProfileEvaluator',
    'build_profile',
    'validate_table',
    'merge_time_nodes',
]
