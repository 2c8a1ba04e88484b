"""
Rate law adaptation for crystallization kinetics.

Users may specify growth, nucleation and solubility in several shapes:
a constant, a text expression, a tagged :class:`RateLaw` naming the
arguments explicitly, or a plain callable whose argument list is inferred.
Everything is normalized to one canonical signature per law:

- growth:     ``G(S, T, y) -> ndarray`` (same shape as y)
- nucleation: ``B(S, T, m) -> float`` with m = (m0, m1, m2, m3) per unit
  medium mass
- solubility: ``cs(T, xm) -> float`` with xm the antisolvent mass fraction

Text expressions are parsed with sympy and compiled to numpy functions.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np
import sympy as sp

GROWTH_ARGS = ("S", "T", "y")
NUCLEATION_ARGS = ("S", "T", "m")
SOLUBILITY_ARGS = ("T", "xm")

# Parameter names that identify the second argument of a two-argument law
_SIZE_NAMES = {"y", "l", "size", "sizes", "x", "length", "grid"}
_TEMPERATURE_NAMES = {"t", "temp", "temperature"}
_MOMENT_NAMES = {"m", "mom", "moments", "mu", "mk"}
_FRACTION_NAMES = {"xm", "x", "fraction", "w", "antisolvent"}

_GROWTH_PROBE = np.linspace(0.1, 1.0, 10)
_MOMENT_PROBE = np.array([1.0, 0.5, 0.3, 0.2])


@dataclass
class Adapted:
    """Outcome of normalizing a user-supplied value.

    Attributes:
        value: Normalized value (None when rejected)
        kind: Short description of what was recognized
        warnings: Non-fatal remarks; the value is still installed
        error: Rejection reason; the caller keeps its previous value
    """

    value: Any = None
    kind: str = ""
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RateLaw:
    """Callable tagged with the names of the arguments it takes.

    ``args`` is an ordered subset of the canonical arguments of the law it
    is assigned to, e.g. ``RateLaw(lambda S, y: 1e-3 * (S - 1) * y, ("S", "y"))``
    as growth rate.
    """

    func: Callable
    args: Tuple[str, ...]

    def __call__(self, *values):
        return self.func(*values)


def positional_names(func: Callable) -> Optional[Tuple[str, ...]]:
    """Names of the required positional parameters, or None if unknown."""
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return None
    if any(p.kind == p.VAR_POSITIONAL for p in params):
        return None
    return tuple(
        p.name for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    )


def _reorder(func: Callable, given: Sequence[str], canonical: Sequence[str]) -> Callable:
    index = [canonical.index(a) for a in given]

    def wrapped(*values):
        return func(*(values[i] for i in index))

    return wrapped


def _constant_float(value) -> Optional[float]:
    if isinstance(value, (bool, np.bool_)) or isinstance(value, str):
        return None
    if np.isscalar(value) or (isinstance(value, np.ndarray) and value.size == 1):
        try:
            return float(np.asarray(value).reshape(-1)[0])
        except (TypeError, ValueError):
            return None
    return None


def _compile_expression(text: str, symbols: Sequence[str]) -> Tuple[Optional[Callable], Optional[str]]:
    """Parse ``text`` with sympy and lambdify over ``symbols``."""
    syms = sp.symbols(" ".join(symbols))
    local = {name: sym for name, sym in zip(symbols, syms)}
    try:
        expr = sp.sympify(text, locals=local)
    except (sp.SympifyError, SyntaxError, TypeError) as exc:
        return None, f"could not parse expression '{text}': {exc}"
    unknown = {str(s) for s in expr.free_symbols} - set(symbols)
    if unknown:
        return None, (
            f"expression '{text}' uses unknown symbols {sorted(unknown)}; "
            f"allowed: {list(symbols)}"
        )
    return sp.lambdify(syms, expr, modules="numpy"), None


# ---------------------------------------------------------------------------
# Growth
# ---------------------------------------------------------------------------

def _growth_from_full(func: Callable) -> Callable:
    def growth(S, T, y):
        y = np.asarray(y, dtype=float)
        out = np.asarray(func(S, T, y), dtype=float)
        if out.ndim == 0:
            return np.full(y.shape, float(out))
        return out

    return growth


def _probe_growth(func: Callable) -> List[str]:
    out = np.asarray(func(1.1, 1.0, _GROWTH_PROBE))
    if out.size == 1:
        return [
            "growth rate returned a single value for a size vector; "
            "it is applied to every size"
        ]
    if out.shape != _GROWTH_PROBE.shape:
        return [
            f"growth rate returned shape {out.shape} for a size vector of "
            f"shape {_GROWTH_PROBE.shape}"
        ]
    return []


def adapt_growth_rate(value) -> Adapted:
    """Normalize a growth rate specification to ``G(S, T, y)``.

    Accepted inputs:

    - number: size-independent constant growth
    - string: expression in ``S``, ``T`` and ``y``
    - :class:`RateLaw`: callable with explicitly named arguments
    - callable with 3 arguments: used as ``G(S, T, y)``; an output that does
      not match the size vector (a scalar included) is reported but the law
      is still installed, a scalar being broadcast over the sizes
    - callable with 2 arguments: ``(S, y)`` or ``(S, T)``, decided by the
      second parameter's name and otherwise by probing the output length
    - callable with 1 argument: ``G(S)``

    Returns:
        :class:`Adapted` with the canonical callable, or an error
    """
    const = _constant_float(value)
    if const is not None:
        if not np.isfinite(const):
            return Adapted(error="growth rate must be finite")
        return Adapted(value=_growth_from_full(lambda S, T, y: const), kind="constant")

    if isinstance(value, str):
        func, error = _compile_expression(value, GROWTH_ARGS)
        if error:
            return Adapted(error=f"growth rate: {error}")
        return Adapted(value=_growth_from_full(func), kind="expression")

    if isinstance(value, RateLaw):
        if not set(value.args) <= set(GROWTH_ARGS) or len(set(value.args)) != len(value.args):
            return Adapted(error=f"growth rate arguments {value.args} must be a subset of {GROWTH_ARGS}")
        return Adapted(
            value=_growth_from_full(_reorder(value.func, value.args, GROWTH_ARGS)),
            kind="tagged(" + ",".join(value.args) + ")",
        )

    if not callable(value):
        return Adapted(error="growth rate must be a number, an expression or a function")

    names = positional_names(value)
    nargs = len(names) if names is not None else 3

    if nargs == 3:
        growth = _growth_from_full(value)
        try:
            remarks = _probe_growth(value)
        except Exception as exc:  # noqa: BLE001 - user code
            return Adapted(error=f"growth rate failed on a probe call: {exc}")
        return Adapted(value=growth, kind="full", warnings=remarks)

    if nargs == 2:
        second = names[1].lower()
        if second in _SIZE_NAMES:
            args = ("S", "y")
        elif second in _TEMPERATURE_NAMES:
            args = ("S", "T")
        else:
            try:
                if np.size(value(1.1, 1.0)) == 1:
                    args = ("S", "T")
                elif np.size(value(1.1, np.array([1.0, 2.0]))) == 2:
                    args = ("S", "y")
                else:
                    args = None
            except Exception as exc:  # noqa: BLE001 - user code
                return Adapted(error=f"growth rate failed on a probe call: {exc}")
            if args is None:
                return Adapted(error="could not decide whether the growth rate takes (S, T) or (S, y)")
        return Adapted(
            value=_growth_from_full(_reorder(value, args, GROWTH_ARGS)),
            kind="(" + ",".join(args) + ")",
        )

    if nargs == 1:
        return Adapted(value=_growth_from_full(lambda S, T, y: value(S)), kind="(S)")

    return Adapted(error="growth rate function must take one to three arguments")


# ---------------------------------------------------------------------------
# Nucleation
# ---------------------------------------------------------------------------

def _nucleation_from_full(func: Callable) -> Callable:
    def nucleation(S, T, m):
        return float(np.asarray(func(S, T, m), dtype=float).reshape(-1)[0])

    return nucleation


def _expression_nucleation(func: Callable) -> Callable:
    def nucleation(S, T, m):
        m = np.asarray(m, dtype=float)
        return func(S, T, m[0], m[1], m[2], m[3])

    return nucleation


def _probe_nucleation(func: Callable) -> List[str]:
    out = np.asarray(func(1.1, 1.0, _MOMENT_PROBE))
    if out.size != 1:
        return [f"nucleation rate returned {out.size} values instead of a scalar; the first is used"]
    return []


def adapt_nucleation_rate(value) -> Adapted:
    """Normalize a nucleation rate specification to ``B(S, T, m)``.

    Accepted inputs mirror :func:`adapt_growth_rate`. Expressions may use
    ``S``, ``T`` and the moments ``m0`` to ``m3``. A two-argument callable
    is ``(S, m)`` when its second parameter is named like a moment vector
    (``m``, ``mu``, ``moments``), else ``(S, T)``.
    """
    const = _constant_float(value)
    if const is not None:
        if not np.isfinite(const):
            return Adapted(error="nucleation rate must be finite")
        return Adapted(value=_nucleation_from_full(lambda S, T, m: const), kind="constant")

    if isinstance(value, str):
        func, error = _compile_expression(value, ("S", "T", "m0", "m1", "m2", "m3"))
        if error:
            return Adapted(error=f"nucleation rate: {error}")
        return Adapted(value=_nucleation_from_full(_expression_nucleation(func)), kind="expression")

    if isinstance(value, RateLaw):
        if not set(value.args) <= set(NUCLEATION_ARGS) or len(set(value.args)) != len(value.args):
            return Adapted(
                error=f"nucleation rate arguments {value.args} must be a subset of {NUCLEATION_ARGS}"
            )
        return Adapted(
            value=_nucleation_from_full(_reorder(value.func, value.args, NUCLEATION_ARGS)),
            kind="tagged(" + ",".join(value.args) + ")",
        )

    if not callable(value):
        return Adapted(error="nucleation rate must be a number, an expression or a function")

    names = positional_names(value)
    nargs = len(names) if names is not None else 3

    if nargs == 3:
        func = value
        kind = "full"
    elif nargs == 2:
        args = ("S", "m") if names[1].lower() in _MOMENT_NAMES else ("S", "T")
        func = _reorder(value, args, NUCLEATION_ARGS)
        kind = "(" + ",".join(args) + ")"
    elif nargs == 1:
        func = lambda S, T, m: value(S)  # noqa: E731
        kind = "(S)"
    else:
        return Adapted(error="nucleation rate function must take one to three arguments")

    try:
        remarks = _probe_nucleation(func)
    except Exception as exc:  # noqa: BLE001 - user code
        return Adapted(error=f"nucleation rate failed on a probe call: {exc}")
    return Adapted(value=_nucleation_from_full(func), kind=kind, warnings=remarks)


# ---------------------------------------------------------------------------
# Solubility
# ---------------------------------------------------------------------------

def _solubility_from_full(func: Callable) -> Callable:
    def solubility(T, xm=0.0):
        return float(np.asarray(func(T, xm), dtype=float).reshape(-1)[0])

    return solubility


def adapt_solubility(value) -> Adapted:
    """Normalize a solubility specification to ``cs(T, xm)``.

    A number is a constant solubility, a string an expression in ``T`` and
    ``xm``. One-argument callables depend on temperature unless their
    parameter is named like a mass fraction (``xm``).
    """
    const = _constant_float(value)
    if const is not None:
        if not np.isfinite(const) or const < 0:
            return Adapted(error="solubility must be a finite, non-negative value")
        return Adapted(value=_solubility_from_full(lambda T, xm: const), kind="constant")

    if isinstance(value, str):
        func, error = _compile_expression(value, SOLUBILITY_ARGS)
        if error:
            return Adapted(error=f"solubility: {error}")
        return Adapted(value=_solubility_from_full(func), kind="expression")

    if isinstance(value, RateLaw):
        if not set(value.args) <= set(SOLUBILITY_ARGS) or len(set(value.args)) != len(value.args):
            return Adapted(error=f"solubility arguments {value.args} must be a subset of {SOLUBILITY_ARGS}")
        return Adapted(
            value=_solubility_from_full(_reorder(value.func, value.args, SOLUBILITY_ARGS)),
            kind="tagged(" + ",".join(value.args) + ")",
        )

    if not callable(value):
        return Adapted(
            error="solubility must be a finite, non-negative value or a function with one or two inputs"
        )

    names = positional_names(value)
    nargs = len(names) if names is not None else 2

    if nargs == 1:
        if names[0].lower() in _FRACTION_NAMES:
            return Adapted(value=_solubility_from_full(lambda T, xm: value(xm)), kind="(xm)")
        return Adapted(value=_solubility_from_full(lambda T, xm: value(T)), kind="(T)")
    if nargs == 2:
        return Adapted(value=_solubility_from_full(value), kind="full")
    return Adapted(error="solubility function must take one or two inputs")


__all__ = [
    'Adapted',
    'RateLaw',
    'GROWTH_ARGS',
    'NUCLEATION_ARGS',
    'SOLUBILITY_ARGS',
    'positional_names',
    'adapt_growth_rate',
    'adapt_nucleation_rate',
    'adapt_solubility',
]
