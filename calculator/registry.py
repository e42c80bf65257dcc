"""
calculator/registry.py

Static tables of the functions and constants the evaluator understands.

Every table is an explicit ordered tuple because the evaluator matches names in
table order: unary and multivariate functions by prefix (case-insensitive),
constants by suffix (case-sensitive). Where one name is a prefix of another
(`sin`/`sinh`) the longer one must come first.
"""
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import NamedTuple, Optional


def _any_real(x: float) -> bool:
    return True


def _any_arguments(args: Sequence[float]) -> bool:
    return True


@dataclass(frozen=True)
class UnaryFunction:
    """A single-argument function gated by a domain predicate on its argument."""
    name: str
    transform: Callable[[float], float]
    domain: Callable[[float], bool] = _any_real


@dataclass(frozen=True)
class MultivariateFunction:
    """
    A function over an argument array. `arity` (when set) is checked before
    the domain predicate so the user gets a clearer message for a wrong
    argument count.
    """
    name: str
    transform: Callable[[Sequence[float]], float]
    domain: Callable[[Sequence[float]], bool] = _any_arguments
    arity: Optional[int] = None


class Constant(NamedTuple):
    name: str
    value: float


def _cbrt(x: float) -> float:
    return math.copysign(abs(x) ** (1 / 3), x)


def _log(args: Sequence[float]) -> float:
    base, value = args
    return math.log(value) / math.log(base)


# --- Multivariate Functions ---
# Checked before the unary table, so `log` never collides with `ln`.
MULTIVARIATE_FUNCTIONS: tuple[MultivariateFunction, ...] = (
    MultivariateFunction('max', max),
    MultivariateFunction('min', min),
    MultivariateFunction(
        'log', _log,
        domain=lambda args: args[0] > 0 and args[1] > 0 and args[0] != 1,
        arity=2,
    ),
)

# --- Unary Functions ---
UNARY_FUNCTIONS: tuple[UnaryFunction, ...] = (
    UnaryFunction('arcsin', math.asin, lambda x: -1 <= x <= 1),
    UnaryFunction('arccos', math.acos, lambda x: -1 <= x <= 1),
    UnaryFunction('arctan', math.atan),
    UnaryFunction('sinh', math.sinh),
    UnaryFunction('cosh', math.cosh),
    UnaryFunction('tanh', math.tanh),
    UnaryFunction('sin', math.sin),
    UnaryFunction('cos', math.cos),
    UnaryFunction('tan', math.tan, lambda x: math.cos(x) != 0),
    UnaryFunction('sqrt', math.sqrt, lambda x: x >= 0),
    UnaryFunction('cbrt', _cbrt),
    UnaryFunction('abs', abs),
    UnaryFunction('ceil', lambda x: float(math.ceil(x))),
    UnaryFunction('floor', lambda x: float(math.floor(x))),
    UnaryFunction('exp', math.exp),
    UnaryFunction('ln', math.log, lambda x: x > 0),
)

# --- Constants ---
# SI values. Longest names first so suffix matching stays unambiguous.
CONSTANTS: tuple[Constant, ...] = (
    Constant('electron', 1.602176634e-19),   # elementary charge, C
    Constant('epsilon', 8.8541878128e-12),   # vacuum permittivity, F/m
    Constant('mu0', 1.25663706212e-6),       # vacuum permeability, N/A^2
    Constant('phi', (1 + math.sqrt(5)) / 2),
    Constant('pi', math.pi),
    Constant('G', 6.67430e-11),              # gravitational constant
    Constant('c', 299792458.0),              # speed of light, m/s
    Constant('e', math.e),
    Constant('k', 1.380649e-23),             # Boltzmann constant, J/K
)


def match_multivariate(text: str) -> Optional[MultivariateFunction]:
    """Returns the first multivariate function whose name starts `text`."""
    lowered = text.lower()
    for function in MULTIVARIATE_FUNCTIONS:
        if lowered.startswith(function.name):
            return function
    return None


def match_unary(text: str) -> Optional[UnaryFunction]:
    lowered = text.lower()
    for function in UNARY_FUNCTIONS:
        if lowered.startswith(function.name):
            return function
    return None


def match_constant(text: str) -> Optional[Constant]:
    """Returns the first constant whose name ends `text`."""
    for constant in CONSTANTS:
        if text.endswith(constant.name):
            return constant
    return None
