"""
calculator/operations.py

Arithmetic that can fail. Each helper records its failure on the context and
returns the neutral value `1.0` instead of raising, so a bad operand never turns
into a runtime fault further up the recursion.
"""
import math

from calculator.context import ErrorKind, EvaluationContext


def divide(left: float, right: float, context: EvaluationContext, fragment: str) -> float:
    if right == 0:
        context.fail(ErrorKind.ARITHMETIC, f"Division by zero in '{fragment}'.")
        return 1.0
    return left / right


def modulo(left: float, right: float, context: EvaluationContext, fragment: str) -> float:
    if right == 0:
        context.fail(ErrorKind.ARITHMETIC, f"Modulo by zero in '{fragment}'.")
        return 1.0
    if not math.isfinite(left):
        context.fail(ErrorKind.ARITHMETIC, f"'{fragment}' has no finite remainder.")
        return 1.0
    return math.fmod(left, right)


def power(base: float, exponent: float, context: EvaluationContext, fragment: str) -> float:
    """Raises `base` to `exponent`, rejecting 0^0 and results that are not real numbers."""
    if base == 0 and exponent == 0:
        context.fail(ErrorKind.ARITHMETIC, f"0^0 is undefined in '{fragment}'.")
        return 1.0
    try:
        return math.pow(base, exponent)
    except OverflowError:
        context.fail(ErrorKind.ARITHMETIC, f"'{fragment}' is too large to represent.")
    except ValueError:
        context.fail(ErrorKind.ARITHMETIC, f"'{fragment}' has no real value.")
    return 1.0


def factorial(value: float, context: EvaluationContext) -> float:
    """
    Computes n! for the nearest integer n to `value`. The empty product makes
    every n <= 1 evaluate to 1.

    The running product must leave room for one more multiplication; once it
    does not, the factorial is reported as an overflow instead of returning an
    infinite value.
    """
    if not math.isfinite(value):
        context.fail(ErrorKind.ARITHMETIC, f"Cannot take the factorial of {value}.")
        return 1.0

    n = round(value)
    product = 1.0
    for factor in range(2, n + 1):
        product *= factor
        if math.isinf(product * (factor + 1)):
            context.fail(ErrorKind.ARITHMETIC, f"{n}! is too large to represent (overflow).")
            return 1.0
    return product
