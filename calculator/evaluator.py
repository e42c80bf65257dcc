"""
calculator/evaluator.py

A recursive, precedence-driven evaluator for user-typed math expressions such
as "2+3*sin(pi/2)" or "3d6+2". No token stream or syntax tree is built; the
evaluator recurses directly over ever shorter substrings.

Precedence tiers, lowest first:
1. Parenthesis groups, folded into numbers by `Evaluator.simplify`.
2. `+ -`
3. `* /`
4. `^`
5. `d %` (dice and modulo)
6. trailing `!`
7. numeric multiplier + named function, single or multi-argument
8. named constant suffix (`2pi`)
9. bare numeric literal; a leading `_` is the internal negative sign

Tiers 2-5 split on every top-level operator of their set and fold the operands
left to right, which is what splitting at the rightmost operator and recursing
into the left part yields, without a stack frame per operator. Every tier is
therefore left-associative; for `^` this means `2^3^2` is `(2^3)^2`. That is
kept on purpose for compatibility with existing users of the calculator.

Errors never raise. They are recorded on the `EvaluationContext` and every
later step short-circuits to `1.0` once the flag is set.
"""
import logging
import math
import operator as op
import random
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import config
from calculator import dice, operations
from calculator.context import ErrorKind, EvaluationContext
from calculator.dice import RandomSource
from calculator.registry import (
    MultivariateFunction, UnaryFunction, match_constant, match_multivariate, match_unary,
)
from calculator.report import format_number

logger = logging.getLogger(__name__)

# --- Grammar ---

NEGATIVE_MARKER = '_'
ADDITIVE = '+-'
MULTIPLICATIVE = '*/'
POWER = '^'
DICE_OR_MODULO = 'd%'
# A `+`/`-` right after one of these is the sign of the next operand, not a split point.
SIGN_PREFIXES = '+-*/^%dE'

NUMBER_REGEX = re.compile(r'(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
# Only an upper-case exponent marker, so `2e` still reads as 2 * e.
MULTIPLIER_REGEX = re.compile(r'_?(?:\d+\.?\d*|\.\d+)(?:E[+-]?\d+)?')

UNCHECKED_OPERATORS: dict[str, Callable[[float, float], float]] = {
    '+': op.add,
    '-': op.sub,
    '*': op.mul,
}

# One generator for the whole process, seeded once from the OS.
_default_rng = random.Random()


@dataclass(frozen=True)
class EvaluationLimits:
    """Bounds that keep one evaluation finite. Defaults come from `config`."""
    max_dice: int = config.MAX_DICE_COUNT
    roll_trace_max_chars: int = config.ROLL_TRACE_MAX_CHARS
    roll_trace_max_dice: int = config.ROLL_TRACE_MAX_DICE
    max_depth: int = config.MAX_DEPTH
    max_length: int = config.MAX_EXPRESSION_LENGTH


# --- String Helpers ---

def find_splits(expression: str, operators: str, signed: bool = False) -> list[int]:
    """
    Returns the indices of every top-level character of `expression` found in
    `operators`, left to right. Characters nested inside `(...)` or `[...]`
    are never split points.

    With `signed`, a `+`/`-` that directly follows another operator (or an
    exponent `E`) is skipped because it is the sign of its operand. A sign at
    index 0 is still a split point with an empty left operand.
    """
    splits = []
    depth = 0
    for index, char in enumerate(expression):
        if char in '([':
            depth += 1
        elif char in ')]':
            depth -= 1
        elif depth == 0 and char in operators:
            if signed and index > 0 and expression[index - 1] in SIGN_PREFIXES:
                continue
            splits.append(index)
    return splits


def split_top_level(text: str, separator: str) -> list[str]:
    """Splits `text` on every `separator` that is not nested inside brackets."""
    parts = []
    depth = 0
    start = 0
    for index, char in enumerate(text):
        if char in '([':
            depth += 1
        elif char in ')]':
            depth -= 1
        elif char == separator and depth == 0:
            parts.append(text[start:index])
            start = index + 1
    parts.append(text[start:])
    return parts


def closing_bracket(text: str, start: int) -> int:
    """Returns the index of the `]` matching the `[` at `start`, or -1."""
    depth = 0
    for index in range(start, len(text)):
        if text[index] == '[':
            depth += 1
        elif text[index] == ']':
            depth -= 1
            if depth == 0:
                return index
    return -1


def to_literal(value: float) -> str:
    """
    Writes `value` back into expression form. The shortest round-tripping repr
    is used with an upper-case exponent, and a negative sign becomes `_` so it
    cannot be mistaken for subtraction.
    """
    text = repr(float(value)).upper()
    if text.startswith('-'):
        return NEGATIVE_MARKER + text[1:]
    return text


# --- Evaluator ---

class Evaluator:
    """
    Walks one expression through the precedence tiers.

    An instance is bound to a single `EvaluationContext` and random source and
    must not be reused for another evaluation.
    """
    def __init__(self, context: EvaluationContext, rng: RandomSource, limits: EvaluationLimits):
        self.context = context
        self.rng = rng
        self.limits = limits
        self.depth = 0

    def evaluate(self, expression: str) -> float:
        """Evaluates a whitespace-free sub-expression: groups first, then the operator tiers."""
        return self._descend(self._evaluate_groups, expression)

    def simplify(self, expression: str, start: int, end: int, inner: str) -> str:
        """
        Replaces the group `expression[start:end + 1]` (whose contents are
        `inner`) and returns the rewritten expression.

        A group with a top-level comma is an argument list: its commas become
        semicolons and it is wrapped in `[...]` for the function tier to pick
        up. Any other group is evaluated and substituted by its value, with a
        `*` inserted next to an adjacent digit so `3(4+5)` reads as `3*9`.
        """
        fragment = f"({inner})"
        if not inner:
            self.context.fail(ErrorKind.SYNTAX, f"Empty parenthesis in '{expression}'.")
            return expression

        arguments = split_top_level(inner, ',')
        if len(arguments) > 1:
            if not all(arguments):
                self.context.fail(ErrorKind.SYNTAX, f"Malformed argument list '{fragment}'.")
                return expression
            replacement = f"[{';'.join(arguments)}]"
            self.context.log(f"Argument list {fragment} -> {replacement}", fragment)
            return expression[:start] + replacement + expression[end + 1:]

        value = self.evaluate(inner)
        if self.context.error_flag:
            return expression
        if not math.isfinite(value):
            self.context.fail(ErrorKind.ARITHMETIC, f"'{fragment}' is too large to represent.")
            return expression

        replacement = to_literal(value)
        if start > 0 and expression[start - 1].isdigit():
            replacement = '*' + replacement
        if end + 1 < len(expression) and expression[end + 1].isdigit():
            replacement += '*'
        self.context.log(f"{fragment} = {format_number(value)}", fragment)
        return expression[:start] + replacement + expression[end + 1:]

    # --- Recursion Plumbing ---

    def _descend(self, tier: Callable[[str], float], expression: str) -> float:
        """Every recursive re-entry goes through here so the depth guard sees it."""
        if self.context.error_flag:
            return 1.0
        if self.depth >= self.limits.max_depth:
            self.context.fail(
                ErrorKind.SYNTAX,
                f"Expression is nested too deeply (the maximum depth is {self.limits.max_depth})."
            )
            return 1.0
        self.depth += 1
        try:
            return tier(expression)
        finally:
            self.depth -= 1

    def _operand(self, text: str, neutral: float) -> float:
        if not text:
            return neutral
        return self._descend(self._additive, text)

    # --- Tier 1: Groups ---

    def _evaluate_groups(self, expression: str) -> float:
        expression = self._resolve_groups(expression)
        if self.context.error_flag:
            return 1.0
        return self._additive(expression)

    def _resolve_groups(self, expression: str) -> str:
        balanced = True
        if expression.count('(') != expression.count(')'):
            self.context.fail(ErrorKind.SYNTAX, f"Unbalanced parenthesis in '{expression}'.")
            balanced = False
        if expression.count('[') != expression.count(']'):
            self.context.fail(ErrorKind.SYNTAX, f"Unbalanced brackets in '{expression}'.")
            balanced = False
        if not balanced:
            return expression

        # Innermost first: the first `)` closes the nearest `(` before it.
        while ')' in expression and not self.context.error_flag:
            end = expression.find(')')
            start = expression.rfind('(', 0, end)
            if start < 0:
                self.context.fail(ErrorKind.SYNTAX, f"Unbalanced parenthesis in '{expression}'.")
                break
            expression = self.simplify(expression, start, end, expression[start + 1:end])
        return expression

    # --- Tiers 2-5: Binary Operators ---

    def _additive(self, expression: str) -> float:
        return self._split_tier(expression, ADDITIVE, 0.0, self._multiplicative, signed=True)

    def _multiplicative(self, expression: str) -> float:
        return self._split_tier(expression, MULTIPLICATIVE, 1.0, self._power)

    def _power(self, expression: str) -> float:
        return self._split_tier(expression, POWER, 1.0, self._dice_or_modulo)

    def _dice_or_modulo(self, expression: str) -> float:
        return self._split_tier(expression, DICE_OR_MODULO, 1.0, self._factorial)

    def _split_tier(self, expression: str, operators: str, neutral: float,
                    next_tier: Callable[[str], float], signed: bool = False) -> float:
        if self.context.error_flag:
            return 1.0
        splits = find_splits(expression, operators, signed)
        if not splits:
            return next_tier(expression)

        # Fold left to right over every top-level operator of the tier.
        result = self._operand(expression[:splits[0]], neutral)
        for position, index in enumerate(splits):
            end = splits[position + 1] if position + 1 < len(splits) else len(expression)
            right = self._operand(expression[index + 1:end], neutral)
            if self.context.error_flag:
                return 1.0

            symbol = expression[index]
            fragment = expression[:end]
            left = result
            result = self._combine(symbol, left, right, fragment)
            if self.context.error_flag:
                return 1.0
            self.context.log(
                f"{format_number(left)} {symbol} {format_number(right)} = {format_number(result)}",
                fragment,
            )
        return result

    def _combine(self, symbol: str, left: float, right: float, fragment: str) -> float:
        if symbol in UNCHECKED_OPERATORS:
            return UNCHECKED_OPERATORS[symbol](left, right)
        if symbol == '/':
            return operations.divide(left, right, self.context, fragment)
        if symbol == '^':
            return operations.power(left, right, self.context, fragment)
        if symbol == '%':
            return operations.modulo(left, right, self.context, fragment)
        return dice.roll(left, right, self.context, self.rng, self.limits)

    # --- Tier 6: Factorial ---

    def _factorial(self, expression: str) -> float:
        if self.context.error_flag:
            return 1.0
        if not expression.endswith('!'):
            return self._apply_function(expression)

        operand = expression[:-1]
        if not operand:
            self.context.fail(ErrorKind.SYNTAX, f"Factorial is missing its operand in '{expression}'.")
            return 1.0
        value = self._descend(self._factorial, operand)
        if self.context.error_flag:
            return 1.0
        result = operations.factorial(value, self.context)
        if not self.context.error_flag:
            self.context.log(f"{format_number(value)}! = {format_number(result)}", expression)
        return result

    # --- Tier 7: Functions ---

    def _apply_function(self, expression: str) -> float:
        if self.context.error_flag:
            return 1.0
        match = MULTIPLIER_REGEX.match(expression)
        multiplier_text = match.group(0) if match else ''
        rest = expression[len(multiplier_text):]

        multivariate = match_multivariate(rest)
        if multivariate:
            return self._apply_multivariate(multivariate, multiplier_text, rest[len(multivariate.name):], expression)
        unary = match_unary(rest)
        if unary:
            return self._apply_unary(unary, multiplier_text, rest[len(unary.name):], expression)
        return self._apply_constant(expression)

    def _apply_unary(self, function: UnaryFunction, multiplier_text: str,
                     argument_text: str, expression: str) -> float:
        if not argument_text:
            self.context.fail(ErrorKind.SYNTAX, f"Function {function.name} is missing its argument in '{expression}'.")
            return 1.0
        if argument_text.startswith('['):
            self.context.fail(ErrorKind.SYNTAX, f"Function {function.name} takes a single argument.")
            return 1.0

        argument = self._descend(self._apply_function, argument_text)
        if self.context.error_flag:
            return 1.0
        if not math.isfinite(argument):
            self.context.fail(ErrorKind.ARITHMETIC, f"The argument of {function.name} is too large to represent.")
            return 1.0
        if not function.domain(argument):
            self.context.fail(
                ErrorKind.DOMAIN,
                f"Value {format_number(argument)} not included in the domain of function {function.name}."
            )
            return 1.0
        try:
            value = function.transform(argument)
        except (ValueError, OverflowError):
            self.context.fail(ErrorKind.ARITHMETIC, f"{function.name}({format_number(argument)}) cannot be represented.")
            return 1.0

        result = self._finite(self._multiplier(multiplier_text) * value, expression)
        if not self.context.error_flag:
            self.context.log(f"{function.name}({format_number(argument)}) = {format_number(value)}", expression)
        return result

    def _apply_multivariate(self, function: MultivariateFunction, multiplier_text: str,
                            argument_text: str, expression: str) -> float:
        if not argument_text:
            self.context.fail(ErrorKind.SYNTAX, f"Function {function.name} is missing its argument in '{expression}'.")
            return 1.0

        if argument_text.startswith('[') and closing_bracket(argument_text, 0) == len(argument_text) - 1:
            pieces = split_top_level(argument_text[1:-1], ';')
            if not all(pieces):
                self.context.fail(ErrorKind.SYNTAX, f"Malformed argument list in '{expression}'.")
                return 1.0
            arguments = [self.evaluate(piece) for piece in pieces]
        else:
            arguments = [self._descend(self._apply_function, argument_text)]
        if self.context.error_flag:
            return 1.0

        shown = ', '.join(format_number(argument) for argument in arguments)
        if function.arity is not None and len(arguments) != function.arity:
            self.context.fail(
                ErrorKind.DOMAIN,
                f"Function {function.name} takes exactly {function.arity} arguments, got {len(arguments)}."
            )
            return 1.0
        if not function.domain(arguments):
            self.context.fail(ErrorKind.DOMAIN, f"Values ({shown}) not included in the domain of function {function.name}.")
            return 1.0
        try:
            value = function.transform(arguments)
        except (ValueError, OverflowError, ZeroDivisionError):
            self.context.fail(ErrorKind.ARITHMETIC, f"{function.name}({shown}) cannot be represented.")
            return 1.0

        result = self._finite(self._multiplier(multiplier_text) * value, expression)
        if not self.context.error_flag:
            self.context.log(f"{function.name}({shown}) = {format_number(value)}", expression)
        return result

    def _multiplier(self, text: str) -> float:
        return self._parse_literal(text) if text else 1.0

    def _finite(self, value: float, fragment: str) -> float:
        if self.context.error_flag:
            return 1.0
        if not math.isfinite(value):
            self.context.fail(ErrorKind.ARITHMETIC, f"'{fragment}' is too large to represent.")
            return 1.0
        return value

    # --- Tiers 8-9: Constants and Literals ---

    def _apply_constant(self, expression: str) -> float:
        constant = match_constant(expression)
        if constant is None:
            return self._parse_literal(expression)

        prefix = expression[:-len(constant.name)]
        factor = self._descend(self._apply_function, prefix) if prefix else 1.0
        if self.context.error_flag:
            return 1.0
        result = self._finite(factor * constant.value, expression)
        if not self.context.error_flag:
            self.context.log(f"{constant.name} = {constant.value}", expression)
        return result

    def _parse_literal(self, text: str) -> float:
        negative = text.startswith(NEGATIVE_MARKER)
        body = text[1:] if negative else text
        if not NUMBER_REGEX.fullmatch(body):
            self.context.fail(ErrorKind.PARSE, f"Unable to parse '{text}' as a number.")
            return 1.0
        value = float(body)
        if math.isinf(value):
            self.context.fail(ErrorKind.ARITHMETIC, f"'{text}' is too large to represent.")
            return 1.0
        return -value if negative else value


def evaluate_expression(expression: str, rng: Optional[RandomSource] = None,
                        limits: Optional[EvaluationLimits] = None) -> EvaluationContext:
    """
    Evaluates a user-typed expression and returns the finished context.

    Whitespace is ignored. This never raises for any string input: every
    problem ends up in `context.errors` with `context.error_flag` set, and the
    numeric `value` must not be trusted in that case.

    `rng` only matters for dice; pass a seeded `random.Random` (or any object
    with `randint`) for reproducible rolls.
    """
    limits = limits or EvaluationLimits()
    context = EvaluationContext(expression=expression)
    text = ''.join(expression.split())

    if not text:
        context.fail(ErrorKind.SYNTAX, "There is nothing to evaluate.")
    elif len(text) > limits.max_length:
        context.fail(
            ErrorKind.SYNTAX,
            f"Expression is too long ({len(text)} characters, the maximum is {limits.max_length})."
        )
    else:
        evaluator = Evaluator(context, rng or _default_rng, limits)
        try:
            context.value = evaluator.evaluate(text)
        except RecursionError:
            context.fail(ErrorKind.SYNTAX, "Expression is too complex to evaluate.")
        if not context.error_flag and not math.isfinite(context.value):
            context.fail(ErrorKind.ARITHMETIC, "The result is too large to represent.")

    if context.error_flag:
        logger.warning(f"Handled error in calculator for query '{expression}': {context.error_message}")
    else:
        logger.debug(f"Evaluated '{expression}' = {context.value}")
    return context
