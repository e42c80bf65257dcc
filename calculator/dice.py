"""
calculator/dice.py

The `d` operator: rolls `count` dice with `sides` faces each and sums them.

The random source is injected by the caller (one generator per evaluation,
seedable for tests) rather than created per roll. Anything with a
`randint(a, b)` method will do.
"""
import math
from typing import TYPE_CHECKING, Protocol

from calculator.context import ErrorKind, EvaluationContext

if TYPE_CHECKING:
    from calculator.evaluator import EvaluationLimits


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


ELLIPSIS = "..."


def roll(count: float, sides: float, context: EvaluationContext, rng: RandomSource,
         limits: "EvaluationLimits") -> float:
    """
    Rolls `round(count)` dice of `round(sides)` faces and returns the total.

    A negative count rolls `|count|` dice and negates the total. Both the count
    and the face number are validated before anything is drawn, and both
    problems are reported if both are present.

    Every roll adds one line to `context.roll_trace`. Individual values are
    listed until either the per-line character budget or the per-evaluation
    die budget (`context.roll_count`) runs out; the rest collapse into `...`.
    """
    valid = True
    if not math.isfinite(count) or abs(round(count)) > limits.max_dice:
        context.fail(ErrorKind.ARITHMETIC,
                     f"Too many dice to roll: {count:g} (the maximum is {limits.max_dice}).")
        valid = False
    if not math.isfinite(sides) or round(sides) < 1:
        context.fail(ErrorKind.ARITHMETIC, f"A die needs at least one face, got {sides:g}.")
        valid = False
    if not valid:
        return 1.0

    dice_count = round(count)
    faces = round(sides)
    notation = f"{dice_count}d{faces}"

    if dice_count == 0:
        context.log_roll(f"{notation}: [] = 0")
        return 0.0

    sign = "-" if dice_count < 0 else ""
    prefix = f"{notation}: {sign}["
    shown: list[str] = []
    line_length = len(prefix)
    truncated = False
    total = 0

    for _ in range(abs(dice_count)):
        value = rng.randint(1, faces)
        total += value
        if truncated:
            continue
        text = str(value)
        if (context.roll_count >= limits.roll_trace_max_dice
                or line_length + len(text) + 2 > limits.roll_trace_max_chars):
            truncated = True
            continue
        shown.append(text)
        line_length += len(text) + 2
        context.roll_count += 1

    if truncated:
        shown.append(ELLIPSIS)
    if dice_count < 0:
        total = -total

    context.log_roll(f"{prefix}{', '.join(shown)}] = {total}")
    return float(total)
