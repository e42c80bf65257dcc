"""
calculator/report.py

Turns a finished evaluation into text for a person to read.
"""
import math

from calculator.context import Err, EvaluationContext


def format_number(value: float) -> str:
    """
    Formats a number for display: whole numbers without a decimal point,
    fractions to fifteen places with trailing zeros removed, and very large or
    very small magnitudes in scientific notation.
    """
    if not math.isfinite(value):
        return str(value)
    magnitude = abs(value)
    if value == int(value) and magnitude < 1e15:
        return str(int(value))
    if magnitude >= 1e15 or magnitude < 1e-6:
        return f"{value:.10g}"
    return f"{value:.15f}".rstrip('0').rstrip('.')


def render(context: EvaluationContext, verbose: bool = False) -> str:
    """
    Builds the report for one evaluation. A failed evaluation shows every
    collected error message and never a number. Dice rolls are always listed;
    the step-by-step trace only when `verbose` is set.
    """
    outcome = context.outcome()
    if isinstance(outcome, Err):
        lines = [f"Error evaluating '{context.expression}':"]
        lines.extend(f"- {message}" for message in outcome.messages)
    else:
        lines = [f"Result: {format_number(outcome.value)}"]

    if context.roll_trace:
        lines.append("Rolls:")
        lines.extend(f"  {line}" for line in context.roll_trace.splitlines())

    if verbose and context.trace:
        lines.append("Steps:")
        lines.extend(f"  {entry.message}  [{entry.fragment}]" for entry in context.trace)

    return "\n".join(lines)
