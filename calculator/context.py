"""
calculator/context.py

The per-evaluation accumulator that is threaded through every recursive step of
the evaluator. Instead of raising exceptions for bad input, each step records
errors and reasoning here and the callers check `error_flag` after every
recursive return.

Lifecycle: one `EvaluationContext` is created per top-level evaluation, mutated
by every step, and read by the caller once the evaluation is finished. It is
never shared between evaluations.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class ErrorKind(Enum):
    """The category an evaluation error belongs to."""
    SYNTAX = "syntax"
    PARSE = "parse"
    DOMAIN = "domain"
    ARITHMETIC = "arithmetic"


class EvaluationError(NamedTuple):
    kind: ErrorKind
    message: str


class TraceEntry(NamedTuple):
    """One human-readable reasoning step and the sub-expression it applied to."""
    message: str
    fragment: str


# --- Outcome ---
# A finished evaluation read as a tagged union: either a trusted value or the
# collected error messages. An `Err` never carries a number.

@dataclass(frozen=True)
class Ok:
    value: float


@dataclass(frozen=True)
class Err:
    messages: tuple[str, ...]
    trace: tuple[TraceEntry, ...]


Outcome = Ok | Err


@dataclass
class EvaluationContext:
    """
    Mutable state of a single evaluation.

    `errors` is only ever appended to, so every failure that was recorded along
    any path before the flag was noticed stays visible. `value` is diagnostic
    once `error_flag` is set and must not be presented as a result.
    """
    expression: str = ""
    value: float = 0.0
    error_flag: bool = False
    errors: list[EvaluationError] = field(default_factory=list)
    trace: list[TraceEntry] = field(default_factory=list)
    roll_trace: str = ""
    roll_count: int = 0

    def fail(self, kind: ErrorKind, message: str) -> None:
        """Records an error and raises the flag. Never clears earlier errors."""
        self.error_flag = True
        self.errors.append(EvaluationError(kind, message))

    def log(self, message: str, fragment: str) -> None:
        self.trace.append(TraceEntry(message, fragment))

    def log_roll(self, line: str) -> None:
        self.roll_trace = f"{self.roll_trace}\n{line}" if self.roll_trace else line

    @property
    def error_messages(self) -> list[str]:
        return [error.message for error in self.errors]

    @property
    def error_message(self) -> str:
        """All error messages joined into one (possibly multi-line) string."""
        return "\n".join(self.error_messages)

    @property
    def error_kinds(self) -> list[ErrorKind]:
        return [error.kind for error in self.errors]

    def outcome(self) -> Outcome:
        if self.error_flag:
            return Err(tuple(self.error_messages), tuple(self.trace))
        return Ok(self.value)
