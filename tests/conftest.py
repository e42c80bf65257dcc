import random

import pytest

from calculator.context import EvaluationContext
from calculator.evaluator import EvaluationLimits


class LowRandom:
    """A random source that always draws the lowest face."""

    def randint(self, a: int, b: int) -> int:
        return a


@pytest.fixture
def low_rng() -> LowRandom:
    return LowRandom()


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def context() -> EvaluationContext:
    return EvaluationContext(expression="test")


@pytest.fixture
def limits() -> EvaluationLimits:
    return EvaluationLimits(
        max_dice=999_999,
        roll_trace_max_chars=80,
        roll_trace_max_dice=8,
        max_depth=100,
        max_length=1000,
    )
