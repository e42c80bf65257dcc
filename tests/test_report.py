"""Tests for the text report."""

import pytest

from calculator.evaluator import evaluate_expression
from calculator.report import format_number, render


class TestFormatNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (14.0, "14"),
            (-3.0, "-3"),
            (0.5, "0.5"),
            (1 / 3, "0.333333333333333"),
            (1e20, "1e+20"),
            (1.5e-7, "1.5e-07"),
            (float("inf"), "inf"),
        ],
    )
    def test_format(self, value: float, expected: str) -> None:
        assert format_number(value) == expected


class TestRender:
    def test_result(self) -> None:
        assert render(evaluate_expression("2+3*4")) == "Result: 14"

    def test_errors_replace_the_result(self) -> None:
        text = render(evaluate_expression("1/0"))
        assert text == "Error evaluating '1/0':\n- Division by zero in '1/0'."
        assert "Result" not in text

    def test_every_error_is_listed(self) -> None:
        lines = render(evaluate_expression("(1+[2")).splitlines()
        assert len(lines) == 3
        assert all(line.startswith("- ") for line in lines[1:])

    def test_rolls_are_listed(self, low_rng) -> None:
        text = render(evaluate_expression("3d6", rng=low_rng))
        assert text == "Result: 3\nRolls:\n  3d6: [1, 1, 1] = 3"

    def test_steps_only_when_verbose(self) -> None:
        context = evaluate_expression("(2+3)*4")
        assert "Steps:" not in render(context)
        verbose = render(context, verbose=True)
        assert "Steps:" in verbose
        assert "  5 * 4 = 20  [5.0*4]" in verbose.splitlines()
