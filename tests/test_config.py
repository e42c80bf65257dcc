"""Tests for environment-driven settings."""

import logging

import pytest

import config


class TestReadPositiveInt:
    def test_default_when_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CALC_TEST_VALUE", raising=False)
        assert config.read_positive_int("CALC_TEST_VALUE", 7) == 7

    def test_default_when_blank(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CALC_TEST_VALUE", "  ")
        assert config.read_positive_int("CALC_TEST_VALUE", 7) == 7

    @pytest.mark.parametrize(("raw", "expected"), [("12", 12), (" 40 ", 40), ("1_000", 1000)])
    def test_valid(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
        monkeypatch.setenv("CALC_TEST_VALUE", raw)
        assert config.read_positive_int("CALC_TEST_VALUE", 7) == expected

    @pytest.mark.parametrize("raw", ["0", "-5", "ten", "2.5"])
    def test_invalid_is_logged(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture, raw: str
    ) -> None:
        monkeypatch.setenv("CALC_TEST_VALUE", raw)
        with caplog.at_level(logging.WARNING):
            assert config.read_positive_int("CALC_TEST_VALUE", 7) == 7
        assert "CALC_TEST_VALUE" in caplog.text


class TestDefaults:
    def test_limits_are_positive(self) -> None:
        for value in (config.MAX_DICE_COUNT, config.ROLL_TRACE_MAX_CHARS, config.ROLL_TRACE_MAX_DICE,
                      config.MAX_DEPTH, config.MAX_EXPRESSION_LENGTH):
            assert value >= 1

    def test_paths_live_beside_the_application(self) -> None:
        assert config.ENV_PATH.endswith("calc.env")
        assert config.LOG_PATH.endswith("calculator.log")
