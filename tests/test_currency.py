"""Tests for rupiah parsing and formatting."""

from __future__ import annotations

import pytest

import currency


def test_parse_display_string_with_prefix_and_decimals() -> None:
    assert currency.parse("Rp 15.000,75") == 15000.75


def test_parse_dot_is_thousands_separator() -> None:
    assert currency.parse("15.000") == 15000.0
    assert currency.parse("1.250.000") == 1250000.0


def test_parse_negative_amount() -> None:
    assert currency.parse("-2.500") == -2500.0


@pytest.mark.parametrize("text", ["", "abc", "Rp", "-", None, "--5"])
def test_parse_garbage_returns_zero(text) -> None:
    assert currency.parse(text) == 0.0


def test_parse_passes_numbers_through() -> None:
    assert currency.parse(1500) == 1500.0
    assert currency.parse(12.5) == 12.5


def test_format_groups_with_dots() -> None:
    assert currency.format(1234567) == "1.234.567"
    assert currency.format(15000.75, 2) == "15.000,75"


def test_format_rounds_only_the_display() -> None:
    value = 15000.75
    assert currency.format(value) == "15.001"
    assert value == 15000.75


def test_format_negative_values() -> None:
    assert currency.format(-1500.5, 2) == "-1.500,50"
    assert currency.format(-0.4) == "0"


@pytest.mark.parametrize("value", [15000.75, 0.5, 1234.56, 99.0, 2500000.1])
def test_parse_reverses_two_digit_format(value: float) -> None:
    assert currency.parse(currency.format(value, 2)) == value


def test_format_rupiah_drops_sign_and_decimals() -> None:
    assert currency.format_rupiah(14000) == "Rp 14.000"
    assert currency.format_rupiah(-1200.4) == "Rp 1.200"


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_parse_non_finite_number_returns_zero(value: float) -> None:
    assert currency.parse(value) == 0.0


def test_input_text_keeps_cents_only_when_present() -> None:
    assert currency.input_text(15000) == "15.000"
    assert currency.input_text(15000.5) == "15.000,50"


def test_edited_amount_unchanged_display_keeps_stored_value() -> None:
    price = 10000 / 3
    assert currency.edited_amount(currency.input_text(price), price) is None


def test_edited_amount_returns_new_value() -> None:
    assert currency.edited_amount("4.000", 10000 / 3) == 4000.0
    assert currency.edited_amount("0", 2500) == 0.0
