import pytest

from smartybudget.currency import (
    BASE_CURRENCY,
    CURRENCY_DATA,
    EXCHANGE_RATES,
    format_money,
    rate_for,
    symbol_for,
    to_base,
    to_display,
)


def test_every_currency_has_a_rate():
    assert BASE_CURRENCY == "USD"
    assert set(CURRENCY_DATA) == set(EXCHANGE_RATES)
    assert rate_for(BASE_CURRENCY) == 1.0


def test_conversion_round_trip():
    assert to_display(100, "INR") == pytest.approx(8350)
    assert to_base(8350, "INR") == pytest.approx(100)


def test_unknown_currency_falls_back():
    assert rate_for("XYZ") == 1.0
    assert symbol_for("XYZ") == "$"


def test_format_money():
    assert format_money(1234.5, "USD") == "$1,234.50"
    assert format_money(10, "JPY", decimals=0) == "¥1,570"
    assert format_money(-20, "GBP") == "-£15.80"
