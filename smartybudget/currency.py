"""Display currency conversion.

Stored amounts are always in the base unit (USD). The rate table is static;
conversion only happens on the way to and from the screen.
"""
from typing import Dict

BASE_CURRENCY = "USD"

CURRENCY_DATA: Dict[str, Dict[str, str]] = {
    "USD": {"symbol": "$", "name": "US Dollar"},
    "EUR": {"symbol": "€", "name": "Euro"},
    "GBP": {"symbol": "£", "name": "British Pound"},
    "JPY": {"symbol": "¥", "name": "Japanese Yen"},
    "INR": {"symbol": "₹", "name": "Indian Rupee"},
}

EXCHANGE_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "JPY": 157.0,
    "INR": 83.5,
}


def rate_for(code: str) -> float:
    return EXCHANGE_RATES.get(code, 1.0)


def symbol_for(code: str) -> str:
    return CURRENCY_DATA.get(code, {}).get("symbol", "$")


def to_display(amount: float, code: str) -> float:
    return amount * rate_for(code)


def to_base(amount: float, code: str) -> float:
    return amount / rate_for(code)


def format_money(amount: float, code: str, decimals: int = 2) -> str:
    """Format a base-unit amount in the display currency, e.g. ``₹1,234.50``."""
    value = to_display(amount, code)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol_for(code)}{abs(value):,.{decimals}f}"
