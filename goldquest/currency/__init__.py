"""Currency conversion package."""

from goldquest.currency.converter import (
    CURRENCY_SYMBOLS,
    CurrencyConverter,
    CurrencyError,
    UnsupportedCurrencyError,
    currency_symbol,
)

__all__ = [
    "CURRENCY_SYMBOLS",
    "CurrencyConverter",
    "CurrencyError",
    "UnsupportedCurrencyError",
    "currency_symbol",
]
