"""
Currency Conversion

DESIGN DECISION: Conversion is a pure, synchronous function over a
rate table. The ledger consumes it; it never owns or refreshes rates.

Rates are expressed as units of a single base currency per unit of each
currency, so any pair converts through the base:

    amount_in_base = amount * rate[source]
    converted      = amount_in_base / rate[target]

CRITICAL: An unknown code raises. We NEVER fall back to returning the
unconverted amount, because that would silently corrupt a balance.
"""

from decimal import Decimal
from typing import Mapping, Optional

from goldquest.config import get_settings


CURRENCY_SYMBOLS: dict[str, str] = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


class CurrencyError(Exception):
    """Base exception for currency operations."""
    pass


class UnsupportedCurrencyError(CurrencyError):
    """No rate is known for a currency code."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unsupported currency: {currency!r}")


class CurrencyConverter:
    """
    Converts amounts between currencies using a static rate table.

    Args:
        rates: Mapping of currency code to units of the base currency.
               Defaults to CurrencySettings.rates.
        base_currency: Code every rate is expressed in.
    """

    def __init__(
        self,
        rates: Optional[Mapping[str, Decimal]] = None,
        base_currency: Optional[str] = None,
    ):
        if rates is None or base_currency is None:
            settings = get_settings().currency
            rates = settings.rates if rates is None else rates
            base_currency = base_currency or settings.base_currency

        self._rates = {
            code.upper(): Decimal(str(rate)) for code, rate in rates.items()
        }
        self._base_currency = base_currency.upper()
        self._rates.setdefault(self._base_currency, Decimal("1"))

    @property
    def base_currency(self) -> str:
        return self._base_currency

    @property
    def supported_currencies(self) -> list[str]:
        return sorted(self._rates)

    def is_supported(self, currency: str) -> bool:
        return currency.upper() in self._rates

    def rate(self, currency: str) -> Decimal:
        """Units of base currency per unit of `currency`."""
        try:
            return self._rates[currency.upper()]
        except KeyError:
            raise UnsupportedCurrencyError(currency) from None

    def convert(self, amount: Decimal, source: str, target: str) -> Decimal:
        """
        Convert an amount from one currency to another.

        The result is NOT rounded; callers round once, at the point
        where a value is stored.

        Raises:
            UnsupportedCurrencyError: If either code has no rate
        """
        source_rate = self.rate(source)
        target_rate = self.rate(target)

        if source.upper() == target.upper():
            return Decimal(amount)

        return Decimal(amount) * source_rate / target_rate

    def __call__(self, amount: Decimal, source: str, target: str) -> Decimal:
        return self.convert(amount, source, target)


def currency_symbol(currency: Optional[str]) -> str:
    """
    Get the display symbol for a currency code.

    Falls back to the code itself, or the generic currency sign
    when no code is given.
    """
    if not currency or not currency.strip():
        return "¤"
    code = currency.strip().upper()
    return CURRENCY_SYMBOLS.get(code, code)
