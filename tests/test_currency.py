"""
Tests for currency conversion and the rate table settings.
"""

from decimal import Decimal

import pytest

from goldquest.config import CurrencySettings
from goldquest.currency import (
    CurrencyConverter,
    UnsupportedCurrencyError,
    currency_symbol,
)


class TestCurrencyConverter:
    """Tests for CurrencyConverter."""

    def test_convert_into_base(self, converter):
        """Test conversion from a foreign currency into the base."""
        assert converter.convert(Decimal("10"), "USD", "BRL") == Decimal("50.00")

    def test_convert_out_of_base(self, converter):
        """Test conversion from the base into a foreign currency."""
        assert converter.convert(Decimal("50"), "BRL", "USD") == Decimal("10")

    def test_cross_conversion(self, converter):
        """Test conversion between two non-base currencies."""
        assert converter.convert(Decimal("10"), "EUR", "USD") == Decimal("10.8")

    def test_same_currency_is_identity(self, converter):
        """Test that converting to the same currency returns the amount."""
        assert converter(Decimal("3.333"), "usd", "USD") == Decimal("3.333")

    def test_unknown_code_raises(self, converter):
        """Test that an unknown currency never falls back to the raw amount."""
        with pytest.raises(UnsupportedCurrencyError) as exc_info:
            converter.convert(Decimal("1"), "USD", "JPY")
        assert exc_info.value.currency == "JPY"

        with pytest.raises(UnsupportedCurrencyError):
            converter.convert(Decimal("1"), "XYZ", "XYZ")

    def test_base_currency_always_supported(self):
        """Test that the base currency gets a rate of 1."""
        converter = CurrencyConverter({"USD": "0.9"}, base_currency="eur")
        assert converter.base_currency == "EUR"
        assert converter.rate("EUR") == Decimal("1")
        assert converter.supported_currencies == ["EUR", "USD"]
        assert converter.is_supported("usd")


class TestCurrencySymbol:
    """Tests for currency_symbol."""

    def test_known_symbols(self):
        """Test symbols for known codes."""
        assert currency_symbol("BRL") == "R$"
        assert currency_symbol("gbp") == "£"

    def test_fallbacks(self):
        """Test fallback to the code or the generic sign."""
        assert currency_symbol("CHF") == "CHF"
        assert currency_symbol("") == "¤"
        assert currency_symbol(None) == "¤"


class TestCurrencySettings:
    """Tests for the rate table configuration."""

    def test_default_rates(self):
        """Test the built-in static table."""
        settings = CurrencySettings()
        assert settings.base_currency == "BRL"
        assert settings.rates["USD"] == Decimal("5.00")

    def test_rates_from_json(self):
        """Test a custom rate table."""
        settings = CurrencySettings(base_currency="usd", rates_json='{"usd": 1, "eur": "1.1"}')
        assert settings.base_currency == "USD"
        assert settings.rates == {"USD": Decimal("1"), "EUR": Decimal("1.1")}

    def test_invalid_rates_rejected(self):
        """Test that malformed or non-positive tables are rejected."""
        with pytest.raises(ValueError):
            CurrencySettings(rates_json="not json")
        with pytest.raises(ValueError):
            CurrencySettings(rates_json='{"USD": 0}')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
