"""
Kur dönüşümü testleri
"""
from unittest.mock import Mock

import pytest

from app.core.enums import Currency
from app.core.exceptions import CurrencyRateError
from app.models import Money
from services.currency import FALLBACK_RATES, CurrencyConverter, get_marketplace_currency


def test_same_currency_is_identity(converter):
    assert converter.convert(123.45, "EUR", "EUR") == 123.45


def test_convert_through_usd_pivot(converter):
    # 10 EUR -> 20 USD -> 16 GBP
    assert converter.convert(10, Currency.EUR, Currency.GBP) == pytest.approx(16.0)
    assert converter.convert(30, "TRY", "USD") == pytest.approx(1.0)


def test_round_trip_within_a_cent(converter):
    amount = 987.65
    there = converter.convert(amount, "USD", "AED")
    back = converter.convert(there, "AED", "USD")
    assert abs(back - amount) < 0.01


def test_unknown_currency_returns_zero(converter):
    assert converter.convert(100, "USD", "JPY") == 0.0


def test_money_to_target_currency(converter):
    result = converter.to(Money(amount=10, currency=Currency.USD), Currency.GBP)
    assert result.currency == Currency.GBP
    assert result.amount == pytest.approx(8.0)


def test_marketplace_currency():
    assert get_marketplace_currency("UK") == Currency.GBP
    assert get_marketplace_currency("de") == Currency.EUR
    assert get_marketplace_currency("AE") == Currency.AED
    assert get_marketplace_currency(None) == Currency.USD
    assert get_marketplace_currency("XX") == Currency.USD


def test_refresh_merges_live_rates():
    converter = CurrencyConverter()
    client = Mock()
    client.get_usd_rates.return_value = {"USD": 1.0, "EUR": 0.9}

    assert converter.refresh(client) is True
    assert converter.source == "api"
    assert converter.last_update is not None
    assert converter.rates["EUR"] == 0.9
    # Canlı yanıtta olmayanlar korunur
    assert converter.rates["TRY"] == FALLBACK_RATES["TRY"]


def test_refresh_failure_keeps_previous_table():
    converter = CurrencyConverter()
    client = Mock()
    client.get_usd_rates.side_effect = CurrencyRateError("timeout")

    assert converter.refresh(client) is False
    assert converter.source == "fallback"
    assert converter.error == "timeout"
    assert converter.rates == FALLBACK_RATES


def test_reset_returns_to_fallback():
    converter = CurrencyConverter(rates={"USD": 1.0, "EUR": 2.0})
    converter.reset()
    assert converter.rates == FALLBACK_RATES
    assert converter.status()['source'] == "fallback"
