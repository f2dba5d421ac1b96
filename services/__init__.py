"""Services module"""
from .currency import CurrencyConverter, get_currency_converter
from .profitability import ProfitabilityService, get_profitability_service

__all__ = ["CurrencyConverter", "get_currency_converter", "ProfitabilityService", "get_profitability_service"]
