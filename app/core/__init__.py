"""Core module"""
from .config import Settings, get_settings
from .enums import (
    Currency,
    Marketplace,
    MarketplaceCurrency,
    RefundRecovery,
    Fulfillment,
    FBMShippingMode,
    ShippingRoute,
    GSTApplyTo,
    IncompleteReason,
    TransactionCategory,
)
from .exceptions import ProfitabilityError, ConfigurationError, CurrencyRateError

__all__ = [
    "Settings",
    "get_settings",
    "Currency",
    "Marketplace",
    "MarketplaceCurrency",
    "RefundRecovery",
    "Fulfillment",
    "FBMShippingMode",
    "ShippingRoute",
    "GSTApplyTo",
    "IncompleteReason",
    "TransactionCategory",
    "ProfitabilityError",
    "ConfigurationError",
    "CurrencyRateError",
]
