"""
Domain exceptions
"""


class ProfitabilityError(Exception):
    """Karlılık motoru temel hatası"""


class ConfigurationError(ProfitabilityError):
    """Geçersiz istek/konfigürasyon (örn. start_date > end_date)"""


class CurrencyRateError(ProfitabilityError):
    """Döviz kuru servisine ulaşılamadı veya yanıt geçersiz"""
