"""
Currency Normalizer - USD pivotlu kur dönüşümü
Maliyet tablosu (USD) ve kargo cetvelleri pazarın yerel para birimine çevrilir
"""
import logging
import threading
from datetime import datetime
from typing import Dict, Optional, Union

from app.core.enums import Currency, MarketplaceCurrency
from app.core.exceptions import CurrencyRateError
from app.models import Money

logger = logging.getLogger(__name__)


# 1 USD = X birim (API'ye ulaşılamazsa kullanılır)
FALLBACK_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.95,
    "GBP": 0.79,
    "CAD": 1.40,
    "AUD": 1.55,
    "AED": 3.6725,
    "SAR": 3.75,
    "TRY": 34.5,
}

CurrencyLike = Union[Currency, str]


def _code(currency: CurrencyLike) -> str:
    if isinstance(currency, Currency):
        return currency.value
    return str(currency).upper()


def get_marketplace_currency(marketplace: Optional[str]) -> Currency:
    """Pazar yeri para birimi (bilinmeyen pazar = USD)"""
    return MarketplaceCurrency.get(marketplace)


class CurrencyConverter:
    """
    USD pivotlu kur tablosu

    - convert(): amount / usd_rate[from] * usd_rate[to]
    - refresh(): canlı kurları çeker, hata olursa eski tablo korunur
    - Bilinmeyen para birimi = 0 (30 kat şişmiş bir rakam yerine görünür bir eksik)
    """

    def __init__(self, rates: Optional[Dict[str, float]] = None):
        self._rates: Dict[str, float] = dict(rates or FALLBACK_RATES)
        self._lock = threading.Lock()
        self.source = "fallback"
        self.last_update: Optional[datetime] = None
        self.error: Optional[str] = None

    @property
    def rates(self) -> Dict[str, float]:
        return dict(self._rates)

    def convert(self, amount: float, from_currency: CurrencyLike, to_currency: CurrencyLike) -> float:
        """
        Tutarı bir para biriminden diğerine çevirir

        Returns:
            Dönüştürülmüş tutar - kur bulunamazsa 0
        """
        from_code = _code(from_currency)
        to_code = _code(to_currency)

        if from_code == to_code:
            return amount

        # Tablo referansı tek seferde alınır (refresh atomik olarak değiştirir)
        rates = self._rates
        from_rate = rates.get(from_code)
        to_rate = rates.get(to_code)

        if not from_rate or not to_rate:
            logger.error(f"❌ Exchange rate not found: {from_code} -> {to_code}")
            return 0.0

        return amount / from_rate * to_rate

    def to(self, money: Money, currency: CurrencyLike) -> Money:
        """Money değerini hedef para birimine çevirir"""
        target = Currency(_code(currency))
        if money.currency == target:
            return money
        return Money(amount=self.convert(money.amount, money.currency, target), currency=target)

    def refresh(self, client) -> bool:
        """
        Canlı kurları çek

        Args:
            client: get_usd_rates() sağlayan connector (FrankfurterAPIClient)

        Returns:
            True - tablo güncellendi, False - eski tablo korundu
        """
        try:
            live_rates = client.get_usd_rates()
        except CurrencyRateError as e:
            logger.warning(f"⚠️ Exchange rate refresh failed, keeping {self.source} rates: {e}")
            self.error = str(e)
            return False

        # Canlı yanıtta olmayan para birimleri eski tablodan kalır
        merged = dict(self._rates)
        merged.update(live_rates)

        with self._lock:
            self._rates = merged
            self.source = "api"
            self.last_update = datetime.now()
            self.error = None

        logger.info(f"✅ Exchange rates refreshed: {len(live_rates)} currencies")
        return True

    def reset(self):
        """Sabit yedek tabloya dön"""
        with self._lock:
            self._rates = dict(FALLBACK_RATES)
            self.source = "fallback"
            self.last_update = None
            self.error = None

    def status(self) -> Dict:
        return {
            'source': self.source,
            'last_update': self.last_update,
            'error': self.error,
            'rates': self.rates,
        }


# Global converter instance
_converter = None

def get_currency_converter() -> CurrencyConverter:
    """Get or create the global converter instance"""
    global _converter
    if _converter is None:
        _converter = CurrencyConverter()
    return _converter
