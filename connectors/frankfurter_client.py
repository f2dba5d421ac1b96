"""
Frankfurter Exchange Rate API Client
ECB referans kurlarını çeken client (API key gerektirmez)
"""
import logging
import requests
from typing import Dict, Any, Iterable, Optional

from app.core.exceptions import CurrencyRateError

logger = logging.getLogger(__name__)


# Frankfurter'da olmayan, USD'ye sabitlenmiş para birimleri
PEGGED_TO_USD = {
    "AED": 3.6725,
    "SAR": 3.75,
}

DEFAULT_SYMBOLS = ("EUR", "GBP", "CAD", "AUD", "TRY")


class FrankfurterAPIClient:
    """
    Frankfurter API entegrasyonu

    Endpoint: GET /latest?from=USD&to=EUR,GBP,CAD,AUD,TRY

    Response:
        {"amount": 1.0, "base": "USD", "date": "2025-01-10", "rates": {"EUR": 0.97, ...}}
    """

    def __init__(
        self,
        api_url: str = "https://api.frankfurter.app",
        timeout: int = 5
    ):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

        self.session.headers.update({
            'User-Agent': 'ProfitabilityAnalytics/1.0',
            'Accept': 'application/json'
        })

        logger.info(f"FrankfurterAPIClient initialized: {self.api_url}")

    def get_latest(self, base: str = "USD", symbols: Iterable[str] = DEFAULT_SYMBOLS) -> Dict[str, Any]:
        """
        Güncel kurları çek (ham yanıt)

        Raises:
            CurrencyRateError: HTTP hatası, timeout veya bağlantı hatası
        """
        url = f"{self.api_url}/latest"
        params = {
            'from': base,
            'to': ",".join(symbols)
        }

        try:
            logger.info(f"💱 Fetching exchange rates: base={base}, symbols={params['to']}")

            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()

            return response.json()

        except requests.exceptions.HTTPError as e:
            logger.error(f"❌ HTTP Error: {e.response.status_code} - {e.response.text}")
            raise CurrencyRateError(f"Exchange rate API HTTP {e.response.status_code}") from e
        except requests.exceptions.Timeout as e:
            logger.error(f"❌ Request timeout ({self.timeout}s)")
            raise CurrencyRateError(f"Exchange rate API timeout ({self.timeout}s)") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Request failed: {e}")
            raise CurrencyRateError(f"Exchange rate API request failed: {e}") from e

    def get_usd_rates(self, symbols: Optional[Iterable[str]] = None) -> Dict[str, float]:
        """
        USD pivotlu kur tablosu

        Returns:
            {'USD': 1.0, 'EUR': 0.95, ..., 'AED': 3.6725, 'SAR': 3.75}
        """
        data = self.get_latest(base="USD", symbols=symbols or DEFAULT_SYMBOLS)

        rates = data.get('rates')
        if not isinstance(rates, dict) or not rates:
            raise CurrencyRateError("Exchange rate API returned no rates")

        result = {"USD": 1.0}
        for code, value in rates.items():
            try:
                result[code.upper()] = float(value)
            except (TypeError, ValueError) as e:
                raise CurrencyRateError(f"Invalid rate for {code}: {value!r}") from e

        result.update(PEGGED_TO_USD)

        logger.info(f"✅ Fetched {len(result)} rates (date: {data.get('date')})")
        return result

    def test_connection(self) -> bool:
        """API bağlantısını test et"""
        try:
            self.get_latest(symbols=("EUR",))
            return True
        except CurrencyRateError:
            return False
