"""
Currency Endpoints
Kur tablosu, canlı kur yenileme ve dönüşüm
"""
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from app.core import Currency, get_settings
from app.models import ConversionResponse, ExchangeRatesResponse
from connectors.frankfurter_client import FrankfurterAPIClient
from services.currency import CurrencyConverter, get_currency_converter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/currency", tags=["Currency"])


def get_rate_client() -> FrankfurterAPIClient:
    """FrankfurterAPIClient dependency"""
    settings = get_settings()
    return FrankfurterAPIClient(
        api_url=settings.exchange_rate_api_url,
        timeout=settings.exchange_rate_timeout
    )


def _rates_response(converter: CurrencyConverter) -> ExchangeRatesResponse:
    status = converter.status()
    return ExchangeRatesResponse(
        base=Currency.USD,
        rates=converter.rates,
        source=status['source'],
        last_update=status['last_update'],
        error=status['error'],
    )


@router.get("/rates", response_model=ExchangeRatesResponse, response_model_by_alias=True)
def get_rates(converter: CurrencyConverter = Depends(get_currency_converter)):
    """Aktif kur tablosu (1 USD = X birim)"""
    return _rates_response(converter)


@router.post("/refresh", response_model=ExchangeRatesResponse, response_model_by_alias=True)
def refresh_rates(
    converter: CurrencyConverter = Depends(get_currency_converter),
    client: FrankfurterAPIClient = Depends(get_rate_client)
):
    """
    Canlı kurları çeker

    API'ye ulaşılamazsa mevcut tablo korunur ve error alanı dolar.
    """
    converter.refresh(client)
    return _rates_response(converter)


@router.get("/convert", response_model=ConversionResponse, response_model_by_alias=True)
def convert(
    amount: float = Query(..., description="Tutar"),
    from_currency: str = Query(..., alias="from", description="Kaynak para birimi"),
    to_currency: str = Query(..., alias="to", description="Hedef para birimi"),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Tutarı USD pivotu üzerinden çevirir"""
    source = from_currency.upper()
    target = to_currency.upper()
    if not Currency.is_valid(source) or not Currency.is_valid(target):
        raise HTTPException(status_code=400, detail=f"Unsupported currency: {from_currency} -> {to_currency}")

    return ConversionResponse(
        amount=amount,
        from_currency=Currency(source),
        to_currency=Currency(target),
        result=converter.convert(amount, source, target),
    )
