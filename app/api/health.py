"""
Health Check Endpoint
"""
from fastapi import APIRouter
from datetime import datetime

from app.models import HealthResponse
from app.core.config import get_settings
from services.currency import get_currency_converter

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", response_model=HealthResponse, response_model_by_alias=True)
async def health_check():
    """
    Sistem sağlığını kontrol eder

    Kurlar fallback tablosundaysa servis çalışır ama "degraded" döner.
    """
    settings = get_settings()
    converter = get_currency_converter()

    overall_status = "healthy" if converter.source == "api" else "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(),
        version=settings.app_version,
        exchange_rate_source=converter.source
    )
