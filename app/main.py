"""
FastAPI Main Application
"""
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security.api_key import APIKeyHeader
from datetime import datetime
import logging
import sys
import os

from app.core import get_settings
from app.api import health, profitability, currency
from connectors.frankfurter_client import FrankfurterAPIClient
from services.currency import get_currency_converter

settings = get_settings()

# Logging - logs/ oluşturulamazsa (read-only FS) sadece stdout
log_handlers = [logging.StreamHandler(sys.stdout)]
try:
    os.makedirs('logs', exist_ok=True)
    log_handlers.append(logging.FileHandler('logs/app.log', encoding='utf-8'))
except (OSError, PermissionError):
    pass

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=log_handlers
)
logger = logging.getLogger(__name__)

# FastAPI App
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Marketplace Profitability API

    **Hesaplananlar:**
    - SKU bazlı net kar, marj ve ROI
    - Kargo (desi cetveli), gümrük, DDP, depo, GST
    - Global reklam / FBA / FBM gider dağıtımı
    - SKU -> Ürün -> Parent -> Kategori toplama
    - Fiyat hesaplayıcı için kategori gider yüzdeleri

    **Para birimi:**
    - Maliyet tablosu USD, sonuçlar pazarın para biriminde
    - Tüm pazarlar modunda raporlama para birimine çevrilir
    """,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS
allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# API Key Security
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

async def verify_api_key(api_key: str = Depends(api_key_header)):
    """API key verification (API_KEY boşsa kontrol yapılmaz)"""
    if settings.api_key and api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key

# Startup
@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    client = FrankfurterAPIClient(
        api_url=settings.exchange_rate_api_url,
        timeout=settings.exchange_rate_timeout
    )
    converter = get_currency_converter()
    if converter.refresh(client):
        logger.info("✅ Exchange rates loaded from API")
    else:
        logger.warning(f"⚠️ Using fallback exchange rates: {converter.error}")

@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown"""
    logger.info("Shutting down...")

# Root
@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "timestamp": datetime.utcnow()
    }

# Include routers
app.include_router(health.router)  # No auth required
app.include_router(currency.router, dependencies=[Depends(verify_api_key)])
app.include_router(profitability.router, dependencies=[Depends(verify_api_key)])
logger.info("✅ Profitability router registered (protected with API key)")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
