"""
Profitability Endpoints
SKU / Ürün / Parent / Kategori karlılık analizi
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from app.core.exceptions import ConfigurationError, ProfitabilityError
from app.models import (
    AnalyzeRequest,
    GlobalCostPercentages,
    GlobalCostsRequest,
    PricingCalculatorExport,
    ProfitabilityReport,
)
from services.profitability import ProfitabilityService, get_profitability_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profitability", tags=["Profitability"])


@router.post("/analyze", response_model=ProfitabilityReport, response_model_by_alias=True)
def analyze_profitability(
    request: AnalyzeRequest,
    service: ProfitabilityService = Depends(get_profitability_service)
):
    """
    Transaction + maliyet verisinden karlılık raporu

    **Akış:**
    1. Global gider yüzdeleri (reklam, FBA, FBM) - fulfillment filtresi öncesi
    2. Maliyet satırları birleştirilir (kardeş SKU + isim override)
    3. SKU bazlı hesap (kargo, gümrük, DDP, depo, GST)
    4. SKU -> Ürün -> Parent -> Kategori toplama

    marketplace boşsa tüm pazarlar ayrı hesaplanır ve raporlama para birimine çevrilir.
    """
    try:
        return service.analyze(request)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProfitabilityError as e:
        logger.error(f"❌ Profitability analysis failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/global-costs", response_model=GlobalCostPercentages, response_model_by_alias=True)
def global_costs(
    request: GlobalCostsRequest,
    service: ProfitabilityService = Depends(get_profitability_service)
):
    """Pazar geneli reklam / FBA / FBM gider yüzdeleri"""
    try:
        return service.global_costs(request)
    except ProfitabilityError as e:
        logger.error(f"❌ Global cost calculation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/pricing-export", response_model=PricingCalculatorExport, response_model_by_alias=True)
def pricing_export(
    request: AnalyzeRequest,
    service: ProfitabilityService = Depends(get_profitability_service)
):
    """
    Fiyat hesaplayıcı için kategori gider yüzdeleri

    Mixed kategoriler FBA ve FBM satırlarına bölünür.
    """
    try:
        return service.pricing_export(request)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProfitabilityError as e:
        logger.error(f"❌ Pricing export failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/cache")
def clear_cache(service: ProfitabilityService = Depends(get_profitability_service)):
    """Analiz cache'ini temizler"""
    service.clear_cache()
    return {"success": True}
