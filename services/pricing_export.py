"""
Pricing Calculator Export
Kategori bazlı gider yüzdeleri - fiyat hesaplayıcı için
Mixed kategoriler FBA ve FBM olarak ayrı satırlara bölünür
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from app.core.enums import Fulfillment
from app.models import (
    CategoryProfitAnalysis,
    DateRange,
    GlobalCostPercentages,
    PricingCalculatorExport,
    PricingCategoryExpense,
    PricingExportSummary,
    PricingGlobalSettings,
    SKUProfitAnalysis,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1


def _pct(value: float, base: float) -> float:
    return (value / base * 100) if base > 0 else 0.0


def _build_category_expense(
    cat: CategoryProfitAnalysis,
    category_skus: List[SKUProfitAnalysis],
    marketplace: str,
    date_range: DateRange,
    fulfillment_type: Fulfillment,
    revenue: float,
    quantity: float,
) -> PricingCategoryExpense:
    """Tek kategori + fulfillment satırı"""
    skus = [s for s in category_skus if s.fulfillment == fulfillment_type]

    customs = sum(s.customs_duty for s in skus)
    ddp = sum(s.ddp_fee for s in skus)
    warehouse = sum(s.warehouse_cost for s in skus)
    gst = sum(s.gst_cost for s in skus)

    with_cost = [s for s in skus if s.has_cost_data and s.product_cost > 0]
    avg_product_cost = sum(s.product_cost for s in with_cost) / len(with_cost) if with_cost else 0.0

    sku_revenue = sum(s.total_revenue for s in skus)
    sku_profit = sum(s.net_profit for s in skus)
    avg_margin = _pct(sku_profit, sku_revenue) if sku_revenue > 0 else cat.profit_margin

    is_fba = fulfillment_type == Fulfillment.FBA

    return PricingCategoryExpense(
        category=cat.category,
        marketplace=marketplace,
        fulfillment_type=fulfillment_type,
        sample_size=sum(s.total_orders for s in skus) if skus else cat.total_orders,
        total_revenue=revenue,
        total_quantity=quantity,
        period_start=date_range.start,
        period_end=date_range.end,
        selling_fee_percent=cat.selling_fee_percent,
        fba_fee_percent=cat.fba_fee_percent if is_fba else 0.0,
        refund_loss_percent=cat.refund_loss_percent,
        vat_percent=cat.vat_percent,
        product_cost_percent=cat.product_cost_percent,
        shipping_cost_percent=cat.shipping_cost_percent,
        customs_duty_percent=_pct(customs, revenue),
        ddp_fee_percent=_pct(ddp, revenue),
        warehouse_cost_percent=_pct(warehouse, revenue),
        gst_cost_percent=_pct(gst, revenue),
        advertising_percent=cat.advertising_percent,
        fba_cost_percent=cat.fba_cost_percent if is_fba else 0.0,
        fbm_cost_percent=cat.fbm_cost_percent if not is_fba else 0.0,
        avg_profit_margin=avg_margin,
        avg_roi=cat.roi,
        avg_sale_price=cat.avg_sale_price,
        avg_product_cost=avg_product_cost,
        fba_percent=100.0 if is_fba else 0.0,
        fbm_percent=0.0 if is_fba else 100.0,
    )


def generate_pricing_export(
    categories: Iterable[CategoryProfitAnalysis],
    skus: Iterable[SKUProfitAnalysis],
    global_pct: Optional[GlobalCostPercentages],
    marketplace: str,
    date_range: Optional[DateRange] = None,
) -> PricingCalculatorExport:
    """
    Kategori gider yüzdelerini fiyat hesaplayıcı formatında üretir

    - Saf FBA / FBM kategori: tek satır
    - Mixed kategori: sıfır olmayan FBA ve FBM payları için ayrı satırlar
    """
    category_list = list(categories)
    sku_list = list(skus)
    date_range = date_range or DateRange()

    rows: List[PricingCategoryExpense] = []
    for cat in category_list:
        category_skus = [s for s in sku_list if s.category == cat.category]

        if cat.fulfillment == Fulfillment.FBA:
            rows.append(_build_category_expense(
                cat, category_skus, marketplace, date_range,
                Fulfillment.FBA, cat.total_revenue, cat.total_quantity
            ))
        elif cat.fulfillment == Fulfillment.FBM:
            rows.append(_build_category_expense(
                cat, category_skus, marketplace, date_range,
                Fulfillment.FBM, cat.total_revenue, cat.total_quantity
            ))
        elif cat.fulfillment == Fulfillment.MIXED:
            if cat.fba_quantity > 0 and cat.fba_revenue > 0:
                rows.append(_build_category_expense(
                    cat, category_skus, marketplace, date_range,
                    Fulfillment.FBA, cat.fba_revenue, cat.fba_quantity
                ))
            if cat.fbm_quantity > 0 and cat.fbm_revenue > 0:
                rows.append(_build_category_expense(
                    cat, category_skus, marketplace, date_range,
                    Fulfillment.FBM, cat.fbm_revenue, cat.fbm_quantity
                ))
        else:
            raise ValueError(f"Unknown fulfillment: {cat.fulfillment}")

    total_revenue = sum(c.total_revenue for c in category_list)
    total_orders = sum(c.total_orders for c in category_list)
    total_profit = sum(c.net_profit for c in category_list)

    global_pct = global_pct or GlobalCostPercentages(marketplace=marketplace)

    logger.info(f"📤 Pricing export ({marketplace}): {len(rows)} category rows")

    return PricingCalculatorExport(
        version=EXPORT_VERSION,
        exported_at=datetime.now(),
        marketplace=marketplace,
        date_range=date_range,
        global_settings=PricingGlobalSettings(
            advertising_percent=global_pct.advertising_percent,
            fba_cost_percent=global_pct.fba_cost_percent,
            fbm_cost_percent=global_pct.fbm_cost_percent,
            refund_recovery_rate=global_pct.refund_recovery_rate,
        ),
        categories=rows,
        summary=PricingExportSummary(
            total_categories=len(rows),
            total_revenue=total_revenue,
            total_orders=total_orders,
            avg_margin=_pct(total_profit, total_revenue),
        ),
    )
