"""
Global Cost Allocator - Pazar geneli maliyet yüzdeleri
Reklam, FBA ve FBM giderleri filtrelenmemiş transaction'lardan hesaplanır;
böylece "sadece FBA" filtresi reklam yüzdesinin paydasını değiştirmez.
"""
import logging
from typing import Iterable, Mapping, Optional

from app.core.enums import Currency, Fulfillment, TransactionCategory
from app.models import GlobalCostPercentages, TransactionRecord
from services.currency import CurrencyConverter, get_currency_converter, get_marketplace_currency
from services.refund_loss import recovery_rate_for

logger = logging.getLogger(__name__)


def is_fba_cost(t: TransactionRecord) -> bool:
    """Reklam dışı, FBA'ya yüklenen gider kalemleri"""
    if t.category_type == TransactionCategory.SERVICE_FEE:
        return not TransactionCategory.is_advertising(t.description)
    return t.category_type in TransactionCategory.FBA_COST_CATEGORIES


def is_fbm_cost(t: TransactionRecord) -> bool:
    return t.category_type in TransactionCategory.SHIPPING_SERVICE_CATEGORIES


def is_advertising_cost(t: TransactionRecord) -> bool:
    return (
        t.category_type == TransactionCategory.SERVICE_FEE
        and TransactionCategory.is_advertising(t.description)
    )


def compute_global_percentages(
    all_transactions: Iterable[TransactionRecord],
    marketplace: Optional[str] = None,
    recovery_rates: Optional[Mapping[str, float]] = None,
    converter: Optional[CurrencyConverter] = None,
    default_recovery_rate: float = 0.30,
) -> GlobalCostPercentages:
    """
    Reklam % = reklam / toplam sipariş cirosu
    FBA gider % = FBA giderleri / FBA sipariş cirosu
    FBM gider % = kargo hizmetleri / FBM sipariş cirosu

    Args:
        all_transactions: Tarih filtresi uygulanmış, fulfillment filtresi UYGULANMAMIŞ satırlar
        marketplace: Pazar (None = tüm pazarlar, satırlar USD'ye çevrilir)
        recovery_rates: Kullanıcı tanımlı iade geri kazanım oranları
    """
    converter = converter or get_currency_converter()

    def value(amount: float, t: TransactionRecord) -> float:
        if marketplace:
            return amount
        return converter.convert(amount, get_marketplace_currency(t.marketplace_code), Currency.USD)

    total_sales = 0.0
    fba_sales = 0.0
    fbm_sales = 0.0
    advertising = 0.0
    fba_total = 0.0
    fbm_total = 0.0

    for t in all_transactions:
        if marketplace and (t.marketplace_code or "").upper() != marketplace.upper():
            continue

        if t.category_type == TransactionCategory.ORDER:
            sales = value(t.product_sales, t)
            total_sales += sales
            if Fulfillment.is_fba_channel(t.fulfillment):
                fba_sales += sales
            else:
                fbm_sales += sales
        elif is_advertising_cost(t):
            advertising += value(abs(t.total), t)
        elif is_fba_cost(t):
            fba_total += value(t.total, t)
        elif is_fbm_cost(t):
            fbm_total += value(t.total, t)

    # Giderler negatif/pozitif karışık gelir, net tutarın mutlak değeri alınır
    fba_cost = abs(fba_total)
    fbm_cost = abs(fbm_total)

    result = GlobalCostPercentages(
        advertising_percent=(advertising / total_sales * 100) if total_sales > 0 else 0.0,
        fba_cost_percent=(fba_cost / fba_sales * 100) if fba_sales > 0 else 0.0,
        fbm_cost_percent=(fbm_cost / fbm_sales * 100) if fbm_sales > 0 else 0.0,
        refund_recovery_rate=recovery_rate_for(marketplace, recovery_rates, default=default_recovery_rate),
        marketplace=marketplace,
        total_sales=total_sales,
        fba_sales=fba_sales,
        fbm_sales=fbm_sales,
        advertising_cost=advertising,
        fba_cost=fba_cost,
        fbm_cost=fbm_cost,
    )

    logger.info(
        f"📊 Global costs ({marketplace or 'ALL'}): "
        f"ads={result.advertising_percent:.2f}%, "
        f"fba={result.fba_cost_percent:.2f}%, "
        f"fbm={result.fbm_cost_percent:.2f}%, "
        f"recovery={result.refund_recovery_rate:.2f}"
    )
    return result
