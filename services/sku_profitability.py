"""
SKU Profitability Calculator - SKU bazlı kar/zarar
Transaction'lar + maliyet satırı + kargo cetveli + ülke ayarı + global yüzdeler
-> SKUProfitAnalysis (Complete / Incomplete)
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from app.core.enums import (
    Currency,
    FBMShippingMode,
    Fulfillment,
    GSTApplyTo,
    IncompleteReason,
    TransactionCategory,
    GRADE_AND_RESELL_CATEGORY,
    UNCATEGORIZED,
    is_grade_and_resell,
)
from app.models import (
    AllCountryConfigs,
    CompleteSKUResult,
    CountryProfitConfig,
    GlobalCostPercentages,
    IncompleteSKUResult,
    Money,
    ProductCostData,
    SKUProfitAnalysis,
    SKUResult,
    ShippingRateTable,
    TransactionRecord,
)
from services.currency import CurrencyConverter, get_currency_converter, get_marketplace_currency
from services.refund_loss import refund_loss
from services.shipping_rates import FBMShippingResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MixedFulfillmentPolicy:
    """Hem FBA hem FBM görülen SKU'da adet/ciro paylaşımı"""
    fba_share: float = 0.5

    @property
    def fbm_share(self) -> float:
        return 1 - self.fba_share


def resolve_category(sku: str, product_category: Optional[str]) -> str:
    """Kategori yoksa: AMZN.GR -> Grade and Resell, diğerleri Uncategorized"""
    if product_category:
        return product_category
    if is_grade_and_resell(sku):
        return GRADE_AND_RESELL_CATEGORY
    return UNCATEGORIZED


def _pct(value: float, base: float) -> float:
    return (value / base * 100) if base > 0 else 0.0


def aggregate_transactions(transactions: Iterable[TransactionRecord]) -> Dict:
    """
    SKU'nun Order ve Refund satırlarını toplar

    Order: ciro, sipariş, adet, |selling|, |fba|, |vat|, replacement/MSCF sayısı
    Refund: |total|, |adet|
    Diğer kategoriler (Service Fee, Adjustment, ...) global yüzdelerde kullanılır
    """
    data = {
        'sku': None,
        'name': None,
        'parent': None,
        'product_category': None,
        'channels': [],
        'revenue': 0.0,
        'orders': 0,
        'quantity': 0,
        'refunded_quantity': 0,
        'replacement_count': 0,
        'mscf_count': 0,
        'selling_fees': 0.0,
        'fba_fees': 0.0,
        'vat': 0.0,
        'gross_refund': 0.0,
    }

    for t in transactions:
        if t.category_type not in (TransactionCategory.ORDER, TransactionCategory.REFUND):
            continue

        if data['sku'] is None:
            data['sku'] = t.sku
            data['name'] = t.name or t.sku
            data['parent'] = t.parent or t.asin or "Unknown"
            data['product_category'] = t.product_category

        if t.fulfillment:
            data['channels'].append(t.fulfillment)

        if t.category_type == TransactionCategory.ORDER:
            data['revenue'] += t.product_sales
            data['orders'] += 1
            data['quantity'] += t.quantity
            data['selling_fees'] += abs(t.selling_fees)
            data['fba_fees'] += abs(t.fba_fees)
            data['vat'] += abs(t.vat)

            # Sıfır tutarlı siparişler: değişim (total=0) ve MSCF (total<0)
            if t.product_sales == 0:
                if t.total == 0:
                    data['replacement_count'] += 1
                elif t.total < 0:
                    data['mscf_count'] += 1
        else:
            data['gross_refund'] += abs(t.total)
            data['refunded_quantity'] += abs(t.quantity)

    return data


class SKUProfitabilityCalculator:
    """
    SKU karlılık hesaplayıcı

    Maliyet tablosu (maliyet, özel kargo, DDP, gemi bedeli) USD'dir ve
    pazarın para birimine çevrildikten sonra transaction tutarlarıyla birleştirilir.
    """

    def __init__(
        self,
        converter: Optional[CurrencyConverter] = None,
        mixed_policy: Optional[MixedFulfillmentPolicy] = None,
        local_marketplace: str = "US",
        cost_currency: Currency = Currency.USD,
        default_recovery_rate: float = 0.30,
    ):
        self.converter = converter or get_currency_converter()
        self.mixed_policy = mixed_policy or MixedFulfillmentPolicy()
        self.local_marketplace = local_marketplace.upper()
        self.cost_currency = cost_currency
        self.default_recovery_rate = default_recovery_rate

    def _shares(self, fulfillment: Fulfillment):
        """(FBA payı, FBM payı)"""
        if fulfillment == Fulfillment.FBA:
            return 1.0, 0.0
        if fulfillment == Fulfillment.FBM:
            return 0.0, 1.0
        if fulfillment == Fulfillment.MIXED:
            return self.mixed_policy.fba_share, self.mixed_policy.fbm_share
        raise ValueError(f"Unknown fulfillment: {fulfillment}")

    def _gst_applies(self, apply_to: GSTApplyTo, fulfillment: Fulfillment) -> bool:
        if apply_to == GSTApplyTo.BOTH:
            return True
        if apply_to == GSTApplyTo.FBA:
            return fulfillment.touches_fba
        if apply_to == GSTApplyTo.FBM:
            return fulfillment.touches_fbm
        raise ValueError(f"Unknown GST target: {apply_to}")

    def calculate(
        self,
        transactions_for_sku: Iterable[TransactionRecord],
        cost_row: Optional[ProductCostData],
        shipping_table: Optional[ShippingRateTable],
        country_config: Optional[CountryProfitConfig],
        marketplace: Optional[str],
        global_pct: Optional[GlobalCostPercentages],
    ) -> SKUResult:
        """
        Tek SKU hesabı

        Maliyet veya desi eksikse SKU yine hesaplanır (kargo/gümrük denenir)
        ama net kar, marj ve ROI 0 olur ve IncompleteSKUResult döner.
        """
        data = aggregate_transactions(transactions_for_sku)
        sku = data['sku'] or (cost_row.sku if cost_row else "")
        category = resolve_category(sku, data['product_category'] or (cost_row.category if cost_row else None))

        revenue = data['revenue']
        quantity = data['quantity']
        avg_price = revenue / quantity if quantity > 0 else 0.0

        fulfillment = Fulfillment.classify(data['channels'])
        fba_share, fbm_share = self._shares(fulfillment)

        # Refund loss
        recovery_rate = global_pct.refund_recovery_rate if global_pct else self.default_recovery_rate
        loss = refund_loss(data['gross_refund'], recovery_rate)

        # Maliyet ve desi (USD -> pazar para birimi)
        currency = get_marketplace_currency(marketplace)
        unit_cost_raw = cost_row.cost if cost_row else None
        desi = cost_row.size if cost_row else None
        custom_raw = cost_row.custom_shipping if cost_row else None
        custom_shipping = Money(amount=custom_raw, currency=self.cost_currency) if custom_raw is not None else None

        unit_cost = (
            self.converter.to(Money(amount=unit_cost_raw, currency=self.cost_currency), currency).amount
            if unit_cost_raw is not None else None
        )
        has_cost_data = unit_cost_raw is not None
        # Özel kargo fiyatı sadece FBM bracket aramasının yerine geçer, FBA gönderimi desi ister
        has_size_data = desi is not None or (custom_raw is not None and not fulfillment.touches_fba)

        reasons: List[IncompleteReason] = []
        if not has_cost_data:
            reasons.append(IncompleteReason.MISSING_COST)
        if not has_size_data:
            reasons.append(IncompleteReason.MISSING_SIZE)

        # Kargo / gümrük / DDP
        shipping_cost = 0.0
        customs_duty = 0.0
        ddp_fee = 0.0
        warehouse_cost = 0.0
        others_cost = 0.0
        rate_found = True

        config = country_config if marketplace else None
        fbm_mode: Optional[FBMShippingMode] = None

        if config is not None:
            fbm_mode = FBMShippingMode.normalize(cost_row.fbm_source if cost_row else None) or config.fbm.shipping_mode
            is_local = marketplace.upper() == self.local_marketplace

            if fulfillment.touches_fba and desi:
                per_desi = self.converter.to(
                    Money(amount=config.fba.shipping_per_desi, currency=self.cost_currency), currency
                ).amount
                shipping_cost += quantity * fba_share * desi * per_desi

            if fulfillment.touches_fbm:
                resolver = FBMShippingResolver(
                    shipping_table, config, marketplace, self.converter,
                    local_marketplace=self.local_marketplace, cost_currency=self.cost_currency,
                )
                result = resolver.resolve(
                    quantity=quantity * fbm_share,
                    mode=fbm_mode,
                    desi=desi,
                    custom_shipping=custom_shipping,
                    avg_price=avg_price,
                    category=category,
                )
                shipping_cost += result.shipping
                customs_duty = result.customs
                ddp_fee = result.ddp
                rate_found = result.found

            # Depo / diğer giderler
            fba_warehouse = 0.0
            if fulfillment.touches_fba and is_local:
                fba_warehouse = revenue * fba_share * (config.fba.warehouse_percent / 100)

            fbm_warehouse = 0.0
            fbm_others = 0.0
            if fulfillment.touches_fbm:
                local_pct = config.fbm.from_local.warehouse_percent if config.fbm.from_local else 0.0
                local_warehouse = revenue * fbm_share * (local_pct / 100)
                tr_cost = customs_duty + ddp_fee

                if fbm_mode == FBMShippingMode.LOCAL:
                    fbm_warehouse = local_warehouse
                    fbm_others = local_warehouse
                elif fbm_mode == FBMShippingMode.TR:
                    fbm_others = tr_cost
                elif fbm_mode == FBMShippingMode.BOTH:
                    fbm_warehouse = local_warehouse / 2
                    fbm_others = (local_warehouse + tr_cost) / 2
                else:
                    raise ValueError(f"Unknown FBM shipping mode: {fbm_mode}")

            warehouse_cost = fba_warehouse + fbm_warehouse
            others_cost = fba_warehouse + fbm_others

        if fulfillment.touches_fbm and not rate_found and has_size_data:
            has_size_data = False
            reasons.append(IncompleteReason.SHIPPING_RATE_NOT_FOUND)

        # Global maliyetler
        ads_percent = global_pct.advertising_percent if global_pct else 0.0
        fba_cost_percent = global_pct.fba_cost_percent if global_pct else 0.0
        fbm_cost_percent = global_pct.fbm_cost_percent if global_pct else 0.0

        advertising_cost = revenue * (ads_percent / 100)
        fba_cost = revenue * (fba_cost_percent / 100) if fulfillment.touches_fba else 0.0
        fbm_cost = revenue * (fbm_cost_percent / 100) if fulfillment.touches_fbm else 0.0

        # GST (Amazon dışı vergi)
        gst_cost = 0.0
        gst = config.gst if config is not None else None
        if gst and gst.enabled and gst.rate_percent > 0 and self._gst_applies(gst.apply_to, fulfillment):
            if gst.included_in_price:
                gst_cost = revenue * (gst.rate_percent / (100 + gst.rate_percent))
            else:
                gst_cost = revenue * (gst.rate_percent / 100)

        # Kar
        total_product_cost = unit_cost * quantity if unit_cost is not None else 0.0
        total_amazon_fees = data['selling_fees'] + data['fba_fees'] + loss + data['vat']
        gross_profit = revenue - total_amazon_fees

        total_costs = (
            total_product_cost + shipping_cost + customs_duty + ddp_fee
            + advertising_cost + fba_cost + fbm_cost + warehouse_cost + gst_cost
        )

        complete = not reasons
        net_profit = gross_profit - total_costs if complete else 0.0
        profit_margin = _pct(net_profit, revenue) if complete else 0.0
        roi = _pct(net_profit, total_costs) if complete else 0.0

        analysis = SKUProfitAnalysis(
            sku=sku,
            name=data['name'] or (cost_row.name if cost_row and cost_row.name else sku),
            parent=data['parent'] or "Unknown",
            category=category,
            marketplace=marketplace,
            fulfillment=fulfillment,
            total_revenue=revenue,
            total_orders=data['orders'],
            total_quantity=quantity,
            refunded_quantity=data['refunded_quantity'],
            replacement_count=data['replacement_count'],
            mscf_count=data['mscf_count'],
            avg_sale_price=avg_price,
            selling_fees=data['selling_fees'],
            fba_fees=data['fba_fees'],
            refund_loss=loss,
            vat=data['vat'],
            total_amazon_fees=total_amazon_fees,
            product_cost=unit_cost or 0.0,
            total_product_cost=total_product_cost,
            shipping_cost=shipping_cost,
            customs_duty=customs_duty,
            ddp_fee=ddp_fee,
            warehouse_cost=warehouse_cost,
            others_cost=others_cost,
            gst_cost=gst_cost,
            advertising_cost=advertising_cost,
            fba_cost=fba_cost,
            fbm_cost=fbm_cost,
            gross_profit=gross_profit,
            net_profit=net_profit,
            profit_margin=profit_margin,
            roi=roi,
            selling_fee_percent=_pct(data['selling_fees'], revenue),
            fba_fee_percent=_pct(data['fba_fees'], revenue),
            refund_loss_percent=_pct(loss, revenue),
            vat_percent=_pct(data['vat'], revenue),
            product_cost_percent=_pct(total_product_cost, revenue),
            shipping_cost_percent=_pct(shipping_cost, revenue),
            advertising_percent=_pct(advertising_cost, revenue),
            fba_cost_percent=_pct(fba_cost, revenue),
            fbm_cost_percent=_pct(fbm_cost, revenue),
            others_cost_percent=_pct(others_cost, revenue),
            gst_cost_percent=_pct(gst_cost, revenue),
            has_cost_data=has_cost_data,
            has_size_data=has_size_data,
            desi=desi,
            exclusion_reason=", ".join(r.value for r in reasons) or None,
        )

        if complete:
            return CompleteSKUResult(analysis=analysis)
        return IncompleteSKUResult(analysis=analysis, reasons=reasons)

    def calculate_all(
        self,
        transactions: Iterable[TransactionRecord],
        cost_rows: Iterable[ProductCostData],
        shipping_table: Optional[ShippingRateTable],
        country_configs: Optional[AllCountryConfigs],
        marketplace: Optional[str],
        global_pct: Optional[GlobalCostPercentages],
    ) -> List[SKUResult]:
        """
        Tüm SKU'lar için hesap (ciroya göre azalan)

        Beklenmeyen bir hata sadece ilgili SKU'yu atlar, batch devam eder.
        """
        cost_by_sku = {row.sku: row for row in cost_rows}
        config = country_configs.get(marketplace) if country_configs else None

        if marketplace and config is None:
            logger.warning(f"⚠️ No country config for {marketplace}, marketplace-specific costs = 0")

        groups: "OrderedDict[str, List[TransactionRecord]]" = OrderedDict()
        for t in transactions:
            if not t.sku:
                continue
            if marketplace and (t.marketplace_code or "").upper() != marketplace.upper():
                continue
            if t.category_type not in (TransactionCategory.ORDER, TransactionCategory.REFUND):
                continue
            groups.setdefault(t.sku, []).append(t)

        results: List[SKUResult] = []
        for sku, sku_transactions in groups.items():
            try:
                result = self.calculate(
                    sku_transactions,
                    cost_by_sku.get(sku),
                    shipping_table,
                    config,
                    marketplace,
                    global_pct,
                )
            except Exception as e:
                logger.error(f"❌ SKU calculation failed ({sku}): {e}", exc_info=True)
                continue

            logger.debug(
                f"   {sku}: revenue={result.analysis.total_revenue:.2f}, "
                f"net={result.analysis.net_profit:.2f}, {type(result).__name__}"
            )
            results.append(result)

        results.sort(key=lambda r: r.analysis.total_revenue, reverse=True)

        complete = sum(1 for r in results if isinstance(r, CompleteSKUResult))
        logger.info(
            f"✅ SKU profitability ({marketplace or 'ALL'}): "
            f"{len(results)} SKUs ({complete} complete, {len(results) - complete} incomplete)"
        )
        return results
