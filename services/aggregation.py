"""
Aggregation Pipeline - SKU -> Ürün (name) -> Parent -> Kategori
Toplanabilir alanlar toplanır, tüm yüzdeler toplamlardan yeniden türetilir
(çocuk yüzdelerinin ortalaması ALINMAZ).
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Union

from app.core.enums import Fulfillment
from app.models import (
    CategoryProfitAnalysis,
    ParentProfitAnalysis,
    ProductProfitAnalysis,
    ProfitabilitySummaryStats,
    SKUProfitAnalysis,
    TopProduct,
)

logger = logging.getLogger(__name__)


ADDITIVE_FIELDS = (
    'total_revenue',
    'total_orders',
    'total_quantity',
    'refunded_quantity',
    'replacement_count',
    'mscf_count',
    'selling_fees',
    'fba_fees',
    'refund_loss',
    'vat',
    'total_amazon_fees',
    'total_product_cost',
    'shipping_cost',
    'customs_duty',
    'ddp_fee',
    'warehouse_cost',
    'others_cost',
    'gst_cost',
    'advertising_cost',
    'fba_cost',
    'fbm_cost',
    'gross_profit',
    'net_profit',
)

BREAKDOWN_FIELDS = ('fba_revenue', 'fbm_revenue', 'fba_quantity', 'fbm_quantity')

# yüzde alanı -> pay (payda her zaman total_revenue)
PERCENT_FIELDS = {
    'selling_fee_percent': 'selling_fees',
    'fba_fee_percent': 'fba_fees',
    'refund_loss_percent': 'refund_loss',
    'vat_percent': 'vat',
    'product_cost_percent': 'total_product_cost',
    'shipping_cost_percent': 'shipping_cost',
    'advertising_percent': 'advertising_cost',
    'fba_cost_percent': 'fba_cost',
    'fbm_cost_percent': 'fbm_cost',
    'others_cost_percent': 'others_cost',
    'gst_cost_percent': 'gst_cost',
}

# Para birimi dönüşümünde çevrilecek alanlar
MONEY_FIELDS = tuple(
    f for f in ADDITIVE_FIELDS
    if f not in ('total_orders', 'total_quantity', 'refunded_quantity', 'replacement_count', 'mscf_count')
) + ('product_cost', 'avg_sale_price')

Record = Union[SKUProfitAnalysis, ProductProfitAnalysis, ParentProfitAnalysis, CategoryProfitAnalysis, Mapping[str, Any]]


def _get(record: Record, field: str, default=0):
    if isinstance(record, Mapping):
        return record.get(field, default)
    return getattr(record, field, default)


def _pct(value: float, base: float) -> float:
    return (value / base * 100) if base > 0 else 0.0


def _breakdown(record: Record, mixed_fba_share: float) -> Dict[str, float]:
    """SKU kaydı için FBA/FBM ciro ve adet payı (Mixed bölünür)"""
    if not isinstance(record, SKUProfitAnalysis):
        return {f: _get(record, f, 0.0) for f in BREAKDOWN_FIELDS}

    revenue = record.total_revenue
    quantity = record.total_quantity
    if record.fulfillment == Fulfillment.FBA:
        fba = 1.0
    elif record.fulfillment == Fulfillment.FBM:
        fba = 0.0
    elif record.fulfillment == Fulfillment.MIXED:
        fba = mixed_fba_share
    else:
        raise ValueError(f"Unknown fulfillment: {record.fulfillment}")

    return {
        'fba_revenue': revenue * fba,
        'fbm_revenue': revenue * (1 - fba),
        'fba_quantity': quantity * fba,
        'fbm_quantity': quantity * (1 - fba),
    }


def empty_totals() -> Dict[str, Any]:
    """Fold'un birim elemanı"""
    totals: Dict[str, Any] = {f: 0 for f in ADDITIVE_FIELDS}
    totals.update({f: 0.0 for f in BREAKDOWN_FIELDS})
    totals.update({'has_cost_data': True, 'has_size_data': True, 'has_fba': False, 'has_fbm': False})
    return totals


def combine_totals(a: Mapping[str, Any], b: Mapping[str, Any]) -> Dict[str, Any]:
    """İki kısmi toplamı birleştirir (birleşmeli ve değişmeli)"""
    combined = {f: a[f] + b[f] for f in ADDITIVE_FIELDS + BREAKDOWN_FIELDS}
    combined['has_cost_data'] = a['has_cost_data'] and b['has_cost_data']
    combined['has_size_data'] = a['has_size_data'] and b['has_size_data']
    combined['has_fba'] = a['has_fba'] or b['has_fba']
    combined['has_fbm'] = a['has_fbm'] or b['has_fbm']
    return combined


def totals_of(record: Record, mixed_fba_share: float = 0.5) -> Dict[str, Any]:
    """Tek kaydın (model veya kısmi toplam) fold değeri"""
    if isinstance(record, Mapping) and 'has_fba' in record:
        return dict(record)

    totals = {f: _get(record, f, 0) for f in ADDITIVE_FIELDS}
    totals.update(_breakdown(record, mixed_fba_share))

    fulfillment = Fulfillment(_get(record, 'fulfillment', Fulfillment.FBM))
    totals['has_cost_data'] = bool(_get(record, 'has_cost_data', False))
    totals['has_size_data'] = bool(_get(record, 'has_size_data', False))
    totals['has_fba'] = fulfillment.touches_fba
    totals['has_fbm'] = fulfillment.touches_fbm
    return totals


def fold_totals(records: Iterable[Record], mixed_fba_share: float = 0.5) -> Dict[str, Any]:
    """
    Kayıtları (veya daha önce fold edilmiş kısmi toplamları) toplar

    fold_totals(a + b) == fold_totals([fold_totals(a), fold_totals(b)])
    """
    totals = empty_totals()
    for record in records:
        totals = combine_totals(totals, totals_of(record, mixed_fba_share))
    return totals


def derive_metrics(totals: Mapping[str, Any]) -> Dict[str, Any]:
    """Toplamlardan oranlar: yüzdeler, ortalama fiyat, marj, ROI, fulfillment"""
    revenue = totals['total_revenue']
    quantity = totals['total_quantity']
    # marj ve ROI sadece maliyet ve desi verisi tam olduğunda
    complete = totals['has_cost_data'] and totals['has_size_data']

    total_costs = (
        totals['total_product_cost'] + totals['shipping_cost'] + totals['customs_duty']
        + totals['ddp_fee'] + totals['advertising_cost'] + totals['fba_cost']
        + totals['fbm_cost'] + totals['warehouse_cost'] + totals['gst_cost']
    )

    if totals['has_fba'] and totals['has_fbm']:
        fulfillment = Fulfillment.MIXED
    elif totals['has_fba']:
        fulfillment = Fulfillment.FBA
    else:
        fulfillment = Fulfillment.FBM

    metrics = {
        'avg_sale_price': revenue / quantity if quantity > 0 else 0.0,
        'profit_margin': _pct(totals['net_profit'], revenue) if complete else 0.0,
        'roi': _pct(totals['net_profit'], total_costs) if complete else 0.0,
        'fulfillment': fulfillment,
    }
    for percent_field, numerator in PERCENT_FIELDS.items():
        metrics[percent_field] = _pct(totals[numerator], revenue)
    return metrics


def _rollup_fields(children: List[Record], mixed_fba_share: float) -> Dict[str, Any]:
    totals = fold_totals(children, mixed_fba_share)
    fields = {f: totals[f] for f in ADDITIVE_FIELDS + BREAKDOWN_FIELDS}
    fields['has_cost_data'] = totals['has_cost_data']
    fields['has_size_data'] = totals['has_size_data']
    fields.update(derive_metrics(totals))
    return fields


def _by_revenue(records):
    # sorted() kararlıdır, eşit cirolarda giriş sırası korunur
    return sorted(records, key=lambda r: r.total_revenue, reverse=True)


def skus_to_products(
    skus: Iterable[SKUProfitAnalysis],
    mixed_fba_share: float = 0.5,
) -> List[ProductProfitAnalysis]:
    """SKU'ları ürün adına göre toplar"""
    groups: "OrderedDict[str, List[SKUProfitAnalysis]]" = OrderedDict()
    for sku in skus:
        groups.setdefault(sku.name, []).append(sku)

    products = []
    for name, children in groups.items():
        first = children[0]
        fields = _rollup_fields(children, mixed_fba_share)
        products.append(ProductProfitAnalysis(
            name=name,
            asin=first.parent,
            parent=first.parent,
            category=first.category,
            skus=[s.sku for s in children],
            product_cost=first.product_cost,
            desi=first.desi,
            **fields,
        ))

    return _by_revenue(products)


def products_to_parents(products: Iterable[ProductProfitAnalysis]) -> List[ParentProfitAnalysis]:
    """Ürünleri parent ASIN'e göre toplar"""
    groups: "OrderedDict[str, List[ProductProfitAnalysis]]" = OrderedDict()
    for product in products:
        groups.setdefault(product.parent, []).append(product)

    parents = []
    for parent, children in groups.items():
        fields = _rollup_fields(children, 0.5)
        quantity = fields['total_quantity']
        parents.append(ParentProfitAnalysis(
            parent=parent,
            category=children[0].category,
            names=[p.name for p in children],
            total_products=len(children),
            product_cost=fields['total_product_cost'] / quantity if quantity > 0 else 0.0,
            **fields,
        ))

    return _by_revenue(parents)


def parents_to_categories(
    parents: Iterable[ParentProfitAnalysis],
    products: Iterable[ProductProfitAnalysis],
    top_n: int = 5,
) -> List[CategoryProfitAnalysis]:
    """Parent'ları kategoriye göre toplar, her kategoriye ilk N ürünü ekler"""
    groups: "OrderedDict[str, List[ParentProfitAnalysis]]" = OrderedDict()
    for parent in parents:
        groups.setdefault(parent.category, []).append(parent)

    product_list = list(products)
    by_name = {p.name: p for p in product_list}

    categories = []
    for category, children in groups.items():
        fields = _rollup_fields(children, 0.5)
        quantity = fields['total_quantity']

        # kategori ürünleri = gruplanan parent'ların ürünleri
        members = [by_name[name] for parent in children for name in parent.names if name in by_name]
        top_products = [
            TopProduct(
                name=p.name,
                revenue=p.total_revenue,
                net_profit=p.net_profit,
                profit_margin=p.profit_margin,
            )
            for p in _by_revenue(members)[:top_n]
        ]

        categories.append(CategoryProfitAnalysis(
            category=category,
            parents=[p.parent for p in children],
            total_parents=len(children),
            total_products=sum(p.total_products for p in children),
            product_cost=fields['total_product_cost'] / quantity if quantity > 0 else 0.0,
            top_products=top_products,
            **fields,
        ))

    return _by_revenue(categories)


def summarize(products: Iterable[ProductProfitAnalysis]) -> ProfitabilitySummaryStats:
    """Veri seti özeti (maliyeti veya desisi eksik ürünler 'unknown' sayılır)"""
    stats = ProfitabilitySummaryStats()

    for product in products:
        stats.total_products += 1
        stats.total_revenue += product.total_revenue
        stats.total_orders += product.total_orders
        stats.total_quantity += product.total_quantity
        stats.total_selling_fees += product.selling_fees
        stats.total_fba_fees += product.fba_fees
        stats.total_refund_loss += product.refund_loss
        stats.total_product_cost += product.total_product_cost
        stats.total_shipping_cost += product.shipping_cost
        stats.total_customs_duty += product.customs_duty + product.ddp_fee
        stats.gross_profit += product.gross_profit

        if product.has_cost_data and product.has_size_data:
            stats.net_profit += product.net_profit
            if product.net_profit > 0:
                stats.profitable_products += 1
            else:
                stats.unprofitable_products += 1
        else:
            stats.unknown_products += 1

    stats.total_amazon_fees = stats.total_selling_fees + stats.total_fba_fees + stats.total_refund_loss
    stats.total_costs = stats.total_product_cost + stats.total_shipping_cost + stats.total_customs_duty
    stats.profit_margin = _pct(stats.net_profit, stats.total_revenue)
    return stats
