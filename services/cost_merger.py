"""
Cost Data Merger - Maliyet/desi satırlarını hesaplamaya hazırlar
1) Aynı ürün adındaki kardeş SKU'lardan eksik maliyet/desi doldurulur
2) Ürün adı bazlı manuel override'lar (özel kargo, FBM kaynağı) uygulanır
Girdi hiçbir zaman değiştirilmez, her zaman yeni liste döner
"""
import logging
from typing import Dict, Iterable, List, Optional

from app.models import CostCoverage, NameOverride, ProductCostData, TransactionRecord

logger = logging.getLogger(__name__)


def _sibling_values(cost_rows: List[ProductCostData]) -> Dict[str, Dict[str, Optional[float]]]:
    """Ürün adı -> ilk dolu cost/size"""
    by_name: Dict[str, Dict[str, Optional[float]]] = {}
    for row in cost_rows:
        if not row.name:
            continue
        entry = by_name.setdefault(row.name, {'cost': None, 'size': None})
        if entry['cost'] is None and row.cost is not None:
            entry['cost'] = row.cost
        if entry['size'] is None and row.size is not None:
            entry['size'] = row.size
    return by_name


def merge(
    cost_rows: Iterable[ProductCostData],
    overrides: Optional[Iterable[NameOverride]] = None,
    marketplace: Optional[str] = None,
    local_marketplace: str = "US",
) -> List[ProductCostData]:
    """
    Kardeş doldurma + override uygulaması

    Args:
        cost_rows: SKU maliyet satırları
        overrides: Ürün adı bazlı override'lar
        marketplace: Hedef pazar - override'lar sadece yerel depolu pazarda geçerli
        local_marketplace: TR/yerel ayrımı yapılan pazar (US)

    Returns:
        Yeni ProductCostData listesi
    """
    rows = list(cost_rows)
    siblings = _sibling_values(rows)

    backfilled = 0
    merged: List[ProductCostData] = []
    for row in rows:
        update = {}
        sibling = siblings.get(row.name)
        if sibling:
            if row.cost is None and sibling['cost'] is not None:
                update['cost'] = sibling['cost']
            if row.size is None and sibling['size'] is not None:
                update['size'] = sibling['size']
        if update:
            backfilled += 1
            merged.append(row.model_copy(update=update))
        else:
            merged.append(row)

    if backfilled:
        logger.info(f"🔗 Backfilled cost/size for {backfilled} SKUs from siblings")

    if not overrides or not marketplace or marketplace.upper() != local_marketplace.upper():
        return merged

    override_map = {o.name: o for o in overrides if o.name}
    if not override_map:
        return merged

    result: List[ProductCostData] = []
    applied = 0
    for row in merged:
        override = override_map.get(row.name)
        if override is None:
            result.append(row)
            continue

        update = {}
        if override.custom_shipping is not None:
            update['custom_shipping'] = override.custom_shipping
        if override.fbm_source is not None:
            update['fbm_source'] = override.fbm_source

        if update:
            applied += 1
            result.append(row.model_copy(update=update))
        else:
            result.append(row)

    logger.info(f"✏️ Applied name overrides to {applied} SKUs ({marketplace})")
    return result


def extract_cost_data_from_transactions(transactions: Iterable[TransactionRecord]) -> List[ProductCostData]:
    """
    Zenginleştirilmiş transaction'lardan SKU maliyet satırları çıkarır

    Aynı SKU bazı satırlarda maliyet/desi taşır, bazılarında taşımaz;
    veri taşıyan satırlar boş alanları doldurur.
    """
    sku_map: Dict[str, ProductCostData] = {}

    for t in transactions:
        if not t.sku:
            continue

        existing = sku_map.get(t.sku)
        if existing is None:
            sku_map[t.sku] = ProductCostData(
                sku=t.sku,
                asin=t.asin,
                name=t.name or t.sku,
                parent=t.parent,
                category=t.product_category,
                cost=t.product_cost,
                size=t.product_size,
                custom_shipping=t.product_custom_shipping,
                fbm_source=t.product_fbm_source,
            )
            continue

        update = {}
        if existing.cost is None and t.product_cost is not None:
            update['cost'] = t.product_cost
        if existing.size is None and t.product_size is not None:
            update['size'] = t.product_size
        if existing.custom_shipping is None and t.product_custom_shipping is not None:
            update['custom_shipping'] = t.product_custom_shipping
        if not existing.fbm_source and t.product_fbm_source:
            update['fbm_source'] = t.product_fbm_source

        if update:
            update['asin'] = existing.asin or t.asin
            update['parent'] = existing.parent or t.parent
            update['category'] = existing.category or t.product_category
            # fbm_source validator'dan geçsin diye yeniden oluşturulur
            sku_map[t.sku] = ProductCostData(**{**existing.model_dump(), **update})

    logger.info(f"📦 Extracted cost data for {len(sku_map)} SKUs from transactions")
    return list(sku_map.values())


def cost_coverage(cost_rows: Iterable[ProductCostData], skus: Iterable[str]) -> CostCoverage:
    """Satılan SKU'lar için maliyet/desi eşleşme özeti"""
    cost_by_sku = {row.sku: row for row in cost_rows}
    all_skus = list(dict.fromkeys(s for s in skus if s))

    missing_cost: List[str] = []
    missing_size: List[str] = []
    matched = 0

    for sku in all_skus:
        row = cost_by_sku.get(sku)
        if row is None:
            missing_cost.append(sku)
            missing_size.append(sku)
            continue
        matched += 1
        if row.cost is None:
            missing_cost.append(sku)
        if row.size is None:
            missing_size.append(sku)

    total = len(all_skus)
    return CostCoverage(
        total_products=total,
        matched_products=matched,
        missing_cost=missing_cost,
        missing_size=missing_size,
        match_percentage=(matched / total * 100) if total > 0 else 0.0,
    )
