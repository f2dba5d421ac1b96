"""
Shipping Rate Resolver - Desi cetveli, gümrük ve FBM kargo hesabı
Tüm tutarlar hedef pazarın para birimine çevrilerek döner
"""
import logging
from typing import Optional

from app.core.enums import Currency, FBMShippingMode, MarketplaceCurrency, ShippingRoute
from app.models import (
    CountryProfitConfig,
    FBMShippingResult,
    Money,
    ShippingRateResult,
    ShippingRateTable,
)
from services.currency import CurrencyConverter

logger = logging.getLogger(__name__)


DEFAULT_CUSTOMS_DUTY_PERCENT = 8.5

# Maliyet tarafındaki sabit değerler (DDP, gemi bedeli, özel kargo) USD
COST_CURRENCY = Currency.USD

MARKETPLACE_ROUTES = {
    "US": ShippingRoute.US_TR,
    "UK": ShippingRoute.UK,
    "DE": ShippingRoute.EU,
    "FR": ShippingRoute.EU,
    "IT": ShippingRoute.EU,
    "ES": ShippingRoute.EU,
    "CA": ShippingRoute.CA,
    "AU": ShippingRoute.AU,
    "AE": ShippingRoute.UAE,
    "SA": ShippingRoute.SA,
}


def lookup(table: Optional[ShippingRateTable], route: ShippingRoute, size: float) -> ShippingRateResult:
    """
    Desi için kargo ücretini bul (bir üst basamağa yuvarlar)

    - Sıfır ücretli satırlar boş hücre sayılır ve atlanır
    - İlk geçerli basamaktan küçük desi o basamağı kullanır
    - En büyük basamağı aşan desi = found=False (sıfır maliyet DEĞİL)
    """
    route_config = table.routes.get(route) if table else None
    if route_config is None or not route_config.rates:
        currency = route_config.currency if route_config else Currency.USD
        return ShippingRateResult(rate=0.0, found=False, currency=currency)

    for entry in route_config.rates:
        if size <= entry.desi and entry.rate > 0:
            return ShippingRateResult(rate=entry.rate, found=True, currency=route_config.currency)

    return ShippingRateResult(rate=0.0, found=False, currency=route_config.currency)


def route_for_marketplace(marketplace: Optional[str]) -> ShippingRoute:
    """Marketplace için FBM kargo rotası (varsayılan US-TR)"""
    if not marketplace:
        return ShippingRoute.US_TR
    return MARKETPLACE_ROUTES.get(marketplace.upper(), ShippingRoute.US_TR)


def customs_duty_percent(config: Optional[CountryProfitConfig], category: Optional[str]) -> float:
    """
    Gümrük vergisi yüzdesi

    Kategori bazlı oranlar büyük/küçük harf duyarsız, iki yönlü içerme ile eşleşir
    ("Home Decor" <-> "home"). Config yoksa %8.5.
    """
    if config is None:
        return DEFAULT_CUSTOMS_DUTY_PERCENT

    from_tr = config.fbm.from_tr
    if not category or not from_tr.category_duties:
        return from_tr.customs_duty_percent

    normalized = category.lower().strip()
    for duty in from_tr.category_duties:
        duty_category = duty.category.lower().strip()
        if duty_category in normalized or normalized in duty_category:
            return duty.duty_percent

    return from_tr.customs_duty_percent


class FBMShippingResolver:
    """
    Tek pazar için FBM kargo/gümrük/DDP hesaplayıcı

    Yerel depolu pazarda (US) üç mod:
    - TR: US-TR ücreti, tam gümrük + DDP
    - LOCAL: desi * gemi bedeli + US-US ücreti, gümrük yok
    - BOTH: iki toplamın ortalaması, gümrük + DDP yarıya
    Diğer pazarlarda rota cetveli (veya özel kargo) + tam gümrük + DDP
    """

    def __init__(
        self,
        table: Optional[ShippingRateTable],
        config: CountryProfitConfig,
        marketplace: str,
        converter: CurrencyConverter,
        local_marketplace: str = "US",
        cost_currency: Currency = COST_CURRENCY,
    ):
        self.table = table
        self.config = config
        self.marketplace = marketplace.upper()
        self.converter = converter
        self.currency = MarketplaceCurrency.get(self.marketplace)
        self.is_local = self.marketplace == local_marketplace.upper()
        self.cost_currency = cost_currency

        self.ddp_fee = self._from_cost_currency(config.fbm.from_tr.ddp_fee)
        self.per_desi = self._from_cost_currency(config.fba.shipping_per_desi)

    def _from_cost_currency(self, amount: float) -> float:
        return self.converter.to(Money(amount=amount or 0.0, currency=self.cost_currency), self.currency).amount

    def _rate(self, route: ShippingRoute, size: float) -> ShippingRateResult:
        """Cetvel ücretini hedef para birimine çevirerek döner"""
        result = lookup(self.table, route, size)
        if not result.found:
            return result
        converted = self.converter.to(Money(amount=result.rate, currency=result.currency), self.currency)
        return ShippingRateResult(rate=converted.amount, found=True, currency=self.currency)

    def resolve(
        self,
        quantity: float,
        mode: FBMShippingMode,
        desi: Optional[float],
        custom_shipping: Optional[Money],
        avg_price: float,
        category: Optional[str],
    ) -> FBMShippingResult:
        """
        Args:
            quantity: FBM'e düşen adet (Mixed için pay)
            mode: Etkin FBM modu (SKU kaynağı > ülke ayarı)
            desi: Ürün desisi
            custom_shipping: Manuel kargo ücreti (USD, cetveli atlar)
            avg_price: Ortalama satış fiyatı (gümrük matrahı)
            category: Kategori bazlı gümrük oranı için
        """
        customs_per_unit = avg_price * (customs_duty_percent(self.config, category) / 100)
        custom = (
            self.converter.to(custom_shipping, self.currency).amount
            if custom_shipping is not None else None
        )

        if self.is_local:
            return self._resolve_local(quantity, mode, desi, custom, customs_per_unit)

        if custom is not None:
            return FBMShippingResult(
                shipping=custom * quantity,
                customs=customs_per_unit * quantity,
                ddp=self.ddp_fee * quantity,
                found=True,
            )

        if not desi:
            return FBMShippingResult(found=False)

        result = self._rate(route_for_marketplace(self.marketplace), desi)
        if not result.found:
            return FBMShippingResult(found=False)

        return FBMShippingResult(
            shipping=result.rate * quantity,
            customs=customs_per_unit * quantity,
            ddp=self.ddp_fee * quantity,
            found=True,
        )

    def _resolve_local(
        self,
        quantity: float,
        mode: FBMShippingMode,
        desi: Optional[float],
        custom: Optional[float],
        customs_per_unit: float,
    ) -> FBMShippingResult:
        if custom is None and not desi:
            return FBMShippingResult(found=False)

        to_warehouse = desi * self.per_desi if desi else 0.0
        tr = self._rate(ShippingRoute.US_TR, desi or 1)

        # Özel kargo US içi cetvelin yerini alır
        if custom is not None:
            local_total = to_warehouse + custom
            has_local = True
            local_partial = False
        else:
            us = self._rate(ShippingRoute.US_US, desi)
            local_total = to_warehouse + us.rate
            has_local = to_warehouse > 0 or us.found
            local_partial = to_warehouse > 0 and not us.found

        if mode == FBMShippingMode.TR:
            if not tr.found:
                return FBMShippingResult(found=False)
            return FBMShippingResult(
                shipping=tr.rate * quantity,
                customs=customs_per_unit * quantity,
                ddp=self.ddp_fee * quantity,
                found=True,
            )

        if mode == FBMShippingMode.LOCAL:
            if not has_local:
                return FBMShippingResult(found=False)
            return FBMShippingResult(
                shipping=local_total * quantity,
                found=True,
                partial=local_partial,
            )

        if mode == FBMShippingMode.BOTH:
            if tr.found and has_local:
                per_unit = (local_total + tr.rate) / 2
                partial = local_partial
            elif tr.found:
                per_unit = tr.rate
                partial = True
            elif has_local:
                per_unit = local_total
                partial = True
            else:
                return FBMShippingResult(found=False)

            if partial:
                logger.debug(f"⚠️ Partial BOTH shipping (tr={tr.found}, local={has_local}, desi={desi})")

            return FBMShippingResult(
                shipping=per_unit * quantity,
                customs=customs_per_unit * quantity * 0.5,
                ddp=self.ddp_fee * quantity * 0.5,
                found=True,
                partial=partial,
            )

        raise ValueError(f"Unknown FBM shipping mode: {mode}")
