"""
Pydantic Models - Domain records and Request/Response schemas
Tüm modeller Python'da snake_case, JSON'da camelCase (sellingFeePercent, hasCostData, ...)
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, List, Union
from datetime import datetime, date

from app.core.enums import (
    Currency,
    Fulfillment,
    FBMShippingMode,
    GSTApplyTo,
    IncompleteReason,
    ShippingRoute,
)


class CamelModel(BaseModel):
    """camelCase JSON sözleşmesi için ortak taban"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
    """Değiştirilemez kayıtlar (hesaplama sırasında mutate edilmez)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ============================================================================
# INPUT RECORDS
# ============================================================================

class Money(FrozenModel):
    """Para birimi etiketli tutar"""
    amount: float = 0.0
    currency: Currency = Currency.USD


class TransactionRecord(FrozenModel):
    """Amazon transaction satırı (Order, Refund, Service Fee, ...)"""
    date: Optional[datetime] = None
    marketplace_code: Optional[str] = None
    sku: str = ""
    name: Optional[str] = None
    parent: Optional[str] = None
    asin: Optional[str] = None
    product_category: Optional[str] = None
    fulfillment: str = Field("", description="FBA / AFN / FBM / MFN / boş")
    category_type: str = Field(..., description="Order, Refund, Service Fee, Adjustment, ...")
    description: str = ""

    product_sales: float = 0.0
    selling_fees: float = 0.0
    fba_fees: float = 0.0
    vat: float = 0.0
    total: float = 0.0
    quantity: int = 0

    # PriceLab zenginleştirme alanları (opsiyonel)
    product_cost: Optional[float] = None
    product_size: Optional[float] = None
    product_custom_shipping: Optional[float] = None
    product_fbm_source: Optional[str] = None


def _normalize_fbm_source(value: Optional[str]) -> Optional[str]:
    """TR / US / BOTH - tanınmayan değerler None"""
    if value is None:
        return None
    normalized = str(value).strip().upper()
    if normalized in ("TR", "TURKEY", "TÜRKİYE", "TURKIYE"):
        return "TR"
    if normalized in ("US", "USA", "LOCAL", "ABD"):
        return "US"
    if normalized in ("BOTH", "MIXED", "İKİSİ", "IKISI"):
        return "BOTH"
    return None


class ProductCostData(FrozenModel):
    """SKU maliyet/desi satırı (maliyet ve özel kargo USD)"""
    sku: str
    name: str = ""
    asin: Optional[str] = None
    parent: Optional[str] = None
    category: Optional[str] = None
    cost: Optional[float] = None
    size: Optional[float] = Field(None, description="Desi")
    custom_shipping: Optional[float] = None
    fbm_source: Optional[str] = Field(None, description="TR / US / BOTH")

    @field_validator("fbm_source", mode="before")
    @classmethod
    def normalize_fbm_source(cls, v):
        return _normalize_fbm_source(v)


class NameOverride(CamelModel):
    """Ürün adı bazlı manuel override (sadece yerel depolu pazar için)"""
    name: str
    custom_shipping: Optional[float] = None
    fbm_source: Optional[str] = None

    @field_validator("fbm_source", mode="before")
    @classmethod
    def normalize_fbm_source(cls, v):
        return _normalize_fbm_source(v)


# ============================================================================
# SHIPPING RATES
# ============================================================================

class DesiRate(FrozenModel):
    desi: float
    rate: float


class ShippingRouteConfig(CamelModel):
    """Tek rota: para birimi + artan desi basamakları"""
    currency: Currency = Currency.USD
    rates: List[DesiRate] = Field(default_factory=list)

    @field_validator("rates")
    @classmethod
    def sort_rates(cls, v):
        return sorted(v, key=lambda r: r.desi)


class ShippingRateTable(CamelModel):
    """Rota -> desi cetveli"""
    routes: Dict[ShippingRoute, ShippingRouteConfig] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None


class ShippingRateResult(FrozenModel):
    rate: float = 0.0
    found: bool = False
    currency: Currency = Currency.USD


class FBMShippingResult(FrozenModel):
    """FBM kargo + gümrük + DDP (hedef pazar para biriminde)"""
    shipping: float = 0.0
    customs: float = 0.0
    ddp: float = 0.0
    found: bool = False
    partial: bool = False


# ============================================================================
# COUNTRY CONFIGS
# ============================================================================

class FBAConfig(CamelModel):
    shipping_per_desi: float = Field(0.0, description="Gemi bedeli (USD/desi)")
    warehouse_percent: float = Field(0.0, description="Depo-İdare %")


class CategoryDuty(CamelModel):
    category: str
    duty_percent: float


class FromTRConfig(CamelModel):
    customs_duty_percent: float = 0.0
    category_duties: List[CategoryDuty] = Field(default_factory=list)
    ddp_fee: float = Field(0.0, description="DDP ücreti (USD/adet)")


class FromLocalConfig(CamelModel):
    shipping_per_desi: float = 0.0
    warehouse_percent: float = 0.0


class FBMConfig(CamelModel):
    shipping_mode: FBMShippingMode = FBMShippingMode.BOTH
    from_tr: FromTRConfig = Field(default_factory=FromTRConfig, alias="fromTR")
    from_local: Optional[FromLocalConfig] = None


class GSTConfig(CamelModel):
    """Amazon dışı vergi yükümlülüğü (AU %10, AE %5, SA %15)"""
    enabled: bool = False
    rate_percent: float = 0.0
    included_in_price: bool = True
    apply_to: GSTApplyTo = GSTApplyTo.BOTH


class CountryProfitConfig(CamelModel):
    country: str
    fba: FBAConfig = Field(default_factory=FBAConfig)
    fbm: FBMConfig = Field(default_factory=FBMConfig)
    gst: Optional[GSTConfig] = None
    updated_at: Optional[datetime] = None


class AllCountryConfigs(CamelModel):
    configs: Dict[str, CountryProfitConfig] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None

    def get(self, marketplace: Optional[str]) -> Optional[CountryProfitConfig]:
        if not marketplace:
            return None
        return self.configs.get(marketplace.upper())


def create_default_country_configs() -> AllCountryConfigs:
    """
    Varsayılan ülke ayarları

    US: BOTH modu, $1/desi gemi bedeli, %8.5 gümrük, $2.50 DDP, %3 yerel depo
    Diğerleri: sıfır değerler (kullanıcı doldurur)
    """
    configs: Dict[str, CountryProfitConfig] = {
        "US": CountryProfitConfig(
            country="US",
            fba=FBAConfig(shipping_per_desi=1.0, warehouse_percent=0.0),
            fbm=FBMConfig(
                shipping_mode=FBMShippingMode.BOTH,
                from_tr=FromTRConfig(customs_duty_percent=8.5, ddp_fee=2.50),
                from_local=FromLocalConfig(shipping_per_desi=1.0, warehouse_percent=3.0),
            ),
        ),
    }
    for code in ("UK", "DE", "FR", "IT", "ES", "CA", "AU", "AE", "SA"):
        configs[code] = CountryProfitConfig(country=code)

    return AllCountryConfigs(configs=configs, updated_at=datetime.now())


# ============================================================================
# GLOBAL COSTS
# ============================================================================

class GlobalCostPercentages(FrozenModel):
    """Pazar geneli maliyet yüzdeleri (filtrelenmemiş transaction'lardan)"""
    advertising_percent: float = 0.0
    fba_cost_percent: float = 0.0
    fbm_cost_percent: float = 0.0
    refund_recovery_rate: float = 0.30
    marketplace: Optional[str] = None

    # Detay (şeffaflık için)
    total_sales: float = 0.0
    fba_sales: float = 0.0
    fbm_sales: float = 0.0
    advertising_cost: float = 0.0
    fba_cost: float = 0.0
    fbm_cost: float = 0.0


# ============================================================================
# PROFIT ANALYSIS RECORDS
# ============================================================================

class ProfitMetrics(CamelModel):
    """SKU / Ürün / Parent / Kategori ortak sayısal alanları"""
    # Satış
    total_revenue: float = 0.0
    total_orders: int = 0
    total_quantity: int = 0
    refunded_quantity: int = 0
    replacement_count: int = 0
    mscf_count: int = 0
    avg_sale_price: float = 0.0

    # Amazon ücretleri (transaction'lardan)
    selling_fees: float = 0.0
    fba_fees: float = 0.0
    refund_loss: float = 0.0
    vat: float = 0.0
    total_amazon_fees: float = 0.0

    # Hesaplanan maliyetler (config'den)
    product_cost: float = 0.0
    total_product_cost: float = 0.0
    shipping_cost: float = 0.0
    customs_duty: float = 0.0
    ddp_fee: float = 0.0
    warehouse_cost: float = 0.0
    others_cost: float = 0.0
    gst_cost: float = 0.0

    # Global maliyetler (yüzdelerden)
    advertising_cost: float = 0.0
    fba_cost: float = 0.0
    fbm_cost: float = 0.0

    # Karlılık
    gross_profit: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0
    roi: float = 0.0

    # Yüzdeler (ciroya oran)
    selling_fee_percent: float = 0.0
    fba_fee_percent: float = 0.0
    refund_loss_percent: float = 0.0
    vat_percent: float = 0.0
    product_cost_percent: float = 0.0
    shipping_cost_percent: float = 0.0
    advertising_percent: float = 0.0
    fba_cost_percent: float = 0.0
    fbm_cost_percent: float = 0.0
    others_cost_percent: float = 0.0
    gst_cost_percent: float = 0.0

    # Flags
    has_cost_data: bool = False
    has_size_data: bool = False


class SKUProfitAnalysis(ProfitMetrics):
    sku: str
    name: str
    parent: str
    category: str
    marketplace: Optional[str] = None
    fulfillment: Fulfillment = Fulfillment.FBM
    desi: Optional[float] = None
    exclusion_reason: Optional[str] = None


class FulfillmentBreakdown(ProfitMetrics):
    """Mixed çocuklar FBA/FBM arasında yarı yarıya bölünür"""
    fba_revenue: float = 0.0
    fbm_revenue: float = 0.0
    fba_quantity: float = 0.0
    fbm_quantity: float = 0.0


class ProductProfitAnalysis(FulfillmentBreakdown):
    name: str
    asin: str = ""
    parent: str
    category: str
    skus: List[str] = Field(default_factory=list)
    fulfillment: Fulfillment = Fulfillment.FBM
    desi: Optional[float] = None


class ParentProfitAnalysis(FulfillmentBreakdown):
    parent: str
    category: str
    names: List[str] = Field(default_factory=list)
    total_products: int = 0
    fulfillment: Fulfillment = Fulfillment.FBM


class TopProduct(CamelModel):
    name: str
    revenue: float
    net_profit: float
    profit_margin: float


class CategoryProfitAnalysis(FulfillmentBreakdown):
    category: str
    parents: List[str] = Field(default_factory=list)
    total_parents: int = 0
    total_products: int = 0
    fulfillment: Fulfillment = Fulfillment.FBM
    top_products: List[TopProduct] = Field(default_factory=list)


class CompleteSKUResult(FrozenModel):
    """Maliyet + desi + kargo tarifesi mevcut, marj/ROI güvenilir"""
    analysis: SKUProfitAnalysis


class IncompleteSKUResult(FrozenModel):
    """Eksik veri - hesaplandığı kadar hesaplanır ama marj/ROI toplamlarına girmez"""
    analysis: SKUProfitAnalysis
    reasons: List[IncompleteReason]


SKUResult = Union[CompleteSKUResult, IncompleteSKUResult]


class ProfitabilitySummaryStats(CamelModel):
    total_revenue: float = 0.0
    total_orders: int = 0
    total_quantity: int = 0

    total_selling_fees: float = 0.0
    total_fba_fees: float = 0.0
    total_refund_loss: float = 0.0
    total_amazon_fees: float = 0.0

    total_product_cost: float = 0.0
    total_shipping_cost: float = 0.0
    total_customs_duty: float = 0.0
    total_costs: float = 0.0

    gross_profit: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0

    total_products: int = 0
    profitable_products: int = 0
    unprofitable_products: int = 0
    unknown_products: int = 0


class CostCoverage(CamelModel):
    """Maliyet verisi eşleşme durumu"""
    total_products: int = 0
    matched_products: int = 0
    missing_cost: List[str] = Field(default_factory=list)
    missing_size: List[str] = Field(default_factory=list)
    match_percentage: float = 0.0


# ============================================================================
# PRICING CALCULATOR EXPORT
# ============================================================================

class DateRange(CamelModel):
    start: Optional[date] = None
    end: Optional[date] = None


class PricingCategoryExpense(CamelModel):
    category: str
    marketplace: str
    fulfillment_type: Fulfillment

    sample_size: int = 0
    total_revenue: float = 0.0
    total_quantity: float = 0.0
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    selling_fee_percent: float = 0.0
    fba_fee_percent: float = 0.0
    refund_loss_percent: float = 0.0
    vat_percent: float = 0.0

    product_cost_percent: float = 0.0
    shipping_cost_percent: float = 0.0
    customs_duty_percent: float = 0.0
    ddp_fee_percent: float = 0.0
    warehouse_cost_percent: float = 0.0
    gst_cost_percent: float = 0.0

    advertising_percent: float = 0.0
    fba_cost_percent: float = 0.0
    fbm_cost_percent: float = 0.0

    avg_profit_margin: float = 0.0
    avg_roi: float = Field(0.0, alias="avgROI")
    avg_sale_price: float = 0.0
    avg_product_cost: float = 0.0

    fba_percent: float = 0.0
    fbm_percent: float = 0.0


class PricingGlobalSettings(CamelModel):
    advertising_percent: float = 0.0
    fba_cost_percent: float = 0.0
    fbm_cost_percent: float = 0.0
    refund_recovery_rate: float = 0.30


class PricingExportSummary(CamelModel):
    total_categories: int = 0
    total_revenue: float = 0.0
    total_orders: int = 0
    avg_margin: float = 0.0


class PricingCalculatorExport(CamelModel):
    version: int = 1
    exported_at: datetime
    source_app: str = "amazon-analyzer"
    marketplace: str
    date_range: DateRange
    global_settings: PricingGlobalSettings
    categories: List[PricingCategoryExpense] = Field(default_factory=list)
    summary: PricingExportSummary


# ============================================================================
# REQUEST MODELS
# ============================================================================

class AnalyzeRequest(CamelModel):
    """Karlılık analizi isteği"""
    transactions: List[TransactionRecord] = Field(default_factory=list)
    cost_data: Optional[List[ProductCostData]] = Field(
        None, description="Boş bırakılırsa transaction zenginleştirme alanlarından çıkarılır"
    )
    name_overrides: List[NameOverride] = Field(default_factory=list)
    shipping_rates: Optional[ShippingRateTable] = None
    country_configs: Optional[AllCountryConfigs] = Field(
        None, description="Boş bırakılırsa varsayılan ülke ayarları kullanılır"
    )
    marketplace: Optional[str] = Field(None, description="Marketplace filtresi (None = tüm pazarlar)")
    fulfillment: Optional[Fulfillment] = Field(None, description="FBA / FBM filtresi")
    start_date: Optional[date] = Field(None, description="Başlangıç tarihi (YYYY-MM-DD)")
    end_date: Optional[date] = Field(None, description="Bitiş tarihi (YYYY-MM-DD)")
    refund_recovery_rates: Dict[str, float] = Field(default_factory=dict)
    exclude_grade_and_resell: bool = False
    use_cache: bool = True


class GlobalCostsRequest(CamelModel):
    transactions: List[TransactionRecord] = Field(default_factory=list)
    marketplace: Optional[str] = None
    refund_recovery_rates: Dict[str, float] = Field(default_factory=dict)


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class ProfitabilityReport(CamelModel):
    """Ana karlılık raporu"""
    marketplace: Optional[str] = None
    currency: Currency = Currency.USD
    marketplaces: List[str] = Field(default_factory=list)
    global_costs: Dict[str, GlobalCostPercentages] = Field(default_factory=dict)

    skus: List[SKUProfitAnalysis] = Field(default_factory=list)
    excluded_skus: List[SKUProfitAnalysis] = Field(
        default_factory=list, description="Rollup'lardan çıkarılan SKU'lar (Grade and Resell)"
    )
    incomplete_skus: List[str] = Field(
        default_factory=list, description="Maliyet/desi/kargo eksik - marj ve ROI hesaplanmadı"
    )
    products: List[ProductProfitAnalysis] = Field(default_factory=list)
    parents: List[ParentProfitAnalysis] = Field(default_factory=list)
    categories: List[CategoryProfitAnalysis] = Field(default_factory=list)

    summary: ProfitabilitySummaryStats = Field(default_factory=ProfitabilitySummaryStats)
    coverage: CostCoverage = Field(default_factory=CostCoverage)

    # Metadata
    period: DateRange = Field(default_factory=DateRange)
    total_records: int = 0
    exchange_rate_source: str = "fallback"
    generated_at: datetime


class ExchangeRatesResponse(CamelModel):
    base: Currency = Currency.USD
    rates: Dict[str, float]
    source: str
    last_update: Optional[datetime] = None
    error: Optional[str] = None


class ConversionResponse(CamelModel):
    amount: float
    from_currency: Currency
    to_currency: Currency
    result: float


class HealthResponse(CamelModel):
    """Health check response"""
    status: str
    timestamp: datetime
    version: str
    exchange_rate_source: str
