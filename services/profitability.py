"""
Profitability Service - KARLILIK ANALİZİ ORKESTRASYONU
Global yüzdeler -> maliyet birleştirme -> SKU hesabı -> SKU/Ürün/Parent/Kategori
"""
import hashlib
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.core.config import Settings, get_settings
from app.core.enums import (
    Currency,
    Fulfillment,
    Marketplace,
    GRADE_AND_RESELL_CATEGORY,
)
from app.core.exceptions import ConfigurationError
from app.models import (
    AllCountryConfigs,
    AnalyzeRequest,
    CompleteSKUResult,
    DateRange,
    GlobalCostPercentages,
    GlobalCostsRequest,
    PricingCalculatorExport,
    ProductCostData,
    ProfitabilityReport,
    SKUProfitAnalysis,
    SKUResult,
    TransactionRecord,
    create_default_country_configs,
)
from services.aggregation import (
    MONEY_FIELDS,
    parents_to_categories,
    products_to_parents,
    skus_to_products,
    summarize,
)
from services.cost_merger import cost_coverage, extract_cost_data_from_transactions, merge
from services.currency import CurrencyConverter, get_currency_converter, get_marketplace_currency
from services.global_costs import compute_global_percentages
from services.pricing_export import generate_pricing_export
from services.sku_profitability import MixedFulfillmentPolicy, SKUProfitabilityCalculator

logger = logging.getLogger(__name__)

ALL_MARKETPLACES = "ALL"

# (global yüzdeler, SKU sonuçları, birleştirilmiş maliyet satırları)
MarketplaceRun = Tuple[GlobalCostPercentages, List[SKUResult], List[ProductCostData]]


class ProfitabilityService:
    """Karlılık analizleri yapar"""

    def __init__(
        self,
        converter: Optional[CurrencyConverter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.converter = converter or get_currency_converter()
        self.mixed_policy = MixedFulfillmentPolicy(fba_share=self.settings.mixed_fba_share)
        self.reporting_currency = Currency(self.settings.reporting_currency.upper())
        self.calculator = SKUProfitabilityCalculator(
            converter=self.converter,
            mixed_policy=self.mixed_policy,
            local_marketplace=self.settings.local_warehouse_marketplace,
            cost_currency=Currency(self.settings.cost_data_currency.upper()),
            default_recovery_rate=self.settings.default_refund_recovery_rate,
        )

        # Memo cache: key -> (timestamp, report)
        self._cache: Dict[tuple, Tuple[float, ProfitabilityReport]] = {}
        self._cache_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def analyze(self, request: AnalyzeRequest) -> ProfitabilityReport:
        """
        Ana analiz fonksiyonu

        - marketplace verilmişse tek pazar, pazarın para biriminde
        - marketplace yoksa her pazar ayrı hesaplanır, SKU kayıtları
          raporlama para birimine çevrilir ve sonra toplanır

        Raises:
            ConfigurationError: start_date > end_date
        """
        self._validate(request)
        marketplace = Marketplace.normalize(request.marketplace)

        cache_key = self._cache_key(request, marketplace)
        if request.use_cache:
            cached = self._cache_get(cache_key)
            if cached is not None:
                logger.info(f"⚡ Cache hit ({marketplace or ALL_MARKETPLACES})")
                return cached

        started = time.time()
        transactions = self._filter_dates(request.transactions, request)
        logger.info(
            f"📊 Analyzing {len(transactions)} transactions "
            f"(marketplace={marketplace or ALL_MARKETPLACES}, fulfillment={request.fulfillment})"
        )

        cost_rows = (
            list(request.cost_data) if request.cost_data is not None
            else extract_cost_data_from_transactions(transactions)
        )
        country_configs = request.country_configs or create_default_country_configs()

        partitions = self._partition(transactions, marketplace)
        runs = self.analyze_marketplaces(request, partitions, cost_rows, country_configs)

        global_costs = {code: run[0] for code, run in runs.items()}
        if marketplace:
            currency = get_marketplace_currency(marketplace)
            results = [r for run in runs.values() for r in run[1]]
        else:
            currency = self.reporting_currency
            global_costs[ALL_MARKETPLACES] = compute_global_percentages(
                transactions,
                None,
                request.refund_recovery_rates,
                converter=self.converter,
                default_recovery_rate=self.settings.default_refund_recovery_rate,
            )
            results = [
                self._to_reporting_currency(r, code)
                for code, run in runs.items()
                for r in run[1]
            ]

        report = self._build_report(
            request, marketplace, currency, runs, global_costs, results,
            self._merged_cost_rows(runs, cost_rows), len(transactions),
        )

        logger.info(
            f"✅ Profitability analysis done in {time.time() - started:.2f}s: "
            f"{len(report.skus)} SKUs, {len(report.products)} products, {len(report.categories)} categories"
        )

        if request.use_cache:
            self._cache_put(cache_key, report)
        return report

    def analyze_marketplaces(
        self,
        request: AnalyzeRequest,
        partitions: "OrderedDict[Optional[str], List[TransactionRecord]]",
        cost_rows: List[ProductCostData],
        country_configs: AllCountryConfigs,
    ) -> "OrderedDict[Optional[str], MarketplaceRun]":
        """
        Her pazar bağımsız bir pipeline (kendi global yüzdeleri, kendi ülke ayarı)
        Pazarlar thread pool'da paralel çalışır
        """
        runs: "OrderedDict[Optional[str], MarketplaceRun]" = OrderedDict()
        if not partitions:
            return runs

        if len(partitions) == 1:
            code, rows = next(iter(partitions.items()))
            runs[code] = self._run_marketplace(request, code, rows, cost_rows, country_configs)
            return runs

        workers = max(1, min(self.settings.max_workers, len(partitions)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = OrderedDict(
                (code, executor.submit(self._run_marketplace, request, code, rows, cost_rows, country_configs))
                for code, rows in partitions.items()
            )
            for code, future in futures.items():
                runs[code] = future.result()

        return runs

    def global_costs(self, request: GlobalCostsRequest) -> GlobalCostPercentages:
        """Pazar geneli reklam / FBA / FBM gider yüzdeleri"""
        return compute_global_percentages(
            request.transactions,
            Marketplace.normalize(request.marketplace),
            request.refund_recovery_rates,
            converter=self.converter,
            default_recovery_rate=self.settings.default_refund_recovery_rate,
        )

    def pricing_export(self, request: AnalyzeRequest) -> PricingCalculatorExport:
        """Kategori gider yüzdeleri (fiyat hesaplayıcı formatı)"""
        report = self.analyze(request)
        key = report.marketplace or ALL_MARKETPLACES
        return generate_pricing_export(
            report.categories,
            report.skus,
            report.global_costs.get(key),
            key,
            report.period,
        )

    def clear_cache(self):
        with self._cache_lock:
            self._cache.clear()
        logger.info("🗑️ Analysis cache cleared")

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _run_marketplace(
        self,
        request: AnalyzeRequest,
        marketplace: Optional[str],
        rows: List[TransactionRecord],
        cost_rows: List[ProductCostData],
        country_configs: AllCountryConfigs,
    ) -> MarketplaceRun:
        # Global yüzdeler fulfillment filtresinden ÖNCE
        global_pct = compute_global_percentages(
            rows,
            marketplace,
            request.refund_recovery_rates,
            converter=self.converter,
            default_recovery_rate=self.settings.default_refund_recovery_rate,
        )

        merged_costs = merge(
            cost_rows,
            request.name_overrides,
            marketplace,
            local_marketplace=self.settings.local_warehouse_marketplace,
        )

        filtered = self._filter_fulfillment(rows, request.fulfillment)
        results = self.calculator.calculate_all(
            filtered,
            merged_costs,
            request.shipping_rates,
            country_configs,
            marketplace,
            global_pct,
        )
        return global_pct, results, merged_costs

    def _merged_cost_rows(
        self,
        runs: "OrderedDict[Optional[str], MarketplaceRun]",
        cost_rows: List[ProductCostData],
    ) -> List[ProductCostData]:
        """Kapsam raporu için pazarların birleştirilmiş maliyet satırları (SKU başına ilk pazar)"""
        if not runs:
            return cost_rows
        by_sku: "OrderedDict[str, ProductCostData]" = OrderedDict()
        for run in runs.values():
            for row in run[2]:
                by_sku.setdefault(row.sku, row)
        return list(by_sku.values())

    def _build_report(
        self,
        request: AnalyzeRequest,
        marketplace: Optional[str],
        currency: Currency,
        runs,
        global_costs: Dict[str, GlobalCostPercentages],
        results: List[SKUResult],
        cost_rows: List[ProductCostData],
        total_records: int,
    ) -> ProfitabilityReport:
        included: List[SKUProfitAnalysis] = []
        excluded: List[SKUProfitAnalysis] = []
        incomplete: List[str] = []

        for result in sorted(results, key=lambda r: r.analysis.total_revenue, reverse=True):
            analysis = result.analysis
            if request.exclude_grade_and_resell and analysis.category == GRADE_AND_RESELL_CATEGORY:
                excluded.append(analysis)
                continue
            if not isinstance(result, CompleteSKUResult):
                incomplete.append(analysis.sku)
            included.append(analysis)

        products = skus_to_products(included, self.mixed_policy.fba_share)
        parents = products_to_parents(products)
        categories = parents_to_categories(parents, products, self.settings.top_products_limit)

        return ProfitabilityReport(
            marketplace=marketplace,
            currency=currency,
            marketplaces=[code for code in runs.keys() if code],
            global_costs={code or "UNKNOWN": pct for code, pct in global_costs.items()},
            skus=included,
            excluded_skus=excluded,
            incomplete_skus=incomplete,
            products=products,
            parents=parents,
            categories=categories,
            summary=summarize(products),
            coverage=cost_coverage(cost_rows, [s.sku for s in included]),
            period=DateRange(start=request.start_date, end=request.end_date),
            total_records=total_records,
            exchange_rate_source=self.converter.source,
            generated_at=datetime.now(),
        )

    def _to_reporting_currency(self, result: SKUResult, marketplace: Optional[str]) -> SKUResult:
        """SKU para alanlarını raporlama para birimine çevirir (yüzdeler değişmez)"""
        source = get_marketplace_currency(marketplace)
        if source == self.reporting_currency:
            return result

        analysis = result.analysis
        update = {
            field: self.converter.convert(getattr(analysis, field), source, self.reporting_currency)
            for field in MONEY_FIELDS
        }
        return result.model_copy(update={'analysis': analysis.model_copy(update=update)})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(request: AnalyzeRequest):
        if request.start_date and request.end_date and request.start_date > request.end_date:
            raise ConfigurationError(
                f"start_date ({request.start_date}) must be before end_date ({request.end_date})"
            )

    @staticmethod
    def _filter_dates(transactions: List[TransactionRecord], request: AnalyzeRequest) -> List[TransactionRecord]:
        """Tarih filtresi (tarihi olmayan satırlar korunur)"""
        if not request.start_date and not request.end_date:
            return list(transactions)

        filtered = []
        for t in transactions:
            if t.date is not None:
                day = t.date.date()
                if request.start_date and day < request.start_date:
                    continue
                if request.end_date and day > request.end_date:
                    continue
            filtered.append(t)
        return filtered

    @staticmethod
    def _filter_fulfillment(
        transactions: List[TransactionRecord],
        fulfillment: Optional[Fulfillment],
    ) -> List[TransactionRecord]:
        if fulfillment is None or fulfillment == Fulfillment.MIXED:
            return transactions
        if fulfillment == Fulfillment.FBA:
            return [t for t in transactions if Fulfillment.is_fba_channel(t.fulfillment)]
        return [t for t in transactions if not Fulfillment.is_fba_channel(t.fulfillment)]

    @staticmethod
    def _partition(
        transactions: List[TransactionRecord],
        marketplace: Optional[str],
    ) -> "OrderedDict[Optional[str], List[TransactionRecord]]":
        """Pazar koduna göre ayırır (giriş sırası korunur)"""
        partitions: "OrderedDict[Optional[str], List[TransactionRecord]]" = OrderedDict()
        for t in transactions:
            code = (t.marketplace_code or "").upper() or None
            if marketplace and code != marketplace:
                continue
            partitions.setdefault(code, []).append(t)

        if marketplace and marketplace not in partitions:
            partitions[marketplace] = []
        return partitions

    def _cache_key(self, request: AnalyzeRequest, marketplace: Optional[str]) -> tuple:
        fingerprint = hashlib.sha1(
            request.model_dump_json(exclude={'use_cache'}).encode('utf-8')
        ).hexdigest()
        return (
            marketplace,
            request.fulfillment,
            request.start_date,
            request.end_date,
            len(request.transactions),
            fingerprint,
        )

    def _cache_get(self, key: tuple) -> Optional[ProfitabilityReport]:
        ttl = self.settings.analysis_cache_ttl_seconds
        if ttl <= 0:
            return None
        with self._cache_lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, report = entry
            if time.time() - stored_at > ttl:
                del self._cache[key]
                return None
            # her çağırana kendi kopyası
            return report.model_copy(deep=True)

    def _cache_put(self, key: tuple, report: ProfitabilityReport):
        if self.settings.analysis_cache_ttl_seconds <= 0:
            return
        with self._cache_lock:
            now = time.time()
            expired = [k for k, (ts, _) in self._cache.items() if now - ts > self.settings.analysis_cache_ttl_seconds]
            for k in expired:
                del self._cache[k]
            self._cache[key] = (now, report.model_copy(deep=True))


# Global service instance
_service = None

def get_profitability_service() -> ProfitabilityService:
    """Get or create the global profitability service"""
    global _service
    if _service is None:
        _service = ProfitabilityService()
    return _service
