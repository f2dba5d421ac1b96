"""
Ortak test fixture'ları
"""
from typing import Optional

import pytest

from app.core import Settings
from app.models import (
    AnalyzeRequest,
    AllCountryConfigs,
    CountryProfitConfig,
    DesiRate,
    FBAConfig,
    FBMConfig,
    FromLocalConfig,
    FromTRConfig,
    ProductCostData,
    ShippingRateTable,
    ShippingRouteConfig,
    TransactionRecord,
)
from app.core.enums import FBMShippingMode, ShippingRoute
from services.currency import CurrencyConverter

# Hesabı kolay kurlar: 1 USD = X
TEST_RATES = {
    "USD": 1.0,
    "EUR": 0.5,
    "GBP": 0.8,
    "CAD": 1.25,
    "AUD": 1.5,
    "AED": 3.6725,
    "SAR": 3.75,
    "TRY": 30.0,
}


def make_order(
    sku: str = "SKU-1",
    sales: float = 50.0,
    quantity: int = 1,
    selling_fees: float = -5.0,
    fba_fees: float = -3.0,
    fulfillment: str = "FBA",
    marketplace: str = "US",
    name: Optional[str] = None,
    parent: Optional[str] = "P-1",
    category: Optional[str] = "Kitchen",
    total: Optional[float] = None,
    **extra,
) -> TransactionRecord:
    return TransactionRecord(
        marketplace_code=marketplace,
        sku=sku,
        name=name or f"Product {sku}",
        parent=parent,
        product_category=category,
        fulfillment=fulfillment,
        category_type="Order",
        product_sales=sales,
        selling_fees=selling_fees,
        fba_fees=fba_fees,
        total=total if total is not None else sales + selling_fees + fba_fees,
        quantity=quantity,
        **extra,
    )


def make_fee(category_type: str, total: float, description: str = "", marketplace: str = "US") -> TransactionRecord:
    return TransactionRecord(
        marketplace_code=marketplace,
        category_type=category_type,
        description=description,
        total=total,
    )


@pytest.fixture
def converter():
    return CurrencyConverter(rates=dict(TEST_RATES))


@pytest.fixture
def settings():
    return Settings(
        ANALYSIS_CACHE_TTL_SECONDS=60,
        REPORTING_CURRENCY="USD",
        MIXED_FBA_SHARE=0.5,
    )


@pytest.fixture
def shipping_table():
    return ShippingRateTable(routes={
        ShippingRoute.US_TR: ShippingRouteConfig(rates=[
            DesiRate(desi=1, rate=10),
            DesiRate(desi=2, rate=15),
            DesiRate(desi=5, rate=25),
        ]),
        ShippingRoute.US_US: ShippingRouteConfig(rates=[
            DesiRate(desi=1, rate=4),
            DesiRate(desi=5, rate=6),
        ]),
        ShippingRoute.UK: ShippingRouteConfig(currency="GBP", rates=[
            DesiRate(desi=3, rate=8),
        ]),
    })


@pytest.fixture
def us_config():
    return CountryProfitConfig(
        country="US",
        fba=FBAConfig(shipping_per_desi=2.0, warehouse_percent=5.0),
        fbm=FBMConfig(
            shipping_mode=FBMShippingMode.BOTH,
            from_tr=FromTRConfig(customs_duty_percent=10.0, ddp_fee=2.0),
            from_local=FromLocalConfig(shipping_per_desi=2.0, warehouse_percent=4.0),
        ),
    )


@pytest.fixture
def country_configs(us_config):
    return AllCountryConfigs(configs={
        "US": us_config,
        "UK": CountryProfitConfig(country="UK"),
    })


@pytest.fixture
def cost_row():
    return ProductCostData(sku="SKU-1", name="Product SKU-1", cost=10.0, size=2.0)


@pytest.fixture
def e2e_request(country_configs, cost_row):
    """US, FBA, 1 adet: ciro 50, satış ücreti 5, FBA ücreti 3, reklam %10, FBA gider %5"""
    return AnalyzeRequest(
        transactions=[
            make_order(sales=50, selling_fees=-5, fba_fees=-3),
            make_fee("Service Fee", -5, description="Cost of Advertising"),
            make_fee("FBA Inventory Fee", -2.5),
        ],
        cost_data=[cost_row],
        country_configs=country_configs,
        marketplace="US",
        refund_recovery_rates={"US": 0.0},
    )
