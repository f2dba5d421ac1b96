"""
SKU karlılık hesabı testleri
"""
import pytest

from app.core.enums import Fulfillment, GSTApplyTo, IncompleteReason
from app.models import (
    CompleteSKUResult,
    CountryProfitConfig,
    GlobalCostPercentages,
    GSTConfig,
    IncompleteSKUResult,
    ProductCostData,
    TransactionRecord,
)
from services.sku_profitability import (
    MixedFulfillmentPolicy,
    SKUProfitabilityCalculator,
    aggregate_transactions,
    resolve_category,
)

from conftest import make_fee, make_order


@pytest.fixture
def calculator(converter):
    return SKUProfitabilityCalculator(converter=converter)


@pytest.fixture
def global_pct():
    return GlobalCostPercentages(
        advertising_percent=10.0,
        fba_cost_percent=5.0,
        fbm_cost_percent=4.0,
        refund_recovery_rate=0.0,
        marketplace="US",
    )


def test_fba_sku_end_to_end(calculator, cost_row, shipping_table, us_config, global_pct):
    result = calculator.calculate(
        [make_order(sales=50, selling_fees=-5, fba_fees=-3)],
        cost_row, shipping_table, us_config, "US", global_pct,
    )

    assert isinstance(result, CompleteSKUResult)
    sku = result.analysis
    assert sku.fulfillment == Fulfillment.FBA
    assert sku.gross_profit == pytest.approx(42)
    assert sku.shipping_cost == pytest.approx(4)
    assert sku.warehouse_cost == pytest.approx(2.5)
    assert sku.advertising_cost == pytest.approx(5)
    assert sku.fba_cost == pytest.approx(2.5)
    assert sku.fbm_cost == 0
    assert sku.customs_duty == 0
    assert sku.net_profit == pytest.approx(18)
    assert sku.profit_margin == pytest.approx(36)
    assert sku.roi == pytest.approx(75)
    assert sku.selling_fee_percent == pytest.approx(10)
    assert sku.exclusion_reason is None


def test_missing_cost_is_incomplete(calculator, shipping_table, us_config, global_pct):
    result = calculator.calculate(
        [make_order()], None, shipping_table, us_config, "US", global_pct,
    )

    assert isinstance(result, IncompleteSKUResult)
    assert IncompleteReason.MISSING_COST in result.reasons
    assert IncompleteReason.MISSING_SIZE in result.reasons
    assert result.analysis.net_profit == 0
    assert result.analysis.profit_margin == 0
    assert result.analysis.roi == 0
    assert result.analysis.total_revenue == 50
    assert result.analysis.exclusion_reason == "missing_cost, missing_size"


def test_shipping_rate_not_found(calculator, shipping_table, us_config, global_pct):
    cost = ProductCostData(sku="SKU-1", cost=10.0, size=7.0, fbm_source="TR")
    result = calculator.calculate(
        [make_order(fulfillment="MFN")], cost, shipping_table, us_config, "US", global_pct,
    )

    assert isinstance(result, IncompleteSKUResult)
    assert result.reasons == [IncompleteReason.SHIPPING_RATE_NOT_FOUND]
    assert result.analysis.has_size_data is False
    assert result.analysis.net_profit == 0


def test_mixed_sku_splits_by_policy(calculator, cost_row, shipping_table, us_config, global_pct):
    transactions = [
        make_order(sales=50, fulfillment="FBA"),
        make_order(sales=50, fulfillment="FBM"),
    ]

    sku = calculator.calculate(transactions, cost_row, shipping_table, us_config, "US", global_pct).analysis

    assert sku.fulfillment == Fulfillment.MIXED
    # FBA: 2 adet * 0.5 * 2 desi * $2 = 4; FBM (BOTH): ((4 + 6) + 15) / 2 = 12.5
    assert sku.shipping_cost == pytest.approx(16.5)
    # FBA depo %5 * 50 + FBM yerel depo %4 * 50 / 2
    assert sku.warehouse_cost == pytest.approx(3.5)
    assert sku.customs_duty == pytest.approx(2.5)
    assert sku.ddp_fee == pytest.approx(1.0)
    assert sku.fba_cost == pytest.approx(5)
    assert sku.fbm_cost == pytest.approx(4)


def test_mixed_policy_share():
    policy = MixedFulfillmentPolicy(fba_share=0.7)
    assert policy.fbm_share == pytest.approx(0.3)


def test_fba_warehouse_only_on_local_marketplace(converter, cost_row, global_pct):
    calculator = SKUProfitabilityCalculator(converter=converter)
    uk_config = CountryProfitConfig(country="UK", fba={"shippingPerDesi": 1.0, "warehousePercent": 5.0})
    sku = calculator.calculate(
        [make_order(marketplace="UK")], cost_row, None, uk_config, "UK", global_pct,
    ).analysis

    assert sku.warehouse_cost == 0
    # 2 desi * $1 -> £1.6
    assert sku.shipping_cost == pytest.approx(1.6)
    # $10 maliyet -> £8
    assert sku.product_cost == pytest.approx(8)


def test_refund_loss_uses_recovery_rate(calculator, cost_row, shipping_table, us_config):
    pct = GlobalCostPercentages(refund_recovery_rate=0.5)
    transactions = [
        make_order(sales=100, quantity=2),
        TransactionRecord(marketplace_code="US", sku="SKU-1", fulfillment="FBA",
                          category_type="Refund", total=-20, quantity=-1),
    ]

    sku = calculator.calculate(transactions, cost_row, shipping_table, us_config, "US", pct).analysis

    assert sku.refund_loss == pytest.approx(10)
    assert sku.refunded_quantity == 1
    assert sku.total_orders == 1


@pytest.mark.parametrize("apply_to, expected", [
    (GSTApplyTo.FBM, 10.0),
    (GSTApplyTo.BOTH, 10.0),
    (GSTApplyTo.FBA, 0.0),
])
def test_gst_respects_apply_to(calculator, apply_to, expected):
    config = CountryProfitConfig(
        country="AU",
        gst=GSTConfig(enabled=True, rate_percent=10.0, included_in_price=True, apply_to=apply_to),
    )
    cost = ProductCostData(sku="SKU-1", cost=5.0, custom_shipping=2.0)

    sku = calculator.calculate(
        [make_order(sales=110, fulfillment="FBM", marketplace="AU")], cost, None, config, "AU", None,
    ).analysis

    assert sku.gst_cost == pytest.approx(expected)


def test_gst_added_on_top_when_not_included(calculator):
    config = CountryProfitConfig(
        country="AU",
        gst=GSTConfig(enabled=True, rate_percent=10.0, included_in_price=False),
    )
    cost = ProductCostData(sku="SKU-1", cost=5.0, custom_shipping=2.0)

    sku = calculator.calculate(
        [make_order(sales=100, fulfillment="FBM", marketplace="AU")], cost, None, config, "AU", None,
    ).analysis

    assert sku.gst_cost == pytest.approx(10)


def test_replacement_and_mscf_counts():
    data = aggregate_transactions([
        make_order(sales=0, selling_fees=0, fba_fees=0, total=0),
        make_order(sales=0, selling_fees=0, fba_fees=0, total=-4),
        make_order(sales=20),
    ])
    assert data['replacement_count'] == 1
    assert data['mscf_count'] == 1
    assert data['orders'] == 3


def test_resolve_category():
    assert resolve_category("AMZN.GR.X1", None) == "Grade and Resell"
    assert resolve_category("amzn,gr-2", "") == "Grade and Resell"
    assert resolve_category("SKU-9", None) == "Uncategorized"
    assert resolve_category("AMZN.GR.X1", "Kitchen") == "Kitchen"


def test_calculate_all_groups_and_sorts(calculator, shipping_table, country_configs, global_pct):
    transactions = [
        make_order(sku="LOW", sales=10),
        make_order(sku="HIGH", sales=90),
        make_order(sku="HIGH", sales=30),
        make_order(sku="OTHER", sales=500, marketplace="UK"),
        make_fee("Service Fee", -3, description="Cost of Advertising"),
    ]
    costs = [
        ProductCostData(sku="LOW", cost=1.0, size=1.0),
        ProductCostData(sku="HIGH", cost=1.0, size=1.0),
    ]

    results = calculator.calculate_all(transactions, costs, shipping_table, country_configs, "US", global_pct)

    assert [r.analysis.sku for r in results] == ["HIGH", "LOW"]
    assert results[0].analysis.total_revenue == 120
    assert results[0].analysis.total_orders == 2


def test_fba_custom_shipping_without_desi_is_incomplete(calculator, shipping_table, us_config, global_pct):
    # Özel kargo fiyatı FBA gönderim maliyetini karşılamaz
    cost = ProductCostData(sku="SKU-1", cost=10.0, custom_shipping=5.0)

    result = calculator.calculate(
        [make_order(sales=100)], cost, shipping_table, us_config, "US", global_pct,
    )

    assert isinstance(result, IncompleteSKUResult)
    assert result.reasons == [IncompleteReason.MISSING_SIZE]
    assert result.analysis.has_cost_data is True
    assert result.analysis.has_size_data is False
    assert result.analysis.net_profit == 0


def test_fbm_custom_shipping_without_desi_is_complete(calculator, shipping_table, us_config, global_pct):
    cost = ProductCostData(sku="SKU-1", cost=10.0, custom_shipping=5.0, fbm_source="US")

    result = calculator.calculate(
        [make_order(sales=100, fulfillment="FBM")], cost, shipping_table, us_config, "US", global_pct,
    )

    assert isinstance(result, CompleteSKUResult)
    assert result.analysis.shipping_cost == pytest.approx(5)


def test_unknown_marketplace_without_config(calculator, cost_row, shipping_table, global_pct):
    result = calculator.calculate(
        [make_order(sales=100, marketplace="JP")], cost_row, shipping_table, None, "JP", global_pct,
    )

    assert isinstance(result, CompleteSKUResult)
    sku = result.analysis
    assert sku.marketplace == "JP"
    assert sku.shipping_cost == 0
    assert sku.customs_duty == 0
    assert sku.ddp_fee == 0
    assert sku.warehouse_cost == 0
    assert sku.others_cost == 0
    assert sku.gst_cost == 0
    # Global yüzdeler yine uygulanır
    assert sku.advertising_cost == pytest.approx(10)


def test_zero_revenue_and_quantity(calculator, cost_row, shipping_table, us_config, global_pct):
    result = calculator.calculate(
        [make_order(sales=0, quantity=0, selling_fees=0, fba_fees=0, total=0)],
        cost_row, shipping_table, us_config, "US", global_pct,
    )

    sku = result.analysis
    assert sku.total_revenue == 0
    assert sku.avg_sale_price == 0
    assert sku.profit_margin == 0
    assert sku.roi == 0
    for field in (
        "selling_fee_percent", "fba_fee_percent", "refund_loss_percent", "vat_percent",
        "product_cost_percent", "shipping_cost_percent", "advertising_percent",
        "fba_cost_percent", "fbm_cost_percent", "others_cost_percent", "gst_cost_percent",
    ):
        assert getattr(sku, field) == 0, field


def test_calculate_all_skips_failing_sku(calculator, shipping_table, country_configs, global_pct, monkeypatch, caplog):
    original = calculator.calculate

    def calculate(transactions, *args):
        transactions = list(transactions)
        if transactions[0].sku == "BAD":
            raise RuntimeError("broken row")
        return original(transactions, *args)

    monkeypatch.setattr(calculator, "calculate", calculate)
    transactions = [
        make_order(sku="GOOD", sales=20),
        make_order(sku="BAD", sales=90),
        make_order(sku="ALSO-GOOD", sales=10),
    ]
    costs = [
        ProductCostData(sku="GOOD", cost=1.0, size=1.0),
        ProductCostData(sku="ALSO-GOOD", cost=1.0, size=1.0),
    ]

    with caplog.at_level("ERROR"):
        results = calculator.calculate_all(transactions, costs, shipping_table, country_configs, "US", global_pct)

    assert [r.analysis.sku for r in results] == ["GOOD", "ALSO-GOOD"]
    assert "BAD" in caplog.text
    assert "broken row" in caplog.text
