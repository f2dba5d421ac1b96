"""
Global gider yüzdeleri ve iade kaybı testleri
"""
import pytest

from services.global_costs import compute_global_percentages
from services.refund_loss import recovery_rate_for, refund_loss

from conftest import make_fee, make_order


def test_refund_loss():
    assert refund_loss(100, 0.30) == pytest.approx(70.0)
    assert refund_loss(100, 0.0) == 100
    assert refund_loss(0, 0.5) == 0


def test_recovery_rate_precedence():
    assert recovery_rate_for("US", {"US": 0.1}) == 0.1
    assert recovery_rate_for("us", {"US": 0.0}) == 0.0
    assert recovery_rate_for("US", {}) == 0.50
    assert recovery_rate_for("XX", None, default=0.2) == 0.2


def test_percentages_use_matching_denominators(converter):
    transactions = [
        make_order(sku="A", sales=300, fulfillment="FBA"),
        make_order(sku="B", sales=100, fulfillment="MFN"),
        make_fee("Service Fee", -40, description="Cost of Advertising"),
        make_fee("Service Fee", -6, description="Subscription"),
        make_fee("FBA Inventory Fee", -12),
        make_fee("Adjustment", 3),
        make_fee("Shipping Services", -5),
    ]

    pct = compute_global_percentages(transactions, "US", converter=converter)

    assert pct.total_sales == 400
    assert pct.advertising_percent == pytest.approx(10.0)
    # |(-6) + (-12) + 3| / 300
    assert pct.fba_cost_percent == pytest.approx(5.0)
    assert pct.fbm_cost_percent == pytest.approx(5.0)
    assert pct.refund_recovery_rate == 0.50


def test_other_marketplaces_are_ignored(converter):
    transactions = [
        make_order(sku="A", sales=100),
        make_order(sku="B", sales=900, marketplace="UK"),
        make_fee("Service Fee", -10, description="Cost of Advertising"),
        make_fee("Service Fee", -90, description="Cost of Advertising", marketplace="UK"),
    ]

    pct = compute_global_percentages(transactions, "us", converter=converter)

    assert pct.total_sales == 100
    assert pct.advertising_percent == pytest.approx(10.0)


def test_all_marketplaces_convert_to_usd(converter):
    transactions = [
        make_order(sku="A", sales=100),
        make_order(sku="B", sales=80, marketplace="UK"),
        make_fee("Service Fee", -8, description="Cost of Advertising", marketplace="UK"),
    ]

    pct = compute_global_percentages(transactions, None, converter=converter)

    # £80 = $100, £8 = $10
    assert pct.total_sales == pytest.approx(200)
    assert pct.advertising_cost == pytest.approx(10)
    assert pct.advertising_percent == pytest.approx(5.0)
    assert pct.marketplace is None


def test_no_sales_gives_zero_percentages(converter):
    pct = compute_global_percentages([make_fee("Service Fee", -5, description="Cost of Advertising")], "US",
                                     converter=converter)
    assert pct.advertising_percent == 0
    assert pct.fba_cost_percent == 0
