"""
Desi cetveli ve FBM kargo çözümleyici testleri
"""
import pytest

from app.core.enums import FBMShippingMode, ShippingRoute
from app.models import (
    CategoryDuty,
    CountryProfitConfig,
    DesiRate,
    FBAConfig,
    FBMConfig,
    FromTRConfig,
    Money,
    ShippingRateTable,
    ShippingRouteConfig,
)
from services.shipping_rates import (
    DEFAULT_CUSTOMS_DUTY_PERCENT,
    FBMShippingResolver,
    customs_duty_percent,
    lookup,
    route_for_marketplace,
)


def _table(*rates):
    return ShippingRateTable(routes={
        ShippingRoute.US_TR: ShippingRouteConfig(rates=[DesiRate(desi=d, rate=r) for d, r in rates]),
    })


@pytest.mark.parametrize("size, expected", [(0.5, 10), (1.3, 15), (2, 15), (5, 25)])
def test_lookup_rounds_up_to_next_bracket(size, expected):
    table = _table((1, 10), (2, 15), (5, 25))
    result = lookup(table, ShippingRoute.US_TR, size)
    assert result.found
    assert result.rate == expected


def test_lookup_above_largest_bracket_is_not_found():
    table = _table((1, 10), (2, 15), (5, 25))
    result = lookup(table, ShippingRoute.US_TR, 6)
    assert not result.found
    assert result.rate == 0


def test_lookup_skips_zero_rate_cells():
    table = _table((1, 0), (2, 15))
    assert lookup(table, ShippingRoute.US_TR, 0.5).rate == 15


def test_lookup_sorts_unordered_brackets():
    table = _table((5, 25), (1, 10), (2, 15))
    assert lookup(table, ShippingRoute.US_TR, 1.5).rate == 15


def test_lookup_missing_route_or_table():
    assert not lookup(None, ShippingRoute.UK, 1).found
    assert not lookup(_table((1, 10)), ShippingRoute.UK, 1).found


def test_route_for_marketplace():
    assert route_for_marketplace("US") == ShippingRoute.US_TR
    assert route_for_marketplace("de") == ShippingRoute.EU
    assert route_for_marketplace("AE") == ShippingRoute.UAE
    assert route_for_marketplace(None) == ShippingRoute.US_TR


def test_customs_duty_by_category():
    config = CountryProfitConfig(
        country="US",
        fbm=FBMConfig(from_tr=FromTRConfig(
            customs_duty_percent=12.0,
            category_duties=[CategoryDuty(category="home", duty_percent=5.0)],
        )),
    )
    assert customs_duty_percent(config, "Home Decor") == 5.0
    assert customs_duty_percent(config, "Toys") == 12.0
    assert customs_duty_percent(config, None) == 12.0
    assert customs_duty_percent(None, "Toys") == DEFAULT_CUSTOMS_DUTY_PERCENT


def _both_mode_setup(converter):
    table = ShippingRateTable(routes={
        ShippingRoute.US_TR: ShippingRouteConfig(rates=[DesiRate(desi=5, rate=40)]),
        ShippingRoute.US_US: ShippingRouteConfig(rates=[DesiRate(desi=5, rate=20)]),
    })
    config = CountryProfitConfig(
        country="US",
        fba=FBAConfig(shipping_per_desi=0.0),
        fbm=FBMConfig(from_tr=FromTRConfig(customs_duty_percent=10.0, ddp_fee=2.0)),
    )
    return FBMShippingResolver(table, config, "US", converter)


def test_both_mode_averages_and_halves_customs(converter):
    resolver = _both_mode_setup(converter)
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.BOTH, desi=3,
        custom_shipping=None, avg_price=100, category=None,
    )
    assert result.found
    assert not result.partial
    assert result.shipping == pytest.approx(30)
    assert result.customs == pytest.approx(5)
    assert result.ddp == pytest.approx(1)


def test_tr_mode_full_customs_and_ddp(converter):
    resolver = _both_mode_setup(converter)
    result = resolver.resolve(
        quantity=2, mode=FBMShippingMode.TR, desi=3,
        custom_shipping=None, avg_price=100, category=None,
    )
    assert result.shipping == pytest.approx(80)
    assert result.customs == pytest.approx(20)
    assert result.ddp == pytest.approx(4)


def test_local_mode_has_no_customs(converter, shipping_table, us_config):
    resolver = FBMShippingResolver(shipping_table, us_config, "US", converter)
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.LOCAL, desi=2,
        custom_shipping=None, avg_price=50, category=None,
    )
    # 2 desi * $2 depo + $6 US içi
    assert result.shipping == pytest.approx(10)
    assert result.customs == 0
    assert result.ddp == 0


def test_local_mode_partial_when_domestic_rate_missing(converter, shipping_table, us_config):
    resolver = FBMShippingResolver(shipping_table, us_config, "US", converter)
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.LOCAL, desi=7,
        custom_shipping=None, avg_price=50, category=None,
    )
    assert result.found
    assert result.partial
    assert result.shipping == pytest.approx(14)


def test_both_mode_single_side_is_partial(converter, shipping_table, us_config):
    resolver = FBMShippingResolver(shipping_table, us_config, "US", converter)
    # 7 desi: US-TR cetveli aşıldı, sadece yerel taraf var
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.BOTH, desi=7,
        custom_shipping=None, avg_price=50, category=None,
    )
    assert result.found
    assert result.partial
    assert result.shipping == pytest.approx(14)


def test_custom_shipping_replaces_domestic_rate(converter, shipping_table, us_config):
    resolver = FBMShippingResolver(shipping_table, us_config, "US", converter)
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.LOCAL, desi=2,
        custom_shipping=Money(amount=3.0), avg_price=50, category=None,
    )
    assert result.shipping == pytest.approx(7)


def test_non_local_marketplace_uses_route_in_local_currency(converter, shipping_table):
    config = CountryProfitConfig(country="UK")
    resolver = FBMShippingResolver(shipping_table, config, "UK", converter)
    result = resolver.resolve(
        quantity=2, mode=FBMShippingMode.BOTH, desi=2,
        custom_shipping=None, avg_price=20, category=None,
    )
    assert result.found
    assert result.shipping == pytest.approx(16)
    assert result.customs == 0


def test_non_local_custom_shipping_is_converted(converter, shipping_table):
    config = CountryProfitConfig(country="UK")
    resolver = FBMShippingResolver(shipping_table, config, "UK", converter)
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.BOTH, desi=None,
        custom_shipping=Money(amount=10.0), avg_price=20, category=None,
    )
    # $10 -> £8
    assert result.shipping == pytest.approx(8)


def test_missing_size_and_custom_is_not_found(converter, shipping_table, us_config):
    resolver = FBMShippingResolver(shipping_table, us_config, "US", converter)
    result = resolver.resolve(
        quantity=1, mode=FBMShippingMode.TR, desi=None,
        custom_shipping=None, avg_price=50, category=None,
    )
    assert not result.found
