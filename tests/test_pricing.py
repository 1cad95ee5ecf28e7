from decimal import Decimal

import pytest

from orderdesk.models import Product, Role
from orderdesk.services.pricing import price_for, price_for_product


class TestPriceFor:
    @pytest.mark.parametrize('tier, expected', [
        (Role.ADMIN, 80),
        (Role.DEALER, 80),
        (Role.B2B_CUSTOMER, 90),
        (Role.RETAIL_CUSTOMER, 100),
    ])
    def test_all_prices_set(self, tier, expected):
        assert price_for(tier, 100, 90, 80) == expected

    def test_dealer_falls_back_to_b2b_then_retail(self):
        assert price_for(Role.DEALER, 100, 90, None) == 90
        assert price_for(Role.DEALER, 100, None, None) == 100

    def test_b2b_falls_back_to_retail(self):
        assert price_for(Role.B2B_CUSTOMER, 100, None, 80) == 100

    def test_retail_ignores_trade_prices(self):
        assert price_for(Role.RETAIL_CUSTOMER, None, 90, 80) is None

    def test_zero_is_a_real_price(self):
        assert price_for(Role.DEALER, 100, 90, 0) == 0

    def test_nothing_configured(self):
        assert price_for(Role.ADMIN, None, None, None) is None


def test_price_for_product_reads_columns():
    product = Product(price=Decimal('100'), b2b_price=None, dealer_price=Decimal('75'))
    assert price_for_product(Role.DEALER, product) == Decimal('75')
    assert price_for_product(Role.B2B_CUSTOMER, product) == Decimal('100')
