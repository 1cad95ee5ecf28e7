"""
Tests for orderdesk.services.inventory_ledger.
"""

import pytest

from orderdesk.errors import BusinessRuleError
from orderdesk.extensions import db
from orderdesk.models import Product
from orderdesk.services.inventory_ledger import InventoryLedger


def _stock(product):
    return db.session.get(Product, product.id).stock_quantity


class TestReserve:
    def test_passes_within_limits(self, make_product):
        product = make_product(moq=5, stock_quantity=10)
        InventoryLedger.reserve([(product, 10)])
        assert _stock(product) == 10

    def test_below_moq(self, make_product):
        product = make_product(moq=5)
        with pytest.raises(BusinessRuleError) as exc:
            InventoryLedger.reserve([(product, 4)])
        assert exc.value.code == 'BELOW_MOQ'
        assert product.name in exc.value.message

    def test_inactive_product(self, make_product):
        product = make_product(is_active=False)
        with pytest.raises(BusinessRuleError) as exc:
            InventoryLedger.reserve([(product, 1)])
        assert exc.value.code == 'PRODUCT_INACTIVE'

    def test_stock_is_aggregated_across_lines(self, make_product):
        product = make_product(stock_quantity=10)
        with pytest.raises(BusinessRuleError) as exc:
            InventoryLedger.reserve([(product, 6), (product, 5)])
        assert exc.value.code == 'INSUFFICIENT_STOCK'


class TestCommitRelease:
    def test_commit_decrements(self, make_product):
        a = make_product(stock_quantity=10)
        b = make_product(stock_quantity=20)
        InventoryLedger.commit([(a, 3), (b, 5), (a, 2)])
        db.session.commit()
        assert _stock(a) == 5
        assert _stock(b) == 15

    def test_commit_lost_race_fails(self, make_product):
        product = make_product(stock_quantity=4)
        with pytest.raises(BusinessRuleError) as exc:
            InventoryLedger.commit([(product, 5)])
        assert exc.value.code == 'INSUFFICIENT_STOCK'
        db.session.rollback()
        assert _stock(product) == 4

    def test_release_increments(self, make_product):
        product = make_product(stock_quantity=4)
        InventoryLedger.release([(product, 6)])
        db.session.commit()
        assert _stock(product) == 10
