import logging
from collections import OrderedDict

from sqlalchemy import update

from orderdesk.errors import BusinessRuleError
from orderdesk.extensions import db
from orderdesk.models.product import Product

logger = logging.getLogger(__name__)


def _totals_by_product(lines):
    totals = OrderedDict()
    for product, quantity in lines:
        if product.id in totals:
            totals[product.id] = (product, totals[product.id][1] + quantity)
        else:
            totals[product.id] = (product, quantity)
    return totals.values()


class InventoryLedger:
    """Stock checks and adjustments. Every call runs in the caller's transaction."""

    @staticmethod
    def reserve(lines):
        """Validate ``(product, quantity)`` lines; raise on the first violation, change nothing."""
        for product, quantity in lines:
            if not product.is_active:
                raise BusinessRuleError(f"{product.name} is no longer available", code='PRODUCT_INACTIVE')
            if quantity < product.moq:
                raise BusinessRuleError(
                    f"Minimum order quantity for {product.name} is {product.moq}",
                    code='BELOW_MOQ',
                )

        # The same product may appear on several lines
        for product, quantity in _totals_by_product(lines):
            if product.stock_quantity < quantity:
                raise BusinessRuleError(f"Insufficient stock for {product.name}", code='INSUFFICIENT_STOCK')

    @staticmethod
    def commit(lines):
        for product, quantity in _totals_by_product(lines):
            result = db.session.execute(
                update(Product)
                .where(Product.id == product.id, Product.stock_quantity >= quantity)
                .values(stock_quantity=Product.stock_quantity - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Another order took the stock between reserve() and now
                raise BusinessRuleError(f"Insufficient stock for {product.name}", code='INSUFFICIENT_STOCK')
            logger.debug('Stock -%s for %s', quantity, product.product_code)
        _expire(lines)

    @staticmethod
    def release(lines):
        for product, quantity in _totals_by_product(lines):
            db.session.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(stock_quantity=Product.stock_quantity + quantity)
                .execution_options(synchronize_session=False)
            )
            logger.debug('Stock +%s for %s', quantity, product.product_code)
        _expire(lines)


def _expire(lines):
    # Next attribute access reloads stock_quantity from the database
    for product, _ in lines:
        db.session.expire(product, ['stock_quantity'])
