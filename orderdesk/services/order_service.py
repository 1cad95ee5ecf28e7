import logging
from collections import OrderedDict

from flask import current_app

from orderdesk.errors import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from orderdesk.extensions import db
from orderdesk.models.order import Order, OrderItem, OrderStatus, OrderType, Payment, PaymentStatus
from orderdesk.models.product import Product
from orderdesk.models.quote import Quote, QuoteStatus
from orderdesk.schemas import CreateOrderInput, PaymentInput, parse
from orderdesk.services import outbox
from orderdesk.services.inventory_ledger import InventoryLedger
from orderdesk.services.outbox import OutboxService
from orderdesk.services.pricing import price_for_product
from orderdesk.services.sequence_allocator import SequenceAllocator
from orderdesk.services.status_machine import next_order_status, next_quote_status
from orderdesk.services.tax_engine import (
    ZERO, calculate_gst_by_rate, calculate_item_tax, round_to_two, state_code_from_gstin, to_decimal,
)
from orderdesk.utils import money, paginated

logger = logging.getLogger(__name__)

CANCELLABLE = (OrderStatus.PENDING, OrderStatus.CONFIRMED)


def resolve_buyer_state_code(user, billing_address=None):
    """Stored state code, then GSTIN prefix, then the billing address, then the configured default."""
    if user.state_code:
        return user.state_code
    code = state_code_from_gstin(user.gst_number)
    if code:
        return code
    address = billing_address or user.billing_address or {}
    code = address.get('stateCode') or address.get('state_code')
    if code:
        return str(code)
    return current_app.config['DEFAULT_BUYER_STATE_CODE']


def calculate_freight(total_units):
    cfg = current_app.config
    per_unit = to_decimal(cfg['FREIGHT_PER_UNIT'])
    return round_to_two(max(to_decimal(cfg['FREIGHT_MIN_CHARGE']), total_units * per_unit))


def _coerce_status(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError('Invalid status', errors={'status': f"Unknown status '{value}'"})


def _load_for_update(order_id):
    order = db.session.get(Order, order_id, with_for_update=True, populate_existing=True)
    if order is None:
        raise NotFoundError('Order not found', code='ORDER_NOT_FOUND')
    return order


def _reject_placeholder(order):
    if order.is_placeholder:
        raise BusinessRuleError(
            'Proforma placeholder orders cannot be progressed or paid', code='ORDER_IS_PLACEHOLDER',
        )


class OrderService:

    @staticmethod
    def create(user, tier, items, shipping_address=None, billing_address=None, notes=None):
        """Place a direct order at ``tier`` prices. Returns the committed Order."""
        data = parse(CreateOrderInput, {
            'items': items,
            'shipping_address': shipping_address,
            'billing_address': billing_address,
            'notes': notes,
        }, 'Invalid order')
        lines = [(item.product_id, item.quantity, None) for item in data.items]
        return OrderService.place(
            user, tier, lines,
            shipping_address=data.shipping_address,
            billing_address=data.billing_address,
            notes=data.notes,
        )

    @staticmethod
    def place(user, tier, lines, shipping_address=None, billing_address=None, notes=None, quote=None):
        """
        Price, tax, number and persist an order in one transaction.

        ``lines`` are ``(product_id, quantity, unit_price)``; ``unit_price``
        is None unless the line carries a price frozen by a quote. With
        ``quote`` the quote is marked CONVERTED in the same transaction and
        its proforma placeholder orders are cancelled.
        """
        shipping_address = shipping_address or user.shipping_address or user.billing_address or {}
        billing_address = billing_address or shipping_address
        buyer_state_code = resolve_buyer_state_code(user, billing_address)

        try:
            product_ids = {product_id for product_id, _, _ in lines}
            products = {p.id: p for p in Product.query.filter(Product.id.in_(product_ids)).all()}
            for product_id in product_ids:
                product = products.get(product_id)
                if product is None or not product.is_active:
                    raise NotFoundError(f"Product {product_id} not found", code='PRODUCT_NOT_FOUND')

            default_rate = current_app.config['DEFAULT_GST_RATE']
            priced = []
            for product_id, quantity, frozen_price in lines:
                product = products[product_id]
                unit_price = frozen_price
                if unit_price is None:
                    if product.is_price_on_request:
                        raise BusinessRuleError(
                            f"{product.name} requires a quote. Please submit an RFQ.",
                            code='QUOTE_REQUIRED',
                        )
                    unit_price = price_for_product(tier, product)
                    if unit_price is None:
                        raise BusinessRuleError(f"Price not available for {product.name}", code='PRICE_UNAVAILABLE')
                rate = product.gst_rate if product.gst_rate is not None else to_decimal(default_rate)
                priced.append((product, quantity, to_decimal(unit_price), rate))

            stock_lines = [(product, quantity) for product, quantity, _, _ in priced]
            InventoryLedger.reserve(stock_lines)

            subtotal = ZERO
            by_rate = OrderedDict()
            order_items = []
            for product, quantity, unit_price, rate in priced:
                item_tax = calculate_item_tax(quantity, unit_price, rate)
                subtotal += item_tax.subtotal
                by_rate[rate] = by_rate.get(rate, ZERO) + item_tax.subtotal
                order_items.append(OrderItem(
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=unit_price,
                    tax_rate=rate,
                    tax_amount=item_tax.tax_amount,
                    total_price=item_tax.total_price,
                ))

            gst = calculate_gst_by_rate(by_rate, current_app.config['SELLER_STATE_CODE'], buyer_state_code)
            freight = calculate_freight(sum(quantity for _, quantity, _, _ in priced))
            total = round_to_two(gst.total_amount + freight)

            order = Order(
                order_number=SequenceAllocator.next_order_number(),
                user_id=user.id,
                order_type=OrderType.RFQ if quote is not None else OrderType.DIRECT,
                status=OrderStatus.PENDING,
                subtotal=gst.subtotal,
                cgst=gst.cgst,
                sgst=gst.sgst,
                igst=gst.igst,
                total_tax=gst.total_tax,
                gst_type=gst.gst_type,
                freight_charges=freight,
                total_amount=total,
                balance_due=total,
                buyer_state_code=buyer_state_code,
                shipping_address=shipping_address,
                billing_address=billing_address,
                notes=notes,
                quote_id=quote.id if quote is not None else None,
                items=order_items,
            )
            db.session.add(order)
            db.session.flush()

            InventoryLedger.commit(stock_lines)

            events = [OutboxService.enqueue(outbox.ORDER_CREATED, {
                'orderId': order.id,
                'orderNumber': order.order_number,
                'totalAmount': money(total),
                'userId': user.id,
            })]
            if quote is not None:
                events.append(OrderService._mark_converted(quote, order))

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Order %s placed by user %s for %s', order.order_number, user.id, money(order.total_amount))
        OutboxService.dispatch_after_commit(*events)
        return order

    @staticmethod
    def _mark_converted(quote, order):
        next_quote_status(quote.status, QuoteStatus.CONVERTED)
        # guarded on the stored status so a concurrent conversion cannot also succeed
        result = db.session.execute(
            db.update(Quote)
            .where(Quote.id == quote.id, Quote.status == QuoteStatus.APPROVED)
            .values(status=QuoteStatus.CONVERTED, converted_order_id=order.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BusinessRuleError('Quote must be approved before conversion', code='QUOTE_NOT_APPROVED')
        quote.status = QuoteStatus.CONVERTED
        quote.converted_order_id = order.id
        for placeholder in quote.orders:
            if placeholder.is_placeholder and placeholder.status != OrderStatus.CANCELLED:
                placeholder.status = OrderStatus.CANCELLED
                logger.info('Cancelled placeholder order %s', placeholder.order_number)
        return OutboxService.enqueue(outbox.QUOTE_STATUS_CHANGED, {
            'quoteId': quote.id,
            'quoteNumber': quote.quote_number,
            'userId': quote.user_id,
            'status': QuoteStatus.CONVERTED.value,
        })

    @staticmethod
    def get(order_id, requester=None):
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError('Order not found', code='ORDER_NOT_FOUND')
        if requester is not None and not requester.is_admin and order.user_id != requester.id:
            raise ForbiddenError('Access denied')
        return order

    @staticmethod
    def list_orders(user_id=None, status=None, payment_status=None, page=1, per_page=20):
        stmt = db.select(Order)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if status:
            stmt = stmt.where(Order.status == _coerce_status(OrderStatus, status))
        if payment_status:
            stmt = stmt.where(Order.payment_status == _coerce_status(PaymentStatus, payment_status))
        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        pagination = db.paginate(stmt, page=page, per_page=per_page, max_per_page=100, error_out=False)
        return paginated(pagination, lambda o: o.to_dict(include_items=False))

    @staticmethod
    def update_status(order_id, new_status, admin_notes=None):
        new_status = _coerce_status(OrderStatus, new_status)
        if new_status == OrderStatus.CANCELLED:
            return OrderService._cancel(order_id, admin_notes=admin_notes)

        try:
            order = _load_for_update(order_id)
            _reject_placeholder(order)
            order.status = next_order_status(order.status, new_status)
            if admin_notes is not None:
                order.admin_notes = admin_notes
            event = OutboxService.enqueue(outbox.ORDER_STATUS_CHANGED, {
                'orderId': order.id,
                'orderNumber': order.order_number,
                'userId': order.user_id,
                'status': new_status.value,
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Order %s moved to %s', order.order_number, new_status.value)
        OutboxService.dispatch_after_commit(event)
        return order

    @staticmethod
    def cancel(order_id, requester, is_admin=False):
        return OrderService._cancel(order_id, requester=requester, is_admin=is_admin)

    @staticmethod
    def _cancel(order_id, requester=None, is_admin=True, admin_notes=None):
        try:
            order = _load_for_update(order_id)
            if not is_admin and order.user_id != requester.id:
                raise ForbiddenError('Access denied')
            if order.status not in CANCELLABLE:
                raise BusinessRuleError('Cannot cancel order in current status', code='CANNOT_CANCEL')

            InventoryLedger.release([(item.product, item.quantity) for item in order.items])
            order.status = next_order_status(order.status, OrderStatus.CANCELLED)
            if admin_notes is not None:
                order.admin_notes = admin_notes
            event = OutboxService.enqueue(outbox.ORDER_STATUS_CHANGED, {
                'orderId': order.id,
                'orderNumber': order.order_number,
                'userId': order.user_id,
                'status': OrderStatus.CANCELLED.value,
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Order %s cancelled', order.order_number)
        OutboxService.dispatch_after_commit(event)
        return order

    @staticmethod
    def record_payment(order_id, amount, method, reference=None):
        data = parse(PaymentInput, {'amount': amount, 'method': method, 'reference': reference}, 'Invalid payment')

        try:
            order = _load_for_update(order_id)
            _reject_placeholder(order)
            if order.status == OrderStatus.CANCELLED:
                raise BusinessRuleError('Cannot record payment for a cancelled order', code='ORDER_CANCELLED')
            amount = round_to_two(data.amount)
            if amount > order.balance_due:
                raise BusinessRuleError(
                    f"Payment of {money(amount)} exceeds balance due of {money(order.balance_due)}",
                    code='OVERPAYMENT',
                )

            payment = Payment(order_id=order.id, amount=amount, method=data.method, reference=data.reference)
            db.session.add(payment)
            order.amount_paid = order.amount_paid + amount
            order.balance_due = order.balance_due - amount
            order.payment_status = PaymentStatus.PAID if order.balance_due <= 0 else PaymentStatus.PARTIAL

            event = OutboxService.enqueue(outbox.PAYMENT_RECEIVED, {
                'orderId': order.id,
                'orderNumber': order.order_number,
                'amount': money(amount),
                'paymentMethod': data.method,
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Payment of %s recorded for %s', money(amount), order.order_number)
        OutboxService.dispatch_after_commit(event)
        return payment
