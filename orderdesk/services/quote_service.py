import logging
from collections import OrderedDict
from datetime import timezone

from flask import current_app

from orderdesk.errors import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from orderdesk.extensions import db
from orderdesk.models.product import Product
from orderdesk.models.quote import Quote, QuoteItem, QuoteStatus
from orderdesk.models.user import Role
from orderdesk.schemas import CreateQuoteInput, QuotePricingInput, RejectQuoteInput, parse
from orderdesk.services import outbox
from orderdesk.services.order_service import OrderService, resolve_buyer_state_code
from orderdesk.services.outbox import OutboxService
from orderdesk.services.sequence_allocator import SequenceAllocator
from orderdesk.services.status_machine import next_quote_status
from orderdesk.services.tax_engine import ZERO, calculate_gst_by_rate, round_to_two, to_decimal
from orderdesk.utils import money, paginated, utcnow

logger = logging.getLogger(__name__)

# Quotes convert at B2B prices whatever the requester's role
CONVERSION_TIER = Role.B2B_CUSTOMER


def _get_quote(quote_id):
    quote = db.session.get(Quote, quote_id, with_for_update=True, populate_existing=True)
    if quote is None:
        raise NotFoundError('Quote not found', code='QUOTE_NOT_FOUND')
    return quote


def _status_event(quote, status):
    return OutboxService.enqueue(outbox.QUOTE_STATUS_CHANGED, {
        'quoteId': quote.id,
        'quoteNumber': quote.quote_number,
        'userId': quote.user_id,
        'status': status.value,
    })


class QuoteService:

    @staticmethod
    def create(user, items, notes=None):
        data = parse(CreateQuoteInput, {'items': items, 'notes': notes}, 'Invalid quote request')

        try:
            product_ids = {item.product_id for item in data.items}
            active = {p.id for p in Product.query.filter(Product.id.in_(product_ids), Product.is_active.is_(True))}
            missing = product_ids - active
            if missing:
                raise NotFoundError('One or more products not found', code='PRODUCT_NOT_FOUND')

            quote = Quote(
                quote_number=SequenceAllocator.next_quote_number(),
                user_id=user.id,
                status=QuoteStatus.REQUESTED,
                notes=data.notes,
                items=[
                    QuoteItem(product_id=item.product_id, requested_qty=item.quantity, notes=item.notes)
                    for item in data.items
                ],
            )
            db.session.add(quote)
            db.session.flush()

            event = OutboxService.enqueue(outbox.QUOTE_CREATED, {
                'quoteId': quote.id,
                'quoteNumber': quote.quote_number,
                'userId': user.id,
                'itemCount': len(data.items),
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Quote %s requested by user %s', quote.quote_number, user.id)
        OutboxService.dispatch_after_commit(event)
        return quote

    @staticmethod
    def mark_under_review(quote_id):
        return QuoteService._move(quote_id, QuoteStatus.UNDER_REVIEW)

    @staticmethod
    def approve(quote_id):
        return QuoteService._move(quote_id, QuoteStatus.APPROVED)

    @staticmethod
    def reject(quote_id, reason):
        data = parse(RejectQuoteInput, {'reason': (reason or '').strip()}, 'Rejection reason is required')
        return QuoteService._move(quote_id, QuoteStatus.REJECTED, rejection_reason=data.reason)

    @staticmethod
    def _move(quote_id, target, rejection_reason=None):
        try:
            quote = _get_quote(quote_id)
            quote.status = next_quote_status(quote.status, target)
            if rejection_reason is not None:
                quote.rejection_reason = rejection_reason
            event = _status_event(quote, target)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Quote %s moved to %s', quote.quote_number, target.value)
        OutboxService.dispatch_after_commit(event)
        return quote

    @staticmethod
    def update_pricing(quote_id, lines, valid_until, freight_charges=0, discount=0, admin_notes=None):
        """Price the quote; may be repeated while it is QUOTED."""
        data = parse(QuotePricingInput, {
            'lines': lines,
            'freight_charges': freight_charges,
            'discount': discount,
            'valid_until': valid_until,
            'admin_notes': admin_notes,
        }, 'Invalid quote pricing')

        try:
            quote = _get_quote(quote_id)
            quote.status = next_quote_status(quote.status, QuoteStatus.QUOTED)

            items = {item.id: item for item in quote.items}
            errors = {}
            for index, line in enumerate(data.lines):
                if line.quote_item_id not in items:
                    errors[f'lines.{index}.quote_item_id'] = f"Quote item {line.quote_item_id} not found"
            if errors:
                raise ValidationError('Invalid quote pricing', errors=errors)

            for line in data.lines:
                item = items[line.quote_item_id]
                item.quoted_qty = line.quoted_qty
                item.quoted_price = round_to_two(line.quoted_price)

            # totals cover every priced line, including ones priced in an earlier call
            default_rate = to_decimal(current_app.config['DEFAULT_GST_RATE'])
            by_rate = OrderedDict()
            for item in quote.items:
                if item.quoted_price is None:
                    continue
                quantity = item.quoted_qty or item.requested_qty
                rate = item.product.gst_rate if item.product.gst_rate is not None else default_rate
                by_rate[rate] = by_rate.get(rate, ZERO) + round_to_two(item.quoted_price * quantity)

            buyer_state_code = resolve_buyer_state_code(quote.user)
            gst = calculate_gst_by_rate(by_rate, current_app.config['SELLER_STATE_CODE'], buyer_state_code)
            freight = round_to_two(data.freight_charges)
            discount = round_to_two(data.discount)
            total = round_to_two(gst.total_amount + freight - discount)
            if total < 0:
                raise BusinessRuleError('Discount exceeds the quote total', code='INVALID_DISCOUNT')

            quote.subtotal = gst.subtotal
            quote.cgst = gst.cgst
            quote.sgst = gst.sgst
            quote.igst = gst.igst
            quote.total_tax = gst.total_tax
            quote.freight_charges = freight
            quote.discount = discount
            quote.total_amount = total
            valid_until = data.valid_until
            if valid_until.tzinfo is not None:
                valid_until = valid_until.astimezone(timezone.utc).replace(tzinfo=None)
            quote.valid_until = valid_until
            if data.admin_notes is not None:
                quote.admin_notes = data.admin_notes

            event = _status_event(quote, QuoteStatus.QUOTED)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Quote %s priced at %s', quote.quote_number, money(quote.total_amount))
        OutboxService.dispatch_after_commit(event)
        return quote

    @staticmethod
    def convert_to_order(quote_id, requester, shipping_address=None, billing_address=None):
        """Turn an approved quote into an order at quoted prices. Returns the Order."""
        # the row lock is held until place() commits or rolls back
        try:
            quote = _get_quote(quote_id)
            if quote.user_id != requester.id:
                raise ForbiddenError('Access denied')
            if quote.status != QuoteStatus.APPROVED:
                raise BusinessRuleError('Quote must be approved before conversion', code='QUOTE_NOT_APPROVED')
            if quote.valid_until is not None and quote.valid_until < utcnow():
                raise BusinessRuleError('Quote has expired', code='QUOTE_EXPIRED')
        except Exception:
            db.session.rollback()
            raise

        lines = [
            (item.product_id, item.quoted_qty or item.requested_qty, item.quoted_price)
            for item in quote.items
        ]
        order = OrderService.place(
            quote.user, CONVERSION_TIER, lines,
            shipping_address=shipping_address,
            billing_address=billing_address,
            notes=f"Converted from quote {quote.quote_number}",
            quote=quote,
        )
        logger.info('Quote %s converted to order %s', quote.quote_number, order.order_number)
        return order

    @staticmethod
    def get(quote_id, requester=None):
        quote = db.session.get(Quote, quote_id)
        if quote is None:
            raise NotFoundError('Quote not found', code='QUOTE_NOT_FOUND')
        if requester is not None and not requester.is_admin and quote.user_id != requester.id:
            raise ForbiddenError('Access denied')
        return quote

    @staticmethod
    def list_quotes(user_id=None, status=None, page=1, per_page=20):
        stmt = db.select(Quote)
        if user_id is not None:
            stmt = stmt.where(Quote.user_id == user_id)
        if status:
            try:
                status = QuoteStatus(status) if not isinstance(status, QuoteStatus) else status
            except ValueError:
                raise ValidationError('Invalid status', errors={'status': f"Unknown status '{status}'"})
            stmt = stmt.where(Quote.status == status)
        stmt = stmt.order_by(Quote.created_at.desc(), Quote.id.desc())
        pagination = db.paginate(stmt, page=page, per_page=per_page, max_per_page=100, error_out=False)
        return paginated(pagination, Quote.to_dict)
