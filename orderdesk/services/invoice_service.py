import logging
from datetime import date, datetime, time, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from orderdesk.errors import BusinessRuleError, ConflictError, NotFoundError
from orderdesk.extensions import db
from orderdesk.models.invoice import Invoice, InvoiceType
from orderdesk.models.order import Order, OrderStatus, OrderType
from orderdesk.models.quote import Quote
from orderdesk.services.sequence_allocator import SequenceAllocator
from orderdesk.services.tax_engine import ZERO, amount_in_words, round_to_two
from orderdesk.utils import money, paginated, utcnow

logger = logging.getLogger(__name__)


def _seller_snapshot():
    cfg = current_app.config
    return {
        'name': cfg['SELLER_NAME'],
        'address': cfg['SELLER_ADDRESS'],
        'phone': cfg['SELLER_PHONE'],
        'email': cfg['SELLER_EMAIL'],
    }


def _as_datetime(value, end_of_day=False):
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max if end_of_day else time.min)


class InvoiceService:

    @staticmethod
    def generate_tax_invoice(order_id):
        """Issue the tax invoice for an order and commit it."""
        try:
            invoice = InvoiceService.issue_tax_invoice(order_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info('Issued %s for order %s', invoice.invoice_number, order_id)
        return invoice

    @staticmethod
    def issue_tax_invoice(order_id):
        """Add a tax invoice for ``order_id`` to the current transaction without committing."""
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError('Order not found', code='ORDER_NOT_FOUND')
        if order.is_placeholder:
            raise BusinessRuleError('Placeholder orders cannot be tax invoiced', code='ORDER_IS_PLACEHOLDER')
        if order.status == OrderStatus.CANCELLED:
            raise BusinessRuleError('Cannot invoice a cancelled order', code='ORDER_CANCELLED')

        existing = Invoice.query.filter_by(order_id=order_id, invoice_type=InvoiceType.TAX_INVOICE).first()
        if existing:
            raise ConflictError('Tax invoice already exists for this order', code='INVOICE_EXISTS')

        invoice_number, fy = SequenceAllocator.next_invoice_number('INV')
        user = order.user
        cfg = current_app.config

        invoice = Invoice(
            invoice_number=invoice_number,
            financial_year=fy,
            invoice_type=InvoiceType.TAX_INVOICE,
            order_id=order.id,
            subtotal=order.subtotal,
            cgst=order.cgst,
            sgst=order.sgst,
            igst=order.igst,
            total_tax=order.total_tax,
            freight_charges=order.freight_charges,
            discount=order.discount,
            total_amount=order.total_amount,
            buyer_name=user.display_name,
            buyer_gstin=user.gst_number,
            buyer_state_code=order.buyer_state_code or user.state_code,
            buyer_address=order.billing_address,
            seller_gstin=cfg['SELLER_GSTIN'],
            seller_state_code=cfg['SELLER_STATE_CODE'],
            seller_address=_seller_snapshot(),
            due_date=utcnow() + timedelta(days=cfg['INVOICE_DUE_DAYS']),
        )

        # The partial unique index settles a race the check above can lose
        try:
            with db.session.begin_nested():
                db.session.add(invoice)
        except IntegrityError:
            raise ConflictError('Tax invoice already exists for this order', code='INVOICE_EXISTS')
        return invoice

    @staticmethod
    def generate_proforma_invoice(quote_id):
        quote = db.session.get(Quote, quote_id)
        if quote is None:
            raise NotFoundError('Quote not found', code='QUOTE_NOT_FOUND')
        if not quote.is_priced:
            raise BusinessRuleError('Quote has not been priced yet', code='QUOTE_NOT_PRICED')

        try:
            order = quote.converted_order or next(iter(quote.orders), None)
            if order is None:
                order = InvoiceService._placeholder_order(quote)

            subtotal = quote.subtotal or ZERO
            if quote.cgst is not None and quote.sgst is not None and quote.igst is not None:
                cgst, sgst, igst = quote.cgst, quote.sgst, quote.igst
                total_tax = quote.total_tax
            else:
                # Split never computed: estimate at the configured rate, intra-state
                rate = current_app.config['PROFORMA_ESTIMATE_GST_RATE']
                total_tax = quote.total_tax if quote.total_tax is not None else round_to_two(subtotal * rate / 100)
                cgst = round_to_two(total_tax / 2)
                sgst = total_tax - cgst
                igst = ZERO

            invoice_number, fy = SequenceAllocator.next_invoice_number('PRO')
            user = quote.user
            cfg = current_app.config
            invoice = Invoice(
                invoice_number=invoice_number,
                financial_year=fy,
                invoice_type=InvoiceType.PROFORMA,
                order_id=order.id,
                subtotal=subtotal,
                cgst=cgst,
                sgst=sgst,
                igst=igst,
                total_tax=total_tax,
                freight_charges=quote.freight_charges or ZERO,
                discount=quote.discount or ZERO,
                total_amount=quote.total_amount,
                buyer_name=user.display_name,
                buyer_gstin=user.gst_number,
                buyer_state_code=user.state_code,
                buyer_address=user.billing_address or {},
                seller_gstin=cfg['SELLER_GSTIN'],
                seller_state_code=cfg['SELLER_STATE_CODE'],
                seller_address=_seller_snapshot(),
                due_date=quote.valid_until,
            )
            db.session.add(invoice)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Issued %s for quote %s', invoice.invoice_number, quote.quote_number)
        return invoice

    @staticmethod
    def _placeholder_order(quote):
        """PENDING stand-in order so a proforma has an order to point at. No items, no stock."""
        user = quote.user
        order = Order(
            order_number=SequenceAllocator.next_order_number(),
            user_id=quote.user_id,
            quote_id=quote.id,
            order_type=OrderType.RFQ,
            status=OrderStatus.PENDING,
            is_placeholder=True,
            subtotal=quote.subtotal or ZERO,
            cgst=quote.cgst or ZERO,
            sgst=quote.sgst or ZERO,
            igst=quote.igst or ZERO,
            total_tax=quote.total_tax or ZERO,
            freight_charges=quote.freight_charges or ZERO,
            discount=quote.discount or ZERO,
            total_amount=quote.total_amount,
            balance_due=quote.total_amount,
            buyer_state_code=user.state_code,
            billing_address=user.billing_address or {},
            shipping_address=user.shipping_address or user.billing_address or {},
        )
        db.session.add(order)
        db.session.flush()
        logger.info('Created placeholder order %s for quote %s', order.order_number, quote.quote_number)
        return order

    @staticmethod
    def get(invoice_id):
        invoice = db.session.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError('Invoice not found', code='INVOICE_NOT_FOUND')
        data = invoice.to_dict()
        data['orderNumber'] = invoice.order.order_number
        data['amountInWords'] = amount_in_words(invoice.total_amount)
        return data

    @staticmethod
    def list_for_order(order_id):
        return (Invoice.query
                .filter_by(order_id=order_id)
                .order_by(Invoice.created_at.desc(), Invoice.id.desc())
                .all())

    @staticmethod
    def list_invoices(financial_year=None, invoice_type=None, page=1, per_page=20):
        stmt = db.select(Invoice)
        if financial_year:
            stmt = stmt.where(Invoice.financial_year == financial_year)
        if invoice_type:
            stmt = stmt.where(Invoice.invoice_type == invoice_type)
        stmt = stmt.order_by(Invoice.issued_at.desc(), Invoice.id.desc())
        pagination = db.paginate(stmt, page=page, per_page=per_page, max_per_page=100, error_out=False)
        return paginated(pagination, Invoice.to_dict)

    @staticmethod
    def list_for_user(user_id, page=1, per_page=20):
        stmt = (db.select(Invoice)
                .join(Order, Invoice.order_id == Order.id)
                .where(Order.user_id == user_id)
                .order_by(Invoice.issued_at.desc(), Invoice.id.desc()))
        pagination = db.paginate(stmt, page=page, per_page=per_page, max_per_page=100, error_out=False)
        return paginated(pagination, Invoice.to_dict)

    @staticmethod
    def get_gst_report(start, end, group_by_brand=False):
        """Tax totals over tax invoices issued between ``start`` and ``end`` (inclusive)."""
        start_at = _as_datetime(start)
        end_at = _as_datetime(end, end_of_day=isinstance(end, date) and not isinstance(end, datetime))

        invoices = (Invoice.query
                    .filter(Invoice.invoice_type == InvoiceType.TAX_INVOICE,
                            Invoice.issued_at >= start_at,
                            Invoice.issued_at <= end_at)
                    .order_by(Invoice.issued_at.asc(), Invoice.id.asc())
                    .all())

        totals = {'totalSales': ZERO, 'totalCGST': ZERO, 'totalSGST': ZERO, 'totalIGST': ZERO, 'totalTax': ZERO}
        rows = []
        for inv in invoices:
            totals['totalSales'] += inv.subtotal
            totals['totalCGST'] += inv.cgst
            totals['totalSGST'] += inv.sgst
            totals['totalIGST'] += inv.igst
            totals['totalTax'] += inv.total_tax
            rows.append({
                'invoiceNumber': inv.invoice_number,
                'date': inv.issued_at.isoformat(),
                'buyerName': inv.buyer_name,
                'buyerGstin': inv.buyer_gstin,
                'subtotal': money(inv.subtotal),
                'cgst': money(inv.cgst),
                'sgst': money(inv.sgst),
                'igst': money(inv.igst),
                'total': money(inv.total_amount),
            })

        summary = {key: money(value) for key, value in totals.items()}
        summary['invoiceCount'] = len(invoices)

        report = {
            'period': {'startDate': start_at.isoformat(), 'endDate': end_at.isoformat()},
            'summary': summary,
            'invoices': rows,
        }
        if group_by_brand:
            report['byBrand'] = InvoiceService._group_by_brand(invoices)
        return report

    @staticmethod
    def _group_by_brand(invoices):
        groups = {}
        for inv in invoices:
            for item in inv.order.items:
                brand = item.product.brand or 'Unbranded'
                group = groups.setdefault(brand, {'invoices': set(), 'taxableValue': ZERO, 'tax': ZERO})
                group['invoices'].add(inv.id)
                group['taxableValue'] += round_to_two(item.unit_price * item.quantity)
                group['tax'] += item.tax_amount
        return {
            brand: {
                'invoiceCount': len(group['invoices']),
                'taxableValue': money(group['taxableValue']),
                'tax': money(group['tax']),
            }
            for brand, group in sorted(groups.items())
        }
