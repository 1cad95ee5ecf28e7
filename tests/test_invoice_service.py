"""
Tests for orderdesk.services.invoice_service: tax and proforma invoices, reads and the GST report.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from orderdesk.errors import BusinessRuleError, ConflictError, NotFoundError
from orderdesk.extensions import db
from orderdesk.models import Invoice, InvoiceType, Order, Quote, Role
from orderdesk.services.invoice_service import InvoiceService
from orderdesk.services.order_service import OrderService
from orderdesk.services.quote_service import QuoteService
from orderdesk.services.tax_engine import financial_year
from orderdesk.utils import utcnow


@pytest.fixture
def manual_dispatch(app):
    app.config['OUTBOX_DISPATCH_INLINE'] = False


def _order(user, product, qty=20):
    return OrderService.create(user, Role.B2B_CUSTOMER, [{'product_id': product.id, 'quantity': qty}])


def _priced_quote(user, product, valid_days=10):
    quote = QuoteService.create(user, [{'product_id': product.id, 'quantity': 10}])
    QuoteService.update_pricing(
        quote.id,
        [{'quote_item_id': quote.items[0].id, 'quoted_qty': 10, 'quoted_price': '100'}],
        valid_until=utcnow() + timedelta(days=valid_days),
    )
    return quote


class TestTaxInvoice:
    def test_snapshot(self, app, manual_dispatch, customer, make_product):
        order = _order(customer, make_product(b2b_price=Decimal('50.00')))

        invoice = InvoiceService.generate_tax_invoice(order.id)

        fy = financial_year(utcnow().date())
        assert invoice.invoice_number == f"INV/{fy}/00001"
        assert invoice.financial_year == fy
        assert invoice.invoice_type == InvoiceType.TAX_INVOICE
        assert invoice.total_amount == order.total_amount
        assert invoice.cgst == Decimal('90.00')
        assert invoice.buyer_name == 'XYZ Furniture'
        assert invoice.buyer_state_code == '27'
        assert invoice.seller_gstin == app.config['SELLER_GSTIN']
        assert invoice.seller_address['name'] == app.config['SELLER_NAME']
        assert (invoice.due_date - invoice.issued_at).days in (14, 15)

    def test_second_invoice_conflicts(self, manual_dispatch, customer, make_product):
        order = _order(customer, make_product())
        InvoiceService.generate_tax_invoice(order.id)

        with pytest.raises(ConflictError):
            InvoiceService.generate_tax_invoice(order.id)
        assert Invoice.query.filter_by(order_id=order.id).count() == 1

    def test_unique_index_backs_the_check(self, customer, make_product):
        order = _order(customer, make_product())
        existing = Invoice.query.filter_by(order_id=order.id).one()

        db.session.add(Invoice(
            invoice_number='INV/TEST/99999',
            financial_year=existing.financial_year,
            invoice_type=InvoiceType.TAX_INVOICE,
            order_id=order.id,
        ))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_auto_invoice_then_manual_conflicts(self, customer, make_product):
        order = _order(customer, make_product())
        with pytest.raises(ConflictError):
            InvoiceService.generate_tax_invoice(order.id)

    def test_missing_order(self, app):
        with pytest.raises(NotFoundError):
            InvoiceService.generate_tax_invoice(42)

    def test_cancelled_order(self, manual_dispatch, customer, make_product):
        order = _order(customer, make_product())
        OrderService.cancel(order.id, customer)
        with pytest.raises(BusinessRuleError):
            InvoiceService.generate_tax_invoice(order.id)


class TestProforma:
    def test_unpriced_quote(self, customer, make_product):
        quote = QuoteService.create(customer, [{'product_id': make_product().id, 'quantity': 5}])
        with pytest.raises(BusinessRuleError):
            InvoiceService.generate_proforma_invoice(quote.id)

    def test_missing_quote(self, app):
        with pytest.raises(NotFoundError):
            InvoiceService.generate_proforma_invoice(7)

    def test_creates_placeholder_order(self, customer, make_product):
        product = make_product(stock_quantity=30)
        quote = _priced_quote(customer, product)

        invoice = InvoiceService.generate_proforma_invoice(quote.id)

        assert invoice.invoice_number.startswith('PRO/')
        assert invoice.invoice_type == InvoiceType.PROFORMA
        assert invoice.cgst == Decimal('90.00')
        assert invoice.sgst == Decimal('90.00')
        assert invoice.total_amount == Decimal('1180.00')
        assert invoice.due_date == quote.valid_until

        placeholder = invoice.order
        assert placeholder.is_placeholder
        assert placeholder.items == []
        assert placeholder.quote_id == quote.id
        assert product.stock_quantity == 30

    def test_reuses_existing_order(self, customer, make_product):
        quote = _priced_quote(customer, make_product())
        first = InvoiceService.generate_proforma_invoice(quote.id)
        second = InvoiceService.generate_proforma_invoice(quote.id)
        assert first.order_id == second.order_id
        assert first.invoice_number != second.invoice_number
        assert Order.query.count() == 1

    def test_estimates_split_when_missing(self, app, customer, make_product):
        quote = _priced_quote(customer, make_product())
        quote = db.session.get(Quote, quote.id)
        quote.cgst = quote.sgst = quote.igst = quote.total_tax = None
        db.session.commit()

        invoice = InvoiceService.generate_proforma_invoice(quote.id)
        assert invoice.total_tax == Decimal('180.00')
        assert invoice.cgst == Decimal('90.00')
        assert invoice.sgst == Decimal('90.00')
        assert invoice.igst == Decimal('0.00')

    def test_tax_and_proforma_numbers_are_separate(self, customer, make_product):
        product = make_product()
        _order(customer, product, qty=1)
        quote = _priced_quote(customer, product)
        proforma = InvoiceService.generate_proforma_invoice(quote.id)
        assert proforma.invoice_number.endswith('/00001')


class TestReads:
    def test_get_includes_amount_in_words(self, customer, make_product):
        order = _order(customer, make_product(b2b_price=Decimal('50.00')))
        invoice = Invoice.query.filter_by(order_id=order.id).one()

        data = InvoiceService.get(invoice.id)
        assert data['orderNumber'] == order.order_number
        assert data['totalAmount'] == '2180.00'
        assert data['amountInWords'] == 'Rupees Two Thousand One Hundred Eighty Only'

        with pytest.raises(NotFoundError):
            InvoiceService.get(999)

    def test_lists(self, customer, make_user, make_product):
        product = make_product()
        order = _order(customer, product, qty=1)
        _order(make_user(), product, qty=1)
        quote = _priced_quote(customer, product)
        InvoiceService.generate_proforma_invoice(quote.id)

        assert len(InvoiceService.list_for_order(order.id)) == 1
        assert InvoiceService.list_invoices()['pagination']['total'] == 3
        assert InvoiceService.list_invoices(invoice_type=InvoiceType.PROFORMA)['pagination']['total'] == 1
        assert InvoiceService.list_invoices(financial_year='1999-00')['pagination']['total'] == 0
        assert InvoiceService.list_for_user(customer.id)['pagination']['total'] == 2


class TestGstReport:
    def test_totals_and_brands(self, customer, make_user, make_product):
        durian = make_product(brand='DURIAN', b2b_price=Decimal('50.00'))
        rockstar = make_product(brand='ROCKSTAR', b2b_price=Decimal('100.00'))
        _order(customer, durian, qty=20)
        _order(make_user(state_code='29'), rockstar, qty=5)
        InvoiceService.generate_proforma_invoice(_priced_quote(customer, durian).id)

        today = utcnow().date()
        report = InvoiceService.get_gst_report(today - timedelta(days=1), today + timedelta(days=1),
                                               group_by_brand=True)

        assert report['summary'] == {
            'totalSales': '1500.00',
            'totalCGST': '90.00',
            'totalSGST': '90.00',
            'totalIGST': '90.00',
            'totalTax': '270.00',
            'invoiceCount': 2,
        }
        assert len(report['invoices']) == 2
        assert report['byBrand'] == {
            'DURIAN': {'invoiceCount': 1, 'taxableValue': '1000.00', 'tax': '180.00'},
            'ROCKSTAR': {'invoiceCount': 1, 'taxableValue': '500.00', 'tax': '90.00'},
        }

    def test_outside_range_is_empty(self, customer, make_product):
        _order(customer, make_product(), qty=1)
        report = InvoiceService.get_gst_report(utcnow().date() - timedelta(days=30),
                                               utcnow().date() - timedelta(days=10))
        assert report['summary']['invoiceCount'] == 0
        assert 'byBrand' not in report
