from orderdesk.extensions import db
from orderdesk.utils import utcnow, money, iso
import enum


class InvoiceType(enum.Enum):
    TAX_INVOICE = "TAX_INVOICE"
    PROFORMA = "PROFORMA"


class Invoice(db.Model):
    __tablename__ = 'invoices'
    __table_args__ = (
        # At most one tax invoice per order; proformas are unrestricted
        db.Index(
            'uq_invoices_tax_invoice_per_order', 'order_id',
            unique=True,
            sqlite_where=db.text("invoice_type = 'TAX_INVOICE'"),
            postgresql_where=db.text("invoice_type = 'TAX_INVOICE'"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)

    # 1. Invoice Basics
    invoice_number = db.Column(db.String(50), unique=True, nullable=False)
    financial_year = db.Column(db.String(7), nullable=False, index=True)
    invoice_type = db.Column(db.Enum(InvoiceType), nullable=False)
    issued_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    due_date = db.Column(db.DateTime)

    # 2. Order Link
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    order = db.relationship('Order', back_populates='invoices')

    # 3. Totals snapshot
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cgst = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    sgst = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    igst = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    freight_charges = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # 4. Party snapshots
    buyer_name = db.Column(db.String(150))
    buyer_gstin = db.Column(db.String(15))
    buyer_state_code = db.Column(db.String(2))
    buyer_address = db.Column(db.JSON)

    seller_gstin = db.Column(db.String(15))
    seller_state_code = db.Column(db.String(2))
    seller_address = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'invoiceNumber': self.invoice_number,
            'financialYear': self.financial_year,
            'invoiceType': self.invoice_type.value,
            'orderId': self.order_id,
            'issuedAt': iso(self.issued_at),
            'dueDate': iso(self.due_date),
            'subtotal': money(self.subtotal),
            'cgst': money(self.cgst),
            'sgst': money(self.sgst),
            'igst': money(self.igst),
            'totalTax': money(self.total_tax),
            'freightCharges': money(self.freight_charges),
            'discount': money(self.discount),
            'totalAmount': money(self.total_amount),
            'buyerName': self.buyer_name,
            'buyerGstin': self.buyer_gstin,
            'buyerStateCode': self.buyer_state_code,
            'buyerAddress': self.buyer_address,
            'sellerGstin': self.seller_gstin,
            'sellerStateCode': self.seller_state_code,
            'sellerAddress': self.seller_address,
        }
