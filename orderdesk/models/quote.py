from orderdesk.extensions import db
from orderdesk.utils import utcnow, money, iso
import enum


class QuoteStatus(enum.Enum):
    REQUESTED = "REQUESTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    QUOTED = "QUOTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONVERTED = "CONVERTED"


class Quote(db.Model):
    __tablename__ = 'quotes'

    id = db.Column(db.Integer, primary_key=True)
    quote_number = db.Column(db.String(30), unique=True, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    user = db.relationship('User', back_populates='quotes')

    status = db.Column(db.Enum(QuoteStatus), nullable=False, default=QuoteStatus.REQUESTED, index=True)
    notes = db.Column(db.Text)
    admin_notes = db.Column(db.Text)

    # Pricing, null until an admin prices the quote
    subtotal = db.Column(db.Numeric(12, 2))
    cgst = db.Column(db.Numeric(12, 2))
    sgst = db.Column(db.Numeric(12, 2))
    igst = db.Column(db.Numeric(12, 2))
    total_tax = db.Column(db.Numeric(12, 2))
    freight_charges = db.Column(db.Numeric(12, 2))
    discount = db.Column(db.Numeric(12, 2))
    total_amount = db.Column(db.Numeric(12, 2))

    valid_until = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    # orders.id of the order produced by conversion. Kept without a FK,
    # orders.quote_id already points the other way.
    converted_order_id = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship('QuoteItem', backref='quote', cascade='all, delete-orphan')
    orders = db.relationship('Order', back_populates='quote', foreign_keys='Order.quote_id')

    @property
    def is_priced(self):
        return self.total_amount is not None

    @property
    def converted_order(self):
        return next((o for o in self.orders if o.id == self.converted_order_id), None)

    def to_dict(self):
        return {
            'id': self.id,
            'quoteNumber': self.quote_number,
            'userId': self.user_id,
            'status': self.status.value,
            'notes': self.notes,
            'adminNotes': self.admin_notes,
            'subtotal': money(self.subtotal),
            'cgst': money(self.cgst),
            'sgst': money(self.sgst),
            'igst': money(self.igst),
            'totalTax': money(self.total_tax),
            'freightCharges': money(self.freight_charges),
            'discount': money(self.discount),
            'totalAmount': money(self.total_amount),
            'validUntil': iso(self.valid_until),
            'rejectionReason': self.rejection_reason,
            'convertedOrderId': self.converted_order_id,
            'items': [item.to_dict() for item in self.items],
            'createdAt': iso(self.created_at),
        }

    def __repr__(self):
        return f'<Quote {self.quote_number} {self.status.value}>'


class QuoteItem(db.Model):
    __tablename__ = 'quote_items'

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey('quotes.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    product = db.relationship('Product')

    requested_qty = db.Column(db.Integer, nullable=False)
    quoted_qty = db.Column(db.Integer)
    quoted_price = db.Column(db.Numeric(12, 2))
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'requestedQty': self.requested_qty,
            'quotedQty': self.quoted_qty,
            'quotedPrice': money(self.quoted_price),
            'notes': self.notes,
        }
