from orderdesk.extensions import db
from orderdesk.utils import utcnow, money, iso
import enum


class OrderStatus(enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    INVOICED = "INVOICED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderType(enum.Enum):
    DIRECT = "DIRECT"
    RFQ = "RFQ"


class PaymentStatus(enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(30), unique=True, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    user = db.relationship('User', back_populates='orders')

    order_type = db.Column(db.Enum(OrderType), nullable=False, default=OrderType.DIRECT)
    status = db.Column(db.Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)
    payment_status = db.Column(db.Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    # Set only on the stand-in order a proforma invoice needs before conversion
    is_placeholder = db.Column(db.Boolean, nullable=False, default=False)

    # Totals
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cgst = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    sgst = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    igst = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    gst_type = db.Column(db.String(20))
    freight_charges = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    balance_due = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    buyer_state_code = db.Column(db.String(2))
    shipping_address = db.Column(db.JSON)
    billing_address = db.Column(db.JSON)

    notes = db.Column(db.Text)
    admin_notes = db.Column(db.Text)

    quote_id = db.Column(db.Integer, db.ForeignKey('quotes.id'), index=True)
    quote = db.relationship('Quote', back_populates='orders', foreign_keys=[quote_id])

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship('OrderItem', backref='order', cascade='all, delete-orphan')
    invoices = db.relationship('Invoice', back_populates='order')
    payments = db.relationship('Payment', backref='order', cascade='all, delete-orphan')

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'orderNumber': self.order_number,
            'userId': self.user_id,
            'orderType': self.order_type.value,
            'status': self.status.value,
            'paymentStatus': self.payment_status.value,
            'subtotal': money(self.subtotal),
            'cgst': money(self.cgst),
            'sgst': money(self.sgst),
            'igst': money(self.igst),
            'totalTax': money(self.total_tax),
            'gstType': self.gst_type,
            'freightCharges': money(self.freight_charges),
            'discount': money(self.discount),
            'totalAmount': money(self.total_amount),
            'amountPaid': money(self.amount_paid),
            'balanceDue': money(self.balance_due),
            'shippingAddress': self.shipping_address,
            'billingAddress': self.billing_address,
            'notes': self.notes,
            'adminNotes': self.admin_notes,
            'quoteId': self.quote_id,
            'createdAt': iso(self.created_at),
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f'<Order {self.order_number} {self.status.value}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    product = db.relationship('Product')

    quantity = db.Column(db.Integer, nullable=False)
    # Frozen at order time
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'unitPrice': money(self.unit_price),
            'taxRate': money(self.tax_rate),
            'taxAmount': money(self.tax_amount),
            'totalPrice': money(self.total_price),
        }


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(30), nullable=False)
    reference = db.Column(db.String(100))
    received_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'orderId': self.order_id,
            'amount': money(self.amount),
            'method': self.method,
            'reference': self.reference,
            'receivedAt': iso(self.received_at),
        }
