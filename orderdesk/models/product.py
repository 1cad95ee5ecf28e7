from orderdesk.extensions import db
from orderdesk.utils import utcnow, money


class Product(db.Model):
    __tablename__ = 'products'
    __table_args__ = (
        db.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_nonneg'),
        db.CheckConstraint('moq >= 1', name='ck_products_moq_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    product_code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    brand = db.Column(db.String(50))
    category = db.Column(db.String(50))

    # Tiered prices, each optional
    price = db.Column(db.Numeric(12, 2))
    b2b_price = db.Column(db.Numeric(12, 2))
    dealer_price = db.Column(db.Numeric(12, 2))
    is_price_on_request = db.Column(db.Boolean, nullable=False, default=False)

    hsn_code = db.Column(db.String(20), default='4823')
    gst_rate = db.Column(db.Numeric(5, 2), nullable=False, default=18)

    moq = db.Column(db.Integer, nullable=False, default=1)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Products are deactivated, never deleted
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'productCode': self.product_code,
            'name': self.name,
            'brand': self.brand,
            'category': self.category,
            'price': money(self.price),
            'b2bPrice': money(self.b2b_price),
            'dealerPrice': money(self.dealer_price),
            'isPriceOnRequest': self.is_price_on_request,
            'gstRate': money(self.gst_rate),
            'moq': self.moq,
            'stockQuantity': self.stock_quantity,
            'isActive': self.is_active,
        }

    def __repr__(self):
        return f'<Product {self.product_code}>'
