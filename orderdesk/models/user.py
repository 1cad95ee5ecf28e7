from orderdesk.extensions import db
from orderdesk.utils import utcnow, iso
import enum


class Role(enum.Enum):
    ADMIN = "ADMIN"
    DEALER = "DEALER"
    B2B_CUSTOMER = "B2B_CUSTOMER"
    RETAIL_CUSTOMER = "RETAIL_CUSTOMER"


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20), unique=True)
    name = db.Column(db.String(100), nullable=False)
    company_name = db.Column(db.String(150))
    role = db.Column(db.Enum(Role), nullable=False, default=Role.RETAIL_CUSTOMER)

    # GST identity of the buyer
    gst_number = db.Column(db.String(15))
    state_code = db.Column(db.String(2))

    billing_address = db.Column(db.JSON)
    shipping_address = db.Column(db.JSON)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    orders = db.relationship('Order', back_populates='user')
    quotes = db.relationship('Quote', back_populates='user')

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def display_name(self):
        return self.company_name or self.name

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'phone': self.phone,
            'name': self.name,
            'companyName': self.company_name,
            'role': self.role.value,
            'gstNumber': self.gst_number,
            'stateCode': self.state_code,
            'createdAt': iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.id} {self.email}>'
