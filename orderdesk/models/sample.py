from orderdesk.extensions import db
from orderdesk.utils import utcnow, iso
import enum


class SampleStatus(enum.Enum):
    REQUESTED = "REQUESTED"
    DISPATCHED = "DISPATCHED"


class SampleRequest(db.Model):
    __tablename__ = 'sample_requests'

    id = db.Column(db.Integer, primary_key=True)
    request_number = db.Column(db.String(30), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))

    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(20))
    company_name = db.Column(db.String(150))
    address = db.Column(db.JSON)

    # [{"productId": 1, "quantity": 2}, ...]
    items = db.Column(db.JSON, nullable=False)
    status = db.Column(db.Enum(SampleStatus), nullable=False, default=SampleStatus.REQUESTED)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    dispatched_at = db.Column(db.DateTime)

    @property
    def total_samples(self):
        return sum(item['quantity'] for item in self.items)

    def to_dict(self):
        return {
            'id': self.id,
            'requestNumber': self.request_number,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'companyName': self.company_name,
            'address': self.address,
            'items': self.items,
            'status': self.status.value,
            'createdAt': iso(self.created_at),
            'dispatchedAt': iso(self.dispatched_at),
        }
