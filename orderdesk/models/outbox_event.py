from orderdesk.extensions import db
from orderdesk.utils import utcnow
import enum


class OutboxStatus(enum.Enum):
    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"


class OutboxEvent(db.Model):
    __tablename__ = 'outbox_events'

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(50), nullable=False)   # order.created, quote.status_changed, ...
    payload = db.Column(db.JSON, nullable=False)
    status = db.Column(db.Enum(OutboxStatus), nullable=False, default=OutboxStatus.PENDING, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    processed_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<OutboxEvent {self.id} {self.event_type} {self.status.value}>'
