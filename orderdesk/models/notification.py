from orderdesk.extensions import db
from orderdesk.utils import utcnow, iso
from orderdesk.models.user import Role
import enum


class NotificationType(enum.Enum):
    NEW_ORDER = "NEW_ORDER"
    NEW_QUOTE = "NEW_QUOTE"
    ORDER_STATUS_UPDATE = "ORDER_STATUS_UPDATE"
    QUOTE_STATUS_UPDATE = "QUOTE_STATUS_UPDATE"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    SAMPLE_REQUEST = "SAMPLE_REQUEST"


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.Enum(NotificationType), nullable=False)
    title = db.Column(db.String(150), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON)

    # Either a specific user or everyone with a role
    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    recipient_role = db.Column(db.Enum(Role))

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type.value,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'isRead': self.is_read,
            'createdAt': iso(self.created_at),
        }
