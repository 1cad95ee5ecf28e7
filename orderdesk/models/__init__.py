from orderdesk.models.user import User, Role
from orderdesk.models.product import Product
from orderdesk.models.order import Order, OrderItem, OrderStatus, OrderType, Payment, PaymentStatus
from orderdesk.models.quote import Quote, QuoteItem, QuoteStatus
from orderdesk.models.invoice import Invoice, InvoiceType
from orderdesk.models.sequence import SequenceCounter
from orderdesk.models.notification import Notification, NotificationType
from orderdesk.models.outbox_event import OutboxEvent, OutboxStatus
from orderdesk.models.sample import SampleRequest, SampleStatus

__all__ = [
    'User', 'Role', 'Product',
    'Order', 'OrderItem', 'OrderStatus', 'OrderType', 'Payment', 'PaymentStatus',
    'Quote', 'QuoteItem', 'QuoteStatus',
    'Invoice', 'InvoiceType', 'SequenceCounter',
    'Notification', 'NotificationType',
    'OutboxEvent', 'OutboxStatus',
    'SampleRequest', 'SampleStatus',
]
