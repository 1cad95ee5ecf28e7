import functools
import logging

from flask import current_app

from orderdesk.extensions import db
from orderdesk.models.notification import Notification, NotificationType
from orderdesk.models.user import Role, User
from orderdesk.services.tax_engine import format_inr

logger = logging.getLogger(__name__)

ORDER_STATUS_MESSAGES = {
    'CONFIRMED': 'Your order has been confirmed',
    'PROCESSING': 'Your order is being processed',
    'INVOICED': 'Invoice for your order is ready',
    'SHIPPED': 'Your order has been shipped',
    'DELIVERED': 'Your order has been delivered',
    'CANCELLED': 'Your order has been cancelled',
}

QUOTE_STATUS_MESSAGES = {
    'UNDER_REVIEW': 'Your quote is under review',
    'QUOTED': 'Your quote is ready for review',
    'APPROVED': 'Your quote has been approved',
    'REJECTED': 'Your quote has been rejected',
    'CONVERTED': 'Your quote has been converted to an order',
}


def get_notification_sink():
    return current_app.extensions['notification_sink']


def _never_raises(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except Exception:
            logger.exception('%s failed', func.__name__)
            return False
    return wrapper


class NotificationService:
    """
    Stores in-app notifications and logs the matching e-mail.

    Every ``notify_*`` method swallows its own failures and returns whether
    the notification was recorded, so callers never see an exception.
    """

    @_never_raises
    def notify_new_order(self, payload):
        customer = self._customer_name(payload.get('userId'))
        return self._deliver(
            NotificationType.NEW_ORDER,
            'New Order Received',
            f"Order {payload['orderNumber']} placed by {customer} for {format_inr(payload['totalAmount'])}",
            data={'orderNumber': payload['orderNumber'], 'amount': payload['totalAmount']},
            recipient_role=Role.ADMIN,
            email=f"New order notification: {payload['orderNumber']}",
        )

    @_never_raises
    def notify_new_quote(self, payload):
        customer = self._customer_name(payload.get('userId'))
        return self._deliver(
            NotificationType.NEW_QUOTE,
            'New Quote Request',
            f"RFQ {payload['quoteNumber']} submitted by {customer} with {payload['itemCount']} products",
            data={'quoteNumber': payload['quoteNumber']},
            recipient_role=Role.ADMIN,
            email=f"New RFQ notification: {payload['quoteNumber']}",
        )

    @_never_raises
    def notify_order_status_update(self, user_id, payload):
        status = payload['status']
        return self._deliver(
            NotificationType.ORDER_STATUS_UPDATE,
            'Order Update',
            f"{ORDER_STATUS_MESSAGES.get(status, status)}: {payload['orderNumber']}",
            data=payload,
            recipient_id=user_id,
        )

    @_never_raises
    def notify_quote_status_update(self, user_id, payload):
        status = payload['status']
        return self._deliver(
            NotificationType.QUOTE_STATUS_UPDATE,
            'Quote Update',
            f"{QUOTE_STATUS_MESSAGES.get(status, status)}: {payload['quoteNumber']}",
            data=payload,
            recipient_id=user_id,
        )

    @_never_raises
    def notify_payment_received(self, payload):
        return self._deliver(
            NotificationType.PAYMENT_RECEIVED,
            'Payment Received',
            f"Payment of {format_inr(payload['amount'])} received for order "
            f"{payload['orderNumber']} via {payload['paymentMethod']}",
            data=payload,
            recipient_role=Role.ADMIN,
            email=f"Payment received notification: {payload['orderNumber']}",
        )

    @_never_raises
    def notify_sample_request(self, payload):
        return self._deliver(
            NotificationType.SAMPLE_REQUEST,
            'New Sample Request',
            f"Sample request {payload['requestNumber']} from {payload['name']} "
            f"for {payload['totalSamples']} samples",
            data=payload,
            recipient_role=Role.ADMIN,
            email=f"Sample request notification: {payload['requestNumber']}",
        )

    def _customer_name(self, user_id):
        user = db.session.get(User, user_id) if user_id else None
        return user.display_name if user else 'Customer'

    def _deliver(self, type_, title, message, data=None, recipient_id=None, recipient_role=None, email=None):
        with db.session.begin_nested():
            db.session.add(Notification(
                type=type_,
                title=title,
                message=message,
                data=data,
                recipient_id=recipient_id,
                recipient_role=recipient_role,
            ))

        if email:
            logger.info('[EMAIL] %s', email)
        return True
