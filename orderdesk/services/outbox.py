import logging

from flask import current_app

from orderdesk.errors import BusinessRuleError, ConflictError
from orderdesk.extensions import db
from orderdesk.models.outbox_event import OutboxEvent, OutboxStatus
from orderdesk.services.invoice_service import InvoiceService
from orderdesk.services.notification_service import get_notification_sink
from orderdesk.utils import utcnow

logger = logging.getLogger(__name__)

ORDER_CREATED = 'order.created'
ORDER_STATUS_CHANGED = 'order.status_changed'
QUOTE_CREATED = 'quote.created'
QUOTE_STATUS_CHANGED = 'quote.status_changed'
PAYMENT_RECEIVED = 'payment.received'
SAMPLE_REQUESTED = 'sample.requested'


class DeliveryFailed(Exception):
    pass


def _require(delivered, what):
    if not delivered:
        raise DeliveryFailed(f"{what} was not delivered")


def _handle_order_created(payload):
    try:
        InvoiceService.issue_tax_invoice(payload['orderId'])
    except ConflictError:
        logger.info('Tax invoice already exists for %s', payload['orderNumber'])
    except BusinessRuleError as exc:
        # cancelled before dispatch; the order is still announced
        logger.info('Skipping tax invoice for %s: %s', payload['orderNumber'], exc.message)

    _require(get_notification_sink().notify_new_order(payload), 'New order notification')


def _handle_order_status_changed(payload):
    sink = get_notification_sink()
    _require(
        sink.notify_order_status_update(payload['userId'], {
            'orderNumber': payload['orderNumber'],
            'status': payload['status'],
        }),
        'Order status notification',
    )


def _handle_quote_created(payload):
    _require(get_notification_sink().notify_new_quote(payload), 'New quote notification')


def _handle_quote_status_changed(payload):
    sink = get_notification_sink()
    _require(
        sink.notify_quote_status_update(payload['userId'], {
            'quoteNumber': payload['quoteNumber'],
            'status': payload['status'],
        }),
        'Quote status notification',
    )


def _handle_payment_received(payload):
    _require(get_notification_sink().notify_payment_received(payload), 'Payment notification')


def _handle_sample_requested(payload):
    _require(get_notification_sink().notify_sample_request(payload), 'Sample request notification')


HANDLERS = {
    ORDER_CREATED: _handle_order_created,
    ORDER_STATUS_CHANGED: _handle_order_status_changed,
    QUOTE_CREATED: _handle_quote_created,
    QUOTE_STATUS_CHANGED: _handle_quote_status_changed,
    PAYMENT_RECEIVED: _handle_payment_received,
    SAMPLE_REQUESTED: _handle_sample_requested,
}


class OutboxService:
    """
    Post-commit side effects.

    Workflows call ``enqueue`` inside their transaction, so the intent is
    stored exactly when the business change is. ``dispatch_pending`` then
    runs the handlers, one transaction per event, retrying failed events on
    later runs until OUTBOX_MAX_ATTEMPTS.
    """

    @staticmethod
    def enqueue(event_type, payload):
        if event_type not in HANDLERS:
            raise ValueError(f"Unknown outbox event type: {event_type}")
        event = OutboxEvent(event_type=event_type, payload=payload)
        db.session.add(event)
        return event

    @staticmethod
    def dispatch_after_commit(*events):
        if not current_app.config.get('OUTBOX_DISPATCH_INLINE', True):
            return 0
        return OutboxService.dispatch_pending(ids=[e.id for e in events])

    @staticmethod
    def dispatch_pending(ids=None, limit=100):
        """Process pending events; returns how many succeeded. Never raises."""
        query = OutboxEvent.query.filter_by(status=OutboxStatus.PENDING)
        if ids is not None:
            query = query.filter(OutboxEvent.id.in_(ids))
        try:
            event_ids = [e.id for e in query.order_by(OutboxEvent.id).limit(limit).all()]
        except Exception:
            db.session.rollback()
            logger.exception('Could not load pending outbox events')
            return 0

        done = 0
        for event_id in event_ids:
            if OutboxService._dispatch_one(event_id):
                done += 1
        return done

    @staticmethod
    def _dispatch_one(event_id):
        event_type = None
        try:
            event = db.session.get(OutboxEvent, event_id)
            event_type = event.event_type
            handler = HANDLERS.get(event_type)
            if handler is None:
                raise DeliveryFailed(f"No handler for {event_type}")
            handler(event.payload)
            event.status = OutboxStatus.DONE
            event.attempts += 1
            event.processed_at = utcnow()
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logger.exception('Outbox event %s (%s) failed', event_id, event_type)
            OutboxService._record_failure(event_id, e)
            return False

    @staticmethod
    def _record_failure(event_id, error):
        max_attempts = current_app.config.get('OUTBOX_MAX_ATTEMPTS', 5)
        try:
            event = db.session.get(OutboxEvent, event_id)
            event.attempts += 1
            event.last_error = repr(error)[:2000]
            if event.attempts >= max_attempts:
                event.status = OutboxStatus.FAILED
                logger.error('Outbox event %s gave up after %s attempts', event_id, event.attempts)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception('Could not record failure for outbox event %s', event_id)
