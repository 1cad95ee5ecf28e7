from orderdesk.errors import BusinessRuleError
from orderdesk.models.order import OrderStatus
from orderdesk.models.quote import QuoteStatus

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.INVOICED},
    OrderStatus.INVOICED: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

QUOTE_TRANSITIONS = {
    QuoteStatus.REQUESTED: {QuoteStatus.UNDER_REVIEW, QuoteStatus.QUOTED, QuoteStatus.REJECTED},
    QuoteStatus.UNDER_REVIEW: {QuoteStatus.QUOTED, QuoteStatus.REJECTED},
    # QUOTED -> QUOTED is a revised price
    QuoteStatus.QUOTED: {QuoteStatus.QUOTED, QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.APPROVED: {QuoteStatus.CONVERTED},
    QuoteStatus.REJECTED: set(),
    QuoteStatus.CONVERTED: set(),
}


def can_transition(table, current, target):
    return target in table.get(current, set())


def _transition(table, label, current, target):
    if not can_transition(table, current, target):
        raise BusinessRuleError(
            f"Cannot move {label} from {current.value} to {target.value}",
            code='INVALID_TRANSITION',
        )
    return target


def next_order_status(current, target):
    return _transition(ORDER_TRANSITIONS, 'order', current, target)


def next_quote_status(current, target):
    return _transition(QUOTE_TRANSITIONS, 'quote', current, target)
