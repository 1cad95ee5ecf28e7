import pytest

from orderdesk.errors import BusinessRuleError
from orderdesk.models import OrderStatus, QuoteStatus
from orderdesk.services.status_machine import (
    ORDER_TRANSITIONS, QUOTE_TRANSITIONS, can_transition, next_order_status, next_quote_status,
)


class TestOrderTransitions:
    @pytest.mark.parametrize('current, target', [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
        (OrderStatus.CONFIRMED, OrderStatus.PROCESSING),
        (OrderStatus.PROCESSING, OrderStatus.INVOICED),
        (OrderStatus.INVOICED, OrderStatus.SHIPPED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    ])
    def test_legal(self, current, target):
        assert next_order_status(current, target) == target

    @pytest.mark.parametrize('current, target', [
        (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
        (OrderStatus.PENDING, OrderStatus.SHIPPED),
        (OrderStatus.DELIVERED, OrderStatus.PENDING),
        (OrderStatus.CANCELLED, OrderStatus.CONFIRMED),
    ])
    def test_illegal(self, current, target):
        with pytest.raises(BusinessRuleError) as exc:
            next_order_status(current, target)
        assert exc.value.code == 'INVALID_TRANSITION'

    def test_every_status_has_a_row(self):
        assert set(ORDER_TRANSITIONS) == set(OrderStatus)


class TestQuoteTransitions:
    def test_requote_is_allowed(self):
        assert next_quote_status(QuoteStatus.QUOTED, QuoteStatus.QUOTED) == QuoteStatus.QUOTED

    def test_only_approved_converts(self):
        assert can_transition(QUOTE_TRANSITIONS, QuoteStatus.APPROVED, QuoteStatus.CONVERTED)
        for status in QuoteStatus:
            if status != QuoteStatus.APPROVED:
                assert not can_transition(QUOTE_TRANSITIONS, status, QuoteStatus.CONVERTED)

    def test_rejected_is_terminal(self):
        with pytest.raises(BusinessRuleError):
            next_quote_status(QuoteStatus.REJECTED, QuoteStatus.QUOTED)

    def test_every_status_has_a_row(self):
        assert set(QUOTE_TRANSITIONS) == set(QuoteStatus)
