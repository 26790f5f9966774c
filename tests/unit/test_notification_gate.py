"""
Unit tests for the notification gate.

Run: pytest tests/unit/test_notification_gate.py -v
"""

from models.client_order import ClientOrder
from models.notification import NotificationFlags, NotificationKind
from services import notification_gate
from tests.factories import ClientOrderFactory


class TestFlags:

    def test_fresh_flags_allow_every_kind(self):
        flags = NotificationFlags()

        assert all(notification_gate.should_send(flags, kind) for kind in NotificationKind)

    def test_mark_sent_blocks_only_that_kind(self):
        flags = notification_gate.mark_sent(NotificationFlags(), NotificationKind.SHIPPED)

        assert not notification_gate.should_send(flags, NotificationKind.SHIPPED)
        assert notification_gate.should_send(flags, NotificationKind.READY_TO_SHIP)

    def test_mark_sent_twice_is_noop(self):
        once = notification_gate.mark_sent(NotificationFlags(), "ready_to_ship")
        twice = notification_gate.mark_sent(once, "ready_to_ship")

        assert once == twice

    def test_reset_reopens_the_gate(self):
        flags = notification_gate.mark_sent(NotificationFlags(), NotificationKind.SHIPPED)

        flags = notification_gate.reset(flags, NotificationKind.SHIPPED)

        assert notification_gate.should_send(flags, NotificationKind.SHIPPED)


class TestClaim:

    def test_first_claim_returns_request(self):
        order = ClientOrder.model_validate(ClientOrderFactory.create(id="order-1"))

        updated, request = notification_gate.claim(
            order, NotificationKind.READY_TO_SHIP, {"order_number": "CO-1"}
        )

        assert updated.notification_flags.ready_to_ship is True
        assert request.order_id == "order-1"
        assert request.client_id == order.client_id
        assert request.payload == {"order_number": "CO-1"}

    def test_second_claim_returns_nothing(self):
        order = ClientOrder.model_validate(ClientOrderFactory.create())
        updated, _ = notification_gate.claim(order, NotificationKind.SHIPPED)

        again, request = notification_gate.claim(updated, NotificationKind.SHIPPED)

        assert request is None
        assert again is updated
