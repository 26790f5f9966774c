"""
Client order state machine.

Flow:
    waiting → stage_1 → stage_2 → stage_3 → stage_4 → ready_to_ship → shipped
    cancelled is reachable from anything except shipped

Rules:
- advance moves exactly one step; shipped and cancelled are terminal
- items, discount, delivery date and note change only while waiting
- production_start_date = delivery_date - 14 days (ship ASAP starts today)
- entering ready_to_ship / shipped requests a notification at most once

Pure transformations: results carry the updated order and the notification
requests for the caller to dispatch.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Optional

from models.base import Actor
from models.label import Label
from models.pricing import Discount
from models.client_order import (
    ClientOrder,
    OrderEdit,
    OrderItem,
    OrderStatus,
    ORDER_FLOW,
    PRODUCTION_STATUSES,
    TERMINAL_STATUSES,
    StatusHistoryEntry,
    TransitionResult,
)
from models.notification import NotificationKind
from services.pricing_service import PricingEngine, get_pricing_engine
from services.label_stage_service import is_ready_for_production
from services import notification_gate
from utils.date_utils import days_until, production_start_for
from exceptions import (
    TerminalStateError,
    OrderLockedError,
    LabelNotReadyError,
)

PRODUCTION_LEAD_DAYS = 14
REMINDER_WINDOW_DAYS = 7

# Fields that only change while the order is waiting
LOCKED_FIELDS = ("items", "discount", "delivery_date", "note")


def is_in_production(status: OrderStatus) -> bool:
    return OrderStatus(status) in PRODUCTION_STATUSES


def _today() -> date:
    return datetime.now(timezone.utc).date()


class OrderStatusMachine:
    """Moves client orders through production and shipping."""

    def __init__(
        self,
        pricing: Optional[PricingEngine] = None,
        production_lead_days: int = PRODUCTION_LEAD_DAYS,
        reminder_window_days: int = REMINDER_WINDOW_DAYS
    ):
        self.pricing = pricing or get_pricing_engine()
        self.production_lead_days = production_lead_days
        self.reminder_window_days = reminder_window_days

    # ===================
    # SCHEDULING
    # ===================

    def production_start(
        self,
        delivery_date: date,
        ship_asap: bool = False,
        today: Optional[date] = None
    ) -> date:
        """Ship ASAP skips the lead time and starts production today."""
        if ship_asap:
            return today or _today()
        return production_start_for(delivery_date, self.production_lead_days)

    # ===================
    # CREATION
    # ===================

    def create_order(
        self,
        client_id: str,
        items: list[OrderItem],
        delivery_date: date,
        actor: Optional[Actor] = None,
        discount: Optional[Discount] = None,
        note: Optional[str] = None,
        ship_asap: bool = False,
        now: Optional[datetime] = None,
        **extra
    ) -> ClientOrder:
        """
        Build a new waiting order with derived dates and totals.

        extra is passed through to ClientOrder (is_recurring, parent_order, ...).
        """
        now = now or datetime.now(timezone.utc)
        history = []
        if actor is not None:
            history.append(StatusHistoryEntry(
                status=OrderStatus.WAITING,
                changed_by=actor,
                changed_at=now,
                notes="created",
            ))

        order = ClientOrder(
            client_id=client_id,
            status=OrderStatus.WAITING,
            items=self.pricing.price_items(items),
            discount=discount or Discount(),
            delivery_date=delivery_date,
            production_start_date=self.production_start(delivery_date, ship_asap, now.date()),
            ship_asap=ship_asap,
            note=note,
            status_history=history,
            created_by=actor,
            created_at=now,
            updated_at=now,
            **extra
        )
        return self.snapshot_totals(order)

    def snapshot_totals(self, order: ClientOrder) -> ClientOrder:
        """Recompute subtotal, discount amount and total from items and discount."""
        totals = self.pricing.compute_order_totals(order.items, order.discount)
        return order.model_copy(update={
            "subtotal": totals.subtotal,
            "discount_amount": totals.discount_amount,
            "total": totals.total,
        })

    # ===================
    # EDITING
    # ===================

    def can_edit(self, order: ClientOrder) -> bool:
        return order.status == OrderStatus.WAITING

    def ensure_editable(self, order: ClientOrder, fields: Optional[list[str]] = None) -> None:
        """
        Raises:
            OrderLockedError: Order already left waiting
        """
        if not self.can_edit(order):
            raise OrderLockedError(order.id, order.status.value, fields)

    def apply_edit(
        self,
        order: ClientOrder,
        edit: OrderEdit,
        today: Optional[date] = None,
        now: Optional[datetime] = None
    ) -> ClientOrder:
        """
        Apply only the fields set on the edit.

        Raises:
            OrderLockedError: Locked field changed outside waiting
            TerminalStateError: ship_asap changed on a shipped/cancelled order
            InvalidQuantityError, InvalidDiscountRangeError: From pricing
        """
        changes = edit.model_dump(exclude_unset=True)
        if not changes:
            return order

        locked = [field for field in LOCKED_FIELDS if field in changes]
        if locked:
            self.ensure_editable(order, locked)
        if "ship_asap" in changes and order.status in TERMINAL_STATUSES:
            raise TerminalStateError(order.id, order.status.value)

        update = {}
        if edit.items is not None:
            update["items"] = self.pricing.price_items(edit.items)
        if edit.discount is not None:
            self.pricing.validate_discount(edit.discount)
            update["discount"] = edit.discount
        if "note" in changes:
            update["note"] = edit.note
        if edit.ship_asap is not None:
            update["ship_asap"] = edit.ship_asap
        if edit.delivery_date is not None:
            update["delivery_date"] = edit.delivery_date

        update["updated_at"] = now or datetime.now(timezone.utc)
        updated = order.model_copy(update=update)

        if updated.status == OrderStatus.WAITING and (
            "delivery_date" in update or "ship_asap" in update
        ):
            updated = updated.model_copy(update={
                "production_start_date": self.production_start(
                    updated.delivery_date, updated.ship_asap, today
                )
            })

        return self.snapshot_totals(updated)

    def set_delivery_date(
        self,
        order: ClientOrder,
        delivery_date: date,
        today: Optional[date] = None
    ) -> ClientOrder:
        """Change delivery date (waiting only) and recompute production start."""
        return self.apply_edit(order, OrderEdit(delivery_date=delivery_date), today)

    def set_ship_asap(
        self,
        order: ClientOrder,
        enabled: bool,
        today: Optional[date] = None
    ) -> ClientOrder:
        """Toggle ship ASAP. Allowed in any non-terminal status."""
        return self.apply_edit(order, OrderEdit(ship_asap=enabled), today)

    def ensure_shippable(self, order: ClientOrder, labels: Mapping[str, Label]) -> None:
        """
        Every item's label must be ready for production.

        Raises:
            LabelNotReadyError: Lists the labels that are missing or not ready
        """
        not_ready = [
            item.label_id
            for item in order.items
            if item.label_id not in labels or not is_ready_for_production(labels[item.label_id])
        ]
        if not_ready:
            raise LabelNotReadyError(not_ready)

    # ===================
    # TRANSITIONS
    # ===================

    def advance(
        self,
        order: ClientOrder,
        actor: Actor,
        now: Optional[datetime] = None,
        tracking_number: Optional[str] = None
    ) -> TransitionResult:
        """
        Move one status forward.

        Raises:
            TerminalStateError: Order is shipped or cancelled
        """
        if order.status in TERMINAL_STATUSES:
            raise TerminalStateError(order.id, order.status.value)

        now = now or datetime.now(timezone.utc)
        target = ORDER_FLOW[ORDER_FLOW.index(order.status) + 1]

        update = {
            "status": target,
            "status_history": [*order.status_history, StatusHistoryEntry(
                status=target,
                changed_by=actor,
                changed_at=now,
            )],
            "updated_at": now,
        }
        if target == OrderStatus.SHIPPED:
            update["actual_ship_date"] = now
            if tracking_number:
                update["tracking_number"] = tracking_number

        updated = order.model_copy(update=update)
        requests = []

        if target == OrderStatus.READY_TO_SHIP:
            updated, request = notification_gate.claim(
                updated, NotificationKind.READY_TO_SHIP, self._payload(updated)
            )
            if request:
                requests.append(request)
        elif target == OrderStatus.SHIPPED:
            updated, request = notification_gate.claim(
                updated, NotificationKind.SHIPPED, self._payload(updated)
            )
            if request:
                requests.append(request)

        return TransitionResult(order=updated, notification_requests=requests)

    def cancel(
        self,
        order: ClientOrder,
        actor: Actor,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> TransitionResult:
        """
        Cancel an order. Cancelling a cancelled order is a no-op.

        Raises:
            TerminalStateError: Order already shipped
        """
        if order.status == OrderStatus.CANCELLED:
            return TransitionResult(order=order)
        if order.status == OrderStatus.SHIPPED:
            raise TerminalStateError(order.id, order.status.value)

        now = now or datetime.now(timezone.utc)
        updated = order.model_copy(update={
            "status": OrderStatus.CANCELLED,
            "status_history": [*order.status_history, StatusHistoryEntry(
                status=OrderStatus.CANCELLED,
                changed_by=actor,
                changed_at=now,
                notes=reason,
            )],
            "updated_at": now,
        })
        return TransitionResult(order=updated)

    # ===================
    # REMINDER SWEEP
    # ===================

    def reminder_due(self, order: ClientOrder, today: date) -> bool:
        """Delivery within the reminder window and reminder not yet decided."""
        if order.status in TERMINAL_STATUSES:
            return False
        remaining = days_until(order.delivery_date, today)
        if remaining < 0 or remaining > self.reminder_window_days:
            return False
        return notification_gate.should_send(
            order.notification_flags, NotificationKind.SEVEN_DAY_REMINDER
        )

    def sweep_reminders(
        self,
        orders: Iterable[ClientOrder],
        today: date
    ) -> list[TransitionResult]:
        """
        Flag due orders and return one request per order.

        Running the sweep again over the returned orders yields nothing.
        """
        results = []
        for order in orders:
            if not self.reminder_due(order, today):
                continue
            updated, request = notification_gate.claim(
                order, NotificationKind.SEVEN_DAY_REMINDER, self._payload(order)
            )
            if request:
                results.append(TransitionResult(order=updated, notification_requests=[request]))
        return results

    def _payload(self, order: ClientOrder) -> dict:
        return {
            "order_number": order.order_number,
            "status": order.status.value,
            "delivery_date": order.delivery_date.isoformat(),
            "total": str(order.total),
            "tracking_number": order.tracking_number,
        }


# Singleton instance
_order_status_machine: Optional[OrderStatusMachine] = None


def get_order_status_machine() -> OrderStatusMachine:
    """Get or create OrderStatusMachine instance."""
    global _order_status_machine
    if _order_status_machine is None:
        _order_status_machine = OrderStatusMachine()
    return _order_status_machine
