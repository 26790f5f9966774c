"""
Recurring order generator.

For clients with an enabled schedule, clones the most recent shipped
order into a new waiting draft once per period:

    next_generation_date = last_generated_at + interval months
    (monthly = 1, bimonthly = 2, quarterly = 3)

A tick is idempotent per period: if a draft for the period already exists
the tick changes nothing (the client service then moves the schedule up to
that period). When the client has no shipped order yet the
period is skipped (schedule still advances) instead of failing.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from models.base import SYSTEM_ACTOR
from models.client import (
    PrivateLabelClient,
    RecurringSchedule,
    TickResult,
    INTERVAL_MONTHS,
)
from models.client_order import ClientOrder, OrderStatus
from services.order_status_service import OrderStatusMachine, get_order_status_machine
from utils.date_utils import add_months, as_date

RECURRING_LEAD_DAYS = 14

# Skip reasons reported on TickResult
SKIP_DISABLED = "disabled"
SKIP_STARTED = "schedule_started"
SKIP_NOT_DUE = "not_due"
SKIP_ALREADY_GENERATED = "already_generated"
SKIP_NO_TEMPLATE = "no_shipped_order"

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


class RecurringScheduler:
    """Generates recurring draft orders."""

    def __init__(
        self,
        order_machine: Optional[OrderStatusMachine] = None,
        lead_days: int = RECURRING_LEAD_DAYS
    ):
        self.order_machine = order_machine or get_order_status_machine()
        self.lead_days = lead_days

    def next_generation_date(self, schedule: RecurringSchedule) -> Optional[datetime]:
        """Anchor + interval, or None when the schedule has no anchor yet."""
        anchor = schedule.last_generated_at or schedule.started_at
        if anchor is None or schedule.interval is None:
            return None
        return add_months(anchor, INTERVAL_MONTHS[schedule.interval])

    def find_template(self, client_id: str, orders: Iterable[ClientOrder]) -> Optional[ClientOrder]:
        """Most recently shipped order of the client."""
        shipped = [
            order for order in orders
            if order.client_id == client_id and order.status == OrderStatus.SHIPPED
        ]
        if not shipped:
            return None
        return max(shipped, key=lambda o: o.actual_ship_date or o.created_at or _NEVER)

    def period_exists(
        self,
        client: PrivateLabelClient,
        orders: Iterable[ClientOrder],
        generation_date: datetime,
        template: Optional[ClientOrder] = None
    ) -> bool:
        """
        True if a recurring draft was already produced for this period.

        Matches on generation_date; drafts saved without one are matched
        by parent order and a created_at inside the period window.
        """
        period = as_date(generation_date)
        window_end = add_months(generation_date, INTERVAL_MONTHS[client.recurring_schedule.interval])

        for order in orders:
            if order.client_id != client.id or not order.is_recurring:
                continue
            if order.generation_date == period:
                return True
            if (
                order.generation_date is None
                and template is not None
                and order.parent_order == template.id
                and order.created_at is not None
                and generation_date <= order.created_at < window_end
            ):
                return True
        return False

    def tick(
        self,
        client: PrivateLabelClient,
        now: datetime,
        orders: Iterable[ClientOrder] = (),
        prices: Optional[Mapping[str, Decimal]] = None
    ) -> TickResult:
        """
        Run the schedule for one client.

        Args:
            client: Client with its recurring schedule
            now: Current time
            orders: The client's order history
            prices: Current unit price per label id. Items of labels listed
                here are re-priced; the rest keep the template price.

        Returns:
            TickResult with an optional draft and the schedule to save
        """
        schedule = client.recurring_schedule
        orders = list(orders)

        if not schedule.enabled:
            return TickResult(updated_schedule=schedule, skipped_reason=SKIP_DISABLED)

        generation_date = self.next_generation_date(schedule)
        if generation_date is None:
            return TickResult(
                updated_schedule=schedule.model_copy(update={"started_at": now}),
                skipped_reason=SKIP_STARTED,
            )

        if now < generation_date:
            return TickResult(updated_schedule=schedule, skipped_reason=SKIP_NOT_DUE)

        template = self.find_template(client.id, orders)

        if self.period_exists(client, orders, generation_date, template):
            return TickResult(updated_schedule=schedule, skipped_reason=SKIP_ALREADY_GENERATED)

        advanced = schedule.model_copy(update={"last_generated_at": generation_date})

        if template is None:
            return TickResult(updated_schedule=advanced, skipped_reason=SKIP_NO_TEMPLATE)

        prices = prices or {}
        items = [
            item.model_copy(update={"unit_price": prices[item.label_id]})
            if prices.get(item.label_id) is not None else item.model_copy()
            for item in template.items
        ]
        draft = self.order_machine.create_order(
            client_id=client.id,
            items=items,
            delivery_date=as_date(generation_date) + timedelta(days=self.lead_days),
            actor=SYSTEM_ACTOR,
            now=now,
            is_recurring=True,
            parent_order=template.id,
            generation_date=as_date(generation_date),
        )
        return TickResult(new_order_draft=draft, updated_schedule=advanced)


# Singleton instance
_recurring_scheduler: Optional[RecurringScheduler] = None


def get_recurring_scheduler() -> RecurringScheduler:
    """Get or create RecurringScheduler instance."""
    global _recurring_scheduler
    if _recurring_scheduler is None:
        _recurring_scheduler = RecurringScheduler()
    return _recurring_scheduler
