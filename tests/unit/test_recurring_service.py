"""
Unit tests for RecurringScheduler.

Run: pytest tests/unit/test_recurring_service.py -v
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from services.recurring_service import (
    RecurringScheduler,
    SKIP_DISABLED,
    SKIP_STARTED,
    SKIP_NOT_DUE,
    SKIP_ALREADY_GENERATED,
    SKIP_NO_TEMPLATE,
)
from models.base import SYSTEM_ACTOR
from models.client import PrivateLabelClient, RecurringSchedule
from models.client_order import ClientOrder, OrderStatus
from tests.factories import ClientFactory, ClientOrderFactory

LAST_RUN = datetime(2025, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2025, 2, 1, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def scheduler():
    return RecurringScheduler()


def _client(**schedule) -> PrivateLabelClient:
    base = {"enabled": True, "interval": "monthly", "last_generated_at": LAST_RUN.isoformat()}
    base.update(schedule)
    return PrivateLabelClient.model_validate(
        ClientFactory.create(id="client-1", recurring_schedule=base)
    )


def _shipped_template(**overrides) -> ClientOrder:
    fields = {
        "id": "order-shipped",
        "client_id": "client-1",
        "status": "shipped",
        "items": [ClientOrderFactory.item(label_id="label-1", quantity=12, unit_price="1.75")],
        "actual_ship_date": datetime(2025, 1, 5, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return ClientOrder.model_validate(ClientOrderFactory.create(**fields))


class TestNextGenerationDate:

    def test_monthly(self, scheduler):
        schedule = RecurringSchedule(enabled=True, interval="monthly", last_generated_at=LAST_RUN)

        assert scheduler.next_generation_date(schedule) == datetime(2025, 2, 1, tzinfo=timezone.utc)

    def test_quarterly_clamps_to_month_end(self, scheduler):
        schedule = RecurringSchedule(
            enabled=True,
            interval="quarterly",
            last_generated_at=datetime(2024, 11, 30, tzinfo=timezone.utc),
        )

        assert scheduler.next_generation_date(schedule) == datetime(2025, 2, 28, tzinfo=timezone.utc)

    def test_started_at_used_before_first_generation(self, scheduler):
        schedule = RecurringSchedule(enabled=True, interval="bimonthly", started_at=LAST_RUN)

        assert scheduler.next_generation_date(schedule) == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_no_anchor_returns_none(self, scheduler):
        assert scheduler.next_generation_date(RecurringSchedule(enabled=True, interval="monthly")) is None


class TestTick:
    """Tests for RecurringScheduler.tick()"""

    def test_generates_draft_from_latest_shipped_order(self, scheduler):
        older = _shipped_template(
            id="order-old",
            actual_ship_date=datetime(2024, 12, 1, tzinfo=timezone.utc),
        )

        result = scheduler.tick(_client(), NOW, [older, _shipped_template()])

        draft = result.new_order_draft
        assert draft is not None
        assert draft.status == OrderStatus.WAITING
        assert draft.is_recurring is True
        assert draft.parent_order == "order-shipped"
        assert draft.generation_date == date(2025, 2, 1)
        assert draft.delivery_date == date(2025, 2, 15)
        assert draft.production_start_date == date(2025, 2, 1)
        assert draft.items[0].quantity == 12
        assert draft.total == Decimal("21.00")
        assert draft.created_by == SYSTEM_ACTOR
        assert result.updated_schedule.last_generated_at == datetime(2025, 2, 1, tzinfo=timezone.utc)
        assert result.skipped_reason is None

    def test_draft_does_not_copy_discount_or_flags(self, scheduler):
        template = _shipped_template(
            discount={"type": "flat", "value": "5.00"},
            notification_flags={"seven_day_reminder": True, "ready_to_ship": True, "shipped": True},
        )

        draft = scheduler.tick(_client(), NOW, [template]).new_order_draft

        assert draft.discount.value == Decimal("0")
        assert draft.notification_flags.shipped is False
        assert draft.actual_ship_date is None

    def test_tick_twice_in_same_period_creates_one_draft(self, scheduler):
        client = _client()
        history = [_shipped_template()]

        first = scheduler.tick(client, NOW, history)
        history.append(first.new_order_draft)
        saved = client.model_copy(update={"recurring_schedule": first.updated_schedule})

        second = scheduler.tick(saved, NOW, history)

        assert first.new_order_draft is not None
        assert second.new_order_draft is None
        assert second.skipped_reason == SKIP_NOT_DUE
        assert second.updated_schedule == first.updated_schedule

    def test_existing_draft_for_period_is_noop(self, scheduler):
        # Draft saved but schedule was not: the period is found by generation_date
        client = _client()
        history = [_shipped_template()]
        history.append(scheduler.tick(client, NOW, history).new_order_draft)

        result = scheduler.tick(client, NOW, history)

        assert result.new_order_draft is None
        assert result.skipped_reason == SKIP_ALREADY_GENERATED
        assert result.updated_schedule == client.recurring_schedule

    def test_existing_draft_found_by_parent_and_window(self, scheduler):
        legacy_draft = ClientOrder.model_validate(ClientOrderFactory.create(
            client_id="client-1",
            is_recurring=True,
            parent_order="order-shipped",
            created_at=datetime(2025, 2, 1, 0, 5, tzinfo=timezone.utc),
        ))

        result = scheduler.tick(_client(), NOW, [_shipped_template(), legacy_draft])

        assert result.skipped_reason == SKIP_ALREADY_GENERATED

    def test_draft_uses_current_label_prices(self, scheduler):
        template = _shipped_template(items=[
            ClientOrderFactory.item(label_id="label-1", quantity=12, unit_price="1.75"),
            ClientOrderFactory.item(label_id="label-2", quantity=4, unit_price="3.00"),
        ])

        draft = scheduler.tick(
            _client(), NOW, [template], prices={"label-1": Decimal("2.00")}
        ).new_order_draft

        assert [item.unit_price for item in draft.items] == [Decimal("2.00"), Decimal("3.00")]
        assert draft.items[0].line_total == Decimal("24.00")
        assert draft.total == Decimal("36.00")

    def test_disabled_schedule(self, scheduler):
        client = _client(enabled=False)

        result = scheduler.tick(client, NOW, [_shipped_template()])

        assert result.skipped_reason == SKIP_DISABLED
        assert result.updated_schedule == client.recurring_schedule

    def test_not_due(self, scheduler):
        result = scheduler.tick(_client(), datetime(2025, 1, 31, 23, 59, tzinfo=timezone.utc))

        assert result.new_order_draft is None
        assert result.skipped_reason == SKIP_NOT_DUE

    def test_first_tick_without_anchor_starts_cadence(self, scheduler):
        result = scheduler.tick(_client(last_generated_at=None), NOW, [_shipped_template()])

        assert result.new_order_draft is None
        assert result.skipped_reason == SKIP_STARTED
        assert result.updated_schedule.started_at == NOW

    def test_no_shipped_order_skips_period(self, scheduler):
        waiting = ClientOrder.model_validate(ClientOrderFactory.create(client_id="client-1"))

        result = scheduler.tick(_client(), NOW, [waiting])

        assert result.new_order_draft is None
        assert result.skipped_reason == SKIP_NO_TEMPLATE
        assert result.updated_schedule.last_generated_at == datetime(2025, 2, 1, tzinfo=timezone.utc)

    def test_ignores_other_clients_orders(self, scheduler):
        other = ClientOrder.model_validate(ClientOrderFactory.create(
            client_id="client-2",
            status="shipped",
            actual_ship_date=datetime(2025, 1, 20, tzinfo=timezone.utc),
        ))

        result = scheduler.tick(_client(), NOW, [other])

        assert result.skipped_reason == SKIP_NO_TEMPLATE


class TestFindTemplate:

    def test_latest_ship_date_wins(self, scheduler):
        older = _shipped_template(id="order-old", actual_ship_date=datetime(2024, 12, 1, tzinfo=timezone.utc))

        assert scheduler.find_template("client-1", [_shipped_template(), older]).id == "order-shipped"

    def test_shipped_row_without_timestamps_sorts_first(self, scheduler):
        undated = _shipped_template(id="order-undated", actual_ship_date=None).model_copy(
            update={"created_at": None}
        )

        template = scheduler.find_template("client-1", [undated, _shipped_template()])

        assert template.id == "order-shipped"

    def test_only_undated_row(self, scheduler):
        undated = _shipped_template(actual_ship_date=None).model_copy(update={"created_at": None})

        assert scheduler.find_template("client-1", [undated]) is undated
