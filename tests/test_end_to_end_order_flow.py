"""
End-to-end tests through the HTTP API with a mocked database.

Walks a label through approval, orders it, runs the order to shipped and
lets the recurring job clone it.

Run: pytest tests/test_end_to_end_order_flow.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from tests.factories import ActorFactory, ClientFactory, LabelFactory, ClientOrderFactory

ADMIN = ActorFactory.create(id="admin-1", name="Ops Admin")
STORE = ActorFactory.create(id="store-1", name="Store Owner", user_type="store")


@pytest.fixture
def api(test_client_with_mock_db, mock_supabase):
    mock_supabase.set_table_data("private_label_clients", [
        ClientFactory.create(id="client-1", contact_email="buyer@store.test"),
    ])
    with patch("integrations.mailer.send", return_value=True) as send:
        yield test_client_with_mock_db, mock_supabase, send


class TestLabelApproval:

    def test_label_pipeline(self, api):
        client, db, _ = api

        response = client.post("/api/labels", json={
            "client_id": "client-1",
            "flavor_name": "Mango",
            "product_type": "gummies",
            "unit_price": "1.75",
            "actor": ADMIN,
        })
        assert response.status_code == 201
        label_id = response.json()["id"]

        response = client.post(f"/api/labels/{label_id}/advance", json={"actor": ADMIN})
        assert response.json()["current_stage"] == "awaiting_store_approval"

        response = client.post(f"/api/labels/{label_id}/store-approval", json=STORE)
        assert response.status_code == 200
        assert response.json()["current_stage"] == "store_approved"

        response = client.patch(f"/api/labels/{label_id}/stage", json={
            "actor": ADMIN,
            "stage": "ready_for_production",
            "notes": "OLCC approved offline",
        })
        body = response.json()
        assert body["current_stage"] == "ready_for_production"
        assert body["stage_history"][-1]["non_sequential"] is True
        assert len(body["stage_history"]) == 4

    def test_revert_at_first_stage_is_conflict(self, api):
        client, db, _ = api
        db.set_table_data("labels", [
            LabelFactory.create(id="label-1", current_stage="design_in_progress"),
        ])

        response = client.post("/api/labels/label-1/revert", json={"actor": ADMIN})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    def test_unknown_label_is_404(self, api):
        client, _, _ = api

        response = client.get("/api/labels/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LABEL_NOT_FOUND"

    def test_bulk_stage(self, api):
        client, db, _ = api
        db.set_table_data("labels", LabelFactory.create_batch(
            3, client_id="client-1", current_stage="olcc_approved"
        ))

        response = client.patch("/api/labels/bulk/stage", json={
            "actor": ADMIN,
            "client_id": "client-1",
            "stage": "ready_for_production",
        })

        assert response.status_code == 200
        assert len(response.json()) == 3


class TestOrderLifecycle:

    def test_order_to_shipped(self, api):
        client, db, send = api
        db.set_table_data("labels", [
            LabelFactory.create(id="label-1", unit_price="1.75"),
            LabelFactory.create(id="label-2", unit_price="2.50"),
        ])

        response = client.post("/api/client-orders", json={
            "client_id": "client-1",
            "delivery_date": "2025-03-15",
            "items": [
                {"label_id": "label-1", "quantity": 2},
                {"label_id": "label-2", "quantity": 1},
            ],
            "discount": {"type": "flat", "value": "1.00"},
            "actor": ADMIN,
        })
        assert response.status_code == 201
        order = response.json()
        assert order["subtotal"] == "6.00"
        assert order["total"] == "5.00"
        assert order["production_start_date"] == "2025-03-01"

        order_id = order["id"]
        for _ in range(6):
            response = client.post(
                f"/api/client-orders/{order_id}/advance",
                json={"actor": ADMIN, "tracking_number": "1Z999AA1"},
            )
            assert response.status_code == 200

        shipped = response.json()
        assert shipped["status"] == "shipped"
        assert shipped["tracking_number"] == "1Z999AA1"
        assert [call.args[0] for call in send.call_args_list] == ["ready_to_ship", "shipped"]

        response = client.post(f"/api/client-orders/{order_id}/advance", json={"actor": ADMIN})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "TERMINAL_STATE"

    def test_edit_after_push_to_production_is_locked(self, api):
        client, db, _ = api
        db.set_table_data("client_orders", [
            ClientOrderFactory.create(id="order-1", status="stage_1"),
        ])

        response = client.patch("/api/client-orders/order-1", json={"delivery_date": "2025-05-01"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ORDER_LOCKED"

    def test_percentage_over_100_is_rejected(self, api):
        client, _, _ = api

        response = client.post("/api/pricing/order", json={
            "items": [ClientOrderFactory.item(quantity=1, unit_price="100.00")],
            "discount": {"type": "percentage", "value": "150"},
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_DISCOUNT_RANGE"

    def test_item_quote(self, api):
        client, _, _ = api

        response = client.post("/api/pricing/item", json={
            "structure": {
                "pricing_type": "multi_type",
                "prices": {"hybrid": {"price": "6.00", "discount_price": "5.00"}},
            },
            "quantities": {"hybrid": 3},
        })

        assert response.status_code == 200
        assert response.json()["item_total"] == "15.00"


class TestRecurringJob:

    def test_schedule_then_run(self, api):
        client, db, _ = api
        db.set_table_data("client_orders", [
            ClientOrderFactory.create(
                id="order-shipped",
                client_id="client-1",
                status="shipped",
                actual_ship_date=datetime(2025, 1, 6, tzinfo=timezone.utc),
            ),
        ])

        response = client.patch("/api/clients/client-1/schedule", json={
            "enabled": True,
            "interval": "monthly",
        })
        assert response.status_code == 200
        assert response.json()["recurring_schedule"]["started_at"] is not None

        from services.client_service import get_client_service

        service = get_client_service()
        started = service.get_by_id("client-1").recurring_schedule.started_at
        # Past the first monthly period, short of the second
        run_at = started + timedelta(days=31)

        first = service.run_recurring(run_at)
        second = service.run_recurring(run_at)

        assert len(first) == 1
        assert second == []
        assert first[0].parent_order == "order-shipped"
