from decimal import Decimal
from unittest.mock import patch

import pytest

from floorline.models.audit_log import AuditLog
from floorline.models.dining_table import DiningTable
from floorline.models.order import Order
from floorline.models.order_item import OrderItem
from floorline.models.payment import Payment
from floorline.routers.discounts import router as discounts_router
from floorline.routers.orders import router as orders_router
from floorline.routers.payments import router as payments_router
from floorline.services import event_bus as bus
from floorline.services import orders as order_service
from floorline.services.errors import StateConflict
from tests.fixtures_data import (
    FULL_TABLE_ORDER,
    KITCHEN,
    SERVER,
    build_client,
    build_session_factory,
    seed_reference_data,
)


def _client():
    return build_client(orders_router, discounts_router, payments_router, actor=SERVER)


def _order_with_items(client, table_id=1):
    order = client.post("/api/orders", json={"table_id": table_id}).json()["data"]
    response = client.post(f"/api/orders/{order['id']}/items", json={"items": FULL_TABLE_ORDER})
    assert response.status_code == 201, response.text
    return order


def test_list_discount_definitions_hides_inactive_by_default():
    client, _, _ = _client()

    active = client.get("/api/discounts").json()["data"]
    everything = client.get("/api/discounts", params={"include_inactive": True}).json()["data"]

    assert {entry["code"] for entry in active} == {"HAPPY10", "LOYAL50"}
    assert len(everything) == 3


def test_named_discount_takes_type_and_value_from_definition():
    client, db, _ = _client()
    order = _order_with_items(client)

    response = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 1})

    assert response.status_code == 201
    body = response.json()["data"]
    assert body["type"] == "PERCENTAGE"
    assert body["value"] == "10.00"
    assert body["discount_name"] == "Happy hour"
    assert body["applied_by_id"] == SERVER.id

    entry = db.query(AuditLog).filter(AuditLog.action == "DISCOUNT_APPLIED").one()
    assert entry.order_id == order["id"]
    assert entry.user_id == SERVER.id


def test_comp_requires_a_note():
    client, _, _ = _client()
    order = _order_with_items(client)

    missing_note = client.post(
        f"/api/orders/{order['id']}/discounts",
        json={"type": "FIXED", "value": "20"},
    )
    with_note = client.post(
        f"/api/orders/{order['id']}/discounts",
        json={"type": "FIXED", "value": "20", "note": "Long wait"},
    )

    assert missing_note.status_code == 400
    assert with_note.status_code == 201
    assert with_note.json()["data"]["discount_id"] is None


def test_discount_values_are_validated():
    client, _, _ = _client()
    order = _order_with_items(client)
    url = f"/api/orders/{order['id']}/discounts"

    assert client.post(url, json={"type": "PERCENTAGE", "value": "120", "note": "x"}).status_code == 400
    assert client.post(url, json={"type": "FIXED", "value": "0", "note": "x"}).status_code == 400
    assert client.post(url, json={"type": "BOGO", "value": "5", "note": "x"}).status_code == 400
    assert client.post(url, json={"discount_id": 3}).status_code == 409
    assert client.post(url, json={"discount_id": 99}).status_code == 404


def test_kitchen_cannot_touch_discounts():
    client, _, caller = _client()
    order = _order_with_items(client)
    caller.actor = KITCHEN

    response = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 1})

    assert response.status_code == 403


def test_bill_preview_applies_stacked_discounts_and_tip_percent():
    client, _, _ = _client()
    order = _order_with_items(client)
    client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 1})
    client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 2})

    bill = client.get(f"/api/orders/{order['id']}/bill", params={"tip_percent": "10"}).json()["data"]

    assert bill["subtotal"] == "500.00"
    assert bill["discount"] == "100.00"
    assert bill["discounted_subtotal"] == "400.00"
    assert bill["tax"] == "64.00"
    assert bill["tip"] == "40.00"
    assert bill["total"] == "504.00"
    assert bill["tip_presets"] == ["10", "15", "20"]


def test_settlement_rederives_amounts_closes_order_and_releases_table():
    client, db, _ = _client()
    order = _order_with_items(client)
    client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 1})
    client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 2})

    with patch("floorline.routers.payments.order_events.publish") as publish:
        response = client.post(
            "/api/payments",
            json={"order_id": order["id"], "method": "cash", "tip_percent": "10"},
        )

    assert response.status_code == 201, response.text
    payment = response.json()["data"]
    assert payment["method"] == "CASH"
    assert payment["subtotal"] == "500.00"
    assert payment["discount"] == "100.00"
    assert payment["tax"] == "64.00"
    assert payment["tip"] == "40.00"
    assert payment["total"] == "504.00"
    assert response.json()["order"]["status"] == "CLOSED"
    assert db.get(DiningTable, 1).status == "AVAILABLE"

    events = publish.call_args.args[0]
    assert [name for name, _ in events] == [bus.ORDER_CLOSED]
    assert events[0][1]["total"] == "504.00"

    audit = db.query(AuditLog).filter(AuditLog.action == "PAYMENT_PROCESSED").one()
    assert '"total": "504.00"' in audit.details_json


def test_settlement_ignores_cancelled_items():
    client, db, _ = _client()
    order = _order_with_items(client)
    order_row = db.get(Order, order["id"])
    order_row.items[0].status = "CANCELLED"
    db.commit()

    payment = client.post(
        "/api/payments",
        json={"order_id": order["id"], "method": "CARD", "tip": "0"},
    ).json()["data"]

    assert payment["subtotal"] == "250.00"
    assert payment["total"] == "290.00"


def test_second_settlement_and_cancelled_orders_conflict():
    client, db, _ = _client()
    order = _order_with_items(client)
    other = _order_with_items(client, table_id=2)
    client.patch(f"/api/orders/{other['id']}/status", json={"status": "CANCELLED"})

    first = client.post("/api/payments", json={"order_id": order["id"], "method": "CARD"})
    again = client.post("/api/payments", json={"order_id": order["id"], "method": "CARD"})
    cancelled = client.post("/api/payments", json={"order_id": other["id"], "method": "CASH"})

    assert first.status_code == 201
    assert again.status_code == 409
    assert cancelled.status_code == 409
    assert db.query(Payment).count() == 1


def test_settlement_validates_method_and_tip_choice():
    client, _, _ = _client()
    order = _order_with_items(client)

    bad_method = client.post("/api/payments", json={"order_id": order["id"], "method": "BITCOIN"})
    both_tips = client.post(
        "/api/payments",
        json={"order_id": order["id"], "method": "CASH", "tip": "5", "tip_percent": "10"},
    )
    missing = client.post("/api/payments", json={"order_id": 999, "method": "CASH"})

    assert bad_method.status_code == 400
    assert both_tips.status_code == 400
    assert missing.status_code == 404


def test_discounts_locked_after_settlement():
    client, _, _ = _client()
    order = _order_with_items(client)
    application = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 2}).json()["data"]
    client.post("/api/payments", json={"order_id": order["id"], "method": "CASH"})

    add = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 1})
    remove = client.delete(f"/api/orders/{order['id']}/discounts/{application['id']}")

    assert add.status_code == 409
    assert remove.status_code == 409


def test_remove_discount_deletes_application_and_audits():
    client, db, _ = _client()
    order = _order_with_items(client)
    application = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 2}).json()["data"]

    response = client.delete(f"/api/orders/{order['id']}/discounts/{application['id']}")
    missing = client.delete(f"/api/orders/{order['id']}/discounts/{application['id']}")

    assert response.status_code == 200
    assert missing.status_code == 404
    assert client.get(f"/api/orders/{order['id']}/discounts").json()["data"] == []
    assert db.query(AuditLog).filter(AuditLog.action == "DISCOUNT_REMOVED").count() == 1


def test_list_order_discounts_newest_first():
    client, _, _ = _client()
    order = _order_with_items(client)
    first = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 1}).json()["data"]
    second = client.post(f"/api/orders/{order['id']}/discounts", json={"discount_id": 2}).json()["data"]

    listed = client.get(f"/api/orders/{order['id']}/discounts").json()["data"]

    assert [entry["id"] for entry in listed] == [second["id"], first["id"]]
    assert Decimal(listed[0]["value"]) == Decimal("50")


def test_settlement_racing_another_settlement_is_a_conflict():
    session_factory = build_session_factory()
    setup = session_factory()
    seed_reference_data(setup)
    order = Order(table_id=1, server_id=SERVER.id, status="SUBMITTED")
    order.items.append(
        OrderItem(menu_item_id=20, name="Margarita", unit_price=Decimal("100.00"), destination="BAR")
    )
    setup.add(order)
    setup.commit()
    order_id = order.id

    first, second = session_factory(), session_factory()
    real_compute_bill = order_service.compute_bill
    raced = []

    def settle_elsewhere_first(*args, **kwargs):
        # Runs after the first session has already passed its "not yet settled" check
        if not raced:
            raced.append(True)
            order_service.settle_payment(second, order_id=order_id, method="CARD", actor_id=SERVER.id)
        return real_compute_bill(*args, **kwargs)

    with patch.object(order_service, "compute_bill", side_effect=settle_elsewhere_first):
        with pytest.raises(StateConflict):
            order_service.settle_payment(first, order_id=order_id, method="CASH", actor_id=SERVER.id)

    check = session_factory()
    payments = check.query(Payment).filter(Payment.order_id == order_id).all()
    assert [payment.method for payment in payments] == ["CARD"]
    assert check.get(Order, order_id).status == "CLOSED"


def test_bill_preview_rejects_tip_percent_settlement_would_refuse():
    client, _, _ = _client()
    order = _order_with_items(client)

    response = client.get(f"/api/orders/{order['id']}/bill", params={"tip_percent": "150"})

    assert response.status_code == 422
