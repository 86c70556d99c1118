from decimal import Decimal

from floorline.models.dining_table import DiningTable
from floorline.models.menu_item import MenuItem
from floorline.models.order import Order
from floorline.models.order_item import OrderItem
from floorline.routers.order_items import router as order_items_router
from floorline.routers.orders import router as orders_router
from tests.fixtures_data import FULL_TABLE_ORDER, KITCHEN, SERVER, build_client


def _client():
    return build_client(orders_router, order_items_router, actor=SERVER)


def _open(client, table_id=1):
    response = client.post("/api/orders", json={"table_id": table_id})
    assert response.status_code in (200, 201), response.text
    return response.json()["data"]


def _submit(client, order_id, items=None):
    response = client.post(f"/api/orders/{order_id}/items", json={"items": items or FULL_TABLE_ORDER})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _set_status(client, item_id, status, **extra):
    return client.patch(f"/api/order-items/{item_id}/status", json={"status": status, **extra})


def test_open_order_is_idempotent_per_table():
    client, db, _ = _client()

    first = client.post("/api/orders", json={"table_id": 1})
    second = client.post("/api/orders", json={"table_id": 1})

    assert first.status_code == 201
    assert first.json()["created"] is True
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["data"]["id"] == first.json()["data"]["id"]
    assert db.query(Order).filter(Order.table_id == 1).count() == 1
    assert db.get(DiningTable, 1).status == "OCCUPIED"


def test_open_order_on_unknown_table_is_not_found():
    client, _, _ = _client()

    response = client.post("/api/orders", json={"table_id": 999})

    assert response.status_code == 404


def test_open_order_seats_a_reserved_table():
    client, db, _ = _client()

    order = _open(client, table_id=3)

    assert order["status"] == "OPEN"
    assert order["server_id"] == SERVER.id
    assert db.get(DiningTable, 3).status == "OCCUPIED"


def test_kitchen_staff_cannot_open_orders():
    client, _, caller = _client()
    caller.actor = KITCHEN

    response = client.post("/api/orders", json={"table_id": 1})

    assert response.status_code == 403


def test_submit_items_snapshots_price_with_modifiers_and_destination():
    client, db, _ = _client()
    order = _open(client)

    created = _submit(
        client,
        order["id"],
        [
            {"menu_item_id": 10, "quantity": 2, "modifier_ids": [100, 101], "notes": "medium rare", "seat_number": 1},
            {"menu_item_id": 20, "quantity": 1, "modifier_ids": [200]},
        ],
    )

    assert [item["unit_price"] for item in created] == ["285.50", "115.00"]
    assert [item["destination"] for item in created] == ["KITCHEN", "BAR"]
    assert all(item["status"] == "SENT" and item["sent_at"] for item in created)
    assert created[0]["notes"] == "medium rare"
    assert [m["name"] for m in created[0]["modifiers"]] == ["Peppercorn sauce", "Extra fries"]
    assert db.get(Order, order["id"]).status == "SUBMITTED"

    # Later menu edits never reach the snapshot
    db.get(MenuItem, 10).price = Decimal("999.00")
    db.commit()
    stored = db.get(OrderItem, created[0]["id"])
    assert stored.unit_price == Decimal("285.50")


def test_submit_rejects_whole_batch_on_unknown_menu_item():
    client, db, _ = _client()
    order = _open(client)

    response = client.post(
        f"/api/orders/{order['id']}/items",
        json={"items": [{"menu_item_id": 10, "quantity": 1}, {"menu_item_id": 999, "quantity": 1}]},
    )

    assert response.status_code == 404
    assert db.query(OrderItem).count() == 0
    assert db.get(Order, order["id"]).status == "OPEN"


def test_submit_rejects_unavailable_item_and_foreign_modifier():
    client, db, _ = _client()
    order = _open(client)

    unavailable = client.post(
        f"/api/orders/{order['id']}/items",
        json={"items": [{"menu_item_id": 20}, {"menu_item_id": 21}]},
    )
    foreign_modifier = client.post(
        f"/api/orders/{order['id']}/items",
        json={"items": [{"menu_item_id": 11, "modifier_ids": [100]}]},
    )

    assert unavailable.status_code == 409
    assert foreign_modifier.status_code == 400
    assert db.query(OrderItem).count() == 0


def test_submit_requires_at_least_one_item():
    client, _, _ = _client()
    order = _open(client)

    response = client.post(f"/api/orders/{order['id']}/items", json={"items": []})

    assert response.status_code == 422


def test_two_served_and_one_voided_completes_order_on_second_serve():
    client, db, _ = _client()
    order = _open(client)
    first, second, third = _submit(client, order["id"])

    voided = _set_status(client, third["id"], "CANCELLED", void_reason="CUSTOMER_CHANGED_MIND")
    served_one = _set_status(client, first["id"], "SERVED")
    assert voided.json()["order_status"] == "SUBMITTED"
    assert served_one.json()["order_completed"] is False
    assert db.get(Order, order["id"]).status == "SUBMITTED"

    served_two = _set_status(client, second["id"], "SERVED")

    assert served_two.status_code == 200
    assert served_two.json()["order_completed"] is True
    assert served_two.json()["order_status"] == "COMPLETED"
    assert served_two.json()["data"]["served_at"] is not None


def test_ready_sets_timestamp_and_bumps_version():
    client, _, caller = _client()
    order = _open(client)
    item = _submit(client, order["id"])[0]
    caller.actor = KITCHEN

    preparing = _set_status(client, item["id"], "PREPARING")
    ready = _set_status(client, item["id"], "READY")

    assert preparing.json()["data"]["version"] == 2
    assert ready.json()["data"]["status"] == "READY"
    assert ready.json()["data"]["ready_at"] is not None
    assert ready.json()["data"]["version"] == 3
    assert ready.json()["previous_status"] == "PREPARING"


def test_voiding_every_item_leaves_order_status_untouched():
    client, db, _ = _client()
    order = _open(client)
    items = _submit(client, order["id"])

    for item in items:
        response = _set_status(client, item["id"], "CANCELLED", void_reason="WRONG_ITEM", void_note="misfire")
        assert response.status_code == 200

    detail = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert detail["status"] == "SUBMITTED"
    assert detail["open_item_count"] == 0
    assert all(item["void_reason"] == "WRONG_ITEM" for item in detail["items"])


def test_void_requires_reason_from_closed_list():
    client, _, _ = _client()
    order = _open(client)
    item = _submit(client, order["id"])[0]

    missing = _set_status(client, item["id"], "CANCELLED")
    invalid = _set_status(client, item["id"], "CANCELLED", void_reason="BORED")

    assert missing.status_code == 409
    assert invalid.status_code == 400


def test_only_servers_may_void():
    client, _, caller = _client()
    order = _open(client)
    item = _submit(client, order["id"])[0]
    caller.actor = KITCHEN

    response = _set_status(client, item["id"], "CANCELLED", void_reason="KITCHEN_ERROR")

    assert response.status_code == 403


def test_terminal_items_and_invalid_targets_are_rejected():
    client, _, _ = _client()
    order = _open(client)
    item = _submit(client, order["id"])[0]

    assert _set_status(client, item["id"], "PENDING").status_code == 400
    assert _set_status(client, item["id"], "EATEN").status_code == 400
    assert _set_status(client, item["id"], "SERVED").status_code == 200
    assert _set_status(client, item["id"], "READY").status_code == 409
    assert _set_status(client, 9999, "READY").status_code == 404


def test_stale_expected_version_is_a_conflict():
    client, db, _ = _client()
    order = _open(client)
    item = _submit(client, order["id"])[0]

    assert _set_status(client, item["id"], "PREPARING", expected_version=1).status_code == 200
    stale = _set_status(client, item["id"], "READY", expected_version=1)

    assert stale.status_code == 409
    assert db.get(OrderItem, item["id"]).status == "PREPARING"


def test_new_items_reopen_a_completed_order():
    client, db, _ = _client()
    order = _open(client)
    item = _submit(client, order["id"], [{"menu_item_id": 20}])[0]
    _set_status(client, item["id"], "SERVED")
    assert db.get(Order, order["id"]).status == "COMPLETED"

    _submit(client, order["id"], [{"menu_item_id": 11}])

    assert db.get(Order, order["id"]).status == "SUBMITTED"


def test_cancel_order_cascades_to_items_and_releases_table():
    client, db, _ = _client()
    order = _open(client)
    first, second, _ = _submit(client, order["id"])
    _set_status(client, first["id"], "SERVED")

    response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "cancelled", "reason": "walked out"})

    assert response.status_code == 200
    body = response.json()["data"]
    assert body["status"] == "CANCELLED"
    statuses = {item["id"]: item["status"] for item in body["items"]}
    assert statuses[first["id"]] == "SERVED"
    assert statuses[second["id"]] == "CANCELLED"
    assert db.get(DiningTable, 1).status == "AVAILABLE"


def test_cancel_keeps_table_occupied_while_another_active_order_uses_it():
    client, db, _ = _client()
    order = _open(client)
    db.add(Order(table_id=1, server_id=3, status="SUBMITTED"))
    db.commit()

    client.patch(f"/api/orders/{order['id']}/status", json={"status": "CANCELLED"})

    assert db.get(DiningTable, 1).status == "OCCUPIED"


def test_cancel_is_only_allowed_from_open_or_submitted():
    client, _, _ = _client()
    order = _open(client)
    item = _submit(client, order["id"], [{"menu_item_id": 20}])[0]
    _set_status(client, item["id"], "SERVED")

    completed = client.patch(f"/api/orders/{order['id']}/status", json={"status": "CANCELLED"})
    closed = client.patch(f"/api/orders/{order['id']}/status", json={"status": "CLOSED"})

    assert completed.status_code == 409
    assert closed.status_code == 400


def test_items_on_cancelled_order_are_frozen():
    client, _, _ = _client()
    order = _open(client)
    item = _submit(client, order["id"])[0]
    client.patch(f"/api/orders/{order['id']}/status", json={"status": "CANCELLED"})

    assert _set_status(client, item["id"], "READY").status_code == 409
    resubmit = client.post(f"/api/orders/{order['id']}/items", json={"items": [{"menu_item_id": 10}]})
    assert resubmit.status_code == 409


def test_list_orders_filters_by_status_and_table():
    client, _, _ = _client()
    first = _open(client, table_id=1)
    second = _open(client, table_id=2)
    _submit(client, second["id"], [{"menu_item_id": 20}])

    submitted = client.get("/api/orders", params={"status": "SUBMITTED"}).json()["data"]
    by_table = client.get("/api/orders", params={"table_id": 1}).json()["data"]

    assert [order["id"] for order in submitted] == [second["id"]]
    assert [order["id"] for order in by_table] == [first["id"]]
    assert client.get("/api/orders", params={"from": "not-a-date"}).status_code == 400
