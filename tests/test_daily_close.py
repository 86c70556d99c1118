from datetime import date, datetime
from decimal import Decimal

import pytest

from floorline.models.audit_log import AuditLog
from floorline.models.daily_close import DailyClose
from floorline.models.order import Order
from floorline.models.payment import Payment
from floorline.routers.daily_close import router as daily_close_router
from floorline.services.daily_close import aggregate_payments, close_day
from floorline.services.errors import StateConflict, ValidationFailed
from tests.fixtures_data import ADMIN, SERVER, build_client


def _settled(db, *, table_id, method, subtotal, tax, tip, created_at, discount="0"):
    order = Order(table_id=table_id, server_id=SERVER.id, status="CLOSED")
    db.add(order)
    db.flush()
    total = Decimal(subtotal) - Decimal(discount) + Decimal(tax) + Decimal(tip)
    db.add(
        Payment(
            order_id=order.id,
            method=method,
            subtotal=Decimal(subtotal),
            discount=Decimal(discount),
            tax=Decimal(tax),
            tip=Decimal(tip),
            total=total,
            created_by_id=SERVER.id,
            created_at=created_at,
        )
    )
    db.commit()


def _seed_new_years_day(db):
    # CASH 230.00 with a 30.00 tip, CARD 110.00 with a 10.00 tip
    _settled(db, table_id=1, method="CASH", subtotal="200.00", tax="0.00", tip="30.00",
             created_at=datetime(2024, 1, 1, 12, 30))
    _settled(db, table_id=2, method="CARD", subtotal="100.00", tax="0.00", tip="10.00",
             created_at=datetime(2024, 1, 1, 23, 59, 59))
    # Outside the window on both sides
    _settled(db, table_id=3, method="CASH", subtotal="999.00", tax="0.00", tip="0.00",
             created_at=datetime(2023, 12, 31, 23, 59, 59))
    _settled(db, table_id=1, method="CASH", subtotal="888.00", tax="0.00", tip="0.00",
             created_at=datetime(2024, 1, 2, 0, 0, 0))


def test_close_reconciles_cash_card_and_revenue():
    client, db, _ = build_client(daily_close_router, actor=ADMIN)
    _seed_new_years_day(db)

    response = client.post(
        "/api/daily-close",
        json={"date": "2024-01-01", "actual_cash": "225.50", "notes": " short drawer "},
    )

    assert response.status_code == 201, response.text
    body = response.json()["data"]
    assert body["expected_cash"] == "230.00"
    assert body["card_total"] == "110.00"
    assert body["total_revenue"] == "300.00"
    assert body["total_tips"] == "40.00"
    assert body["actual_cash"] == "225.50"
    assert body["variance"] == "-4.50"
    assert body["order_count"] == 2
    assert body["closed_by_name"] == "Alma Admin"
    assert body["notes"] == "short drawer"

    audit = db.query(AuditLog).filter(AuditLog.action == "DAILY_CLOSED").one()
    assert '"variance": "-4.50"' in audit.details_json


def test_second_close_for_same_date_conflicts_and_keeps_first_record():
    client, db, _ = build_client(daily_close_router, actor=ADMIN)
    _seed_new_years_day(db)
    client.post("/api/daily-close", json={"date": "2024-01-01", "actual_cash": "230"})

    again = client.post("/api/daily-close", json={"date": "2024-01-01", "actual_cash": "500"})

    assert again.status_code == 409
    stored = db.query(DailyClose).one()
    assert stored.variance == Decimal("0.00")


def test_close_of_an_empty_day_reports_counted_cash_as_overage():
    client, _, _ = build_client(daily_close_router, actor=ADMIN)

    body = client.post("/api/daily-close", json={"date": "2024-02-01", "actual_cash": "20"}).json()["data"]

    assert body["expected_cash"] == "0.00"
    assert body["variance"] == "20.00"
    assert body["order_count"] == 0


def test_negative_cash_is_rejected_before_storage():
    client, db, _ = build_client(daily_close_router, actor=ADMIN)

    response = client.post("/api/daily-close", json={"date": "2024-01-01", "actual_cash": "-1"})

    assert response.status_code == 422
    assert db.query(DailyClose).count() == 0


def test_close_day_service_validates_counted_cash():
    _, db, _ = build_client(actor=ADMIN)

    with pytest.raises(ValidationFailed):
        close_day(db, business_date=date(2024, 1, 1), actual_cash=None, actor_id=ADMIN.id)
    with pytest.raises(ValidationFailed):
        close_day(db, business_date=date(2024, 1, 1), actual_cash="-0.01", actor_id=ADMIN.id)
    with pytest.raises(ValidationFailed):
        close_day(db, business_date=date(2024, 1, 1), actual_cash="lots", actor_id=ADMIN.id)

    close_day(db, business_date=date(2024, 1, 1), actual_cash="0", actor_id=ADMIN.id)
    with pytest.raises(StateConflict):
        close_day(db, business_date=date(2024, 1, 1), actual_cash="0", actor_id=ADMIN.id)


def test_list_closes_newest_first_with_closer_names():
    client, _, _ = build_client(daily_close_router, actor=ADMIN)
    client.post("/api/daily-close", json={"date": "2024-01-01", "actual_cash": "0"})
    client.post("/api/daily-close", json={"date": "2024-01-03", "actual_cash": "0"})
    client.post("/api/daily-close", json={"date": "2024-01-05", "actual_cash": "0"})

    listed = client.get("/api/daily-close").json()["data"]
    ranged = client.get("/api/daily-close", params={"from": "2024-01-02", "to": "2024-01-04"}).json()["data"]

    assert [entry["date"] for entry in listed] == ["2024-01-05", "2024-01-03", "2024-01-01"]
    assert {entry["closed_by_name"] for entry in listed} == {"Alma Admin"}
    assert [entry["date"] for entry in ranged] == ["2024-01-03"]


def test_daily_close_is_admin_only():
    client, _, _ = build_client(daily_close_router, actor=SERVER)

    assert client.get("/api/daily-close").status_code == 403
    assert client.post("/api/daily-close", json={"date": "2024-01-01", "actual_cash": "0"}).status_code == 403


def test_aggregate_treats_non_cash_methods_as_card():
    class Row:
        def __init__(self, method, total, tip):
            self.method = method
            self.total = Decimal(total)
            self.tip = Decimal(tip)
            self.tax = Decimal("0")
            self.discount = Decimal("0")
            self.subtotal = Decimal(total) - Decimal(tip)

    totals = aggregate_payments([Row("cash", "10.10", "1.00"), Row("CARD", "20.20", "2.00")])

    assert totals.expected_cash == Decimal("10.10")
    assert totals.card_total == Decimal("20.20")
    assert totals.total_revenue == Decimal("27.30")
    assert totals.order_count == 2
