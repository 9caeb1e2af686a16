"""Expense endpoints end to end through the HTTP layer."""
from datetime import timedelta

from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models import AuditLog, Expense
from app.services.expense_service import utc_today

COFFEE = {"description": "Coffee", "amount": 150, "date": "2024-01-05"}


def test_requires_authentication(client):
    assert client.get("/api/expense").status_code == 401
    resp = client.get("/api/expense", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_create_list_delete_roundtrip_with_audit(client, auth_headers):
    created = client.post("/api/expense", json=COFFEE, headers=auth_headers)
    assert created.status_code == 201
    expense = created.json()
    assert expense["description"] == "Coffee"
    assert expense["amount"] == 150
    assert expense["date"] == "2024-01-05"

    listed = client.get("/api/expense", headers=auth_headers).json()
    assert [e["id"] for e in listed] == [expense["id"]]

    logs = client.get("/api/audit-logs", headers=auth_headers).json()
    assert len(logs) == 1
    assert logs[0]["action"] == "create"
    assert logs[0]["changes"]["new_value"] == {"description": "Coffee", "amount": 150, "date": "2024-01-05"}

    deleted = client.delete(f"/api/expense/{expense['id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Expense deleted successfully"}

    assert client.get("/api/expense", headers=auth_headers).json() == []
    assert client.get(f"/api/expense/{expense['id']}", headers=auth_headers).status_code == 404

    logs = client.get("/api/audit-logs", headers=auth_headers).json()
    assert [log["action"] for log in logs] == ["delete", "create"]
    assert logs[0]["expense_id"] == expense["id"]
    assert logs[0]["changes"] == {
        "field": "all",
        "old_value": {"description": "Coffee", "amount": 150, "date": "2024-01-05"},
        "new_value": None,
    }


def test_partial_update_audits_only_changed_field(client, auth_headers):
    expense = client.post(
        "/api/expense", json={**COFFEE, "description": "A"}, headers=auth_headers
    ).json()

    resp = client.put(
        f"/api/expense/{expense['id']}",
        json={"description": "B", "amount": 150},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["description"] == "B"

    updates = client.get("/api/audit-logs?action=update", headers=auth_headers).json()
    assert len(updates) == 1
    assert updates[0]["changes"] == {"field": "description", "old_value": "A", "new_value": "B"}


def test_validation_failures(client, auth_headers):
    for amount in (0, -5):
        resp = client.post("/api/expense", json={**COFFEE, "amount": amount}, headers=auth_headers)
        assert resp.status_code == 422
    resp = client.post("/api/expense", json={**COFFEE, "description": "   "}, headers=auth_headers)
    assert resp.status_code == 422
    assert client.get("/api/audit-logs", headers=auth_headers).json() == []


def test_cross_owner_isolation(client, auth_headers, other_auth_headers):
    expense = client.post("/api/expense", json=COFFEE, headers=auth_headers).json()
    url = f"/api/expense/{expense['id']}"

    assert client.get("/api/expense", headers=other_auth_headers).json() == []
    assert client.get(url, headers=other_auth_headers).status_code == 404
    assert client.put(url, json={"amount": 1}, headers=other_auth_headers).status_code == 404
    assert client.delete(url, headers=other_auth_headers).status_code == 404

    assert client.get(url, headers=auth_headers).json()["amount"] == 150
    assert client.get("/api/audit-logs", headers=other_auth_headers).json() == []


def test_unknown_expense_is_404(client, auth_headers):
    resp = client.put("/api/expense/4242", json={"amount": 3}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Expense not found"}


def test_daily_summary_has_fixed_window(client, auth_headers):
    client.post("/api/expense", json={"description": "Lunch", "amount": 80}, headers=auth_headers)
    client.post("/api/expense", json={"description": "Snack", "amount": 20}, headers=auth_headers)

    summary = client.get("/api/expense/summary/daily", headers=auth_headers).json()
    assert len(summary) == 7
    assert summary[utc_today().isoformat()] == 100

    assert len(client.get("/api/expense/summary/daily?days=30", headers=auth_headers).json()) == 30
    assert client.get("/api/expense/summary/daily?days=0", headers=auth_headers).status_code == 422


def test_null_update_fields_are_rejected(client, auth_headers):
    expense = client.post("/api/expense", json=COFFEE, headers=auth_headers).json()
    url = f"/api/expense/{expense['id']}"

    for body in ({"description": None}, {"amount": None}, {"date": None}):
        assert client.put(url, json=body, headers=auth_headers).status_code == 422

    assert client.get(url, headers=auth_headers).json()["description"] == "Coffee"
    assert client.get("/api/audit-logs?action=update", headers=auth_headers).json() == []


def test_audit_logs_filtered_by_day_range(client, auth_headers):
    client.post("/api/expense", json=COFFEE, headers=auth_headers)
    today = utc_today()
    tomorrow = today + timedelta(days=1)

    resp = client.get(f"/api/audit-logs?from={today}&to={today}", headers=auth_headers)
    assert resp.status_code == 200
    assert [log["action"] for log in resp.json()] == ["create"]

    resp = client.get(f"/api/audit-logs?from={tomorrow}", headers=auth_headers)
    assert resp.json() == []

    resp = client.get("/api/audit-logs?from=2024-02-01&to=2024-01-01", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"detail": "'from' must not be after 'to'"}


def test_store_failure_returns_503_without_audit(client, auth_headers, db_session):
    def reject_expense_rows(session, flush_context, instances):
        if any(isinstance(obj, Expense) for obj in session.new):
            raise OperationalError("INSERT INTO expense", {}, Exception("connection refused"))

    event.listen(Session, "before_flush", reject_expense_rows)
    try:
        resp = client.post("/api/expense", json=COFFEE, headers=auth_headers)
    finally:
        event.remove(Session, "before_flush", reject_expense_rows)

    assert resp.status_code == 503
    assert resp.json() == {"detail": "Storage unavailable"}
    assert db_session.query(Expense).count() == 0
    assert db_session.query(AuditLog).count() == 0
