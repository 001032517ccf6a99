from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from refurb import models, workflow
from refurb.errors import ValidationError
from refurb.workflow import STOCK_WRITEBACK_WARNING


def _stock(client, imei="356789012345678", qty=2, price=100.0):
    r = client.post(
        "/api/stock",
        json={"brand": "Apple", "model": "iPhone 11", "imei": imei, "stock_quantity": qty, "purchase_price": price},
    )
    assert r.status_code == 201, r.text
    return r.json()


def _device(client, imei="356789012345678"):
    r = client.post("/api/devices", json={"imei": imei, "brand": "Samsung", "model": "A52"})
    assert r.status_code == 201, r.text
    return r.json()


def _defects(client, device_id, types=("screen",), severity="medium", technician=None, description=""):
    r = client.post(
        "/api/defects",
        json={
            "device_id": device_id,
            "defect_types": list(types),
            "severity": severity,
            "technician": technician,
            "description": description,
        },
    )
    assert r.status_code == 201, r.text
    return r.json()


def _send(client, device_id, notes="screen swap"):
    r = client.post("/api/service-requests", json={"device_id": device_id, "notes": notes})
    assert r.status_code == 201, r.text
    return r.json()["service_request"]


def test_full_lifecycle(admin_client, db):
    stock = _stock(admin_client)
    r = admin_client.post(f"/api/stock/{stock['id']}/release")
    assert r.status_code == 201
    device = r.json()["device"]
    assert device["status"] == "pending_inspection"
    assert device["imei"] == stock["imei"]
    assert device["next_actions"] == ["record_defects"]

    body = _defects(admin_client, device["id"], types=("screen", "battery", "screen"), severity="high", technician="Hasan")
    assert len(body["defects"]) == 2
    assert body["device"]["status"] == "inspected"

    sr = _send(admin_client, device["id"])
    assert sr["status"] == "sent"
    assert admin_client.get(f"/api/devices/{device['id']}").json()["status"] == "in_service"

    r = admin_client.post(f"/api/service-requests/{sr['id']}/start")
    assert r.json()["service_request"]["status"] == "in_progress"

    r = admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 250})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["warning"] is None
    assert body["device"]["status"] == "repaired"
    assert body["service_request"]["service_cost"] == 250
    assert body["service_request"]["completed_at"] is not None

    db.expire_all()
    row = db.query(models.DeviceStock).filter(models.DeviceStock.id == stock["id"]).one()
    assert row.service_cost == 250

    r = admin_client.post(f"/api/sales/{device['id']}/mark")
    assert r.status_code == 200
    assert r.json()["device"]["status"] == "completed"

    detail = admin_client.get(f"/api/devices/{device['id']}").json()
    assert detail["severity"] == "high"
    assert {d["defect_type"] for d in detail["defects"]} == {"screen", "battery"}
    assert detail["service_request"]["status"] == "completed"


def test_stock_writeback_covers_every_row_with_imei(admin_client, db):
    a = _stock(admin_client, imei="111")
    b = _stock(admin_client, imei="111", qty=1, price=50)
    other = _stock(admin_client, imei="222")
    device = _device(admin_client, imei="111")
    _defects(admin_client, device["id"])
    sr = _send(admin_client, device["id"])
    admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 80.5})

    db.expire_all()
    costs = {s.id: s.service_cost for s in db.query(models.DeviceStock).all()}
    assert costs[a["id"]] == 80.5
    assert costs[b["id"]] == 80.5
    assert costs[other["id"]] is None


def test_complete_with_negative_cost_is_rejected(admin_client, db):
    device = _device(admin_client)
    _defects(admin_client, device["id"])
    sr = _send(admin_client, device["id"])

    r = admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": -5})
    assert r.status_code == 422

    db.expire_all()
    stored = db.query(models.ServiceRequest).filter(models.ServiceRequest.id == sr["id"]).one()
    assert stored.status == "sent"
    assert admin_client.get(f"/api/devices/{device['id']}").json()["status"] == "in_service"


@pytest.mark.parametrize("cost", ["inf", "-inf", "nan", "Infinity"])
def test_complete_with_non_finite_cost_is_rejected(admin_client, db, cost):
    stock = _stock(admin_client)
    device = _device(admin_client, imei=stock["imei"])
    _defects(admin_client, device["id"])
    sr = _send(admin_client, device["id"])

    r = admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": cost})
    assert r.status_code == 422

    db.expire_all()
    stored = db.query(models.ServiceRequest).filter(models.ServiceRequest.id == sr["id"]).one()
    assert stored.status == "sent"
    assert stored.service_cost == 0
    assert db.query(models.DeviceStock).filter(models.DeviceStock.id == stock["id"]).one().service_cost is None
    assert admin_client.get(f"/api/devices/{device['id']}").json()["status"] == "in_service"
    assert admin_client.get("/api/reports/service-fees").status_code == 200


def test_non_finite_cost_is_rejected_before_touching_store():
    store = MagicMock()
    for cost in (float("inf"), float("-inf"), float("nan")):
        with pytest.raises(ValidationError):
            workflow.complete_service(store, "sr-1", cost)
    store.query.assert_not_called()
    store.commit.assert_not_called()


def test_completing_twice_is_rejected(admin_client):
    device = _device(admin_client)
    _defects(admin_client, device["id"])
    sr = _send(admin_client, device["id"])
    assert admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 10}).status_code == 200
    assert admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 10}).status_code == 422


def test_stock_writeback_failure_is_a_warning(admin_client, monkeypatch):
    device = _device(admin_client)
    _defects(admin_client, device["id"])
    sr = _send(admin_client, device["id"])

    def boom(db, imei, cost):
        raise SQLAlchemyError("stock table unavailable")

    monkeypatch.setattr(workflow, "writeback_stock_cost", boom)
    r = admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 40})
    assert r.status_code == 200
    assert r.json()["warning"] == STOCK_WRITEBACK_WARNING
    assert r.json()["device"]["status"] == "repaired"


def test_cannot_skip_inspection(admin_client):
    device = _device(admin_client)
    r = admin_client.post("/api/service-requests", json={"device_id": device["id"]})
    assert r.status_code == 409
    assert admin_client.get("/api/service-requests", params={"view": "all"}).json() == []


def test_cannot_sell_before_repair(admin_client):
    device = _device(admin_client)
    _defects(admin_client, device["id"])
    assert admin_client.post(f"/api/sales/{device['id']}/mark").status_code == 409


def test_defect_batch_validation(admin_client):
    device = _device(admin_client)
    r = admin_client.post("/api/defects", json={"device_id": device["id"], "defect_types": []})
    assert r.status_code == 422
    r = admin_client.post("/api/defects", json={"device_id": device["id"], "defect_types": ["keyboard"]})
    assert r.status_code == 422
    r = admin_client.post(
        "/api/defects", json={"device_id": device["id"], "defect_types": ["screen"], "technician": "Nobody"},
    )
    assert r.status_code == 422
    assert admin_client.get(f"/api/devices/{device['id']}").json()["status"] == "pending_inspection"


def test_unknown_device_is_not_found(admin_client):
    assert admin_client.get("/api/devices/does-not-exist").status_code == 404
    r = admin_client.post("/api/defects", json={"device_id": "does-not-exist", "defect_types": ["screen"]})
    assert r.status_code == 404


def test_device_search_and_status_filter(admin_client):
    a = _device(admin_client, imei="490154203237518")
    _device(admin_client, imei="352099001761481")
    _defects(admin_client, a["id"])

    rows = admin_client.get("/api/devices", params={"q": "4901"}).json()
    assert [d["imei"] for d in rows] == ["490154203237518"]
    rows = admin_client.get("/api/devices", params={"status": "inspected"}).json()
    assert [d["id"] for d in rows] == [a["id"]]
    assert len(admin_client.get("/api/devices", params={"status": "all"}).json()) == 2
    assert admin_client.get("/api/devices", params={"status": "lost"}).status_code == 422


def test_device_intake_requires_fields(admin_client):
    r = admin_client.post("/api/devices", json={"imei": "  ", "brand": "Nokia", "model": "3310"})
    assert r.status_code == 422


def test_delete_device_removes_children(admin_client, db):
    device = _device(admin_client)
    _defects(admin_client, device["id"], types=("screen", "camera"))
    assert admin_client.delete(f"/api/devices/{device['id']}").status_code == 200
    db.expire_all()
    assert db.query(models.Defect).count() == 0


def test_delete_defect(admin_client):
    device = _device(admin_client)
    body = _defects(admin_client, device["id"], types=("screen", "camera"))
    defect_id = body["defects"][0]["id"]
    assert admin_client.delete(f"/api/defects/{defect_id}").status_code == 200
    assert len(admin_client.get("/api/defects", params={"device_id": device["id"]}).json()) == 1
    assert admin_client.delete(f"/api/defects/{defect_id}").status_code == 404


def test_stock_totals_and_search(admin_client):
    _stock(admin_client, imei="111", qty=2, price=100)
    _stock(admin_client, imei="222", qty=1, price=50)
    body = admin_client.get("/api/stock", params={"q": "222"}).json()
    assert body["count"] == 1
    assert body["total_stock_value"] == 250


def test_stock_rejects_bad_quantity(admin_client):
    r = admin_client.post(
        "/api/stock", json={"brand": "Apple", "model": "X", "imei": "1", "stock_quantity": 0, "purchase_price": 10},
    )
    assert r.status_code == 422


def test_service_views_and_costs(admin_client):
    d1 = _device(admin_client, imei="111")
    d2 = _device(admin_client, imei="222")
    d3 = _device(admin_client, imei="333")
    for d, sev in ((d1, "low"), (d2, "high"), (d3, "medium")):
        _defects(admin_client, d["id"], severity=sev)

    sendable = admin_client.get("/api/service/devices").json()
    assert {d["imei"]: d["severity"] for d in sendable} == {"111": "low", "222": "high", "333": "medium"}

    sr1 = _send(admin_client, d1["id"])
    sr2 = _send(admin_client, d2["id"])
    sr3 = _send(admin_client, d3["id"])
    admin_client.post(f"/api/service-requests/{sr1['id']}/complete", json={"service_cost": 100})
    admin_client.post(f"/api/service-requests/{sr2['id']}/complete", json={"service_cost": 0})

    pending = admin_client.get("/api/service-requests").json()
    assert [p["id"] for p in pending] == [sr3["id"]]
    assert pending[0]["severity"] == "medium"
    completed = admin_client.get("/api/service-requests", params={"view": "completed"}).json()
    assert {c["id"] for c in completed} == {sr1["id"], sr2["id"]}
    assert admin_client.get("/api/service-requests", params={"view": "bogus"}).status_code == 422

    costs = admin_client.get("/api/service-costs").json()
    assert costs["count"] == 1
    assert costs["total_cost"] == 100
    assert costs["average_cost"] == 100


def test_service_costs_empty(admin_client):
    costs = admin_client.get("/api/service-costs").json()
    assert costs == {"items": [], "count": 0, "total_cost": 0, "average_cost": 0}


def test_sales_list(admin_client):
    d = _device(admin_client)
    _defects(admin_client, d["id"])
    sr = _send(admin_client, d["id"])
    admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 75})

    rows = admin_client.get("/api/sales").json()
    assert len(rows) == 1
    assert rows[0]["service_cost"] == 75
    assert rows[0]["label_url"] == f"/labels/devices/{d['id']}/sale"
    assert admin_client.get("/api/sales", params={"q": "nomatch"}).json() == []


def test_dashboard_summary_and_technicians(admin_client):
    d = _device(admin_client)
    _defects(admin_client, d["id"], types=("screen", "battery"), technician="Hasan")
    d2 = _device(admin_client, imei="999")
    _defects(admin_client, d2["id"], description="Teknisyen: Mehmet | ekran")
    sr = _send(admin_client, d["id"])
    admin_client.post(f"/api/service-requests/{sr['id']}/complete", json={"service_cost": 10})

    summary = admin_client.get("/api/dashboard/summary").json()
    assert summary["totals"] == {"devices": 2, "defects": 3, "in_service": 0, "completed": 0}
    assert summary["devices_by_status"]["repaired"] == 1
    assert len(summary["recent_devices"]) == 2

    rows = admin_client.get("/api/dashboard/technicians").json()
    by_name = {r["technician"]: r for r in rows}
    assert by_name["Hasan"]["assigned_defects"] == 2
    assert by_name["Hasan"]["service_requests"]["completed"] == 1
    assert by_name["Hasan"]["completion_rate"] == pytest.approx(33.33)
    assert by_name["Mehmet"]["assigned_defects"] == 1
    assert by_name["Emre"]["efficiency_score"] == 60
    scores = [r["efficiency_score"] for r in rows]
    assert scores == sorted(scores, reverse=True)
