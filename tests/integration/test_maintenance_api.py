# tests/integration/test_maintenance_api.py
import io
from datetime import date, timedelta

import pytest
from openpyxl import load_workbook


@pytest.fixture
def item(client, admin_headers):
    response = client.post(
        "/maintenance/items",
        json={"item_code": "PT-0001", "product_name": "Standard Unit", "tool_number": "T-17", "condition": "good"},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


def send(client, headers, item_id, **overrides):
    body = {"maintenance_reason": "Cracked door hinge", "maintenance_priority": "high"}
    body.update(overrides)
    return client.post(f"/maintenance/items/{item_id}/send", json=body, headers=headers)


def test_duplicate_item_code(client, admin_headers, item):
    response = client.post(
        "/maintenance/items", json={"item_code": "PT-0001", "product_name": "Other"}, headers=admin_headers
    )
    assert response.status_code == 400


def test_send_to_maintenance(client, tech_headers, item):
    response = send(client, tech_headers, item["id"], expected_return_date="2000-01-01")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "maintenance"
    assert body["maintenance_priority"] == "high"
    assert body["maintenance_start_date"] == date.today().isoformat()

    again = send(client, tech_headers, item["id"])
    assert again.status_code == 400

    listed = client.get("/maintenance/in-maintenance", headers=tech_headers).json()
    assert len(listed) == 1
    assert listed[0]["overdue"] is True

    later = (date.today() + timedelta(days=5)).isoformat()
    listed = client.get("/maintenance/in-maintenance", params={"as_of": later}, headers=tech_headers).json()
    assert listed[0]["days_in_maintenance"] == 5

    assert send(client, tech_headers, 999).status_code == 404


def test_send_requires_reason(client, tech_headers, item):
    response = send(client, tech_headers, item["id"], maintenance_reason="  ")
    assert response.status_code == 400


def test_in_maintenance_search(client, admin_headers, tech_headers, item):
    other = client.post(
        "/maintenance/items", json={"item_code": "PT-0002", "product_name": "ADA Unit"}, headers=admin_headers
    ).json()
    send(client, tech_headers, item["id"])
    send(client, tech_headers, other["id"], maintenance_reason="Tank leak", maintenance_notes="Waiting on SEALANT")

    def codes(term):
        rows = client.get("/maintenance/in-maintenance", params={"search": term}, headers=tech_headers).json()
        return sorted(r["item_code"] for r in rows)

    assert codes("hinge") == ["PT-0001"]
    assert codes("sealant") == ["PT-0002"]
    assert codes("t-17") == ["PT-0001"]
    assert codes("pt-") == ["PT-0001", "PT-0002"]
    assert codes("nothing") == []


def test_update_details_keeps_condition(client, tech_headers, item):
    assert client.patch(f"/maintenance/items/{item['id']}", json={"maintenance_notes": "x"},
                        headers=tech_headers).status_code == 400

    send(client, tech_headers, item["id"])
    ok = client.patch(
        f"/maintenance/items/{item['id']}",
        json={"maintenance_notes": "Parts ordered", "maintenance_priority": "critical"},
        headers=tech_headers,
    )
    assert ok.status_code == 200
    assert ok.json()["maintenance_priority"] == "critical"

    changed = client.patch(f"/maintenance/items/{item['id']}", json={"condition": "poor"}, headers=tech_headers)
    assert changed.status_code == 400


def test_update_expected_return_date(client, tech_headers, item):
    send(client, tech_headers, item["id"], expected_return_date="2000-01-01")

    response = client.patch(
        f"/maintenance/items/{item['id']}", json={"expected_return_date": "2030-01-01"}, headers=tech_headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["expected_return_date"] == "2030-01-01"

    listed = client.get("/maintenance/in-maintenance", headers=tech_headers).json()
    assert listed[0]["expected_return_date"] == "2030-01-01"
    assert listed[0]["overdue"] is False

    blank = client.patch(f"/maintenance/items/{item['id']}", json={"maintenance_reason": " "}, headers=tech_headers)
    assert blank.status_code == 400


def test_full_maintenance_cycle(client, admin_headers, tech_headers, item):
    item_id = item["id"]
    assert client.post(f"/maintenance/items/{item_id}/updates", json={"title": "Early"},
                       headers=tech_headers).status_code == 400

    send(client, tech_headers, item_id, primary_technician="Sam")

    first = client.post(
        f"/maintenance/items/{item_id}/updates",
        json={"update_type": "parts", "title": "Replaced hinge", "labor_hours": 1.5,
              "labor_cost": "45.00", "parts_cost": "30.00", "parts_used": "hinge, screws,, "},
        headers=tech_headers,
    )
    assert first.status_code == 200, first.text
    assert float(first.json()["cost_amount"]) == 75.0
    assert first.json()["parts_used"] == ["hinge", "screws"]
    assert first.json()["session_id"] is not None

    client.post(
        f"/maintenance/items/{item_id}/updates",
        json={"update_type": "labor", "title": "Realigned door", "labor_hours": 0.5, "labor_cost": "15"},
        headers=tech_headers,
    )
    updates = client.get(f"/maintenance/items/{item_id}/updates", headers=tech_headers).json()
    assert len(updates) == 2

    returned = client.post("/maintenance/return", json={"item_ids": [item_id], "session_summary": "Door fixed"},
                           headers=tech_headers)
    assert returned.status_code == 200
    back = returned.json()[0]
    assert back["status"] == "available"
    assert back["maintenance_reason"] is None
    assert back["maintenance_start_date"] is None

    history = client.get("/maintenance/history", params={"item_id": item_id}, headers=tech_headers).json()
    assert history["stats"]["total_sessions"] == 1
    assert float(history["stats"]["total_cost"]) == 90.0
    assert history["stats"]["total_labor_hours"] == 2.0
    session = history["sessions"][0]
    assert session["session_number"] == 1
    assert session["status"] == "completed"
    assert session["session_summary"] == "Door fixed"
    assert session["primary_technician"] == "Sam"

    # A second visit opens session 2
    send(client, tech_headers, item_id)
    client.post("/maintenance/return", json={"item_ids": [item_id]}, headers=tech_headers)
    history = client.get("/maintenance/history", params={"item_id": item_id}, headers=tech_headers).json()
    assert sorted(s["session_number"] for s in history["sessions"]) == [1, 2]

    assert client.get("/maintenance/history/xlsx", headers=tech_headers).status_code == 403
    xlsx = client.get("/maintenance/history/xlsx", headers=admin_headers)
    assert xlsx.status_code == 200
    ws = load_workbook(io.BytesIO(xlsx.content)).active
    assert ws["A1"].value == "Item"
    assert {ws["A2"].value, ws["A3"].value} == {"PT-0001"}


def test_return_validates_whole_batch(client, admin_headers, tech_headers, item):
    idle = client.post(
        "/maintenance/items", json={"item_code": "PT-0003", "product_name": "Sink"}, headers=admin_headers
    ).json()
    send(client, tech_headers, item["id"])

    assert client.post("/maintenance/return", json={"item_ids": []}, headers=tech_headers).status_code == 400
    assert client.post("/maintenance/return", json={"item_ids": [item["id"], 999]},
                       headers=tech_headers).status_code == 404
    mixed = client.post("/maintenance/return", json={"item_ids": [item["id"], idle["id"]]}, headers=tech_headers)
    assert mixed.status_code == 400

    still = client.get("/maintenance/items", params={"status": "maintenance"}, headers=tech_headers).json()
    assert [i["item_code"] for i in still] == ["PT-0001"]


def test_delete_update(client, tech_headers, item):
    send(client, tech_headers, item["id"])
    update = client.post(f"/maintenance/items/{item['id']}/updates", json={"title": "Note"},
                         headers=tech_headers).json()

    assert client.delete(f"/maintenance/updates/{update['id']}", headers=tech_headers).status_code == 200
    assert client.get(f"/maintenance/items/{item['id']}/updates", headers=tech_headers).json() == []
    assert client.delete(f"/maintenance/updates/{update['id']}", headers=tech_headers).status_code == 404


def test_photos(client, tech_headers, item, storage_root):
    response = client.post(
        f"/maintenance/items/{item['id']}/photos",
        files={"file": ("hinge.PNG", b"\x89PNG fake", "image/png")},
        data={"caption": "Before", "photo_type": "before"},
        headers=tech_headers,
    )
    assert response.status_code == 200, response.text
    photo = response.json()
    assert photo["storage_path"].startswith(f"{item['id']}/")
    assert photo["storage_path"].endswith(".png")
    assert photo["photo_url"] == f"/storage/unit-photos/{photo['storage_path']}"
    stored = storage_root / "unit-photos" / photo["storage_path"]
    assert stored.exists()

    empty = client.post(f"/maintenance/items/{item['id']}/photos", files={"file": ("a.jpg", b"", "image/jpeg")},
                        headers=tech_headers)
    assert empty.status_code == 400
    missing = client.post("/maintenance/items/999/photos", files={"file": ("a.jpg", b"x", "image/jpeg")},
                          headers=tech_headers)
    assert missing.status_code == 404

    assert len(client.get(f"/maintenance/items/{item['id']}/photos", headers=tech_headers).json()) == 1
    assert client.delete(f"/maintenance/photos/{photo['id']}", headers=tech_headers).status_code == 200
    assert not stored.exists()
    assert client.delete(f"/maintenance/photos/{photo['id']}", headers=tech_headers).status_code == 404
