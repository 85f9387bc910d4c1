# tests/integration/test_spill_kits_api.py
from datetime import date, timedelta

import pytest


@pytest.fixture
def catalogue(client, admin_headers):
    items = [
        {"item_name": "Absorbent Pads", "item_type": "Absorbents", "current_stock": 40,
         "minimum_threshold": 10, "required_quantity": 10, "is_critical": True},
        {"item_name": "Nitrile Gloves", "item_type": "PPE", "current_stock": 2,
         "minimum_threshold": 5, "required_quantity": 2},
        {"item_name": "Drain Cover", "item_type": "Containment", "current_stock": 6,
         "minimum_threshold": 1, "expiration_date": "2000-01-01"},
    ]
    created = []
    for item in items:
        response = client.post("/spill-kits/inventory", json=item, headers=admin_headers)
        assert response.status_code == 200, response.text
        created.append(response.json())
    return {item["item_name"]: str(item["id"]) for item in created}


def record(client, headers, vehicle_id, conditions):
    response = client.post(
        "/spill-kits/checks",
        json={"vehicle_id": vehicle_id, "item_conditions": conditions, "weather_conditions": "Clear"},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_compliant_check_enriches_conditions(client, tech_headers, vehicle, catalogue):
    check = record(client, tech_headers, vehicle["id"], {
        catalogue["Absorbent Pads"]: {"status": "present", "expiration_date": "2100-01-01"},
        catalogue["Nitrile Gloves"]: {"status": "present"},
    })

    assert check["completion_status"] == "compliant"
    assert check["has_kit"] is True
    assert check["missing_items"] == []
    pads = check["item_conditions"][catalogue["Absorbent Pads"]]
    assert pads["item_name"] == "Absorbent Pads"
    assert pads["item_category"] == "Absorbents"
    assert check["next_check_due"] == (date.fromisoformat(check["checked_at"][:10]) + timedelta(days=30)).isoformat()


@pytest.mark.parametrize("gloves, pads, expected", [
    ("low", "present", "warning"),
    ("missing", "present", "partial"),
    ("expired", "present", "partial"),
    ("present", "missing", "failed"),
])
def test_check_status_levels(client, tech_headers, vehicle, catalogue, gloves, pads, expected):
    check = record(client, tech_headers, vehicle["id"], {
        catalogue["Absorbent Pads"]: {"status": pads},
        catalogue["Nitrile Gloves"]: {"status": gloves},
    })
    assert check["completion_status"] == expected
    assert check["has_kit"] is (expected != "failed")


def test_missing_items_carry_required_quantity(client, tech_headers, vehicle, catalogue):
    check = record(client, tech_headers, vehicle["id"], {
        catalogue["Absorbent Pads"]: {"status": "missing"},
    })
    assert check["missing_items"] == [
        {"item_id": catalogue["Absorbent Pads"], "name": "Absorbent Pads", "quantity": 10}
    ]


def test_check_for_unknown_vehicle(client, tech_headers):
    response = client.post("/spill-kits/checks", json={"vehicle_id": 99, "item_conditions": {}}, headers=tech_headers)
    assert response.status_code == 400


def test_bad_condition_status_rejected(client, tech_headers, vehicle):
    response = client.post(
        "/spill-kits/checks",
        json={"vehicle_id": vehicle["id"], "item_conditions": {"1": {"status": "broken"}}},
        headers=tech_headers,
    )
    assert response.status_code == 422


def test_overdue_checks(client, admin_headers, tech_headers, vehicle, catalogue):
    client.post("/vehicles/", json={"license_plate": "IDLE 1", "status": "inactive"}, headers=admin_headers)

    never = client.get("/spill-kits/checks/overdue", headers=tech_headers).json()
    assert [(o["license_plate"], o["days_overdue"]) for o in never] == [("ABC 123", None)]

    record(client, tech_headers, vehicle["id"], {catalogue["Absorbent Pads"]: {"status": "present"}})
    assert client.get("/spill-kits/checks/overdue", headers=tech_headers).json() == []

    later = (date.today() + timedelta(days=45)).isoformat()
    overdue = client.get("/spill-kits/checks/overdue", params={"as_of": later}, headers=tech_headers).json()
    assert overdue[0]["days_overdue"] >= 14


def test_checks_listed_newest_first(client, tech_headers, vehicle, catalogue):
    first = record(client, tech_headers, vehicle["id"], {catalogue["Nitrile Gloves"]: {"status": "low"}})
    second = record(client, tech_headers, vehicle["id"], {catalogue["Nitrile Gloves"]: {"status": "present"}})

    checks = client.get("/spill-kits/checks", params={"vehicle_id": vehicle["id"]}, headers=tech_headers).json()
    assert {c["id"] for c in checks} == {first["id"], second["id"]}


def test_inventory_stock_and_expiration(client, admin_headers, tech_headers, catalogue):
    gloves = catalogue["Nitrile Gloves"]

    low = client.get("/spill-kits/inventory/low-stock", headers=tech_headers).json()
    assert [i["item_name"] for i in low] == ["Nitrile Gloves"]

    restocked = client.post(f"/spill-kits/inventory/{gloves}/adjust", json={"delta": 20, "reason": "order"},
                            headers=tech_headers)
    assert restocked.json()["current_stock"] == 22
    assert client.get("/spill-kits/inventory/low-stock", headers=tech_headers).json() == []

    clamped = client.post(f"/spill-kits/inventory/{gloves}/adjust", json={"delta": -100}, headers=tech_headers)
    assert clamped.json()["current_stock"] == 0

    assert client.post("/spill-kits/inventory/999/adjust", json={"delta": 1}, headers=tech_headers).status_code == 404

    expiration = client.get("/spill-kits/inventory/expiration", headers=tech_headers).json()
    assert [i["item_name"] for i in expiration["expired"]] == ["Drain Cover"]
    assert expiration["expiring_soon"] == []


def test_inventory_update_requires_office(client, admin_headers, tech_headers, catalogue):
    body = {"item_name": "Absorbent Pads XL", "required_quantity": 12, "is_critical": True}
    pads = catalogue["Absorbent Pads"]

    assert client.put(f"/spill-kits/inventory/{pads}", json=body, headers=tech_headers).status_code == 403
    updated = client.put(f"/spill-kits/inventory/{pads}", json=body, headers=admin_headers).json()
    assert updated["item_name"] == "Absorbent Pads XL"
    assert client.put("/spill-kits/inventory/999", json=body, headers=admin_headers).status_code == 404

    bad = client.post("/spill-kits/inventory", json={"item_name": "X", "current_stock": -1}, headers=admin_headers)
    assert bad.status_code == 422


def test_expiration_report_counts_only_kits_present(client, tech_headers, vehicle, catalogue):
    record(client, tech_headers, vehicle["id"], {
        catalogue["Absorbent Pads"]: {"status": "present", "expiration_date": "2000-01-01"},
        catalogue["Nitrile Gloves"]: {"status": "present", "expiration_date": "2100-01-01"},
    })
    # failed kit: excluded from the analytics
    record(client, tech_headers, vehicle["id"], {
        catalogue["Absorbent Pads"]: {"status": "missing", "expiration_date": "2000-01-01"},
    })

    report = client.get("/spill-kits/reports/expiration", headers=tech_headers).json()
    assert report["summary"] == {"expired": 1, "expiring_soon": 0, "ok": 1, "inspections": 1}
    assert report["replacements"] == [{"name": "Absorbent Pads", "count": 1}]
    assert {c["name"] for c in report["categories"]} == {"Absorbents", "PPE"}
    start = date.fromisoformat(report["period"]["start"])
    end = date.fromisoformat(report["period"]["end"])
    assert (end - start).days == 180

    csv = client.get("/spill-kits/reports/expiration/csv", headers=tech_headers)
    assert csv.status_code == 200
    assert "Total Inspections,1" in csv.text

    inverted = client.get(
        "/spill-kits/reports/expiration", params={"start": "2025-02-01", "end": "2025-01-01"}, headers=tech_headers
    )
    assert inverted.status_code == 400


def _incident(client, headers, vehicle_id, **overrides):
    body = {
        "vehicle_id": vehicle_id,
        "spill_type": "Hydraulic fluid",
        "location_description": "Depot yard bay 3",
        "cause_description": "Burst hose",
        "severity": "major",
        "cleanup_actions": ["Absorbent applied"],
    }
    body.update(overrides)
    return client.post("/spill-kits/incidents", json=body, headers=headers)


def test_incident_lifecycle(client, tech_headers, vehicle):
    incident = _incident(client, tech_headers, vehicle["id"]).json()
    assert incident["status"] == "open"
    assert incident["authorities_notified"] is False

    url = f"/spill-kits/incidents/{incident['id']}/status"
    assert client.patch(url, json={"status": "investigating"}, headers=tech_headers).json()["status"] == "investigating"
    assert client.patch(url, json={"status": "open"}, headers=tech_headers).status_code == 400
    assert client.patch(url, json={"status": "closed"}, headers=tech_headers).json()["status"] == "closed"
    assert client.patch(url, json={"status": "investigating"}, headers=tech_headers).status_code == 400

    assert client.patch("/spill-kits/incidents/999/status", json={"status": "closed"},
                        headers=tech_headers).status_code == 404


def test_incident_requires_text_fields(client, tech_headers, vehicle):
    blank = _incident(client, tech_headers, vehicle["id"], cause_description="   ")
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Cause is required"

    assert _incident(client, tech_headers, 999).status_code == 400


def test_incident_filters(client, tech_headers, vehicle):
    _incident(client, tech_headers, vehicle["id"])
    _incident(client, tech_headers, vehicle["id"], severity="minor")

    major = client.get("/spill-kits/incidents", params={"severity": "major"}, headers=tech_headers).json()
    assert len(major) == 1
    assert len(client.get("/spill-kits/incidents", params={"status": "open"}, headers=tech_headers).json()) == 2


def test_decon_follow_up_only_for_failed_inspections(client, tech_headers, vehicle):
    incident = _incident(client, tech_headers, vehicle["id"]).json()
    base = {
        "vehicle_id": vehicle["id"],
        "incident_id": incident["id"],
        "vehicle_areas": ["Undercarriage"],
        "ppe_items": ["Gloves", "Goggles"],
        "decon_methods": ["Pressure wash"],
        "inspector_signature": "J. Smith",
        "follow_up_required": True,
    }

    passed = client.post("/spill-kits/decon", json={**base, "post_inspection_status": "pass"}, headers=tech_headers)
    assert passed.status_code == 200
    assert passed.json()["follow_up_required"] is False
    assert passed.json()["inspector_role"] == "tech"

    failed = client.post("/spill-kits/decon", json={**base, "post_inspection_status": "fail"}, headers=tech_headers)
    assert failed.json()["follow_up_required"] is True

    orphan = client.post(
        "/spill-kits/decon", json={**base, "incident_id": 999, "post_inspection_status": "pass"}, headers=tech_headers
    )
    assert orphan.status_code == 400

    unsigned = client.post(
        "/spill-kits/decon", json={**base, "inspector_signature": " ", "post_inspection_status": "pass"},
        headers=tech_headers,
    )
    assert unsigned.status_code == 400

    logs = client.get("/spill-kits/decon", params={"incident_id": incident["id"]}, headers=tech_headers).json()
    assert len(logs) == 2
