# tests/integration/test_auth_vehicles.py
PASSWORD = "secret123"


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["msg"] == "FleetComply API is running"


def test_register_login_and_me(client):
    response = client.post("/auth/register", json={"username": "dana", "password": PASSWORD, "role": "Office"})
    assert response.status_code == 200
    assert response.json()["role"] == "office"

    token = client.post("/auth/login", data={"username": "dana", "password": PASSWORD}).json()
    assert token["token_type"] == "bearer"
    assert token["role"] == "office"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "dana"


def test_register_rejects_unknown_role_and_duplicates(client):
    bad = client.post("/auth/register", json={"username": "x", "password": PASSWORD, "role": "owner"})
    assert bad.status_code == 400

    client.post("/auth/register", json={"username": "y", "password": PASSWORD})
    dup = client.post("/auth/register", json={"username": "y", "password": PASSWORD})
    assert dup.status_code == 400


def test_wrong_password_and_missing_token(client):
    client.post("/auth/register", json={"username": "z", "password": PASSWORD})
    assert client.post("/auth/login", data={"username": "z", "password": "nope"}).status_code == 401
    assert client.get("/vehicles/").status_code == 401
    assert client.get("/vehicles/", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_admin_only_user_list(client, admin_headers, tech_headers):
    assert client.get("/auth/users", headers=tech_headers).status_code == 403
    users = client.get("/auth/users", headers=admin_headers).json()
    assert [u["username"] for u in users] == ["admin", "tech"]


def test_vehicle_plate_normalized_and_unique(client, admin_headers, vehicle):
    assert vehicle["license_plate"] == "ABC 123"
    assert vehicle["status"] == "active"

    dup = client.post("/vehicles/", json={"license_plate": "ABC  123"}, headers=admin_headers)
    assert dup.status_code == 400

    bad = client.post("/vehicles/", json={"license_plate": "$$$"}, headers=admin_headers)
    assert bad.status_code == 400


def test_tech_cannot_create_vehicle(client, tech_headers):
    response = client.post("/vehicles/", json={"license_plate": "T1"}, headers=tech_headers)
    assert response.status_code == 403


def test_vehicle_update_and_status_filter(client, admin_headers, vehicle):
    client.post("/vehicles/", json={"license_plate": "ZZ 9"}, headers=admin_headers)

    patched = client.patch(f"/vehicles/{vehicle['id']}", json={"status": "maintenance"}, headers=admin_headers)
    assert patched.status_code == 200
    assert patched.json()["status"] == "maintenance"

    active = client.get("/vehicles/", params={"status": "active"}, headers=admin_headers).json()
    assert [v["license_plate"] for v in active] == ["ZZ 9"]

    assert client.get("/vehicles/999", headers=admin_headers).status_code == 404


def test_privileged_roles_need_admin_once_one_exists(client, admin_headers, tech_headers):
    office = {"username": "olive", "password": PASSWORD, "role": "office"}
    assert client.post("/auth/register", json=office).status_code == 403
    assert client.post("/auth/register", json={**office, "role": "admin"}, headers=tech_headers).status_code == 403

    created = client.post("/auth/register", json=office, headers=admin_headers)
    assert created.status_code == 200
    assert created.json()["role"] == "office"

    self_service = client.post("/auth/register", json={"username": "terry", "password": PASSWORD})
    assert self_service.json()["role"] == "tech"
