# tests/conftest.py
import asyncio
import os
import tempfile

import pytest

# Settings are read at import time; point them somewhere disposable first
_TMP = tempfile.mkdtemp(prefix="fleetcomply-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/default.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TMP, "storage")
os.environ["SECRET_KEY"] = "test-secret"

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from fleetcomply.core.config import settings
from fleetcomply.core.dependencies import get_db, init_models
from fleetcomply.main import app

PASSWORD = "secret123"


@pytest.fixture
def storage_root(tmp_path, monkeypatch):
    root = tmp_path / "storage"
    monkeypatch.setattr(settings, "STORAGE_ROOT", str(root))
    return root


@pytest.fixture
def client(tmp_path, storage_root):
    """Test client bound to a fresh SQLite file per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)
    asyncio.run(init_models(engine))
    TestSession = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def login(client, username, role):
    client.post("/auth/register", json={"username": username, "password": PASSWORD, "role": role})
    response = client.post("/auth/login", data={"username": username, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "admin", "admin")


@pytest.fixture
def tech_headers(client):
    return login(client, "tech", "tech")


@pytest.fixture
def vehicle(client, admin_headers):
    response = client.post(
        "/vehicles/",
        json={"license_plate": "abc 123", "vehicle_type": "Vacuum Truck", "make": "Isuzu"},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def document_type(client, admin_headers):
    response = client.post(
        "/compliance/document-types",
        json={"name": "DOT Inspection", "default_reminder_days": 30},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    return response.json()
