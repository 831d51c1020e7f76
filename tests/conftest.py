import pytest
from fastapi.testclient import TestClient

from app.db.engine import get_engine, init_db, make_engine, seed_admin
from app.main import app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "testpassword123"


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database per test, with the staff account seeded."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    seed_admin(engine, ADMIN_USERNAME, ADMIN_PASSWORD)
    yield engine
    engine.dispose()


@pytest.fixture
def client(engine):
    """Test client bound to the test database (startup hooks are not run)."""
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    response = client.post(
        "/api/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    token = response.json()["token"]

    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest.fixture
def make_job(auth_client):
    """Create a job through the API and return its JSON."""
    counter = {"n": 0}

    def _make_job(**overrides):
        counter["n"] += 1
        payload = {
            "job_number": f"WRL-{counter['n']:04d}",
            "client_name": "Gulf Traders",
            "truck_details": "Volvo FH 4821",
            "driver_name": "Rashid",
            "route_to": "Sitra",
            "country": "Bahrain",
            "cost": 100,
            "sale": 150,
        }
        payload.update(overrides)
        response = auth_client.post("/api/jobs", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make_job


@pytest.fixture
def make_invoice(auth_client, make_job):
    """Create a job (unless given) and raise an invoice for it."""

    def _make_invoice(job=None, **body):
        job = job or make_job()
        response = auth_client.post(f"/api/invoices/from-job/{job['id']}", json=body or None)
        assert response.status_code == 201, response.text
        return response.json()

    return _make_invoice
