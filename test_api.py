"""
HTTP tests for the commission API using an in-memory key-value backend
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.dependencies import get_calculation_service
from app.kv_store import InMemoryKVStore, make_owner_key
from app.services.calculation_service import CalculationService
from calculations.exceptions import StorageFailure
from conftest import article_scheme, booster_scheme, make_sale
from fastapi_app import app
from store import ChunkedResultStore

OWNER = "owner-1"
HEADERS = {"X-Owner-Key": OWNER}


async def no_sleep(_seconds):
    return None


@pytest.fixture
def kv():
    kv = InMemoryKVStore()
    kv.set(make_owner_key(OWNER, "schemes"), [
        article_scheme({"A1": 100}),
        booster_scheme([{"min": 0, "max": 100, "rate": 5}, {"min": 101, "max": None, "rate": 10}]),
    ])
    kv.set(make_owner_key(OWNER, "sales-data"), [
        make_sale("D1", "A1", 100, 1000, "B1"),
        make_sale("D1", "A1", 50, 500, "B2"),
        make_sale("D2", "A2", 4, 40, "B3"),
    ])
    kv.set(make_owner_key(OWNER, "distributors"), [{"id": "D1", "name": "North Traders"}])
    return kv


@pytest.fixture
def client(kv):
    service = CalculationService(kv, ChunkedResultStore(kv, chunk_size=2, sleep=no_sleep))
    app.dependency_overrides[get_calculation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health/").json()["status"] == "healthy"


def test_owner_header_required(client):
    response = client.post("/calculate", json={"scheme_id": "scheme_booster"})
    assert response.status_code == 401


def test_calculate_then_fetch_latest(client):
    response = client.post("/calculate", json={"scheme_id": "scheme_booster"}, headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["success"]
    assert body["total_records"] == 3
    assert body["total_chunks"] == 2
    assert body["summary"]["total_commission"] == pytest.approx(1520)
    assert body["processing"]["is_complete"]

    latest = client.get("/calculations/latest", headers=HEADERS).json()
    assert latest["calculation_id"] == body["calculation_id"]
    assert latest["is_complete"]
    assert [c["billing_document"] for c in latest["calculations"]] == ["B1", "B2", "B3"]
    assert latest["calculations"][0]["distributor_name"] == "North Traders"
    assert latest["calculations"][2]["distributor_name"] == "Distributor D2"

    by_id = client.get(f"/calculations/{body['calculation_id']}", headers=HEADERS).json()
    assert by_id["calculations"] == latest["calculations"]

    history = client.get("/calculations", headers=HEADERS).json()
    assert [h["calculation_id"] for h in history["calculations"]] == [body["calculation_id"]]


def test_unknown_scheme_is_404(client):
    response = client.post("/calculate", json={"scheme_id": "nope"}, headers=HEADERS)
    assert response.status_code == 404


def test_blank_scheme_id_is_400(client):
    response = client.post("/calculate", json={"scheme_id": "  "}, headers=HEADERS)
    assert response.status_code == 400


def test_missing_sales_data_is_400(client, kv):
    kv.delete(make_owner_key(OWNER, "sales-data"))
    response = client.post("/calculate", json={"scheme_id": "scheme_article"}, headers=HEADERS)
    assert response.status_code == 400


def test_no_latest_is_404(client):
    assert client.get("/calculations/latest", headers={"X-Owner-Key": "fresh-owner"}).status_code == 404
    assert client.get("/calculations/calc_x", headers=HEADERS).status_code == 404


def test_storage_failure_is_500_with_details(client, monkeypatch):
    async def failing_store(*args, **kwargs):
        raise StorageFailure("disk full", calculation_id="calc_x", chunks_written=1, total_chunks=2)

    service = app.dependency_overrides[get_calculation_service]()
    monkeypatch.setattr(service.result_store, "store", failing_store)

    response = client.post("/calculate", json={"scheme_id": "scheme_article"}, headers=HEADERS)
    assert response.status_code == 500
    assert response.json()["detail"]["calculation_id"] == "calc_x"
    assert response.json()["detail"]["chunks_written"] == 1


def test_request_deadline_is_504(client, monkeypatch):
    async def slow_calculate(owner_key, scheme_id):
        await asyncio.sleep(5)

    service = app.dependency_overrides[get_calculation_service]()
    monkeypatch.setattr(service, "calculate", slow_calculate)
    monkeypatch.setattr(settings, "REQUEST_TIMEOUT", 0.05)

    response = client.post("/calculate", json={"scheme_id": "scheme_article"}, headers=HEADERS)
    assert response.status_code == 504


def test_migrate_legacy_distributors(client, kv):
    kv.delete(make_owner_key(OWNER, "distributors"))
    kv.set("distributors", [{"id": "D5", "name": "Legacy"}])

    response = client.post("/maintenance/migrate-legacy", json={}, headers=HEADERS)
    assert response.status_code == 200
    report = response.json()["report"]
    assert report["migrated"]
    assert kv.get(make_owner_key(OWNER, "distributors")) == [{"id": "D5", "name": "Legacy"}]
    assert kv.get("distributors") is None
