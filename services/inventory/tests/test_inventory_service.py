import pytest
from fastapi.testclient import TestClient

from services.inventory import main
from services.inventory.repo import InventoryRepo, parse_seed


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "repo", InventoryRepo({"laptop": 3}))
    return TestClient(main.app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200 and r.json() == {"ok": True}


def test_check_reports_availability(client):
    assert client.post("/check", json={"product": "laptop", "quantity": 3}).json() == {"available": True}
    assert client.post("/check", json={"product": "laptop", "quantity": 4}).json() == {"available": False}
    assert client.post("/check", json={"product": "mouse", "quantity": 1}).json() == {"available": False}


def test_reduce_and_increase(client):
    r = client.post("/reduce", json={"product": "laptop", "quantity": 2})
    assert r.status_code == 200
    assert r.json() == {"product": "laptop", "quantity": 1}

    r = client.post("/increase", json={"product": "laptop", "quantity": 2})
    assert r.json() == {"product": "laptop", "quantity": 3}
    assert client.get("/stock/laptop").json()["quantity"] == 3


def test_reduce_below_zero_is_rejected(client):
    r = client.post("/reduce", json={"product": "laptop", "quantity": 4})
    assert r.status_code == 422
    assert r.json()["detail"] == "INSUFFICIENT_STOCK"
    assert client.get("/stock/laptop").json()["quantity"] == 3


def test_set_stock(client):
    r = client.put("/stock/mouse", json={"quantity": 7})
    assert r.status_code == 200
    assert client.get("/stock/mouse").json() == {"product": "mouse", "quantity": 7}


def test_invalid_quantity_is_422(client):
    r = client.post("/reduce", json={"product": "laptop", "quantity": 0})
    assert r.status_code == 422


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "rid-1"})
    assert r.headers["X-Request-ID"] == "rid-1"


def test_parse_seed():
    assert parse_seed("laptop=10, mouse=5") == {"laptop": 10, "mouse": 5}
    assert parse_seed("") == {}
    with pytest.raises(ValueError):
        parse_seed("laptop")
    with pytest.raises(ValueError):
        parse_seed("laptop=-1")
