from apps.orders.http_adapters import BREAKERS

HEALTH_URL = "/api/health/"


def test_health_reports_components(client, order_service):
    order_service.create_order("laptop", 1)
    r = client.get(HEALTH_URL)
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["components"]["orders"] == {"ok": True, "count": 1}
    assert body["components"]["payments"]["circuit"] == "CLOSED"


def test_health_is_503_when_a_circuit_is_open(client):
    breaker = BREAKERS["inventory"]
    try:
        for _ in range(breaker.fail_threshold):
            breaker.on_failure()
        r = client.get(HEALTH_URL)
        assert r.status_code == 503
        assert r.json()["components"]["inventory"] == {"ok": False, "circuit": "OPEN"}
    finally:
        breaker.on_success()


def test_request_id_header_is_echoed(client):
    r = client.get("/api/orders/ping/", HTTP_X_REQUEST_ID="abc-123")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r["X-Request-ID"] == "abc-123"
