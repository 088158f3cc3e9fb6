from apps.orders import idempotency


CREATE_URL = "/api/orders/"


def _post(client, payload, key):
    return client.post(CREATE_URL, data=payload, content_type="application/json", **{"HTTP_IDEMPOTENCY_KEY": key})


def test_idempotent_same_payload_returns_same_order_on_retry(client, order_service):
    key = "idem-same-1"
    payload = {"product": "laptop", "quantity": 2}

    r1 = _post(client, payload, key)
    assert r1.status_code == 201

    # replay
    r2 = _post(client, payload, key)
    assert r2.status_code == r1.status_code
    assert r2.json() == r1.json()
    assert r2.headers.get("Idempotent-Replay") == "true"
    assert len(order_service.get_orders()) == 1
    assert order_service.inventory.level("laptop") == 8


def test_idempotent_conflict_on_different_payload_with_same_key(client):
    key = "idem-conflict-1"

    r1 = _post(client, {"product": "laptop", "quantity": 2}, key)
    assert r1.status_code == 201

    r2 = _post(client, {"product": "laptop", "quantity": 3}, key)
    assert r2.status_code == 409
    assert r2.json()["detail"] == "IDEMPOTENCY_CONFLICT"


def test_idempotent_replay_preserves_422_status(client, monkeypatch):
    from apps.orders import adapters
    monkeypatch.setattr(adapters.InventoryStub, "check_stock", lambda self, p, q: False)

    key = "idem-422"
    payload = {"product": "laptop", "quantity": 999}

    r1 = _post(client, payload, key)
    assert r1.status_code == 422

    r2 = _post(client, payload, key)
    assert r2.status_code == 422
    assert r2.json() == r1.json()
    assert r2.headers.get("Idempotent-Replay") == "true"


def test_without_key_every_request_creates_an_order(client, order_service):
    payload = {"product": "laptop", "quantity": 1}
    client.post(CREATE_URL, data=payload, content_type="application/json")
    client.post(CREATE_URL, data=payload, content_type="application/json")
    assert [o.id for o in order_service.get_orders()] == [1, 2]


def test_oldest_records_are_evicted_past_the_limit(settings):
    settings.IDEMPOTENCY_MAX_RECORDS = 2
    for key in ("k-1", "k-2", "k-3"):
        existing, _ = idempotency.get_or_create_idempotent(key, {"product": "laptop", "quantity": 1})
        assert existing is False

    # k-1 was evicted, so a different payload is a fresh request
    existing, rec = idempotency.get_or_create_idempotent("k-1", {"product": "mouse", "quantity": 1})
    assert existing is False
    assert rec.order_id is None

    # k-3 survived the second eviction (k-2 went)
    existing, _ = idempotency.get_or_create_idempotent("k-3", {"product": "laptop", "quantity": 1})
    assert existing is True
