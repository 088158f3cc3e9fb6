"""Tests for the gateway guards in front of the orders API: the request
body size limit and the per-scope DRF throttles."""

import pytest
from django.core.cache import cache
from rest_framework.throttling import ScopedRateThrottle

ORDERS_URL = "/api/orders/"


@pytest.fixture
def tight_throttles(monkeypatch):
    # rates are read once at import time, so patch the class attribute
    monkeypatch.setattr(
        ScopedRateThrottle,
        "THROTTLE_RATES",
        {"orders_list": "1/min", "orders_create": "1/min", "orders_detail": "1/min"},
    )
    cache.clear()
    yield
    cache.clear()


def test_oversized_body_is_rejected_with_413(client, settings, order_service):
    settings.API_MAX_BYTES = 10
    r = client.post(ORDERS_URL, data={"product": "laptop", "quantity": 1}, content_type="application/json")
    assert r.status_code == 413
    assert r.json() == {"detail": "PAYLOAD_TOO_LARGE"}
    assert order_service.get_orders() == []
    assert order_service.inventory.level("laptop") == 10


def test_body_within_limit_passes(client, settings):
    settings.API_MAX_BYTES = 1024
    r = client.post(ORDERS_URL, data={"product": "laptop", "quantity": 1}, content_type="application/json")
    assert r.status_code == 201


def test_size_limit_only_guards_the_api(client, settings):
    settings.API_MAX_BYTES = 10
    r = client.post("/not-api/", data={"padding": "x" * 64}, content_type="application/json")
    assert r.status_code == 404


def test_list_is_throttled_per_scope(client, tight_throttles):
    assert client.get(ORDERS_URL).status_code == 200
    r = client.get(ORDERS_URL)
    assert r.status_code == 429
    assert "Retry-After" in r.headers


def test_create_has_its_own_throttle_scope(client, tight_throttles):
    assert client.get(ORDERS_URL).status_code == 200
    payload = {"product": "laptop", "quantity": 1}
    assert client.post(ORDERS_URL, data=payload, content_type="application/json").status_code == 201
    r = client.post(ORDERS_URL, data=payload, content_type="application/json")
    assert r.status_code == 429


def test_detail_is_throttled(client, order_service, tight_throttles):
    order = order_service.create_order("laptop", 1)
    url = f"{ORDERS_URL}{order.id}/"
    assert client.get(url).status_code == 200
    assert client.get(url).status_code == 429
