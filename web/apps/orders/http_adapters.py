"""HTTP adapter clients with retries, circuit breakers, and context headers.

This module implements concrete HTTP clients for the domain ports using
``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from a ContextVar set by
    the gateway middleware.
- Circuit breaker per downstream service (inventory, payments,
    notifications) to avoid hammering unhealthy dependencies, with
    HALF_OPEN probing after a timeout.
- Retry policy with exponential backoff. Transport errors and 5xx are
    retried for calls that are safe to repeat (stock checks, payments
    carrying an ``Idempotency-Key``). Stock changes are only retried when
    the connection could not be established, so a request that reached
    the inventory is never applied twice.
- Fire-and-forget notifications: failures are logged and never raised.
"""

import logging
import time
import threading
import uuid
from typing import Iterable, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import InventoryPort, PaymentsPort, NotificationsPort, Order

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")

logger = logging.getLogger("orders.http")


# ---------------- Circuit Breaker ---------------- #

class CircuitOpenError(RuntimeError):
    """Raised when a circuit breaker refuses a call."""


class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED → OPEN when failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN → CLOSED on a successful probe; stays HALF_OPEN while a
      single probe is in flight; transitions back to OPEN on failure.

    This implementation is thread-safe via an internal lock.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._opened_at = 0.0
        self._half_open_probe_in_flight = False

    @property
    def state(self) -> str:
        """Current breaker state with time-based transition handling."""
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._half_open_probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check and update state before a protected call.

        Returns:
            str: The state at call time.

        Raises:
            CircuitOpenError: If the circuit is OPEN or a HALF_OPEN probe is
                already in flight.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise CircuitOpenError("CIRCUIT_OPEN")
            if st == "HALF_OPEN":
                # only one concurrent probe
                if self._half_open_probe_in_flight:
                    raise CircuitOpenError("CIRCUIT_HALF_OPEN_BUSY")
                self._half_open_probe_in_flight = True
            return st

    def on_success(self):
        """Record a successful call and close/reset the breaker."""
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._half_open_probe_in_flight = False

    def on_failure(self):
        """Record a failed call and open the breaker if threshold exceeded."""
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN" or (
                self._failures >= self.fail_threshold and self._state != "OPEN"
            ):
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                self._half_open_probe_in_flight = False
                logger.warning("circuit opened", extra={"circuit": self.name})

    def on_finish(self):
        """Release any HALF_OPEN probe flag after a call finishes."""
        with self._lock:
            if self._state == "HALF_OPEN":
                self._half_open_probe_in_flight = False


def _make_breaker(name: str) -> CircuitBreaker:
    return CircuitBreaker(
        name,
        getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
        getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
    )


# Per-service instances
_inventory_cb = _make_breaker("inventory")
_payments_cb = _make_breaker("payments")
_notifications_cb = _make_breaker("notifications")

BREAKERS = {
    "inventory": _inventory_cb,
    "payments": _payments_cb,
    "notifications": _notifications_cb,
}


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers including X-Request-ID and any extras.

    Args:
        extra: Optional dict of additional headers to include.

    Returns:
        dict: Final headers dictionary for the outgoing request.
    """
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base_seconds)."""
    return (
        getattr(settings, "HTTP_RETRY_MAX", 3),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
    )


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception], idempotent: bool) -> bool:
    """Decide whether to retry based on response status or transport error.

    Idempotent calls retry on any transport error or HTTP 5xx. Other calls
    retry only when the connection was never established.
    """
    if exc is not None:
        return idempotent or isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))
    if idempotent and resp is not None and 500 <= resp.status_code < 600:
        return True
    return False


def _post(
    breaker: CircuitBreaker,
    url: str,
    payload: dict,
    timeout: float,
    idempotent: bool,
    business_statuses: Iterable[int] = (),
    extra_headers: Optional[dict] = None,
) -> httpx.Response:
    """POST ``payload`` to ``url`` behind ``breaker`` with retries.

    Responses with a 2xx status or one of ``business_statuses`` are returned
    to the caller and count as a success for the breaker.

    Raises:
        CircuitOpenError: If the breaker refuses the call.
        httpx.RequestError: For network/transport errors after retries.
        httpx.HTTPStatusError: For non-retriable non-2xx responses.
    """
    max_retries, backoff = _retry_policy()
    tries = 0

    state = breaker.before_call()
    headers = _request_headers(
        {**(extra_headers or {}), "X-Circuit-State": state, "X-Retry-Count": "0"}
    )

    try:
        with httpx.Client(timeout=timeout) as client:
            while True:
                resp = None
                exc = None
                try:
                    resp = client.post(url, json=payload, headers=headers)
                    if 200 <= resp.status_code < 300 or resp.status_code in business_statuses:
                        breaker.on_success()
                        return resp
                except httpx.RequestError as e:
                    exc = e

                tries += 1
                headers["X-Retry-Count"] = str(tries)

                if tries > max_retries or not _should_retry(resp, exc, idempotent):
                    breaker.on_failure()
                    if exc:
                        raise exc
                    resp.raise_for_status()

                sleep_s = backoff * (2 ** (tries - 1))  # exponential backoff
                cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
                logger.info("retrying request", extra={"url": url, "retry": tries})
                time.sleep(min(sleep_s, cap))
    finally:
        breaker.on_finish()


def _stock_payload(product: str, quantity: int) -> dict:
    return {"product": product, "quantity": quantity}


def _order_payload(order: Order) -> dict:
    return {
        "order_id": order.id,
        "product": order.product,
        "quantity": order.quantity,
        "is_paid": order.is_paid,
    }


# ---------------- Inventory Adapter ---------------- #

class HttpInventoryClient(InventoryPort):
    """HTTP client for the inventory service with retry and circuit breaker."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.INVENTORY_BASE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def check_stock(self, product: str, quantity: int) -> bool:
        """Ask the inventory whether the units are available.

        Returns:
            bool: The ``available`` flag of the response.

        Raises:
            httpx.RequestError: For network/transport errors after retries.
            httpx.HTTPStatusError: For non-retriable non-2xx responses.
        """
        resp = _post(
            _inventory_cb,
            f"{self.base_url}/check",
            _stock_payload(product, quantity),
            self.timeout,
            idempotent=True,
        )
        return bool(resp.json().get("available", False))

    def reduce_stock(self, product: str, quantity: int) -> None:
        """Take units out of stock.

        A 422 answer (stock changed since the check) surfaces as
        ``httpx.HTTPStatusError`` without counting as a circuit failure.
        """
        resp = _post(
            _inventory_cb,
            f"{self.base_url}/reduce",
            _stock_payload(product, quantity),
            self.timeout,
            idempotent=False,
            business_statuses=(422,),
        )
        if resp.status_code == 422:
            resp.raise_for_status()

    def increase_stock(self, product: str, quantity: int) -> None:
        _post(
            _inventory_cb,
            f"{self.base_url}/increase",
            _stock_payload(product, quantity),
            self.timeout,
            idempotent=False,
        )


# ---------------- Payments Adapter ---------------- #

class HttpPaymentsClient(PaymentsPort):
    """HTTP client for the payments service with retry and circuit breaker.

    Every charge carries an ``Idempotency-Key`` built from a per-client
    prefix and the order id, so retried requests never charge twice and ids
    handed out again after a restart never collide with earlier charges.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.PAYMENTS_BASE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS
        self.key_prefix = uuid.uuid4().hex

    def process_payment(self, order: Order) -> bool:
        """Attempt to charge an order.

        Business mappings:
        - 200 → True (the transaction id is logged)
        - 402 or 409 → False, not counted as circuit failures

        Raises:
            httpx.RequestError: For network/transport errors after retries.
            httpx.HTTPStatusError: For non-retriable non-2xx responses.
        """
        resp = _post(
            _payments_cb,
            f"{self.base_url}/charge",
            _order_payload(order),
            self.timeout,
            idempotent=True,
            business_statuses=(402, 409),
            extra_headers={"Idempotency-Key": f"{self.key_prefix}-order-{order.id}"},
        )
        if resp.status_code in (402, 409):
            return False
        data = resp.json()
        logger.info(
            "payment approved",
            extra={"order_id": order.id, "transaction_id": data.get("transaction_id")},
        )
        return bool(data.get("paid", False))


# ---------------- Notifications Adapter ---------------- #

class HttpNotificationsClient(NotificationsPort):
    """Webhook client for order confirmations.

    Confirmations are fire-and-forget: delivery problems are logged and the
    caller always gets control back normally.
    """

    def __init__(self, url: str | None = None, timeout: float | None = None):
        self.url = url if url is not None else getattr(settings, "NOTIFICATIONS_URL", "")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def send_confirmation(self, order: Order) -> None:
        if not self.url:
            logger.info("notification skipped, no url configured", extra={"order_id": order.id})
            return
        try:
            _post(
                _notifications_cb,
                self.url,
                {"event": "order.confirmed", "order": _order_payload(order)},
                self.timeout,
                idempotent=False,
            )
        except (httpx.HTTPError, CircuitOpenError) as e:
            logger.warning(
                "confirmation not delivered",
                extra={"order_id": order.id, "error": repr(e)},
            )
