"""Service provider helpers for wiring OrderService with ports.

Orders live in the memory of the ``OrderService`` instance, so the web
process shares a single instance built on first use by
``get_order_service``. By default it is wired with the HTTP adapter
clients (``settings.USE_HTTP_ADAPTERS``); otherwise it uses the in-process
stubs suitable for tests and local development.

The service does not synchronize its own state. Request handlers must hold
``SERVICE_LOCK`` around every call into the shared instance.
"""

import threading

from django.conf import settings
from .domain import OrderService
from .adapters import InventoryStub, PaymentsStub, NotificationsStub
from .http_adapters import HttpInventoryClient, HttpPaymentsClient, HttpNotificationsClient

SERVICE_LOCK = threading.RLock()

_service: OrderService | None = None


def build_order_service() -> OrderService:
    """Return a new OrderService wired according to settings."""
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return OrderService(
            inventory=HttpInventoryClient(),
            payments=HttpPaymentsClient(),
            notifications=HttpNotificationsClient(),
        )

    return OrderService(
        inventory=InventoryStub(),
        payments=PaymentsStub(),
        notifications=NotificationsStub(),
    )


def get_order_service() -> OrderService:
    """Return the process-wide OrderService, building it on first use.

    Returns:
        OrderService: The shared service instance.
    """
    global _service
    with SERVICE_LOCK:
        if _service is None:
            _service = build_order_service()
        return _service


def reset_order_service() -> None:
    """Drop the shared instance so the next call builds a fresh one."""
    global _service
    with SERVICE_LOCK:
        _service = None
