"""Unit tests for the in-process stub adapters."""

import pytest

from apps.orders.adapters import InventoryStub, PaymentsStub, NotificationsStub
from apps.orders.domain import InvalidOperationError, Order, OrderService


def test_inventory_stub_tracks_levels():
    inv = InventoryStub({"laptop": 2})
    assert inv.check_stock("laptop", 2) is True
    assert inv.check_stock("laptop", 3) is False
    inv.reduce_stock("laptop", 2)
    assert inv.level("laptop") == 0
    inv.increase_stock("laptop", 1)
    assert inv.check_stock("laptop", 1) is True


def test_inventory_stub_default_stock_for_unknown_products():
    inv = InventoryStub(default_stock=3)
    assert inv.level("mouse") == 3
    inv.reduce_stock("mouse", 1)
    assert inv.level("mouse") == 2


def test_payments_stub_rule():
    payments = PaymentsStub(max_quantity=10)
    assert payments.process_payment(Order(1, "laptop", 10)) is True
    assert payments.process_payment(Order(2, "laptop", 11)) is False


def test_service_with_stubs_keeps_stock_consistent():
    inv = InventoryStub({"laptop": 5})
    notifications = NotificationsStub()
    service = OrderService(inv, PaymentsStub(max_quantity=2), notifications)

    order = service.create_order("laptop", 2)
    assert inv.level("laptop") == 3
    assert notifications.sent == [order]

    # declined by the payments rule, stock comes back
    with pytest.raises(InvalidOperationError, match="PAYMENT_FAILED"):
        service.create_order("laptop", 3)
    assert inv.level("laptop") == 3

    service.remove_order(order.id)
    assert inv.level("laptop") == 5
