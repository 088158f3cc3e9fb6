"""In-process stub adapters for the orders domain ports.

These stubs implement ``InventoryPort``, ``PaymentsPort`` and
``NotificationsPort`` without any network calls. They are intended for
unit tests and local development where deterministic behavior is useful
and external services are not required.
"""

import logging
from typing import Dict, List, Optional

from .domain import InventoryPort, PaymentsPort, NotificationsPort, Order

logger = logging.getLogger("orders")


class InventoryStub(InventoryPort):
    """Stub implementation of ``InventoryPort`` backed by a dict.

    Products that were never seen start with ``default_stock`` units.
    """

    def __init__(self, stock: Optional[Dict[str, int]] = None, default_stock: int = 10):
        self.levels: Dict[str, int] = dict(stock or {})
        self.default_stock = default_stock

    def level(self, product: str) -> int:
        """Return the units currently available for ``product``."""
        return self.levels.get(product, self.default_stock)

    def check_stock(self, product: str, quantity: int) -> bool:
        return self.level(product) >= quantity

    def reduce_stock(self, product: str, quantity: int) -> None:
        self.levels[product] = self.level(product) - quantity

    def increase_stock(self, product: str, quantity: int) -> None:
        self.levels[product] = self.level(product) + quantity


class PaymentsStub(PaymentsPort):
    """Stub implementation of ``PaymentsPort``.

    Approves orders whose quantity is between 1 and ``max_quantity``
    (inclusive). This is a deterministic rule for testing purposes.
    """

    def __init__(self, max_quantity: int = 10):
        self.max_quantity = max_quantity

    def process_payment(self, order: Order) -> bool:
        """Approve or decline a mock payment.

        Args:
            order: The order to charge.

        Returns:
            bool: True if ``order.quantity`` is in the inclusive range
            [1, max_quantity]; otherwise False.
        """
        return 1 <= order.quantity <= self.max_quantity


class NotificationsStub(NotificationsPort):
    """Stub implementation of ``NotificationsPort`` that keeps what it sends."""

    def __init__(self):
        self.sent: List[Order] = []

    def send_confirmation(self, order: Order) -> None:
        self.sent.append(order)
        logger.info("confirmation sent", extra={"order_id": order.id})
