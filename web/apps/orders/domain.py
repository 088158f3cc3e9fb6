"""Domain models, ports and service for orders.

This module contains the ``Order`` record, protocol definitions (ports)
for the external collaborators (inventory, payments and notifications),
the domain errors, and the domain service that orchestrates the order
lifecycle: stock check, stock reservation, payment, confirmation and the
compensating rollback when a later step fails.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Protocol

logger = logging.getLogger("orders")


# ---- Errors ----
class OrderError(Exception):
    """Base class for order domain errors.

    The error carries a short machine-readable code (for example
    ``"PAYMENT_FAILED"``) that is also its string representation, so
    callers can map it to transport-level responses.
    """

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


class InvalidArgumentError(OrderError, ValueError):
    """The caller supplied structurally invalid input.

    Always raised before any collaborator has been called.
    """


class InvalidOperationError(OrderError):
    """A business precondition failed (no stock, payment declined).

    When raised after stock was reserved, the reservation has already been
    returned to the inventory.
    """


# ---- Entities ----
@dataclass
class Order:
    """A purchase order accepted by the service.

    Attributes:
        id: Identifier assigned by the service, starting at 1.
        product: Name of the ordered product.
        quantity: Number of units, always positive.
        is_paid: True once payment succeeded.
    """

    id: int
    product: str
    quantity: int
    is_paid: bool = False


# ---- Ports (DIP) ----
class InventoryPort(Protocol):
    """Port describing the stock operations used by the domain."""

    def check_stock(self, product: str, quantity: int) -> bool:
        """Return True when ``quantity`` units of ``product`` are available."""
        raise NotImplementedError()

    def reduce_stock(self, product: str, quantity: int) -> None:
        """Take ``quantity`` units of ``product`` out of stock."""
        raise NotImplementedError()

    def increase_stock(self, product: str, quantity: int) -> None:
        """Put ``quantity`` units of ``product`` back into stock."""
        raise NotImplementedError()


class PaymentsPort(Protocol):
    """Port describing payment operations used by the domain."""

    def process_payment(self, order: Order) -> bool:
        """Charge the given order.

        Args:
            order: Order being paid. It is not yet part of the service's
                collection and ``order.is_paid`` is still False.

        Returns:
            True if the payment was approved, False if it was declined.
        """
        raise NotImplementedError()


class NotificationsPort(Protocol):
    """Port describing the confirmation sent once an order is accepted."""

    def send_confirmation(self, order: Order) -> None:
        raise NotImplementedError()


# ---- Helpers ----
def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@contextmanager
def reserved_stock(inventory: InventoryPort, product: str, quantity: int) -> Iterator[None]:
    """Reduce stock and hold the reservation for the duration of the block.

    If the block raises, the reserved units are returned with
    ``increase_stock`` before the exception propagates. Leaving the block
    normally keeps the reservation.

    Args:
        inventory: Inventory holding the stock.
        product: Product to reserve.
        quantity: Units to reserve.
    """
    inventory.reduce_stock(product, quantity)
    try:
        yield
    except Exception:
        logger.warning(
            "releasing reserved stock",
            extra={"product": product, "quantity": quantity},
        )
        inventory.increase_stock(product, quantity)
        raise


# ---- Domain service ----
class OrderService:
    """Domain service owning the orders and their lifecycle.

    The service keeps its orders in memory, in insertion order, and assigns
    identifiers from a counter that is never rolled back. It does not lock:
    callers sharing one instance between threads must serialize the calls.
    """

    def __init__(
        self,
        inventory: InventoryPort,
        payments: PaymentsPort,
        notifications: NotificationsPort,
    ):
        """Initialize the service with required dependencies.

        Args:
            inventory: InventoryPort used to check and reserve stock.
            payments: PaymentsPort used to charge orders.
            notifications: NotificationsPort used to confirm accepted orders.
        """
        self.inventory = inventory
        self.payments = payments
        self.notifications = notifications
        self._orders: Dict[int, Order] = {}
        self._last_id = 0

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def create_order(self, product: str, quantity: int) -> Order:
        """Create an order: validate, check stock, reserve, pay, confirm.

        Side effects happen strictly in the order check, reduce, pay and
        then either notify (payment approved) or give the stock back
        (payment declined or the payment call raised). Nothing is retried.
        The confirmation is fire-and-forget: a failing notifier is logged and
        the paid order is still returned.

        Args:
            product: Non-empty product name.
            quantity: Positive number of units.

        Returns:
            The new Order, already paid and stored.

        Raises:
            InvalidArgumentError: With code 'INVALID_PRODUCT' or
                'INVALID_QUANTITY'; raised before any collaborator call.
            InvalidOperationError: With code 'INSUFFICIENT_STOCK' when the
                stock check fails, or 'PAYMENT_FAILED' when the payment is
                declined (the reservation is released first).
        """
        if not isinstance(product, str) or not product.strip():
            raise InvalidArgumentError("INVALID_PRODUCT")
        if not _is_positive_int(quantity):
            raise InvalidArgumentError("INVALID_QUANTITY")

        # 1) Check stock
        if not self.inventory.check_stock(product, quantity):
            logger.warning("insufficient stock", extra={"product": product, "quantity": quantity})
            raise InvalidOperationError("INSUFFICIENT_STOCK")

        # 2) Reserve stock, 3) charge payment
        with reserved_stock(self.inventory, product, quantity):
            order = Order(id=self._next_id(), product=product, quantity=quantity)
            if not self.payments.process_payment(order):
                logger.warning("payment declined", extra={"order_id": order.id})
                raise InvalidOperationError("PAYMENT_FAILED")
            order.is_paid = True
            self._orders[order.id] = order

        # 4) Confirm; the order is already paid and stored
        try:
            self.notifications.send_confirmation(order)
        except Exception:
            logger.exception("confirmation failed", extra={"order_id": order.id})
        logger.info(
            "order created",
            extra={"order_id": order.id, "product": product, "quantity": quantity},
        )
        return order

    def update_order(self, order_id: int, new_quantity: int) -> bool:
        """Change the quantity of an existing order.

        Stock and payment are left untouched.

        Returns:
            True if the order was updated; False if it does not exist or
            ``new_quantity`` is not a positive integer.
        """
        order = self._orders.get(order_id)
        if order is None or not _is_positive_int(new_quantity):
            return False
        order.quantity = new_quantity
        logger.info("order updated", extra={"order_id": order_id, "quantity": new_quantity})
        return True

    def remove_order(self, order_id: int) -> bool:
        """Remove an order and return its units to the inventory.

        Returns:
            True if the order existed and was removed, False otherwise.
        """
        order = self._orders.get(order_id)
        if order is None:
            return False
        self.inventory.increase_stock(order.product, order.quantity)
        del self._orders[order_id]
        logger.info("order removed", extra={"order_id": order_id})
        return True

    def get_order(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    def get_orders(self) -> List[Order]:
        """Return the current orders in insertion order.

        The list is a snapshot; later creations and removals do not show up
        in it.
        """
        return list(self._orders.values())
