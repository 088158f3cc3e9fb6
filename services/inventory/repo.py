"""In-memory repository for stock levels.

Stock lives in a dict guarded by a lock, so concurrent requests handled by
the same process see consistent levels. Levels can be seeded from the
``INVENTORY_SEED`` env var (``"laptop=10,mouse=5"``).
"""

import os
import threading
from typing import Dict


def parse_seed(raw: str) -> Dict[str, int]:
    """Parse ``"product=qty,product=qty"`` into a dict.

    Raises:
        ValueError: If an entry is malformed or a quantity is negative.
    """
    levels: Dict[str, int] = {}
    for entry in filter(None, (e.strip() for e in raw.split(","))):
        product, sep, qty = entry.partition("=")
        if not sep or not product.strip():
            raise ValueError(f"Invalid seed entry: {entry!r}")
        value = int(qty)
        if value < 0:
            raise ValueError(f"Negative stock for {product!r}")
        levels[product.strip()] = value
    return levels


class InventoryRepo:
    """Repository class for inventory operations.

    Provides methods for checking stock levels, updating quantities and
    taking or returning units without ever going below zero.
    """

    def __init__(self, levels: Dict[str, int] | None = None):
        self._levels: Dict[str, int] = dict(levels or {})
        self._lock = threading.Lock()

    def get(self, product: str) -> int:
        """Get current stock quantity for a product (0 if unknown)."""
        with self._lock:
            return self._levels.get(product, 0)

    def upsert(self, product: str, quantity: int) -> None:
        with self._lock:
            self._levels[product] = quantity

    def check(self, product: str, quantity: int) -> bool:
        return self.get(product) >= quantity

    def reduce(self, product: str, quantity: int) -> int | None:
        """Take units out of stock.

        Returns:
            The remaining level, or None if there were not enough units (no
            change made in that case).
        """
        with self._lock:
            current = self._levels.get(product, 0)
            if current < quantity:
                return None
            self._levels[product] = current - quantity
            return self._levels[product]

    def increase(self, product: str, quantity: int) -> int:
        with self._lock:
            self._levels[product] = self._levels.get(product, 0) + quantity
            return self._levels[product]


repo = InventoryRepo(parse_seed(os.getenv("INVENTORY_SEED", "")))
