"""In-memory repository for payment transactions.

This module records transaction attempts with the order they belong to and
their paid status, and keeps idempotency records so a charge retried with
the same ``Idempotency-Key`` is processed once. Each transaction gets a
public UUID and an internal, monotonic numeric sequence (internal_id).
"""

import uuid
import hashlib, json
import threading
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class Transaction:
    """A payment transaction.

    Attributes:
        id: Public UUID exposed to clients.
        internal_id: Internal monotonically increasing identifier.
        order_id: Identifier of the order being paid.
        quantity: Units in the order.
        paid: Whether the payment succeeded (True) or not (False).
    """

    id: uuid.UUID
    internal_id: int
    order_id: int
    quantity: int
    paid: bool


@dataclass
class IdempotencyKey:
    """Idempotency record used to deduplicate payment requests.

    Attributes:
        key: Unique idempotency key provided by the client.
        request_hash: Canonical SHA-256 hex digest of the original request.
        transaction_id: UUID of the associated transaction once created.
    """

    key: str
    request_hash: str
    transaction_id: Optional[uuid.UUID] = None


def canonical_hash(payload: dict) -> str:
    """Compute a deterministic SHA-256 hash of a request payload.

    The payload is serialized to JSON with sorted keys and compact
    separators to ensure canonical representation across callers.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


class IdempotencyConflict(Exception):
    """The key was already used with a different payload."""


class PaymentsRepo:
    """Repository for creating and looking up payment transactions."""

    def __init__(self):
        self.lock = threading.RLock()
        self._transactions: Dict[uuid.UUID, Transaction] = {}
        self._keys: Dict[str, IdempotencyKey] = {}
        self._last_internal_id = 0

    def create_tx(self, order_id: int, quantity: int, paid: bool) -> Transaction:
        """Create and store a new transaction with the next internal_id."""
        with self.lock:
            self._last_internal_id += 1
            tx = Transaction(
                id=uuid.uuid4(),
                internal_id=self._last_internal_id,
                order_id=order_id,
                quantity=quantity,
                paid=paid,
            )
            self._transactions[tx.id] = tx
            return tx

    def get_tx(self, tx_id: uuid.UUID) -> Optional[Transaction]:
        with self.lock:
            return self._transactions.get(tx_id)

    def claim_key(self, key: str, request_hash: str) -> IdempotencyKey:
        """Return the record for ``key``, creating it on first use.

        Raises:
            IdempotencyConflict: If the key exists with another request hash.
        """
        with self.lock:
            rec = self._keys.get(key)
            if rec is None:
                rec = self._keys[key] = IdempotencyKey(key=key, request_hash=request_hash)
            elif rec.request_hash != request_hash:
                raise IdempotencyConflict(key)
            return rec


repo = PaymentsRepo()
