"""Idempotency utilities for safely handling duplicate requests.

This module keeps idempotency records in process memory, next to the
orders themselves. It supports creating an idempotent record, detecting
conflicts when the same key is used with a different payload, and
finalizing a stored response so subsequent retries can short-circuit.

At most ``settings.IDEMPOTENCY_MAX_RECORDS`` records are kept; once the
limit is reached the oldest record is evicted for each new key.
"""

import hashlib, json
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings


@dataclass
class IdempotencyRecord:
    """Stored outcome of a request made with an ``Idempotency-Key``."""

    key: str
    request_hash: str
    response_status: int = 0
    response_body: dict = field(default_factory=dict)
    order_id: Optional[int] = None


_records: "OrderedDict[str, IdempotencyRecord]" = OrderedDict()
_lock = threading.Lock()


def _hash(payload: dict) -> str:
    """Compute a stable SHA-256 hash for a JSON-serializable payload.

    The payload is serialized with sorted keys and compact separators to
    ensure a deterministic representation before hashing.

    Args:
        payload: A JSON-serializable dictionary.

    Returns:
        str: Hex-encoded SHA-256 digest of the normalized payload.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def get_or_create_idempotent(key: str, payload: dict):
    """Get-or-create an idempotency record for the given key and payload.

    Behavior:
        - First request with a new key: create a record and return
          (existing=False, rec).
        - Subsequent request with same key and same payload: return
          (existing=True, rec) for reuse.
        - Subsequent request with same key but different payload: raise
          ValueError("IDEMPOTENCY_CONFLICT").

    Args:
        key: Client-provided idempotency key.
        payload: Request payload used to compute the request hash.

    Returns:
        tuple[bool, IdempotencyRecord]: (existing, rec).

    Raises:
        ValueError: If the key exists but the payload hash differs
            (idempotency conflict).
    """
    h = _hash(payload)

    with _lock:
        rec = _records.get(key)
        if rec is None:
            limit = getattr(settings, "IDEMPOTENCY_MAX_RECORDS", 10_000)
            while len(_records) >= limit:
                _records.popitem(last=False)
            rec = _records[key] = IdempotencyRecord(key=key, request_hash=h)
            return False, rec
    if rec.request_hash != h:
        raise ValueError("IDEMPOTENCY_CONFLICT")
    return True, rec


def finalize(rec: IdempotencyRecord, status_code: int, body: dict, order_id=None):
    """Store the final response for an idempotent request.

    Subsequent retries can return this stored response without re-running
    side effects.

    Args:
        rec: The idempotency record to update.
        status_code: HTTP status code to store for the response.
        body: JSON-serializable response body.
        order_id: Optional order identifier to link to the record.
    """
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id


def clear() -> None:
    """Forget every stored record."""
    with _lock:
        _records.clear()
