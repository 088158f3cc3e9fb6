"""Payments service API built with FastAPI.

This module exposes endpoints to check service health and to charge an
order. Validation is performed with Pydantic models, while transactions
and idempotency records live in the in-memory ``repo.PaymentsRepo``.

Orders with more units than ``PAYMENTS_MAX_QUANTITY`` are declined with
HTTP 402; the declined attempt is still recorded.
"""

import os
import uuid
import logging
from typing import Annotated, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from .repo import repo, canonical_hash, IdempotencyConflict

app = FastAPI(title="Payments Service")

MAX_QUANTITY = int(os.getenv("PAYMENTS_MAX_QUANTITY", "100"))

logger = logging.getLogger("payments")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


class ChargeRequest(BaseModel):
    """Request body for the charge endpoint.

    Attributes:
        order_id: Identifier of the order being paid.
        product: Ordered product.
        quantity: Positive number of units.
        is_paid: Paid flag as seen by the caller; must still be False.
    """
    order_id: int = Field(gt=0)
    product: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    is_paid: bool = False


class ChargeResponse(BaseModel):
    """Response body for the charge endpoint.

    Attributes:
        paid: Whether the payment was approved.
        transaction_id: UUID of the created transaction record.
    """
    paid: bool
    transaction_id: uuid.UUID


def _charge(req: ChargeRequest):
    paid = not req.is_paid and req.quantity <= MAX_QUANTITY
    tx = repo.create_tx(order_id=req.order_id, quantity=req.quantity, paid=paid)
    logger.info("charge processed", extra={"order_id": req.order_id, "paid": paid})
    return tx


def _respond(tx):
    if not tx.paid:
        return JSONResponse(
            status_code=402,
            content={"detail": "PAYMENT_DECLINED", "transaction_id": str(tx.id)},
        )
    return ChargeResponse(paid=True, transaction_id=tx.id)


@app.get("/health")
def health():
    """Liveness/health probe endpoint."""
    return {"ok": True}


@app.post("/charge", response_model=ChargeResponse)
def charge(
    req: ChargeRequest,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Charge an order with optional idempotency.

    When an ``Idempotency-Key`` header is provided, duplicate requests with
    the same payload are processed at most once: retries get the outcome of
    the original transaction. Reusing the key with a different payload
    answers HTTP 409.

    Returns:
        ChargeResponse on approval; HTTP 402 with ``PAYMENT_DECLINED`` when
        the charge is declined.
    """
    if not idempotency_key:
        return _respond(_charge(req))

    with repo.lock:
        try:
            rec = repo.claim_key(idempotency_key, canonical_hash(req.model_dump()))
        except IdempotencyConflict:
            return JSONResponse(status_code=409, content={"detail": "IDEMPOTENCY_CONFLICT"})

        if rec.transaction_id:
            return _respond(repo.get_tx(rec.transaction_id))

        tx = _charge(req)
        rec.transaction_id = tx.id
    return _respond(tx)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
