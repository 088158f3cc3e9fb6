"""Inventory service API built with FastAPI.

This module exposes endpoints to check service health and to check, take
and return stock for a product. Validation is performed with Pydantic
models, while the stock levels live in the in-memory ``repo.InventoryRepo``.
"""

import uuid, logging
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, constr
from pythonjsonlogger import jsonlogger

from .repo import repo

app = FastAPI(title="Inventory Service")

Product = constr(strip_whitespace=True, min_length=1, max_length=64)
# logger JSON
logger = logging.getLogger("inventory")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


class StockRequest(BaseModel):
    """A product and a positive number of units.

    Attributes:
        product: Product name.
        quantity: Positive integer quantity.
    """
    product: Product
    quantity: int = Field(gt=0)


class StockLevel(BaseModel):
    product: str
    quantity: int


class SetStockRequest(BaseModel):
    quantity: int = Field(ge=0)


class CheckResponse(BaseModel):
    available: bool


@app.get("/health")
def health():
    """Liveness/health probe endpoint."""
    return {"ok": True}


@app.get("/stock/{product}", response_model=StockLevel)
def get_stock(product: str):
    return StockLevel(product=product, quantity=repo.get(product))


@app.put("/stock/{product}", response_model=StockLevel)
def set_stock(product: str, req: SetStockRequest):
    """Set the stock level of a product, creating it if needed."""
    repo.upsert(product, req.quantity)
    return StockLevel(product=product, quantity=req.quantity)


@app.post("/check", response_model=CheckResponse)
def check(req: StockRequest):
    return CheckResponse(available=repo.check(req.product, req.quantity))


@app.post("/reduce", response_model=StockLevel)
def reduce(req: StockRequest):
    """Take units out of stock.

    Raises:
        HTTPException: With status 422 when the product has fewer units
            than requested.
    """
    remaining = repo.reduce(req.product, req.quantity)
    if remaining is None:
        raise HTTPException(status_code=422, detail="INSUFFICIENT_STOCK")
    logger.info("stock reduced", extra={"product": req.product, "quantity": req.quantity})
    return StockLevel(product=req.product, quantity=remaining)


@app.post("/increase", response_model=StockLevel)
def increase(req: StockRequest):
    level = repo.increase(req.product, req.quantity)
    logger.info("stock increased", extra={"product": req.product, "quantity": req.quantity})
    return StockLevel(product=req.product, quantity=level)


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
