"""HTTP views for the orders app.

This module contains DRF API views over the shared ``OrderService``.
Views are kept intentionally small: they validate requests (via Pydantic),
delegate to the domain service while holding ``SERVICE_LOCK``, and map the
outcome to an HTTP response.

The views obtain the service from ``providers.get_order_service()`` which
is wired with HTTP adapter-backed ports or in-process stubs depending on
runtime settings. This allows tests and local development to swap
implementations without changing view logic.

Idempotency: when an ``Idempotency-Key`` header is provided, the create
endpoint ensures idempotent processing. The first request creates a record
and, upon completion, stores the response. Subsequent retries with the same
payload return the stored response and status. If the same key is reused
with a different payload, the endpoint returns HTTP 409 (conflict).
"""
import logging

from pydantic import ValidationError
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle

from . import providers
from .domain import InvalidArgumentError, InvalidOperationError
from .schemas import CreateOrderDTO, UpdateOrderDTO, OrderReadDTO
from .idempotency import get_or_create_idempotent, finalize

logger = logging.getLogger("orders")

ERROR_STATUS = {
    "INSUFFICIENT_STOCK": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "PAYMENT_FAILED": status.HTTP_402_PAYMENT_REQUIRED,
}


def _not_found() -> Response:
    return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)


class OrdersPingView(APIView):
    """Simple health-check endpoint for the orders module."""

    def get(self, request):
        return Response({"ok": True})


class OrdersCollectionView(APIView):
    """List orders and create new ones.

    Creating an order runs the full domain workflow: stock check, stock
    reservation, payment and confirmation. It supports idempotency via the
    ``Idempotency-Key`` header: the first request is processed and its
    response cached; subsequent retries with the same key and identical
    payload return the cached response. Reusing the same key with a
    different payload returns HTTP 409.
    """
    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        with providers.SERVICE_LOCK:
            orders = providers.get_order_service().get_orders()
        results = [OrderReadDTO.from_order(o).model_dump() for o in orders]
        return Response({"count": len(results), "results": results}, status=200)

    def post(self, request):
        """Create a new order.

        Args:
            request (Request): DRF request with JSON body
                ``{"product": str, "quantity": int}`` and optional
                ``Idempotency-Key`` header.

        Returns:
            Response: One of the following responses.
            - 201 with the created order.
            - The stored status and body when the same idempotency key and
              payload are retried (``Idempotent-Replay: true``).
            - 409 with {detail: "IDEMPOTENCY_CONFLICT"} when the same key is
              reused with a different payload.
            - 400 for DTO validation errors.
            - 422 with {detail: "INSUFFICIENT_STOCK"} when stock is missing.
            - 402 with {detail: "PAYMENT_FAILED"} when the payment is
              declined.
            - 503 with {detail: "UPSTREAM_UNAVAILABLE"} when a collaborator
              cannot be reached.
        """
        idem_key = request.headers.get("Idempotency-Key")

        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        with providers.SERVICE_LOCK:
            # 2) Idempotency get-or-create
            rec = None
            if idem_key:
                try:
                    existing, rec = get_or_create_idempotent(idem_key, request.data)
                except ValueError:
                    return Response({"detail": "IDEMPOTENCY_CONFLICT"}, status=status.HTTP_409_CONFLICT)
                if existing:
                    resp = Response(rec.response_body, status=rec.response_status or status.HTTP_200_OK)
                    resp["Idempotent-Replay"] = "true"
                    return resp

            # 3) Domain
            service = providers.get_order_service()
            try:
                order = service.create_order(dto.product, dto.quantity)
            except InvalidArgumentError as e:
                status_code, body = status.HTTP_400_BAD_REQUEST, {"detail": e.code}
            except InvalidOperationError as e:
                status_code = ERROR_STATUS.get(e.code, status.HTTP_409_CONFLICT)
                body = {"detail": e.code}
            except Exception:
                logger.exception("order creation failed upstream")
                status_code, body = status.HTTP_503_SERVICE_UNAVAILABLE, {"detail": "UPSTREAM_UNAVAILABLE"}
            else:
                status_code = status.HTTP_201_CREATED
                body = OrderReadDTO.from_order(order).model_dump()

            # 4) Response
            if rec:
                finalize(rec, status_code, body, order_id=body.get("id"))
            return Response(body, status=status_code)


class OrderDetailView(APIView):
    """Read, change the quantity of, or remove a single order."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid: int):
        with providers.SERVICE_LOCK:
            order = providers.get_order_service().get_order(oid)
            if order is None:
                return _not_found()
            return Response(OrderReadDTO.from_order(order).model_dump(), status=200)

    def patch(self, request, oid: int):
        """Change the quantity of an order.

        Returns 200 with the order, 404 when it does not exist, or 422 with
        {detail: "INVALID_QUANTITY"} when the quantity is not positive.
        """
        try:
            dto = UpdateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        with providers.SERVICE_LOCK:
            service = providers.get_order_service()
            if not service.update_order(oid, dto.quantity):
                if service.get_order(oid) is None:
                    return _not_found()
                return Response({"detail": "INVALID_QUANTITY"}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
            return Response(OrderReadDTO.from_order(service.get_order(oid)).model_dump(), status=200)

    def delete(self, request, oid: int):
        """Remove an order, returning its units to the inventory."""
        with providers.SERVICE_LOCK:
            try:
                removed = providers.get_order_service().remove_order(oid)
            except Exception:
                logger.exception("order removal failed upstream", extra={"order_id": oid})
                return Response({"detail": "UPSTREAM_UNAVAILABLE"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        if not removed:
            return _not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)
