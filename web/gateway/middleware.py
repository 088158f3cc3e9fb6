"""Gateway middleware for the orders API.

``RequestIdMiddleware`` makes sure every request carries an identifier. The
value comes from the incoming ``X-Request-ID`` header or is generated as a
UUIDv4. It is stored on the request and in ``REQUEST_ID_CTX`` so the log
filter and the outgoing HTTP clients can pick it up, and it is echoed back
in the ``X-Request-ID`` response header.

``ApiSizeLimitMiddleware`` rejects oversized bodies under ``/api/`` before
they reach the views.
"""

import uuid
import contextvars
from django.conf import settings
from django.http import JsonResponse

from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")


class RequestIdMiddleware(MiddlewareMixin):
    """Django middleware that sets and returns a per-request identifier."""

    HEADER = "HTTP_X_REQUEST_ID"       # incoming header as found in request.META
    RESPONSE_HEADER = "X-Request-ID"   # header added to outgoing responses

    def process_request(self, request):
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        request._request_id_token = REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        """Add the request id header and restore the previous context value."""
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        token = getattr(request, "_request_id_token", None)
        if token is not None:
            REQUEST_ID_CTX.reset(token)
            request._request_id_token = None
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    def process_request(self, request):
        if request.path.startswith("/api/"):
            limit = getattr(settings, "API_MAX_BYTES", 1024 * 1024)
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > limit:
                return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
