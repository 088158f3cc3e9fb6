from django.http import JsonResponse

from apps.orders import providers
from apps.orders.http_adapters import BREAKERS


def health_view(_request):
    with providers.SERVICE_LOCK:
        count = len(providers.get_order_service().get_orders())

    components = {"orders": {"ok": True, "count": count}}
    for name, breaker in BREAKERS.items():
        state = breaker.state
        components[name] = {"ok": state != "OPEN", "circuit": state}

    ok = all(c["ok"] for c in components.values())
    code = 200 if ok else 503
    return JsonResponse({"ok": ok, "components": components}, status=code)
