import pytest

from apps.orders import idempotency, providers


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False
    providers.reset_order_service()
    idempotency.clear()
    yield
    providers.reset_order_service()
    idempotency.clear()


@pytest.fixture
def order_service():
    """The shared stub-backed service the API views talk to."""
    return providers.get_order_service()
