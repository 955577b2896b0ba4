import pytest
from decimal import Decimal

from ordersystem.adapters import MemoryStore
from ordersystem.config import get_settings
from ordersystem.domain import Drink, OrderService
from ordersystem.providers import get_order_service


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    # every test starts from the in-memory backend and fresh caches
    monkeypatch.setenv("STORE_BACKEND", "memory")
    get_settings.cache_clear()
    get_order_service.cache_clear()
    yield
    get_settings.cache_clear()
    get_order_service.cache_clear()


@pytest.fixture
def espresso_store():
    """Store with a one-drink catalog and an empty ledger."""
    return MemoryStore(drinks=[Drink(id=1, name="Espresso", price=Decimal("2.5"), description="Strong coffee shot")], orders=[])


@pytest.fixture
def service(espresso_store):
    return OrderService(espresso_store)
