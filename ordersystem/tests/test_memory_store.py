"""Tests for the in-memory store: seed data, id assignment and copies."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from ordersystem.adapters import SEED_DRINKS, SEED_ORDERS, MemoryStore
from ordersystem.domain import Drink, Order


def test_default_seed():
    store = MemoryStore()
    drinks = store.list_drinks()
    assert [d.id for d in drinks] == list(range(1, len(SEED_DRINKS) + 1))
    assert drinks[0].name == "Espresso"
    assert drinks[0].price == Decimal("2.5")
    assert len(store.list_orders()) == len(SEED_ORDERS)
    assert store.totals() == {1: 2, 2: 3, 3: 1, 4: 2, 5: 5, 6: 8}


def test_append_assigns_sequential_ids():
    store = MemoryStore()
    now = datetime.now(timezone.utc)
    stored = store.append_order(Order(id=None, drink_id=2, amount=1, created_at=now))
    assert stored.id == len(SEED_ORDERS) + 1
    assert store.list_orders()[-1] == stored


def test_reads_return_copies():
    """Mutating a returned list does not reach the store."""
    store = MemoryStore()
    store.list_orders().clear()
    store.list_drinks().clear()
    assert len(store.list_orders()) == len(SEED_ORDERS)
    assert len(store.list_drinks()) == len(SEED_DRINKS)


def test_get_drink(espresso_store):
    assert espresso_store.get_drink(1).name == "Espresso"
    assert espresso_store.get_drink(2) is None
    assert espresso_store.ping() is True


@pytest.mark.parametrize(
    "drinks, message",
    [
        ([Drink(id=1, name="", price=Decimal("1"))], "empty name"),
        ([Drink(id=1, name="Beer", price=Decimal("-0.5"))], "negative price"),
        ([Drink(id=1, name="Beer", price=Decimal("3")), Drink(id=1, name="Coffee", price=Decimal("1"))], "duplicate"),
    ],
)
def test_bad_catalog_rejected(drinks, message):
    """A catalog breaking the drink rules is refused at construction."""
    with pytest.raises(ValueError, match=message):
        MemoryStore(drinks=drinks, orders=[])
