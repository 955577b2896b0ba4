"""In-process adapter for the ``StorePort``.

``MemoryStore`` keeps the catalog and the ledger in plain lists for the
lifetime of the process. It is used for local development, for the gRPC
demo and by the tests; nothing survives a restart.
"""

import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .domain import Drink, Order, StorePort, compute_totals

SEED_DRINKS = [
    ("Espresso", Decimal("2.5"), "Strong coffee shot"),
    ("Cappuccino", Decimal("4.0"), "Coffee with milk foam"),
    ("Matcha Latte", Decimal("4.5"), "Green tea powder with steamed milk"),
    ("Chai Latte", Decimal("3.75"), "Spiced black tea with milk"),
    ("Iced Tea", Decimal("3.0"), "Chilled tea served with lemon"),
    ("Hot Chocolate", Decimal("5.0"), "Rich and creamy chocolate drink"),
]

# (drink position in SEED_DRINKS, amount, created_at)
SEED_ORDERS = [
    (0, 2, datetime(2025, 9, 2, 15, 4, 5, tzinfo=timezone.utc)),
    (1, 3, datetime(2025, 9, 3, 15, 4, 25, tzinfo=timezone.utc)),
    (2, 1, datetime(2025, 9, 4, 15, 24, 5, tzinfo=timezone.utc)),
    (3, 2, datetime(2025, 9, 5, 19, 4, 5, tzinfo=timezone.utc)),
    (4, 5, datetime(2025, 9, 6, 15, 4, 5, tzinfo=timezone.utc)),
    (5, 8, datetime(2025, 9, 7, 15, 4, 5, tzinfo=timezone.utc)),
]


def _check_catalog(drinks: List[Drink]) -> None:
    seen = set()
    for drink in drinks:
        if not drink.name:
            raise ValueError(f"drink {drink.id} has an empty name")
        if drink.price < 0:
            raise ValueError(f"drink {drink.id} has a negative price")
        if drink.id in seen:
            raise ValueError(f"duplicate drink id {drink.id}")
        seen.add(drink.id)


class MemoryStore(StorePort):
    """Volatile implementation of ``StorePort``.

    The default menu gets sequential ids starting at 1; a caller supplied
    catalog keeps its own ids, which must be unique. Orders receive
    sequential ids in append order. All access goes through a re-entrant
    lock, so concurrent appends from request threads are serialized and
    never lose an entry.
    """

    def __init__(self, drinks: Optional[Iterable[Drink]] = None, orders: Optional[Iterable[Order]] = None):
        """Build the store.

        Args:
            drinks: Catalog to serve. When omitted, the default menu is
                used together with its seed orders.
            orders: Pre-existing ledger entries. Ids are reassigned.

        Raises:
            ValueError: If a drink has an empty name, a negative price or
                an id already used by another drink.
        """
        self._lock = threading.RLock()
        if drinks is None:
            catalog = [Drink(id=i, name=n, price=p, description=d) for i, (n, p, d) in enumerate(SEED_DRINKS, start=1)]
            if orders is None:
                orders = [
                    Order(id=None, drink_id=catalog[pos].id, amount=amount, created_at=created_at)
                    for pos, amount, created_at in SEED_ORDERS
                ]
        else:
            catalog = list(drinks)
        _check_catalog(catalog)
        self._drinks: List[Drink] = catalog
        self._orders: List[Order] = [
            Order(id=i, drink_id=o.drink_id, amount=o.amount, created_at=o.created_at)
            for i, o in enumerate(orders or [], start=1)
        ]

    def list_drinks(self) -> List[Drink]:
        with self._lock:
            return list(self._drinks)

    def get_drink(self, drink_id: int) -> Optional[Drink]:
        with self._lock:
            for drink in self._drinks:
                if drink.id == drink_id:
                    return drink
        return None

    def list_orders(self) -> List[Order]:
        with self._lock:
            return list(self._orders)

    def totals(self) -> Dict[int, int]:
        with self._lock:
            snapshot = list(self._orders)
        return compute_totals(snapshot)

    def append_order(self, order: Order) -> Order:
        """Append an order to the ledger.

        The id is the next integer after the current ledger length; both the
        id assignment and the append happen under the lock.

        Args:
            order: Order to store; its ``id`` is ignored.

        Returns:
            Order: The stored copy with its assigned id.
        """
        with self._lock:
            stored = Order(
                id=len(self._orders) + 1,
                drink_id=order.drink_id,
                amount=order.amount,
                created_at=order.created_at,
            )
            self._orders.append(stored)
            return stored

    def ping(self) -> bool:
        return True
