"""Domain models, ports and service for drink orders.

This module contains the dataclasses used as DTOs for drinks and orders,
the protocol definition (port) every storage backend implements, the
pure aggregation over the ledger, and the domain service that both the
REST and the gRPC adapters call.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol
import logging

logger = logging.getLogger("ordersystem.domain")

# int32 range of the gRPC fields and of the SQL integer columns
MAX_ID_OR_AMOUNT = 2**31 - 1


# ---- Errors ----
class OrderSystemError(Exception):
    """Base class for every error raised by the order system."""


class ConfigurationError(OrderSystemError):
    """A required deployment setting is missing. Fatal at startup."""


class BackendConnectionError(OrderSystemError):
    """The storage backend could not be reached. Fatal at startup."""


class SchemaError(OrderSystemError):
    """The storage schema could not be created. Fatal at startup."""


class StorageError(OrderSystemError):
    """A backend operation failed after startup."""


class OrderValidationError(OrderSystemError, ValueError):
    """Caller supplied order data that cannot be accepted.

    Attributes:
        code: Short machine readable error code (e.g. 'UNKNOWN_DRINK').
        message: Human readable description returned to the caller.
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class Drink:
    """A purchasable drink from the catalog.

    Attributes:
        id: Unique identifier assigned by the store.
        name: Display name, never empty.
        price: Non-negative price.
        description: Free text, may be empty.
    """

    id: int
    name: str
    price: Decimal
    description: str = ""


@dataclass(frozen=True)
class Order:
    """A single entry of the ledger.

    Attributes:
        id: Identifier assigned by the store, or None if not yet stored.
        drink_id: Identifier of the ordered drink.
        amount: Ordered quantity, always positive once stored.
        created_at: Acceptance time, set by ``OrderService``.

    The dataclass is frozen because orders are immutable once accepted.
    """

    id: Optional[int]
    drink_id: int
    amount: int
    created_at: datetime


# ---- Ports (DIP) ----
class StorePort(Protocol):
    """Port describing the persistence operations used by the domain.

    Implementers own the catalog and the ledger. Read operations must not
    hand out mutable references to their internal state.
    """

    def list_drinks(self) -> List[Drink]:
        """Return every drink of the catalog."""
        raise NotImplementedError()

    def get_drink(self, drink_id: int) -> Optional[Drink]:
        """Return the drink with the given id, or None when unknown."""
        raise NotImplementedError()

    def list_orders(self) -> List[Order]:
        """Return every (non deleted) order in insertion order."""
        raise NotImplementedError()

    def totals(self) -> Dict[int, int]:
        """Return the ordered quantity per drink.

        Drinks without orders are absent from the mapping; callers treat a
        missing key as zero.
        """
        raise NotImplementedError()

    def append_order(self, order: Order) -> Order:
        """Store a new order and return it with its assigned id.

        Raises:
            StorageError: If the backend rejected the write. Nothing is
                stored in that case.
        """
        raise NotImplementedError()

    def ping(self) -> bool:
        """Return True when the backend is reachable."""
        raise NotImplementedError()


# ---- Aggregation ----
def compute_totals(orders: Iterable[Order]) -> Dict[int, int]:
    """Sum the ordered quantity per drink.

    Args:
        orders: Ledger entries to aggregate.

    Returns:
        dict[int, int]: Drink id mapped to its total quantity. Drinks that
        were never ordered do not appear.
    """
    totals: Dict[int, int] = {}
    for order in orders:
        totals[order.drink_id] = totals.get(order.drink_id, 0) + order.amount
    return totals


# ---- Domain service ----
class OrderService:
    """Domain service exposing the catalog, the ledger and the totals.

    This is the single surface used by the transport adapters. It owns
    validation and the acceptance timestamp; persistence is delegated to
    the provided store.
    """

    def __init__(self, store: StorePort, require_known_drink: bool = True):
        """Initialize the service with its store.

        Args:
            store: StorePort holding the catalog and the ledger.
            require_known_drink: When True, orders referencing a drink that
                is not in the catalog are rejected.
        """
        self.store = store
        self.require_known_drink = require_known_drink

    def get_catalog(self) -> List[Drink]:
        return self.store.list_drinks()

    def get_orders(self) -> List[Order]:
        return self.store.list_orders()

    def get_totals(self) -> Dict[int, int]:
        return self.store.totals()

    def place_order(self, drink_id: int, amount: int) -> Order:
        """Validate an order, stamp it and append it to the ledger.

        Args:
            drink_id: Identifier of the drink to order.
            amount: Quantity requested, must be positive.

        Returns:
            The stored Order, including its id and acceptance time.

        Raises:
            OrderValidationError: With one of the following codes:
                'INVALID_DRINK_OR_AMOUNT' if the drink id is unset or either
                value is not an integer in 1..MAX_ID_OR_AMOUNT.
                'UNKNOWN_DRINK' if the drink is not in the catalog and the
                known-drink check is enabled.
            StorageError: If the store failed to persist the order.
        """
        if not _in_id_range(drink_id) or not _in_id_range(amount):
            logger.info("order rejected", extra={"drink_id": drink_id, "amount": amount})
            raise OrderValidationError("INVALID_DRINK_OR_AMOUNT", "Invalid DrinkID or Amount")

        if self.require_known_drink and self.store.get_drink(drink_id) is None:
            logger.info("order rejected", extra={"drink_id": drink_id, "amount": amount})
            raise OrderValidationError("UNKNOWN_DRINK", f"Unknown drink {drink_id}")

        order = Order(id=None, drink_id=drink_id, amount=amount, created_at=datetime.now(timezone.utc))
        stored = self.store.append_order(order)
        logger.info("order accepted", extra={"order_id": stored.id, "drink_id": drink_id, "amount": amount})
        return stored


def _in_id_range(value) -> bool:
    # bool is an int subclass; True must not count as drink 1
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ID_OR_AMOUNT
