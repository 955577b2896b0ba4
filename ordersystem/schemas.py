"""Pydantic schemas for the REST API.

Field names on the wire are camelCase (``drinkId``, ``createdAt``); the
schemas also accept the snake_case names when built from Python.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from .domain import Drink, Order


class DrinkOut(BaseModel):
    """Catalog entry as returned by ``GET /api/menu``."""

    id: int
    name: str
    price: float
    description: str

    @classmethod
    def from_domain(cls, drink: Drink) -> "DrinkOut":
        return cls(id=drink.id, name=drink.name, price=float(drink.price), description=drink.description)


class OrderOut(BaseModel):
    """Ledger entry as returned by ``GET /api/order/all``."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    drink_id: int = Field(alias="drinkId")
    amount: int
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, order: Order) -> "OrderOut":
        return cls(id=order.id, drink_id=order.drink_id, amount=order.amount, created_at=order.created_at)


class OrderIn(BaseModel):
    """Body of ``POST /api/order``.

    Attributes:
        drink_id: Drink to order. Range checks are left to ``OrderService``
            so REST and gRPC reject the same inputs with the same message.
        amount: Requested quantity.
    """

    model_config = ConfigDict(populate_by_name=True)

    drink_id: StrictInt = Field(alias="drinkId")
    amount: StrictInt
