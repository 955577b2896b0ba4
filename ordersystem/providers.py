"""Service provider helpers for wiring OrderService with a store.

``build_order_service`` returns an ``OrderService`` backed by the store the
deployment selected with ``STORE_BACKEND``. ``get_order_service`` caches
one instance per process so every REST request and every gRPC call share
the same store.
"""

import logging
from functools import lru_cache
from typing import Optional

from .adapters import MemoryStore
from .config import Settings, get_settings
from .domain import OrderService, StorePort
from .repo import SQLStore

logger = logging.getLogger("ordersystem.providers")


def build_store(settings: Settings) -> StorePort:
    """Create the store selected by ``settings.store_backend``.

    Raises:
        ConfigurationError: For a postgres backend with missing settings.
        BackendConnectionError: When the database cannot be reached.
        SchemaError: When the tables cannot be created.
    """
    if settings.store_backend == "postgres":
        return SQLStore.connect(settings)
    return MemoryStore()


def build_order_service(settings: Optional[Settings] = None) -> OrderService:
    settings = settings or get_settings()
    store = build_store(settings)
    logger.info(
        "order service ready",
        extra={"backend": settings.store_backend, "require_known_drink": settings.require_known_drink},
    )
    return OrderService(store, require_known_drink=settings.require_known_drink)


@lru_cache
def get_order_service() -> OrderService:
    """Return the process wide OrderService, building it on first use."""
    return build_order_service()
