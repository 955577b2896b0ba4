"""Drink ordering service: catalog, order ledger and per-drink totals.

The same ``OrderService`` is served over REST (``ordersystem.main``) and
gRPC (``ordersystem.grpc_server``), on an in-memory or a Postgres store.
"""

__version__ = "0.1.0"
