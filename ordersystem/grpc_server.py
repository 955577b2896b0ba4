"""gRPC adapter for the order service.

``OrderServicer`` maps the ``ordersystem.OrderService`` RPCs onto an
``OrderService`` instance handed to it at construction; it keeps no state
of its own. Rejected orders abort with ``INVALID_ARGUMENT``, storage
failures with ``INTERNAL``.
"""

import logging
from concurrent import futures
from typing import Optional, Tuple

import grpc
from google.protobuf import wrappers_pb2

from .config import get_settings
from .domain import OrderService, OrderValidationError, StorageError
from .logging_filters import REQUEST_ID_CTX, configure_logging
from .pb import orders_pb2, orders_pb2_grpc
from .providers import build_order_service

logger = logging.getLogger("ordersystem.grpc")


class OrderServicer(orders_pb2_grpc.OrderServiceServicer):
    """Implements the ``OrderService`` gRPC service on top of the domain."""

    def __init__(self, service: OrderService):
        self.service = service

    def _begin(self, context, method: str) -> None:
        rid = dict(context.invocation_metadata() or ()).get("x-request-id", "-")
        REQUEST_ID_CTX.set(rid)
        remaining = context.time_remaining()
        if remaining is not None and remaining <= 0:
            context.abort(grpc.StatusCode.DEADLINE_EXCEEDED, "deadline exceeded")
        logger.info("rpc handled", extra={"method": method})

    def _storage_failed(self, context, exc: StorageError):
        logger.error("storage error", extra={"error": str(exc)})
        context.abort(grpc.StatusCode.INTERNAL, "STORAGE_ERROR")

    def GetDrinks(self, request, context):
        """Return every drink of the catalog."""
        self._begin(context, "GetDrinks")
        try:
            drinks = self.service.get_catalog()
        except StorageError as exc:
            self._storage_failed(context, exc)
        return orders_pb2.DrinkList(
            drinks=[
                orders_pb2.Drink(id=d.id, name=d.name, price=float(d.price), description=d.description)
                for d in drinks
            ]
        )

    def OrderDrink(self, request, context):
        """Place one order.

        Returns:
            BoolValue: ``True`` once the order is stored.
        """
        self._begin(context, "OrderDrink")
        try:
            self.service.place_order(request.item.drink_id, request.item.quantity)
        except OrderValidationError as exc:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, exc.message)
        except StorageError as exc:
            self._storage_failed(context, exc)
        return wrappers_pb2.BoolValue(value=True)

    def GetOrders(self, request, context):
        self._begin(context, "GetOrders")
        try:
            orders = self.service.get_orders()
        except StorageError as exc:
            self._storage_failed(context, exc)
        return orders_pb2.AllOrders(
            orders=[orders_pb2.OrderItem(drink_id=o.drink_id, quantity=o.amount) for o in orders]
        )

    def GetTotals(self, request, context):
        self._begin(context, "GetTotals")
        try:
            totals = self.service.get_totals()
        except StorageError as exc:
            self._storage_failed(context, exc)
        return orders_pb2.OrderTotals(totals=totals)


def serve(
    service: Optional[OrderService] = None,
    address: Optional[str] = None,
    max_workers: Optional[int] = None,
) -> Tuple[grpc.Server, int]:
    """Start a gRPC server for the given service.

    Args:
        service: OrderService to expose. Built from the settings when omitted.
        address: Listen address; defaults to ``[::]:<GRPC_PORT>``. A port of
            0 binds a free port.
        max_workers: Size of the handler thread pool.

    Returns:
        tuple[grpc.Server, int]: The started server and the bound port.

    Raises:
        ConfigurationError, BackendConnectionError, SchemaError: When the
            service has to be built and its store cannot be initialized.
    """
    settings = get_settings()
    service = service or build_order_service(settings)
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers or settings.grpc_workers))
    orders_pb2_grpc.add_OrderServiceServicer_to_server(OrderServicer(service), server)
    port = server.add_insecure_port(address or f"[::]:{settings.grpc_port}")
    server.start()
    logger.info("gRPC server running", extra={"port": port})
    return server, port


def main() -> None:
    configure_logging(get_settings().log_level)
    server, _ = serve()
    server.wait_for_termination()


if __name__ == "__main__":
    main()
