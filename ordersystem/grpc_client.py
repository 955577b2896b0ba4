"""Demo client for the gRPC order service.

Lists the drinks, orders two rounds and prints the bill using the totals
computed by the server.
"""

import logging
from typing import Dict, Iterable, Optional

import grpc
from google.protobuf import empty_pb2

from .config import get_settings
from .logging_filters import configure_logging
from .pb import orders_pb2, orders_pb2_grpc

logger = logging.getLogger("ordersystem.grpc_client")

FIRST_ROUND = {1: 2, 2: 2, 3: 2}
SECOND_ROUND = {1: 6, 2: 6, 3: 6}


def drink_name(drink_id: int, drinks: Iterable) -> str:
    for d in drinks:
        if d.id == drink_id:
            return d.name
    return "Unknown"


class GrpcClient:
    """Thin wrapper around the generated ``OrderServiceStub``."""

    def __init__(self, target: Optional[str] = None, timeout: float = 5.0, channel: Optional[grpc.Channel] = None):
        """Open a channel to the order service.

        Args:
            target: ``host:port`` of the server; ``GRPC_TARGET`` by default.
            timeout: Deadline in seconds applied to every call.
            channel: Existing channel to use instead of opening one.
        """
        self.channel = channel or grpc.insecure_channel(target or get_settings().grpc_target)
        self.stub = orders_pb2_grpc.OrderServiceStub(self.channel)
        self.timeout = timeout

    def close(self) -> None:
        self.channel.close()

    def order_round(self, round_: Dict[int, int], drinks) -> None:
        for drink_id, qty in round_.items():
            item = orders_pb2.OrderItem(drink_id=drink_id, quantity=qty)
            self.stub.OrderDrink(orders_pb2.OrderRequest(item=item), timeout=self.timeout)
            print(f"\t> Ordering: {qty} x {drink_name(drink_id, drinks)}")

    def run(self) -> Dict[int, int]:
        """Run the demo scenario.

        Returns:
            dict[int, int]: The totals returned by the server at the end.

        Raises:
            grpc.RpcError: If any call fails.
        """
        print("Requesting drinks")
        drinks = self.stub.GetDrinks(empty_pb2.Empty(), timeout=self.timeout).drinks
        print("Available drinks:")
        for d in drinks:
            print(f'\t> id:{d.id}  name:"{d.name}"  price:{d.price:g}  description:"{d.description}"')

        print("Ordering drinks")
        self.order_round(FIRST_ROUND, drinks)
        print("Ordering another round of drinks")
        self.order_round(SECOND_ROUND, drinks)

        print("Getting the bill")
        totals = dict(self.stub.GetTotals(empty_pb2.Empty(), timeout=self.timeout).totals)
        for drink_id in sorted(totals):
            print(f"\t> Total: {totals[drink_id]} x {drink_name(drink_id, drinks)}")
        return totals


def main() -> None:
    configure_logging(get_settings().log_level)
    client = GrpcClient()
    try:
        client.run()
    except grpc.RpcError as exc:
        logger.error("client run failed", extra={"code": str(exc.code()), "details": exc.details()})
        raise SystemExit(1) from exc
    finally:
        client.close()
    print("Orders complete!")


if __name__ == "__main__":
    main()
