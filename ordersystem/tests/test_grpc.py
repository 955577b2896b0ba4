"""Tests for the gRPC adapter.

The servicer is first called directly with a fake context, then the demo
client runs against a real in-process server bound to a free port.
"""

import grpc
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from google.protobuf import empty_pb2

from ordersystem.adapters import MemoryStore
from ordersystem.domain import Drink, OrderService
from ordersystem.grpc_client import FIRST_ROUND, SECOND_ROUND, GrpcClient, drink_name
from ordersystem.grpc_server import OrderServicer, serve
from ordersystem.main import app
from ordersystem.pb import orders_pb2, orders_pb2_grpc
from ordersystem.providers import get_order_service


class Aborted(Exception):
    def __init__(self, code, details):
        super().__init__(details)
        self.code = code
        self.details = details


class FakeContext:
    """Minimal stand-in for ``grpc.ServicerContext``."""

    def __init__(self, remaining=None, metadata=()):
        self._remaining = remaining
        self._metadata = metadata

    def invocation_metadata(self):
        return self._metadata

    def time_remaining(self):
        return self._remaining

    def abort(self, code, details):
        raise Aborted(code, details)


@pytest.fixture
def servicer(service):
    return OrderServicer(service)


def order_request(drink_id, quantity):
    return orders_pb2.OrderRequest(item=orders_pb2.OrderItem(drink_id=drink_id, quantity=quantity))


def test_get_drinks(servicer):
    resp = servicer.GetDrinks(empty_pb2.Empty(), FakeContext())
    assert [(d.id, d.name, d.price) for d in resp.drinks] == [(1, "Espresso", 2.5)]


def test_order_drink_and_totals(servicer):
    ctx = FakeContext(metadata=(("x-request-id", "rid-1"),))
    assert servicer.OrderDrink(order_request(1, 2), ctx).value is True
    assert servicer.OrderDrink(order_request(1, 3), ctx).value is True

    orders = servicer.GetOrders(empty_pb2.Empty(), ctx).orders
    assert [(o.drink_id, o.quantity) for o in orders] == [(1, 2), (1, 3)]
    assert dict(servicer.GetTotals(empty_pb2.Empty(), ctx).totals) == {1: 5}


@pytest.mark.parametrize("request_", [order_request(0, 5), order_request(1, 0), order_request(7, 1), orders_pb2.OrderRequest()])
def test_order_drink_invalid_argument(servicer, service, request_):
    with pytest.raises(Aborted) as e:
        servicer.OrderDrink(request_, FakeContext())
    assert e.value.code == grpc.StatusCode.INVALID_ARGUMENT
    assert service.get_orders() == []


def test_expired_deadline(servicer, service):
    with pytest.raises(Aborted) as e:
        servicer.OrderDrink(order_request(1, 1), FakeContext(remaining=0))
    assert e.value.code == grpc.StatusCode.DEADLINE_EXCEEDED
    assert service.get_orders() == []


def test_drink_name():
    drinks = [orders_pb2.Drink(id=1, name="Beer")]
    assert drink_name(1, drinks) == "Beer"
    assert drink_name(2, drinks) == "Unknown"


@pytest.fixture
def running_server():
    drinks = [
        Drink(id=1, name="Spritzer", price=Decimal("2"), description="Wine with soda"),
        Drink(id=2, name="Beer", price=Decimal("3"), description="Hagenberger Gold"),
        Drink(id=3, name="Coffee", price=Decimal("1"), description="Mifare isn't that secure"),
    ]
    service = OrderService(MemoryStore(drinks=drinks, orders=[]))
    server, port = serve(service, address="127.0.0.1:0", max_workers=4)
    yield service, port
    server.stop(None)


def test_demo_client_end_to_end(running_server, capsys):
    """Both rounds land in the shared service and the bill adds them up."""
    service, port = running_server
    client = GrpcClient(target=f"127.0.0.1:{port}")
    try:
        totals = client.run()
    finally:
        client.close()

    expected = {d: FIRST_ROUND[d] + SECOND_ROUND[d] for d in FIRST_ROUND}
    assert totals == expected
    assert service.get_totals() == expected
    assert len(service.get_orders()) == len(FIRST_ROUND) + len(SECOND_ROUND)
    assert "Total: 8 x Beer" in capsys.readouterr().out


def test_invalid_order_over_the_wire(running_server):
    service, port = running_server
    with grpc.insecure_channel(f"127.0.0.1:{port}") as channel:
        stub = orders_pb2_grpc.OrderServiceStub(channel)
        with pytest.raises(grpc.RpcError) as e:
            stub.OrderDrink(order_request(1, -1), timeout=5)
    assert e.value.code() == grpc.StatusCode.INVALID_ARGUMENT
    assert e.value.details() == "Invalid DrinkID or Amount"
    assert service.get_orders() == []


def test_oversized_rest_order_keeps_grpc_totals_working(service, servicer):
    """An amount beyond int32 is rejected over REST and never reaches the totals."""
    app.dependency_overrides[get_order_service] = lambda: service
    try:
        r = TestClient(app).post("/api/order", json={"drinkId": 1, "amount": 10**30})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 400

    servicer.OrderDrink(order_request(1, 2), FakeContext())
    assert dict(servicer.GetTotals(empty_pb2.Empty(), FakeContext()).totals) == {1: 2}
