"""gRPC message and stub modules for ``protos/orders.proto``.

The modules are generated in memory by grpcio-tools when this module is
first imported, so no compiled ``_pb2`` files are kept in the tree.
"""

import grpc

orders_pb2, orders_pb2_grpc = grpc.protos_and_services("ordersystem/protos/orders.proto")
