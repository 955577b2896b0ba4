"""Order system REST API built with FastAPI.

This module exposes the drink menu, the order ledger, the per-drink totals
and the endpoint to place an order. Request bodies are parsed with Pydantic
models; validation of the order itself and persistence are delegated to the
``OrderService`` returned by ``providers.get_order_service``.

Error mapping:
    - malformed body or rejected order -> 400 ``{"error": <message>}``
    - storage failure -> 500 ``{"error": "STORAGE_ERROR"}``
"""

import logging
import uuid
from typing import Dict, List

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import get_settings
from .domain import OrderService, OrderValidationError, StorageError
from .logging_filters import REQUEST_ID_CTX, configure_logging
from .providers import get_order_service
from .schemas import DrinkOut, OrderIn, OrderOut

app = FastAPI(title="Order System")

logger = logging.getLogger("ordersystem.api")


@app.on_event("startup")
def _startup_service():
    # configuration and connection errors abort startup here
    configure_logging(get_settings().log_level)
    get_order_service()


@app.exception_handler(RequestValidationError)
def _malformed_body(request: Request, exc: RequestValidationError):
    message = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
    return JSONResponse(status_code=400, content={"error": message or "malformed request"})


@app.exception_handler(OrderValidationError)
def _invalid_order(request: Request, exc: OrderValidationError):
    return JSONResponse(status_code=400, content={"error": exc.message})


@app.exception_handler(StorageError)
def _storage_failure(request: Request, exc: StorageError):
    logger.error("storage error", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=500, content={"error": "STORAGE_ERROR"})


@app.get("/health")
def health(service: OrderService = Depends(get_order_service)):
    """Liveness/health probe endpoint.

    Returns:
        JSONResponse: 200 when the store answers, 503 otherwise.
    """
    store_ok = service.store.ping()
    return JSONResponse(
        status_code=200 if store_ok else 503,
        content={"ok": store_ok, "components": {"store": {"ok": store_ok}}},
    )


@app.get("/api/menu", response_model=List[DrinkOut])
def get_menu(service: OrderService = Depends(get_order_service)):
    """Return the menu of all drinks."""
    return [DrinkOut.from_domain(d) for d in service.get_catalog()]


@app.get("/api/order/all", response_model=List[OrderOut], response_model_by_alias=True)
def get_orders(service: OrderService = Depends(get_order_service)):
    """Return all orders in the order they were placed."""
    return [OrderOut.from_domain(o) for o in service.get_orders()]


@app.get("/api/order/total", response_model=Dict[str, int])
def get_orders_total(service: OrderService = Depends(get_order_service)):
    """Return the total ordered amount per drink id.

    Drinks that were never ordered are missing from the object.
    """
    return {str(drink_id): total for drink_id, total in service.get_totals().items()}


@app.post("/api/order")
def post_order(body: OrderIn, service: OrderService = Depends(get_order_service)):
    """Add an order to the ledger.

    Args:
        body: ``{"drinkId": int, "amount": int}``.

    Returns:
        str: ``"ok"`` with HTTP 200 once the order is stored.

    Raises:
        OrderValidationError: Mapped to 400 when the drink id or the amount
            is rejected.
        StorageError: Mapped to 500 when the store failed.
    """
    service.place_order(body.drink_id, body.amount)
    return "ok"


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    token = REQUEST_ID_CTX.set(rid)
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"path": request.url.path, "method": request.method})
        REQUEST_ID_CTX.reset(token)
    response.headers["X-Request-ID"] = rid
    return response


def run() -> None:
    settings = get_settings()
    uvicorn.run("ordersystem.main:app", host="0.0.0.0", port=settings.http_port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
