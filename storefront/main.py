"""Orders API built with FastAPI.

This module exposes the health check and the order endpoints. Validation
is performed with Pydantic schemas, while the checkout workflow and order
maintenance are delegated to ``OrderService`` (wired per request by
``providers.get_order_service``).

Domain errors map to HTTP responses in one place:
``EntityNotFoundError`` -> 404 ``NOT_FOUND`` and ``InvalidArgumentError``
-> 400 ``INVALID_ARGUMENT``.

Idempotency: when an ``Idempotency-Key`` header is sent on create, the first
request is processed and its response stored. Retries with the same key and
payload replay the stored response (header ``Idempotent-Replay: true``);
reusing the key with a different payload returns 409. A request that fails for
any other reason frees its key and returns 503, so a retry runs again.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Header, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import db
from .domain import EntityNotFoundError, InvalidArgumentError
from .idempotency import IdempotencyConflict, finalize, get_or_create_idempotent, release
from .logging_filters import configure_logging
from .middleware import api_size_limit_middleware, request_id_middleware
from .providers import get_order_service
from .schemas import CreateOrderDTO, OrderPageDTO, OrderReadDTO, UpdateOrderDTO
from .services import OrderService

configure_logging()
logger = logging.getLogger("storefront.api")

app = FastAPI(title="Storefront Orders Service")

app.middleware("http")(api_size_limit_middleware)
app.middleware("http")(request_id_middleware)


@app.on_event("startup")
def _startup_db():
    db.wait_for_db()
    db.init_db()


# ---- error mapping ----

@app.exception_handler(EntityNotFoundError)
async def _not_found(_request: Request, exc: EntityNotFoundError):
    return JSONResponse({"detail": exc.code, "message": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)


@app.exception_handler(InvalidArgumentError)
async def _invalid_argument(_request: Request, exc: InvalidArgumentError):
    return JSONResponse({"detail": exc.code, "message": str(exc)}, status_code=status.HTTP_400_BAD_REQUEST)


# ---- endpoints ----

@app.get("/health")
def health(session: Session = Depends(db.get_db)):
    """Liveness/readiness check.

    Returns 200 when the database answers a trivial query, 503 otherwise.
    """
    db_ok = db.ping(session)
    return JSONResponse(
        {"ok": db_ok, "components": {"db": {"ok": db_ok}}},
        status_code=200 if db_ok else 503,
    )


@app.post("/api/orders/", status_code=status.HTTP_201_CREATED, response_model=OrderReadDTO)
def create_order(
    dto: CreateOrderDTO,
    session: Session = Depends(db.get_db),
    service: OrderService = Depends(get_order_service),
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Create an order from a cart.

    Returns:
        201 with the order on success; 404 when the user or cart is
        unknown; 400 for an invalid payment method; 409 for an idempotency
        key conflict or a key whose first request is still running; 503 when
        an idempotent request fails for another reason (the key is freed); the
        stored response (200 by default) on an idempotent replay.
    """
    rec = None
    if idempotency_key:
        try:
            existing, rec = get_or_create_idempotent(session, idempotency_key, dto.model_dump(mode="json"))
        except IdempotencyConflict:
            return JSONResponse({"detail": "IDEMPOTENCY_CONFLICT"}, status_code=status.HTTP_409_CONFLICT)
        if existing:
            if not rec.response_status:
                return JSONResponse({"detail": "IDEMPOTENCY_IN_PROGRESS"}, status_code=status.HTTP_409_CONFLICT)
            return JSONResponse(
                rec.response_body,
                status_code=rec.response_status,
                headers={"Idempotent-Replay": "true"},
            )

    try:
        order = service.create_order(dto)
    except (EntityNotFoundError, InvalidArgumentError) as e:
        if rec is None:
            raise
        code = status.HTTP_404_NOT_FOUND if isinstance(e, EntityNotFoundError) else status.HTTP_400_BAD_REQUEST
        body = {"detail": e.code, "message": str(e)}
        finalize(session, rec, code, body)
        return JSONResponse(body, status_code=code)
    except Exception:
        if rec is None:
            raise
        # Not a property of the payload: free the key so a retry runs again.
        logger.exception("order creation failed, releasing idempotency key")
        release(session, rec)
        return JSONResponse({"detail": "UPSTREAM_UNAVAILABLE"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    body = OrderReadDTO.model_validate(order).model_dump(mode="json")
    if rec is not None:
        finalize(session, rec, status.HTTP_201_CREATED, body, order_id=order.id)
    return JSONResponse(body, status_code=status.HTTP_201_CREATED)


@app.get("/api/orders/", response_model=OrderPageDTO)
def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: OrderService = Depends(get_order_service),
):
    count, orders = service.list_orders(page, page_size)
    return OrderPageDTO(
        count=count,
        page=page,
        page_size=page_size,
        results=[OrderReadDTO.model_validate(o) for o in orders],
    )


@app.get("/api/orders/{order_id}", response_model=OrderReadDTO)
def retrieve_order(order_id: int, service: OrderService = Depends(get_order_service)):
    order = service.get_order_by_id(order_id)
    if order is None:
        return JSONResponse({"detail": "NOT_FOUND"}, status_code=status.HTTP_404_NOT_FOUND)
    return OrderReadDTO.model_validate(order)


@app.put("/api/orders/{order_id}", response_model=OrderReadDTO)
def update_order(order_id: int, dto: UpdateOrderDTO, service: OrderService = Depends(get_order_service)):
    return OrderReadDTO.model_validate(service.update_order(dto, order_id))


@app.delete("/api/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: int, service: OrderService = Depends(get_order_service)):
    service.delete_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
