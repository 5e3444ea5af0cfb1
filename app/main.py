import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import settings
from app.database import create_db_and_tables
from app.errors import ERROR_STATUS_CODES, OrderServiceError
from app.routes import (
    admin_orders,
    cod_orders,
    dev,
    health,
    order_tracking,
    refunds,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Marketplace COD Orders API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OrderServiceError)
async def order_service_error_handler(request: Request, exc: OrderServiceError) -> JSONResponse:
    """Map OrderServiceError subclasses to HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors()), "kind": "validation_error"},
    )


app.include_router(cod_orders.router, prefix="/orders", tags=["Orders"])
app.include_router(order_tracking.router, prefix="/order", tags=["Order Tracking"])
app.include_router(refunds.router, tags=["Refunds"])
app.include_router(admin_orders.router, prefix="/admin", tags=["Admin Orders"])
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(dev.router, prefix="/dev", tags=["Dev"])


@app.get("/")
def root():
    return {
        "order_endpoints": [
            "/orders/cod", "/orders"
        ],
        "tracking_endpoints": [
            "/order/{order_id}", "/order/{order_id}/timeline",
            "/order/{order_id}/cancel", "/order/{order_id}/return"
        ],
        "refund_endpoints": [
            "/refund-request"
        ],
        "admin_endpoints": [
            "/admin/orders", "/admin/orders/stats",
            "/admin/order/{order_id}/status", "/admin/order/{order_id}/advance",
            "/admin/order/{order_id}/delivery-person"
        ],
    }
