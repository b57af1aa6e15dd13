"""
FastAPI Application Entry Point

Room Service Order Intake - guests order to their room or table,
staff work through the active queue and close orders out.

Endpoints:
    - GET /health: Liveness and database check
    - POST /orders: Create order
    - PUT /orders/{id}: Edit an active order (items replaced wholesale)
    - POST /orders/{id}/duplicate: Re-order a previous order
    - POST /orders/{id}/complete: Mark an order completed
    - GET /orders/user: A guest's own orders
    - GET /orders/admin/active: Service queue, oldest first
    - GET /orders/admin/history: Completed orders, latest first
    - GET /orders/{id}: Single order

Author: Khalil_Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.config import get_settings, setup_logging
from app.database import get_db, init_db, engine
from app.exceptions import OrderServiceError, ValidationError
from app.schemas import (
    OrderCreate,
    OrderUpdate,
    OrderView,
    OrderIdResponse,
    OkResponse,
    ErrorResponse,
    HealthResponse,
)
from app.services.orders import OrderStore, OrderQueryService
from app.services.users import UserRegistry, get_role_policy

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(f"   Strict completion: {settings.strict_completion}")
    logger.info("=" * 60)

    if settings.create_tables_on_startup:
        await init_db()
        logger.info("Database initialized")

    policy = get_role_policy()
    logger.info(f"Role Policy: {policy.provider_name}")

    problems = settings.validate_production_config()
    if problems:
        logger.warning(f"Review production config: {problems}")

    logger.info("Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order intake for room and table service. Guests place and re-order, "
        "staff see the active queue and completed history."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_order_store(db: AsyncSession = Depends(get_db)) -> OrderStore:
    """Order store for this request, wired from current settings."""
    current = get_settings()
    registry = UserRegistry(db, get_role_policy()) if current.track_users else None
    return OrderStore(db, registry=registry, strict_completion=current.strict_completion)


def get_query_service(db: AsyncSession = Depends(get_db)) -> OrderQueryService:
    return OrderQueryService(db)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Liveness probe; also reports whether the database answers."""
    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        ok=True,
        database=db_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER LIFECYCLE ENDPOINTS
# =============================================================================

@app.post(
    "/orders",
    response_model=OrderIdResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    store: OrderStore = Depends(get_order_store),
) -> OrderIdResponse:
    """Create an active order with all its items in one transaction."""
    order_id = await store.create_order(
        user_name=order_data.user_name,
        room=order_data.room,
        note=order_data.note,
        items=order_data.items,
        original_order_id=order_data.original_order_id,
    )
    return OrderIdResponse(id=order_id)


@app.put(
    "/orders/{order_id}",
    response_model=OkResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Edit Active Order",
)
async def edit_order(
    order_id: int,
    order_data: OrderUpdate,
    store: OrderStore = Depends(get_order_store),
) -> OkResponse:
    """Update room/note and replace the full item list of an active order."""
    await store.edit_order(
        order_id,
        room=order_data.room,
        note=order_data.note,
        items=order_data.items,
    )
    return OkResponse()


@app.post(
    "/orders/{order_id}/duplicate",
    response_model=OrderIdResponse,
    status_code=201,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Duplicate Order",
)
async def duplicate_order(
    order_id: int,
    store: OrderStore = Depends(get_order_store),
) -> OrderIdResponse:
    """Re-order: copy an order and its items into a new active order."""
    new_id = await store.duplicate_order(order_id)
    return OrderIdResponse(id=new_id)


@app.post(
    "/orders/{order_id}/complete",
    response_model=OkResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Admin"],
    summary="Complete Order",
)
async def complete_order(
    order_id: int,
    store: OrderStore = Depends(get_order_store),
) -> OkResponse:
    """Mark an order completed and stamp its completion time."""
    await store.complete_order(order_id)
    return OkResponse()


# =============================================================================
# LISTING ENDPOINTS
# =============================================================================

@app.get(
    "/orders/user",
    response_model=list[OrderView],
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="List a Guest's Orders",
)
async def list_user_orders(
    user_name: Optional[str] = Query(None, alias="userName"),
    status: Optional[str] = Query(None),
    queries: OrderQueryService = Depends(get_query_service),
) -> list[OrderView]:
    """Orders placed under `userName`, newest first. Unknown `status` values are ignored."""
    if not user_name or not user_name.strip():
        raise ValidationError("userName is required")
    return await queries.list_user_orders(user_name, status)


@app.get(
    "/orders/admin/active",
    response_model=list[OrderView],
    tags=["Admin"],
    summary="Active Orders Queue",
)
async def list_active_orders(
    queries: OrderQueryService = Depends(get_query_service),
) -> list[OrderView]:
    return await queries.list_active_orders()


@app.get(
    "/orders/admin/history",
    response_model=list[OrderView],
    tags=["Admin"],
    summary="Completed Orders",
)
async def list_completed_orders(
    queries: OrderQueryService = Depends(get_query_service),
) -> list[OrderView]:
    return await queries.list_completed_orders()


@app.get(
    "/orders/{order_id}",
    response_model=OrderView,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    queries: OrderQueryService = Depends(get_query_service),
) -> OrderView:
    """Get a specific order by ID."""
    return await queries.get_order(order_id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail if settings.debug else None)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(OrderServiceError)
async def order_service_exception_handler(request: Request, exc: OrderServiceError) -> JSONResponse:
    """Map service errors to their status; server faults get a generic message."""
    if exc.status_code >= 500:
        return _error_response(exc.status_code, exc.public_message, repr(exc.__cause__))
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are client errors (400)."""
    logger.info(f"{request.method} {request.url.path} -> 400: {exc.errors()}")
    return _error_response(400, ValidationError.public_message, str(exc.errors()))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return _error_response(500, "Internal Server Error", str(exc))
