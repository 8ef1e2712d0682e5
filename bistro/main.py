"""
FastAPI Application Entry Point

Bistro Storefront - Hybrid Architecture
Supports both Mock services (development) and Supabase/Gemini (production).

Endpoints:
    - GET  /health: System health check
    - GET  /api/session, POST /api/auth/{login,signup,logout}
    - GET  /api/menu, POST /api/menu, DELETE /api/menu/{id}, POST /api/menu/enhance
    - GET  /api/profile, PUT /api/profile
    - GET  /api/cart, POST /api/cart/lines
    - POST /api/checkout
    - GET  /api/orders, GET /api/orders/{id}/receipt, POST /api/orders/export
    - GET  /api/dashboard-data
    - GET  /api/notifications, DELETE /api/notifications/{id}

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bistro.constants import DELETE_ITEM_PROMPT
from bistro.core.config import get_settings, setup_logging
from bistro.core.errors import AuthFailed, ValidationFailed
from bistro.schemas import (
    CartIncrement,
    CheckoutRequest,
    DashboardResponse,
    ErrorResponse,
    HealthResponse,
    InvoiceResponse,
    LoginRequest,
    MenuItem,
    MenuItemIn,
    ProfileUpdate,
    RestaurantProfile,
    SignupRequest,
    TemporaryId,
)
from bistro.services.backend import reset_backend
from bistro.services.enhancer import reset_enhancer
from bistro.storefront import Storefront

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


@lru_cache()
def get_storefront() -> Storefront:
    """The process-wide storefront (one operator per deployment)."""
    return Storefront()


def reset_storefront() -> None:
    get_storefront.cache_clear()
    reset_backend()
    reset_enhancer()


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
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    storefront = get_storefront()
    logger.info(f"✅ Backend: {storefront.backend.provider_name}")
    logger.info(f"✅ Menu Enhancer: {storefront.enhancer.provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    session = await storefront.start()
    logger.info(f"✅ Session: {session.name if session else 'guest'}")
    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await storefront.close()
    reset_storefront()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant storefront and back office: menu, cart, invoices and "
        "branding, synced to a managed backend."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def item_view(item: MenuItem) -> dict[str, Any]:
    """JSON view of a dish; `key` is the id string clients send back."""
    view = item.model_dump(mode="json")
    view["key"] = str(item.id)
    return view


def resolve_item(storefront: Storefront, raw_id: str) -> MenuItem:
    item = storefront.catalog.find_by_key(raw_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Dish {raw_id} not found")
    return item


def session_view(storefront: Storefront) -> dict[str, Any]:
    state = storefront.state
    return {
        "session": state.session.model_dump() if state.session else None,
        "is_guest": state.is_guest,
        "is_loading": state.is_loading,
    }


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
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
    storefront: Storefront = Depends(get_storefront),
) -> HealthResponse:
    """Verify the backend and the menu enhancer are reachable."""

    backend_status = "healthy"
    try:
        if not await storefront.backend.health_check():
            backend_status = "degraded"
    except Exception as e:
        backend_status = f"unhealthy: {str(e)}"
        logger.error(f"Backend health check failed: {e}")

    enhancer_status = "healthy"
    try:
        if not await storefront.enhancer.health_check():
            enhancer_status = "degraded"
    except Exception as e:
        enhancer_status = f"unhealthy: {str(e)}"
        logger.error(f"Enhancer health check failed: {e}")

    # The enhancer is optional; only the backend decides overall health.
    overall = "healthy" if backend_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        backend=backend_status,
        enhancer=enhancer_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================

@app.get("/api/session", tags=["Auth"], summary="Current Identity")
async def current_session(
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    return session_view(storefront)


@app.post(
    "/api/auth/login",
    responses={401: {"model": ErrorResponse}},
    tags=["Auth"],
    summary="Sign In",
)
async def login(
    credentials: LoginRequest,
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    try:
        await storefront.sign_in(credentials.email, credentials.password)
    except AuthFailed as e:
        raise HTTPException(status_code=401, detail=e.message)
    return session_view(storefront)


@app.post(
    "/api/auth/signup",
    responses={401: {"model": ErrorResponse}},
    tags=["Auth"],
    summary="Create Account",
)
async def signup(
    payload: SignupRequest,
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    try:
        session = await storefront.sign_up(payload.email, payload.password, payload.full_name)
    except AuthFailed as e:
        raise HTTPException(status_code=401, detail=e.message)

    view = session_view(storefront)
    view["confirmation_pending"] = session is None
    return view


@app.post("/api/auth/logout", tags=["Auth"], summary="Sign Out")
async def logout(
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    await storefront.sign_out()
    return session_view(storefront)


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get("/api/menu", tags=["Menu"], summary="Browse Menu")
async def browse_menu(
    category: Optional[str] = Query(None, description="Category name or 'All'"),
    q: str = Query("", description="Search in name and description"),
    storefront: Storefront = Depends(get_storefront),
) -> list[dict[str, Any]]:
    try:
        items = storefront.browse(category, q)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.message)
    return [item_view(item) for item in items]


@app.post(
    "/api/menu",
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Create or Update Dish",
)
async def save_menu_item(
    form: MenuItemIn,
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    """Omit `id` to launch a new dish; send an existing `key` to refine one."""
    item_id = resolve_item(storefront, form.id).id if form.id else TemporaryId.mint()
    item = MenuItem(id=item_id, **form.model_dump(exclude={"id"}))

    saved = await storefront.save_item(item)
    if saved is None:
        raise HTTPException(status_code=401, detail="Please login to save changes")
    return item_view(saved)


@app.delete(
    "/api/menu/{item_key}",
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Remove Dish",
)
async def delete_menu_item(
    item_key: str,
    confirm: bool = Query(False, description=DELETE_ITEM_PROMPT),
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    item = resolve_item(storefront, item_key)
    removed = await storefront.delete_item(item.id, lambda prompt: confirm)
    return {
        "success": removed,
        "message": "Dish removed" if removed else DELETE_ITEM_PROMPT,
    }


@app.post("/api/menu/enhance", tags=["Menu"], summary="Rewrite Menu Copy")
async def enhance_menu(
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    applied = await storefront.enhance_menu()
    return {
        "success": applied,
        "items": [item_view(item) for item in storefront.state.menu_items],
    }


# =============================================================================
# PROFILE ENDPOINTS
# =============================================================================

@app.get("/api/profile", response_model=RestaurantProfile, tags=["Profile"])
async def get_profile(
    storefront: Storefront = Depends(get_storefront),
) -> RestaurantProfile:
    return storefront.state.profile


@app.put("/api/profile", response_model=RestaurantProfile, tags=["Profile"])
async def update_profile(
    payload: ProfileUpdate,
    storefront: Storefront = Depends(get_storefront),
) -> RestaurantProfile:
    return await storefront.update_profile(RestaurantProfile(**payload.model_dump()))


# =============================================================================
# CART & CHECKOUT ENDPOINTS
# =============================================================================

def cart_view(storefront: Storefront) -> dict[str, Any]:
    cart = storefront.cart
    return {
        "lines": [
            {
                "item_id": str(line.item.id),
                "name": line.item.name,
                "size": line.size.value,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "subtotal": line.subtotal,
            }
            for line in cart.lines
        ],
        "item_count": cart.item_count,
        "subtotal": cart.subtotal,
    }


@app.get("/api/cart", tags=["Cart"])
async def get_cart(
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    return cart_view(storefront)


@app.post(
    "/api/cart/lines",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Cart"],
    summary="Change Line Quantity",
)
async def increment_cart_line(
    change: CartIncrement,
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    item = storefront.catalog.find_by_key(change.item_id)
    if item is None:
        # Lines for dishes removed from the menu can still be decreased.
        line = next(
            (line for line in storefront.cart.lines if str(line.item.id) == change.item_id),
            None,
        )
        if line is None:
            raise HTTPException(status_code=404, detail=f"Dish {change.item_id} not found")
        item_id = line.item.id
    else:
        item_id = item.id

    try:
        quantity = storefront.add_to_cart(item_id, change.size, change.delta)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.message)

    view = cart_view(storefront)
    view["quantity"] = quantity
    return view


@app.post(
    "/api/checkout",
    response_model=InvoiceResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Finalize Order",
)
async def checkout(
    payload: CheckoutRequest,
    storefront: Storefront = Depends(get_storefront),
) -> InvoiceResponse:
    logger.info(f"Checkout for: {payload.customer_name or '<no name>'}")
    try:
        invoice = await storefront.checkout(
            payload.customer_name,
            payload.customer_contact,
            payload.payment_method,
        )
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.message)

    return InvoiceResponse(
        order=invoice.order,
        receipt=invoice.receipt,
        whatsapp_url=invoice.whatsapp_url,
        sms_url=invoice.sms_url,
    )


# =============================================================================
# ORDER HISTORY ENDPOINTS
# =============================================================================

@app.get("/api/orders", tags=["Orders"], summary="Order History")
async def list_orders(
    storefront: Storefront = Depends(get_storefront),
) -> list[dict[str, Any]]:
    return [order.model_dump(mode="json") for order in storefront.state.history]


@app.get(
    "/api/orders/{order_id}/receipt",
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Rebuild Receipt",
)
async def order_receipt(
    order_id: str,
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    receipt = storefront.receipt_for(order_id)
    if receipt is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return {"order_id": order_id, "receipt": receipt}


@app.post("/api/orders/export", tags=["Orders"], summary="Export History to Excel")
def export_orders(
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, Any]:
    # Sync endpoint: FastAPI runs it in the threadpool while the file lock is held.
    return storefront.export_history()


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@app.get(
    "/api/dashboard-data",
    response_model=DashboardResponse,
    tags=["Dashboard"],
    summary="Admin Console Data",
)
async def dashboard_data(
    q: str = Query("", description="Search dishes by name or category"),
    storefront: Storefront = Depends(get_storefront),
) -> DashboardResponse:
    stats = storefront.dashboard(q)
    return DashboardResponse(
        total_revenue=round(stats.total_revenue, 2),
        order_count=stats.order_count,
        category_count=stats.category_count,
        item_count=len(stats.items),
        items=stats.items,
        history=stats.history,
    )


# =============================================================================
# NOTIFICATION ENDPOINTS
# =============================================================================

@app.get("/api/notifications", tags=["Notifications"])
async def list_notifications(
    storefront: Storefront = Depends(get_storefront),
) -> list[dict[str, Any]]:
    return [
        {
            "id": n.id,
            "message": n.message,
            "level": n.level,
            "kind": n.kind.value if n.kind else None,
            "created_at": n.created_at.isoformat(),
        }
        for n in storefront.state.notifications.pending
    ]


@app.delete(
    "/api/notifications/{notification_id}",
    responses={404: {"model": ErrorResponse}},
    tags=["Notifications"],
)
async def dismiss_notification(
    notification_id: int,
    storefront: Storefront = Depends(get_storefront),
) -> dict[str, bool]:
    if not storefront.state.notifications.dismiss(notification_id):
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return {"success": True}


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bistro.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
