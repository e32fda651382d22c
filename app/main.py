# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.errors import CartServiceError
from app.core.supabase_client import create_store_client
from app.database import create_db_and_tables
from app.repositories.cart_repo import RemoteCartGateway
from app.repositories.order_repo import RemoteOrderGateway
from app.services.cart_store import CartStoreRegistry
from app.services.checkout_service import CheckoutCoordinator
from app.services.order_history import OrderHistoryReader

# Routers
from app.routers.cart import router as cart_router
from app.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create tables if a direct DATABASE_URL is configured.
      - Build the Supabase client, gateways and the per-user cart registry.

    Shutdown:
      - Drop the cached carts; the Supabase client holds no open sockets
        that need explicit closing.
    """
    if settings.DATABASE_URL:
        logger.info("🔄 Startup: Verifying tables in Supabase Postgres...")
        try:
            create_db_and_tables(settings.DATABASE_URL, checkout_rpc=settings.CHECKOUT_RPC)
            logger.info("✅ Startup: DB connection OK, tables verified.")
        except Exception as e:
            logger.error(f"❌ Startup: DB connection FAILED: {e}")
            raise

    client = await create_store_client(settings)
    cart_gateway = RemoteCartGateway(client)
    order_gateway = RemoteOrderGateway(client)

    app.state.cart_registry = CartStoreRegistry(cart_gateway, max_stores=settings.CART_CACHE_SIZE)
    app.state.checkout = CheckoutCoordinator(order_gateway, rpc_name=settings.CHECKOUT_RPC)
    app.state.order_history = OrderHistoryReader(order_gateway)
    mode = f"rpc '{settings.CHECKOUT_RPC}'" if settings.CHECKOUT_RPC else "client saga"
    logger.info(f"✅ Startup: cart store ready (checkout via {mode}).")
    yield
    logger.info(f"👋 Shutdown: dropping {len(app.state.cart_registry)} cached carts.")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(CartServiceError)
async def cart_service_error_handler(request: Request, exc: CartServiceError):
    """Render cart/checkout errors the same way HTTPException is rendered."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "cart-checkout"}
