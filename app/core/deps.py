# app/core/deps.py
"""
FastAPI dependencies handing out the services built in the app lifespan.

The services live on app.state; tests swap them through
app.dependency_overrides or by setting app.state directly.
"""
import uuid

from fastapi import Depends, Request

from app.core.auth import require_user_id
from app.services.cart_store import CartStore, CartStoreRegistry
from app.services.checkout_service import CheckoutCoordinator
from app.services.order_history import OrderHistoryReader


def get_cart_registry(request: Request) -> CartStoreRegistry:
    return request.app.state.cart_registry


def get_checkout_coordinator(request: Request) -> CheckoutCoordinator:
    return request.app.state.checkout


def get_order_history(request: Request) -> OrderHistoryReader:
    return request.app.state.order_history


async def get_cart_store(
    user_id: uuid.UUID = Depends(require_user_id),
    registry: CartStoreRegistry = Depends(get_cart_registry),
) -> CartStore:
    """The signed-in user's cart, loaded on first use."""
    return await registry.get(user_id)
