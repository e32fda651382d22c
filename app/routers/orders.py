# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import require_user_id
from app.core.deps import get_cart_store, get_checkout_coordinator, get_order_history
from app.schemas.order import CheckoutResult, OrderWithItemsRead
from app.services.cart_store import CartStore
from app.services.checkout_service import CheckoutCoordinator
from app.services.order_history import OrderHistoryReader

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post(
    "/checkout",
    response_model=CheckoutResult,
    status_code=status.HTTP_201_CREATED,
)
async def checkout(
    store: CartStore = Depends(get_cart_store),
    coordinator: CheckoutCoordinator = Depends(get_checkout_coordinator),
):
    """
    Create an order from the current user's cart and empty the cart.
    """
    result = await coordinator.checkout(store)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cart is empty",
        )
    return result


@router.get(
    "/me",
    response_model=list[OrderWithItemsRead],
)
async def list_my_orders(
    user_id: uuid.UUID = Depends(require_user_id),
    history: OrderHistoryReader = Depends(get_order_history),
):
    """
    List the authenticated user's orders with their items, newest first.
    """
    return await history.list_orders(user_id)
