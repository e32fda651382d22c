# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends

from app.core.deps import get_cart_store
from app.schemas.cart import CartSummary, CartItemCreate, CartItemUpdate
from app.services.cart_store import CartStore

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartSummary)
async def get_my_cart(
    refresh: bool = False,
    store: CartStore = Depends(get_cart_store),
):
    """
    Get current user's cart summary.

    refresh=true reloads the cart from the store first.
    """
    if refresh:
        await store.load(store.user_id)
    return store.summary()


@router.post("", response_model=CartSummary)
async def add_to_cart(
    payload: CartItemCreate,
    store: CartStore = Depends(get_cart_store),
):
    """
    Add one unit of a product to the current user's cart.

    Returns the updated cart summary.
    """
    await store.add(payload.product_id)
    return store.summary()


@router.patch("/{item_id}", response_model=CartSummary)
async def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    store: CartStore = Depends(get_cart_store),
):
    """
    Set the quantity of a cart item. Quantity below 1 removes it.

    Returns the updated cart summary.
    """
    await store.set_quantity(item_id, payload.quantity)
    return store.summary()


@router.delete("/{item_id}", response_model=CartSummary)
async def remove_cart_item(
    item_id: uuid.UUID,
    store: CartStore = Depends(get_cart_store),
):
    """
    Remove an item from the cart.

    Returns the updated cart summary.
    """
    await store.remove(item_id)
    return store.summary()


@router.delete("", response_model=CartSummary)
async def clear_cart(
    store: CartStore = Depends(get_cart_store),
):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    await store.clear()
    return store.summary()
