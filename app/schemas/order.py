# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Any, Literal

from sqlmodel import SQLModel

OrderStatus = Literal["pending", "confirmed", "cancelled"]


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    total_amount: float
    status: OrderStatus
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.

    product_name / product_image_url are only filled on history reads,
    where order_items is joined with products(name, image_url).
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price_at_purchase: float
    line_total: float
    product_name: str | None = None
    product_image_url: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "OrderItemRead":
        product = row.get("products") or {}
        return cls(
            id=row["id"],
            order_id=row["order_id"],
            product_id=row["product_id"],
            quantity=row["quantity"],
            price_at_purchase=row["price_at_purchase"],
            line_total=row["quantity"] * row["price_at_purchase"],
            product_name=product.get("name"),
            product_image_url=product.get("image_url"),
        )


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class CheckoutResult(SQLModel):
    """
    Outcome of a successful checkout.

    cart_cleared=False means the order is complete but emptying the
    cart failed; the cart still holds the purchased items.
    """

    order: OrderWithItemsRead
    cart_cleared: bool = True
