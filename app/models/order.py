# app/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order, created once at checkout and never updated.

    Columns:
      - id, user_id, total_amount, status, created_at
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        index=True,
    )

    # Sum of quantity * price_at_purchase over the order items
    total_amount: float = Field(
        ge=0,
        description="Final amount for this order",
    )

    # pending | confirmed | cancelled
    status: str = Field(
        default="pending",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    price_at_purchase freezes the product price at checkout so later
    catalog changes do not rewrite order history.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    price_at_purchase: float = Field(
        ge=0,
        description="Unit price at time of order",
    )
