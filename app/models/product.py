# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Read-only for the cart/checkout service; the catalog is maintained
    elsewhere. Cart and order reads join on this table for the product
    snapshot (name, price, image_url).
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        index=True,
        description="Display name of the product",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    price: float = Field(
        ge=0,
        description="Current unit price",
    )

    image_url: str | None = Field(
        default=None,
        description="Main image URL",
    )

    category: str | None = Field(
        default=None,
        index=True,
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units in stock (not reserved by the cart)",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
