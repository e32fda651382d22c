# app/schemas/cart.py
import uuid
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel


class ProductSnapshot(SQLModel):
    """
    Product fields joined onto a cart row: products(id, name, price, image_url).
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    name: str
    price: float
    image_url: str | None = None


class CartLine(SQLModel):
    """
    One item of the in-memory cart replica.

    Frozen: the store replaces lines instead of mutating them, so a
    snapshot handed to checkout never changes underneath it.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    product: ProductSnapshot

    @property
    def line_total(self) -> float:
        return self.quantity * self.product.price

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CartLine":
        """
        Build a line from a PostgREST row of
        `id, product_id, quantity, products(id, name, price, image_url)`.
        """
        product = row.get("products") or row.get("product")
        if not product:
            raise ValueError(f"cart row {row.get('id')} has no product")
        return cls(
            id=row["id"],
            product_id=row["product_id"],
            quantity=row["quantity"],
            product=ProductSnapshot.model_validate(product),
        )


class CartItemCreate(SQLModel):
    """
    Payload for adding one unit of a product to the cart.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart item.

    A quantity below 1 removes the item.
    """

    quantity: int


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including line_total.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    product: ProductSnapshot
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.

    stale=True means the last load from the store failed and the
    (empty) item list may not reflect the real cart.
    """

    items: list[CartItemRead]
    total_items: int
    total_price: float
    stale: bool = False
