# app/repositories/cart_repo.py
import uuid
from typing import Any

from supabase import AsyncClient

from app.core.errors import ProductNotFoundError, ReferenceNotFoundError, RemoteWriteError
from app.repositories.remote import execute_read, execute_write

CART_TABLE = "cart_items"
CART_COLUMNS = "id, product_id, quantity, products(id, name, price, image_url)"


class RemoteCartGateway:
    """
    Row-level access to the cart_items collection.

    - Pure store operations, no local state.
    - Every query is scoped by user_id as well as by row id.
    - Failures surface as RemoteReadError / RemoteWriteError.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    def _table(self):
        return self.client.table(CART_TABLE)

    # ---- reads ----

    async def fetch_items(self, user_id: uuid.UUID) -> list[dict[str, Any]]:
        query = (
            self._table()
            .select(CART_COLUMNS)
            .eq("user_id", str(user_id))
        )
        return await execute_read(query, "cart") or []

    async def fetch_item(
        self, user_id: uuid.UUID, item_id: uuid.UUID
    ) -> dict[str, Any] | None:
        query = (
            self._table()
            .select(CART_COLUMNS)
            .eq("id", str(item_id))
            .eq("user_id", str(user_id))
            .limit(1)
        )
        rows = await execute_read(query, "cart item")
        return rows[0] if rows else None

    # ---- writes ----

    async def insert_item(
        self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int = 1
    ) -> dict[str, Any]:
        query = self._table().insert(
            {
                "user_id": str(user_id),
                "product_id": str(product_id),
                "quantity": quantity,
            }
        )
        try:
            rows = await execute_write(query, "add item to cart")
        except ReferenceNotFoundError as exc:
            raise ProductNotFoundError() from exc
        if not rows:
            raise RemoteWriteError("Could not add item to cart: no row returned")
        return rows[0]

    async def update_quantity(
        self,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
        expected_quantity: int | None = None,
    ) -> dict[str, Any] | None:
        """
        Set quantity on one row.

        With expected_quantity the update only applies if the row still
        holds that quantity. Returns the updated row, or None when nothing
        matched (row gone or changed by another writer).
        """
        query = (
            self._table()
            .update({"quantity": quantity})
            .eq("id", str(item_id))
            .eq("user_id", str(user_id))
        )
        if expected_quantity is not None:
            query = query.eq("quantity", expected_quantity)
        rows = await execute_write(query, "update cart item")
        return rows[0] if rows else None

    async def delete_item(self, user_id: uuid.UUID, item_id: uuid.UUID) -> None:
        query = (
            self._table()
            .delete()
            .eq("id", str(item_id))
            .eq("user_id", str(user_id))
        )
        await execute_write(query, "remove cart item")

    async def delete_items(self, user_id: uuid.UUID, item_ids: list[uuid.UUID]) -> None:
        query = (
            self._table()
            .delete()
            .eq("user_id", str(user_id))
            .in_("id", [str(item_id) for item_id in item_ids])
        )
        await execute_write(query, "remove ordered cart items")

    async def delete_all(self, user_id: uuid.UUID) -> None:
        query = self._table().delete().eq("user_id", str(user_id))
        await execute_write(query, "clear cart")
