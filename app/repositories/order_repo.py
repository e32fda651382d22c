# app/repositories/order_repo.py
import uuid
from typing import Any

from supabase import AsyncClient

from app.core.errors import RemoteWriteError
from app.repositories.remote import execute_read, execute_write

ORDER_TABLE = "orders"
ORDER_ITEM_TABLE = "order_items"
ORDER_ITEM_COLUMNS = (
    "id, order_id, product_id, quantity, price_at_purchase, products(name, image_url)"
)


class RemoteOrderGateway:
    """
    Data access layer for orders and order_items.

    NOTE:
      - The store only offers per-request writes, so order creation is
        a multi-step sequence driven by the checkout service. The delete
        methods here exist only to compensate a failed checkout.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    # ---- Orders ----

    async def insert_order(
        self,
        user_id: uuid.UUID,
        total_amount: float,
        status: str = "confirmed",
    ) -> dict[str, Any]:
        query = self.client.table(ORDER_TABLE).insert(
            {
                "user_id": str(user_id),
                "total_amount": total_amount,
                "status": status,
            }
        )
        rows = await execute_write(query, "create order")
        if not rows:
            raise RemoteWriteError("Could not create order: no row returned")
        return rows[0]

    async def delete_order(self, user_id: uuid.UUID, order_id: uuid.UUID) -> None:
        query = (
            self.client.table(ORDER_TABLE)
            .delete()
            .eq("id", str(order_id))
            .eq("user_id", str(user_id))
        )
        await execute_write(query, "delete order")

    async def list_orders(self, user_id: uuid.UUID) -> list[dict[str, Any]]:
        query = (
            self.client.table(ORDER_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
        )
        return await execute_read(query, "orders") or []

    # ---- Order items ----

    async def insert_items(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        query = self.client.table(ORDER_ITEM_TABLE).insert(rows)
        return await execute_write(query, "create order items") or []

    async def delete_items(self, order_id: uuid.UUID) -> None:
        query = (
            self.client.table(ORDER_ITEM_TABLE)
            .delete()
            .eq("order_id", str(order_id))
        )
        await execute_write(query, "delete order items")

    async def list_items(self, order_id: uuid.UUID) -> list[dict[str, Any]]:
        query = (
            self.client.table(ORDER_ITEM_TABLE)
            .select(ORDER_ITEM_COLUMNS)
            .eq("order_id", str(order_id))
        )
        return await execute_read(query, "order items") or []

    # ---- Atomic checkout ----

    async def place_order_rpc(
        self,
        function_name: str,
        user_id: uuid.UUID,
        lines: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Call a Postgres function that inserts the order, its items and
        empties the cart in one transaction.

        Expected to return the order row with an `items` array.
        """
        query = self.client.rpc(
            function_name,
            {"p_user_id": str(user_id), "p_items": lines},
        )
        data = await execute_write(query, "place order")
        if isinstance(data, list):
            data = data[0] if data else {}
        return data
