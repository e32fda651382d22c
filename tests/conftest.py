"""Shared pytest fixtures: in-memory stand-ins for the Supabase gateways."""
import asyncio
import os
import uuid
from datetime import datetime, timezone

import pytest

# Minimal env vars required to import app.main (settings are read at import time)
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

from app.core.errors import (  # noqa: E402
    DuplicateRowError,
    ProductNotFoundError,
    RemoteReadError,
    RemoteWriteError,
)
from app.services.cart_store import CartStore  # noqa: E402
from app.services.checkout_service import CheckoutCoordinator  # noqa: E402

PRODUCT_A = uuid.UUID("00000000-0000-0000-0000-00000000000a")
PRODUCT_B = uuid.UUID("00000000-0000-0000-0000-00000000000b")
PRODUCT_C = uuid.UUID("00000000-0000-0000-0000-00000000000c")


class FakeCartGateway:
    """
    cart_items + products held in dicts.

    Put a method name into `fail` to make that call raise.
    """

    def __init__(self, products: dict[uuid.UUID, dict]):
        self.products = products
        self.rows: dict[uuid.UUID, dict] = {}
        self.fail: set[str] = set()
        self.calls: list[str] = []

    def _enter(self, name: str, error: type[Exception]) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise error(f"{name} failed")

    def _joined(self, row: dict) -> dict:
        product = self.products[row["product_id"]]
        return {
            "id": str(row["id"]),
            "product_id": str(row["product_id"]),
            "quantity": row["quantity"],
            "products": {
                "id": str(product["id"]),
                "name": product["name"],
                "price": product["price"],
                "image_url": product.get("image_url"),
            },
        }

    def seed(self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> uuid.UUID:
        item_id = uuid.uuid4()
        self.rows[item_id] = {
            "id": item_id,
            "user_id": user_id,
            "product_id": product_id,
            "quantity": quantity,
        }
        return item_id

    def rows_for(self, user_id: uuid.UUID) -> list[dict]:
        return [r for r in self.rows.values() if r["user_id"] == user_id]

    async def fetch_items(self, user_id):
        await asyncio.sleep(0)
        self._enter("fetch_items", RemoteReadError)
        return [self._joined(r) for r in self.rows_for(user_id)]

    async def fetch_item(self, user_id, item_id):
        await asyncio.sleep(0)
        self._enter("fetch_item", RemoteReadError)
        row = self.rows.get(item_id)
        if row is None or row["user_id"] != user_id:
            return None
        return self._joined(row)

    async def insert_item(self, user_id, product_id, quantity=1):
        await asyncio.sleep(0)
        self._enter("insert_item", RemoteWriteError)
        if product_id not in self.products:
            raise ProductNotFoundError()
        if any(r["product_id"] == product_id for r in self.rows_for(user_id)):
            raise DuplicateRowError()
        item_id = self.seed(user_id, product_id, quantity)
        row = self.rows[item_id]
        return {**row, "id": str(item_id)}

    async def update_quantity(self, user_id, item_id, quantity, expected_quantity=None):
        await asyncio.sleep(0)
        self._enter("update_quantity", RemoteWriteError)
        row = self.rows.get(item_id)
        if row is None or row["user_id"] != user_id:
            return None
        if expected_quantity is not None and row["quantity"] != expected_quantity:
            return None
        row["quantity"] = quantity
        return {**row, "id": str(item_id)}

    async def delete_item(self, user_id, item_id):
        await asyncio.sleep(0)
        self._enter("delete_item", RemoteWriteError)
        row = self.rows.get(item_id)
        if row is not None and row["user_id"] == user_id:
            del self.rows[item_id]

    async def delete_items(self, user_id, item_ids):
        await asyncio.sleep(0)
        self._enter("delete_items", RemoteWriteError)
        for item_id in item_ids:
            row = self.rows.get(item_id)
            if row is not None and row["user_id"] == user_id:
                del self.rows[item_id]

    async def delete_all(self, user_id):
        await asyncio.sleep(0)
        self._enter("delete_all", RemoteWriteError)
        for row in self.rows_for(user_id):
            del self.rows[row["id"]]


class FakeOrderGateway:
    """
    orders + order_items held in dicts, with the same `fail` switch.

    Given a cart gateway, the checkout RPC also deletes the ordered
    products from that cart, as the Postgres function does.
    """

    def __init__(self, products: dict[uuid.UUID, dict], cart: FakeCartGateway | None = None):
        self.products = products
        self.cart = cart
        self.orders: dict[str, dict] = {}
        self.items: list[dict] = []
        self.fail: set[str] = set()
        self.calls: list[str] = []
        self.rpc_calls: list[tuple] = []

    def _enter(self, name: str, error: type[Exception]) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise error(f"{name} failed")

    async def insert_order(self, user_id, total_amount, status="confirmed"):
        self._enter("insert_order", RemoteWriteError)
        row = {
            "id": str(uuid.uuid4()),
            "user_id": str(user_id),
            "total_amount": total_amount,
            "status": status,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.orders[row["id"]] = row
        return dict(row)

    async def insert_items(self, rows):
        self._enter("insert_items", RemoteWriteError)
        inserted = [{"id": str(uuid.uuid4()), **row} for row in rows]
        self.items.extend(inserted)
        return [dict(r) for r in inserted]

    async def delete_items(self, order_id):
        self._enter("delete_items", RemoteWriteError)
        self.items = [i for i in self.items if i["order_id"] != str(order_id)]

    async def delete_order(self, user_id, order_id):
        self._enter("delete_order", RemoteWriteError)
        self.orders.pop(str(order_id), None)

    async def list_orders(self, user_id):
        self._enter("list_orders", RemoteReadError)
        rows = [o for o in self.orders.values() if o["user_id"] == str(user_id)]
        return sorted(rows, key=lambda o: o["created_at"], reverse=True)

    async def list_items(self, order_id):
        self._enter("list_items", RemoteReadError)
        result = []
        for item in self.items:
            if item["order_id"] != str(order_id):
                continue
            product = self.products[uuid.UUID(item["product_id"])]
            result.append(
                {**item, "products": {"name": product["name"], "image_url": product.get("image_url")}}
            )
        return result

    async def place_order_rpc(self, function_name, user_id, lines):
        self._enter("place_order_rpc", RemoteWriteError)
        self.rpc_calls.append((function_name, user_id, lines))
        total = sum(line["quantity"] * line["price_at_purchase"] for line in lines)
        order = await self.insert_order(user_id, total)
        items = await self.insert_items([{"order_id": order["id"], **line} for line in lines])
        if self.cart is not None:
            ordered = {uuid.UUID(line["product_id"]) for line in lines}
            for row in self.cart.rows_for(user_id):
                if row["product_id"] in ordered:
                    del self.cart.rows[row["id"]]
        return {**order, "items": items}


@pytest.fixture()
def products() -> dict[uuid.UUID, dict]:
    return {
        PRODUCT_A: {"id": PRODUCT_A, "name": "Linen shirt", "price": 500.0, "image_url": "a.png"},
        PRODUCT_B: {"id": PRODUCT_B, "name": "Canvas tote", "price": 300.0, "image_url": None},
        PRODUCT_C: {"id": PRODUCT_C, "name": "Wool scarf", "price": 125.5, "image_url": "c.png"},
    }


@pytest.fixture()
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def cart_gateway(products) -> FakeCartGateway:
    return FakeCartGateway(products)


@pytest.fixture()
def order_gateway(products, cart_gateway) -> FakeOrderGateway:
    return FakeOrderGateway(products, cart_gateway)


@pytest.fixture()
def store(cart_gateway, user_id) -> CartStore:
    return CartStore(cart_gateway, user_id)


@pytest.fixture()
def coordinator(order_gateway) -> CheckoutCoordinator:
    return CheckoutCoordinator(order_gateway)
