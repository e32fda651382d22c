# app/services/cart_store.py
import asyncio
import logging
import uuid
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from app.core.errors import (
    AuthorizationError,
    CartConflictError,
    CartItemNotFoundError,
    DuplicateRowError,
    RemoteReadError,
)
from app.repositories.cart_repo import RemoteCartGateway
from app.schemas.cart import CartItemRead, CartLine, CartSummary

logger = logging.getLogger(__name__)


class CartStore:
    """
    Authoritative local view of one user's cart, kept in sync with the store.

    Responsibilities:
      - hold the in-memory replica (list of CartLine)
      - apply add / remove / set_quantity / clear remotely, then locally
      - compute totals from the replica on every read
      - serialize all mutations through one writer lock

    Local state only changes after the store confirmed the write, so a
    failed write leaves the replica equal to what the store holds.
    """

    def __init__(self, gateway: RemoteCartGateway, user_id: uuid.UUID | None = None):
        self.gateway = gateway
        self.user_id = user_id
        self.loaded = False
        self.last_error: RemoteReadError | None = None
        self._items: list[CartLine] = []
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

    # ---- locking ----

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator["CartStore"]:
        """
        Hold the cart's writer lock.

        Re-entrant for the task that already holds it, so add() can call
        set_quantity() and checkout can call clear().
        """
        task = asyncio.current_task()
        if self._owner is not None and self._owner is task:
            yield self
            return
        async with self._lock:
            self._owner = task
            try:
                yield self
            finally:
                self._owner = None

    # ---- derived reads ----

    @property
    def items(self) -> tuple[CartLine, ...]:
        return tuple(self._items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def total_price(self) -> float:
        return sum(item.quantity * item.product.price for item in self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def snapshot(self) -> tuple[CartLine, ...]:
        """Immutable copy of the current items (lines are frozen models)."""
        return tuple(self._items)

    def summary(self) -> CartSummary:
        return CartSummary(
            items=[
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    product=it.product,
                    line_total=it.line_total,
                )
                for it in self._items
            ],
            total_items=self.total_items,
            total_price=self.total_price,
            stale=self.last_error is not None,
        )

    # ---- helpers ----

    def require_user(self) -> uuid.UUID:
        if self.user_id is None:
            raise AuthorizationError()
        return self.user_id

    def _find(self, item_id: uuid.UUID) -> CartLine | None:
        return next((it for it in self._items if it.id == item_id), None)

    def _find_by_product(self, product_id: uuid.UUID) -> CartLine | None:
        return next((it for it in self._items if it.product_id == product_id), None)

    def _replace(self, line: CartLine) -> None:
        self._items = [line if it.id == line.id else it for it in self._items]

    def _parse_rows(self, rows: list[dict[str, Any]]) -> list[CartLine]:
        lines: list[CartLine] = []
        for row in rows:
            try:
                lines.append(CartLine.from_row(row))
            except ValueError as exc:
                logger.warning("Skipping unreadable cart row %s: %s", row.get("id"), exc)
        return lines

    # ---- sync ----

    async def load(self, user_id: uuid.UUID | None) -> None:
        """
        Replace the local set with the store's rows for user_id.

        user_id=None resets to an empty, unauthenticated cart. A failed
        fetch also leaves the cart empty; last_error records it so the
        caller can tell "empty" from "could not load".
        """
        async with self.exclusive():
            self.user_id = user_id
            self.last_error = None
            if user_id is None:
                self._items = []
                self.loaded = True
                return
            try:
                rows = await self.gateway.fetch_items(user_id)
            except RemoteReadError as exc:
                logger.warning("Cart load failed for user %s: %s", user_id, exc.detail)
                self._items = []
                self.last_error = exc
            else:
                self._items = self._parse_rows(rows)
            self.loaded = True

    async def ensure_loaded(self) -> None:
        """Load on first use, and retry after a failed load."""
        async with self.exclusive():
            if not self.loaded or self.last_error is not None:
                await self.load(self.user_id)

    # ---- mutations ----

    async def add(self, product_id: uuid.UUID) -> None:
        """
        Add one unit of product_id.

        Existing item -> quantity + 1. New product -> insert a row with
        quantity 1 and append the row the store returns.
        """
        async with self.exclusive():
            user_id = self.require_user()
            existing = self._find_by_product(product_id)
            if existing is not None:
                await self.set_quantity(existing.id, existing.quantity + 1)
                return

            try:
                row = await self.gateway.insert_item(user_id, product_id, 1)
            except DuplicateRowError:
                # Row was created by another session; pick it up and increment
                logger.info("Product %s already in remote cart of %s, reloading", product_id, user_id)
                await self.load(user_id)
                existing = self._find_by_product(product_id)
                if existing is None:
                    raise
                await self.set_quantity(existing.id, existing.quantity + 1)
                return

            await self._append_inserted(user_id, uuid.UUID(str(row["id"])))

    async def _append_inserted(self, user_id: uuid.UUID, item_id: uuid.UUID) -> None:
        try:
            fetched = await self.gateway.fetch_item(user_id, item_id)
            line = CartLine.from_row(fetched) if fetched else None
        except (RemoteReadError, ValueError) as exc:
            logger.warning("Could not read back cart item %s: %s", item_id, exc)
            line = None
        if line is None:
            await self.load(user_id)
            return
        self._items.append(line)

    async def remove(self, item_id: uuid.UUID) -> None:
        async with self.exclusive():
            user_id = self.require_user()
            if self._find(item_id) is None:
                raise CartItemNotFoundError()
            await self.gateway.delete_item(user_id, item_id)
            self._items = [it for it in self._items if it.id != item_id]

    async def set_quantity(self, item_id: uuid.UUID, quantity: int) -> None:
        """
        Set the quantity of an item; quantity < 1 removes it.

        The current local quantity is sent as a concurrency token. If the
        store row no longer matches, the cart is reloaded and
        CartConflictError is raised.
        """
        async with self.exclusive():
            user_id = self.require_user()
            if quantity < 1:
                await self.remove(item_id)
                return

            current = self._find(item_id)
            if current is None:
                raise CartItemNotFoundError()
            if current.quantity == quantity:
                return

            row = await self.gateway.update_quantity(
                user_id, item_id, quantity, expected_quantity=current.quantity
            )
            if row is None:
                logger.info("Cart item %s changed remotely, reloading cart", item_id)
                await self.load(user_id)
                raise CartConflictError()

            self._replace(current.model_copy(update={"quantity": row.get("quantity", quantity)}))

    async def clear(self) -> None:
        async with self.exclusive():
            user_id = self.require_user()
            await self.gateway.delete_all(user_id)
            self._items = []

    async def remove_lines(self, item_ids: list[uuid.UUID]) -> None:
        """
        Delete exactly these rows, remotely then locally.

        Checkout uses this instead of clear() so rows another session added
        after the snapshot stay in the cart.
        """
        async with self.exclusive():
            user_id = self.require_user()
            if not item_ids:
                return
            await self.gateway.delete_items(user_id, item_ids)
            removed = set(item_ids)
            self._items = [it for it in self._items if it.id not in removed]

    def reset(self) -> None:
        """Drop local items without touching the store (store already empty)."""
        self._items = []

    @property
    def busy(self) -> bool:
        return self._lock.locked()


class CartStoreRegistry:
    """
    Owns one CartStore per signed-in user for the lifetime of the app.

    Created in the FastAPI lifespan and injected into routers through
    app.state, so there is exactly one writer per cart in this process.
    At most max_stores carts are kept; the least recently used idle one
    is dropped first and reloaded from the store on its next request.
    """

    def __init__(self, gateway: RemoteCartGateway, max_stores: int = 1000):
        self.gateway = gateway
        self.max_stores = max_stores
        self._stores: OrderedDict[uuid.UUID, CartStore] = OrderedDict()

    async def get(self, user_id: uuid.UUID) -> CartStore:
        store = self._stores.get(user_id)
        if store is None:
            store = CartStore(self.gateway, user_id)
            self._stores[user_id] = store
            self._evict()
        else:
            self._stores.move_to_end(user_id)
        await store.ensure_loaded()
        return store

    def _evict(self) -> None:
        # Stores holding their lock are mid-operation and stay
        for user_id in list(self._stores)[:-1]:
            if len(self._stores) <= self.max_stores:
                return
            if not self._stores[user_id].busy:
                del self._stores[user_id]
                logger.debug("Evicted cart of user %s", user_id)

    def discard(self, user_id: uuid.UUID) -> None:
        self._stores.pop(user_id, None)

    def __contains__(self, user_id: uuid.UUID) -> bool:
        return user_id in self._stores

    def __len__(self) -> int:
        return len(self._stores)
