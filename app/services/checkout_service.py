# app/services/checkout_service.py
import logging
import uuid
from typing import Any

from app.core.errors import CheckoutError, RemoteWriteError
from app.repositories.order_repo import RemoteOrderGateway
from app.schemas.cart import CartLine
from app.schemas.order import CheckoutResult, OrderItemRead, OrderWithItemsRead
from app.services.cart_store import CartStore

logger = logging.getLogger(__name__)

ORDER_STATUS_CONFIRMED = "confirmed"


class CheckoutCoordinator:
    """
    Turns the current cart into an Order with its OrderItems.

    Steps (saga mode):
      1. Insert the order (status='confirmed', total = cart total now).
      2. Insert one order item per cart line, price frozen from the line.
         On failure, delete what step 1-2 wrote and re-raise.
      3. Delete the ordered cart rows.

    With rpc_name set, steps 1-3 are one call to a Postgres function
    that does them in a single transaction.

    The whole sequence runs under the cart's writer lock, and the cart is
    reloaded from the store first, so the order reflects every row other
    sessions or processes wrote before checkout started. Only the rows in
    that snapshot are deleted afterwards.
    """

    def __init__(self, order_gateway: RemoteOrderGateway, rpc_name: str | None = None):
        self.order_gateway = order_gateway
        self.rpc_name = rpc_name

    async def checkout(self, store: CartStore) -> CheckoutResult | None:
        """
        Place an order from store's cart.

        Returns None (and writes nothing) when the cart is empty.

        Raises:
            AuthorizationError: store has no signed-in user.
            RemoteReadError: the cart could not be reloaded; nothing written.
            RemoteWriteError: the order could not be written; nothing persisted.
            CheckoutError: a partial order could not be cleaned up.
        """
        async with store.exclusive():
            user_id = store.require_user()
            await store.load(user_id)
            if store.last_error is not None:
                raise store.last_error
            if store.is_empty:
                return None
            lines = store.snapshot()
            total_amount = store.total_price

            if self.rpc_name:
                return await self._checkout_rpc(store, user_id, lines)
            return await self._checkout_saga(store, user_id, lines, total_amount)

    # ---- atomic mode ----

    async def _checkout_rpc(
        self,
        store: CartStore,
        user_id: uuid.UUID,
        lines: tuple[CartLine, ...],
    ) -> CheckoutResult:
        payload = [
            {
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "price_at_purchase": line.product.price,
            }
            for line in lines
        ]
        data = await self.order_gateway.place_order_rpc(self.rpc_name, user_id, payload)
        if not isinstance(data, dict) or "id" not in data:
            # The function may still have committed; resync before reporting
            logger.error("Checkout function %s returned unexpected data: %r", self.rpc_name, data)
            await store.load(user_id)
            raise RemoteWriteError("Could not place order: unexpected response")

        store.reset()
        order = self._build_order(data, data.get("items") or [])
        logger.info("Order %s placed for user %s via %s", order.id, user_id, self.rpc_name)
        return CheckoutResult(order=order, cart_cleared=True)

    # ---- saga mode ----

    async def _checkout_saga(
        self,
        store: CartStore,
        user_id: uuid.UUID,
        lines: tuple[CartLine, ...],
        total_amount: float,
    ) -> CheckoutResult:
        # 1) Order row; failure leaves everything untouched
        order_row = await self.order_gateway.insert_order(
            user_id, total_amount, status=ORDER_STATUS_CONFIRMED
        )
        order_id = uuid.UUID(str(order_row["id"]))

        # 2) Order items with frozen prices
        item_rows = [
            {
                "order_id": str(order_id),
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "price_at_purchase": line.product.price,
            }
            for line in lines
        ]
        try:
            inserted = await self.order_gateway.insert_items(item_rows)
        except RemoteWriteError as exc:
            await self._compensate(user_id, order_id, exc)
            raise

        # 3) Drop the ordered rows; the order is already complete at this point
        cart_cleared = True
        try:
            await store.remove_lines([line.id for line in lines])
        except RemoteWriteError as exc:
            logger.warning(
                "Order %s placed but clearing cart of user %s failed: %s",
                order_id,
                user_id,
                exc.detail,
            )
            cart_cleared = False
            await store.load(user_id)

        order = self._build_order(order_row, inserted)
        logger.info("Order %s placed for user %s (%d items)", order_id, user_id, len(lines))
        return CheckoutResult(order=order, cart_cleared=cart_cleared)

    async def _compensate(
        self,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        cause: RemoteWriteError,
    ) -> None:
        """Delete a half-written order so no order exists without its items."""
        try:
            await self.order_gateway.delete_items(order_id)
            await self.order_gateway.delete_order(user_id, order_id)
        except RemoteWriteError as exc:
            logger.error(
                "Order %s for user %s left without items; rollback failed: %s",
                order_id,
                user_id,
                exc.detail,
            )
            raise CheckoutError(
                f"Failed to place order: {cause.detail}", order_id=order_id
            ) from exc
        logger.info("Rolled back order %s after item insert failure", order_id)

    # ---- DTO builder ----

    def _build_order(
        self,
        order_row: dict[str, Any],
        item_rows: list[dict[str, Any]],
    ) -> OrderWithItemsRead:
        order_id = order_row["id"]
        items = [
            OrderItemRead.from_row({"order_id": order_id, **row})
            for row in item_rows
        ]
        return OrderWithItemsRead(
            id=order_id,
            user_id=order_row["user_id"],
            total_amount=order_row["total_amount"],
            status=order_row.get("status", ORDER_STATUS_CONFIRMED),
            created_at=order_row["created_at"],
            items=items,
        )
