# app/services/order_history.py
import logging
import uuid

from app.core.errors import RemoteReadError
from app.repositories.order_repo import RemoteOrderGateway
from app.schemas.order import OrderItemRead, OrderWithItemsRead

logger = logging.getLogger(__name__)


class OrderHistoryReader:
    """
    Read-only access to a user's past orders, newest first.

    A failed read returns an empty history (logged), same as the cart.
    """

    def __init__(self, order_gateway: RemoteOrderGateway):
        self.order_gateway = order_gateway

    async def list_orders(self, user_id: uuid.UUID) -> list[OrderWithItemsRead]:
        try:
            orders = await self.order_gateway.list_orders(user_id)
            result: list[OrderWithItemsRead] = []
            for order in orders:
                rows = await self.order_gateway.list_items(order["id"])
                result.append(
                    OrderWithItemsRead(
                        id=order["id"],
                        user_id=order["user_id"],
                        total_amount=order["total_amount"],
                        status=order["status"],
                        created_at=order["created_at"],
                        items=[OrderItemRead.from_row(row) for row in rows],
                    )
                )
        except RemoteReadError as exc:
            logger.warning("Order history load failed for user %s: %s", user_id, exc.detail)
            return []
        return result
