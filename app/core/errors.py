# app/core/errors.py
"""
Error taxonomy for cart and checkout operations.

Each error carries an HTTP status code and a human readable `detail`,
the same shape FastAPI's HTTPException uses, so app.main can render
all of them with one exception handler.
"""
import uuid


class CartServiceError(Exception):
    status_code: int = 400
    default_detail: str = "Cart operation failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthorizationError(CartServiceError):
    """Mutating cart/checkout operation attempted without a signed-in user."""

    status_code = 401
    default_detail = "Please sign in to use the cart"


class CartItemNotFoundError(CartServiceError):
    status_code = 404
    default_detail = "Item not found in cart"


class RemoteReadError(CartServiceError):
    """Fetching rows from the remote store failed."""

    status_code = 502
    default_detail = "Could not read from the store"


class RemoteWriteError(CartServiceError):
    """Insert / update / delete against the remote store failed."""

    status_code = 502
    default_detail = "Could not write to the store"


class DuplicateRowError(RemoteWriteError):
    """The insert hit a unique constraint, e.g. (user_id, product_id) on cart_items."""

    status_code = 409
    default_detail = "Item is already in the cart"


class ReferenceNotFoundError(RemoteWriteError):
    """The write pointed at a row that does not exist (foreign key violation)."""

    status_code = 404
    default_detail = "Referenced row not found"


class ProductNotFoundError(ReferenceNotFoundError):
    default_detail = "Product not found"


class CartConflictError(RemoteWriteError):
    """
    The remote row no longer matched the quantity we expected.

    Raised after the local cart has been reloaded from the store.
    """

    status_code = 409
    default_detail = "Cart was changed elsewhere, please review it and retry"


class CheckoutError(RemoteWriteError):
    """
    Checkout failed after the order row was created and the
    compensating delete failed too. The order needs manual cleanup.
    """

    default_detail = "Failed to place order"

    def __init__(self, detail: str | None = None, order_id: uuid.UUID | None = None):
        super().__init__(detail)
        self.order_id = order_id
