# backend/services/errors.py
"""Typed errors raised by the shop services.

Route handlers map ``kind`` to an HTTP status; the services never deal in
status codes themselves.
"""
from typing import Any, Dict, Optional


class ShopError(Exception):
    kind = "error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.details}


class ValidationError(ShopError):
    kind = "validation"


class EmptyCartError(ShopError):
    kind = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InsufficientStockError(ShopError):
    kind = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            product_id=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class StockConflictError(ShopError):
    kind = "stock_conflict"

    def __init__(self, product_id: int):
        super().__init__(
            f"Stock for product {product_id} changed during checkout, try again",
            product_id=product_id,
        )
        self.product_id = product_id


class InvalidCouponError(ShopError):
    kind = "invalid_coupon"

    def __init__(self, code: Optional[str]):
        super().__init__(f"Coupon '{code}' is invalid or no longer active", code=code)
        self.code = code


class DuplicateCheckoutError(ShopError):
    kind = "duplicate_checkout"

    def __init__(self, order_id: int):
        super().__init__(f"Checkout already completed as order {order_id}", order_id=order_id)
        self.order_id = order_id


class NotFoundError(ShopError):
    kind = "not_found"


class ForbiddenError(ShopError):
    kind = "forbidden"


class PersistenceError(ShopError):
    kind = "persistence"


class NotificationError(ShopError):
    kind = "notification"


class ProductInUseError(ShopError):
    kind = "product_in_use"

    def __init__(self, product_id: int):
        super().__init__(
            f"Product {product_id} appears in past orders and cannot be deleted",
            product_id=product_id,
        )
        self.product_id = product_id
