# backend/services/checkout.py
"""Checkout orchestration.

A checkout runs in three stages:

1. Pre-checks on a read handle. The cart must be non-empty, every line must
   fit the current stock and the coupon (if any) must be active. Nothing
   has been written yet when one of these fails.
2. Atomic phase in one transaction. It inserts the order, its snapshotted
   lines and sale records, conditionally decrements stock, consumes the
   coupon and clears the cart. Any error rolls all of it back.
3. Post-commit notification. The invoice is rendered and e-mailed. A failure
   here is logged and reported as ``notified=False``; the order stays.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.coupon import Coupon
from models.order import Order, OrderStatus
from models.users import User
from services.cart import CartLine, CartStore
from services.catalog import CatalogStore
from services.coupons import CouponStore
from services.errors import (
    DuplicateCheckoutError,
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    InvalidCouponError,
    NotFoundError,
    NotificationError,
    PersistenceError,
    StockConflictError,
    ValidationError,
)
from services.ledger import LedgerLine, OrderData, OrderLedger, ShippingDetails
from services.pricing import PricingConfig, Totals, compute_totals
from services.unit_of_work import ReadOnlyHandle, TransactionScope, transaction

logger = logging.getLogger(__name__)


class InvoiceService(Protocol):
    def render(self, order: Order) -> bytes: ...


class NotificationService(Protocol):
    def send_invoice(self, email: str, order: Order, document: bytes): ...


@dataclass(frozen=True)
class CheckoutResult:
    order_id: int
    totals: Totals
    notified: bool
    notification_error: Optional[str] = None


def is_admin(user: Optional[User]) -> bool:
    return user is not None and (user.role or "").upper() == "ADMIN"


class CheckoutService:

    def __init__(
        self,
        session: Session,
        *,
        invoices: InvoiceService,
        notifier: NotificationService,
        pricing: Optional[PricingConfig] = None,
        catalog: Optional[CatalogStore] = None,
        carts: Optional[CartStore] = None,
        coupons: Optional[CouponStore] = None,
        ledger: Optional[OrderLedger] = None,
    ):
        self.session = session
        self.invoices = invoices
        self.notifier = notifier
        self.pricing = pricing or PricingConfig.from_settings(settings)
        self.catalog = catalog or CatalogStore()
        self.carts = carts or CartStore()
        self.coupons = coupons or CouponStore()
        self.ledger = ledger or OrderLedger()

    # ------------------------------------------------------------------
    # checkout
    # ------------------------------------------------------------------

    def checkout(
        self,
        user_id: int,
        shipping: ShippingDetails,
        payment_method: str,
        coupon_code: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> CheckoutResult:
        self._validate_request(shipping, payment_method)
        reader = ReadOnlyHandle(self.session)

        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        email = user.email

        key = (idempotency_key or "").strip() or None
        if key:
            previous = self.ledger.find_by_idempotency_key(reader, user_id, key)
            if previous is not None:
                raise DuplicateCheckoutError(previous.id)

        lines = self.carts.list_for_user(reader, user_id)
        if not lines:
            raise EmptyCartError()

        # Fail fast before any write
        for line in lines:
            available = self.catalog.get_availability(reader, line.product_id)
            if available is None or available < line.quantity:
                raise InsufficientStockError(line.product_id, line.quantity, available or 0)

        coupon = None
        if coupon_code and coupon_code.strip():
            coupon = self.coupons.find_active(reader, coupon_code)
            if coupon is None:
                raise InvalidCouponError(coupon_code)

        totals = compute_totals(
            [line.priced() for line in lines],
            coupon.discount_percentage if coupon else None,
            self.pricing,
        )
        order_data = OrderData(
            user_id=user_id,
            shipping=shipping,
            payment_method=payment_method,
            totals=totals,
            coupon_id=coupon.id if coupon else None,
            idempotency_key=key,
        )
        ledger_lines = [self._snapshot(line) for line in lines]

        order_id = self._commit(order_data, ledger_lines, coupon)
        logger.info(f"Order {order_id} committed for user {user_id}, total {totals.total}")

        notified, error = self._notify(order_id, email)
        return CheckoutResult(order_id=order_id, totals=totals, notified=notified, notification_error=error)

    def _validate_request(self, shipping: ShippingDetails, payment_method: str) -> None:
        missing = shipping.missing_fields()
        if not (payment_method or "").strip():
            missing.append("payment_method")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    @staticmethod
    def _snapshot(line: CartLine) -> LedgerLine:
        return LedgerLine(
            product_id=line.product_id,
            product_name=line.name,
            category=line.category,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )

    def _commit(self, data: OrderData, lines: Sequence[LedgerLine], coupon: Optional[Coupon]) -> int:
        """Run the atomic phase; the single rollback point for every write."""
        coupon_code = coupon.code if coupon else None
        try:
            with transaction(self.session) as tx:
                return self._write_order(tx, data, lines, coupon.id if coupon else None, coupon_code)
        except (StockConflictError, InvalidCouponError):
            logger.warning(f"Checkout for user {data.user_id} rolled back after a conflicting write")
            raise
        except IntegrityError as e:
            if data.idempotency_key:
                previous = self.ledger.find_by_idempotency_key(
                    ReadOnlyHandle(self.session), data.user_id, data.idempotency_key
                )
                if previous is not None:
                    raise DuplicateCheckoutError(previous.id) from e
            logger.exception(f"Constraint violation during checkout for user {data.user_id}")
            raise PersistenceError("Checkout could not be completed") from e
        except SQLAlchemyError as e:
            logger.exception(
                f"Persistence failure during checkout for user {data.user_id} "
                f"(lines={[(l.product_id, l.quantity) for l in lines]}, coupon={coupon_code})"
            )
            raise PersistenceError("Checkout could not be completed") from e

    def _write_order(
        self,
        tx: TransactionScope,
        data: OrderData,
        lines: Sequence[LedgerLine],
        coupon_id: Optional[int],
        coupon_code: Optional[str],
    ) -> int:
        order_id = self.ledger.insert_order(tx, data)
        self.ledger.insert_order_lines(tx, order_id, lines)

        # Re-check on write: 0 rows means a concurrent order took the stock
        for line in lines:
            if self.catalog.decrement_stock(tx, line.product_id, line.quantity) != 1:
                raise StockConflictError(line.product_id)

        self.ledger.insert_sale_records(tx, order_id, lines)

        if coupon_id is not None and self.coupons.mark_used(tx, coupon_id) != 1:
            raise InvalidCouponError(coupon_code)

        self.carts.clear(tx, data.user_id)
        return order_id

    # ------------------------------------------------------------------
    # post-commit
    # ------------------------------------------------------------------

    def _deliver_invoice(self, order: Order, email: str) -> None:
        document = self.invoices.render(order)
        self.notifier.send_invoice(email, order, document)

    def _notify(self, order_id: int, email: str) -> Tuple[bool, Optional[str]]:
        # Never raises: the order is already durable
        try:
            order = self.ledger.get_order_by_id(ReadOnlyHandle(self.session), order_id)
            self._deliver_invoice(order, email)
        except NotificationError as e:
            logger.warning(f"Order {order_id} committed but invoice notification failed: {e.message}")
            self._record_status(order_id, OrderStatus.NOTIFICATION_FAILED)
            return False, e.message
        except Exception as e:
            logger.exception(f"Unexpected error notifying order {order_id}")
            self._record_status(order_id, OrderStatus.NOTIFICATION_FAILED)
            return False, str(e)

        self._record_status(order_id, OrderStatus.NOTIFIED)
        return True, None

    def _record_status(self, order_id: int, status: OrderStatus) -> None:
        try:
            with transaction(self.session) as tx:
                self.ledger.set_status(tx, order_id, status)
        except SQLAlchemyError:
            logger.exception(f"Could not record status {status.value} for order {order_id}")

    # ------------------------------------------------------------------
    # invoice access
    # ------------------------------------------------------------------

    def _load_order_for(self, order_id: int, requested_by: Optional[User]) -> Order:
        order = self.ledger.get_order_by_id(ReadOnlyHandle(self.session), order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", order_id=order_id)
        if requested_by is not None and order.user_id != requested_by.id and not is_admin(requested_by):
            raise ForbiddenError("Not authorized to access this order", order_id=order_id)
        return order

    def resend_invoice(self, order_id: int, requested_by: Optional[User] = None) -> None:
        """Re-render and re-send the invoice of a committed order.

        Safe to call any number of times. Raises NotificationError when the
        delivery fails so the caller can retry later.
        """
        order = self._load_order_for(order_id, requested_by)
        owner = self.session.get(User, order.user_id)
        if owner is None:
            raise NotFoundError(f"Owner of order {order_id} not found", order_id=order_id)

        try:
            self._deliver_invoice(order, owner.email)
        except NotificationError:
            self._record_status(order_id, OrderStatus.NOTIFICATION_FAILED)
            raise
        self._record_status(order_id, OrderStatus.NOTIFIED)
        logger.info(f"Invoice for order {order_id} re-sent to {owner.email}")

    def render_invoice(self, order_id: int, requested_by: Optional[User] = None) -> bytes:
        order = self._load_order_for(order_id, requested_by)
        return self.invoices.render(order)
