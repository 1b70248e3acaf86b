# backend/services/ledger.py
"""Order ledger: order header, snapshotted lines and per-category sales.

Every write takes the caller's TransactionScope; the ledger never commits.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from models.order import Order, OrderItem, OrderStatus, SaleRecord
from models.product import Product
from services.pricing import ZERO, Totals, to_cents
from services.unit_of_work import Handle, TransactionScope, require_transaction


@dataclass(frozen=True)
class ShippingDetails:
    name: str
    address: str
    city: str
    postal_code: str
    phone: str
    country: str

    REQUIRED = ("name", "address", "city", "postal_code", "phone", "country")

    def missing_fields(self) -> List[str]:
        return [f for f in self.REQUIRED if not (getattr(self, f) or "").strip()]


@dataclass(frozen=True)
class OrderData:
    user_id: int
    shipping: ShippingDetails
    payment_method: str
    totals: Totals
    coupon_id: Optional[int] = None
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class LedgerLine:
    """What gets snapshotted into an order line and its sale record."""
    product_id: int
    product_name: str
    category: Optional[str]
    quantity: int
    unit_price: Decimal

    @property
    def line_subtotal(self) -> Decimal:
        return to_cents(self.unit_price * self.quantity)


class OrderLedger:

    # ---- writes -------------------------------------------------------

    def insert_order(self, tx: TransactionScope, data: OrderData) -> int:
        session = require_transaction(tx)
        s = data.shipping
        order = Order(
            user_id=data.user_id,
            status=OrderStatus.CREATED.value,
            customer_name=s.name.strip(),
            address=s.address.strip(),
            city=s.city.strip(),
            postal_code=s.postal_code.strip(),
            phone=s.phone.strip(),
            country=s.country.strip(),
            payment_method=data.payment_method.strip(),
            subtotal=data.totals.subtotal,
            tax=data.totals.tax,
            shipping_cost=data.totals.shipping,
            discount_amount=data.totals.discount,
            total=data.totals.total,
            coupon_id=data.coupon_id,
            idempotency_key=data.idempotency_key,
        )
        session.add(order)
        session.flush()
        return order.id

    def insert_order_lines(self, tx: TransactionScope, order_id: int, lines: Sequence[LedgerLine]) -> int:
        session = require_transaction(tx)
        session.add_all([
            OrderItem(
                order_id=order_id,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_subtotal=line.line_subtotal,
            )
            for line in lines
        ])
        session.flush()
        return len(lines)

    def insert_sale_records(self, tx: TransactionScope, order_id: int, lines: Sequence[LedgerLine]) -> int:
        # One record per category, summed across the order's lines
        session = require_transaction(tx)
        per_category: Dict[str, Decimal] = {}
        for line in lines:
            category = line.category or "General"
            per_category[category] = per_category.get(category, ZERO) + line.line_subtotal

        session.add_all([
            SaleRecord(order_id=order_id, category=category, amount=amount)
            for category, amount in per_category.items()
        ])
        session.flush()
        return len(per_category)

    def set_status(self, tx: TransactionScope, order_id: int, status: OrderStatus) -> None:
        session = require_transaction(tx)
        session.query(Order).filter(Order.id == order_id).update(
            {Order.status: status.value}, synchronize_session=False
        )

    # ---- reads --------------------------------------------------------

    def get_order_by_id(self, handle: Handle, order_id: int) -> Optional[Order]:
        return (
            handle.session.query(Order)
            .options(joinedload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    def list_orders_for_user(self, handle: Handle, user_id: int, page: int = 1, page_size: int = 10) -> Tuple[List[Order], int]:
        query = handle.session.query(Order).filter(Order.user_id == user_id)
        total = query.count()
        rows = (
            query.options(joinedload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    def find_by_idempotency_key(self, handle: Handle, user_id: int, key: str) -> Optional[Order]:
        return (
            handle.session.query(Order)
            .filter(Order.user_id == user_id, Order.idempotency_key == key)
            .first()
        )

    # ---- reporting ----------------------------------------------------

    def sales_by_category(self, handle: Handle) -> List[dict]:
        rows = (
            handle.session.query(
                SaleRecord.category,
                func.count(SaleRecord.id).label("sales_count"),
                func.sum(SaleRecord.amount).label("total_sales"),
            )
            .group_by(SaleRecord.category)
            .order_by(func.sum(SaleRecord.amount).desc())
            .all()
        )
        return [
            {"category": r.category, "sales_count": r.sales_count, "total_sales": to_cents(r.total_sales or 0)}
            for r in rows
        ]

    def sales_summary(self, handle: Handle) -> dict:
        total_orders, total_sales, average = handle.session.query(
            func.count(Order.id), func.sum(Order.total), func.avg(Order.total)
        ).one()
        return {
            "total_orders": total_orders or 0,
            "total_sales": to_cents(total_sales or 0),
            "average_sale": to_cents(average or 0),
        }

    def inventory_by_category(self, handle: Handle) -> List[dict]:
        rows = (
            handle.session.query(
                Product.category,
                func.count(Product.id).label("total_products"),
                func.sum(Product.stock_on_hand).label("stock_on_hand"),
                func.sum(Product.stock_initial).label("stock_initial"),
            )
            .group_by(Product.category)
            .order_by(Product.category)
            .all()
        )
        return [
            {
                "category": r.category,
                "total_products": r.total_products,
                "stock_on_hand": int(r.stock_on_hand or 0),
                "stock_initial": int(r.stock_initial or 0),
            }
            for r in rows
        ]

    def detailed_inventory(self, handle: Handle) -> List[dict]:
        rows = handle.session.query(Product).order_by(Product.category, Product.name).all()
        return [
            {
                "id": p.id,
                "name": p.name,
                "category": p.category,
                "price": p.price,
                "stock_on_hand": p.stock_on_hand,
                "stock_initial": p.stock_initial,
                "units_sold": p.stock_initial - p.stock_on_hand,
            }
            for p in rows
        ]
