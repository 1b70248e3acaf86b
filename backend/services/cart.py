# backend/services/cart.py
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from models.cart import CartItem
from models.product import Product
from services.errors import InsufficientStockError, NotFoundError, ValidationError
from services.pricing import PricedLine, PricingConfig, Totals, compute_totals
from services.unit_of_work import Handle, TransactionScope, require_transaction


@dataclass(frozen=True)
class CartLine:
    """Cart line joined with the product's current catalog data."""
    user_id: int
    product_id: int
    quantity: int
    name: str
    unit_price: Decimal
    category: Optional[str]
    stock_on_hand: int

    def priced(self) -> PricedLine:
        return PricedLine(product_id=self.product_id, quantity=self.quantity, unit_price=self.unit_price)


def summarize(lines: List[CartLine], config: PricingConfig) -> Totals:
    # Cart preview never includes a coupon; that is applied at checkout
    return compute_totals([line.priced() for line in lines], None, config)


class CartStore:

    def list_for_user(self, handle: Handle, user_id: int) -> List[CartLine]:
        rows = (
            handle.session.query(CartItem, Product)
            .join(Product, CartItem.product_id == Product.id)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.id)
            .all()
        )
        return [
            CartLine(
                user_id=item.user_id,
                product_id=item.product_id,
                quantity=item.quantity,
                name=product.name,
                unit_price=Decimal(product.price),
                category=product.category,
                stock_on_hand=product.stock_on_hand,
            )
            for item, product in rows
        ]

    def _get_item(self, session, user_id: int, product_id: int) -> Optional[CartItem]:
        return (
            session.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .first()
        )

    def _get_product(self, session, product_id: int) -> Product:
        product = session.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
        return product

    def add(self, tx: TransactionScope, user_id: int, product_id: int, quantity: int) -> CartItem:
        """Add to the cart, merging with an existing line for the same product."""
        session = require_transaction(tx)
        if quantity <= 0:
            raise ValidationError("quantity must be positive", product_id=product_id)

        product = self._get_product(session, product_id)
        item = self._get_item(session, user_id, product_id)
        already = item.quantity if item else 0

        # The merged quantity must still fit in stock
        if product.stock_on_hand < already + quantity:
            raise InsufficientStockError(product_id, already + quantity, product.stock_on_hand)

        if item:
            item.quantity = already + quantity
        else:
            item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
            session.add(item)
        session.flush()
        return item

    def update_quantity(self, tx: TransactionScope, user_id: int, product_id: int, quantity: int) -> CartItem:
        session = require_transaction(tx)
        if quantity <= 0:
            raise ValidationError("quantity must be positive", product_id=product_id)

        item = self._get_item(session, user_id, product_id)
        if not item:
            raise NotFoundError("Product not in cart", product_id=product_id)

        product = self._get_product(session, product_id)
        if product.stock_on_hand < quantity:
            raise InsufficientStockError(product_id, quantity, product.stock_on_hand)

        item.quantity = quantity
        session.flush()
        return item

    def remove(self, tx: TransactionScope, user_id: int, product_id: int) -> None:
        session = require_transaction(tx)
        item = self._get_item(session, user_id, product_id)
        if not item:
            raise NotFoundError("Product not in cart", product_id=product_id)
        session.delete(item)
        session.flush()

    def clear(self, tx: TransactionScope, user_id: int) -> int:
        session = require_transaction(tx)
        return (
            session.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .delete(synchronize_session=False)
        )
