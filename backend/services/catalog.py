# backend/services/catalog.py
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_, update

from models.cart import CartItem
from models.order import OrderItem
from models.product import Product
from services.errors import NotFoundError, ProductInUseError, ValidationError
from services.unit_of_work import Handle, TransactionScope, require_transaction

EDITABLE = ("name", "price", "description", "category", "image_url")

SORTABLE = {
    "name": Product.name,
    "price": Product.price,
    "stock_on_hand": Product.stock_on_hand,
}


class CatalogStore:
    """Product reads plus the two sanctioned stock writes."""

    def get_product(self, handle: Handle, product_id: int) -> Optional[Product]:
        return handle.session.query(Product).filter(Product.id == product_id).first()

    def get_products(self, handle: Handle, product_ids: Iterable[int]) -> Dict[int, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        rows = handle.session.query(Product).filter(Product.id.in_(ids)).all()
        return {p.id: p for p in rows}

    def get_availability(self, handle: Handle, product_id: int) -> Optional[int]:
        # None means the product does not exist
        return (
            handle.session.query(Product.stock_on_hand)
            .filter(Product.id == product_id)
            .scalar()
        )

    def list_categories(self, handle: Handle) -> List[str]:
        rows = (
            handle.session.query(Product.category)
            .distinct()
            .filter(Product.category.isnot(None))
            .order_by(Product.category)
            .all()
        )
        return [r[0] for r in rows]

    def list_products(
        self,
        handle: Handle,
        *,
        q: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = 12,
        sort_by: str = "name",
        order: str = "asc",
        in_stock_only: bool = True,
    ) -> Tuple[List[Product], int]:
        query = handle.session.query(Product)
        if in_stock_only:
            query = query.filter(Product.stock_on_hand > 0)

        if q:
            like = f"%{q}%"
            query = query.filter(or_(Product.name.ilike(like), Product.category.ilike(like)))

        # Prefix match so "Dormitorio" also finds "Dormitorios"
        if category:
            query = query.filter(Product.category.ilike(f"{category}%"))

        sort_col = SORTABLE.get(sort_by, Product.name)
        query = query.order_by(sort_col.desc() if order == "desc" else sort_col.asc(), Product.id.asc())

        total = query.count()
        items = query.offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def decrement_stock(self, tx: TransactionScope, product_id: int, quantity: int) -> int:
        """Conditionally take ``quantity`` units; returns affected rows (0 or 1).

        The WHERE clause re-checks availability at write time, so two
        concurrent checkouts can never both take the last unit.
        """
        session = require_transaction(tx)
        if quantity <= 0:
            raise ValidationError("quantity must be positive", product_id=product_id)
        result = session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_on_hand >= quantity)
            .values(stock_on_hand=Product.stock_on_hand - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def create_product(
        self,
        tx: TransactionScope,
        *,
        name: str,
        price: Decimal,
        category: Optional[str] = None,
        description: Optional[str] = None,
        stock: int = 0,
        image_url: Optional[str] = None,
    ) -> Product:
        session = require_transaction(tx)
        if stock < 0:
            raise ValidationError("stock must not be negative")
        product = Product(
            name=name,
            price=price,
            category=category,
            description=description,
            stock_on_hand=stock,
            stock_initial=stock,
            image_url=image_url,
        )
        session.add(product)
        session.flush()
        return product

    def restock(self, tx: TransactionScope, product_id: int, stock: int) -> Product:
        # Admin reset: both counters move together to keep on_hand <= initial
        session = require_transaction(tx)
        if stock < 0:
            raise ValidationError("stock must not be negative")
        product = session.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
        product.stock_initial = stock
        product.stock_on_hand = stock
        session.flush()
        return product

    def update_product(self, tx: TransactionScope, product_id: int, **changes) -> Product:
        """Edit catalog fields; order lines keep their own name/price snapshot."""
        session = require_transaction(tx)
        unknown = set(changes) - set(EDITABLE)
        if unknown:
            raise ValidationError(f"fields cannot be edited: {', '.join(sorted(unknown))}")
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("name must not be empty")
        if changes.get("price") is not None and changes["price"] < 0:
            raise ValidationError("price must not be negative")

        product = session.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
        for field, value in changes.items():
            if field == "price" and value is None:
                continue
            setattr(product, field, value)
        session.flush()
        return product

    def delete_product(self, tx: TransactionScope, product_id: int) -> None:
        session = require_transaction(tx)
        product = session.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
        if session.query(OrderItem.id).filter(OrderItem.product_id == product_id).first():
            raise ProductInUseError(product_id)

        # Drop it from any open carts first
        session.query(CartItem).filter(CartItem.product_id == product_id).delete(synchronize_session=False)
        session.delete(product)
        session.flush()
