# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint
from database import Base

# Product
# A single catalog entry. Prices are fixed-point decimals.
# stock_on_hand is decremented by committed orders only; stock_initial is
# the last admin-set level and bounds stock_on_hand from above.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    category = Column(String, index=True)

    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)

    # Inventory counters
    stock_on_hand = Column(Integer, nullable=False, default=0)
    stock_initial = Column(Integer, nullable=False, default=0)

    # Optional URL of the main product image
    image_url = Column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("stock_on_hand >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("stock_on_hand <= stock_initial", name="ck_products_stock_within_initial"),
    )
