from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base


# A single (user, product) line of a user's shopping cart
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False) # Owner of the cart
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False) # Foreign key to product
    quantity = Column(Integer, nullable=False, default=1) # Product quantity
    created_at = Column(DateTime, server_default=func.now()) # Creation timestamp

    product = relationship("Product") # Relationship to Product

    __table_args__ = (
        # One line per product in a user's cart
        UniqueConstraint("user_id", "product_id", name="uq_cartitem_user_product"),
        CheckConstraint("quantity > 0", name="ck_cartitem_quantity_positive"),
    )
