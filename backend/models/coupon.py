from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, func
from database import Base


# Discount code; active flips to False exactly once, when an order consumes it
class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    discount_percentage = Column(
        Integer,
        CheckConstraint("discount_percentage >= 0 AND discount_percentage <= 100"),
        nullable=False,
    )
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
